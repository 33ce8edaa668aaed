import json

import pytest

from content_understanding.core.types import ErrorDetail, OperationStatus
from content_understanding.pipeline.result_decoder import (
    decode_error_body,
    decode_failure,
    decode_success,
)

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Succeeded", OperationStatus.SUCCEEDED),
        ("succeeded", OperationStatus.SUCCEEDED),
        ("FAILED", OperationStatus.FAILED),
        ("Running", OperationStatus.RUNNING),
        ("NotStarted", OperationStatus.RUNNING),
        (None, OperationStatus.RUNNING),
        (42, OperationStatus.RUNNING),
    ],
)
def test_status_parsing_is_case_insensitive_and_defaults_to_running(raw, expected):
    status = OperationStatus.parse(raw)
    assert status is expected
    assert status.is_terminal == (expected is not OperationStatus.RUNNING)


def test_error_body_preserves_code_message_and_inner_chain():
    body = json.dumps(
        {
            "error": {
                "code": "InvalidRequest",
                "message": "Bad template",
                "innererror": {"code": "InvalidFieldSchema", "message": "unknown type"},
            }
        }
    )

    detail = decode_error_body(body)

    assert detail.code == "InvalidRequest"
    assert detail.inner_code == "InvalidFieldSchema"
    assert detail.render() == (
        "InvalidRequest: Bad template (inner: InvalidFieldSchema: unknown type)"
    )


def test_non_json_error_body_falls_back_to_truncated_raw_text():
    text = "<html>" + "x" * 1000
    detail = decode_error_body(text)
    assert detail.code is None
    assert detail.raw == text[:500]
    assert detail.render().startswith("raw body: <html>")


def test_empty_error_body():
    assert decode_error_body("") == ErrorDetail()
    assert decode_error_body("").render() == "no error detail available"


def test_failure_envelope_error_is_decoded():
    envelope = {
        "status": "Failed",
        "error": {"code": "InvalidInput", "message": "bad schema", "details": [{"x": 1}]},
    }
    detail = decode_failure(envelope)
    assert detail.render() == "InvalidInput: bad schema"
    assert detail.details == ({"x": 1},)


def test_failure_envelope_without_error_keeps_raw_preview():
    detail = decode_failure({"status": "Failed"})
    assert detail.raw == '{"status": "Failed"}'


def test_success_envelope_is_returned_unchanged():
    envelope = {"status": "Succeeded", "result": {"analyzerId": "demo-1"}}
    assert decode_success(envelope) is envelope
