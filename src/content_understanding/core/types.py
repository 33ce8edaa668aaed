"""Core data types shared by the client components.

Everything here is created per call and discarded afterwards. Dataclasses are
frozen so a value built by one stage cannot be mutated by the next; the
request envelope additionally deep-copies its body on the way in and out.
"""

from __future__ import annotations

import copy
import dataclasses
from enum import Enum
import typing

from content_understanding.constants import KNOWLEDGE_SOURCE_LIST_FILE_NAME

if typing.TYPE_CHECKING:
    import httpx

JSONValue: typing.TypeAlias = (
    str | int | float | bool | None | list["JSONValue"] | dict[str, "JSONValue"]
)
JSONObject: typing.TypeAlias = dict[str, JSONValue]

# Opaque poll target returned in the Operation-Location header
OperationHandle: typing.TypeAlias = str


def _require(
    *,
    condition: bool,
    message: str,
    exc: type[Exception] = ValueError,
    field_name: str | None = None,
) -> None:
    """Centralized validation with optional field context for clearer errors."""
    if not condition:
        if field_name:
            raise exc(f"{field_name}: {message}")
        raise exc(message)


# --- Operation state ---


class OperationStatus(str, Enum):
    """Status of a long-running operation as seen by the client."""

    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @classmethod
    def parse(cls, raw: object) -> OperationStatus:
        """Map a service status string onto the client state machine.

        Matching is case-insensitive. Transient values the service may emit
        (``notStarted``, ``running``, missing) all map to RUNNING.
        """
        if isinstance(raw, str):
            normalized = raw.strip().lower()
            if normalized == cls.SUCCEEDED.value:
                return cls.SUCCEEDED
            if normalized == cls.FAILED.value:
                return cls.FAILED
        return cls.RUNNING

    @property
    def is_terminal(self) -> bool:
        return self is not OperationStatus.RUNNING


@dataclasses.dataclass(frozen=True, slots=True)
class ErrorDetail:
    """Structured error decoded from a failure body or terminal envelope."""

    code: str | None = None
    message: str | None = None
    inner_code: str | None = None
    inner_message: str | None = None
    details: tuple[JSONValue, ...] = ()
    raw: str | None = None

    def render(self) -> str:
        """Render a single diagnostic string preserving the code/message chain."""
        if self.code or self.message:
            text = _join(self.code, self.message)
            if self.inner_code or self.inner_message:
                text += f" (inner: {_join(self.inner_code, self.inner_message)})"
            return text
        if self.raw:
            return f"raw body: {self.raw}"
        return "no error detail available"


def _join(code: str | None, message: str | None) -> str:
    if code and message:
        return f"{code}: {message}"
    return code or message or ""


@dataclasses.dataclass(frozen=True, slots=True)
class SubmittedOperation:
    """Outcome of an accepted initiating call."""

    handle: OperationHandle | None
    response: httpx.Response

    @property
    def status_code(self) -> int:
        return self.response.status_code


# --- Staged resources ---


class StagingMode(str, Enum):
    """Which companion blobs a create operation needs under its prefix."""

    STANDARD_TRAINING = "standard-training"
    PRO_MODE_REFERENCE = "pro-mode-reference"
    PRO_MODE_SKIP_ANALYZE = "pro-mode-skip-analyze"

    @property
    def is_pro_mode(self) -> bool:
        return self is not StagingMode.STANDARD_TRAINING


@dataclasses.dataclass(frozen=True, slots=True)
class StagedResourceSet:
    """Object store keys required for one logical input file."""

    primary: str
    label: str | None = None
    ocr_result: str | None = None

    def keys(self) -> tuple[str, ...]:
        return tuple(k for k in (self.primary, self.label, self.ocr_result) if k)


@dataclasses.dataclass(frozen=True, slots=True)
class StagingReport:
    """Keys confirmed present by a successful staging validation."""

    prefix: str
    mode: StagingMode
    checked_keys: frozenset[str]
    resource_sets: tuple[StagedResourceSet, ...]


# --- Storage pointers ---


@dataclasses.dataclass(frozen=True, slots=True)
class TrainingDataSource:
    """Labeled training data location (standard mode)."""

    container_url: str
    prefix: str

    def __post_init__(self) -> None:
        _require(
            condition=bool(self.container_url),
            message="must be a non-empty URL",
            field_name="container_url",
        )
        _require(
            condition=self.prefix.endswith("/"),
            message="must end with '/'",
            field_name="prefix",
        )

    def to_json(self) -> JSONObject:
        return {"containerUrl": self.container_url, "kind": "blob", "prefix": self.prefix}


@dataclasses.dataclass(frozen=True, slots=True)
class KnowledgeSource:
    """Reference document location (pro mode)."""

    container_url: str
    prefix: str
    file_list_path: str = KNOWLEDGE_SOURCE_LIST_FILE_NAME

    def __post_init__(self) -> None:
        _require(
            condition=bool(self.container_url),
            message="must be a non-empty URL",
            field_name="container_url",
        )
        _require(
            condition=self.prefix.endswith("/"),
            message="must end with '/'",
            field_name="prefix",
        )

    def to_json(self) -> list[JSONValue]:
        return [
            {
                "containerUrl": self.container_url,
                "kind": "reference",
                "prefix": self.prefix,
                "fileListPath": self.file_list_path,
            }
        ]


StoragePointer: typing.TypeAlias = TrainingDataSource | KnowledgeSource

TRAINING_DATA_KEY = "trainingData"
KNOWLEDGE_SOURCES_KEY = "knowledgeSources"


@dataclasses.dataclass(frozen=True, slots=True)
class RequestEnvelope:
    """Request body: a caller template plus at most one storage pointer.

    The pointer lives in a single field, so a training-data block and a
    knowledge-source block can never both be injected. A template that already
    carries the other pointer kind is rejected; one of the same kind is
    replaced.
    """

    template: JSONObject
    pointer: StoragePointer | None = None

    def __post_init__(self) -> None:
        _require(
            condition=isinstance(self.template, dict),
            message="must be a JSON object",
            field_name="template",
            exc=TypeError,
        )
        conflicting = _conflicting_pointer_key(self.pointer)
        _require(
            condition=conflicting is None or conflicting not in self.template,
            message=(
                f"already holds '{conflicting}'; trainingData and "
                "knowledgeSources are mutually exclusive"
            ),
            field_name="template",
        )
        object.__setattr__(self, "template", copy.deepcopy(self.template))

    def to_json(self) -> JSONObject:
        """Return a fresh, serializable request body."""
        body = copy.deepcopy(self.template)
        if isinstance(self.pointer, TrainingDataSource):
            body[TRAINING_DATA_KEY] = self.pointer.to_json()
        elif isinstance(self.pointer, KnowledgeSource):
            body[KNOWLEDGE_SOURCES_KEY] = self.pointer.to_json()
        return body


def _conflicting_pointer_key(pointer: StoragePointer | None) -> str | None:
    if isinstance(pointer, TrainingDataSource):
        return KNOWLEDGE_SOURCES_KEY
    if isinstance(pointer, KnowledgeSource):
        return TRAINING_DATA_KEY
    return None


# --- Resource management ---


@dataclasses.dataclass(frozen=True, slots=True)
class AnalyzerPage:
    """One page of the analyzer listing."""

    value: tuple[JSONObject, ...]
    next_link: str | None = None

    @classmethod
    def from_json(cls, data: JSONObject) -> AnalyzerPage:
        items = data.get("value") or []
        next_link = data.get("nextLink")
        return cls(
            value=tuple(i for i in items if isinstance(i, dict)),  # type: ignore[union-attr]
            next_link=next_link if isinstance(next_link, str) and next_link else None,
        )
