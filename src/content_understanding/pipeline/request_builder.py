"""Request body construction for create, analyze and classify calls.

Templates are opaque JSON objects. The only structural change this module
makes is injecting one storage pointer block (``trainingData`` for standard
mode, ``knowledgeSources`` for pro mode) with a normalized prefix.
"""

from __future__ import annotations

import base64
import json
from pathlib import Path
from typing import Any

from content_understanding.core.types import (
    JSONObject,
    KnowledgeSource,
    RequestEnvelope,
    TrainingDataSource,
)
from content_understanding.storage.layout import is_supported_document, normalize_prefix


def training_data_pointer(container_url: str, prefix: str) -> TrainingDataSource:
    return TrainingDataSource(container_url=container_url, prefix=normalize_prefix(prefix))


def knowledge_source_pointer(container_url: str, prefix: str) -> KnowledgeSource:
    return KnowledgeSource(container_url=container_url, prefix=normalize_prefix(prefix))


def build_request(
    template: JSONObject,
    *,
    training_data: TrainingDataSource | None = None,
    knowledge_source: KnowledgeSource | None = None,
) -> RequestEnvelope:
    """Merge a caller template with at most one storage pointer.

    Raises:
        ValueError: If both a training-data and a knowledge-source pointer
            are supplied, or the template already holds the other kind.
        TypeError: If ``template`` is not a JSON object.
    """
    if training_data is not None and knowledge_source is not None:
        raise ValueError(
            "trainingData and knowledgeSources are mutually exclusive; "
            "supply only one storage pointer"
        )
    return RequestEnvelope(template=template, pointer=training_data or knowledge_source)


def load_template(path: str | Path) -> JSONObject:
    """Read a JSON template file."""
    template_path = Path(path)
    if not template_path.is_file():
        raise FileNotFoundError(f"Template file not found: {template_path}")
    with template_path.open(encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        raise TypeError(f"Template must be a JSON object: {template_path}")
    return data


# --- Analyze bodies ---


def url_body(url: str) -> dict[str, str]:
    return {"url": url}


def batch_inputs_body(directory: str | Path) -> dict[str, Any]:
    """Encode every supported document under ``directory`` as a batch input.

    Only pro mode accepts multiple inputs. Names flatten the relative path
    with underscores.
    """
    root = Path(directory)
    inputs = [
        {
            "name": "_".join(f.relative_to(root).parts),
            "data": base64.b64encode(f.read_bytes()).decode("utf-8"),
        }
        for f in sorted(root.rglob("*"))
        if f.is_file() and is_supported_document(f.name)
    ]
    if not inputs:
        raise ValueError(f"No supported documents found in {root}")
    return {"inputs": inputs}
