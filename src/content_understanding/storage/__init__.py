"""Blob staging for training and reference data."""

from .gateway import (
    BlobContainerGateway,
    InMemoryGateway,
    ObjectStoreGateway,
    generate_container_sas_url,
)
from .layout import (
    REFERENCE_LIST_KEY,
    blob_key,
    label_key,
    normalize_prefix,
    ocr_result_key,
    staged_resource_set,
)
from .staging import validate_staged_resources
from .uploads import upload_reference_documents, upload_training_data

__all__ = [
    "REFERENCE_LIST_KEY",
    "BlobContainerGateway",
    "InMemoryGateway",
    "ObjectStoreGateway",
    "blob_key",
    "generate_container_sas_url",
    "label_key",
    "normalize_prefix",
    "ocr_result_key",
    "staged_resource_set",
    "upload_reference_documents",
    "upload_training_data",
    "validate_staged_resources",
]
