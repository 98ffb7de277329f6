"""Services package for RendoJobs."""

from .user_directory import UserDirectory, to_resolved
from .object_store import (
    ObjectStore,
    LocalObjectStore,
    SupabaseObjectStore,
    build_object_store,
    get_object_store,
    make_object_key,
)
from .file_validator import validate_upload, FileValidationResult

__all__ = [
    "UserDirectory",
    "to_resolved",
    "ObjectStore",
    "LocalObjectStore",
    "SupabaseObjectStore",
    "build_object_store",
    "get_object_store",
    "make_object_key",
    "validate_upload",
    "FileValidationResult",
]
