"""Recursive tree operations for sftpsync."""

from .modes import ErrorPolicy
from .tree import (
    ProgressCallback,
    TransferOutcome,
    clean_dir,
    download_all,
    list_all_files,
    upload_all,
)

__all__ = [
    "ErrorPolicy",
    "ProgressCallback",
    "TransferOutcome",
    "clean_dir",
    "download_all",
    "list_all_files",
    "upload_all",
]
