"""
Editorial Desk

Content lifecycle core for a publishing platform: edit locks, publication
placement, derived lifecycle state and an audit ledger.
"""

import importlib.metadata

__version__ = importlib.metadata.version("editorial-desk")

from .errors import (
    ContentNotFoundError,
    DataIntegrityError,
    DuplicateContentError,
    EditorialError,
    InvalidRequestError,
    LockHeldError,
    PermissionDeniedError,
    StorageUnavailableError,
    UnknownSlotError,
)

__all__ = [
    "ContentNotFoundError",
    "DataIntegrityError",
    "DuplicateContentError",
    "EditorialError",
    "InvalidRequestError",
    "LockHeldError",
    "PermissionDeniedError",
    "StorageUnavailableError",
    "UnknownSlotError",
]
