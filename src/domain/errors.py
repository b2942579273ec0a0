# src/domain/errors.py

import math
import threading
from typing import Optional


class SearchEngineError(Exception):
    """
    Base for every error raised by the discovery engine.

    Callers branch on `kind` (or the subclass), never on the message text.
    `context` carries the offending provider id or criteria field.
    """

    kind = "search_engine_error"

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "message": self.message,
            "context": {key: _plain(value) for key, value in self.context.items()},
        }


class ValidationError(SearchEngineError, ValueError):
    """Malformed or out-of-range input. Raised before any storage access."""

    kind = "validation_error"

    def __init__(self, field: str, message: str, value=None):
        super().__init__(message, field=field, value=value)
        self.field = field
        self.value = value


class RecordNotFoundError(SearchEngineError, LookupError):
    kind = "record_not_found"

    def __init__(self, provider_id: str, operation: str):
        super().__init__(
            f"No searchable record for provider '{provider_id}' ({operation}).",
            provider_id=provider_id,
            operation=operation,
        )
        self.provider_id = provider_id


class DuplicateRecordError(SearchEngineError):
    kind = "duplicate_record"

    def __init__(self, provider_id: str):
        super().__init__(
            f"Provider '{provider_id}' already has an active searchable record.",
            provider_id=provider_id,
        )
        self.provider_id = provider_id


class StorageUnavailableError(SearchEngineError, RuntimeError):
    kind = "storage_unavailable"

    def __init__(self, operation: str, detail: str, provider_id: Optional[str] = None):
        super().__init__(
            f"Provider store unavailable during {operation}: {detail}",
            operation=operation,
            provider_id=provider_id,
        )
        self.operation = operation


class SearchCancelledError(SearchEngineError):
    kind = "search_cancelled"

    def __init__(self, stage: str):
        super().__init__(f"Search cancelled by caller during {stage}.", stage=stage)
        self.stage = stage


def raise_if_cancelled(cancel_event: Optional[threading.Event], stage: str) -> None:
    """Cooperative cancellation check used at the storage-call boundary."""
    if cancel_event is not None and cancel_event.is_set():
        raise SearchCancelledError(stage)


def _plain(value):
    # Context must stay JSON-safe: non-finite floats and collections become text
    if value is None or isinstance(value, (str, bool, int)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else repr(value)
    if isinstance(value, (set, frozenset, list, tuple)):
        return sorted(str(item) for item in value)
    return str(value)
