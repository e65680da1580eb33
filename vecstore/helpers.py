"""API response envelope, error-to-status mapping and the search thread pool."""

from __future__ import annotations

import os
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from http import HTTPStatus
from typing import Any, Callable, Generic, TypeVar

from vecstore.errors import (
    BadInputError,
    BadRequestError,
    NotFoundError,
    ServiceError,
    StorageError,
)

T = TypeVar("T")

_ERROR_STATUSES: tuple[tuple[type[StorageError], HTTPStatus], ...] = (
    (BadInputError, HTTPStatus.BAD_REQUEST),
    (NotFoundError, HTTPStatus.NOT_FOUND),
    (ServiceError, HTTPStatus.INTERNAL_SERVER_ERROR),
    (BadRequestError, HTTPStatus.BAD_REQUEST),
)


@dataclass(frozen=True)
class ApiStatus:
    """Outcome of an API call: ok when ``error`` is None."""

    error: str | None = None

    @property
    def is_ok(self) -> bool:
        return self.error is None


def _status_json(status: ApiStatus) -> Any:
    return "ok" if status.error is None else {"error": status.error}


def _jsonable(value: Any) -> Any:
    if hasattr(value, "to_json"):
        return value.to_json()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(item) for item in value]
    return value


@dataclass
class ApiResponse(Generic[T]):
    """Envelope of every API reply: result, status and elapsed seconds."""

    result: T | None
    status: ApiStatus
    time: float

    def to_json(self) -> dict[str, Any]:
        return {
            "result": _jsonable(self.result),
            "status": _status_json(self.status),
            "time": self.time,
        }


def create_search_runtime(max_search_threads: int) -> ThreadPoolExecutor:
    """Create the search thread pool; 0 means one thread less than the CPU count, at least one."""
    if max_search_threads < 0:
        raise ValueError("max_search_threads must not be negative")
    workers = max_search_threads
    if workers == 0:
        workers = max(1, (os.cpu_count() or 1) - 1)
    return ThreadPoolExecutor(max_workers=workers, thread_name_prefix="search")


def _error_status(err: StorageError) -> HTTPStatus:
    for cls, status in _ERROR_STATUSES:
        if isinstance(err, cls):
            return status
    return HTTPStatus.INTERNAL_SERVER_ERROR


def process_response(action: Callable[[], T]) -> tuple[HTTPStatus, ApiResponse[T]]:
    """Run ``action`` and wrap its result or storage error into an HTTP status and envelope."""
    started = time.perf_counter()
    try:
        result = action()
    except StorageError as err:
        return _error_status(err), ApiResponse(
            result=None,
            status=ApiStatus(error=err.description),
            time=time.perf_counter() - started,
        )
    return HTTPStatus.OK, ApiResponse(
        result=result,
        status=ApiStatus(),
        time=time.perf_counter() - started,
    )