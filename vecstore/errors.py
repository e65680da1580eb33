"""Errors reported by the storage layer."""

from __future__ import annotations


class StorageError(Exception):
    """Base class of storage errors; ``description`` holds the bare reason."""

    _prefix = ""

    def __init__(self, description: str) -> None:
        super().__init__(description)
        self.description = description

    def __str__(self) -> str:
        return f"{self._prefix}{self.description}"


class BadInputError(StorageError):
    """The input of an operation is wrong."""

    _prefix = "Wrong input: "


class NotFoundError(StorageError):
    """The requested entity does not exist."""

    _prefix = "Not found: "


class ServiceError(StorageError):
    """An internal failure of the service."""

    _prefix = "Service internal error: "


class BadRequestError(StorageError):
    """The request cannot be served as given."""

    _prefix = "Bad request: "