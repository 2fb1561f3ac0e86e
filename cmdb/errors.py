"""
Error types for the CMDB core.

This module defines every exception surfaced to callers:
- CmdbError: Base exception
- NotFoundError: A requested CI, relationship or type does not exist
- ReservedNameError: An edge-type name collides with a reserved keyspace
- NameAlreadyExistsError: Type name uniqueness violation (not raised yet)
- StorageError: Underlying I/O, engine or serialization failure

Invariants:
    - All errors inherit from CmdbError
    - Errors carry a machine-readable code and a details dict
    - StorageError always keeps the original exception as its cause
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class CmdbError(Exception):
    """Base exception for all CMDB errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "CMDB_ERROR"
        self.details = details or {}


class NotFoundError(CmdbError):
    """Resource not found.

    Raised when:
    - CI doesn't exist
    - Relationship (or its type index entry) doesn't exist
    - Relationship type keyspace doesn't exist
    """

    def __init__(
        self,
        message: str,
        resource_type: str,
        resource_id: str,
    ) -> None:
        super().__init__(
            message,
            code="NOT_FOUND",
            details={
                "resource_type": resource_type,
                "resource_id": resource_id,
            },
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class ReservedNameError(CmdbError):
    """Relationship type name collides with a reserved keyspace."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Relationship type name '{name}' is reserved",
            code="RESERVED_NAME",
            details={"name": name},
        )
        self.name = name


class NameAlreadyExistsError(CmdbError):
    """A type name is already in use."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Name '{name}' already exists",
            code="NAME_ALREADY_EXISTS",
            details={"name": name},
        )
        self.name = name


class StorageError(CmdbError):
    """Storage fault.

    Raised when:
    - The database file cannot be opened or written
    - A reserved keyspace is missing (corrupt database)
    - A stored record cannot be decoded
    - A write is attempted on a read-only or closed handle

    Attributes:
        cause: The underlying exception, if any
    """

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(
            message,
            code="STORAGE_ERROR",
            details={"cause": repr(cause) if cause is not None else None},
        )
        self.cause = cause
