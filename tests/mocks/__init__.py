"""Test mocks for external services."""

from .mongo_mocks import (
    DOCUMENT_VALIDATION_FAILURE,
    DUPLICATE_KEY,
    MockCollection,
    MockDatabase,
)

__all__ = [
    "DOCUMENT_VALIDATION_FAILURE",
    "DUPLICATE_KEY",
    "MockCollection",
    "MockDatabase",
]
