"""Central JSON utilities using orjson."""

from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal
from typing import Any

import orjson
from bson import ObjectId

# orjson.JSONDecodeError subclasses ValueError
JSONDecodeError = orjson.JSONDecodeError


def _default_encoder(user_default: Callable[[Any], Any] | None = None) -> Callable[[Any], Any]:
    """Create a JSON encoder for values orjson does not know natively."""

    def _encoder(obj: Any) -> Any:
        if user_default is not None:
            try:
                return user_default(obj)
            except TypeError:
                pass
        if isinstance(obj, Decimal):
            return float(obj)
        if isinstance(obj, ObjectId):
            return str(obj)
        raise TypeError(f"Object of type {obj.__class__.__name__} is not JSON serializable")

    return _encoder


def dumps(obj: Any, *, default: Callable[[Any], Any] | None = None, option: int | None = None) -> str:
    """Dump object to JSON string."""
    kwargs: dict[str, Any] = {"default": _default_encoder(default)}
    if option is not None:
        kwargs["option"] = option
    return orjson.dumps(obj, **kwargs).decode("utf-8")


def loads(obj: str | bytes) -> Any:
    """Load object from JSON string or bytes."""
    return orjson.loads(obj)


__all__ = ["JSONDecodeError", "dumps", "loads"]
