"""Run-specific field overwrites derived from operator options."""

from __future__ import annotations

from typing import Any

from bson import ObjectId
from pydantic import BaseModel, ConfigDict

from bulkrestore.errors import ImportSettingsError

from .settings import ImportMode

GRANT_PUBLIC = 1
GRANT_RESTRICTED = 2


class ImportOption(BaseModel):
    """What the operator chose for one collection."""

    model_config = ConfigDict(frozen=True)

    collection_name: str
    mode: ImportMode
    overwrite_author_with_current_user: bool = True
    # pages only
    make_public_for_restricted: bool = False
    # users only
    initialize_secrets: bool = True


def _public_if_restricted(value: Any, context: Any) -> Any:
    return GRANT_PUBLIC if value == GRANT_RESTRICTED else value


def _empty_if_restricted(value: Any, context: Any) -> Any:
    return [] if context.document.get("grant") == GRANT_PUBLIC else value


# Fields rewritten to the operator when authorship is overwritten.
_AUTHOR_FIELDS: dict[str, tuple[str, ...]] = {
    "pages": ("creator", "lastUpdateUser"),
    "revisions": ("author",),
    "comments": ("creator",),
    "attachments": ("creator",),
}

_SECRET_FIELDS: dict[str, tuple[str, ...]] = {
    "users": ("password", "apiToken"),
}


def operator_object_id(operator_id: ObjectId | str | None) -> ObjectId | None:
    """Return the operator as an ObjectId.

    Raises:
        ImportSettingsError: ``operator_id`` is not a valid ObjectId.
    """
    if operator_id is None or isinstance(operator_id, ObjectId):
        return operator_id
    if not ObjectId.is_valid(operator_id):
        raise ImportSettingsError(f"Operator id {operator_id!r} is not a valid ObjectId")
    return ObjectId(operator_id)


def generate_overwrite_params(collection_name: str, operator_id: ObjectId | str | None, option: ImportOption) -> dict[str, Any]:
    params: dict[str, Any] = {}

    operator = operator_object_id(operator_id)
    if option.overwrite_author_with_current_user and operator is not None:
        for field_name in _AUTHOR_FIELDS.get(collection_name, ()):
            params[field_name] = operator

    if collection_name == "pages" and option.make_public_for_restricted:
        # grant runs first: dicts keep insertion order
        params["grant"] = _public_if_restricted
        params["grantedUsers"] = _empty_if_restricted
        params["grantedGroups"] = _empty_if_restricted

    if option.initialize_secrets:
        for field_name in _SECRET_FIELDS.get(collection_name, ()):
            params[field_name] = None

    return params


__all__ = ["GRANT_PUBLIC", "GRANT_RESTRICTED", "ImportOption", "generate_overwrite_params", "operator_object_id"]
