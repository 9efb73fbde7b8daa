"""Credential field lookup over request body and query mappings."""

from __future__ import annotations

from collections.abc import Mapping
from typing import cast


def split_field_path(field: str) -> tuple[str, ...]:
    """Split bracket notation into a key path.

    ``"user[phone]"`` becomes ``("user", "phone")``; plain names are a
    single-element path.
    """
    return tuple(field.replace("]", "").split("["))


def lookup_field(source: Mapping[str, object] | None, field: str) -> object | None:
    """Resolve ``field`` in ``source``, walking nested mappings.

    Returns None when a key is absent, when an intermediate value is not a
    mapping, or when the path ends on a mapping instead of a scalar.
    """
    if not source:
        return None

    current: Mapping[str, object] = source
    for key in split_field_path(field):
        if key not in current:
            return None
        value = current[key]
        if not isinstance(value, Mapping):
            return value
        current = cast("Mapping[str, object]", value)
    return None


def lookup_credential(
    *,
    body: Mapping[str, object] | None,
    query: Mapping[str, object] | None,
    field: str,
) -> object | None:
    """Return the first non-empty value for ``field`` from body, then query."""
    value = lookup_field(body, field)
    if value:
        return value
    value = lookup_field(query, field)
    if value:
        return value
    return None
