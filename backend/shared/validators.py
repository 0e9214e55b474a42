"""Settings helpers for list-valued environment variables."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from pydantic_settings import BaseSettings, EnvSettingsSource

if TYPE_CHECKING:
    from pydantic.fields import FieldInfo


def parse_string_list(value: str | list[str], *, allow_empty: bool = False) -> list[str]:
    """Parse a list of strings from an env var or config value.

    Accepts a list (returned stripped), a JSON array string ('["a","b"]')
    or a comma-separated string ('a,b'). Blank entries are dropped.
    Raises ValueError for malformed JSON, non-string items, and, unless
    allow_empty is set, for an empty result.
    """
    if isinstance(value, list):
        items = value
    else:
        stripped = value.strip()
        if stripped.startswith("["):
            try:
                items = json.loads(stripped)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON array: {e}") from e
            if not isinstance(items, list) or not all(isinstance(item, str) for item in items):
                raise ValueError("JSON value must be an array of strings")
        else:
            items = stripped.split(",")

    result = [item.strip() for item in items if item.strip()]
    if not allow_empty and not result:
        raise ValueError("String list value must not be empty")
    return result


def parse_email_list(value: str | list[str]) -> list[str]:
    """Parse a possibly-empty list of emails, lowercased for comparison."""
    return [email.lower() for email in parse_string_list(value, allow_empty=True)]


class StringListEnvSettingsSource(EnvSettingsSource):
    """Env source that hands string-list fields to validators as raw strings.

    pydantic-settings JSON-decodes list-typed fields before validators run,
    which rejects CSV input. Fields named in ``string_list_fields`` skip
    that step so parse_string_list sees the original value.
    """

    def __init__(self, settings_cls: type[BaseSettings], string_list_fields: frozenset[str]) -> None:
        super().__init__(settings_cls)
        self._string_list_fields = string_list_fields

    def prepare_field_value(
        self,
        field_name: str,
        field: FieldInfo,
        value: Any,  # noqa: ANN401
        value_is_complex: bool,  # noqa: FBT001
    ) -> Any:  # noqa: ANN401
        if field_name in self._string_list_fields and isinstance(value, str):
            return value
        return super().prepare_field_value(field_name, field, value, value_is_complex)
