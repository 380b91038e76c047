"""Tagged JSON value used for loosely-typed command payloads and monitor parameters.

A :class:`TypedValue` wraps exactly one JSON shape together with an
explicit :class:`ValueKind` tag, so protocol code can match on the tag
instead of probing Python types.

Decoding tries each variant in a fixed preference order::

    string -> integer -> float -> boolean -> array -> mapping -> null

The first variant that accepts the raw value wins.  Python's ``bool`` is
a subclass of ``int``; the integer variant rejects it explicitly so that
``true`` always decodes as a boolean.  Anything that is not plain JSON
fails with :class:`TypedValueError` instead of being coerced.

Usage::

    from redeye.core.jsonvalue import TypedValue

    tv = TypedValue.decode({"paths": ["~/Documents"]})
    tv.kind                  # ValueKind.MAPPING
    tv.encode()              # {"paths": ["~/Documents"]}
"""

from __future__ import annotations

import json
import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic import GetCoreSchemaHandler, GetJsonSchemaHandler
from pydantic_core import core_schema


class TypedValueError(ValueError):
    """Raised when a raw value has no JSON-compatible variant."""


class ValueKind(StrEnum):
    """Variant tags, in decode preference order."""

    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    ARRAY = "array"
    MAPPING = "mapping"
    NULL = "null"


class _NoMatch(Exception):
    pass


def _as_string(raw: Any) -> str:
    if isinstance(raw, str):
        return raw
    raise _NoMatch


def _as_integer(raw: Any) -> int:
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw
    raise _NoMatch


def _as_float(raw: Any) -> float:
    if isinstance(raw, float):
        if not math.isfinite(raw):
            raise TypedValueError(f"Non-finite float {raw!r} is not representable in JSON")
        return raw
    raise _NoMatch


def _as_boolean(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    raise _NoMatch


def _as_array(raw: Any) -> tuple[TypedValue, ...]:
    if isinstance(raw, (list, tuple)):
        return tuple(TypedValue.decode(item) for item in raw)
    raise _NoMatch


def _as_mapping(raw: Any) -> dict[str, TypedValue]:
    if isinstance(raw, Mapping):
        out: dict[str, TypedValue] = {}
        for key, val in raw.items():
            if not isinstance(key, str):
                raise TypedValueError(f"Mapping keys must be strings, got {type(key).__name__}")
            out[key] = TypedValue.decode(val)
        return out
    raise _NoMatch


def _as_null(raw: Any) -> None:
    if raw is None:
        return None
    raise _NoMatch


_DECODE_ORDER: tuple[tuple[ValueKind, Callable[[Any], Any]], ...] = (
    (ValueKind.STRING, _as_string),
    (ValueKind.INTEGER, _as_integer),
    (ValueKind.FLOAT, _as_float),
    (ValueKind.BOOLEAN, _as_boolean),
    (ValueKind.ARRAY, _as_array),
    (ValueKind.MAPPING, _as_mapping),
    (ValueKind.NULL, _as_null),
)


@dataclass(frozen=True)
class TypedValue:
    """A JSON value with an explicit variant tag.

    ``value`` holds the Python payload for the variant: ``str``, ``int``,
    ``float``, ``bool``, a ``tuple`` of :class:`TypedValue` (array), a
    ``dict`` of ``str`` to :class:`TypedValue` (mapping) or ``None``.
    Build instances with :meth:`decode` rather than the raw constructor.
    """

    kind: ValueKind
    value: Any = None

    # -- construction ----------------------------------------------------------

    @classmethod
    def decode(cls, raw: Any) -> TypedValue:
        """Decode a plain JSON-compatible Python value.

        Raises:
            TypedValueError: If no variant accepts *raw*.
        """
        if isinstance(raw, TypedValue):
            return raw
        for kind, matcher in _DECODE_ORDER:
            try:
                return cls(kind, matcher(raw))
            except _NoMatch:
                continue
        raise TypedValueError(f"Unsupported JSON value of type {type(raw).__name__}")

    @classmethod
    def from_json(cls, text: str | bytes) -> TypedValue:
        """Parse a JSON document and decode it."""
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as exc:
            raise TypedValueError(f"Invalid JSON: {exc}") from exc
        return cls.decode(raw)

    @classmethod
    def decode_mapping(cls, raw: Mapping[str, Any] | None) -> dict[str, TypedValue] | None:
        """Decode a ``str -> value`` mapping (or ``None``) entry by entry."""
        if raw is None:
            return None
        tv = cls.decode(raw)
        if tv.kind is not ValueKind.MAPPING:
            raise TypedValueError(f"Expected a mapping, got {tv.kind}")
        return tv.value

    @classmethod
    def null(cls) -> TypedValue:
        return cls(ValueKind.NULL, None)

    # -- encoding --------------------------------------------------------------

    def encode(self) -> Any:
        """Return the plain JSON-compatible Python value."""
        if self.kind is ValueKind.ARRAY:
            return [item.encode() for item in self.value]
        if self.kind is ValueKind.MAPPING:
            return {key: item.encode() for key, item in self.value.items()}
        return self.value

    def to_json(self) -> str:
        return json.dumps(self.encode(), sort_keys=True)

    # -- accessors (None when the variant does not match) ------------------------

    def as_str(self) -> str | None:
        return self.value if self.kind is ValueKind.STRING else None

    def as_int(self) -> int | None:
        return self.value if self.kind is ValueKind.INTEGER else None

    def as_float(self) -> float | None:
        if self.kind is ValueKind.FLOAT:
            return self.value
        if self.kind is ValueKind.INTEGER:
            return float(self.value)
        return None

    def as_bool(self) -> bool | None:
        return self.value if self.kind is ValueKind.BOOLEAN else None

    def as_list(self) -> list[TypedValue] | None:
        return list(self.value) if self.kind is ValueKind.ARRAY else None

    def as_dict(self) -> dict[str, TypedValue] | None:
        return dict(self.value) if self.kind is ValueKind.MAPPING else None

    def __str__(self) -> str:
        return self.to_json()

    # -- pydantic integration --------------------------------------------------

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls.decode,
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda v: v.encode(),
            ),
        )

    @classmethod
    def __get_pydantic_json_schema__(
        cls, schema: core_schema.CoreSchema, handler: GetJsonSchemaHandler
    ) -> dict[str, Any]:
        return {"description": "Any JSON value"}


def encode_mapping(values: Mapping[str, TypedValue] | None) -> dict[str, Any] | None:
    """Encode a ``str -> TypedValue`` mapping to plain JSON values."""
    if values is None:
        return None
    return {key: tv.encode() for key, tv in values.items()}
