"""jifty_client.schema

Turns a server-supplied model spec into field descriptors.

A model spec maps column names to metadata::

    {"name":     {"type": "varchar", "readable": 1, "writable": 1, "mandatory": 1},
     "owner_id": {"type": "integer", "readable": 1, "writable": 1, "refers_to": "User"}}

`map_type` reduces the database type to a `ValueType`, and `describe_columns`
produces one `FieldDescriptor` per column (``id`` excluded, it lives on
`Record` itself).
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)

__all__ = [
    "ValueType",
    "Mutability",
    "ReferenceDescriptor",
    "FieldDescriptor",
    "map_type",
    "describe_column",
    "describe_columns",
]


class ValueType(str, Enum):
    INTEGER = "integer"
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"

    @property
    def python_type(self) -> type:
        return _PYTHON_TYPES[self]


_PYTHON_TYPES = {
    ValueType.INTEGER: int,
    ValueType.STRING: str,
    ValueType.NUMBER: float,
    ValueType.BOOLEAN: bool,
}


class Mutability(str, Enum):
    READ_WRITE = "rw"
    READ_ONLY = "ro"
    NONE = "none"


TYPE_OVERRIDES: Dict[str, ValueType] = {
    "serial": ValueType.INTEGER,
}

# order matters: first match wins
_TYPE_RULES = (
    (re.compile(r"int"), ValueType.INTEGER),
    (re.compile(r"char|text"), ValueType.STRING),
    (re.compile(r"numeric|decimal|real|double|float"), ValueType.NUMBER),
    (re.compile(r"bool"), ValueType.BOOLEAN),
)


def map_type(type_string: Optional[str]) -> Optional[ValueType]:
    """Map a database column type to a `ValueType`, or None when unrecognized."""
    if type_string is None:
        logger.warning("Column has no type; leaving it unconstrained")
        return None

    lowered = str(type_string).lower()
    if lowered in TYPE_OVERRIDES:
        return TYPE_OVERRIDES[lowered]

    for pattern, value_type in _TYPE_RULES:
        if pattern.search(lowered):
            return value_type

    logger.warning("Unhandled type: %s", type_string)
    return None


@dataclass(frozen=True)
class ReferenceDescriptor:
    name: str
    model: str
    by: str = "id"
    lazy: bool = True


@dataclass(frozen=True)
class FieldDescriptor:
    """One column of a synthesized record class.

    ``name`` is the attribute on the record; ``column`` is the key the server
    uses for it. They differ only for refers-to columns, where e.g. column
    ``owner_id`` is stored as ``ownerid`` and ``owner`` becomes the lazy
    reference.
    """

    name: str
    column: str
    value_type: Optional[ValueType]
    mutability: Mutability
    required: bool = False
    reference: Optional[ReferenceDescriptor] = None

    @property
    def exposed(self) -> bool:
        return self.mutability is not Mutability.NONE

    @property
    def writable(self) -> bool:
        return self.mutability is Mutability.READ_WRITE


def _mutability(column_spec: Mapping[str, Any]) -> Mutability:
    if column_spec.get("readable") and column_spec.get("writable"):
        return Mutability.READ_WRITE
    if column_spec.get("readable"):
        return Mutability.READ_ONLY
    return Mutability.NONE


def describe_column(column: str, column_spec: Any) -> FieldDescriptor:
    if not isinstance(column_spec, Mapping):
        logger.warning("Malformed spec for column %s: %r", column, column_spec)
        column_spec = {}

    value_type = map_type(column_spec.get("type"))
    mutability = _mutability(column_spec)
    required = bool(column_spec.get("mandatory"))

    refers_to = column_spec.get("refers_to")
    if not refers_to:
        return FieldDescriptor(column, column, value_type, mutability, required)

    by = column_spec.get("by") or "id"
    # owner_id -> reference "owner", stored as "ownerid"
    reference_name = re.sub(r"_id$", "", column)
    return FieldDescriptor(
        name=reference_name + by,
        column=column,
        value_type=value_type,
        mutability=mutability,
        required=required,
        reference=ReferenceDescriptor(reference_name, refers_to, by),
    )


def describe_columns(model_spec: Mapping[str, Any]) -> List[FieldDescriptor]:
    """Describe every column of *model_spec* except ``id``, in spec order."""
    return [
        describe_column(column, column_spec)
        for column, column_spec in model_spec.items()
        if column != "id"
    ]
