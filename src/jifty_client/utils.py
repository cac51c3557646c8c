"""jifty_client.utils

Utility helpers shared across the jifty_client package: URL escaping,
form encoding, YAML decoding and a few small comparisons.
"""
from __future__ import annotations

import re
from datetime import date
from email.utils import parseaddr
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union
from urllib.parse import quote

import yaml

from .errors import InvalidInputError

__all__ = [
    "escape",
    "join_url",
    "form_url_encoded_args",
    "iter_pairs",
    "load_yaml",
    "load_date",
    "email_eq",
    "canonical_model_name",
]

Pairs = Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]

# quote() always leaves A-Za-z0-9_.-~ alone
_SAFE_CHARS = "!*'()"
_date_re = re.compile(r"^([0-9]{4})-([0-9]{2})-([0-9]{2})(?: 00:00:00)?$")
_namespace_re = re.compile(r"::|\.")


def escape(value: Any) -> str:
    """Percent-encode *value* (UTF-8), leaving only URI-unreserved marks intact."""
    if value is None:
        return ""
    if isinstance(value, bool):
        value = int(value)
    return quote(str(value), safe=_SAFE_CHARS)


def join_url(*fragments: Any) -> str:
    """Escape each fragment and join them with ``/``. ``None`` fragments are skipped."""
    return "/".join(escape(f) for f in fragments if f is not None)


def iter_pairs(args: Optional[Pairs]) -> List[Tuple[str, Any]]:
    if not args:
        return []
    if isinstance(args, Mapping):
        return list(args.items())
    return [(key, value) for key, value in args]


def form_url_encoded_args(args: Optional[Pairs]) -> str:
    """Turn ``{"x": 1, "y": 2}`` (or ``[("x", 1), ("y", 2)]``) into ``x=1&y=2``."""
    return "&".join(f"{escape(key)}={escape(value)}" for key, value in iter_pairs(args))


class _YAMLLoader(yaml.SafeLoader):
    """SafeLoader that reads Perl object tags as plain collections."""


class _PlainScalarLoader(_YAMLLoader):
    """Reads every plain scalar as a string, except nulls (``~``, ``null``, empty).

    Perl's YAML never infers ints, booleans or dates, so a varchar holding
    ``35294``, ``no`` or ``2008-01-01`` must come back as that text.
    """

    yaml_implicit_resolvers: Dict[Optional[str], List[Any]] = {}


def _construct_untagged(loader: yaml.SafeLoader, suffix: str, node: yaml.Node) -> Any:
    if isinstance(node, yaml.MappingNode):
        return loader.construct_mapping(node, deep=True)
    if isinstance(node, yaml.SequenceNode):
        return loader.construct_sequence(node, deep=True)
    return loader.construct_scalar(node)


_YAMLLoader.add_multi_constructor("tag:yaml.org,2002:perl/", _construct_untagged)
_PlainScalarLoader.add_implicit_resolver(
    "tag:yaml.org,2002:null", re.compile(r"^(?:~|null|Null|NULL|)$"), list("~nN") + [""]
)


def load_yaml(text: str, plain_scalars: bool = False) -> Any:
    """Decode a Jifty YAML document.

    With *plain_scalars*, unquoted values stay strings instead of being
    resolved to int, float, bool or date.
    """
    loader = _PlainScalarLoader if plain_scalars else _YAMLLoader
    return yaml.load(text, Loader=loader)


def load_date(ymd: str) -> date:
    """Parse ``YYYY-MM-DD`` (optionally followed by `` 00:00:00``)."""
    match = _date_re.match(ymd or "")
    if not match:
        raise InvalidInputError(f"Invalid date passed to load_date: {ymd}. Expected yyyy-mm-dd.")
    year, month, day = (int(part) for part in match.groups())
    return date(year, month, day)


def _normalize_email(value: str) -> str:
    if value == "nobody" or "<nobody>" in value:
        value = "nobody@localhost"
    return parseaddr(value)[1].lower()


def email_eq(a: Optional[str], b: Optional[str]) -> bool:
    """Return True if the two addresses name the same mailbox."""
    if a is None or b is None:
        return a is None and b is None
    return _normalize_email(a) == _normalize_email(b)


def canonical_model_name(model: str) -> str:
    """Drop the namespace: ``MyApp::Model::Task`` and ``MyApp.Model.Task`` give ``Task``."""
    return _namespace_re.split(model)[-1] or model
