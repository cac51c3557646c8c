"""jifty_client.models

Builds `Record` subclasses from Jifty model specs.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Tuple, Type

from pydantic import Field, create_model

from .record import Record
from .schema import FieldDescriptor, ReferenceDescriptor, describe_columns
from .utils import canonical_model_name

if TYPE_CHECKING:
    from .client import JiftyClient

logger = logging.getLogger(__name__)

__all__ = ["build_model_class"]


def _field_definition(descriptor: FieldDescriptor) -> Tuple[Any, Any]:
    annotation: Any = Any
    if descriptor.value_type is not None:
        annotation = descriptor.value_type.python_type
    alias = descriptor.column if descriptor.column != descriptor.name else None

    if descriptor.required:
        return annotation, Field(..., alias=alias)
    return Optional[annotation], Field(None, alias=alias)


def _reference_property(descriptor: FieldDescriptor, reference: ReferenceDescriptor) -> property:
    def resolve(self: Record) -> Optional[Record]:
        cache = self._references
        if reference.name not in cache:
            value = getattr(self, descriptor.name, None)
            if value is None:
                cache[reference.name] = None
            else:
                target = self._client.create_model_class(reference.model)
                cache[reference.name] = target.load(self._client, reference.by, value)
        return cache[reference.name]

    resolve.__name__ = reference.name
    resolve.__doc__ = f"The {reference.model} whose {reference.by} is ``{descriptor.name}``, loaded on first access."
    return property(resolve)


def build_model_class(
    client: "JiftyClient", model_name: str, model_spec: Mapping[str, Any]
) -> Type[Record]:
    """Create a `Record` subclass for *model_name* from its *model_spec*.

    Columns that are neither readable nor writable are recorded in
    ``jifty_fields`` but get no attribute. Refers-to columns additionally get
    a lazy property resolving the referenced record through *client*.
    """
    descriptors = describe_columns(model_spec)

    definitions: Dict[str, Tuple[Any, Any]] = {
        d.name: _field_definition(d) for d in descriptors if d.exposed
    }
    cls = create_model(
        canonical_model_name(model_name),
        __base__=Record,
        __module__=type(client).__module__,
        **definitions,
    )

    for descriptor in descriptors:
        if descriptor.reference is not None:
            setattr(cls, descriptor.reference.name, _reference_property(descriptor, descriptor.reference))

    cls.jifty_model = model_name
    cls.jifty_fields = {d.name: d for d in descriptors}
    cls.jifty_synthesized = True

    logger.debug("Built %s with columns %s", cls.__name__, ", ".join(cls.jifty_fields))
    return cls
