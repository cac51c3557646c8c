"""jifty_client.record

`Record` is the base of every class produced by
`JiftyClient.create_model_class`. A record keeps a non-owning reference to the
client that loaded it and delegates update/delete to that client.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, ClassVar, Dict, Optional

import requests
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from .errors import InvalidInputError
from .schema import FieldDescriptor

if TYPE_CHECKING:
    from .client import JiftyClient

logger = logging.getLogger(__name__)

__all__ = ["Record"]


class Record(BaseModel):
    """A single row of a Jifty model."""

    model_config = ConfigDict(
        populate_by_name=True,
        validate_assignment=True,
        extra="ignore",
    )

    jifty_model: ClassVar[str] = ""
    jifty_fields: ClassVar[Dict[str, FieldDescriptor]] = {}
    jifty_synthesized: ClassVar[bool] = False

    id: int = Field(frozen=True)

    _client: Any = PrivateAttr(default=None)
    _references: Dict[str, Any] = PrivateAttr(default_factory=dict)

    def __init__(self, client: "JiftyClient", /, **data: Any) -> None:
        super().__init__(**data)
        self._client = client

    def __setattr__(self, name: str, value: Any) -> None:
        if name in self.jifty_fields:
            self.set_field(name, value)
        else:
            super().__setattr__(name, value)

    def set_field(self, name: str, value: Any) -> Any:
        """Set column *name* locally and write it through to the server.

        Returns the server's response to the update.
        """
        descriptor = self.jifty_fields.get(name)
        if descriptor is None:
            raise AttributeError(f"{type(self).__name__} has no column {name!r}")
        if not descriptor.writable:
            raise AttributeError(f"{type(self).__name__}.{name} is not writable")

        super().__setattr__(name, value)
        return self.update(**{descriptor.column: getattr(self, name)})

    def update(self, **fields: Any) -> Any:
        """Update this record on the server with the given columns."""
        return self._client.update(self.jifty_model, "id", self.id, **fields)

    def delete(self) -> Any:
        """Delete this record on the server."""
        return self._client.delete(self.jifty_model, "id", self.id)

    @classmethod
    def load(cls, client: "JiftyClient", *lookup: Any) -> Optional["Record"]:
        """Load a record by id, or by a single ``(column, value)`` pair.

        Returns None when the server has no such record or the request fails.
        """
        if len(lookup) > 2:
            raise InvalidInputError(
                "load called with more than two arguments - "
                "it's currently limited to one (column, value) pair."
            )
        if len(lookup) == 2:
            column, value = lookup
        elif len(lookup) == 1:
            column, value = "id", lookup[0]
        else:
            raise InvalidInputError(
                "Please use load(client, id) or load(client, column, value)."
            )

        try:
            data = client.read(cls.jifty_model, column, value, plain_scalars=True)
        except requests.RequestException as exc:
            logger.warning("Unable to load %s %s=%s: %s", cls.jifty_model, column, value, exc)
            return None
        if not data:
            return None

        # values arrive as text and pydantic coerces them per column type;
        # nulls would fail that, so leave those columns unset
        data = {key: val for key, val in data.items() if val is not None}
        return cls(client, **data)

    @classmethod
    def create(cls, client: "JiftyClient", **fields: Any) -> Optional["Record"]:
        """Create a record on the server and load it back."""
        result = client.create(cls.jifty_model, **fields)
        if not result or not result.get("success"):
            logger.warning("Unable to create %s: %s", cls.jifty_model, (result or {}).get("message"))
            return None

        content = result.get("content") or {}
        record_id = content.get("id")
        if record_id is None:
            return None
        return cls.load(client, record_id)
