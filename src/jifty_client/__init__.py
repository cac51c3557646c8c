"""Top-level package for jifty_client."""
from __future__ import annotations

__version__ = "0.1.0"
__all__ = ["JiftyClient", "Record"]


def __getattr__(name):  # type: ignore[override]
    if name == "JiftyClient":
        from .client import JiftyClient

        return JiftyClient
    if name == "Record":
        from .record import Record

        return Record
    raise AttributeError(name)
