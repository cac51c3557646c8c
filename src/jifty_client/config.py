"""jifty_client.config

Reading and writing the user's YAML config file (``~/.jifty`` by default) and
the per-directory filter files.
"""
from __future__ import annotations

import logging
import os
import stat
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field

from .errors import JiftyError

logger = logging.getLogger(__name__)

__all__ = [
    "ClientConfig",
    "CONFIG_KEYS",
    "DEFAULT_CONFIG_FILE",
    "fix_permissions",
    "read_config_file",
    "write_config_file",
    "merge_right_precedent",
    "filter_config",
]

DEFAULT_CONFIG_FILE = str(Path.home() / ".jifty")

PathLike = Union[str, Path]


class ClientConfig(BaseModel):
    """Settings a config file may apply to a `JiftyClient`.

    Any other keys in the file are kept (and written back) but never touch
    the client.
    """

    # a Perl dumper writes a numeric sid unquoted
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    site: Optional[str] = None
    cookie_name: Optional[str] = None
    appname: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    sid: Optional[str] = None
    strict_arguments: Optional[bool] = None
    use_filters: Optional[bool] = None
    filter_file: Optional[str] = Field(None, min_length=1)


# Config key -> client attribute. Only these are applied.
CONFIG_KEYS: Dict[str, str] = {
    "site": "site",
    "cookie_name": "cookie_name",
    "appname": "appname",
    "email": "email",
    "password": "password",
    "sid": "sid",
    "strict_arguments": "strict_arguments",
    "use_filters": "use_filters",
    "filter_file": "filter_file",
}


def fix_permissions(path: PathLike) -> bool:
    """Make *path* private to its owner if group/others can read it.

    Returns True if the mode was changed.
    """
    if os.name == "nt" or not os.path.exists(path):
        return False

    mode = os.stat(path).st_mode
    if mode & (stat.S_IRGRP | stat.S_IROTH):
        logger.warning("Config file %s is readable by users other than you, fixing.", path)
        os.chmod(path, 0o600)
        return True
    return False


def read_config_file(path: PathLike) -> Dict[str, Any]:
    """Load the YAML config at *path*; an absent or empty file gives ``{}``."""
    if not os.path.exists(path):
        return {}

    with open(path, encoding="utf-8") as fh:
        config = yaml.safe_load(fh) or {}
    if not isinstance(config, dict):
        raise JiftyError(f"Config file {path} must contain a mapping, not {type(config).__name__}.")

    if isinstance(config.get("site"), str):
        # cookie jars refuse to send cookies to "localhost"
        config["site"] = config["site"].replace("localhost", "127.0.0.1", 1)
    return config


def write_config_file(path: PathLike, config: Dict[str, Any]) -> None:
    with open(path, "w", encoding="utf-8") as fh:
        yaml.safe_dump(config, fh, default_flow_style=False)
    os.chmod(path, 0o600)


def merge_right_precedent(left: Dict[str, Any], right: Dict[str, Any]) -> Dict[str, Any]:
    """Deep-merge two mappings; on conflicting scalars *right* wins."""
    merged = dict(left)
    for key, value in right.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_right_precedent(merged[key], value)
        else:
            merged[key] = value
    return merged


def filter_config(directory: PathLike, filter_file: str) -> Dict[str, Any]:
    """Merge every readable *filter_file* from *directory* up to the root.

    Files closer to *directory* override settings from their parents.
    """
    all_config: Dict[str, Any] = {}
    current = Path(directory).resolve()

    while True:
        candidate = current / filter_file
        if candidate.is_file() and os.access(candidate, os.R_OK):
            with open(candidate, encoding="utf-8") as fh:
                this_config = yaml.safe_load(fh) or {}
            all_config = merge_right_precedent(this_config, all_config)

        parent = current.parent
        if parent == current:
            break
        current = parent

    return all_config
