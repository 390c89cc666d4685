from __future__ import annotations

import json
import os
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError


ENV_PREFIX = "POSINDEX_"


class ServiceConfig(BaseModel):
    """Runtime settings for the CLI and the HTTP service."""

    tree_path: Optional[str] = Field(default=None, description="Decision tree JSON")
    tables_path: Optional[str] = Field(default=None, description="Lookup tables JSON")
    log_level: str = Field(default="INFO")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000, ge=1, le=65535)
    max_batch: int = Field(default=1000, ge=1)


def load_config(
    path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None
) -> ServiceConfig:
    """Load settings from an optional JSON file, then ``POSINDEX_*`` variables.

    Environment variables win over the file, e.g. ``POSINDEX_TREE_PATH``.

    Raises:
        ValueError: If the file is not valid JSON or a value fails validation.
    """
    env = os.environ if environ is None else environ
    data: Dict[str, Any] = {}
    path = path or env.get(ENV_PREFIX + "CONFIG")
    if path:
        with open(path, "r", encoding="utf-8") as f:
            try:
                loaded = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"invalid config file {path}: {e}") from e
        if not isinstance(loaded, dict):
            raise ValueError("config file must contain an object")
        data.update(loaded)

    for name in ServiceConfig.model_fields:
        key = ENV_PREFIX + name.upper()
        if key in env:
            data[name] = env[key]

    try:
        return ServiceConfig(**data)
    except ValidationError as e:
        raise ValueError(str(e)) from e
