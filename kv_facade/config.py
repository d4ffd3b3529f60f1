"""Store connection configuration with environment variable substitution."""

from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)\}")


def substitute_env_vars(value: Any) -> Any:
    """Recursively substitute ``${VAR_NAME}`` patterns with environment variables."""
    if isinstance(value, str):

        def replace(match: re.Match[str]) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                msg = f"Environment variable {var_name} is not set"
                raise ValueError(msg)
            return env_value

        return ENV_VAR_PATTERN.sub(replace, value)
    if isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [substitute_env_vars(v) for v in value]
    return value


class StoreConfig(BaseModel):
    """Connection parameters for a Redis-compatible store.

    ``url`` wins over the discrete host/port/db fields when both are given.
    ``options`` is passed through to the client constructor untouched.
    """

    url: str | None = None
    host: str = "localhost"
    port: int = 6379
    db: int = 0
    username: str | None = None
    password: str | None = None
    ssl: bool = False
    socket_timeout: float | None = None
    options: dict[str, Any] = Field(default_factory=dict)

    def client_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``redis.asyncio.Redis`` (``from_url`` when ``url`` is set)."""
        kwargs: dict[str, Any] = {"decode_responses": True, **self.options}
        if self.socket_timeout is not None:
            kwargs["socket_timeout"] = self.socket_timeout
        if self.username is not None:
            kwargs["username"] = self.username
        if self.password is not None:
            kwargs["password"] = self.password
        if self.url is None:
            kwargs.update(host=self.host, port=self.port, db=self.db)
            if self.ssl:
                kwargs["ssl"] = True
        return kwargs

    @classmethod
    def from_file(cls, path: str | Path) -> StoreConfig:
        """Load configuration from a YAML or JSON file."""
        path = Path(path)
        with path.open() as f:
            data = yaml.safe_load(f) if path.suffix in {".yaml", ".yml"} else json.load(f)
        return cls.from_dict(data or {})

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StoreConfig:
        """Load configuration from a dictionary."""
        return cls.model_validate(substitute_env_vars(data))
