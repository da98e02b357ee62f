"""vaultsearch configuration."""

from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel, Field


def _env_int(name: str, default: int) -> int:
    return int(os.environ.get(name, default))


class ClientConfig(BaseModel):
    base_url: str = Field(
        default_factory=lambda: os.environ.get("VAULTSEARCH_URL", "http://127.0.0.1:8000")
    )
    client_key: str = Field(default_factory=lambda: os.environ.get("VAULTSEARCH_CLIENT_KEY", ""))
    timeout: float = 30.0


class ServerConfig(BaseModel):
    host: str = Field(default_factory=lambda: os.environ.get("VAULTSEARCH_HOST", "127.0.0.1"))
    port: int = Field(default_factory=lambda: _env_int("VAULTSEARCH_PORT", 8000))
    # None returns every match; set to cap unbounded queries
    default_query_limit: Optional[int] = None
