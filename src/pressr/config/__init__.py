from __future__ import annotations

from pressr.config.models import ConfigError, RequestSpec, RunConfig

__all__ = [
    "ConfigError",
    "RequestSpec",
    "RunConfig",
]
