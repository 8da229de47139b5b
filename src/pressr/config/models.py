from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping


class ConfigError(ValueError):
    """Raised when a run is configured in a way that cannot start."""


@dataclass(frozen=True, slots=True)
class RequestSpec:
    url: str
    method: str = "GET"
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes | None = None
    timeout_sec: float = 30.0

    def __post_init__(self) -> None:
        normalized: dict[str, str] = {}
        for name, value in self.headers.items():
            normalized[name.strip().lower()] = value
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "headers", MappingProxyType(normalized))

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())


@dataclass(frozen=True, slots=True)
class RunConfig:
    total_requests: int = 100
    concurrency: int = 10

    def validate(self) -> None:
        if self.total_requests < 1:
            msg = f"total_requests must be at least 1, got {self.total_requests}"
            raise ConfigError(msg)
        if self.concurrency < 1:
            msg = f"concurrency must be at least 1, got {self.concurrency}"
            raise ConfigError(msg)

    @property
    def effective_concurrency(self) -> int:
        return min(self.concurrency, self.total_requests)

    def to_metadata(self) -> Mapping[str, Any]:
        return {
            "total_requests": self.total_requests,
            "concurrency": self.concurrency,
            "effective_concurrency": self.effective_concurrency,
        }
