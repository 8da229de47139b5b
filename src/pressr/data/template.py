from __future__ import annotations

import json
import re
import threading
from dataclasses import dataclass, field
from pathlib import Path
from random import Random
from typing import Any, Callable, Mapping, Sequence
from urllib.parse import urlencode

from pressr.config import RequestSpec

_PLACEHOLDER = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")
_BODY_METHODS = {"POST", "PUT", "PATCH"}


class DataFileError(ValueError):
    """Raised when a request data file is missing or malformed."""


@dataclass(frozen=True, slots=True)
class RequestTemplate:
    """Per-request variation loaded from a JSON data file.

    Every field may contain ``{{name}}`` placeholders that are filled from a
    randomly chosen entry of ``variables``. ``path_variables`` fill ``{name}``
    segments of the URL. Without any ``variables`` the data is sent verbatim.
    """

    body: Any = None
    headers: Mapping[str, str] = field(default_factory=dict)
    params: Mapping[str, str] = field(default_factory=dict)
    path_variables: Mapping[str, str] = field(default_factory=dict)
    variables: Sequence[Mapping[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> RequestTemplate:
        variables = raw.get("variables") or []
        if not isinstance(variables, list) or not all(isinstance(v, dict) for v in variables):
            msg = "'variables' must be a list of objects"
            raise DataFileError(msg)
        for key in ("headers", "params", "path_variables"):
            if not isinstance(raw.get(key) or {}, dict):
                msg = f"'{key}' must be an object"
                raise DataFileError(msg)
        return cls(
            body=raw.get("body"),
            headers={str(k): str(v) for k, v in (raw.get("headers") or {}).items()},
            params={str(k): str(v) for k, v in (raw.get("params") or {}).items()},
            path_variables={str(k): str(v) for k, v in (raw.get("path_variables") or {}).items()},
            variables=variables,
        )

    def render(self, base: RequestSpec, values: Mapping[str, Any]) -> RequestSpec:
        strict = bool(self.variables)
        url = base.url
        for name, value in self.path_variables.items():
            url = url.replace("{" + name + "}", _substitute(value, values, strict))
        url = _substitute(url, values, strict)
        if self.params:
            query = urlencode({k: _substitute(v, values, strict) for k, v in self.params.items()})
            url = f"{url}{'&' if '?' in url else '?'}{query}"

        headers = dict(base.headers)
        headers.update({k: _substitute(v, values, strict) for k, v in self.headers.items()})
        body = base.body
        if self.body is not None and base.method in _BODY_METHODS:
            body = json.dumps(_substitute_json(self.body, values, strict)).encode()
            headers.setdefault("content-type", "application/json")
        return RequestSpec(
            url=url,
            method=base.method,
            headers=headers,
            body=body,
            timeout_sec=base.timeout_sec,
        )

    def spec_factory(self, base: RequestSpec, seed: int | None = None) -> Callable[[int], RequestSpec]:
        rng = Random(seed)
        lock = threading.Lock()

        def build(index: int) -> RequestSpec:
            values: Mapping[str, Any] = {}
            if self.variables:
                with lock:
                    values = rng.choice(self.variables)
            return self.render(base, values)

        return build


def load_template(path: Path | str) -> RequestTemplate:
    path = Path(path)
    if not path.is_file():
        msg = f"Data file not found: {path}"
        raise DataFileError(msg)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        msg = f"Failed to load data file '{path}': {exc}"
        raise DataFileError(msg) from exc
    if not isinstance(raw, dict):
        msg = f"Data file '{path}' must contain a JSON object"
        raise DataFileError(msg)
    return RequestTemplate.from_dict(raw)


def _substitute(text: str, values: Mapping[str, Any], strict: bool = True) -> str:
    def replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in values:
            if not strict:
                return match.group(0)
            msg = f"No value for placeholder '{name}'"
            raise KeyError(msg)
        return str(values[name])

    return _PLACEHOLDER.sub(replace, text)


def _substitute_json(node: Any, values: Mapping[str, Any], strict: bool = True) -> Any:
    if isinstance(node, str):
        whole = _PLACEHOLDER.fullmatch(node)
        if whole and whole.group(1) in values:
            return values[whole.group(1)]
        return _substitute(node, values, strict)
    if isinstance(node, list):
        return [_substitute_json(item, values, strict) for item in node]
    if isinstance(node, dict):
        return {key: _substitute_json(item, values, strict) for key, item in node.items()}
    return node
