from __future__ import annotations

import json
from pathlib import Path

import pytest

from pressr.config import RequestSpec
from pressr.data import DataFileError, RequestTemplate, load_template


def _write(tmp_path: Path, payload: object) -> Path:
    path = tmp_path / "data.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_template_fills_placeholders_from_variable_sets(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        {
            "body": {"user": "{{user}}", "age": "{{age}}", "note": "hi {{user}}"},
            "headers": {"X-User": "{{user}}"},
            "params": {"q": "{{user}}"},
            "path_variables": {"org": "acme"},
            "variables": [{"user": "ada", "age": 36}],
        },
    )
    template = load_template(path)
    base = RequestSpec(url="http://example.test/{org}/users", method="POST", timeout_sec=5.0)
    spec = template.spec_factory(base, seed=1)(0)

    assert spec.url == "http://example.test/acme/users?q=ada"
    assert spec.header("x-user") == "ada"
    assert spec.header("content-type") == "application/json"
    assert json.loads(spec.body or b"") == {"user": "ada", "age": 36, "note": "hi ada"}
    assert spec.timeout_sec == 5.0


def test_body_is_ignored_for_get(tmp_path: Path) -> None:
    template = load_template(_write(tmp_path, {"body": {"a": 1}}))
    spec = template.render(RequestSpec(url="http://example.test/"), {})
    assert spec.body is None
    assert spec.header("content-type") is None


def test_seeded_factory_is_reproducible() -> None:
    template = RequestTemplate(variables=[{"id": str(i)} for i in range(20)], params={"id": "{{id}}"})
    base = RequestSpec(url="http://example.test/")
    first = [template.spec_factory(base, seed=7)(i).url for i in range(10)]
    second = [template.spec_factory(base, seed=7)(i).url for i in range(10)]
    assert first == second


def test_unknown_placeholder_raises_when_variables_are_given() -> None:
    template = RequestTemplate(headers={"X-Id": "{{missing}}"}, variables=[{"other": "1"}])
    with pytest.raises(KeyError):
        template.spec_factory(RequestSpec(url="http://example.test/"), seed=1)(0)


def test_placeholders_pass_through_without_variables() -> None:
    template = RequestTemplate.from_dict({"body": {"msg": "{{not_a_var}}"}, "headers": {"X-Id": "{{id}}"}})
    spec = template.spec_factory(RequestSpec(url="http://example.test/", method="POST"))(0)
    assert json.loads(spec.body or b"") == {"msg": "{{not_a_var}}"}
    assert spec.header("x-id") == "{{id}}"


def test_missing_file_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(DataFileError, match="not found"):
        load_template(tmp_path / "nope.json")


def test_malformed_file_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "bad.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(DataFileError):
        load_template(path)
    with pytest.raises(DataFileError):
        load_template(_write(tmp_path, {"variables": {"a": 1}}))
