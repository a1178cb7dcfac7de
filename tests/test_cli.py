from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from generic_tests import cli

runner = CliRunner()


def _document(**fn_overrides) -> dict[str, object]:
    fn = {
        "kind": "fn",
        "ident": "it_works",
        "attrs": [{"path": "test"}],
        "generics": [{"kind": "type", "ident": "T"}],
        "body": "let _ = T::default();",
        "span": {"line": 4, "column": 5},
    }
    fn.update(fn_overrides)
    return {
        "module": {
            "ident": "tests",
            "span": {"line": 2, "column": 1},
            "content": [
                fn,
                {
                    "kind": "mod",
                    "ident": "string",
                    "attrs": [{"path": "instantiate_tests", "args": "(<String>)"}],
                },
            ],
        }
    }


def _write(tmp_path: Path, payload: object, name: str = "unit.json") -> Path:
    path = tmp_path / name
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_expand_prints_rust(tmp_path: Path) -> None:
    path = _write(tmp_path, _document())
    result = runner.invoke(cli.app, ["expand", str(path)])
    assert result.exit_code == 0, result.output
    assert result.output.startswith("mod tests {\n")
    assert "super::super::it_works::<String>()" in result.output


def test_expand_writes_to_output_file(tmp_path: Path) -> None:
    path = _write(tmp_path, _document())
    target = tmp_path / "out" / "tests.rs"
    result = runner.invoke(cli.app, ["expand", str(path), "-o", str(target)])
    assert result.exit_code == 0, result.output
    assert "mod string {" in target.read_text(encoding="utf-8")


def test_expand_json_output_decodes(tmp_path: Path) -> None:
    path = _write(tmp_path, _document())
    result = runner.invoke(cli.app, ["expand", str(path), "--format", "json"])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["ident"] == "tests"
    assert [item["ident"] for item in payload["content"]] == ["it_works", "string"]


def test_expand_reports_errors_with_locations(tmp_path: Path) -> None:
    path = _write(tmp_path, _document(constness=True))
    result = runner.invoke(cli.app, ["expand", str(path)])
    assert result.exit_code == 1
    assert f"{path}:4:5: error: const test functions are not supported" in result.output


def test_expand_honours_config_file(tmp_path: Path) -> None:
    path = _write(tmp_path, _document(attrs=[{"path": "rstest"}]))
    config = tmp_path / "generic_tests.toml"
    config.write_text('[classification]\nattrs = ["rstest"]\n', encoding="utf-8")
    result = runner.invoke(cli.app, ["expand", str(path), "--config", str(config)])
    assert result.exit_code == 0, result.output
    assert "#[rstest]" in result.output


def test_expand_rejects_non_object_json(tmp_path: Path) -> None:
    path = _write(tmp_path, [1, 2])
    result = runner.invoke(cli.app, ["expand", str(path)])
    assert result.exit_code != 0


def test_plan_summarizes_the_unit(tmp_path: Path) -> None:
    path = _write(tmp_path, _document(inputs=[{"pattern": "s", "ty": "&str"}]))
    result = runner.invoke(cli.app, ["plan", str(path)])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["module"] == "tests"
    assert payload["stats"] == {"carriers": 1, "errors": 0, "markers": 1, "test_functions": 1}
    assert payload["test_functions"][0]["args_carrier"] == "_generic_tests_args_0"
    assert payload["markers"] == [{"arguments": "<String>", "depth": 1, "path": ["string"]}]


def test_plan_exits_nonzero_on_errors(tmp_path: Path) -> None:
    payload = _document(generics=[])
    payload["module"]["content"].insert(
        1,
        {
            "kind": "fn",
            "ident": "other",
            "attrs": [{"path": "test"}],
            "generics": [{"kind": "type", "ident": "T"}],
        },
    )
    path = _write(tmp_path, payload)
    result = runner.invoke(cli.app, ["plan", str(path)])
    assert result.exit_code == 1
    assert "test function `other` has 1 generic parameters" in result.output
