from __future__ import annotations

from enum import StrEnum
from pathlib import Path
from typing import Optional

import typer

from generic_tests.analysis.options import ClassificationConfig
from generic_tests.config import classification_defaults
from generic_tests.exceptions import GenericTestsError
from generic_tests.expand.engine import expand_module, run_expansion
from generic_tests.expand.plan import build_plan
from generic_tests.json_io import dump_json_pretty, load_json_object_path
from generic_tests.syntax.codec import UnitDocument, decode_document, encode_item
from generic_tests.syntax.printer import render_module

app = typer.Typer(add_completion=False)

_STDOUT = "-"


class OutputFormat(StrEnum):
    RUST = "rust"
    JSON = "json"


def _classification(config: Optional[Path]) -> ClassificationConfig:
    return ClassificationConfig.from_toml(classification_defaults(config_path=config))


def _report(error: GenericTestsError, origin: str) -> None:
    for diagnostic in error.diagnostics:
        typer.echo(diagnostic.render(origin), err=True)


def _load_document(input_path: Path) -> UnitDocument:
    try:
        payload = load_json_object_path(input_path)
    except OSError as exc:
        raise typer.BadParameter(f"cannot read {input_path}: {exc}") from exc
    except ValueError as exc:
        raise typer.BadParameter(f"invalid JSON document: {exc}") from exc
    try:
        return decode_document(payload)
    except GenericTestsError as exc:
        _report(exc, str(input_path))
        raise typer.Exit(code=1) from exc


def _write_text_to_target(target: str, text: str) -> None:
    if target == _STDOUT:
        typer.echo(text, nl=False)
        return
    path = Path(target)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


@app.command("expand")
def expand(
    input_path: Path = typer.Argument(..., help="JSON document describing the unit."),
    output: str = typer.Option(
        _STDOUT, "--output", "-o", help="Write the result here; '-' for stdout."
    ),
    config: Optional[Path] = typer.Option(
        None, "--config", help="Configuration file (default: ./generic_tests.toml)."
    ),
    output_format: OutputFormat = typer.Option(OutputFormat.RUST, "--format"),
) -> None:
    """Instantiate the unit's generic tests into its marker modules."""
    document = _load_document(input_path)
    try:
        module = expand_module(
            document.module, document.options, config=_classification(config)
        )
    except GenericTestsError as exc:
        _report(exc, str(input_path))
        raise typer.Exit(code=1) from exc
    if output_format is OutputFormat.JSON:
        text = dump_json_pretty(encode_item(module)) + "\n"
    else:
        text = render_module(module)
    _write_text_to_target(output, text)


@app.command("plan")
def plan(
    input_path: Path = typer.Argument(..., help="JSON document describing the unit."),
    config: Optional[Path] = typer.Option(None, "--config"),
) -> None:
    """Print the test functions, carriers and markers found, without rewriting."""
    document = _load_document(input_path)
    try:
        expansion = run_expansion(
            document.module, document.options, config=_classification(config)
        )
    except GenericTestsError as exc:
        _report(exc, str(input_path))
        raise typer.Exit(code=1) from exc
    response = build_plan(expansion, str(input_path))
    typer.echo(dump_json_pretty(response.model_dump()))
    if expansion.errors:
        raise typer.Exit(code=1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
