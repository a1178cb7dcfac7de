from __future__ import annotations

import json
from pathlib import Path
from typing import Mapping

from generic_tests.order_contract import sort_once


def canonicalize_json(value: object) -> object:
    if isinstance(value, Mapping):
        ordered_items = sort_once(
            [(str(key), canonicalize_json(item)) for key, item in value.items()],
            source="json_io.canonicalize_json.mapping_items",
            key=lambda item: item[0],
        )
        return {key: item for key, item in ordered_items}
    if isinstance(value, list):
        return [canonicalize_json(item) for item in value]
    return value


def load_json_object_text(text: str) -> dict[str, object]:
    """Parse a JSON object; raises ValueError for anything else."""
    payload = json.loads(text)
    if not isinstance(payload, Mapping):
        raise ValueError(f"expected a JSON object, got {type(payload).__name__}")
    canonical = canonicalize_json(payload)
    assert isinstance(canonical, dict)
    return canonical


def load_json_object_path(path: Path, *, encoding: str = "utf-8") -> dict[str, object]:
    return load_json_object_text(path.read_text(encoding=encoding))


def dump_json_pretty(payload: object) -> str:
    return json.dumps(canonicalize_json(payload), indent=2, sort_keys=False)
