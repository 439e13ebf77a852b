from __future__ import annotations

from collections.abc import Mapping
from typing import Any, cast

import yaml

from .errors import TableDefinitionError
from .model import TableDefinition


def load_schema_document(raw: str) -> tuple[TableDefinition, ...]:
    try:
        parsed = yaml.safe_load(raw)
    except yaml.YAMLError as err:
        raise TableDefinitionError("invalid schema YAML/JSON") from err

    if not isinstance(parsed, dict):
        raise TableDefinitionError("schema document must be a map/object")

    _assert_json_compatible(parsed, path="schema")

    tables = parsed.get("tables")
    if isinstance(tables, dict):
        return definitions_from_models(tables)

    if isinstance(tables, list):
        out: list[TableDefinition] = []
        for i, entry in enumerate(tables):
            if not isinstance(entry, dict):
                raise TableDefinitionError(f"tables[{i}] must be a map")
            name = entry.get("name")
            if not isinstance(name, str) or not name:
                raise TableDefinitionError(f"tables[{i}] is missing name")
            out.append(TableDefinition.from_model_schema(name, entry))
        _assert_unique(out)
        return tuple(out)

    raise TableDefinitionError("schema document must include tables")


def definitions_from_models(models: Mapping[str, Mapping[str, Any]]) -> tuple[TableDefinition, ...]:
    out = tuple(TableDefinition.from_model_schema(str(name), schema) for name, schema in models.items())
    _assert_unique(out)
    return out


def _assert_unique(definitions: tuple[TableDefinition, ...] | list[TableDefinition]) -> None:
    seen: set[str] = set()
    for definition in definitions:
        if definition.name in seen:
            raise TableDefinitionError(f"duplicate table name: {definition.name}")
        seen.add(definition.name)


def _assert_json_compatible(value: Any, *, path: str) -> None:
    if value is None or isinstance(value, (str, bool, int, float)):
        return

    if isinstance(value, list):
        for idx, elem in enumerate(value):
            _assert_json_compatible(elem, path=f"{path}[{idx}]")
        return

    if isinstance(value, dict):
        for k, v in cast(dict[Any, Any], value).items():
            if not isinstance(k, str):
                raise TableDefinitionError(f"schema contains non-string key at {path}: {k!r}")
            _assert_json_compatible(v, path=f"{path}.{k}")
        return

    raise TableDefinitionError(f"schema contains non-JSON value at {path}: {type(value).__name__}")
