from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, cast

from .errors import TableDefinitionError


def index_name_for(attribute: str) -> str:
    return f"{attribute}Index"


@dataclass(frozen=True)
class IndexDefinition:
    attribute: str
    range_key: str | None = None
    name: str = ""

    def __post_init__(self) -> None:
        if not self.attribute:
            raise TableDefinitionError("index attribute is required")
        if not self.name:
            object.__setattr__(self, "name", index_name_for(self.attribute))


@dataclass(frozen=True)
class TableDefinition:
    name: str
    table_name: str = ""
    primary_key: str = "id"
    attributes: tuple[str, ...] = ()
    indexes: tuple[IndexDefinition, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not self.name:
            raise TableDefinitionError("table name is required")
        if not self.table_name:
            object.__setattr__(self, "table_name", self.name)
        if not self.primary_key:
            raise TableDefinitionError(f"table {self.name}: primary key is required")

        object.__setattr__(self, "attributes", tuple(self.attributes))
        object.__setattr__(self, "indexes", tuple(self.indexes))

        declared = set(self.attributes)
        seen: set[str] = set()
        for idx in self.indexes:
            if idx.attribute in seen:
                raise TableDefinitionError(f"table {self.name}: duplicate index attribute: {idx.attribute}")
            seen.add(idx.attribute)

            if idx.attribute == self.primary_key:
                raise TableDefinitionError(
                    f"table {self.name}: primary key cannot be an indexed attribute: {idx.attribute}"
                )
            if declared and idx.attribute not in declared:
                raise TableDefinitionError(f"table {self.name}: unknown index attribute: {idx.attribute}")
            if declared and idx.range_key is not None and idx.range_key not in declared:
                raise TableDefinitionError(
                    f"table {self.name}: index {idx.name}: unknown range key: {idx.range_key}"
                )

    @property
    def indexed_attributes(self) -> tuple[str, ...]:
        return tuple(idx.attribute for idx in self.indexes)

    @property
    def range_key_by_index(self) -> dict[str, str]:
        return {idx.attribute: idx.range_key for idx in self.indexes if idx.range_key is not None}

    def index_for(self, attribute: str) -> IndexDefinition | None:
        for idx in self.indexes:
            if idx.attribute == attribute:
                return idx
        return None

    @classmethod
    def from_model_schema(cls, name: str, schema: Mapping[str, Any]) -> TableDefinition:
        if not isinstance(schema, Mapping):
            raise TableDefinitionError(f"table {name}: schema must be a mapping")

        base = schema.get("base") or {}
        if not isinstance(base, Mapping):
            raise TableDefinitionError(f"table {name}: base must be a mapping of attributes")

        indexes = _string_list(schema.get("indexes"), name=name, key="indexes")
        range_keys = schema.get("rangeKeys") or []
        if not isinstance(range_keys, Sequence) or isinstance(range_keys, str):
            raise TableDefinitionError(f"table {name}: rangeKeys must be a list")
        if len(range_keys) > len(indexes):
            raise TableDefinitionError(f"table {name}: rangeKeys has more entries than indexes")

        resolved: list[IndexDefinition] = []
        for i, attribute in enumerate(indexes):
            range_key = range_keys[i] if i < len(range_keys) else None
            if range_key is not None and not isinstance(range_key, str):
                raise TableDefinitionError(f"table {name}: rangeKeys[{i}] must be a string or null")
            resolved.append(IndexDefinition(attribute=attribute, range_key=cast(str | None, range_key)))

        table_name = schema.get("tableName") or name
        primary_key = schema.get("primaryKey") or "id"
        if not isinstance(table_name, str) or not isinstance(primary_key, str):
            raise TableDefinitionError(f"table {name}: tableName and primaryKey must be strings")

        return cls(
            name=name,
            table_name=table_name,
            primary_key=primary_key,
            attributes=tuple(str(k) for k in base.keys()),
            indexes=tuple(resolved),
        )


def _string_list(value: Any, *, name: str, key: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, Sequence) or isinstance(value, str):
        raise TableDefinitionError(f"table {name}: {key} must be a list")
    out: list[str] = []
    for i, elem in enumerate(value):
        if not isinstance(elem, str) or not elem:
            raise TableDefinitionError(f"table {name}: {key}[{i}] must be a non-empty string")
        out.append(elem)
    return out
