from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import Any

from .codec import RecordCodec
from .config import DatastoreConfig
from .errors import InvalidTableError, TableDefinitionError
from .model import TableDefinition
from .table import TableHandle


class TableRegistry:
    def __init__(
        self,
        definitions: Sequence[TableDefinition],
        *,
        client: Any,
        config: DatastoreConfig | None = None,
        codec: RecordCodec | None = None,
    ) -> None:
        self._config = config or DatastoreConfig()
        codec = codec or RecordCodec()

        handles: dict[str, TableHandle] = {}
        for definition in definitions:
            if definition.name in handles:
                raise TableDefinitionError(f"duplicate table name: {definition.name}")
            handles[definition.name] = TableHandle(
                definition,
                client=client,
                table_name=self._config.table_name(definition.table_name),
                codec=codec,
            )
        self._handles = handles

    def resolve(self, name: str) -> TableHandle:
        handle = self._handles.get(name) if isinstance(name, str) else None
        if handle is None:
            raise InvalidTableError(str(name))
        return handle

    def get(self, name: str) -> TableHandle | None:
        if not isinstance(name, str):
            return None
        return self._handles.get(name)

    def names(self) -> tuple[str, ...]:
        return tuple(self._handles)

    def definitions(self) -> tuple[TableDefinition, ...]:
        return tuple(handle.definition for handle in self._handles.values())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name in self._handles

    def __iter__(self) -> Iterator[TableHandle]:
        return iter(self._handles.values())

    def __len__(self) -> int:
        return len(self._handles)
