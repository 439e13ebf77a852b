from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from .codec import RecordCodec
from .mocks import ANY, FakeDynamoDBClient, MemoryDynamoDBClient, client_error
from .model import TableDefinition


def memory_client_for(
    definitions: Sequence[TableDefinition],
    *,
    prefix: str = "",
    seed: Mapping[str, Sequence[Mapping[str, Any]]] | None = None,
) -> MemoryDynamoDBClient:
    client = MemoryDynamoDBClient()
    for definition in definitions:
        client.add_table(
            f"{prefix}{definition.table_name}",
            key=definition.primary_key,
            indexes={idx.name: (idx.attribute, idx.range_key) for idx in definition.indexes},
        )

    codec = RecordCodec()
    by_name = {definition.name: definition for definition in definitions}
    for name, records in (seed or {}).items():
        definition = by_name[name]
        for record in records:
            client.put_item(TableName=f"{prefix}{definition.table_name}", Item=codec.to_item(record))
    client.calls.clear()
    return client


__all__ = [
    "ANY",
    "FakeDynamoDBClient",
    "MemoryDynamoDBClient",
    "client_error",
    "memory_client_for",
]
