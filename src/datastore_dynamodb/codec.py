from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from boto3.dynamodb.types import Binary, TypeDeserializer, TypeSerializer


def _to_dynamodb(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, Mapping):
        return {str(k): _to_dynamodb(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_dynamodb(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return {_to_dynamodb(v) for v in value}
    return value


def _from_dynamodb(value: Any) -> Any:
    if isinstance(value, Binary):
        return bytes(value.value)
    if isinstance(value, Decimal):
        if value == value.to_integral_value():
            return int(value)
        return float(value)
    if isinstance(value, dict):
        return {k: _from_dynamodb(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_from_dynamodb(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return sorted(_from_dynamodb(v) for v in value)
    return value


class RecordCodec:
    def __init__(self) -> None:
        self._serializer = TypeSerializer()
        self._deserializer = TypeDeserializer()

    def serialize(self, value: Any) -> dict[str, Any]:
        return self._serializer.serialize(_to_dynamodb(value))

    def deserialize(self, av: Mapping[str, Any]) -> Any:
        return _from_dynamodb(self._deserializer.deserialize(dict(av)))

    def to_item(self, record: Mapping[str, Any]) -> dict[str, Any]:
        return {str(k): self.serialize(v) for k, v in record.items()}

    def from_item(self, item: Mapping[str, Any]) -> dict[str, Any]:
        return {k: self.deserialize(v) for k, v in item.items()}
