from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from .aws_errors import map_boto_error, map_client_error
from .codec import RecordCodec
from .errors import ValidationError
from .model import TableDefinition
from .query import QueryChain

logger = logging.getLogger(__name__)


class TableHandle:
    def __init__(
        self,
        definition: TableDefinition,
        *,
        client: Any,
        table_name: str | None = None,
        codec: RecordCodec | None = None,
    ) -> None:
        self._definition = definition
        self._client = client
        self._table_name = table_name or definition.table_name
        self._codec = codec or RecordCodec()

    @property
    def definition(self) -> TableDefinition:
        return self._definition

    @property
    def table_name(self) -> str:
        return self._table_name

    @property
    def codec(self) -> RecordCodec:
        return self._codec

    def get(self, record_id: Any) -> dict[str, Any] | None:
        logger.debug("get %s from %s", record_id, self._table_name)
        try:
            resp = self._client.get_item(TableName=self._table_name, Key=self._to_key(record_id))
        except ClientError as err:
            raise map_client_error(err) from err
        except BotoCoreError as err:
            raise map_boto_error(err) from err

        item = resp.get("Item")
        if not item:
            return None
        return self._codec.from_item(item)

    def create(self, record: Mapping[str, Any]) -> dict[str, Any]:
        item = self._to_item(record)
        logger.debug("put %s into %s", record.get(self._definition.primary_key), self._table_name)
        try:
            self._client.put_item(TableName=self._table_name, Item=item)
        except ClientError as err:
            raise map_client_error(err) from err
        except BotoCoreError as err:
            raise map_boto_error(err) from err

        return self._codec.from_item(item)

    def update(self, record: Mapping[str, Any], *, expected: Any) -> dict[str, Any]:
        req = self._build_update_request(record, expected=expected)
        logger.debug("update %s in %s", expected, self._table_name)

        # ClientError propagates unmapped; conditional misses are resolved by the caller.
        resp = self._client.update_item(**req)
        attrs = resp.get("Attributes")
        if not attrs:
            return dict(record)
        return self._codec.from_item(attrs)

    def destroy(self, record_id: Any) -> None:
        logger.debug("delete %s from %s", record_id, self._table_name)
        try:
            self._client.delete_item(TableName=self._table_name, Key=self._to_key(record_id))
        except ClientError as err:
            raise map_client_error(err) from err
        except BotoCoreError as err:
            raise map_boto_error(err) from err

    def scan(self) -> QueryChain:
        return QueryChain(client=self._client, table_name=self._table_name, codec=self._codec)

    def query(self, value: Any, *, attribute: str | None = None) -> QueryChain:
        return QueryChain(
            client=self._client,
            table_name=self._table_name,
            codec=self._codec,
            operation="Query",
            key_attribute=attribute or self._definition.primary_key,
            key_value=value,
        )

    def _build_update_request(self, record: Mapping[str, Any], *, expected: Any) -> dict[str, Any]:
        pk = self._definition.primary_key
        if record.get(pk) != expected:
            raise ValidationError(f"cannot change primary key: {pk}")

        names: dict[str, str] = {"#pk": pk}
        values: dict[str, Any] = {":pk": self._codec.serialize(expected)}
        set_parts: list[str] = []
        remove_parts: list[str] = []

        for i, (attribute, value) in enumerate(record.items(), start=1):
            if attribute == pk:
                continue

            name_ref = f"#u{i}"
            names[name_ref] = attribute
            if value is None:
                remove_parts.append(name_ref)
                continue

            value_ref = f":u{i}"
            values[value_ref] = self._codec.serialize(value)
            set_parts.append(f"{name_ref} = {value_ref}")

        req: dict[str, Any] = {
            "TableName": self._table_name,
            "Key": self._to_key(expected),
            "ConditionExpression": "#pk = :pk",
            "ExpressionAttributeNames": names,
            "ExpressionAttributeValues": values,
            "ReturnValues": "ALL_NEW",
        }

        expr_parts: list[str] = []
        if set_parts:
            expr_parts.append("SET " + ", ".join(set_parts))
        if remove_parts:
            expr_parts.append("REMOVE " + ", ".join(remove_parts))
        if expr_parts:
            req["UpdateExpression"] = " ".join(expr_parts)

        return req

    def _to_key(self, record_id: Any) -> dict[str, Any]:
        if record_id is None:
            raise ValidationError("id is required")
        return {self._definition.primary_key: self._codec.serialize(record_id)}

    def _to_item(self, record: Mapping[str, Any]) -> dict[str, Any]:
        if record.get(self._definition.primary_key) is None:
            raise ValidationError(f"missing primary key: {self._definition.primary_key}")
        return self._codec.to_item({k: v for k, v in record.items() if v is not None})
