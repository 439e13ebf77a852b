from __future__ import annotations

import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from boto3.dynamodb.types import TypeDeserializer
from botocore.exceptions import ClientError

from .codec import RecordCodec

type RequestCheck = Mapping[str, Any] | Callable[[Mapping[str, Any]], None]


class _Anything:
    def __repr__(self) -> str:  # pragma: no cover
        return "ANY"


ANY: Any = _Anything()


def _mismatches(expected: Any, actual: Any, path: str) -> list[str]:
    if expected is ANY:
        return []

    if isinstance(expected, Mapping):
        if not isinstance(actual, Mapping):
            return [f"{path}: expected a mapping, got {type(actual).__name__}"]
        out: list[str] = []
        for key, value in expected.items():
            if key not in actual:
                out.append(f"{path}: missing key {key!r}")
            else:
                out.extend(_mismatches(value, actual[key], f"{path}.{key}"))
        return out

    if isinstance(expected, list) and isinstance(actual, list) and len(expected) == len(actual):
        out = []
        for i, (e, a) in enumerate(zip(expected, actual, strict=True)):
            out.extend(_mismatches(e, a, f"{path}[{i}]"))
        return out

    if expected != actual:
        return [f"{path}: expected {expected!r}, got {actual!r}"]
    return []


def client_error(
    code: str,
    message: str = "",
    *,
    status_code: int | None = 400,
    operation: str = "UpdateItem",
) -> ClientError:
    response: dict[str, Any] = {"Error": {"Code": code, "Message": message}}
    if status_code is not None:
        response["ResponseMetadata"] = {"HTTPStatusCode": status_code}
    return ClientError(response, operation)  # type: ignore[arg-type]


@dataclass(frozen=True)
class _Expectation:
    method: str
    check: RequestCheck | None = None
    response: Mapping[str, Any] | None = None
    error: Exception | None = None

    def verify(self, method: str, req: Mapping[str, Any]) -> None:
        if method != self.method:
            raise AssertionError(f"expected {self.method}, got {method}")
        if callable(self.check):
            self.check(req)
            return
        if self.check is not None:
            problems = _mismatches(self.check, req, method)
            if problems:
                raise AssertionError("; ".join(problems))


class FakeDynamoDBClient:
    """Scripted low-level client: each call must match the next expectation.

    Expectations are partial request mappings (``ANY`` matches any value) or
    callables that assert on the request themselves.
    """

    def __init__(self) -> None:
        self._pending: list[_Expectation] = []
        self._codec = RecordCodec()
        self.calls: list[tuple[str, dict[str, Any]]] = []

    @property
    def methods(self) -> list[str]:
        return [method for method, _ in self.calls]

    def expect(
        self,
        method: str,
        expected: RequestCheck | None = None,
        *,
        response: Mapping[str, Any] | None = None,
        error: Exception | None = None,
    ) -> FakeDynamoDBClient:
        self._pending.append(_Expectation(method=method, check=expected, response=response, error=error))
        return self

    def expect_get(
        self,
        table_name: str,
        record_id: Any,
        *,
        record: Mapping[str, Any] | None = None,
        key: str = "id",
    ) -> FakeDynamoDBClient:
        response = {"Item": self._codec.to_item(record)} if record is not None else {}
        return self.expect(
            "get_item",
            {"TableName": table_name, "Key": {key: self._codec.serialize(record_id)}},
            response=response,
        )

    def expect_scan(
        self,
        table_name: str,
        *,
        records: Sequence[Mapping[str, Any]] = (),
        error: Exception | None = None,
        **request: Any,
    ) -> FakeDynamoDBClient:
        def check(req: Mapping[str, Any]) -> None:
            if "IndexName" in req or "KeyConditionExpression" in req:
                raise AssertionError(f"scan: expected a full table scan, got {req!r}")
            problems = _mismatches({"TableName": table_name, **request}, req, "scan")
            if problems:
                raise AssertionError("; ".join(problems))

        return self.expect("scan", check, response=self._page(records), error=error)

    def expect_query(
        self,
        table_name: str,
        index_name: str | None,
        key: tuple[str, Any],
        *,
        records: Sequence[Mapping[str, Any]] = (),
        error: Exception | None = None,
        **request: Any,
    ) -> FakeDynamoDBClient:
        names = {"#k": key[0], **request.pop("ExpressionAttributeNames", {})}
        values = {":k": self._codec.serialize(key[1]), **request.pop("ExpressionAttributeValues", {})}
        expected: dict[str, Any] = {
            "TableName": table_name,
            "KeyConditionExpression": "#k = :k",
            "ExpressionAttributeNames": names,
            "ExpressionAttributeValues": values,
            **request,
        }
        if index_name is not None:
            expected["IndexName"] = index_name
        return self.expect("query", expected, response=self._page(records), error=error)

    def assert_no_pending(self) -> None:
        if self._pending:
            raise AssertionError(f"pending expected calls: {[e.method for e in self._pending]!r}")

    def _page(self, records: Sequence[Mapping[str, Any]]) -> dict[str, Any]:
        return {"Items": [self._codec.to_item(record) for record in records]}

    def _call(self, method: str, req: dict[str, Any]) -> Mapping[str, Any]:
        self.calls.append((method, dict(req)))
        if not self._pending:
            raise AssertionError(f"unexpected call: {method}")

        expectation = self._pending.pop(0)
        expectation.verify(method, req)
        if expectation.error is not None:
            raise expectation.error
        return dict(expectation.response or {})

    def get_item(self, **req: Any) -> Mapping[str, Any]:
        return self._call("get_item", req)

    def put_item(self, **req: Any) -> Mapping[str, Any]:
        return self._call("put_item", req)

    def update_item(self, **req: Any) -> Mapping[str, Any]:
        return self._call("update_item", req)

    def delete_item(self, **req: Any) -> Mapping[str, Any]:
        return self._call("delete_item", req)

    def scan(self, **req: Any) -> Mapping[str, Any]:
        return self._call("scan", req)

    def query(self, **req: Any) -> Mapping[str, Any]:
        return self._call("query", req)



_EQ = re.compile(r"^(#\w+) = (:\w+)$")
_IN = re.compile(r"^(#\w+) IN \(([^)]*)\)$")
_UPDATE = re.compile(r"(SET|REMOVE) (.+?)(?= SET | REMOVE |$)")


@dataclass
class _MemoryTable:
    key: str
    indexes: dict[str, tuple[str, str | None]]
    items: dict[str, dict[str, Any]] = field(default_factory=dict)


class MemoryDynamoDBClient:
    """In-memory stand-in for the low-level DynamoDB client.

    Understands the request shapes this package emits: single-attribute keys,
    ``#a = :v`` / ``#a IN (:v1, :v2)`` conditions joined with ``AND``, and
    ``SET``/``REMOVE`` update expressions. Pages honor ``Limit`` as the number of
    evaluated items, like DynamoDB.
    """

    def __init__(self) -> None:
        self._tables: dict[str, _MemoryTable] = {}
        self._deserializer = TypeDeserializer()
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def add_table(
        self,
        name: str,
        *,
        key: str = "id",
        indexes: Mapping[str, tuple[str, str | None]] | None = None,
    ) -> None:
        self._tables[name] = _MemoryTable(key=key, indexes=dict(indexes or {}))

    def items(self, name: str) -> list[dict[str, Any]]:
        return [dict(item) for item in self._table(name, "Scan").items.values()]

    def get_item(self, **req: Any) -> dict[str, Any]:
        self.calls.append(("get_item", dict(req)))
        table = self._table(req["TableName"], "GetItem")
        item = table.items.get(self._key_of(table, req["Key"]))
        return {"Item": dict(item)} if item is not None else {}

    def put_item(self, **req: Any) -> dict[str, Any]:
        self.calls.append(("put_item", dict(req)))
        table = self._table(req["TableName"], "PutItem")
        item = dict(req["Item"])
        if table.key not in item:
            raise _validation_error("PutItem", f"missing key attribute: {table.key}")
        table.items[self._key_of(table, item)] = item
        return {}

    def update_item(self, **req: Any) -> dict[str, Any]:
        self.calls.append(("update_item", dict(req)))
        table = self._table(req["TableName"], "UpdateItem")
        names = req.get("ExpressionAttributeNames", {})
        values = req.get("ExpressionAttributeValues", {})
        pk = self._key_of(table, req["Key"])
        current = table.items.get(pk)

        condition = req.get("ConditionExpression")
        if condition and not self._matches(current or {}, condition, names, values):
            raise client_error("ConditionalCheckFailedException", "The conditional request failed")

        item = dict(current or req["Key"])
        for action, body in _UPDATE.findall(req.get("UpdateExpression", "")):
            for part in body.split(", "):
                if action == "SET":
                    name_ref, value_ref = part.split(" = ")
                    item[names[name_ref]] = values[value_ref]
                else:
                    item.pop(names[part.strip()], None)

        table.items[pk] = item
        if req.get("ReturnValues") == "ALL_NEW":
            return {"Attributes": dict(item)}
        return {}

    def delete_item(self, **req: Any) -> dict[str, Any]:
        self.calls.append(("delete_item", dict(req)))
        table = self._table(req["TableName"], "DeleteItem")
        table.items.pop(self._key_of(table, req["Key"]), None)
        return {}

    def scan(self, **req: Any) -> dict[str, Any]:
        self.calls.append(("scan", dict(req)))
        table = self._table(req["TableName"], "Scan")
        return self._page(table, list(table.items.values()), req)

    def query(self, **req: Any) -> dict[str, Any]:
        self.calls.append(("query", dict(req)))
        table = self._table(req["TableName"], "Query")
        names = req.get("ExpressionAttributeNames", {})
        values = req.get("ExpressionAttributeValues", {})

        range_key: str | None = None
        index_name = req.get("IndexName")
        if index_name is not None:
            if index_name not in table.indexes:
                raise _validation_error("Query", f"The table does not have the specified index: {index_name}")
            _, range_key = table.indexes[index_name]

        candidates = [
            item
            for item in table.items.values()
            if self._matches(item, req["KeyConditionExpression"], names, values)
        ]
        if range_key is not None:
            candidates = [item for item in candidates if range_key in item]
            candidates.sort(
                key=lambda item: self._deserializer.deserialize(item[range_key]),
                reverse=not req.get("ScanIndexForward", True),
            )
        elif not req.get("ScanIndexForward", True):
            candidates.reverse()
        return self._page(table, candidates, req)

    def _page(
        self,
        table: _MemoryTable,
        candidates: list[dict[str, Any]],
        req: Mapping[str, Any],
    ) -> dict[str, Any]:
        start = 0
        start_key = req.get("ExclusiveStartKey")
        if start_key:
            marker = self._key_of(table, start_key)
            for i, item in enumerate(candidates):
                if self._key_of(table, item) == marker:
                    start = i + 1
                    break

        limit = req.get("Limit")
        evaluated = candidates[start : start + limit] if limit else candidates[start:]
        names = req.get("ExpressionAttributeNames", {})
        values = req.get("ExpressionAttributeValues", {})
        expr = req.get("FilterExpression")
        matched = [dict(item) for item in evaluated if not expr or self._matches(item, expr, names, values)]

        out: dict[str, Any] = {"Items": matched, "Count": len(matched), "ScannedCount": len(evaluated)}
        if limit and start + limit < len(candidates):
            out["LastEvaluatedKey"] = {table.key: evaluated[-1][table.key]}
        return out

    def _matches(
        self,
        item: Mapping[str, Any],
        expr: str,
        names: Mapping[str, str],
        values: Mapping[str, Any],
    ) -> bool:
        for part in expr.split(" AND "):
            eq = _EQ.match(part)
            if eq is not None:
                if item.get(names[eq.group(1)]) != values[eq.group(2)]:
                    return False
                continue

            member = _IN.match(part)
            if member is not None:
                refs = [ref.strip() for ref in member.group(2).split(",")]
                if item.get(names[member.group(1)]) not in [values[ref] for ref in refs]:
                    return False
                continue

            raise _validation_error("Query", f"unsupported expression: {part}")
        return True

    def _table(self, name: str, operation: str) -> _MemoryTable:
        table = self._tables.get(name)
        if table is None:
            raise client_error("ResourceNotFoundException", "Requested resource not found", operation=operation)
        return table

    def _key_of(self, table: _MemoryTable, key: Mapping[str, Any]) -> str:
        av = key.get(table.key)
        if av is None:
            raise _validation_error("GetItem", "The provided key element does not match the schema")
        return repr(sorted(av.items()))


def _validation_error(operation: str, message: str) -> ClientError:
    return client_error("ValidationException", message, operation=operation)
