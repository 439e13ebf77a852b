from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

from botocore.exceptions import BotoCoreError, ClientError

from .aws_errors import map_boto_error, map_client_error
from .errors import ValidationError

if TYPE_CHECKING:
    from .codec import RecordCodec

logger = logging.getLogger(__name__)

MAX_IN_VALUES = 100

type FilterOp = Literal["=", "IN"]
type Operation = Literal["Scan", "Query"]


@dataclass(frozen=True)
class FilterCondition:
    attribute: str
    op: FilterOp
    values: tuple[Any, ...]

    @staticmethod
    def eq(attribute: str, value: Any) -> FilterCondition:
        return FilterCondition(attribute=attribute, op="=", values=(value,))

    @staticmethod
    def in_(attribute: str, values: Sequence[Any]) -> FilterCondition:
        return FilterCondition(attribute=attribute, op="IN", values=tuple(values))


class FilterBuilder:
    def __init__(self, chain: QueryChain, attribute: str) -> None:
        self._chain = chain
        self._attribute = attribute

    def equals(self, value: Any) -> QueryChain:
        return self._chain.where(FilterCondition.eq(self._attribute, value))

    def in_(self, values: Sequence[Any]) -> QueryChain:
        if isinstance(values, (str, bytes, bytearray)) or not isinstance(values, Sequence):
            raise ValidationError(f"IN requires a list of values: {self._attribute}")
        return self._chain.where(FilterCondition.in_(self._attribute, values))


class QueryChain:
    def __init__(
        self,
        *,
        client: Any,
        table_name: str,
        codec: RecordCodec,
        operation: Operation = "Scan",
        key_attribute: str | None = None,
        key_value: Any = None,
    ) -> None:
        if operation == "Query" and key_attribute is None:
            raise ValidationError("query requires a key attribute")

        self._client = client
        self._table_name = table_name
        self._codec = codec
        self._operation: Operation = operation
        self._key_attribute = key_attribute
        self._key_value = key_value
        self._index_name: str | None = None
        self._filters: list[FilterCondition] = []
        self._scan_forward: bool | None = None
        self._limit: int | None = None

    @property
    def operation(self) -> Operation:
        return self._operation

    @property
    def index_name(self) -> str | None:
        return self._index_name

    @property
    def filters(self) -> tuple[FilterCondition, ...]:
        return tuple(self._filters)

    @property
    def scan_forward(self) -> bool | None:
        return self._scan_forward

    @property
    def max_items(self) -> int | None:
        return self._limit

    def using_index(self, name: str) -> QueryChain:
        if not name:
            raise ValidationError("index name is required")
        self._index_name = name
        return self

    def filter(self, attribute: str) -> FilterBuilder:
        if not attribute:
            raise ValidationError("filter attribute is required")
        return FilterBuilder(self, attribute)

    def where(self, condition: FilterCondition) -> QueryChain:
        self._filters.append(condition)
        return self

    def ascending(self) -> QueryChain:
        self._scan_forward = True
        return self

    def descending(self) -> QueryChain:
        self._scan_forward = False
        return self

    def limit(self, n: int) -> QueryChain:
        if isinstance(n, bool) or not isinstance(n, int) or n <= 0:
            raise ValidationError("limit must be > 0")
        self._limit = n
        return self

    def build_request(self) -> dict[str, Any]:
        req: dict[str, Any] = {"TableName": self._table_name}
        names: dict[str, str] = {}
        values: dict[str, Any] = {}

        if self._operation == "Query":
            names["#k"] = str(self._key_attribute)
            values[":k"] = self._codec.serialize(self._key_value)
            req["KeyConditionExpression"] = "#k = :k"
            if self._scan_forward is not None:
                req["ScanIndexForward"] = self._scan_forward

        if self._index_name is not None:
            req["IndexName"] = self._index_name

        if self._filters:
            req["FilterExpression"] = self._filter_expression(names, values)

        if names:
            req["ExpressionAttributeNames"] = names
        if values:
            req["ExpressionAttributeValues"] = values
        if self._limit is not None:
            req["Limit"] = self._limit
        return req

    def exec(self) -> list[dict[str, Any]]:
        req = self.build_request()
        call = self._client.query if self._operation == "Query" else self._client.scan
        logger.debug(
            "executing %s on %s (index=%s, filters=%d, limit=%s)",
            self._operation,
            self._table_name,
            self._index_name,
            len(self._filters),
            self._limit,
        )

        out: list[dict[str, Any]] = []
        while True:
            try:
                resp = call(**req)
            except ClientError as err:
                raise map_client_error(err) from err
            except BotoCoreError as err:
                raise map_boto_error(err) from err

            out.extend(self._codec.from_item(item) for item in resp.get("Items", []))
            if self._limit is not None and len(out) >= self._limit:
                return out[: self._limit]

            last = resp.get("LastEvaluatedKey")
            if not last:
                return out
            req["ExclusiveStartKey"] = last

    def _filter_expression(self, names: dict[str, str], values: dict[str, Any]) -> str:
        counter = 0
        name_refs: dict[str, str] = {}

        def name_ref(attribute: str) -> str:
            ref = name_refs.get(attribute)
            if ref is None:
                ref = f"#a{len(name_refs) + 1}"
                name_refs[attribute] = ref
                names[ref] = attribute
            return ref

        def value_ref(value: Any) -> str:
            nonlocal counter
            counter += 1
            ref = f":f{counter}"
            values[ref] = self._codec.serialize(value)
            return ref

        parts: list[str] = []
        for cond in self._filters:
            name = name_ref(cond.attribute)
            if cond.op == "=":
                if len(cond.values) != 1:
                    raise ValidationError(f"= requires one value: {cond.attribute}")
                parts.append(f"{name} = {value_ref(cond.values[0])}")
                continue

            if cond.op == "IN":
                if not cond.values:
                    raise ValidationError(f"IN requires at least one value: {cond.attribute}")
                if len(cond.values) > MAX_IN_VALUES:
                    raise ValidationError(f"IN supports maximum {MAX_IN_VALUES} values")
                refs = [value_ref(v) for v in cond.values]
                parts.append(f"{name} IN (" + ", ".join(refs) + ")")
                continue

            raise ValidationError(f"unsupported filter operator: {cond.op}")

        return " AND ".join(parts)
