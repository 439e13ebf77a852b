from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import replace
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from .aws_errors import is_conditional_miss, map_boto_error, map_client_error
from .config import DatastoreConfig
from .errors import ValidationError
from .model import TableDefinition
from .planner import ScanBehavior, ScanPlan, apply_pagination, plan_scan
from .registry import TableRegistry
from .runtime import AwsCallMetric, create_dynamodb_client
from .schema import definitions_from_models

logger = logging.getLogger(__name__)

type TableSpecs = Sequence[TableDefinition] | Mapping[str, Mapping[str, Any]]


def _table(config: Mapping[str, Any]) -> Any:
    if not isinstance(config, Mapping):
        raise ValidationError("operation config must be a mapping")
    return config.get("table")


def _params(config: Mapping[str, Any]) -> Mapping[str, Any]:
    params = config.get("params")
    if params is None:
        return {}
    if not isinstance(params, Mapping):
        raise ValidationError("params must be a mapping")
    return params


def _require_id(params: Mapping[str, Any]) -> Any:
    if params.get("id") is None:
        raise ValidationError("params.id is required")
    return params["id"]


def _data(params: Mapping[str, Any]) -> dict[str, Any]:
    data = params.get("data")
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ValidationError("params.data must be a mapping")
    return dict(data)


class DynamoDBDatastore:
    def __init__(
        self,
        config: DatastoreConfig | Mapping[str, Any] | None = None,
        *,
        tables: TableSpecs,
        client: Any | None = None,
        behavior: ScanBehavior = ScanBehavior.UNBOUNDED,
        session: Any | None = None,
        metrics: Callable[[AwsCallMetric], None] | None = None,
    ) -> None:
        self._config = config if isinstance(config, DatastoreConfig) else DatastoreConfig.from_mapping(config)
        if client is None:
            client = create_dynamodb_client(self._config, session=session, metrics=metrics)
        self._client: Any = client
        self._behavior = behavior

        if isinstance(tables, Mapping):
            definitions = definitions_from_models(tables)
        else:
            definitions = tuple(tables)
        self._registry = TableRegistry(definitions, client=self._client, config=self._config)

    @property
    def config(self) -> DatastoreConfig:
        return self._config

    @property
    def behavior(self) -> ScanBehavior:
        return self._behavior

    @property
    def tables(self) -> TableRegistry:
        return self._registry

    def configure(
        self,
        *,
        behavior: ScanBehavior | str | None = None,
        prefix: str | None = None,
    ) -> DynamoDBDatastore:
        if isinstance(behavior, str):
            behavior = ScanBehavior.named(behavior)
        config = self._config if prefix is None else replace(self._config, prefix=prefix)
        return DynamoDBDatastore(
            config,
            tables=self._registry.definitions(),
            client=self._client,
            behavior=behavior or self._behavior,
        )

    def get(self, config: Mapping[str, Any]) -> dict[str, Any] | None:
        handle = self._registry.resolve(_table(config))
        return handle.get(_require_id(_params(config)))

    def save(self, config: Mapping[str, Any]) -> dict[str, Any]:
        handle = self._registry.resolve(_table(config))
        params = _params(config)
        record = _data(params)
        record[handle.definition.primary_key] = _require_id(params)
        return handle.create(record)

    def update(self, config: Mapping[str, Any]) -> dict[str, Any] | None:
        handle = self._registry.get(_table(config))
        if handle is None:
            logger.debug("update ignored for unknown table %r", _table(config))
            return None

        params = _params(config)
        record_id = _require_id(params)
        record = _data(params)
        record[handle.definition.primary_key] = record_id

        try:
            return handle.update(record, expected=record_id)
        except ClientError as err:
            if is_conditional_miss(err):
                logger.debug("conditional update missed %s in %s", record_id, handle.table_name)
                return None
            raise map_client_error(err) from err
        except BotoCoreError as err:
            raise map_boto_error(err) from err

    def remove(self, config: Mapping[str, Any]) -> None:
        handle = self._registry.resolve(_table(config))
        handle.destroy(_require_id(_params(config)))
        return None

    def explain_scan(self, config: Mapping[str, Any]) -> ScanPlan:
        handle = self._registry.resolve(_table(config))
        return plan_scan(
            handle.definition,
            config.get("params"),
            paginate=config.get("paginate"),
            sort=config.get("sort"),
            behavior=self._behavior,
        )

    def scan(self, config: Mapping[str, Any]) -> list[dict[str, Any]]:
        plan = self.explain_scan(config)
        handle = self._registry.resolve(plan.table)
        logger.debug("scan %s via %s (index=%s)", handle.table_name, plan.operation, plan.index_name)

        if plan.operation == "Query":
            chain = handle.query(plan.key_value, attribute=plan.key_attribute).using_index(
                str(plan.index_name)
            )
        else:
            chain = handle.scan()

        for cond in plan.filters:
            if cond.op == "IN":
                chain.filter(cond.attribute).in_(list(cond.values))
            else:
                chain.filter(cond.attribute).equals(cond.values[0])

        if plan.scan_forward is True:
            chain.ascending()
        elif plan.scan_forward is False:
            chain.descending()

        if plan.limit is not None:
            chain.limit(plan.limit)

        return apply_pagination(chain.exec(), plan.pagination)
