from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, cast

import boto3
from botocore.config import Config

from .config import DatastoreConfig


@dataclass(frozen=True)
class AwsCallMetric:
    operation: str
    seconds: float
    ok: bool


def create_boto3_config(config: DatastoreConfig) -> Config:
    return Config(
        connect_timeout=config.connect_timeout,
        read_timeout=config.read_timeout,
        retries={"max_attempts": config.max_attempts, "mode": "standard"},
    )


class _InstrumentedClient:
    def __init__(self, client: Any, on_call: Callable[[AwsCallMetric], None]) -> None:
        self._client = client
        self._on_call = on_call

    def __getattr__(self, name: str) -> Any:
        attr = getattr(self._client, name)
        if name.startswith("_") or not callable(attr):
            return attr

        def wrapped(*args: Any, **kwargs: Any) -> Any:
            start = time.monotonic()
            try:
                out = attr(*args, **kwargs)
            except Exception:
                self._on_call(AwsCallMetric(operation=name, seconds=time.monotonic() - start, ok=False))
                raise

            self._on_call(AwsCallMetric(operation=name, seconds=time.monotonic() - start, ok=True))
            return out

        return wrapped


def instrument_client(client: Any, *, on_call: Callable[[AwsCallMetric], None]) -> Any:
    return _InstrumentedClient(client, on_call)


def create_dynamodb_client(
    config: DatastoreConfig,
    *,
    session: Any | None = None,
    metrics: Callable[[AwsCallMetric], None] | None = None,
) -> Any:
    sess = session or boto3.session.Session(
        aws_access_key_id=config.access_key_id or None,
        aws_secret_access_key=config.secret_access_key or None,
        region_name=config.region,
    )
    client = cast(Any, sess).client(
        "dynamodb",
        region_name=config.region,
        endpoint_url=config.endpoint_url or None,
        config=create_boto3_config(config),
    )
    if metrics is not None:
        client = instrument_client(client, on_call=metrics)
    return client
