from __future__ import annotations

import pytest

from datastore_dynamodb import DatastoreConfig
from datastore_dynamodb.mocks import FakeDynamoDBClient
from datastore_dynamodb.runtime import (
    AwsCallMetric,
    create_boto3_config,
    create_dynamodb_client,
    instrument_client,
)


def test_create_boto3_config() -> None:
    cfg = create_boto3_config(DatastoreConfig(connect_timeout=2.0, read_timeout=4.0, max_attempts=5))
    assert cfg.connect_timeout == 2.0
    assert cfg.read_timeout == 4.0
    assert cfg.retries["max_attempts"] == 5
    assert cfg.retries["mode"] == "standard"


def test_instrument_client_records_calls() -> None:
    metrics: list[AwsCallMetric] = []

    client = FakeDynamoDBClient()
    client.expect("put_item", response={})
    wrapped = instrument_client(client, on_call=metrics.append)
    wrapped.put_item(TableName="t", Item={})
    assert len(metrics) == 1
    assert metrics[0].operation == "put_item"
    assert metrics[0].ok is True

    client2 = FakeDynamoDBClient()
    client2.expect("get_item", error=RuntimeError("boom"), response=None)
    wrapped2 = instrument_client(client2, on_call=metrics.append)
    with pytest.raises(RuntimeError, match="boom"):
        wrapped2.get_item(TableName="t", Key={})
    assert len(metrics) == 2
    assert metrics[1].ok is False


def test_instrument_client_passes_through_attributes() -> None:
    client = FakeDynamoDBClient()
    wrapped = instrument_client(client, on_call=lambda metric: None)
    assert wrapped.calls is client.calls


class FakeSession:
    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, object]]] = []

    def client(self, service_name: str, **kwargs: object) -> object:
        self.calls.append((service_name, kwargs))
        return FakeDynamoDBClient()


def test_create_dynamodb_client_uses_region_and_endpoint() -> None:
    sess = FakeSession()
    config = DatastoreConfig(region="eu-west-1", endpoint_url="http://localhost:8000")

    client = create_dynamodb_client(config, session=sess)

    assert isinstance(client, FakeDynamoDBClient)
    service, kwargs = sess.calls[0]
    assert service == "dynamodb"
    assert kwargs["region_name"] == "eu-west-1"
    assert kwargs["endpoint_url"] == "http://localhost:8000"


def test_create_dynamodb_client_defaults_region_and_wraps_metrics() -> None:
    sess = FakeSession()
    metrics: list[AwsCallMetric] = []

    client = create_dynamodb_client(DatastoreConfig(), session=sess, metrics=metrics.append)

    _, kwargs = sess.calls[0]
    assert kwargs["region_name"] == "us-west-2"
    assert kwargs["endpoint_url"] is None
    assert not isinstance(client, FakeDynamoDBClient)
