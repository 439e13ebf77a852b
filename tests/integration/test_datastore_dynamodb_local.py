from __future__ import annotations

import os
import uuid
from collections.abc import Iterator

import boto3
import pytest

from datastore_dynamodb import (
    DatastoreConfig,
    DynamoDBDatastore,
    IndexDefinition,
    InvalidTableError,
    ScanBehavior,
    TableDefinition,
)

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(not os.environ.get("DYNAMODB_ENDPOINT"), reason="DYNAMODB_ENDPOINT not set"),
]


def _client():
    return boto3.client(
        "dynamodb",
        endpoint_url=os.environ.get("DYNAMODB_ENDPOINT", "http://localhost:8000"),
        region_name=os.environ.get("AWS_REGION", "us-east-1"),
        aws_access_key_id=os.environ.get("AWS_ACCESS_KEY_ID", "dummy"),
        aws_secret_access_key=os.environ.get("AWS_SECRET_ACCESS_KEY", "dummy"),
    )


TABLES = (
    TableDefinition(
        name="builds",
        indexes=(IndexDefinition(attribute="jobId", range_key="number"),),
    ),
)


@pytest.fixture()
def datastore() -> Iterator[DynamoDBDatastore]:
    prefix = f"datastore_it_{uuid.uuid4().hex[:8]}_"
    client = _client()
    table_name = f"{prefix}builds"
    client.create_table(
        TableName=table_name,
        KeySchema=[{"AttributeName": "id", "KeyType": "HASH"}],
        AttributeDefinitions=[
            {"AttributeName": "id", "AttributeType": "S"},
            {"AttributeName": "jobId", "AttributeType": "N"},
            {"AttributeName": "number", "AttributeType": "N"},
        ],
        GlobalSecondaryIndexes=[
            {
                "IndexName": "jobIdIndex",
                "KeySchema": [
                    {"AttributeName": "jobId", "KeyType": "HASH"},
                    {"AttributeName": "number", "KeyType": "RANGE"},
                ],
                "Projection": {"ProjectionType": "ALL"},
            }
        ],
        BillingMode="PAY_PER_REQUEST",
    )
    client.get_waiter("table_exists").wait(TableName=table_name)
    try:
        yield DynamoDBDatastore(DatastoreConfig(prefix=prefix), tables=TABLES, client=client)
    finally:
        client.delete_table(TableName=table_name)


def test_crud_round_trip(datastore: DynamoDBDatastore) -> None:
    saved = datastore.save({"table": "builds", "params": {"id": "b1", "data": {"jobId": 1, "number": 1}}})
    assert saved == {"id": "b1", "jobId": 1, "number": 1}

    assert datastore.get({"table": "builds", "params": {"id": "b1"}}) == saved

    updated = datastore.update(
        {"table": "builds", "params": {"id": "b1", "data": {"status": "SUCCESS", "number": None}}}
    )
    assert updated == {"id": "b1", "jobId": 1, "status": "SUCCESS"}

    assert datastore.update({"table": "builds", "params": {"id": "ghost", "data": {"a": 1}}}) is None
    assert datastore.get({"table": "builds", "params": {"id": "ghost"}}) is None

    assert datastore.remove({"table": "builds", "params": {"id": "b1"}}) is None
    assert datastore.get({"table": "builds", "params": {"id": "b1"}}) is None

    with pytest.raises(InvalidTableError):
        datastore.get({"table": "tableUnicorn", "params": {"id": "b1"}})


def test_scan_uses_index_sort_and_pagination(datastore: DynamoDBDatastore) -> None:
    for n in range(1, 6):
        status = "FAILURE" if n == 2 else "SUCCESS"
        data = {"jobId": 7, "number": n, "status": status}
        datastore.save({"table": "builds", "params": {"id": f"b{n}", "data": data}})
    datastore.save({"table": "builds", "params": {"id": "other", "data": {"jobId": 8, "number": 1}}})

    newest = datastore.scan({"table": "builds", "params": {"jobId": 7}})
    assert [b["number"] for b in newest] == [5, 4, 3, 2, 1]

    oldest = datastore.scan({"table": "builds", "params": {"jobId": 7}, "sort": "ascending"})
    assert [b["number"] for b in oldest] == [1, 2, 3, 4, 5]

    bounded = datastore.configure(behavior=ScanBehavior.BOUNDED)
    page = bounded.scan({"table": "builds", "params": {"jobId": 7}, "paginate": {"count": 2, "page": 2}})
    assert [b["number"] for b in page] == [3, 2]

    failures = datastore.scan({"table": "builds", "params": {"status": ["FAILURE"]}})
    assert [b["id"] for b in failures] == ["b2"]
