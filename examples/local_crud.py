from __future__ import annotations

import os
import uuid

import boto3

from datastore_dynamodb import DatastoreConfig, DynamoDBDatastore, IndexDefinition, TableDefinition


def _client():
    return boto3.client(
        "dynamodb",
        endpoint_url=os.environ.get("DYNAMODB_ENDPOINT", "http://localhost:8000"),
        region_name=os.environ.get("AWS_REGION", "us-east-1"),
        aws_access_key_id=os.environ.get("AWS_ACCESS_KEY_ID", "dummy"),
        aws_secret_access_key=os.environ.get("AWS_SECRET_ACCESS_KEY", "dummy"),
    )


def main() -> None:
    client = _client()
    prefix = f"example_{uuid.uuid4().hex[:8]}_"
    table_name = f"{prefix}pipelines"

    client.create_table(
        TableName=table_name,
        KeySchema=[{"AttributeName": "id", "KeyType": "HASH"}],
        AttributeDefinitions=[
            {"AttributeName": "id", "AttributeType": "S"},
            {"AttributeName": "scmUri", "AttributeType": "S"},
        ],
        GlobalSecondaryIndexes=[
            {
                "IndexName": "scmUriIndex",
                "KeySchema": [{"AttributeName": "scmUri", "KeyType": "HASH"}],
                "Projection": {"ProjectionType": "ALL"},
            }
        ],
        BillingMode="PAY_PER_REQUEST",
    )
    client.get_waiter("table_exists").wait(TableName=table_name)

    try:
        datastore = DynamoDBDatastore(
            DatastoreConfig(prefix=prefix),
            tables=(TableDefinition(name="pipelines", indexes=(IndexDefinition(attribute="scmUri"),)),),
            client=client,
        )

        datastore.save({"table": "pipelines", "params": {"id": "p1", "data": {"scmUri": "github.com:1:main"}}})
        datastore.save({"table": "pipelines", "params": {"id": "p2", "data": {"scmUri": "github.com:2:main"}}})

        print("get:", datastore.get({"table": "pipelines", "params": {"id": "p1"}}))
        updated = datastore.update(
            {"table": "pipelines", "params": {"id": "p1", "data": {"admins": {"batman": True}}}}
        )
        print("update:", updated)

        plan = datastore.explain_scan({"table": "pipelines", "params": {"scmUri": "github.com:2:main"}})
        print("plan:", plan.operation, plan.index_name)
        print("scan:", datastore.scan({"table": "pipelines", "params": {"scmUri": "github.com:2:main"}}))
    finally:
        client.delete_table(TableName=table_name)


if __name__ == "__main__":
    main()
