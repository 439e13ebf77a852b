from __future__ import annotations

import pytest
from botocore.exceptions import EndpointConnectionError

from datastore_dynamodb import BackendError, TableDefinition, ValidationError
from datastore_dynamodb.mocks import FakeDynamoDBClient, client_error
from datastore_dynamodb.table import TableHandle


def _handle(client: FakeDynamoDBClient) -> TableHandle:
    return TableHandle(TableDefinition(name="builds"), client=client, table_name="beta_builds")


def test_scan_request_with_equality_and_membership_filters() -> None:
    client = FakeDynamoDBClient()
    client.expect(
        "scan",
        {
            "TableName": "beta_builds",
            "FilterExpression": "#a1 = :f1 AND #a2 IN (:f2, :f3)",
            "ExpressionAttributeNames": {"#a1": "status", "#a2": "name"},
            "ExpressionAttributeValues": {
                ":f1": {"S": "SUCCESS"},
                ":f2": {"S": "bar"},
                ":f3": {"S": "baz"},
            },
        },
        response={"Items": [{"id": {"S": "b1"}, "status": {"S": "SUCCESS"}}]},
    )

    items = _handle(client).scan().filter("status").equals("SUCCESS").filter("name").in_(["bar", "baz"]).exec()

    assert items == [{"id": "b1", "status": "SUCCESS"}]
    client.assert_no_pending()


def test_scan_requests_do_not_carry_sort_direction() -> None:
    client = FakeDynamoDBClient()

    def validate(req: dict) -> None:
        assert "ScanIndexForward" not in req
        assert "KeyConditionExpression" not in req

    client.expect("scan", validate, response={"Items": []})
    assert _handle(client).scan().descending().exec() == []
    client.assert_no_pending()


def test_query_request_uses_index_key_and_direction() -> None:
    client = FakeDynamoDBClient()
    client.expect(
        "query",
        {
            "TableName": "beta_builds",
            "IndexName": "jobIdIndex",
            "KeyConditionExpression": "#k = :k",
            "ExpressionAttributeNames": {"#k": "jobId", "#a1": "status"},
            "ExpressionAttributeValues": {":k": {"N": "42"}, ":f1": {"S": "RUNNING"}},
            "FilterExpression": "#a1 = :f1",
            "ScanIndexForward": True,
            "Limit": 5,
        },
        response={"Items": []},
    )

    chain = (
        _handle(client)
        .query(42, attribute="jobId")
        .using_index("jobIdIndex")
        .filter("status")
        .equals("RUNNING")
        .ascending()
        .limit(5)
    )
    assert chain.operation == "Query"
    assert chain.index_name == "jobIdIndex"
    assert chain.scan_forward is True
    assert chain.max_items == 5
    assert chain.exec() == []
    client.assert_no_pending()


def test_exec_follows_pages_until_limit_is_reached() -> None:
    client = FakeDynamoDBClient()
    client.expect(
        "scan",
        {"Limit": 3},
        response={"Items": [{"id": {"S": "a"}}], "LastEvaluatedKey": {"id": {"S": "c"}}},
    )
    client.expect(
        "scan",
        {"Limit": 3, "ExclusiveStartKey": {"id": {"S": "c"}}},
        response={
            "Items": [{"id": {"S": "d"}}, {"id": {"S": "e"}}, {"id": {"S": "f"}}],
            "LastEvaluatedKey": {"id": {"S": "f"}},
        },
    )

    items = _handle(client).scan().limit(3).exec()

    assert [item["id"] for item in items] == ["a", "d", "e"]
    client.assert_no_pending()


def test_exec_without_limit_reads_every_page() -> None:
    client = FakeDynamoDBClient()
    client.expect("scan", response={"Items": [{"id": {"S": "a"}}], "LastEvaluatedKey": {"id": {"S": "a"}}})
    client.expect("scan", {"ExclusiveStartKey": {"id": {"S": "a"}}}, response={"Items": [{"id": {"S": "b"}}]})

    items = _handle(client).scan().exec()

    assert [item["id"] for item in items] == ["a", "b"]
    client.assert_no_pending()


def test_exec_maps_backend_failures() -> None:
    client = FakeDynamoDBClient()
    client.expect(
        "scan",
        error=client_error("ProvisionedThroughputExceededException", "slow down", operation="Scan"),
    )
    with pytest.raises(BackendError) as excinfo:
        _handle(client).scan().exec()
    assert excinfo.value.code == "ProvisionedThroughputExceededException"
    assert excinfo.value.message == "slow down"
    assert excinfo.value.status_code == 400

    client.expect("query", error=EndpointConnectionError(endpoint_url="http://localhost:8000"))
    with pytest.raises(BackendError, match="EndpointConnectionError"):
        _handle(client).query("x").exec()


def test_chain_rejects_invalid_arguments() -> None:
    chain = _handle(FakeDynamoDBClient()).scan()

    with pytest.raises(ValidationError, match="limit must be > 0"):
        chain.limit(0)
    with pytest.raises(ValidationError, match="IN requires a list"):
        chain.filter("name").in_("bar")  # type: ignore[arg-type]
    with pytest.raises(ValidationError, match="filter attribute is required"):
        chain.filter("")
    with pytest.raises(ValidationError, match="index name is required"):
        chain.using_index("")


def test_empty_and_oversized_membership_filters_are_rejected() -> None:
    chain = _handle(FakeDynamoDBClient()).scan().filter("name").in_([])
    with pytest.raises(ValidationError, match="at least one value"):
        chain.build_request()

    chain = _handle(FakeDynamoDBClient()).scan().filter("name").in_(list(range(101)))
    with pytest.raises(ValidationError, match="maximum 100 values"):
        chain.build_request()


def test_query_defaults_to_primary_key() -> None:
    req = _handle(FakeDynamoDBClient()).query("b1").build_request()
    assert req["ExpressionAttributeNames"] == {"#k": "id"}
    assert req["ExpressionAttributeValues"] == {":k": {"S": "b1"}}
    assert "IndexName" not in req
