from __future__ import annotations

import json
import re
from importlib.resources import files
from typing import TYPE_CHECKING, Any

from .config import DEFAULT_REGION, DatastoreConfig
from .errors import (
    BackendError,
    DatastoreError,
    InvalidTableError,
    TableDefinitionError,
    ValidationError,
)
from .model import IndexDefinition, TableDefinition, index_name_for
from .planner import Pagination, ScanBehavior, ScanPlan, plan_scan
from .query import FilterCondition

if TYPE_CHECKING:
    from .codec import RecordCodec
    from .datastore import DynamoDBDatastore
    from .registry import TableRegistry
    from .runtime import AwsCallMetric, create_boto3_config, create_dynamodb_client, instrument_client
    from .schema import definitions_from_models, load_schema_document
    from .table import TableHandle


def _read_repo_version() -> str:
    try:
        data = json.loads(files(__package__).joinpath("version.json").read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return "0.0.0"

    version = data.get("version")
    return version if isinstance(version, str) and version else "0.0.0"


def _normalize_repo_version(repo_version: str) -> str:
    match = re.match(r"^(\d+\.\d+\.\d+)-rc\.?([0-9]+)$", repo_version)
    if match:
        return f"{match.group(1)}rc{match.group(2)}"
    return repo_version


__repo_version__ = _read_repo_version()
__version__ = _normalize_repo_version(__repo_version__)


def __getattr__(name: str) -> Any:
    if name == "DynamoDBDatastore":
        from .datastore import DynamoDBDatastore

        return DynamoDBDatastore
    if name == "TableRegistry":
        from .registry import TableRegistry

        return TableRegistry
    if name == "TableHandle":
        from .table import TableHandle

        return TableHandle
    if name == "RecordCodec":
        from .codec import RecordCodec

        return RecordCodec
    if name in {"load_schema_document", "definitions_from_models"}:
        from . import schema

        return getattr(schema, name)
    if name in {"AwsCallMetric", "create_boto3_config", "create_dynamodb_client", "instrument_client"}:
        from . import runtime

        return getattr(runtime, name)
    raise AttributeError(name)


__all__ = [
    "DEFAULT_REGION",
    "AwsCallMetric",
    "BackendError",
    "DatastoreConfig",
    "DatastoreError",
    "DynamoDBDatastore",
    "FilterCondition",
    "IndexDefinition",
    "InvalidTableError",
    "Pagination",
    "RecordCodec",
    "ScanBehavior",
    "ScanPlan",
    "TableDefinition",
    "TableDefinitionError",
    "TableHandle",
    "TableRegistry",
    "ValidationError",
    "__version__",
    "create_boto3_config",
    "create_dynamodb_client",
    "definitions_from_models",
    "index_name_for",
    "instrument_client",
    "load_schema_document",
    "plan_scan",
]
