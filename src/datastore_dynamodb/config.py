from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .errors import ValidationError

DEFAULT_REGION = "us-west-2"

_STRING_OPTIONS: dict[str, tuple[str, ...]] = {
    "region": ("region",),
    "access_key_id": ("accessKeyId", "access_key_id"),
    "secret_access_key": ("secretAccessKey", "secret_access_key"),
    "prefix": ("prefix",),
    "endpoint_url": ("endpointUrl", "endpoint_url", "endpoint"),
}


@dataclass(frozen=True)
class DatastoreConfig:
    region: str = DEFAULT_REGION
    access_key_id: str | None = None
    secret_access_key: str | None = None
    prefix: str = ""
    endpoint_url: str | None = None
    connect_timeout: float = 5.0
    read_timeout: float = 10.0
    max_attempts: int = 3

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any] | None) -> DatastoreConfig:
        if mapping is None:
            return cls()
        if not isinstance(mapping, Mapping):
            raise ValidationError("datastore config must be a mapping")

        kwargs: dict[str, Any] = {}
        for option, aliases in _STRING_OPTIONS.items():
            for alias in aliases:
                if alias not in mapping or mapping[alias] is None:
                    continue
                value = mapping[alias]
                if not isinstance(value, str):
                    raise ValidationError(f"{alias} must be a string")
                kwargs[option] = value
                break

        if not kwargs.get("region"):
            kwargs.pop("region", None)

        for option in ("connect_timeout", "read_timeout"):
            if mapping.get(option) is not None:
                try:
                    kwargs[option] = float(mapping[option])
                except (TypeError, ValueError) as err:
                    raise ValidationError(f"{option} must be a number") from err
        if mapping.get("max_attempts") is not None:
            attempts = mapping["max_attempts"]
            if isinstance(attempts, bool) or not isinstance(attempts, int) or attempts < 1:
                raise ValidationError("max_attempts must be a positive integer")
            kwargs["max_attempts"] = attempts

        return cls(**kwargs)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = os.environ) -> DatastoreConfig:
        return cls.from_mapping(
            {
                "region": environ.get("AWS_REGION") or environ.get("AWS_DEFAULT_REGION"),
                "accessKeyId": environ.get("AWS_ACCESS_KEY_ID"),
                "secretAccessKey": environ.get("AWS_SECRET_ACCESS_KEY"),
                "prefix": environ.get("DATASTORE_TABLE_PREFIX"),
                "endpointUrl": environ.get("DYNAMODB_ENDPOINT"),
            }
        )

    def table_name(self, name: str) -> str:
        return f"{self.prefix}{name}"
