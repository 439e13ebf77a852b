from __future__ import annotations

from botocore.exceptions import BotoCoreError, ClientError

from .errors import BackendError


def status_code(err: ClientError) -> int | None:
    raw = err.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    if raw is None:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def map_client_error(err: ClientError) -> BackendError:
    code = str(err.response.get("Error", {}).get("Code", ""))
    message = str(err.response.get("Error", {}).get("Message", ""))

    return BackendError(
        code=code or "UnknownError",
        message=message or str(err),
        status_code=status_code(err),
    )


def map_boto_error(err: BotoCoreError) -> BackendError:
    return BackendError(code=type(err).__name__, message=str(err))


def is_conditional_miss(err: ClientError) -> bool:
    code = status_code(err)
    if code is None:
        return str(err.response.get("Error", {}).get("Code", "")) == "ConditionalCheckFailedException"
    return 400 <= code < 500
