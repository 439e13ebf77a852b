from __future__ import annotations


class DatastoreError(Exception):
    pass


class InvalidTableError(DatastoreError):
    def __init__(self, table: str) -> None:
        super().__init__(f'Invalid table name "{table}"')
        self.table = table


class ValidationError(DatastoreError):
    pass


class BackendError(DatastoreError):
    def __init__(self, *, code: str, message: str, status_code: int | None = None) -> None:
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message
        self.status_code = status_code


class TableDefinitionError(ValueError):
    pass
