from typing import Any


class StoreError(Exception):
    pass


class RecordStoreError(StoreError):
    pass


class RecordNotFoundError(RecordStoreError, KeyError):

    def __init__(self, recordId: Any):
        self.recordId = recordId
        super().__init__(f"Record not found: {recordId}")

    def __str__(self) -> str:
        return self.args[0]


class LogStoreError(StoreError):
    pass
