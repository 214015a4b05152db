"""
Storage Module

Contracts for the record store and the log store, with in-memory and JSON
file implementations.
"""

from .errors import StoreError, RecordStoreError, RecordNotFoundError, LogStoreError
from .base import RecordStore, LogStore
from .memory import InMemoryRecordStore, InMemoryLogStore
from .json_store import JsonFileRecordStore, JsonFileLogStore

__all__ = [
    'StoreError',
    'RecordStoreError',
    'RecordNotFoundError',
    'LogStoreError',
    'RecordStore',
    'LogStore',
    'InMemoryRecordStore',
    'InMemoryLogStore',
    'JsonFileRecordStore',
    'JsonFileLogStore',
]
