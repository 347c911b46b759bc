"""Record store interface and implementations."""

from workforce_payroll.repository.base import NotFoundError, RecordStore
from workforce_payroll.repository.memory import InMemoryRecordStore
from workforce_payroll.repository.sql import SqlRecordStore

__all__ = [
    "NotFoundError",
    "RecordStore",
    "InMemoryRecordStore",
    "SqlRecordStore",
]
