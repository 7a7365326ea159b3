from leaveflow.repositories.base import (
    AuditRepository,
    LeaveRequestRepository,
    LedgerRepository,
    ReferenceRepository,
    RequestFilters,
    UnitOfWork,
    UnitOfWorkFactory,
)
from leaveflow.repositories.memory import InMemoryStore, InMemoryUnitOfWork
from leaveflow.repositories.sql import SqlUnitOfWork, sql_unit_of_work_factory

__all__ = [
    "AuditRepository",
    "InMemoryStore",
    "InMemoryUnitOfWork",
    "LeaveRequestRepository",
    "LedgerRepository",
    "ReferenceRepository",
    "RequestFilters",
    "SqlUnitOfWork",
    "UnitOfWork",
    "UnitOfWorkFactory",
    "sql_unit_of_work_factory",
]
