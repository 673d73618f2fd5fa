"""
Storage layer for the vulnerability database.

This module provides a bucket-structured, transactional store on DuckDB and
the typed access layer shared by every vendor source and the scanner.

Components:
- Engine / Transaction: bucket tree, single writer, snapshot readers
- Database: advisory, vulnerability detail, severity and metadata access
- Operations: the capability set Database implements
- Advisory, VulnerabilityDetail, Reference, Severity, Metadata: canonical types

Usage:
    from storage import Database

    with Database("vuln.duckdb") as db:
        db.batch_update(lambda tx: db.put_advisory(tx, "amazon", "amazon linux 2",
                                                   "curl", advisory))
        db.get_advisories("amazon linux 2", "curl")
"""

from .database import Database, Operations
from .engine import Engine, Transaction
from .errors import StorageError
from .models import (
    SCHEMA_VERSION,
    Advisory,
    DBType,
    Metadata,
    Reference,
    Severity,
    VulnerabilityDetail,
)

__all__ = [
    "Database",
    "Operations",
    "Engine",
    "Transaction",
    "StorageError",
    "SCHEMA_VERSION",
    "Advisory",
    "DBType",
    "Metadata",
    "Reference",
    "Severity",
    "VulnerabilityDetail",
]
