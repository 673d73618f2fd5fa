"""
Typed access layer over the storage engine.

Bucket schema:
- advisory/<source>/<platform>/<package>     key: vulnerability id -> Advisory
- vulnerability/<vulnerability id>           key: source -> VulnerabilityDetail
- severity/<vulnerability id>                key: source -> Severity
- metadata                                   key: "data" -> Metadata

Design decisions:
- Operations is the capability set every source and the scanner depend on;
  Database implements it over the engine, tests use an in-memory fake
- batch_update is the only way to open a write transaction
- Errors from the engine propagate unchanged; no retries, no logging
- Values are JSON documents; the advisory's vulnerability id lives in the key
"""
import json
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from .engine import Engine, Transaction
from .models import (
    Advisory,
    Metadata,
    Severity,
    VulnerabilityDetail,
    to_json,
)

ADVISORY_BUCKET = "advisory"
VULNERABILITY_BUCKET = "vulnerability"
SEVERITY_BUCKET = "severity"
METADATA_BUCKET = "metadata"
METADATA_KEY = "data"


class Operations(ABC):
    """Capabilities of the vulnerability database used by sources and scanners."""

    @abstractmethod
    def batch_update(self, fn: Callable[[Transaction], None]) -> None:
        pass

    @abstractmethod
    def put_nested_bucket(self, tx: Transaction, root: str, *path: str, value: Any) -> None:
        pass

    @abstractmethod
    def put_advisory(
        self, tx: Transaction, source: str, platform: str, pkg_name: str, advisory: Advisory
    ) -> None:
        pass

    @abstractmethod
    def get_advisories(self, platform: str, pkg_name: str) -> List[Advisory]:
        pass

    @abstractmethod
    def for_each_advisory(self, source: str, platform: str) -> Dict[str, bytes]:
        pass

    @abstractmethod
    def put_vulnerability_detail(
        self, tx: Transaction, source: str, vuln_id: str, detail: VulnerabilityDetail
    ) -> None:
        pass

    @abstractmethod
    def get_vulnerability(self, vuln_id: str) -> Dict[str, VulnerabilityDetail]:
        pass

    @abstractmethod
    def put_severity(
        self, tx: Transaction, source: str, vuln_id: str, severity: Severity
    ) -> None:
        pass

    @abstractmethod
    def get_severity(self, vuln_id: str) -> Dict[str, Severity]:
        pass

    @abstractmethod
    def set_metadata(self, metadata: Metadata) -> None:
        pass

    @abstractmethod
    def get_metadata(self) -> Optional[Metadata]:
        pass

    @abstractmethod
    def set_version(self, version: int) -> None:
        pass


class Database(Operations):
    """
    Vulnerability database backed by the DuckDB storage engine.

    Usage:
        with Database("vuln.duckdb") as db:
            db.batch_update(source.commit_func)
            advisories = db.get_advisories("amazon linux 2", "curl")
    """

    def __init__(self, db_path: str = ":memory:"):
        """
        Initialize database.

        Args:
            db_path: Path to the database file (created if doesn't exist)
        """
        self.db_path = db_path
        self.engine = Engine(db_path)

    def open(self) -> "Database":
        self.engine.connect()
        self.engine.initialize_schema()
        return self

    def close(self):
        self.engine.close()

    def batch_update(self, fn: Callable[[Transaction], None]) -> None:
        """
        Run fn inside one writable transaction.

        Args:
            fn: Called with the transaction; raising rolls back every write

        Raises:
            Whatever fn raised, after rollback, or StorageError on commit
        """
        with self.engine.update() as tx:
            fn(tx)

    def put_nested_bucket(self, tx: Transaction, root: str, *path: str, value: Any) -> None:
        """
        Store value under the last element of path.

        All elements before the last are bucket names, created on demand
        below root. put_nested_bucket(tx, "a", "b", "k", value=v) writes key
        "k" into bucket a/b.
        """
        if not path:
            raise ValueError("put_nested_bucket requires a key")
        buckets = [root, *path[:-1]]
        tx.create_bucket_if_not_exists(buckets)
        tx.put(buckets, path[-1], to_json(value))

    def put_advisory(
        self, tx: Transaction, source: str, platform: str, pkg_name: str, advisory: Advisory
    ) -> None:
        self.put_nested_bucket(
            tx, ADVISORY_BUCKET, source, platform, pkg_name, advisory.vulnerability_id,
            value=advisory,
        )

    def get_advisories(self, platform: str, pkg_name: str) -> List[Advisory]:
        """
        Collect the advisories every source recorded for a package.

        Args:
            platform: Native platform name, e.g. "amazon linux 2"
            pkg_name: Package name

        Returns:
            Advisories ordered by source, then vulnerability id. Empty when
            no source knows the package.
        """
        advisories = []
        with self.engine.view() as tx:
            for source in tx.child_buckets([ADVISORY_BUCKET]):
                for vuln_id, raw in tx.items([ADVISORY_BUCKET, source, platform, pkg_name]):
                    advisories.append(Advisory.from_dict(vuln_id, json.loads(raw)))
        return advisories

    def for_each_advisory(self, source: str, platform: str) -> Dict[str, bytes]:
        """
        Dump every package of one source/platform bucket.

        Returns:
            Package name -> JSON array of that package's advisories
        """
        packages = {}
        with self.engine.view() as tx:
            bucket = [ADVISORY_BUCKET, source, platform]
            for pkg_name in tx.child_buckets(bucket):
                entries = []
                for vuln_id, raw in tx.items(bucket + [pkg_name]):
                    entry = json.loads(raw)
                    entry["vulnerability_id"] = vuln_id
                    entries.append(entry)
                packages[pkg_name] = json.dumps(entries, sort_keys=True).encode("utf-8")
        return packages

    def put_vulnerability_detail(
        self, tx: Transaction, source: str, vuln_id: str, detail: VulnerabilityDetail
    ) -> None:
        self.put_nested_bucket(tx, VULNERABILITY_BUCKET, vuln_id, source, value=detail)

    def get_vulnerability(self, vuln_id: str) -> Dict[str, VulnerabilityDetail]:
        with self.engine.view() as tx:
            return {
                source: VulnerabilityDetail.from_dict(json.loads(raw))
                for source, raw in tx.items([VULNERABILITY_BUCKET, vuln_id])
            }

    def delete_vulnerability_detail_bucket(self) -> None:
        """Drop all vulnerability details; light databases ship without them."""
        def _delete(tx: Transaction):
            if tx.bucket_exists([VULNERABILITY_BUCKET]):
                tx.delete_bucket([VULNERABILITY_BUCKET])

        self.batch_update(_delete)

    def put_severity(
        self, tx: Transaction, source: str, vuln_id: str, severity: Severity
    ) -> None:
        self.put_nested_bucket(tx, SEVERITY_BUCKET, vuln_id, source, value=severity)

    def get_severity(self, vuln_id: str) -> Dict[str, Severity]:
        with self.engine.view() as tx:
            return {
                source: Severity(json.loads(raw))
                for source, raw in tx.items([SEVERITY_BUCKET, vuln_id])
            }

    def list_vulnerability_ids(self, source: str, platform: str) -> List[str]:
        """Distinct vulnerability ids recorded for one source/platform."""
        ids = set()
        with self.engine.view() as tx:
            bucket = [ADVISORY_BUCKET, source, platform]
            for pkg_name in tx.child_buckets(bucket):
                ids.update(vuln_id for vuln_id, _ in tx.items(bucket + [pkg_name]))
        return sorted(ids)

    def list_platforms(self, source: str) -> List[str]:
        with self.engine.view() as tx:
            return tx.child_buckets([ADVISORY_BUCKET, source])

    def list_sources(self) -> List[str]:
        with self.engine.view() as tx:
            return tx.child_buckets([ADVISORY_BUCKET])

    def set_metadata(self, metadata: Metadata) -> None:
        def _put(tx: Transaction):
            tx.create_bucket_if_not_exists([METADATA_BUCKET])
            tx.put([METADATA_BUCKET], METADATA_KEY, to_json(metadata))

        self.batch_update(_put)

    def get_metadata(self) -> Optional[Metadata]:
        """
        Read the metadata singleton.

        Returns:
            Metadata, or None if this database has never been stamped
        """
        with self.engine.view() as tx:
            raw = tx.get([METADATA_BUCKET], METADATA_KEY)
        if raw is None:
            return None
        return Metadata.from_dict(json.loads(raw))

    def set_version(self, version: int) -> None:
        """Stamp the schema version, keeping the rest of the metadata."""
        def _put(tx: Transaction):
            tx.create_bucket_if_not_exists([METADATA_BUCKET])
            raw = tx.get([METADATA_BUCKET], METADATA_KEY)
            metadata = Metadata.from_dict(json.loads(raw)) if raw else Metadata()
            metadata.version = version
            tx.put([METADATA_BUCKET], METADATA_KEY, to_json(metadata))

        self.batch_update(_put)

    def __enter__(self):
        """Context manager entry."""
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
