"""
Amazon Linux Security Advisories (ALAS) source.

Raw bulletins live under <cache_dir>/vuln-list/amazon/<version>/<id>.json.
Each bulletin lists the CVEs it fixes and the fixed RPM builds; every
(CVE, package) pair becomes one advisory on the "amazon linux <version>"
platform, plus the CVE's vulnerability detail and severity from Amazon.

Update runs in two phases that never overlap:
1. walk: decode every supported bulletin into an AmazonRecord
2. commit: write all records inside one batch_update transaction
"""
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path, PurePath
from typing import BinaryIO, Iterable, List, Optional

from storage import (
    Advisory,
    Operations,
    Reference,
    Severity,
    StorageError,
    Transaction,
    VulnerabilityDetail,
)

from .amazon_schema import ALAS, decode_alas
from .base_source import VulnSource
from .exceptions import (
    DecodeError,
    QueryError,
    SaveError,
    UpdateError,
    VulnSrcError,
    WalkError,
)
from .file_walk import VULN_LIST_DIR, file_walk

SOURCE_NAME = "amazon"
PLATFORM_FORMAT = "amazon linux {}"
DEFAULT_VERSIONS = ("1", "2")
TARGET_FILES = [".json"]

PRIORITY_TO_SEVERITY = {
    "low": Severity.LOW,
    "medium": Severity.MEDIUM,
    "important": Severity.HIGH,
    "critical": Severity.CRITICAL,
}


@dataclass
class PathInfo:
    version: str
    filename: str


@dataclass
class AmazonRecord:
    """A decoded bulletin tagged with the Amazon Linux version it belongs to."""
    version: str
    alas: ALAS


def decode_path(path: str) -> Optional[PathInfo]:
    """
    Split a bulletin path into its version tag and file name.

    The version tag is the directory holding the file, so
    "amazon/2/ALAS2-2019-1.json" is version "2".

    Returns:
        PathInfo, or None when the path is too short to carry a version
    """
    if not path:
        return None
    parts = PurePath(path).parts
    if len(parts) < 2:
        return None
    return PathInfo(version=parts[-2], filename=parts[-1])


def construct_version(epoch: str, version: str, release: str) -> str:
    """Build an RPM version string: [epoch:]version[-release]."""
    verstr = ""
    if epoch:
        verstr = epoch + ":"
    verstr += version
    if release:
        verstr += "-" + release
    return verstr


def severity_from_priority(priority: str) -> Severity:
    # exact, case-sensitive match only
    return PRIORITY_TO_SEVERITY.get(priority, Severity.UNKNOWN)


class AmazonSource(VulnSource):
    """
    Builds and queries the Amazon Linux part of the database.

    The record list is owned by one update() call at a time; run separate
    AmazonSource instances to walk concurrently.
    """

    name = SOURCE_NAME

    def __init__(
        self,
        dbc: Operations,
        logger=None,
        versions: Iterable[str] = DEFAULT_VERSIONS,
        light: bool = False,
    ):
        """
        Args:
            dbc: Database to write to and read from
            logger: Logger for skipped-file messages
            versions: Amazon Linux versions to ingest; other directories are skipped
            light: Skip vulnerability details, keep only severities
        """
        super().__init__(dbc, logger)
        self.versions = tuple(versions)
        self.light = light
        self.records: List[AmazonRecord] = []
        self._pending_advisories = 0

    def update(self, cache_dir: Path) -> None:
        """
        Walk the ALAS cache and commit every bulletin atomically.

        Raises:
            WalkError: cache directory missing or unreadable
            DecodeError: a bulletin is not valid JSON
            UpdateError: the commit transaction failed and was rolled back
        """
        self._last_update = datetime.utcnow()
        self._last_error = None
        self._records_walked = 0
        self._files_skipped = 0
        self._advisories_saved = 0

        vuln_list_dir = Path(cache_dir) / VULN_LIST_DIR
        root_dir = vuln_list_dir / self.name

        self.records = []
        try:
            file_walk(root_dir, TARGET_FILES, self.walk_func, relative_to=vuln_list_dir)
        except (WalkError, DecodeError) as e:
            self.records = []
            self._last_error = str(e)
            raise type(e)(f"error in amazon walk: {e}", self.name) from e
        self._records_walked = len(self.records)

        try:
            self.save()
        except UpdateError as e:
            self._last_error = str(e)
            raise UpdateError(f"error in amazon save: {e}", self.name) from e
        finally:
            self.records = []

    def walk_func(self, reader: BinaryIO, path: str) -> None:
        """
        Decode one bulletin and add it to the record list.

        Args:
            reader: Open bulletin file
            path: Bulletin path; its parent directory names the version

        Raises:
            DecodeError: If the bulletin is not valid JSON. The record list is
                left as it was.
        """
        info = decode_path(path)
        if info is None:
            return

        if info.version not in self.versions:
            self.logger.info("unsupported amazon version: %s", info.version)
            self._files_skipped += 1
            return

        try:
            alas = decode_alas(reader.read())
        except ValueError as e:
            raise DecodeError(f"failed to decode amazon JSON: {e}", self.name) from e

        self.records.append(AmazonRecord(version=info.version, alas=alas))

    def save(self) -> None:
        self.logger.info("Saving amazon DB")
        self._pending_advisories = 0
        try:
            self.dbc.batch_update(self.commit_func)
        except (VulnSrcError, StorageError) as e:
            raise UpdateError(f"error in batch update: {e}", self.name) from e
        self._advisories_saved = self._pending_advisories

    def commit_func(self, tx: Transaction) -> None:
        """
        Write every walked record into tx.

        Per (vulnerability id, package) pair: the advisory, then the
        vulnerability detail (full databases only), then the severity. The
        first failing write raises and no later write is attempted.

        Raises:
            SaveError: With stage "advisory", "vulnerability detail" or
                "severity"
        """
        for record in self.records:
            alas = record.alas
            platform = PLATFORM_FORMAT.format(record.version)
            severity = severity_from_priority(alas.severity)
            references = [Reference(id=r.id, href=r.href, title=r.title) for r in alas.references]

            for vuln_id in alas.cve_ids:
                for pkg in alas.packages:
                    advisory = Advisory(
                        vulnerability_id=vuln_id,
                        fixed_version=construct_version(pkg.epoch, pkg.version, pkg.release),
                    )
                    try:
                        self.dbc.put_advisory(tx, self.name, platform, pkg.name, advisory)
                    except StorageError as e:
                        raise SaveError(
                            f"failed to save amazon advisory: {e}", "advisory", self.name
                        ) from e
                    self._pending_advisories += 1

                    if not self.light:
                        detail = VulnerabilityDetail(
                            source=self.name,
                            title=alas.id,
                            description=alas.description,
                            references=references,
                            severity=severity,
                        )
                        try:
                            self.dbc.put_vulnerability_detail(tx, self.name, vuln_id, detail)
                        except StorageError as e:
                            raise SaveError(
                                f"failed to save amazon vulnerability detail: {e}",
                                "vulnerability detail", self.name,
                            ) from e

                    try:
                        self.dbc.put_severity(tx, self.name, vuln_id, severity)
                    except StorageError as e:
                        raise SaveError(
                            f"failed to save amazon vulnerability severity: {e}",
                            "severity", self.name,
                        ) from e

    def get(self, version: str, pkg_name: str) -> List[Advisory]:
        """
        Look up advisories for pkg_name on Amazon Linux version.

        Args:
            version: Scanner's version string, e.g. "2"
            pkg_name: RPM package name

        Raises:
            QueryError: If the database read fails
        """
        platform = PLATFORM_FORMAT.format(version)
        try:
            advisories = self.dbc.get_advisories(platform, pkg_name)
        except StorageError as e:
            raise QueryError(f"failed to get Amazon advisories: {e}", self.name) from e
        return advisories if advisories is not None else []
