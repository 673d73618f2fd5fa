"""
Data quality checks for a built database.

This module implements QualityChecker, which validates the database after
every build, before it is handed to scanners.

Checks implemented:
- Metadata present: the build stamped its metadata singleton
- Schema version: metadata carries the schema version this code writes
- Advisories present: every source produced at least one advisory
- Severity coverage: every stored vulnerability id has a severity entry

Design decisions:
- Each check returns a QualityCheckResult with pass/fail and details
- Checks go through the Database read API, never the raw tables
"""
from typing import Any, Dict, List
from dataclasses import dataclass

from storage import SCHEMA_VERSION


@dataclass
class QualityCheckResult:
    """
    Result of a single quality check.

    Attributes:
        check_name: Unique identifier for the check
        passed: True if check passed, False otherwise
        message: Human-readable summary of the result
        details: Optional dict with additional context (e.g., counts)
    """
    check_name: str
    passed: bool
    message: str
    details: Dict[str, Any] = None


class QualityChecker:
    """
    Runs data quality checks against a built database.
    """

    def __init__(self, database):
        """
        Args:
            database: Open storage.Database
        """
        self.db = database

    def run_all_checks(self) -> List[QualityCheckResult]:
        results = []
        results.append(self.check_metadata_present())
        results.append(self.check_schema_version())
        results.append(self.check_advisories_present())
        results.append(self.check_severity_coverage())
        return results

    def check_metadata_present(self) -> QualityCheckResult:
        metadata = self.db.get_metadata()
        return QualityCheckResult(
            check_name="metadata_present",
            passed=metadata is not None,
            message="Metadata stamped" if metadata is not None else "Metadata missing",
        )

    def check_schema_version(self) -> QualityCheckResult:
        """
        Ensure the database carries the schema version scanners expect.

        Scanners refuse databases with a different version.
        """
        metadata = self.db.get_metadata()
        version = metadata.version if metadata else None
        passed = version == SCHEMA_VERSION
        return QualityCheckResult(
            check_name="schema_version",
            passed=passed,
            message=f"Schema version {version}" if passed
            else f"Schema version {version}, expected {SCHEMA_VERSION}",
            details={"version": version, "expected": SCHEMA_VERSION},
        )

    def check_advisories_present(self) -> QualityCheckResult:
        sources = self.db.list_sources()
        empty = [source for source in sources if not self.db.list_platforms(source)]

        if not sources:
            message = "No advisories stored"
        elif empty:
            message = f"{len(empty)} sources without advisories"
        else:
            message = f"{len(sources)} sources with advisories"

        return QualityCheckResult(
            check_name="advisories_present",
            passed=bool(sources) and not empty,
            message=message,
            details={"sources": sources, "empty": empty},
        )

    def check_severity_coverage(self) -> QualityCheckResult:
        """
        Ensure every vulnerability with an advisory has a severity.

        Light databases drop vulnerability details, so severities are the
        only place scanners find criticality.
        """
        missing = 0
        for source in self.db.list_sources():
            for platform in self.db.list_platforms(source):
                for vuln_id in self.db.list_vulnerability_ids(source, platform):
                    if source not in self.db.get_severity(vuln_id):
                        missing += 1

        return QualityCheckResult(
            check_name="severity_coverage",
            passed=missing == 0,
            message=f"{missing} vulnerabilities without severity" if missing > 0
            else "All vulnerabilities have severity",
            details={"missing_count": missing},
        )
