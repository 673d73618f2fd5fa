"""
Metrics collection for database builds.

This module provides BuildMetrics, a dataclass that tracks observability
metrics for a single build including:
- Records walked and advisories saved per source
- Files skipped because of unsupported versions
- Source health indicators
- Errors encountered

Design decisions:
- Single metrics object per build for simplicity
- Serializable to_dict() for archiving next to the report
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List


@dataclass
class BuildMetrics:
    """
    Metrics for a single database build.

    Tracks counts, source health, and errors.
    """
    build_id: str
    started_at: datetime
    completed_at: datetime = None
    db_type: str = "full"

    # Core counts
    records_walked: int = 0
    files_skipped: int = 0
    advisories_saved: int = 0
    errors: int = 0

    # Key: source name, Value: dict with health status
    source_health: Dict[str, Dict] = field(default_factory=dict)

    issues: List[Dict] = field(default_factory=list)

    def record_source(self, health) -> None:
        """
        Fold one source's health into the build totals.

        Args:
            health: SourceHealth returned by the source after update()
        """
        self.records_walked += health.records_walked
        self.files_skipped += health.files_skipped
        self.advisories_saved += health.advisories_saved
        self.source_health[health.source_id] = {
            "healthy": health.is_healthy,
            "records": health.records_walked,
            "skipped": health.files_skipped,
            "advisories": health.advisories_saved,
            "error": health.error_message,
        }

    def record_error(self, error: str, context: Dict = None):
        """
        Record an error encountered during the build.

        Args:
            error: Error message
            context: Optional dict with additional context (e.g., source)
        """
        self.errors += 1
        self.issues.append({
            "type": "error",
            "message": error,
            "context": context or {}
        })

    def to_dict(self) -> Dict[str, Any]:
        return {
            "build_id": self.build_id,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "db_type": self.db_type,
            "records_walked": self.records_walked,
            "files_skipped": self.files_skipped,
            "advisories_saved": self.advisories_saved,
            "errors": self.errors,
            "source_health": self.source_health,
            "issues": self.issues,
        }
