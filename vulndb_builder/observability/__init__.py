"""
Observability layer for database builds.

Main exports:
- BuildMetrics: Tracks metrics for a build
- QualityChecker: Runs data quality checks on the built database
- QualityCheckResult: Result of a quality check
- BuildReporter: Generates Markdown reports
"""
from .metrics import BuildMetrics
from .quality_checks import QualityChecker, QualityCheckResult
from .reporter import BuildReporter

__all__ = [
    "BuildMetrics",
    "QualityChecker",
    "QualityCheckResult",
    "BuildReporter",
]
