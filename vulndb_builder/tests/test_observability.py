"""
Lightweight validation tests for the observability layer.

These tests verify:
- BuildMetrics folds source health into totals
- BuildMetrics serializes to dict properly
- QualityChecker flags an empty database and passes a built one
- BuildReporter generates valid Markdown output
"""
import tempfile
from datetime import datetime
from pathlib import Path

import pytest

from ingestion import AmazonSource, SourceHealth
from observability import BuildMetrics, BuildReporter, QualityChecker, QualityCheckResult
from storage import SCHEMA_VERSION, Advisory, Metadata


def _health(**overrides):
    values = dict(
        source_id="amazon",
        is_healthy=True,
        last_update=datetime(2020, 1, 1),
        records_walked=2,
        files_skipped=1,
        advisories_saved=5,
    )
    values.update(overrides)
    return SourceHealth(**values)


def test_build_metrics_records_source():
    metrics = BuildMetrics(build_id="test_build", started_at=datetime.utcnow())

    metrics.record_source(_health())

    assert metrics.records_walked == 2
    assert metrics.files_skipped == 1
    assert metrics.advisories_saved == 5
    assert metrics.source_health["amazon"]["healthy"] is True


def test_build_metrics_serialization():
    metrics = BuildMetrics(
        build_id="test_build",
        started_at=datetime(2024, 1, 15, 12, 0, 0),
        completed_at=datetime(2024, 1, 15, 12, 5, 30),
        db_type="light",
    )
    metrics.record_error("walk failed", context={"source": "amazon"})

    data = metrics.to_dict()

    assert data["build_id"] == "test_build"
    assert data["db_type"] == "light"
    assert data["errors"] == 1
    assert data["issues"][0]["context"]["source"] == "amazon"
    assert isinstance(data["started_at"], str)


def test_quality_checker_on_empty_db(temp_db):
    results = QualityChecker(temp_db).run_all_checks()

    assert len(results) == 4
    by_name = {r.check_name: r for r in results}
    assert not by_name["metadata_present"].passed
    assert not by_name["schema_version"].passed
    assert not by_name["advisories_present"].passed
    assert by_name["severity_coverage"].passed


def test_quality_checker_on_built_db(temp_db, testdata_dir):
    AmazonSource(temp_db).update(testdata_dir)
    temp_db.set_metadata(Metadata(version=SCHEMA_VERSION))

    results = QualityChecker(temp_db).run_all_checks()

    assert all(r.passed for r in results), [r.message for r in results if not r.passed]


def test_quality_checker_flags_missing_severity(temp_db):
    temp_db.batch_update(lambda tx: temp_db.put_advisory(
        tx, "amazon", "amazon linux 2", "curl", Advisory("CVE-1", "1.0")))

    result = QualityChecker(temp_db).check_severity_coverage()

    assert not result.passed
    assert result.details["missing_count"] == 1


def test_reporter_generates_markdown():
    metrics = BuildMetrics(
        build_id="test_build",
        started_at=datetime(2024, 1, 15, 12, 0, 0),
        completed_at=datetime(2024, 1, 15, 12, 5, 30),
    )
    metrics.record_source(_health(advisories_saved=123))

    quality_results = [
        QualityCheckResult("check1", True, "Passed"),
        QualityCheckResult("check2", False, "Failed"),
    ]

    report = BuildReporter().generate_report(metrics, quality_results)

    assert "# Database Build Report" in report
    assert "test_build" in report
    assert "Summary" in report
    assert "Data Quality Checks" in report
    assert "Source Health" in report
    assert "123" in report
    assert "330.0 seconds" in report


def test_reporter_saves_to_file():
    metrics = BuildMetrics(build_id="test_build", started_at=datetime.utcnow())
    reporter = BuildReporter()
    report = reporter.generate_report(metrics, [])

    with tempfile.TemporaryDirectory() as tmpdir:
        report_path = reporter.save_report(report, Path(tmpdir))

        assert report_path.exists()
        assert report_path.name.startswith("build-report-")
        assert report_path.suffix == ".md"
        assert "Database Build Report" in report_path.read_text()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
