"""
Lightweight tests for the database access layer.

These tests validate core functionality without mocking:
- Advisory writes and cross-source lookups
- Vulnerability detail and severity storage
- Metadata singleton
- Rollback of a failed batch
"""
import json
from datetime import datetime

import pytest

from storage import (
    SCHEMA_VERSION,
    Advisory,
    Database,
    DBType,
    Metadata,
    Reference,
    Severity,
    StorageError,
    VulnerabilityDetail,
)


def test_get_advisories_across_sources(temp_db):
    def _put(tx):
        temp_db.put_advisory(tx, "amazon", "amazon linux 2", "curl",
                             Advisory("CVE-2019-5436", "7.61.1-11.amzn2"))
        temp_db.put_advisory(tx, "amazon", "amazon linux 2", "curl",
                             Advisory("CVE-2018-1000120", "7.55.1-1.amzn2"))
        temp_db.put_advisory(tx, "alas-extras", "amazon linux 2", "curl",
                             Advisory("CVE-2020-8177", "", ["< 7.71.0"]))
        temp_db.put_advisory(tx, "amazon", "amazon linux 1", "curl",
                             Advisory("CVE-2019-5436", "7.61.1-12.91.amzn1"))

    temp_db.batch_update(_put)

    assert temp_db.get_advisories("amazon linux 2", "curl") == [
        Advisory("CVE-2020-8177", "", ["< 7.71.0"]),
        Advisory("CVE-2018-1000120", "7.55.1-1.amzn2"),
        Advisory("CVE-2019-5436", "7.61.1-11.amzn2"),
    ]


def test_get_advisories_empty(temp_db):
    result = temp_db.get_advisories("amazon linux 2", "bash")

    assert result == []
    assert result is not None


def test_put_advisory_overwrites_same_id(temp_db):
    def _put(tx):
        temp_db.put_advisory(tx, "amazon", "amazon linux 2", "curl", Advisory("CVE-1", "1.0"))
        temp_db.put_advisory(tx, "amazon", "amazon linux 2", "curl", Advisory("CVE-1", "2.0"))

    temp_db.batch_update(_put)
    temp_db.batch_update(lambda tx: temp_db.put_advisory(
        tx, "amazon", "amazon linux 2", "curl", Advisory("CVE-1", "3.0")))

    assert temp_db.get_advisories("amazon linux 2", "curl") == [Advisory("CVE-1", "3.0")]


def test_for_each_advisory(temp_db):
    def _put(tx):
        temp_db.put_advisory(tx, "amazon", "amazon linux 2", "curl", Advisory("CVE-1", "1.0"))
        temp_db.put_advisory(tx, "amazon", "amazon linux 2", "bash", Advisory("CVE-2", "4.2"))
        temp_db.put_advisory(tx, "amazon", "amazon linux 1", "zsh", Advisory("CVE-3", "5.0"))

    temp_db.batch_update(_put)

    packages = temp_db.for_each_advisory("amazon", "amazon linux 2")

    assert set(packages) == {"curl", "bash"}
    assert json.loads(packages["curl"]) == [
        {"vulnerability_id": "CVE-1", "fixed_version": "1.0"}
    ]
    assert temp_db.for_each_advisory("amazon", "amazon linux 3") == {}


def test_vulnerability_detail_by_source(temp_db):
    detail = VulnerabilityDetail(
        source="amazon",
        title="ALAS2-2019-1326",
        description="bash privilege mode",
        references=[Reference("CVE-2019-18276", "http://cve.mitre.org/x", "CVE-2019-18276")],
        severity=Severity.HIGH,
    )

    temp_db.batch_update(
        lambda tx: temp_db.put_vulnerability_detail(tx, "amazon", "CVE-2019-18276", detail)
    )

    assert temp_db.get_vulnerability("CVE-2019-18276") == {"amazon": detail}
    assert temp_db.get_vulnerability("CVE-0000-0000") == {}


def test_severity_per_source(temp_db):
    def _put(tx):
        temp_db.put_severity(tx, "amazon", "CVE-1", Severity.HIGH)
        temp_db.put_severity(tx, "redhat", "CVE-1", Severity.MEDIUM)

    temp_db.batch_update(_put)

    assert temp_db.get_severity("CVE-1") == {"amazon": Severity.HIGH, "redhat": Severity.MEDIUM}


def test_failed_batch_rolls_back(temp_db):
    def _put(tx):
        temp_db.put_advisory(tx, "amazon", "amazon linux 2", "curl", Advisory("CVE-1", "1.0"))
        temp_db.put_severity(tx, "amazon", "CVE-1", Severity.LOW)
        raise StorageError("write failed")

    with pytest.raises(StorageError, match="write failed"):
        temp_db.batch_update(_put)

    assert temp_db.get_advisories("amazon linux 2", "curl") == []
    assert temp_db.get_severity("CVE-1") == {}


def test_put_nested_bucket_intermediate_bucket_error(temp_db):
    def _put(tx):
        temp_db.put_nested_bucket(tx, "advisory", "amazon", value={"x": 1})
        temp_db.put_nested_bucket(tx, "advisory", "amazon", "amazon linux 2", "curl", value={})

    with pytest.raises(StorageError, match="incompatible value"):
        temp_db.batch_update(_put)


def test_metadata_roundtrip_and_version(temp_db):
    assert temp_db.get_metadata() is None

    updated_at = datetime(2020, 1, 1, 12, 0, 0)
    temp_db.set_metadata(Metadata(
        version=SCHEMA_VERSION,
        type=DBType.LIGHT,
        updated_at=updated_at,
        next_update=datetime(2020, 1, 2, 0, 0, 0),
    ))
    temp_db.set_version(7)

    metadata = temp_db.get_metadata()
    assert metadata.version == 7
    assert metadata.type == DBType.LIGHT
    assert metadata.updated_at == updated_at


def test_set_version_without_metadata(temp_db):
    temp_db.set_version(3)

    assert temp_db.get_metadata().version == 3


def test_delete_vulnerability_detail_bucket(temp_db):
    def _put(tx):
        temp_db.put_vulnerability_detail(tx, "amazon", "CVE-1", VulnerabilityDetail(source="amazon"))
        temp_db.put_severity(tx, "amazon", "CVE-1", Severity.LOW)

    temp_db.batch_update(_put)
    temp_db.delete_vulnerability_detail_bucket()
    temp_db.delete_vulnerability_detail_bucket()

    assert temp_db.get_vulnerability("CVE-1") == {}
    assert temp_db.get_severity("CVE-1") == {"amazon": Severity.LOW}


def test_data_survives_reopen(tmp_path):
    path = str(tmp_path / "reopen.duckdb")

    with Database(path) as db:
        db.batch_update(lambda tx: db.put_advisory(
            tx, "amazon", "amazon linux 2", "curl", Advisory("CVE-1", "1.0")))

    with Database(path) as db:
        assert db.get_advisories("amazon linux 2", "curl") == [Advisory("CVE-1", "1.0")]


def test_listing_helpers(temp_db):
    def _put(tx):
        temp_db.put_advisory(tx, "amazon", "amazon linux 2", "curl", Advisory("CVE-2", "1.0"))
        temp_db.put_advisory(tx, "amazon", "amazon linux 2", "bash", Advisory("CVE-1", "1.0"))
        temp_db.put_advisory(tx, "amazon", "amazon linux 2", "zsh", Advisory("CVE-1", "1.0"))

    temp_db.batch_update(_put)

    assert temp_db.list_sources() == ["amazon"]
    assert temp_db.list_platforms("amazon") == ["amazon linux 2"]
    assert temp_db.list_vulnerability_ids("amazon", "amazon linux 2") == ["CVE-1", "CVE-2"]
