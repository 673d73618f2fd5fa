"""
Shared pytest fixtures for vulnerability database tests.

This module provides reusable fixtures that simplify test setup
and reduce code duplication across test modules.
"""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from storage import Database
from ingestion.amazon import AmazonRecord
from ingestion.amazon_schema import ALAS, ALASReference, Package
from fakes import FakeDatabase

TESTDATA_DIR = Path(__file__).parent / "testdata"


@pytest.fixture
def temp_db(tmp_path):
    """
    Create a temporary database file for testing.

    Yields:
        Open Database with the bucket tables initialized

    Cleanup:
        Closes the connection; pytest removes tmp_path
    """
    db = Database(str(tmp_path / "vuln.duckdb"))
    db.open()
    yield db
    db.close()


@pytest.fixture
def fake_db():
    """In-memory Operations double that records calls."""
    return FakeDatabase()


@pytest.fixture
def testdata_dir():
    """Cache directory holding vuln-list/amazon/ fixtures."""
    return TESTDATA_DIR


@pytest.fixture
def sample_records():
    """
    One walked Amazon Linux 2 bulletin with one package and one reference.

    Returns:
        List with a single AmazonRecord
    """
    return [
        AmazonRecord(
            version="2",
            alas=ALAS(
                id="ALAS2-2020-1400",
                severity="important",
                description="curl: heap buffer overflow",
                cve_ids=["CVE-2020-0001"],
                references=[
                    ALASReference(
                        id="fooref",
                        href="http://foo.bar/baz",
                        title="bartitle",
                    )
                ],
                packages=[
                    Package(
                        name="testpkg",
                        epoch="123",
                        version="456",
                        release="testing",
                    )
                ],
            ),
        )
    ]
