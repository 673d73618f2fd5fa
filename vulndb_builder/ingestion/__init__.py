"""
Ingestion layer for the vulnerability database.

Provides sources that normalize raw vendor feeds from the local cache into
canonical database records:
- Amazon Linux Security Advisories (ALAS)
"""
from .amazon import AmazonSource, construct_version, decode_path, severity_from_priority
from .base_source import SourceHealth, VulnSource
from .exceptions import (
    DecodeError,
    QueryError,
    SaveError,
    UpdateError,
    VulnSrcError,
    WalkError,
)

__all__ = [
    "VulnSource",
    "SourceHealth",
    "AmazonSource",
    "construct_version",
    "decode_path",
    "severity_from_priority",
    "VulnSrcError",
    "WalkError",
    "DecodeError",
    "SaveError",
    "UpdateError",
    "QueryError",
]
