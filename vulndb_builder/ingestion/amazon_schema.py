"""
Raw shape of an Amazon Linux Security Advisory (ALAS) document.

One JSON file per bulletin, as mirrored into vuln-list/amazon/<version>/:

{
    "id": "ALAS-2019-1234",
    "title": "ALAS-2019-1234: important priority package update for curl",
    "issued": {"date": "2019-06-11 21:55"},
    "updated": {"date": "2019-06-14 19:37"},
    "severity": "important",
    "description": "...",
    "packages": [{"name": "curl", "epoch": "0", "version": "7.61.1",
                  "release": "9.amzn2.0.1", "arch": "x86_64",
                  "filename": "curl-7.61.1-9.amzn2.0.1.x86_64.rpm"}],
    "references": [{"href": "...", "id": "CVE-2019-5436",
                    "title": "CVE-2019-5436", "type": "cve"}],
    "cveids": ["CVE-2019-5436"]
}

Missing fields decode to empty values.
"""
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class Package:
    name: str = ""
    epoch: str = ""
    version: str = ""
    release: str = ""
    arch: str = ""
    filename: str = ""


@dataclass
class ALASReference:
    id: str = ""
    href: str = ""
    title: str = ""
    type: str = ""


@dataclass
class ALAS:
    id: str = ""
    title: str = ""
    issued: str = ""
    updated: str = ""
    severity: str = ""
    description: str = ""
    packages: List[Package] = field(default_factory=list)
    references: List[ALASReference] = field(default_factory=list)
    cve_ids: List[str] = field(default_factory=list)


def _string(raw: Dict[str, Any], key: str) -> str:
    value = raw.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a string, got {type(value).__name__}")
    return value


def _date(raw: Dict[str, Any], key: str) -> str:
    value = raw.get(key) or {}
    if not isinstance(value, dict):
        raise ValueError(f"field {key!r} must be an object")
    return _string(value, "date")


def _objects(raw: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    values = raw.get(key) or []
    if not isinstance(values, list) or not all(isinstance(v, dict) for v in values):
        raise ValueError(f"field {key!r} must be a list of objects")
    return values


def decode_alas(data: bytes) -> ALAS:
    """
    Decode one ALAS JSON document.

    Raises:
        ValueError: If data is not JSON or not shaped like a bulletin
            (json.JSONDecodeError is a ValueError)
    """
    raw = json.loads(data)
    if not isinstance(raw, dict):
        raise ValueError(f"expected a JSON object, got {type(raw).__name__}")

    cve_ids = raw.get("cveids") or []
    if not isinstance(cve_ids, list) or not all(isinstance(c, str) for c in cve_ids):
        raise ValueError("field 'cveids' must be a list of strings")

    return ALAS(
        id=_string(raw, "id"),
        title=_string(raw, "title"),
        issued=_date(raw, "issued"),
        updated=_date(raw, "updated"),
        severity=_string(raw, "severity"),
        description=_string(raw, "description"),
        packages=[
            Package(**{k: _string(p, k) for k in ("name", "epoch", "version", "release", "arch", "filename")})
            for p in _objects(raw, "packages")
        ],
        references=[
            ALASReference(**{k: _string(r, k) for k in ("id", "href", "title", "type")})
            for r in _objects(raw, "references")
        ],
        cve_ids=list(cve_ids),
    )
