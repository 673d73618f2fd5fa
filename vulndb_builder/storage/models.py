"""
Canonical data model persisted in the vulnerability database.

Every vendor source normalizes its raw feed into these types before writing:
- Advisory: one fixed/affected version for one vulnerability in one package
- VulnerabilityDetail: per-source metadata for a vulnerability identifier
- Severity: five-level criticality shared by all sources
- Metadata: singleton describing the build (schema version, timestamps)

Design decisions:
- Plain dataclasses with explicit to_dict()/from_dict() for JSON storage
- Severity is an IntEnum so it serializes as a small integer
- Advisory.vulnerability_id is not serialized; the storage key carries it
"""
import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Any, Dict, List, Optional

SCHEMA_VERSION = 1


class Severity(IntEnum):
    UNKNOWN = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4

    def __str__(self) -> str:
        return self.name


class DBType(IntEnum):
    """Full databases carry vulnerability details, light ones only severities."""
    FULL = 0
    LIGHT = 1


@dataclass
class Advisory:
    vulnerability_id: str
    fixed_version: str = ""
    vulnerable_versions: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"fixed_version": self.fixed_version}
        if self.vulnerable_versions is not None:
            data["vulnerable_versions"] = list(self.vulnerable_versions)
        return data

    @classmethod
    def from_dict(cls, vulnerability_id: str, data: Dict[str, Any]) -> "Advisory":
        return cls(
            vulnerability_id=vulnerability_id,
            fixed_version=data.get("fixed_version", ""),
            vulnerable_versions=data.get("vulnerable_versions"),
        )


@dataclass
class Reference:
    id: str = ""
    href: str = ""
    title: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "href": self.href, "title": self.title}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Reference":
        return cls(
            id=data.get("id", ""),
            href=data.get("href", ""),
            title=data.get("title", ""),
        )


@dataclass
class VulnerabilityDetail:
    """
    Source-reported details of one vulnerability.

    References keep the order the vendor published them in.
    """
    source: str
    title: str = ""
    description: str = ""
    references: List[Reference] = field(default_factory=list)
    severity: Severity = Severity.UNKNOWN

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "title": self.title,
            "description": self.description,
            "references": [ref.to_dict() for ref in self.references],
            "severity": int(self.severity),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VulnerabilityDetail":
        return cls(
            source=data.get("source", ""),
            title=data.get("title", ""),
            description=data.get("description", ""),
            references=[Reference.from_dict(r) for r in data.get("references") or []],
            severity=Severity(data.get("severity", Severity.UNKNOWN)),
        )


@dataclass
class Metadata:
    """
    Build metadata singleton.

    Attributes:
        version: Schema version the database was built with
        type: Full or light database
        updated_at: When the build finished
        next_update: When the next scheduled build is expected
    """
    version: int = SCHEMA_VERSION
    type: DBType = DBType.FULL
    updated_at: Optional[datetime] = None
    next_update: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "type": int(self.type),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "next_update": self.next_update.isoformat() if self.next_update else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Metadata":
        updated_at = data.get("updated_at")
        next_update = data.get("next_update")
        return cls(
            version=int(data.get("version", 0)),
            type=DBType(data.get("type", DBType.FULL)),
            updated_at=datetime.fromisoformat(updated_at) if updated_at else None,
            next_update=datetime.fromisoformat(next_update) if next_update else None,
        )


def to_json(value: Any) -> bytes:
    """Serialize a model (or plain JSON value) to the bytes stored in a bucket."""
    if hasattr(value, "to_dict"):
        value = value.to_dict()
    elif isinstance(value, IntEnum):
        value = int(value)
    return json.dumps(value, sort_keys=True).encode("utf-8")
