"""Core data types shared across the auditor.

Every classification result flows through these types. The console
summary, the CSV rows and the nested JSON are all projections of one
AuditResult - nothing downstream recomputes membership on its own.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional


ACTIVE = "ACTIVE"

EMPTY_MAP_LABEL = "No properties found"
ERROR_SUFFIX = " [ERROR]"
UNPROTECTED_LABEL = "UNPROTECTED"


class Environment(Enum):
    """Activation network a run is scoped to. One per run, never mixed."""
    PRODUCTION = "PRODUCTION"
    STAGING = "STAGING"

    @property
    def status_field(self) -> str:
        """Record key holding the activation status for this network."""
        if self is Environment.STAGING:
            return "stagingStatus"
        return "productionStatus"

    @classmethod
    def from_flag(cls, staging: bool) -> "Environment":
        return cls.STAGING if staging else cls.PRODUCTION


class PropertyKind(Enum):
    """What a ClassifiedProperty entry actually represents.

    PROPERTY: a real, active property version
    EMPTY_MAP: placeholder recording that a shield map matched nothing
    ENRICHMENT_FAILED: real property whose hostname lookup failed
    """
    PROPERTY = "property"
    EMPTY_MAP = "empty_map"
    ENRICHMENT_FAILED = "enrichment_failed"


class AuditMode(Enum):
    """Output shape selected for a run."""
    AUDIT = "audit"
    PROTECTED_ONLY = "protected"
    UNPROTECTED_ONLY = "unprotected"


@dataclass(frozen=True)
class PropertyKey:
    """Identity of a deployed property version.

    Structural key - no string concatenation, so an id containing any
    separator character can never collide with another pair.
    """
    property_id: str
    property_version: int


@dataclass(frozen=True)
class PropertyVersion:
    """One property version as returned by the search API."""
    property_id: str
    property_version: int
    property_name: str
    production_status: str = "INACTIVE"
    staging_status: str = "INACTIVE"
    contract_id: Optional[str] = None
    group_id: Optional[str] = None

    @property
    def key(self) -> PropertyKey:
        return PropertyKey(self.property_id, self.property_version)

    def status_in(self, environment: Environment) -> str:
        if environment is Environment.STAGING:
            return self.staging_status
        return self.production_status

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "PropertyVersion":
        """Build from a raw search record (camelCase API keys)."""
        return cls(
            property_id=str(record["propertyId"]),
            property_version=int(record["propertyVersion"]),
            property_name=record.get("propertyName") or str(record["propertyId"]),
            production_status=record.get("productionStatus") or "INACTIVE",
            staging_status=record.get("stagingStatus") or "INACTIVE",
            contract_id=record.get("contractId"),
            group_id=record.get("groupId"),
        )


@dataclass
class ClassifiedProperty:
    """A property version placed in a partition, plus its hostnames.

    The kind flag carries state; display_name keeps the historical text
    ("No properties found", "<name> [ERROR]") so existing exports still read
    the same.
    """
    version: PropertyVersion
    hostnames: List[str] = field(default_factory=list)
    kind: PropertyKind = PropertyKind.PROPERTY

    @classmethod
    def empty_marker(cls) -> "ClassifiedProperty":
        placeholder = PropertyVersion(
            property_id="",
            property_version=0,
            property_name=EMPTY_MAP_LABEL,
        )
        return cls(version=placeholder, kind=PropertyKind.EMPTY_MAP)

    @property
    def is_sentinel(self) -> bool:
        return self.kind is PropertyKind.EMPTY_MAP

    @property
    def failed(self) -> bool:
        return self.kind is PropertyKind.ENRICHMENT_FAILED

    @property
    def key(self) -> PropertyKey:
        return self.version.key

    @property
    def display_name(self) -> str:
        if self.failed:
            return f"{self.version.property_name}{ERROR_SUFFIX}"
        return self.version.property_name

    @property
    def joined_hostnames(self) -> str:
        return ", ".join(self.hostnames)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for nested JSON export."""
        return {
            'propertyId': self.version.property_id,
            'propertyVersion': self.version.property_version,
            'propertyName': self.display_name,
            'productionStatus': self.version.production_status,
            'stagingStatus': self.version.staging_status,
            'contractId': self.version.contract_id,
            'groupId': self.version.group_id,
            'hostnames': list(self.hostnames),
            'kind': self.kind.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClassifiedProperty":
        kind = PropertyKind(data.get('kind', PropertyKind.PROPERTY.value))
        name = data.get('propertyName', '')
        if kind is PropertyKind.ENRICHMENT_FAILED and name.endswith(ERROR_SUFFIX):
            name = name[:-len(ERROR_SUFFIX)]
        version = PropertyVersion(
            property_id=str(data.get('propertyId', '')),
            property_version=int(data.get('propertyVersion', 0)),
            property_name=name,
            production_status=data.get('productionStatus') or "INACTIVE",
            staging_status=data.get('stagingStatus') or "INACTIVE",
            contract_id=data.get('contractId'),
            group_id=data.get('groupId'),
        )
        return cls(version=version, hostnames=list(data.get('hostnames') or []), kind=kind)


@dataclass
class MapBucket:
    """All active properties bound to one shield map."""
    map_name: str
    properties: List[ClassifiedProperty] = field(default_factory=list)

    @property
    def real_properties(self) -> List[ClassifiedProperty]:
        """Entries that count - the empty marker is never a property."""
        return [p for p in self.properties if not p.is_sentinel]

    @property
    def is_empty(self) -> bool:
        return not self.real_properties

    def to_dict(self) -> Dict[str, Any]:
        return {
            'shieldMap': self.map_name,
            'properties': [p.to_dict() for p in self.properties],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MapBucket":
        return cls(
            map_name=data['shieldMap'],
            properties=[ClassifiedProperty.from_dict(p) for p in data.get('properties', [])],
        )


@dataclass
class AuditResult:
    """Protected buckets plus the flat unprotected list.

    Single source of truth for every display mode and export format.
    """
    protected: List[MapBucket] = field(default_factory=list)
    unprotected: List[ClassifiedProperty] = field(default_factory=list)

    def all_protected_entries(self) -> List[ClassifiedProperty]:
        return [p for bucket in self.protected for p in bucket.real_properties]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'protected': [b.to_dict() for b in self.protected],
            'unprotected': [p.to_dict() for p in self.unprotected],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuditResult":
        return cls(
            protected=[MapBucket.from_dict(b) for b in data.get('protected', [])],
            unprotected=[ClassifiedProperty.from_dict(p) for p in data.get('unprotected', [])],
        )


@dataclass
class AuditConfig:
    """Runtime configuration for one audit run.

    Values come from .env / environment, then CLI flags override.
    """
    edgerc_path: str = "~/.edgerc"
    section: str = "default"
    account_switch_key: Optional[str] = None
    staging: bool = False
    map_name: Optional[str] = None
    show_protected: bool = False
    show_unprotected: bool = False

    # Performance tuning
    max_workers: int = 4
    rate_limit_delay: float = 0.0  # seconds between API calls, all workers
    http_timeout: float = 30.0

    # Search
    universe_match: Optional[str] = None

    # Output
    out_dir: str = "out"
    csv_path: Optional[str] = None
    json_path: Optional[str] = None
    enable_excel: bool = False
    show_progress: bool = True

    @property
    def environment(self) -> Environment:
        return Environment.from_flag(self.staging)

    @property
    def single_map(self) -> bool:
        return bool(self.map_name)

    def to_dict(self) -> Dict[str, Any]:
        """Config snapshot for run metadata. Credentials are never included."""
        return {
            'section': self.section,
            'environment': self.environment.value,
            'map_name': self.map_name,
            'show_protected': self.show_protected,
            'show_unprotected': self.show_unprotected,
            'max_workers': self.max_workers,
            'rate_limit_delay': self.rate_limit_delay,
            'http_timeout': self.http_timeout,
            'universe_match': self.universe_match,
            'enable_excel': self.enable_excel,
        }
