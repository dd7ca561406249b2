"""Value objects decoded from envelope ``result`` payloads."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any, ClassVar, TypeVar

from .exceptions import UnexpectedResponseError

R = TypeVar("R", bound="Record")


class Record:
    """Mixin turning API mappings into dataclass instances.

    Only known fields are copied; the complete payload stays available as
    ``raw``. Members listed in ``nested`` are decoded as lists of records.
    """

    __slots__ = ()

    nested: ClassVar[dict[str, type[Record]]] = {}

    @classmethod
    def from_api(cls: type[R], payload: Any) -> R:
        if not isinstance(payload, Mapping):
            raise UnexpectedResponseError(
                f"Expected a {cls.__name__} object, got {type(payload).__name__}",
                details=payload,
            )
        values: dict[str, Any] = {}
        for item in fields(cls):  # type: ignore[arg-type]
            if item.name == "raw":
                continue
            value = payload.get(item.name)
            if value is None:
                continue
            record_type = cls.nested.get(item.name)
            if record_type is not None:
                value = record_type.many_from_api(value)
            values[item.name] = value
        return cls(raw=dict(payload), **values)  # type: ignore[call-arg]

    @classmethod
    def many_from_api(cls: type[R], payload: Any) -> list[R]:
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise UnexpectedResponseError(
                f"Expected a list of {cls.__name__} objects, got {type(payload).__name__}",
                details=payload,
            )
        return [cls.from_api(item) for item in payload]


@dataclass(slots=True)
class Lun(Record):
    """A volume mapping owned by a host or, when ``clustered``, a host cluster."""

    id: int = 0
    lun: int = 0
    clustered: bool = False
    host_cluster_id: int = 0
    volume_id: int = 0
    host_id: int = 0
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    def describe(self) -> str:
        if self.clustered:
            return f"host cluster {self.host_cluster_id} LUN {self.lun}"
        return f"host {self.host_id} LUN {self.lun}"


@dataclass(slots=True)
class Volume(Record):
    id: int = 0
    name: str = ""
    size: int = 0
    used: int = 0
    allocated: int = 0
    pool_id: int = 0
    pool_name: str = ""
    provtype: str = ""
    type: str = ""
    mapped: bool = False
    write_protected: bool = False
    ssd_enabled: bool = False
    compression_enabled: bool = False
    parent_id: int = 0
    family_id: int = 0
    depth: int = 0
    has_children: bool = False
    serial: str = ""
    tenant_id: int = 0
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)


@dataclass(slots=True)
class Port(Record):
    host_id: int = 0
    type: str = ""
    address: str = ""
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)


@dataclass(slots=True)
class Host(Record):
    nested: ClassVar[dict[str, type[Record]]] = {"ports": Port, "luns": Lun}

    id: int = 0
    name: str = ""
    host_type: str = ""
    host_cluster_id: int = 0
    security_method: str = ""
    san_client_type: str = ""
    ports: list[Port] = field(default_factory=list)
    luns: list[Lun] = field(default_factory=list)
    tenant_id: int = 0
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)


@dataclass(slots=True)
class HostCluster(Record):
    nested: ClassVar[dict[str, type[Record]]] = {"hosts": Host, "luns": Lun}

    id: int = 0
    name: str = ""
    host_type: str = ""
    san_client_type: str = ""
    hosts: list[Host] = field(default_factory=list)
    luns: list[Lun] = field(default_factory=list)
    tenant_id: int = 0
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)


@dataclass(slots=True)
class Pool(Record):
    id: int = 0
    name: str = ""
    state: str = ""
    physical_capacity: int = 0
    virtual_capacity: int = 0
    free_physical_space: int = 0
    free_virtual_space: int = 0
    ssd_enabled: bool = False
    compression_enabled: bool = False
    volumes_count: int = 0
    snapshots_count: int = 0
    tenant_id: int = 0
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)


@dataclass(slots=True)
class Tenant(Record):
    id: int = 0
    name: str = ""
    short_tenant_key: int = 0
    visible_to_sysadmin: bool = False
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)


@dataclass(slots=True)
class Metadata(Record):
    id: int = 0
    object_id: int = 0
    key: str = ""
    value: Any = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)


@dataclass(slots=True)
class Initiator(Record):
    address: str = ""
    host_id: int = 0
    port_key: float = 0
    type: str = ""
    targets: list[dict[str, Any]] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)


@dataclass(slots=True)
class Heartbeat(Record):
    """Status report a plugin sends to the array."""

    entity_counts: list[dict[str, Any]] = field(default_factory=list)
    health_state: dict[str, Any] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    def payload(self) -> dict[str, Any]:
        return {"entity_counts": list(self.entity_counts), "health_state": dict(self.health_state)}


@dataclass(slots=True)
class Plugin(Record):
    id: int = 0
    type: str = ""
    name: str = ""
    version: str = ""
    api_redirect_suffix: str = ""
    management_url: str = ""
    max_sec_without_heartbeat: int = 0
    created_at: int = 0
    updated_at: int = 0
    tenant_id: int = 0
    capacity: dict[str, Any] = field(default_factory=dict)
    last_heartbeat: int = 0
    heartbeat_valid: bool = False
    heartbeat: dict[str, Any] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)


def object_id(value: Record | int) -> int:
    """Accept a record or a bare id."""

    if isinstance(value, int):
        return value
    return int(getattr(value, "id"))


def object_label(value: Record | int) -> str:
    """Name of a record, falling back to its id."""

    if isinstance(value, int):
        return str(value)
    return str(getattr(value, "name", "") or getattr(value, "id"))


__all__ = [
    "Heartbeat",
    "Host",
    "HostCluster",
    "Initiator",
    "Lun",
    "Metadata",
    "Plugin",
    "Pool",
    "Port",
    "Record",
    "Tenant",
    "Volume",
    "object_id",
    "object_label",
]
