"""Schema describing important fields for CLI table rendering."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

Row = Mapping[str, Any]
ValueExtractor = Callable[[Row], Any]
ValueFormatter = Callable[[Any], str]
SortKey = Callable[[Row], Any]


@dataclass(frozen=True)
class Column:
    """Describe how to pull and format a column for Rich tables."""

    header: str
    keys: tuple[str, ...] = ()
    extractor: ValueExtractor | None = None
    formatter: ValueFormatter | None = None
    justify: str = "left"

    def render(self, row: Row) -> str:
        value: Any | None = None
        for key in self.keys:
            value = row.get(key)
            if value is not None:
                break
        if value is None and self.extractor:
            value = self.extractor(row)
        if value is None:
            return ""
        if self.formatter:
            return self.formatter(value)
        return str(value)


@dataclass(frozen=True)
class TableView:
    """Describe a Rich table for a CLI command."""

    title: str
    columns: tuple[Column, ...]
    sort_key: SortKey | None = None


def _bytes_formatter(*, precision: int = 2) -> ValueFormatter:
    def _formatter(value: Any) -> str:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return ""
        return f"{value / (1024**3):.{precision}f}"

    return _formatter


def _bool_formatter(value: Any) -> str:
    return "Yes" if bool(value) else "No"


def _count(key: str) -> ValueExtractor:
    def _extractor(row: Row) -> Any:
        items = row.get(key)
        return len(items) if isinstance(items, (list, tuple)) else None

    return _extractor


def _ports(row: Row) -> Any:
    ports = row.get("ports")
    if not isinstance(ports, (list, tuple)):
        return None
    return ", ".join(
        str(port.get("address")) for port in ports if isinstance(port, Mapping) and port.get("address")
    )


def _sort_name(row: Row) -> str:
    return str(row.get("name") or "").lower()


CLI_TABLE_VIEWS: dict[str, TableView] = {
    "volumes.list": TableView(
        title="Volumes",
        columns=(
            Column("Name", keys=("name",)),
            Column("ID", keys=("id",), justify="right"),
            Column("Pool", keys=("pool_name", "pool_id")),
            Column("Type", keys=("type",)),
            Column("Prov", keys=("provtype",)),
            Column("Size (GiB)", keys=("size",), formatter=_bytes_formatter(), justify="right"),
            Column("Used (GiB)", keys=("used",), formatter=_bytes_formatter(), justify="right"),
            Column("Mapped", keys=("mapped",), formatter=_bool_formatter, justify="center"),
            Column("WP", keys=("write_protected",), formatter=_bool_formatter, justify="center"),
        ),
        sort_key=_sort_name,
    ),
    "hosts.list": TableView(
        title="Hosts",
        columns=(
            Column("Name", keys=("name",)),
            Column("ID", keys=("id",), justify="right"),
            Column("Cluster", keys=("host_cluster_id",), justify="right"),
            Column("Ports", extractor=_ports),
            Column("LUNs", extractor=_count("luns"), justify="right"),
            Column("Security", keys=("security_method",)),
        ),
        sort_key=_sort_name,
    ),
    "clusters.list": TableView(
        title="Host Clusters",
        columns=(
            Column("Name", keys=("name",)),
            Column("ID", keys=("id",), justify="right"),
            Column("Hosts", extractor=_count("hosts"), justify="right"),
            Column("LUNs", extractor=_count("luns"), justify="right"),
        ),
        sort_key=_sort_name,
    ),
    "pools.list": TableView(
        title="Storage Pools",
        columns=(
            Column("Name", keys=("name",)),
            Column("ID", keys=("id",), justify="right"),
            Column("Physical (GiB)", keys=("physical_capacity",), formatter=_bytes_formatter(precision=1), justify="right"),
            Column("Free phys (GiB)", keys=("free_physical_space",), formatter=_bytes_formatter(precision=1), justify="right"),
            Column("Virtual (GiB)", keys=("virtual_capacity",), formatter=_bytes_formatter(precision=1), justify="right"),
            Column("Free virt (GiB)", keys=("free_virtual_space",), formatter=_bytes_formatter(precision=1), justify="right"),
            Column("State", keys=("state",)),
        ),
        sort_key=_sort_name,
    ),
    "volumes.luns": TableView(
        title="Removed Mappings",
        columns=(
            Column("LUN", keys=("lun",), justify="right"),
            Column("Cluster", keys=("host_cluster_id",), justify="right"),
            Column("Host", keys=("host_id",), justify="right"),
            Column("Clustered", keys=("clustered",), formatter=_bool_formatter, justify="center"),
        ),
    ),
}
