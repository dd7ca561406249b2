"""Detach a volume from every host and host cluster that maps it.

Mappings are removed in two strictly sequential passes:

1. LUNs owned by a host cluster are deleted through the cluster endpoint
   (``clusters/<id>/luns/lun/<n>``). The per-host ``host_id`` on such a
   record is never used to address the delete.
2. The LUN set is fetched again and every remaining host mapping is deleted
   through ``hosts/<id>/luns/lun/<n>``.

The first failing delete stops the workflow with `PartialDetachmentError`.
Nothing is rolled back; running `VolumeDetacher.unmap` again picks up the
mappings that are left.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .exceptions import InfiniBoxError, PartialDetachmentError
from .models import Lun, Volume, object_label

if TYPE_CHECKING:  # pragma: no cover - import-time guard
    from .client import InfiniBoxClient

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DetachmentReport:
    """What `VolumeDetacher.unmap` removed."""

    volume_id: int
    volume_name: str
    was_mapped: bool = True
    cluster_luns: list[Lun] = field(default_factory=list)
    host_luns: list[Lun] = field(default_factory=list)

    @property
    def removed(self) -> list[Lun]:
        return [*self.cluster_luns, *self.host_luns]


class VolumeDetacher:
    """Make a volume safe to delete by removing all of its LUN mappings."""

    def __init__(self, client: InfiniBoxClient) -> None:
        self._client = client

    def unmap(self, volume: Volume | int) -> DetachmentReport:
        label = object_label(volume)
        logger.debug("Unmapping volume: %s luns", label)

        # the caller's copy of ``mapped`` may be stale
        with _unmapping(label):
            current = self._client.volumes.get(volume)
        report = DetachmentReport(volume_id=current.id, volume_name=current.name or label)
        if not current.mapped:
            logger.info("volume %s is not mapped", label)
            report.was_mapped = False
            return report

        with _unmapping(label):
            luns = self._client.volumes.get_luns(current)
        self._detach_cluster_luns(label, luns, report)

        with _unmapping(label):
            luns = self._client.volumes.get_luns(current)
        self._detach_host_luns(label, luns, report)

        logger.debug(
            "Successfully unmapped volume %s (%d cluster LUNs, %d host LUNs)",
            label,
            len(report.cluster_luns),
            len(report.host_luns),
        )
        return report

    def _detach_cluster_luns(self, label: str, luns: list[Lun], report: DetachmentReport) -> None:
        seen: set[tuple[int, int]] = set()
        for lun in luns:
            if not (lun.clustered and lun.host_cluster_id):
                continue
            key = (lun.host_cluster_id, lun.lun)
            # one entry per cluster member host is possible
            if key in seen:
                continue
            seen.add(key)
            logger.info("unmapping host cluster LUN %s from volume %s", lun.describe(), label)
            try:
                self._client.clusters.delete_lun(lun.host_cluster_id, lun.lun)
            except InfiniBoxError as exc:
                raise _partial(label, "cluster", lun.host_cluster_id, lun, report, exc) from exc
            report.cluster_luns.append(lun)
            logger.info("unmapped host cluster LUN %s from volume %s", lun.describe(), label)

    def _detach_host_luns(self, label: str, luns: list[Lun], report: DetachmentReport) -> None:
        for lun in luns:
            if lun.clustered:
                raise PartialDetachmentError(
                    f"unmapping volume {label} stopped at {lun.describe()}: "
                    "clustered LUN is still mapped and cannot be removed through a host",
                    owner_kind="cluster",
                    owner_id=lun.host_cluster_id,
                    lun=lun.lun,
                    removed=report.removed,
                    target=label,
                )
            logger.info("unmapping host LUN %s from volume %s", lun.describe(), label)
            try:
                self._client.hosts.delete_lun(lun.host_id, lun.lun)
            except InfiniBoxError as exc:
                raise _partial(label, "host", lun.host_id, lun, report, exc) from exc
            report.host_luns.append(lun)
            logger.info("unmapped host LUN %s from volume %s", lun.describe(), label)


@contextmanager
def _unmapping(label: str) -> Iterator[None]:
    """Name the volume on failures outside the delete passes."""

    try:
        yield
    except InfiniBoxError as exc:
        raise exc.for_target("error unmapping volume", label) from exc


def _partial(
    label: str,
    owner_kind: str,
    owner_id: int,
    lun: Lun,
    report: DetachmentReport,
    exc: InfiniBoxError,
) -> PartialDetachmentError:
    owner = "host cluster" if owner_kind == "cluster" else "host"
    logger.error(
        "unmapping volume %s failed at %s %d LUN %d after removing %d mappings",
        label,
        owner,
        owner_id,
        lun.lun,
        len(report.removed),
    )
    return PartialDetachmentError(
        f"unmapping volume {label} stopped at {owner} {owner_id} LUN {lun.lun}: {exc}",
        owner_kind=owner_kind,
        owner_id=owner_id,
        lun=lun.lun,
        removed=report.removed,
        status_code=exc.status_code,
        details=exc.details,
        target=label,
    )
