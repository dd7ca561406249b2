"""Host cluster operations.

Calls that change a cluster's membership or LUN mappings hold the client's
per-cluster lock, so concurrent callers never interleave changes to the
same cluster.
"""

from __future__ import annotations

import logging
from typing import Any

from ..config import TenantScope
from ..models import Host, HostCluster, Lun, Volume
from .base import APPROVED, CollectionResource, object_id, object_label

logger = logging.getLogger(__name__)


class HostClustersResource(CollectionResource[HostCluster]):
    collection = "clusters"
    label = "host cluster"
    record_type = HostCluster

    def create(self, name: str, *, scope: TenantScope | None = None) -> HostCluster:
        logger.debug("Creating host cluster: %s", name)
        with self._operation("error creating host cluster", name):
            cluster = HostCluster.from_api(
                self._post("clusters", {"name": name}, scope=scope, scope_via="header")
            )
        logger.debug("Successfully created host cluster %s", name)
        return cluster

    def rename(self, cluster: HostCluster | int, name: str) -> HostCluster:
        return self._update(cluster, {"name": name})

    def get_hosts(self, cluster: HostCluster | int) -> list[Host]:
        with self._operation("error getting hosts of host cluster", object_label(cluster)):
            return Host.many_from_api(self._get(f"clusters/{object_id(cluster)}/hosts"))

    def add_host(self, cluster: HostCluster | int, host: Host | int) -> Host:
        cluster_id = object_id(cluster)
        logger.debug("Adding host %s to host cluster %s", object_label(host), object_label(cluster))
        with self._client.cluster_locks.hold(cluster_id):
            with self._operation("error adding host to host cluster", object_label(cluster)):
                return Host.from_api(
                    self._post(f"clusters/{cluster_id}/hosts", {"id": object_id(host)}, params=APPROVED)
                )

    def remove_host(self, cluster: HostCluster | int, host: Host | int) -> Host:
        cluster_id = object_id(cluster)
        logger.debug("Removing host %s from host cluster %s", object_label(host), object_label(cluster))
        with self._client.cluster_locks.hold(cluster_id):
            with self._operation("error removing host from host cluster", object_label(cluster)):
                return Host.from_api(self._delete(f"clusters/{cluster_id}/hosts/{object_id(host)}"))

    def get_luns(self, cluster: HostCluster | int) -> list[Lun]:
        cluster_id = object_id(cluster)
        with self._client.cluster_locks.hold(cluster_id):
            with self._operation("error getting luns of host cluster", object_label(cluster)):
                return Lun.many_from_api(self._get(f"clusters/{cluster_id}/luns"))

    def map_volume(self, cluster: HostCluster | int, volume: Volume | int, lun: int | None = None) -> Lun:
        """Expose ``volume`` to every member host of the cluster."""

        cluster_id = object_id(cluster)
        payload: dict[str, Any] = {"volume_id": object_id(volume)}
        if lun is not None and lun > 0:
            payload["lun"] = lun
        logger.debug("Mapping volume %s to host cluster %s", object_label(volume), object_label(cluster))
        with self._client.cluster_locks.hold(cluster_id):
            with self._operation("error adding lun to host cluster", object_label(cluster)):
                mapped = Lun.from_api(self._post(f"clusters/{cluster_id}/luns", payload, params=APPROVED))
        logger.debug("Successfully added LUN %s to host cluster %s", mapped.lun, object_label(cluster))
        return mapped

    def delete_lun(self, cluster: HostCluster | int, lun_number: int) -> Lun:
        """Remove the mapping at ``lun_number`` from the cluster and all its hosts."""

        cluster_id = object_id(cluster)
        logger.debug("Deleting host cluster: %s lun ID %d", object_label(cluster), lun_number)
        with self._client.cluster_locks.hold(cluster_id):
            with self._operation(
                "error deleting lun of host cluster", f"{object_label(cluster)} LUN {lun_number}"
            ):
                deleted = Lun.from_api(self._delete(f"clusters/{cluster_id}/luns/lun/{lun_number}"))
        logger.debug("Successfully deleted host cluster %s LUN %d", object_label(cluster), lun_number)
        return deleted
