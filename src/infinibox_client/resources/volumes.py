"""Volume operations."""

from __future__ import annotations

import logging
import uuid
from typing import Any

from ..config import TenantScope
from ..detach import DetachmentReport, VolumeDetacher
from ..exceptions import RemoteAPIError
from ..models import Lun, Volume
from .base import APPROVED, CollectionResource, object_id, object_label

logger = logging.getLogger(__name__)


class VolumesResource(CollectionResource[Volume]):
    """Interact with InfiniBox volumes and their snapshots."""

    collection = "volumes"
    label = "volume"
    record_type = Volume

    def create(
        self,
        name: str,
        pool_id: int,
        size: int,
        *,
        provtype: str = "THIN",
        write_protected: bool = False,
        ssd_enabled: bool = True,
        scope: TenantScope | None = None,
    ) -> Volume:
        """Create a volume of ``size`` bytes in ``pool_id``."""

        logger.debug("Creating volume: %s", name)
        payload = {
            "name": name,
            "pool_id": pool_id,
            "size": size,
            "provtype": provtype or "THIN",
            "write_protected": write_protected,
            "ssd_enabled": ssd_enabled,
        }
        with self._operation("error creating volume", name):
            volume = Volume.from_api(
                self._post("volumes", payload, scope=scope, scope_via="header")
            )
        logger.debug("Successfully created volume %s", name)
        return volume

    def get_luns(self, volume: Volume | int) -> list[Lun]:
        """Return every LUN mapping that references the volume."""

        logger.debug("Getting volume: %s luns", object_label(volume))
        with self._operation("error getting luns of volume", object_label(volume)):
            luns = Lun.many_from_api(self._get(f"volumes/{object_id(volume)}/luns"))
        logger.debug("Fetched %d LUNs for volume %s", len(luns), object_label(volume))
        return luns

    def unmap(self, volume: Volume | int) -> DetachmentReport:
        """Remove every host-cluster and host mapping of the volume."""

        return VolumeDetacher(self._client).unmap(volume)

    def unmap_and_delete(self, volume: Volume | int) -> Volume:
        """Detach the volume from all hosts and clusters, then delete it."""

        self.unmap(volume)
        return self.delete(volume)

    def rename(self, volume: Volume | int, name: str) -> Volume:
        return self._update(volume, {"name": name})

    def set_provisioning(self, volume: Volume | int, provtype: str) -> Volume:
        return self._update(volume, {"provtype": provtype})

    def set_ssd_enabled(self, volume: Volume | int, enabled: bool) -> Volume:
        return self._update(volume, {"ssd_enabled": enabled})

    def set_write_protected(self, volume: Volume | int, protected: bool) -> Volume:
        return self._update(volume, {"write_protected": protected})

    def resize(self, volume: Volume | int, size: int) -> Volume:
        return self._update(volume, {"size": size})

    def snapshot(self, volume: Volume | int, name: str | None = None) -> Volume:
        """Create a snapshot child of ``volume``.

        Args:
            volume: The parent volume or its id.
            name: Snapshot name; ``auto-snapshot-<uuid>`` when omitted.

        Returns:
            The snapshot, which shares the parent's ``family_id``.
        """
        payload: dict[str, Any] = {
            "parent_id": object_id(volume),
            "name": name or f"auto-snapshot-{uuid.uuid4()}",
        }
        logger.debug("Creating snapshot %s of volume %s", payload["name"], object_label(volume))
        with self._operation("error creating snapshot of volume", object_label(volume)):
            return Volume.from_api(self._post("volumes", payload))

    def restore(self, volume: Volume | int, snapshot_id: int) -> None:
        """Roll ``volume`` back to the contents of ``snapshot_id``."""

        logger.debug("Restoring volume %s from snapshot ID %d", object_label(volume), snapshot_id)
        with self._operation(
            "error restoring volume", f"{object_label(volume)} from snapshot ID {snapshot_id}"
        ):
            completed = self._post(
                f"volumes/{object_id(volume)}/restore", snapshot_id, params=APPROVED
            )
            if completed is not True:
                raise RemoteAPIError("operation not completed successfully", details=completed)

    def refresh(self, volume: Volume | int, snapshot_id: int) -> Volume:
        """Refresh snapshot ``snapshot_id`` from the current contents of ``volume``."""

        logger.debug("Refreshing snapshot ID %d from volume %s", snapshot_id, object_label(volume))
        with self._operation(
            "error refreshing snapshot ID", f"{snapshot_id} from volume {object_label(volume)}"
        ):
            return Volume.from_api(
                self._post(
                    f"volumes/{snapshot_id}/refresh",
                    {"source_id": object_id(volume)},
                    params=APPROVED,
                )
            )
