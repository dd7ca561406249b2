"""Pool operations."""

from __future__ import annotations

import logging

from ..config import TenantScope
from ..models import Pool
from .base import CollectionResource

logger = logging.getLogger(__name__)


class PoolsResource(CollectionResource[Pool]):
    collection = "pools"
    label = "pool"
    record_type = Pool

    def create(
        self,
        name: str,
        physical_capacity: int,
        virtual_capacity: int,
        *,
        scope: TenantScope | None = None,
    ) -> Pool:
        """Create a pool; capacities are in bytes."""

        logger.debug("Creating pool: %s", name)
        payload = {
            "name": name,
            "physical_capacity": physical_capacity,
            "virtual_capacity": virtual_capacity,
        }
        with self._operation("error creating pool", name):
            pool = Pool.from_api(self._post("pools", payload, scope=scope, scope_via="header"))
        logger.debug("Successfully created pool %s", name)
        return pool

    def rename(self, pool: Pool | int, name: str) -> Pool:
        return self._update(pool, {"name": name})

    def set_physical_capacity(self, pool: Pool | int, capacity: int) -> Pool:
        return self._update(pool, {"physical_capacity": capacity})

    def set_virtual_capacity(self, pool: Pool | int, capacity: int) -> Pool:
        return self._update(pool, {"virtual_capacity": capacity})

    def set_ssd_enabled(self, pool: Pool | int, enabled: bool) -> Pool:
        return self._update(pool, {"ssd_enabled": enabled})

    def set_compression_enabled(self, pool: Pool | int, enabled: bool) -> Pool:
        return self._update(pool, {"compression_enabled": enabled})
