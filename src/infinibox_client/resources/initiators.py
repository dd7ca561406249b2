"""Initiators seen by the array."""

from __future__ import annotations

import logging

from ..config import TenantScope
from ..exceptions import NotFoundError
from ..models import Initiator
from .base import ResourceBase

logger = logging.getLogger(__name__)


class InitiatorsResource(ResourceBase):
    def list(self, *, scope: TenantScope | None = None) -> list[Initiator]:
        with self._operation("error getting", "initiators"):
            return Initiator.many_from_api(self._get("initiators", scope=scope, scope_via="query"))

    def get_by_address(self, address: str, *, scope: TenantScope | None = None) -> Initiator:
        """Return the initiator with ``address`` or raise `NotFoundError`."""

        logger.debug("Getting initiator by address: %s", address)
        with self._operation("error getting initiator", address):
            result = self._get(
                "initiators", params={"address": f"eq:{address}"}, scope=scope, scope_via="header"
            )
        initiators = Initiator.many_from_api(result)
        if not initiators:
            raise NotFoundError(f"initiator {address} not found", target=address)
        return initiators[0]
