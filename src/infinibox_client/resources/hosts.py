"""Host abstractions."""

from __future__ import annotations

import logging
from typing import Any

from ..config import TenantScope
from ..exceptions import NotFoundError, ResolutionError
from ..models import Host, Lun, Port, Volume
from .base import APPROVED, CollectionResource, object_id, object_label

logger = logging.getLogger(__name__)

_CHAP_FIELDS = (
    "security_method",
    "security_chap_inbound_username",
    "security_chap_inbound_secret",
    "security_chap_outbound_username",
    "security_chap_outbound_secret",
)


class HostsResource(CollectionResource[Host]):
    """Manage hosts, their ports and their LUN mappings."""

    collection = "hosts"
    label = "host"
    record_type = Host

    def create(
        self,
        name: str,
        *,
        scope: TenantScope | None = None,
        **security: str | None,
    ) -> Host:
        """Create a new host.

        Args:
            name: The host name.
            scope: Tenant to create the host in; the client's scope by default.
            security: Optional CHAP settings such as ``security_method`` or
                ``security_chap_inbound_secret``. Empty values are skipped.
        """
        payload: dict[str, Any] = {"name": name}
        payload.update(_chap_settings(security))
        logger.debug("Creating host: %s", name)
        with self._operation("error creating host", name):
            host = Host.from_api(self._post("hosts", payload, scope=scope, scope_via="header"))
        logger.debug("Successfully created host %s", name)
        return host

    def update(self, host: Host | int, *, name: str | None = None, **security: str | None) -> Host:
        """Rename the host or change its CHAP settings.

        A rename is sent on its own and cannot be combined with security
        settings. Raises `ResolutionError` when there is nothing to send.
        """
        settings = _chap_settings(security)
        if name and settings:
            raise ResolutionError(
                f"renaming host {object_label(host)} cannot be combined with security settings",
                target=object_label(host),
            )
        attributes: dict[str, Any] = {"name": name} if name else settings
        if not attributes:
            raise ResolutionError(
                f"no attributes given to update host {object_label(host)}", target=object_label(host)
            )
        with self._operation("error updating host", object_label(host)):
            updated = Host.from_api(
                self._put(f"hosts/{object_id(host)}", attributes, params=APPROVED)
            )
        logger.debug("Updated host: %s", object_label(host))
        return updated

    def get_ports(self, host: Host | int) -> list[Port]:
        with self._operation("error getting ports of host", object_label(host)):
            return Port.many_from_api(self._get(f"hosts/{object_id(host)}/ports"))

    def add_port(self, host: Host | int, address: str, port_type: str = "ISCSI") -> Port:
        """Register an initiator address (IQN, WWPN or NQN) on the host."""

        logger.debug("Adding port type: %s address: %s to host: %s", port_type, address, object_label(host))
        payload = {"type": port_type, "address": address}
        with self._operation("error adding port to host", object_label(host)):
            return Port.from_api(
                self._post(f"hosts/{object_id(host)}/ports", payload, params=APPROVED)
            )

    def get_luns(self, host: Host | int) -> list[Lun]:
        with self._operation("error getting luns of host", object_label(host)):
            return Lun.many_from_api(self._get(f"hosts/{object_id(host)}/luns"))

    def get_lun(self, host: Host | int, lun_number: int) -> Lun:
        with self._operation("error getting lun of host", f"{object_label(host)} LUN {lun_number}"):
            return Lun.from_api(self._get(f"hosts/{object_id(host)}/luns/{lun_number}"))

    def map_volume(self, host: Host | int, volume: Volume | int, lun: int | None = None) -> Lun:
        """Expose ``volume`` to the host, optionally at an explicit LUN number."""

        payload: dict[str, Any] = {"volume_id": object_id(volume)}
        if lun is not None and lun > 0:
            payload["lun"] = lun
        logger.debug("Adding volume_id: %d as lun to host: %s", object_id(volume), object_label(host))
        with self._operation("error adding lun to host", object_label(host)):
            mapped = Lun.from_api(self._post(f"hosts/{object_id(host)}/luns", payload, params=APPROVED))
        logger.debug("Successfully added new LUN %s to host %s", mapped.lun, object_label(host))
        return mapped

    def delete_lun(self, host: Host | int, lun_number: int) -> Lun:
        """Remove the mapping at ``lun_number`` from the host."""

        logger.debug("Deleting host: %s lun ID %d", object_label(host), lun_number)
        with self._operation("error deleting lun of host", f"{object_label(host)} LUN {lun_number}"):
            deleted = Lun.from_api(self._delete(f"hosts/{object_id(host)}/luns/lun/{lun_number}"))
        logger.debug("Successfully deleted host %s LUN %d", object_label(host), lun_number)
        return deleted

    def unmap_volume(self, host: Host | int, volume: Volume | int) -> Lun:
        """Remove whatever LUN maps ``volume`` to the host."""

        target = f"{object_label(host)} volume {object_label(volume)}"
        with self._operation("error unmapping volume from host", target):
            return Lun.from_api(
                self._delete(f"hosts/{object_id(host)}/luns/volume_id/{object_id(volume)}")
            )

    def get_id_by_initiator_address(self, address: str, *, scope: TenantScope | None = None) -> int:
        """Return the id of the host owning the port ``address``."""

        logger.debug("Getting host ID by initiator address: %s", address)
        for host in self.list(scope=scope):
            if any(port.address == address for port in host.ports):
                logger.debug("Got host ID: %d for address %s", host.id, address)
                return host.id
        raise NotFoundError(f"no host owns initiator address {address}", target=address)


def _chap_settings(security: dict[str, str | None]) -> dict[str, str]:
    unknown = set(security) - set(_CHAP_FIELDS)
    if unknown:
        raise TypeError(f"Unsupported host security settings: {', '.join(sorted(unknown))}")
    return {key: value for key, value in security.items() if value}
