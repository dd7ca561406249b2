"""Plugin registration and heartbeats."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from ..models import Heartbeat, Plugin
from .base import CollectionResource, object_id, object_label

logger = logging.getLogger(__name__)


class PluginsResource(CollectionResource[Plugin]):
    """Manage management-plane plugins registered with the array."""

    collection = "plugins"
    label = "plugin"
    record_type = Plugin

    def create(self, name: str, **attributes: Any) -> Plugin:
        """Register a plugin; extra ``attributes`` such as ``type`` or
        ``management_url`` are sent as given."""

        logger.debug("Creating plugin: %s", name)
        payload = {**attributes, "name": name}
        with self._operation("error creating plugin", name):
            plugin = Plugin.from_api(self._post("plugins", payload))
        logger.debug("Successfully created plugin %s", name)
        return plugin

    def rename(self, plugin: Plugin | int, name: str) -> Plugin:
        return self._update(plugin, {"name": name})

    def send_heartbeat(self, plugin: Plugin | int, heartbeat: Heartbeat | Mapping[str, Any]) -> Heartbeat:
        """Report entity counts and health state for the plugin.

        Returns the heartbeat as accepted by the array.
        """
        payload = heartbeat.payload() if isinstance(heartbeat, Heartbeat) else dict(heartbeat)
        logger.debug("Sending plugin heartbeat %s", object_label(plugin))
        with self._operation("error sending plugin heartbeat", object_label(plugin)):
            accepted = Heartbeat.from_api(self._put(f"plugins/{object_id(plugin)}/heartbeat", payload))
        logger.debug("Successfully sent plugin heartbeat %s", object_label(plugin))
        return accepted
