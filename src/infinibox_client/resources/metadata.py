"""Key/value metadata attached to array objects."""

from __future__ import annotations

import logging
from typing import Any

from ..models import Metadata
from .base import ResourceBase

logger = logging.getLogger(__name__)


class MetadataResource(ResourceBase):
    """Read and write ``metadata/<object id>`` entries."""

    def list_all(self) -> list[Metadata]:
        with self._operation("error getting", "metadata collection"):
            return Metadata.many_from_api(self._client.list_collection("metadata"))

    def for_object(self, obj_id: int) -> list[Metadata]:
        with self._operation("error getting metadata of object ID", obj_id):
            envelope = self._client.request("GET", f"metadata/{obj_id}")
            if envelope.require_object_count() == 0:
                return []
            return Metadata.many_from_api(envelope.result)

    def get(self, obj_id: int, key: str) -> Metadata:
        with self._operation("error getting metadata of object ID", f"{obj_id} key {key}"):
            return Metadata.from_api(self._get(f"metadata/{obj_id}/{key}"))

    def set(self, obj_id: int, key: str, value: Any) -> list[Metadata]:
        logger.debug("Setting metadata %s on object ID %d", key, obj_id)
        with self._operation("error setting metadata of object ID", f"{obj_id} key {key}"):
            return Metadata.many_from_api(self._put(f"metadata/{obj_id}", {key: value}))

    def delete_key(self, obj_id: int, key: str) -> Metadata:
        logger.debug("Deleting metadata %s of object ID %d", key, obj_id)
        with self._operation("error deleting metadata of object ID", f"{obj_id} key {key}"):
            return Metadata.from_api(self._delete(f"metadata/{obj_id}/{key}"))

    def clear(self, obj_id: int) -> list[Metadata]:
        logger.debug("Clearing metadata of object ID %d", obj_id)
        with self._operation("error clearing metadata of object ID", obj_id):
            return Metadata.many_from_api(self._delete(f"metadata/{obj_id}"))
