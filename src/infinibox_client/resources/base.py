"""Common helpers for resource wrappers."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar

from ..config import TenantScope
from ..exceptions import InfiniBoxError, NotFoundError, ResolutionError
from ..models import Metadata, Record, object_id, object_label

if TYPE_CHECKING:  # pragma: no cover - import-time guard
    from ..client import InfiniBoxClient

logger = logging.getLogger(__name__)

APPROVED = {"approved": "true"}

R = TypeVar("R", bound=Record)


class ResourceBase:
    """Provide shared helpers for resource modules."""

    def __init__(self, client: InfiniBoxClient) -> None:
        self._client = client

    def _get(
        self,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        scope: TenantScope | None = None,
        scope_via: str | None = None,
    ) -> Any:
        return self._client.request(
            "GET", path, params=params, scope=scope, scope_via=scope_via
        ).result

    def _post(
        self,
        path: str,
        payload: Any,
        *,
        params: Mapping[str, str] | None = None,
        scope: TenantScope | None = None,
        scope_via: str | None = None,
    ) -> Any:
        return self._client.request(
            "POST", path, params=params, json_payload=payload, scope=scope, scope_via=scope_via
        ).result

    def _put(
        self,
        path: str,
        payload: Any,
        *,
        params: Mapping[str, str] | None = None,
    ) -> Any:
        return self._client.request("PUT", path, params=params, json_payload=payload).result

    def _delete(self, path: str, *, approved: bool = True) -> Any:
        return self._client.request("DELETE", path, params=APPROVED if approved else None).result

    @contextmanager
    def _operation(self, action: str, target: Any) -> Iterator[None]:
        """Re-raise client errors with ``action`` and ``target`` in the message."""

        try:
            yield
        except InfiniBoxError as exc:
            logger.debug("%s %s failed: %s", action, target, exc)
            raise exc.for_target(action, target) from exc


class CollectionResource(ResourceBase, Generic[R]):
    """Shared list/get/find/delete behaviour of named array objects."""

    collection: ClassVar[str]
    label: ClassVar[str]
    record_type: type[R]

    def list(self, *, scope: TenantScope | None = None, page_size: int | None = None) -> list[R]:
        logger.debug("Getting %s collection", self.collection)
        with self._operation("error getting", f"{self.collection} collection"):
            items = self._client.list_collection(self.collection, scope=scope, page_size=page_size)
            return self.record_type.many_from_api(items)

    def get(self, value: R | int) -> R:
        identifier = object_id(value)
        logger.debug("Getting %s object ID: %d", self.label, identifier)
        with self._operation(f"error getting {self.label}", object_label(value)):
            return self.record_type.from_api(self._get(f"{self.collection}/{identifier}"))

    def get_by_name(self, name: str, *, scope: TenantScope | None = None) -> R:
        """Return the first object named ``name`` or raise `NotFoundError`."""

        with self._operation(f"cannot find {self.label} by name", name):
            raw = self._client.find(self.collection, "name", "eq", name, scope=scope)
        with self._operation(f"unable to decode {self.label} query result for", name):
            records = self.record_type.many_from_api(raw)
        if not records:
            raise NotFoundError(f"{self.label} {name} not found", target=name)
        logger.debug("Found %s %r", self.label, records[0])
        return records[0]

    def delete(self, value: R | int) -> R:
        logger.debug("Deleting %s: %s", self.label, object_label(value))
        with self._operation(f"error deleting {self.label}", object_label(value)):
            deleted = self.record_type.from_api(self._delete(f"{self.collection}/{object_id(value)}"))
        logger.debug("Successfully deleted %s %s", self.label, object_label(value))
        return deleted

    def _update(self, value: R | int, attributes: Mapping[str, Any]) -> R:
        if not attributes:
            raise ResolutionError(
                f"no attributes given to update {self.label} {object_label(value)}",
                target=object_label(value),
            )
        logger.debug("Updating %s: %s", self.label, object_label(value))
        with self._operation(f"error updating {self.label}", object_label(value)):
            updated = self.record_type.from_api(
                self._put(f"{self.collection}/{object_id(value)}", dict(attributes))
            )
        logger.info("Successfully updated %s %s", self.label, object_label(value))
        return updated

    # Metadata helpers --------------------------------------------------------
    def set_metadata(self, value: R | int, key: str, data: Any) -> None:
        with self._operation(f"unable to set metadata for {self.label}", object_label(value)):
            self._client.metadata.set(object_id(value), key, data)

    def get_metadata(self, value: R | int) -> list[Metadata]:
        with self._operation(f"unable to get metadata for {self.label}", object_label(value)):
            return self._client.metadata.for_object(object_id(value))

    def get_metadata_value(self, value: R | int, key: str) -> Any:
        with self._operation(f"unable to get metadata for {self.label}", object_label(value)):
            return self._client.metadata.get(object_id(value), key).value

    def unset_metadata(self, value: R | int, key: str) -> None:
        with self._operation(f"unable to unset metadata for {self.label}", object_label(value)):
            self._client.metadata.delete_key(object_id(value), key)

    def clear_metadata(self, value: R | int) -> None:
        with self._operation(f"unable to clear metadata for {self.label}", object_label(value)):
            self._client.metadata.clear(object_id(value))
