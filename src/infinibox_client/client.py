"""High-level InfiniBox REST client."""

from __future__ import annotations

import copy
import logging
import threading
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urljoin

import requests
import urllib3
from urllib3.exceptions import InsecureRequestWarning

from .auth.base import AuthStrategy
from .config import API_PREFIX, ClientConfig, TenantScope
from .envelope import Envelope, decode_envelope
from .exceptions import AuthenticationError, InfiniBoxError, TransportError, UnexpectedResponseError
from .http import HttpResponse, build_session
from .http import request as http_request
from .locks import LockRegistry
from .resources import (
    HostClustersResource,
    HostsResource,
    InitiatorsResource,
    MetadataResource,
    PluginsResource,
    PoolsResource,
    TenantsResource,
    VolumesResource,
)

logger = logging.getLogger(__name__)

LOGIN_PATH = "users/login"


@dataclass(slots=True)
class _SessionState:
    """Login state shared by a client and the scoped siblings it hands out."""

    logged_in: bool = False
    lock: threading.Lock = field(default_factory=threading.Lock)


class InfiniBoxClient:
    """Wrap InfiniBox management endpoints with helper methods."""

    def __init__(
        self,
        *,
        base_url: str,
        auth_strategy: AuthStrategy,
        verify_ssl: bool | str = True,
        timeout: float = 5.0,
        retries: int = 3,
        tenant: TenantScope | str | None = None,
        default_headers: Mapping[str, str] | None = None,
        query_defaults: Mapping[str, str] | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.config = ClientConfig(
            base_url=base_url.rstrip("/"),
            verify_ssl=verify_ssl,
            timeout=timeout,
            retries=retries,
            default_headers=default_headers,
            query_defaults=query_defaults,
        )
        self._suppress_insecure_warning_if_needed()
        self._session = session or build_session(retries)
        self._auth = auth_strategy
        self._state = _SessionState(logged_in=not auth_strategy.requires_login)
        self.scope = _coerce_scope(tenant)
        self.cluster_locks = LockRegistry()
        self._bind_resources()
        logger.debug("Initialized InfiniBox client for %s", self.config.base_url)

    # Context manager helpers -------------------------------------------------
    def __enter__(self) -> InfiniBoxClient:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # pragma: no cover - passthrough
        self.close()

    # Public API --------------------------------------------------------------
    def with_scope(self, tenant: TenantScope | str | None) -> InfiniBoxClient:
        """Return a sibling client bound to another tenant scope.

        The sibling shares the HTTP session, login state and lock registry;
        neither client's scope changes afterwards.
        """

        sibling = copy.copy(self)
        sibling.scope = _coerce_scope(tenant)
        sibling._bind_resources()
        return sibling

    def use_tenant(self, tenant_name: str) -> InfiniBoxClient:
        """Resolve ``tenant_name`` and return a client scoped to it."""

        logger.debug("Setting tenant: %s", tenant_name)
        scope = self.tenants.resolve_scope(tenant_name)
        logger.debug("Setting tenant id to: %s", scope.tenant_id)
        return self.with_scope(scope)

    def login(self) -> None:
        """Open a session through ``POST api/rest/users/login``."""

        payload = self._auth.login_payload()
        if payload is None:
            self._state.logged_in = True
            return
        logger.debug("Logging into InfiniBox at %s", self.config.base_url)
        try:
            self._send("POST", LOGIN_PATH, json_payload=payload)
        except InfiniBoxError as exc:
            raise AuthenticationError(
                f"Login to {self.config.base_url} failed: {exc}",
                status_code=exc.status_code,
                details=exc.details,
                target=self.config.base_url,
            ) from exc
        self._state.logged_in = True
        logger.debug("Logged in successfully")

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        json_payload: Any | None = None,
        scope: TenantScope | None = None,
        scope_via: str | None = None,
    ) -> Envelope:
        """Send one call and return its decoded envelope.

        ``scope_via`` is ``"header"``, ``"query"`` or ``None`` (unscoped). The
        tenant scope used is ``scope`` when given, else the client's own.
        """

        self._ensure_login()
        return self._send(
            method,
            path,
            params=params,
            json_payload=json_payload,
            scope=self.scope if scope is None else scope,
            scope_via=scope_via,
        )

    def find(
        self,
        collection: str,
        field_name: str,
        op: str,
        value: Any,
        *,
        scope: TenantScope | None = None,
    ) -> Any | None:
        """Run a filtered collection lookup and return the raw ``result``.

        Issues ``GET <collection>?<field>=<op>:<value>``. ``None`` means no
        matching objects; deciding whether that is an error is left to the
        caller.
        """

        params = {field_name: f"{op}:{value}"}
        try:
            envelope = self.request("GET", collection, params=params, scope=scope, scope_via="query")
        except InfiniBoxError as exc:
            raise exc.for_target(f"error finding {collection}", f"{field_name}={op}:{value}") from exc
        count = envelope.object_count()
        if count.is_present and count.get(0) == 0:
            logger.debug("No %s matched %s=%s:%s", collection, field_name, op, value)
            return None
        if envelope.result is None or envelope.result == []:
            return None
        return envelope.result

    def list_collection(
        self,
        collection: str,
        *,
        params: Mapping[str, str] | None = None,
        scope: TenantScope | None = None,
        page_size: int | None = None,
    ) -> list[Any]:
        """Return every raw item of a collection, following ``pages_total``."""

        items: list[Any] = []
        page = 1
        while True:
            query: dict[str, str] = dict(params or {})
            if page_size:
                query["page_size"] = str(page_size)
            if page > 1:
                query["page"] = str(page)
            envelope = self.request("GET", collection, params=query, scope=scope, scope_via="header")
            if envelope.require_object_count() == 0:
                logger.info("%s collection is empty", collection)
                return []
            if not isinstance(envelope.result, list):
                raise UnexpectedResponseError(
                    f"Expected a list result for {collection} collection",
                    url=envelope.url,
                    details=envelope.result,
                )
            items.extend(envelope.result)
            if page >= envelope.pages_total():
                return items
            page += 1

    def close(self) -> None:
        self._session.close()

    # Internal helpers -------------------------------------------------------
    def _bind_resources(self) -> None:
        self.volumes = VolumesResource(self)
        self.hosts = HostsResource(self)
        self.clusters = HostClustersResource(self)
        self.pools = PoolsResource(self)
        self.tenants = TenantsResource(self)
        self.metadata = MetadataResource(self)
        self.initiators = InitiatorsResource(self)
        self.plugins = PluginsResource(self)

    def _ensure_login(self) -> None:
        if self._state.logged_in:
            return
        with self._state.lock:
            if not self._state.logged_in:
                self.login()

    def _send(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        json_payload: Any | None = None,
        scope: TenantScope | None = None,
        scope_via: str | None = None,
    ) -> Envelope:
        url = self._resolve_url(path)
        headers = self._prepare_headers()
        merged_params = self._prepare_params(params)
        if scope and scope_via == "header":
            scope.apply_header(headers)
        elif scope and scope_via == "query":
            scope.apply_query(merged_params)
        self._log_request(method, url, scope if scope_via else None)
        response = self._perform_request(
            method,
            url,
            params=merged_params,
            headers=headers,
            json_payload=json_payload,
        )
        return decode_envelope(response)

    def _resolve_url(self, path: str) -> str:
        relative_path = path.lstrip("/")
        if not relative_path.startswith(f"{API_PREFIX}/"):
            relative_path = f"{API_PREFIX}/{relative_path}"
        return urljoin(f"{self.config.base_url}/", relative_path)

    def _prepare_headers(self) -> MutableMapping[str, str]:
        headers = self.config.resolved_headers()
        self._auth.apply(headers)
        return headers

    def _prepare_params(self, params: Mapping[str, str] | None) -> MutableMapping[str, str]:
        merged: MutableMapping[str, str] = self.config.resolved_query()
        if params:
            merged.update(params)
        return merged

    def _perform_request(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, str] | None,
        headers: MutableMapping[str, str],
        json_payload: Any | None,
    ) -> HttpResponse:
        try:
            return http_request(
                self._session,
                method,
                url,
                params=params,
                headers=headers,
                json_payload=json_payload,
                timeout=self.config.timeout,
                verify=self.config.verify_ssl,
            )
        except requests.RequestException as exc:
            reason = str(exc).strip() or exc.__class__.__name__
            raise TransportError(
                f"Failed to communicate with InfiniBox API at {url}: {reason}", details=reason
            ) from exc

    def _log_request(self, method: str, url: str, scope: TenantScope | None) -> None:
        logger.info(
            "InfiniBox request %s %s (tenant=%s)",
            method.upper(),
            url,
            scope.describe() if scope is not None else "unscoped",
        )

    def _suppress_insecure_warning_if_needed(self) -> None:
        if isinstance(self.config.verify_ssl, bool) and not self.config.verify_ssl:
            urllib3.disable_warnings(InsecureRequestWarning)


def _coerce_scope(tenant: TenantScope | str | int | None) -> TenantScope:
    if isinstance(tenant, TenantScope):
        return tenant
    if tenant is None:
        return TenantScope()
    return TenantScope(str(tenant))
