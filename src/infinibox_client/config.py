"""Configuration helpers for the InfiniBox client."""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass

API_PREFIX = "api/rest"
TENANT_HEADER = "X-INFINIDAT-TENANT-ID"
TENANT_QUERY_PARAM = "tenant_id"


@dataclass(slots=True)
class ClientConfig:
    """Typed configuration for `InfiniBoxClient`."""

    base_url: str
    verify_ssl: bool | str = True
    timeout: float = 5.0
    retries: int = 3
    user_agent: str = "infinibox-python"
    default_headers: Mapping[str, str] | None = None
    query_defaults: Mapping[str, str] | None = None

    def resolved_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "User-Agent": self.user_agent,
        }
        if self.default_headers:
            headers.update(self.default_headers)
        return headers

    def resolved_query(self) -> dict[str, str]:
        return dict(self.query_defaults or {})


@dataclass(frozen=True, slots=True)
class TenantScope:
    """Immutable tenant restriction attached to outgoing requests.

    An empty ``tenant_id`` means the request is array-wide. Depending on the
    endpoint the scope travels either as the ``X-INFINIDAT-TENANT-ID`` header
    or as the ``tenant_id`` query parameter.
    """

    tenant_id: str = ""

    def __bool__(self) -> bool:
        return bool(self.tenant_id)

    def apply_header(self, headers: MutableMapping[str, str]) -> None:
        if self.tenant_id:
            headers[TENANT_HEADER] = self.tenant_id

    def apply_query(self, params: MutableMapping[str, str]) -> None:
        if self.tenant_id:
            params[TENANT_QUERY_PARAM] = self.tenant_id

    def describe(self) -> str:
        return self.tenant_id or "unscoped"


UNSCOPED = TenantScope()
