"""Tenant management and scope resolution."""

from __future__ import annotations

import logging

from ..config import UNSCOPED, TenantScope
from ..models import Tenant
from .base import CollectionResource

logger = logging.getLogger(__name__)


class TenantsResource(CollectionResource[Tenant]):
    collection = "tenants"
    label = "tenant"
    record_type = Tenant

    def create(self, name: str) -> Tenant:
        logger.debug("Creating tenant: %s", name)
        with self._operation("error creating tenant", name):
            tenant = Tenant.from_api(self._post("tenants", {"name": name}))
        logger.debug("Successfully created tenant %s", name)
        return tenant

    def rename(self, tenant: Tenant | int, name: str) -> Tenant:
        return self._update(tenant, {"name": name})

    def list(self, *, scope: TenantScope | None = None, page_size: int | None = None) -> list[Tenant]:
        # tenants are never filtered by the caller's own tenant
        return super().list(scope=UNSCOPED if scope is None else scope, page_size=page_size)

    def resolve_scope(self, name: str) -> TenantScope:
        """Look up tenant ``name`` and return a scope bound to its id."""

        tenant = self.get_by_name(name, scope=UNSCOPED)
        return TenantScope(str(tenant.id))
