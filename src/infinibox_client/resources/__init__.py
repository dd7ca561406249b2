"""Resource helpers exposed by the InfiniBox client."""

from .clusters import HostClustersResource
from .hosts import HostsResource
from .initiators import InitiatorsResource
from .metadata import MetadataResource
from .plugins import PluginsResource
from .pools import PoolsResource
from .tenants import TenantsResource
from .volumes import VolumesResource

__all__ = [
    "HostClustersResource",
    "HostsResource",
    "InitiatorsResource",
    "MetadataResource",
    "PluginsResource",
    "PoolsResource",
    "TenantsResource",
    "VolumesResource",
]
