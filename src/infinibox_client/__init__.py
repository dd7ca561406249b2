"""High-level InfiniBox client entrypoints."""
from .client import InfiniBoxClient
from .config import ClientConfig, TenantScope
from .detach import DetachmentReport
from .exceptions import InfiniBoxError, PartialDetachmentError

__all__ = [
    "InfiniBoxClient",
    "ClientConfig",
    "TenantScope",
    "DetachmentReport",
    "InfiniBoxError",
    "PartialDetachmentError",
]
