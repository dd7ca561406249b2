"""Authentication strategies for InfiniBox."""
from .base import AuthStrategy
from .basic import BasicAuth
from .session import SessionAuth

__all__ = ["AuthStrategy", "BasicAuth", "SessionAuth"]
