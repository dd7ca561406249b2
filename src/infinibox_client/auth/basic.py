"""HTTP Basic authentication support."""

from __future__ import annotations

from collections.abc import MutableMapping
from dataclasses import dataclass

from requests.auth import _basic_auth_str

from .base import AuthStrategy


@dataclass(slots=True)
class BasicAuth(AuthStrategy):
    """Send HTTP Basic credentials with every request."""

    username: str
    password: str

    def apply(self, headers: MutableMapping[str, str]) -> None:
        headers["Authorization"] = _basic_auth_str(self.username, self.password)
