"""Cookie session authentication through the login endpoint."""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass
from typing import ClassVar

from .base import AuthStrategy


@dataclass(slots=True)
class SessionAuth(AuthStrategy):
    """Log in once and let the HTTP session carry the returned cookie."""

    username: str
    password: str
    requires_login: ClassVar[bool] = True

    def apply(self, headers: MutableMapping[str, str]) -> None:
        # the session cookie set by the login call authenticates later requests
        return None

    def login_payload(self) -> Mapping[str, str]:
        return {"username": self.username, "password": self.password}
