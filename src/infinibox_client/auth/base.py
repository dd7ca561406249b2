"""Base abstractions for auth strategies."""
from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, MutableMapping


class AuthStrategy(ABC):
    """Interface each authentication mechanism must implement."""

    requires_login: bool = False

    @abstractmethod
    def apply(self, headers: MutableMapping[str, str]) -> None:
        """Mutate headers in-place with the necessary credentials."""

    def login_payload(self) -> Mapping[str, str] | None:
        """Body for ``POST api/rest/users/login`` or ``None`` when no login is needed."""
        return None
