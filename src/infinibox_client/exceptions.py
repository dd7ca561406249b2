"""Custom exception hierarchy for the InfiniBox client."""
from __future__ import annotations

import copy
from typing import Any


class InfiniBoxError(RuntimeError):
    """Base error for InfiniBox failures."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        details: Any | None = None,
        target: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.details = details
        self.target = target

    def for_target(self, action: str, target: Any) -> InfiniBoxError:
        """Return a copy of this error whose message names the operation target.

        The copy keeps the concrete class and every attribute, so callers can
        still branch on ``RemoteAPIError.code`` and friends.
        """

        wrapped = copy.copy(self)
        wrapped.args = (f"{action} {target}: {self}",)
        wrapped.target = str(target)
        return wrapped


class AuthenticationError(InfiniBoxError):
    """Raised when the login call is rejected."""


class TransportError(InfiniBoxError):
    """Raised when the request never produced a server response."""


class RemoteFaultError(InfiniBoxError):
    """Raised on a server-side 5xx failure; the body is not trusted."""


class DecodeError(InfiniBoxError):
    """Raised when a response cannot be inspected at the decode boundary."""

    def __init__(self, message: str, *, url: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.url = url


class MalformedEnvelopeError(DecodeError):
    """Raised when the body does not match the response envelope shape."""


class UnexpectedResponseError(MalformedEnvelopeError):
    """Raised when the envelope result or metadata has an unexpected structure."""


class RemoteAPIError(InfiniBoxError):
    """Raised when the envelope carries an explicit API error."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "",
        api_message: str = "",
        severity: str = "",
        url: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.url = url
        self.code = code
        self.api_message = api_message
        self.severity = severity


class NotFoundError(InfiniBoxError):
    """Raised when a lookup succeeded but matched no records."""


class ResolutionError(InfiniBoxError):
    """Raised when caller arguments cannot be resolved to an API target."""


class PartialDetachmentError(InfiniBoxError):
    """Raised when volume unmapping stops part-way through.

    ``owner_kind`` is ``"cluster"`` or ``"host"``; ``owner_id`` and ``lun``
    identify the mapping that failed. ``removed`` lists the LUNs already
    deleted before the failure.
    """

    def __init__(
        self,
        message: str,
        *,
        owner_kind: str = "",
        owner_id: int | None = None,
        lun: int | None = None,
        removed: list[Any] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.owner_kind = owner_kind
        self.owner_id = owner_id
        self.lun = lun
        self.removed = list(removed or [])
