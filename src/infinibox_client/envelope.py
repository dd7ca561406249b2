"""Decoding of the ``{error, metadata, result}`` response envelope.

Every management API response body is expected to be a JSON object with
three optional members:

* ``error`` -- a structured remote error; when non-empty the call failed,
  whatever the HTTP status and whatever ``result`` holds.
* ``metadata`` -- readiness and paging information for the call.
* ``result`` -- the payload, left undecoded for the resource layer.

Loosely typed members are read through `read_field`, which reports whether a
member was absent, present with the expected type, or present but malformed.
Callers then choose their default explicitly instead of relying on a failed
cast.
"""

from __future__ import annotations

import enum
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from .exceptions import (
    DecodeError,
    InfiniBoxError,
    MalformedEnvelopeError,
    RemoteAPIError,
    RemoteFaultError,
    UnexpectedResponseError,
)
from .http import HttpResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FieldState(enum.Enum):
    ABSENT = "absent"
    PRESENT = "present"
    MALFORMED = "malformed"


@dataclass(frozen=True, slots=True)
class FieldValue(Generic[T]):
    """One envelope member together with how it was found."""

    state: FieldState
    value: T | None = None
    raw: Any = None

    @property
    def is_present(self) -> bool:
        return self.state is FieldState.PRESENT

    def get(self, default: T) -> T:
        if self.state is FieldState.PRESENT:
            return self.value  # type: ignore[return-value]
        return default


ABSENT: FieldValue[Any] = FieldValue(FieldState.ABSENT)


def read_field(payload: Mapping[str, Any], key: str, kind: type[T]) -> FieldValue[T]:
    """Classify ``payload[key]`` against ``kind``.

    ``None`` counts as absent. Booleans are not accepted where an ``int`` is
    expected even though ``bool`` subclasses ``int``.
    """

    raw = payload.get(key)
    if raw is None:
        return ABSENT
    if isinstance(raw, bool) and kind is not bool:
        return FieldValue(FieldState.MALFORMED, raw=raw)
    if isinstance(raw, kind):
        return FieldValue(FieldState.PRESENT, value=raw, raw=raw)
    return FieldValue(FieldState.MALFORMED, raw=raw)


def _text(payload: Mapping[str, Any], key: str) -> str:
    field = read_field(payload, key, str)
    if field.state is FieldState.MALFORMED:
        logger.debug("Envelope error member %r is not a string (%r), using ''", key, field.raw)
    return field.get("")


@dataclass(frozen=True, slots=True)
class ApiError:
    code: str = ""
    message: str = ""
    severity: str = ""
    reasons: tuple[Any, ...] = ()
    is_remote: bool = False
    data: Any = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> ApiError:
        reasons = read_field(payload, "reasons", list).get([])
        return cls(
            code=_text(payload, "code"),
            message=_text(payload, "message"),
            severity=_text(payload, "severity"),
            reasons=tuple(reasons),
            is_remote=read_field(payload, "is_remote", bool).get(False),
            data=payload.get("data"),
        )


@dataclass(frozen=True, slots=True)
class ApiMetadata:
    ready: bool = False
    page: FieldValue[int] = ABSENT
    page_size: FieldValue[int] = ABSENT
    pages_total: FieldValue[int] = ABSENT
    number_of_objects: FieldValue[int] = ABSENT

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> ApiMetadata:
        return cls(
            ready=read_field(payload, "ready", bool).get(False),
            page=read_field(payload, "page", int),
            page_size=read_field(payload, "page_size", int),
            pages_total=read_field(payload, "pages_total", int),
            number_of_objects=read_field(payload, "number_of_objects", int),
        )


@dataclass(frozen=True, slots=True)
class Envelope:
    """A successfully decoded response.

    Envelopes carrying an ``error`` member never get this far: they are
    raised as `RemoteAPIError` by `decode_envelope`.
    """

    result: Any = None
    metadata: ApiMetadata | None = None
    status_code: int = 200
    url: str = ""

    def object_count(self) -> FieldValue[int]:
        if self.metadata is None:
            return ABSENT
        return self.metadata.number_of_objects

    def require_object_count(self) -> int:
        """Return ``metadata.number_of_objects`` for a collection response."""

        count = self.object_count()
        if not count.is_present:
            raise UnexpectedResponseError(
                "cannot parse metadata for number_of_objects field",
                url=self.url,
                details=count.raw,
            )
        return count.get(0)

    def pages_total(self) -> int:
        if self.metadata is None:
            return 1
        return max(self.metadata.pages_total.get(1), 1)


def decode_envelope(response: HttpResponse | None) -> Envelope:
    """Decode a raw response into an `Envelope` or raise a classified error.

    Nothing escapes this function except `InfiniBoxError` subclasses.
    """

    url = getattr(response, "url", None) or "unknown"
    try:
        return _decode(response)
    except InfiniBoxError:
        raise
    except Exception as exc:
        logger.error("Failed to inspect management API response for %s: %r", url, exc)
        raise DecodeError(
            f"Unexpected failure while parsing management API response for request {url}: {exc}",
            url=url,
            details=repr(exc),
        ) from exc


def _decode(response: HttpResponse | None) -> Envelope:
    if response is None:
        raise DecodeError("No response received from the management API", url=None)

    url = response.url
    if response.status_code >= 500:
        raise RemoteFaultError(
            f"Management API fault for {url}: {response.status_line}",
            status_code=response.status_code,
            details=response.text[:200],
        )

    try:
        body = json.loads(response.content)
    except ValueError as exc:
        logger.error("Error decoding response body from %s into an API envelope", url)
        raise MalformedEnvelopeError(
            f"Response from {url} is not a valid API envelope: {exc}",
            url=url,
            status_code=response.status_code,
            details=response.text[:200],
        ) from exc

    if not isinstance(body, Mapping):
        raise MalformedEnvelopeError(
            f"Response from {url} is not a JSON object",
            url=url,
            status_code=response.status_code,
            details=response.text[:200],
        )

    error_payload = body.get("error")
    if error_payload is not None and not isinstance(error_payload, Mapping):
        raise MalformedEnvelopeError(
            f"Response from {url} carries an error member that is not an object",
            url=url,
            status_code=response.status_code,
            details=error_payload,
        )
    if error_payload:
        error = ApiError.from_payload(error_payload)
        raise RemoteAPIError(
            f"API error {error.code or 'UNKNOWN'} for {url}: {error.message}",
            url=url,
            code=error.code,
            api_message=error.message,
            severity=error.severity,
            status_code=response.status_code,
            details=error.data,
        )

    metadata_payload = body.get("metadata")
    if metadata_payload is not None and not isinstance(metadata_payload, Mapping):
        raise MalformedEnvelopeError(
            f"Response from {url} carries a metadata member that is not an object",
            url=url,
            status_code=response.status_code,
            details=metadata_payload,
        )
    metadata = ApiMetadata.from_payload(metadata_payload) if metadata_payload else None

    return Envelope(
        result=body.get("result"),
        metadata=metadata,
        status_code=response.status_code,
        url=url,
    )
