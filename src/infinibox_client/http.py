"""HTTP utilities for InfiniBox management API access."""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass
from typing import Any

from requests import Response, Session
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry


@dataclass(slots=True)
class HttpResponse:
    """Raw response handed to the envelope decoder."""

    status_code: int
    reason: str
    content: bytes
    headers: Mapping[str, str]
    url: str

    @property
    def status_line(self) -> str:
        return f"{self.status_code} {self.reason}".strip()

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    @classmethod
    def from_requests(cls, response: Response) -> HttpResponse:
        return cls(
            status_code=response.status_code,
            reason=response.reason or "",
            content=response.content or b"",
            headers=response.headers,
            url=response.url,
        )


def build_session(retries: int) -> Session:
    """Return a session that retries connection-level failures a fixed number of times."""

    session = Session()
    adapter = HTTPAdapter(max_retries=Retry(total=retries, backoff_factor=0))
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def request(
    session: Session,
    method: str,
    url: str,
    *,
    params: Mapping[str, str] | None = None,
    headers: MutableMapping[str, str] | None = None,
    json_payload: Any | None = None,
    timeout: float | tuple[float, float] | None = None,
    verify: bool | str = True,
) -> HttpResponse:
    """Make a request and return the unparsed response.

    HTTP error statuses are not raised here; the envelope decoder classifies
    them. Transport exceptions from ``requests`` propagate to the caller.
    """

    response = session.request(
        method=method,
        url=url,
        params=params,
        headers=headers,
        json=json_payload,
        timeout=timeout,
        verify=verify,
    )
    return HttpResponse.from_requests(response)
