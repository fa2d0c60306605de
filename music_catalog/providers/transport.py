from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Protocol

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class HttpResponse:
    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    url: str = ""

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())

    def json(self) -> Any:
        if not self.body:
            return None
        return json.loads(self.body.decode("utf-8"))


class Transport(Protocol):
    def request(
        self,
        method: str,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        data: Optional[bytes] = None,
    ) -> HttpResponse: ...


class UrllibTransport:
    """Blocking HTTP via urllib; error statuses come back as responses."""

    def __init__(self, timeout: float = 10.0, useragent: Optional[str] = None) -> None:
        self.timeout = timeout
        self.useragent = useragent

    def request(
        self,
        method: str,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        data: Optional[bytes] = None,
    ) -> HttpResponse:
        merged = dict(headers or {})
        if self.useragent:
            merged.setdefault("User-Agent", self.useragent)
        req = urllib.request.Request(url, data=data, headers=merged, method=method)
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                return HttpResponse(
                    status=resp.status,
                    headers=_lower_headers(resp.headers),
                    body=resp.read(),
                    url=url,
                )
        except urllib.error.HTTPError as exc:
            logger.debug("HTTP %s for %s", exc.code, url)
            try:
                body = exc.read()
            finally:
                exc.close()
            return HttpResponse(
                status=exc.code,
                headers=_lower_headers(exc.headers),
                body=body or b"",
                url=url,
            )


def _lower_headers(headers: Any) -> Dict[str, str]:
    if headers is None:
        return {}
    return {str(key).lower(): str(value) for key, value in headers.items()}
