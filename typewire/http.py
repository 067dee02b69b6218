"""Minimal request primitives handed to the binder by a route layer."""

from __future__ import annotations

from http.cookies import SimpleCookie
from typing import AsyncIterator, Iterable, List, Mapping, Optional, Tuple, Union
from urllib.parse import parse_qs, urlsplit

HeaderItems = Union[Mapping[str, str], Iterable[Tuple[str, str]]]


class Request:
    """Represent an incoming HTTP request.

    Query parameters keep every value in order of appearance; header names
    are lower-cased and repeated headers are kept as separate values.
    """

    def __init__(
        self,
        method: str = "GET",
        url: str = "/",
        body: bytes = b"",
        headers: Optional[HeaderItems] = None,
        path_params: Optional[Mapping[str, str]] = None,
        chunk_size: int = 64 * 1024,
    ) -> None:
        self.method = method.upper()
        self.url = url
        self._body = body
        items = headers.items() if isinstance(headers, Mapping) else (headers or ())
        self.header_values: dict[str, List[str]] = {}
        for key, value in items:
            self.header_values.setdefault(key.lower(), []).append(value)
        self.headers = {k: v[-1] for k, v in self.header_values.items()}
        self.path_params = dict(path_params or {})
        parts = urlsplit(url)
        self.path = parts.path
        self.query_params: dict[str, List[str]] = parse_qs(
            parts.query, keep_blank_values=True
        )
        self.chunk_size = chunk_size
        self._cookies: Optional[dict[str, str]] = None
        self._stream_consumed = False

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get("content-type")

    async def body(self) -> bytes:
        """Return the request body."""
        return self._body

    async def stream(self) -> AsyncIterator[bytes]:
        """Yield the body content in chunks, once."""
        if self._stream_consumed:
            return
        self._stream_consumed = True
        for start in range(0, len(self._body), self.chunk_size):
            yield self._body[start : start + self.chunk_size]

    @property
    def cookies(self) -> dict[str, str]:
        """Lazily parse cookies from the request headers."""
        if self._cookies is None:
            raw = self.headers.get("cookie", "")
            jar: SimpleCookie = SimpleCookie()
            jar.load(raw)
            self._cookies = {k: morsel.value for k, morsel in jar.items()}
        return self._cookies


__all__ = ["Request"]
