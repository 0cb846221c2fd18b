# src/refscrub/transport.py
"""HTTP boundary layer.

Wraps httpx so the request executor only ever sees an httpx.Response and a
plain raw binary stream over its body. httpx read failures are converted to
OSError at this boundary, which is the I/O failure kind everything above
expects.
"""

import io
from collections.abc import Iterator
from typing import Any

import httpx

from refscrub.config import get_http_timeout, get_user_agent
from refscrub.errors import ResponseReadError
from refscrub.utils import log_op

# Failures that count as I/O failures when sending or reading
TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (OSError, httpx.TransportError)


class ResponseStream(io.RawIOBase):
    """Raw binary stream over a streamed httpx.Response body.

    Holds at most one decoded chunk. Closing the stream closes the response.
    """

    def __init__(self, response: httpx.Response, chunk_size: int | None = None) -> None:
        super().__init__()
        self._response = response
        self._chunks: Iterator[bytes] = response.iter_bytes(chunk_size)
        self._chunk = b""
        self._offset = 0

    def readable(self) -> bool:
        return True

    def readinto(self, buffer: Any) -> int:
        while self._offset >= len(self._chunk):
            try:
                self._chunk = next(self._chunks)
            except StopIteration:
                return 0
            except httpx.HTTPError as e:
                raise ResponseReadError(str(e)) from e
            self._offset = 0

        # Each read copies only the bytes it returns
        start = self._offset
        size = min(len(buffer), len(self._chunk) - start)
        buffer[:size] = self._chunk[start : start + size]
        self._offset = start + size
        return size

    def close(self) -> None:
        if not self.closed:
            self._response.close()
        super().close()


class HttpTransport:
    """Sends requests in streaming mode through an httpx.Client.

    A client passed in is left open for its owner; one created here is
    closed by close().
    """

    def __init__(self, client: httpx.Client | None = None, env: Any = None) -> None:
        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=get_http_timeout(env),
            headers={"User-Agent": get_user_agent(env)},
            follow_redirects=True,
        )

    def build_request(
        self,
        method: str,
        url: str,
        content: bytes | str | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Request:
        """Build the outbound request with the client's defaults applied."""
        return self._client.build_request(method, url, content=content, headers=headers)

    def send(self, request: httpx.Request) -> httpx.Response:
        """Send request and return the response with its body still unread.

        Error statuses raise httpx.HTTPStatusError after the response is
        closed; the error keeps a reference to it for header inspection.
        """
        response = self._client.send(request, stream=True)
        if response.is_error:
            log_op(
                "http_error_status",
                method=request.method,
                url=str(request.url),
                status=response.status_code,
            )
            response.close()
            response.raise_for_status()
        return response

    def get_response_stream(self, response: httpx.Response) -> ResponseStream:
        """Return a raw stream over the response body."""
        return ResponseStream(response)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "HttpTransport":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
