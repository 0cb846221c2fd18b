# src/refscrub/request.py
"""Request executor with a single sanitized retry.

Some servers pass user content through verbatim, so a response can carry
numeric character references that are illegal in XML 1.0 (``&#0;`` and
friends) and the parse fails. When the failure is diagnosed as invalid
character data, the request is sent once more and the fresh response body
is read through CharRefSanitizingStream, which drops those references.
The first response is never re-read.

Only the synchronous execute() path retries. begin_execute()/end_execute()
parse the response directly.
"""

from collections.abc import Callable
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from typing import Any, BinaryIO

import httpx

from refscrub.config import (
    get_event_sample_rate,
    get_illegal_character_markers,
    get_trace_response_headers,
)
from refscrub.errors import RequestFailedError, XmlFormatError
from refscrub.models import AttemptKind, AttemptOutcome, RequestAttempt
from refscrub.observability import RequestExecuteEvent, Timer, emit_event
from refscrub.parsers import ElementTreeParser, ResponseParser
from refscrub.transport import TRANSPORT_ERRORS, HttpTransport
from refscrub.utils import log_error, log_op, truncate_error
from refscrub.xml_sanitizer import CharRefSanitizingStream

ALLOWED_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE"})

ResponseHeadersHook = Callable[[httpx.Response], None]


# =============================================================================
# Async Plumbing
# =============================================================================


class AsyncExecutor:
    """Single-use worker pool scoped to one asynchronous request.

    Leaving the context releases the pool without waiting; work already
    submitted still runs to completion on the worker thread.
    """

    def __init__(self) -> None:
        self._pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="refscrub-async")

    def submit(self, fn: Callable[..., Any], *args: Any) -> Future:
        return self._pool.submit(fn, *args)

    def shutdown(self) -> None:
        self._pool.shutdown(wait=False)

    def __enter__(self) -> "AsyncExecutor":
        return self

    def __exit__(self, *args: Any) -> None:
        self.shutdown()


class AsyncRequestResult:
    """Handle to an in-flight request started by begin_execute()."""

    def __init__(
        self,
        service_request: "SimpleServiceRequest",
        web_request: httpx.Request,
        task: Future,
        state: Any = None,
    ) -> None:
        self.service_request = service_request
        self.web_request = web_request
        self.task = task
        self.state = state

    def add_done_callback(self, callback: Callable[["AsyncRequestResult"], Any]) -> None:
        """Call callback(handle) exactly once, when the work finishes or is cancelled."""
        self.task.add_done_callback(lambda _future: callback(self))

    def done(self) -> bool:
        return self.task.done()

    def cancel(self) -> bool:
        """Best effort: only work that has not started yet can be cancelled."""
        return self.task.cancel()

    def cancelled(self) -> bool:
        return self.task.cancelled()

    def get(self, timeout: float | None = None) -> httpx.Response:
        """Block until the response is available and return it."""
        return self.task.result(timeout=timeout)


# =============================================================================
# Request Executor
# =============================================================================


class SimpleServiceRequest[T]:
    """One logical request: send, parse, and on bad character data, retry once.

    Subclasses customise validate(), build_request() and read_response().
    The default read_response() hands the body stream to the parser.
    """

    def __init__(
        self,
        transport: HttpTransport,
        method: str,
        url: str,
        *,
        content: bytes | str | None = None,
        headers: dict[str, str] | None = None,
        parser: ResponseParser[T] | None = None,
        env: Any = None,
        response_headers_hook: ResponseHeadersHook | None = None,
    ) -> None:
        self.transport = transport
        self.method = (method or "").upper()
        self.url = url
        self.content = content
        self.headers = headers or {}
        self.parser = parser or ElementTreeParser()
        self.env = env
        self.markers = get_illegal_character_markers(env)
        self._response_headers_hook = response_headers_hook or self._trace_response_headers
        self.attempts: list[RequestAttempt] = []

    # -------------------------------------------------------------------------
    # Hooks for subclasses
    # -------------------------------------------------------------------------

    def validate(self) -> None:
        """Raise ValueError if the request cannot be sent."""
        if not self.url:
            raise ValueError("Request URL is required")
        if self.method not in ALLOWED_METHODS:
            raise ValueError(f"Unsupported HTTP method: {self.method!r}")

    def build_request(self) -> httpx.Request:
        return self.transport.build_request(
            self.method, self.url, content=self.content, headers=self.headers
        )

    def read_response(self, response: httpx.Response, stream: BinaryIO) -> T:
        return self.parser.parse(stream)

    def process_response_headers(self, response: httpx.Response) -> None:
        """Expose a failed request's response headers for diagnostics."""
        self._response_headers_hook(response)

    def _trace_response_headers(self, response: httpx.Response) -> None:
        if get_trace_response_headers(self.env):
            log_op(
                "response_headers",
                url=str(self.url),
                status=response.status_code,
                headers=dict(response.headers),
            )

    # -------------------------------------------------------------------------
    # Synchronous path
    # -------------------------------------------------------------------------

    def validate_and_emit_request(self) -> httpx.Response:
        self.validate()
        return self.transport.send(self.build_request())

    def execute(self) -> T:
        """Execute the request, retrying once through the sanitizer if needed.

        Raises:
            RequestFailedError: the request or its parse failed; the original
                exception is attached as __cause__.
        """
        self.attempts = []
        event = RequestExecuteEvent(method=self.method, url=str(self.url))

        with Timer() as timer:
            try:
                return self._internal_execute()
            except RequestFailedError as e:
                cause = e.__cause__ or e
                event.outcome = "error"
                event.error_type = type(cause).__name__
                event.error_message = truncate_error(cause, 500)
                raise
            finally:
                event.wall_time_ms = timer.elapsed()
                self._populate_event(event)
                emit_event(event, sample_rate=get_event_sample_rate(self.env))

    def _internal_execute(self) -> T:
        attempt = self._start_attempt(AttemptKind.PRIMARY)
        try:
            attempt.response = self.validate_and_emit_request()
            stream = self.transport.get_response_stream(attempt.response)
            return self._read_attempt(attempt, stream)
        except XmlFormatError as e:
            attempt.outcome = (
                AttemptOutcome.ILLEGAL_CHARACTER
                if e.is_illegal_character(self.markers)
                else AttemptOutcome.FORMAT_ERROR
            )
            if attempt.outcome.is_retriable():
                return self._retry_sanitized(e)
            raise self._failure(e, attempt.response) from e
        except TRANSPORT_ERRORS as e:
            attempt.outcome = AttemptOutcome.IO_ERROR
            raise self._failure(e) from e
        except Exception as e:
            attempt.outcome = AttemptOutcome.OTHER_ERROR
            raise self._failure(e, attempt.response) from e

    def _retry_sanitized(self, original: XmlFormatError) -> T:
        """Second and last attempt; its outcome replaces the original error."""
        log_op(
            "request_retry_sanitized",
            method=self.method,
            url=str(self.url),
            trigger=truncate_error(original),
        )
        attempt = self._start_attempt(AttemptKind.RETRY)
        attempt.sanitized = True
        try:
            attempt.response = self.validate_and_emit_request()
            stream = CharRefSanitizingStream(self.transport.get_response_stream(attempt.response))
            return self._read_attempt(attempt, stream)
        except TRANSPORT_ERRORS as e:
            attempt.outcome = AttemptOutcome.IO_ERROR
            raise self._failure(e) from e
        except Exception as e:
            attempt.outcome = (
                AttemptOutcome.FORMAT_ERROR
                if isinstance(e, XmlFormatError)
                else AttemptOutcome.OTHER_ERROR
            )
            raise self._failure(e, self._last_response()) from e

    # -------------------------------------------------------------------------
    # Asynchronous path
    # -------------------------------------------------------------------------

    def begin_execute(
        self,
        callback: Callable[[AsyncRequestResult], Any] | None = None,
        state: Any = None,
    ) -> AsyncRequestResult:
        """Start sending the request on a worker thread and return a handle.

        callback, if given, is called with the handle once the send finishes.
        """
        self.validate()
        web_request = self.build_request()

        with AsyncExecutor() as executor:
            task = executor.submit(self.transport.send, web_request)

        handle = AsyncRequestResult(self, web_request, task, state)
        if callback is not None:
            handle.add_done_callback(callback)
        return handle

    def end_execute(self, handle: AsyncRequestResult) -> T:
        """Wait for the handle's response and parse it.

        No sanitized retry happens on this path.
        """
        if handle.service_request is not self:
            raise ValueError("Handle was not created by this request")

        attempt = self._start_attempt(AttemptKind.PRIMARY, reset=True)
        try:
            attempt.response = handle.get()
            stream = self.transport.get_response_stream(attempt.response)
            return self._read_attempt(attempt, stream)
        except CancelledError:
            raise
        except TRANSPORT_ERRORS as e:
            attempt.outcome = AttemptOutcome.IO_ERROR
            raise self._failure(e) from e
        except Exception as e:
            attempt.outcome = (
                AttemptOutcome.FORMAT_ERROR
                if isinstance(e, XmlFormatError)
                else AttemptOutcome.OTHER_ERROR
            )
            raise self._failure(e, attempt.response) from e

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _start_attempt(self, kind: AttemptKind, reset: bool = False) -> RequestAttempt:
        if reset:
            self.attempts = []
        attempt = RequestAttempt(kind=kind)
        self.attempts.append(attempt)
        return attempt

    def _last_response(self) -> httpx.Response | None:
        for attempt in reversed(self.attempts):
            if attempt.response is not None:
                return attempt.response
        return None

    def _read_attempt(self, attempt: RequestAttempt, stream: BinaryIO) -> T:
        """Parse one response body; the stream (and response) is closed after."""
        try:
            result = self.read_response(attempt.response, stream)
        finally:
            if isinstance(stream, CharRefSanitizingStream):
                attempt.references_removed = stream.references_removed
            stream.close()
        attempt.outcome = AttemptOutcome.SUCCESS
        return result

    def _failure(
        self, error: BaseException, response: httpx.Response | None = None
    ) -> RequestFailedError:
        """Wrap error; headers of any response obtained are processed first."""
        if response is None and isinstance(error, httpx.HTTPStatusError):
            response = error.response

        response_headers = None
        if response is not None:
            self.process_response_headers(response)
            response_headers = dict(response.headers)

        log_error(
            "request_failed",
            error,
            method=self.method,
            url=str(self.url),
            attempts=len(self.attempts),
        )
        return RequestFailedError.wrap(error, response_headers=response_headers)

    def _populate_event(self, event: RequestExecuteEvent) -> None:
        event.attempts = len(self.attempts)
        event.retried = len(self.attempts) > 1
        event.sanitized = any(a.sanitized for a in self.attempts)
        event.references_removed = sum(a.references_removed for a in self.attempts)
        if self.attempts:
            event.http_status = self.attempts[-1].http_status
