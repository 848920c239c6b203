"""HTTP byte source built on aiohttp.

The session controller is synchronous, so the source owns a private asyncio
event loop and runs each transport call to completion on it. Every call
happens on the controller's thread.
"""

import asyncio
import threading
import logging
from typing import Optional

import aiohttp

from .base import AbstractByteSource, ByteSourceError, StreamHandle

logger = logging.getLogger(__name__)


class HttpStreamHandle(StreamHandle):
    """An open HTTP response body."""

    def __init__(self, source: "HttpByteSource", response: aiohttp.ClientResponse):
        self._source = source
        self._response = response
        self.closed = False

    def read(self, max_bytes: int, timeout: float) -> Optional[bytes]:
        if self.closed:
            raise ByteSourceError("read from a closed stream")
        try:
            return self._source._run(
                asyncio.wait_for(self._response.content.read(max_bytes), timeout)
            )
        except asyncio.TimeoutError:
            # nothing buffered yet; already-received data stays in the reader
            return None
        except aiohttp.ClientError as e:
            raise ByteSourceError(f"stream read failed: {e}") from e

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._response.close()
        logger.debug(f"Closed response from {self._response.url}")


class HttpByteSource(AbstractByteSource):
    """Opens http(s) URLs with a shared aiohttp.ClientSession."""

    def __init__(self, user_agent: str, open_timeout: float = 10.0, poll_interval: float = 0.5):
        """Initialize HTTP source.

        Args:
            user_agent: User-Agent header sent with every request
            open_timeout: Seconds allowed for connecting and receiving the
                          response headers (0 disables the limit)
            poll_interval: How often a pending open checks its cancel event
        """
        super().__init__(user_agent)
        self.open_timeout = open_timeout or None
        self.poll_interval = poll_interval
        self._loop = asyncio.new_event_loop()
        self._session: Optional[aiohttp.ClientSession] = None

    def _run(self, awaitable):
        return self._loop.run_until_complete(awaitable)

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=None, sock_connect=self.open_timeout)
            self._session = aiohttp.ClientSession(
                timeout=timeout,
                headers={
                    "User-Agent": self.user_agent,
                    "Accept": "*/*",
                    "Accept-Encoding": "identity",
                },
                auto_decompress=False,
            )
        return self._session

    async def _request(self, url: str) -> aiohttp.ClientResponse:
        session = await self._get_session()
        response = await session.get(url)
        if response.status != 200:
            response.close()
            raise ByteSourceError(f"HTTP {response.status} {response.reason} from {url}")
        logger.debug(f"Opened {url}: content-type={response.headers.get('Content-Type', '')}")
        return response

    async def _open_watching(self, url: str, cancel_event: Optional[threading.Event]) -> aiohttp.ClientResponse:
        task = asyncio.ensure_future(asyncio.wait_for(self._request(url), self.open_timeout))
        while True:
            done, _ = await asyncio.wait({task}, timeout=self.poll_interval)
            if done:
                return task.result()
            if cancel_event is not None and cancel_event.is_set():
                break

        task.cancel()
        await asyncio.wait({task})
        if not task.cancelled() and task.exception() is None:
            # finished in the same slice
            task.result().close()
        raise ByteSourceError(f"open of {url} abandoned")

    def open(self, url: str, cancel_event: Optional[threading.Event] = None) -> HttpStreamHandle:
        if self._loop.is_closed():
            raise ByteSourceError("source is closed")
        if cancel_event is not None and cancel_event.is_set():
            raise ByteSourceError(f"open of {url} abandoned")
        try:
            response = self._run(self._open_watching(url, cancel_event))
        except asyncio.TimeoutError as e:
            raise ByteSourceError(f"timed out opening {url}") from e
        except aiohttp.ClientError as e:
            raise ByteSourceError(f"failed to open {url}: {e}") from e
        return HttpStreamHandle(self, response)

    def close(self) -> None:
        if self._loop.is_closed():
            return
        try:
            if self._session is not None:
                self._run(self._session.close())
                self._session = None
        finally:
            self._loop.close()
            logger.debug("HTTP source closed")
