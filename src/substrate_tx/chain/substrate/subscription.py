"""Bridge a blocking substrate-interface subscription onto asyncio.

substrate-interface delivers subscription messages by calling a result
handler from inside a blocking ``rpc_request`` loop. ``ThreadedSubscription``
runs that loop on a worker thread with its own connection and hands each
parsed message to the event loop through an ``asyncio.Queue``.

Stopping: the handler returns a value once ``unsubscribe`` was requested,
and the connection is closed so a blocked ``recv`` returns promptly.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from websocket import WebSocketException

if TYPE_CHECKING:
    from substrateinterface import SubstrateInterface

logger = logging.getLogger(__name__)

T = TypeVar("T")

Handler = Callable[[Any, int, Any], Any]

_ITEM = "item"
_ERROR = "error"
_END = "end"


class ThreadedSubscription(Generic[T]):
    """Async iterator over messages of a threaded SDK subscription.

    Usage::

        sub = ThreadedSubscription(
            connection,
            lambda conn, handler: conn.subscribe_block_headers(handler, finalized_only=True),
            parse=lambda obj: obj["header"],
            name="finalized-heads",
        )
        await sub.start()
        async for header in sub:
            ...
        await sub.unsubscribe()
    """

    def __init__(
        self,
        connection: SubstrateInterface,
        run: Callable[[SubstrateInterface, Handler], Any],
        *,
        parse: Callable[[Any], T | None],
        name: str = "subscription",
    ) -> None:
        """Initialize the bridge.

        Args:
            connection: Dedicated SDK connection owned by this subscription.
            run: Blocking call that starts the SDK subscription with a handler.
            parse: Converts a raw message; returning None skips the message.
            name: Worker thread name, used in logs.
        """
        self._connection = connection
        self._run = run
        self._parse = parse
        self._name = name
        self._queue: asyncio.Queue[tuple[str, Any]] = asyncio.Queue()
        self._stop = threading.Event()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._established: asyncio.Future[None] | None = None
        self._thread: threading.Thread | None = None
        self._waiting = False
        self._finished = False
        self._closed = False

    @property
    def is_active(self) -> bool:
        """Whether the worker thread is still running."""
        return self._thread is not None and self._thread.is_alive()

    async def start(self, *, wait_established: bool = False) -> None:
        """Start the worker thread.

        Args:
            wait_established: Block until the first message arrives, so a
                request rejected by the node raises here instead of on
                iteration.
        """
        self._loop = asyncio.get_running_loop()
        self._established = self._loop.create_future()
        self._waiting = wait_established
        self._thread = threading.Thread(target=self._worker, name=self._name, daemon=True)
        self._thread.start()
        if wait_established:
            await self._established

    async def unsubscribe(self) -> None:
        """Stop the subscription and close its connection. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._stop.set()
        with contextlib.suppress(WebSocketException, OSError):
            await asyncio.to_thread(self._connection.close)
        if self._thread is not None:
            await asyncio.to_thread(self._thread.join, 5.0)
        logger.debug("Subscription %s released", self._name)

    def __aiter__(self) -> ThreadedSubscription[T]:
        return self

    async def __anext__(self) -> T:
        if self._finished:
            raise StopAsyncIteration
        kind, payload = await self._queue.get()
        if kind == _ITEM:
            return payload
        self._finished = True
        if kind == _ERROR:
            raise payload
        raise StopAsyncIteration

    # ------------------------------------------------------------------
    # Worker thread side
    # ------------------------------------------------------------------

    def _worker(self) -> None:
        try:
            self._run(self._connection, self._handle)
        except Exception as exc:
            if self._stop.is_set():
                logger.debug("Subscription %s closed: %s", self._name, exc)
            else:
                self._post(_ERROR, exc)
        finally:
            self._post(_END, None)

    def _handle(self, message: Any, update_nr: int, subscription_id: Any) -> Any:
        if self._stop.is_set():
            return True
        item = self._parse(message)
        if item is not None:
            self._post(_ITEM, item)
        return None

    def _post(self, kind: str, payload: Any) -> None:
        if self._loop is None:
            return
        # The loop may already be closed when a late message arrives.
        with contextlib.suppress(RuntimeError):
            self._loop.call_soon_threadsafe(self._deliver, kind, payload)

    # ------------------------------------------------------------------
    # Event loop side
    # ------------------------------------------------------------------

    def _deliver(self, kind: str, payload: Any) -> None:
        established = self._established
        if established is not None and not established.done():
            if kind == _ITEM or not self._waiting:
                established.set_result(None)
            elif kind == _ERROR:
                established.set_exception(payload)
            else:
                established.set_exception(
                    ConnectionError(f"{self._name} closed before its first message")
                )
        self._queue.put_nowait((kind, payload))
