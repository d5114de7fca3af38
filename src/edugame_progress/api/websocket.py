"""WebSocket stream of progress notifications."""

import asyncio

import structlog
from fastapi import WebSocket, WebSocketDisconnect

from edugame_progress.progress.events import ProgressEvent
from edugame_progress.progress.store import ProgressStore

logger = structlog.get_logger()


class ProgressEventForwarder:
    """Relays store notifications to one WebSocket client.

    Store callbacks can fire on any thread (sync code, threadpool routes),
    so they only capture a snapshot and hand it to the connection's event
    loop. A separate task drains the queue into the socket.

    Args:
        store: Progress store to observe.
        websocket: Connected client.
    """

    def __init__(self, store: ProgressStore, websocket: WebSocket):
        self.store = store
        self.websocket = websocket
        self._queue: asyncio.Queue[dict] = asyncio.Queue()
        self._loop = asyncio.get_running_loop()
        self._unsubscribe = None
        self._task: asyncio.Task | None = None

    def start(self) -> None:
        self._unsubscribe = self.store.subscribe(self._on_event)
        self._task = asyncio.create_task(self._send_loop())

    async def stop(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
        if self._task:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None

    def enqueue_snapshot(self, message_type: str = "snapshot") -> None:
        message = {
            "type": message_type,
            "progress": self.store.snapshot().model_dump(mode="json"),
        }
        self._loop.call_soon_threadsafe(self._queue.put_nowait, message)

    def _on_event(self, event: ProgressEvent) -> None:
        # Runs inside the store lock; the snapshot reflects this event.
        self.enqueue_snapshot(event.value)

    async def _send_loop(self) -> None:
        try:
            while True:
                message = await self._queue.get()
                await self.websocket.send_json(message)
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.warning("progress_event_send_failed", error=str(e))
            if self._unsubscribe:
                self._unsubscribe()
                self._unsubscribe = None


async def handle_progress_websocket(websocket: WebSocket, store: ProgressStore) -> None:
    """Handle a progress event WebSocket connection."""
    await websocket.accept()
    forwarder = ProgressEventForwarder(store, websocket)
    forwarder.start()
    forwarder.enqueue_snapshot()

    try:
        while True:
            data = await websocket.receive_json()
            if data.get("type") == "snapshot":
                forwarder.enqueue_snapshot()

    except WebSocketDisconnect:
        logger.info("progress_client_disconnected")
    except Exception:
        logger.exception("progress_websocket_error")
    finally:
        await forwarder.stop()
