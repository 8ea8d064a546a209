import asyncio
import contextlib

from core.config import settings
from core.logger import chat_logger
from services.chat_reconciler import ChatThreadReconciler


class SessionPoller:
    """
    Refreshes a reconciler on a fixed interval: the session list always, the
    thread of the focused session when there is one. A focus change triggers
    an immediate refresh and restarts the interval.
    """

    def __init__(self, reconciler: ChatThreadReconciler, interval: float = None):
        self.reconciler = reconciler
        self.interval = interval if interval is not None else settings.CHAT_POLL_INTERVAL
        self.ticks = 0
        self._task: asyncio.Task | None = None
        self._wake = asyncio.Event()
        reconciler.subscribe(self.session_changed)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def tick(self):
        self.ticks += 1
        await self.reconciler.load_sessions()

        session_id = self.reconciler.active_session_id
        if session_id is not None:
            await self.reconciler.load_messages(session_id)

    def start(self):
        if self.running:
            return
        chat_logger.info(f"Starting session poller (every {self.interval}s)")
        self._task = asyncio.create_task(self._run())

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        chat_logger.info("Session poller stopped")

    def session_changed(self):
        self._wake.set()

    async def _run(self):
        while True:
            self._wake.clear()
            try:
                await self.tick()
            except Exception as e:
                # next tick retries
                chat_logger.error(f"Poll tick failed: {e}")

            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
