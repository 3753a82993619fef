"""One user session: store, controller and the background tasks running remote operations."""
import asyncio
from typing import Any, Coroutine

from flamesim.services.graphql_gateway import RemoteGateway
from flamesim.utils.logging import get_logger
from flamesim.workflow.controller import StageController
from flamesim.workflow.state import WorkflowState, WorkflowStore

logger = get_logger(__name__)


class Session:
    """Wires the workflow together and lets UI events run without blocking on the network."""

    def __init__(self, gateway: RemoteGateway):
        self.gateway = gateway
        self.store = WorkflowStore()
        self.controller = StageController(self.store, gateway)
        self._tasks: set[asyncio.Task] = set()
        self._changed = asyncio.Event()
        self._unsubscribe = self.store.subscribe(self._on_commit)

    @property
    def state(self) -> WorkflowState:
        return self.store.state

    def spawn(self, completion: Coroutine[Any, Any, WorkflowState]) -> asyncio.Task:
        """Run the completion half of a remote operation in the background."""
        task = asyncio.create_task(completion)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    async def wait_for_change(self, since: int, timeout: float) -> WorkflowState:
        """Return as soon as the state version passes `since`, or the current state after `timeout`."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while self.store.state.version <= since:
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            event = self._changed
            try:
                await asyncio.wait_for(event.wait(), remaining)
            except asyncio.TimeoutError:
                break
        return self.store.state

    async def aclose(self) -> None:
        """Cancel pending operations and release the HTTP client."""
        self._unsubscribe()
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        await self.gateway.aclose()

    def _on_commit(self, state: WorkflowState) -> None:
        # Wake every waiter, then arm a fresh event for the next commit
        self._changed.set()
        self._changed = asyncio.Event()

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("background_operation_failed", error=str(task.exception()))
