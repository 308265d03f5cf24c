"""
Execution supervisor: runs one dispatcher invocation as a timed, cancellable task.

Each command gets an ``asyncio.Future`` that is resolved exactly once, by
whichever of these happens first:
  - the worker finishes: its outcome (or ``TASK_FAILURE`` if it raised);
  - the wall-clock timeout fires: ``TIMEOUT``;
  - the caller cancels: ``CANCELLED``.

Later signals for the same command find the future already done and are
ignored. The blocking dispatcher call runs on a ``ThreadPoolExecutor`` worker;
a timed-out worker thread is left to finish on its own and its outcome is
discarded.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from functools import partial

import config
from .errors import DispatchErrorKind
from .logging import log_error, tagged
from .models import CommandContext, CommandOutcome, DispatchError

logger = logging.getLogger("canvas_agent")


class CommandHandle:
    """Handle for one supervised command.

    Attributes:
        command_id: Id stamped on the command's log lines.
    """

    def __init__(self, command_id: str, future: asyncio.Future, work: asyncio.Future):
        self.command_id = command_id
        self._future = future
        self._work = work

    @property
    def done(self) -> bool:
        return self._future.done()

    def cancel(self) -> bool:
        """Resolve as ``CANCELLED`` unless already resolved; returns True if it did."""
        if self._future.done():
            return False
        self._future.set_result(DispatchError(DispatchErrorKind.CANCELLED, "Command was cancelled"))
        # Only dequeues work that hasn't started; a running thread is abandoned
        self._work.cancel()
        logger.info(f"Command {self.command_id} cancelled", extra=tagged("supervisor"))
        return True

    async def result(self) -> CommandOutcome:
        # Shielded so cancelling the awaiting task doesn't cancel the shared future
        return await asyncio.shield(self._future)


class ExecutionSupervisor:
    """Runs ``agent.execute_command`` off the event loop with a timeout.

    Args:
        agent: Anything with ``execute_command(text, canvas_id, selected_ids,
            context, command_id=...)``; normally a ``CommandAgent``.
        timeout: Seconds per command (default ``config.COMMAND_TIMEOUT_SECONDS``).
        max_workers: Worker threads (default ``config.SUPERVISOR_MAX_WORKERS``).
    """

    def __init__(self, agent, *, timeout: float | None = None, max_workers: int | None = None):
        self.agent = agent
        self.timeout = timeout if timeout is not None else config.COMMAND_TIMEOUT_SECONDS
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or config.SUPERVISOR_MAX_WORKERS,
            thread_name_prefix="command",
        )

    def submit(
        self,
        text: str,
        canvas_id: str,
        selected_ids: Sequence[int] = (),
        context: CommandContext | None = None,
        on_done: Callable[[CommandOutcome], None] | None = None,
    ) -> CommandHandle:
        """Start a command and return immediately. Must be called on the event loop.

        *on_done* is called once, on the loop, with the terminal outcome.
        """
        loop = asyncio.get_running_loop()
        command_id = uuid.uuid4().hex[:8]
        future: asyncio.Future = loop.create_future()
        work = loop.run_in_executor(
            self._executor,
            partial(self.agent.execute_command, text, canvas_id, selected_ids, context, command_id=command_id),
        )
        handle = CommandHandle(command_id, future, work)

        def resolve(outcome: CommandOutcome, source: str) -> None:
            if future.done():
                logger.debug(f"Command {command_id}: late {source} ignored", extra=tagged("supervisor"))
                return
            future.set_result(outcome)

        def on_work_done(f: asyncio.Future) -> None:
            if f.cancelled():
                return
            exc = f.exception()
            if exc is not None:
                log_error(f"Command {command_id} crashed", exc=exc, context={"command": text, "canvas_id": canvas_id})
                resolve(DispatchError(DispatchErrorKind.TASK_FAILURE, f"Command failed unexpectedly: {exc}"), "crash")
            else:
                resolve(f.result(), "completion")

        def on_timeout() -> None:
            if not future.done():
                logger.warning(f"Command {command_id} timed out after {self.timeout}s", extra=tagged("supervisor"))
            resolve(
                DispatchError(DispatchErrorKind.TIMEOUT, f"Command timed out after {self.timeout} seconds"),
                "timeout",
            )

        work.add_done_callback(on_work_done)
        timer = loop.call_later(self.timeout, on_timeout)

        def on_resolved(f: asyncio.Future) -> None:
            timer.cancel()
            if on_done is not None:
                on_done(f.result())

        future.add_done_callback(on_resolved)
        return handle

    async def run(
        self,
        text: str,
        canvas_id: str,
        selected_ids: Sequence[int] = (),
        context: CommandContext | None = None,
    ) -> CommandOutcome:
        """Run a command and await its single terminal outcome."""
        return await self.submit(text, canvas_id, selected_ids, context).result()

    def shutdown(self, wait: bool = False) -> None:
        self._executor.shutdown(wait=wait, cancel_futures=True)
