"""Fail-fast supervision of background asyncio tasks.

A background task that dies with an exception leaves the process in an
unknown state, so the supervisor logs it and terminates the process
immediately (no graceful drain). Restarting is left to the process
manager.
"""

import asyncio
import logging
import os
from typing import Callable, Coroutine, Optional, Set

logger = logging.getLogger(__name__)

FatalHandler = Callable[[BaseException], None]


def exit_process(exc: BaseException) -> None:
    os._exit(1)


class TaskSupervisor:
    def __init__(self, on_fatal: Optional[FatalHandler] = None):
        self._on_fatal = on_fatal or exit_process
        self._tasks: Set[asyncio.Task] = set()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._previous_handler = None

    @property
    def tasks(self) -> Set[asyncio.Task]:
        return set(self._tasks)

    def spawn(self, coro: Coroutine, *, name: Optional[str] = None) -> asyncio.Task:
        """Run ``coro`` in the background; an exception in it is fatal."""
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.fail(exc, source=task.get_name())

    def fail(self, exc: BaseException, source: str = "background task") -> None:
        logger.critical(
            f"UNHANDLED REJECTION! Shutting down... ({source})",
            exc_info=(type(exc), exc, exc.__traceback__),
        )
        self._on_fatal(exc)

    def install(self, loop: asyncio.AbstractEventLoop) -> None:
        """Treat task exceptions that nobody retrieved as fatal too."""
        self._loop = loop
        self._previous_handler = loop.get_exception_handler()
        loop.set_exception_handler(self._handle_loop_exception)

    def _handle_loop_exception(self, loop: asyncio.AbstractEventLoop, context: dict) -> None:
        exc = context.get("exception")
        if exc is not None and isinstance(context.get("future"), asyncio.Future):
            self.fail(exc, source=context.get("message", "event loop"))
            return
        if self._previous_handler is not None:
            self._previous_handler(loop, context)
        else:
            loop.default_exception_handler(context)

    async def shutdown(self) -> None:
        """Cancel outstanding tasks and give the loop its old handler back."""
        pending = list(self._tasks)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        if self._loop is not None:
            self._loop.set_exception_handler(self._previous_handler)
            self._loop = None
