from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass

from ludendorff.store.documents import DocumentChange


logger = logging.getLogger("ludendorff.feed")

ChangeHandler = Callable[[DocumentChange, Mapping[str, str]], Awaitable[object]]


def match_path(pattern: str, path: str) -> dict[str, str] | None:
    """Match a document path against a trigger pattern.

    ``{name}`` segments capture the corresponding path segment; literal
    segments must be equal. Returns ``None`` when the path does not match.
    """
    pattern_segments = pattern.strip("/").split("/")
    path_segments = path.strip("/").split("/")
    if len(pattern_segments) != len(path_segments):
        return None

    params: dict[str, str] = {}
    for expected, actual in zip(pattern_segments, path_segments):
        if expected.startswith("{") and expected.endswith("}"):
            params[expected[1:-1]] = actual
        elif expected != actual:
            return None
    return params


@dataclass(slots=True)
class _Trigger:
    pattern: str
    handler: ChangeHandler


class ChangeFeed:
    """Delivers document changes to registered triggers.

    Each matching trigger runs as its own task; the feed keeps a reference to
    every pending task until it completes.
    """

    def __init__(self) -> None:
        self._triggers: list[_Trigger] = []
        self._pending: set[asyncio.Task] = set()

    def on_write(self, pattern: str, handler: ChangeHandler) -> None:
        self._triggers.append(_Trigger(pattern=pattern, handler=handler))

    def publish(self, change: DocumentChange) -> list[asyncio.Task]:
        tasks: list[asyncio.Task] = []
        for trigger in self._triggers:
            params = match_path(trigger.pattern, change.path)
            if params is None:
                continue
            task = asyncio.get_running_loop().create_task(self._run(trigger, change, params))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            tasks.append(task)
        return tasks

    async def drain(self) -> None:
        # handlers may write and enqueue further changes while we wait
        while True:
            pending = [task for task in self._pending if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending)

    async def _run(self, trigger: _Trigger, change: DocumentChange, params: dict[str, str]) -> None:
        try:
            await trigger.handler(change, params)
        except Exception as exc:
            logger.exception(
                "feed.handler_failed",
                extra={"path": change.path, "error": str(exc)[:500]},
            )
