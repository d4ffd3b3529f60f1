"""Result variant for store calls and first-failure-wins concurrent fan-out."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

from kv_facade.errors import StoreError


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence


_T = TypeVar("_T")


@dataclass(frozen=True)
class Outcome(Generic[_T]):
    """Either a successful value or the classified error of one store call."""

    value: _T | None = None
    error: StoreError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> _T:
        """Return the value, re-raising the classified error unchanged."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]

    @classmethod
    async def capture(cls, awaitable: Awaitable[_T]) -> Outcome[_T]:
        """Await ``awaitable`` and hold its classified error instead of raising it."""
        try:
            value = await awaitable
        except StoreError as error:
            return cls(error=error)
        return cls(value=value)


async def fan_out(
    keys: Sequence[str],
    operation: Callable[[str], Awaitable[_T]],
) -> list[tuple[str, Outcome[_T]]]:
    """Run ``operation`` for every key concurrently and pair each key with its outcome.

    The first member to fail, in completion order, fails the whole fan-out:
    its classified error is raised as soon as it settles and the members still
    in flight are cancelled. Pairing is positional over an explicit list of
    ``(key, task)`` pairs, never by completion order.
    """
    pending = [(key, asyncio.create_task(Outcome.capture(operation(key)))) for key in keys]
    tasks = [task for _, task in pending]
    try:
        for completed in asyncio.as_completed(tasks):
            outcome = await completed
            if outcome.error is not None:
                raise outcome.error
    finally:
        unsettled = [task for task in tasks if not task.done()]
        for task in unsettled:
            _ = task.cancel()
        if unsettled:
            _ = await asyncio.gather(*unsettled, return_exceptions=True)
    return [(key, task.result()) for key, task in pending]
