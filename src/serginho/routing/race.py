"""Parallel Race Executor - fan out to several providers, first success wins."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field

from .outcomes import AttemptOutcome

logger = logging.getLogger(__name__)

AttemptFn = Callable[[str], Awaitable[AttemptOutcome]]


@dataclass
class RaceOutcome:
    winner: AttemptOutcome | None
    failures: list[AttemptOutcome] = field(default_factory=list)
    cancelled: list[str] = field(default_factory=list)


class ParallelRaceExecutor:
    """
    Runs the same attempt against a fixed set of providers concurrently.

    The first successful outcome wins regardless of declaration order.
    With ``cancel_losers`` the calls still in flight are cancelled as soon
    as there is a winner; otherwise they are left to finish and their
    outcomes are dropped.
    """

    def __init__(self, provider_ids: Sequence[str], cancel_losers: bool = True) -> None:
        self.provider_ids = tuple(provider_ids)
        self.cancel_losers = cancel_losers
        self._detached: set[asyncio.Task] = set()

    async def race(self, attempt: AttemptFn, provider_ids: Sequence[str] | None = None) -> RaceOutcome:
        ids = list(self.provider_ids if provider_ids is None else provider_ids)
        outcome = RaceOutcome(winner=None)
        if not ids:
            return outcome

        tasks = {asyncio.create_task(attempt(pid), name=f"race-{pid}"): pid for pid in ids}
        try:
            for next_done in asyncio.as_completed(tasks):
                result = await next_done
                if result.success:
                    outcome.winner = result
                    break
                outcome.failures.append(result)
        finally:
            pending = [task for task in tasks if not task.done()]
            if self.cancel_losers:
                for task in pending:
                    task.cancel()
                    outcome.cancelled.append(tasks[task])
                await asyncio.gather(*pending, return_exceptions=True)
            else:
                # Hold references so unfinished losers are not garbage collected.
                for task in pending:
                    self._detached.add(task)
                    task.add_done_callback(self._detached.discard)

        if outcome.winner is not None:
            logger.info(
                "Race won by %s in %sms (%d failed, %d cancelled)",
                outcome.winner.provider_id,
                outcome.winner.duration_ms,
                len(outcome.failures),
                len(outcome.cancelled),
            )
        return outcome

    @property
    def detached_count(self) -> int:
        return len(self._detached)
