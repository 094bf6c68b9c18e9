"""Per-execution suggestion cycles with a latest-cycle-wins publishing rule."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from enum import Enum

from .heuristics import HeuristicAnalyzer
from .remote import RemoteSuggestionClient
from .schemas import Suggestion, SuggestionMode

logger = logging.getLogger(__name__)

Listener = Callable[[tuple[Suggestion, ...]], None]


class OrchestratorState(str, Enum):
    IDLE = "idle"
    ANALYZING = "analyzing"
    READY = "ready"


class SuggestionOrchestrator:
    """
    Run one suggestion source per execution and publish its result.

    Each call to ``on_execution_completed`` starts a new cycle and takes a
    fresh generation number. A cycle publishes only while its number is still
    the current one, so a slow earlier cycle can never overwrite a later one.
    The superseded task is also cancelled.
    """

    def __init__(
        self,
        remote: RemoteSuggestionClient | None = None,
        mode: SuggestionMode = "auto",
        heuristics: HeuristicAnalyzer | None = None,
    ) -> None:
        if mode == "remote" and remote is None:
            raise ValueError("Remote suggestion mode requires a RemoteSuggestionClient")
        self.remote = remote
        self.mode: SuggestionMode = mode
        self.heuristics = heuristics or HeuristicAnalyzer()
        self._state = OrchestratorState.IDLE
        self._suggestions: tuple[Suggestion, ...] = ()
        self._generation = 0
        self._published = False
        self._task: asyncio.Task[tuple[Suggestion, ...]] | None = None
        self._listeners: list[Listener] = []

    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def analyzing(self) -> bool:
        return self._state is OrchestratorState.ANALYZING

    @property
    def suggestions(self) -> tuple[Suggestion, ...]:
        return self._suggestions

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def uses_remote(self) -> bool:
        return self.mode != "heuristic" and self.remote is not None

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _start_cycle(self) -> int:
        self._generation += 1
        self._state = OrchestratorState.ANALYZING
        if self._task is not None and not self._task.done():
            _ = self._task.cancel()
        return self._generation

    def on_execution_completed(
        self, script_text: str, errors: Sequence[str]
    ) -> asyncio.Task[tuple[Suggestion, ...]]:
        """Start a cycle in the background; must be called from a running loop."""
        generation = self._start_cycle()
        self._task = asyncio.get_running_loop().create_task(
            self._run_cycle(generation, script_text, list(errors))
        )
        return self._task

    async def analyze(self, script_text: str, errors: Sequence[str]) -> tuple[Suggestion, ...]:
        """Run a cycle inline and return whatever is published afterwards."""
        generation = self._start_cycle()
        self._task = None
        return await self._run_cycle(generation, script_text, list(errors))

    async def _run_cycle(
        self, generation: int, script_text: str, errors: list[str]
    ) -> tuple[Suggestion, ...]:
        try:
            suggestions = await self._from_source(script_text, errors)
        except asyncio.CancelledError:
            logger.debug("Suggestion cycle %d cancelled", generation)
            if generation == self._generation:
                # Nothing newer is running, so settle on the last snapshot.
                self._state = OrchestratorState.READY if self._published else OrchestratorState.IDLE
            raise
        except Exception as exc:  # noqa: BLE001 - degrade to local rules
            logger.warning("Suggestion source failed, using heuristics instead: %s", exc)
            suggestions = self.heuristics.analyze(script_text, errors)

        if generation != self._generation:
            logger.debug(
                "Discarding suggestions from cycle %d; cycle %d is current",
                generation,
                self._generation,
            )
            return self._suggestions

        self._publish(tuple(suggestions))
        return self._suggestions

    async def _from_source(self, script_text: str, errors: list[str]) -> list[Suggestion]:
        if self.uses_remote:
            assert self.remote is not None
            return await self.remote.fetch(script_text, errors)
        return self.heuristics.analyze(script_text, errors)

    def _publish(self, suggestions: tuple[Suggestion, ...]) -> None:
        self._suggestions = suggestions
        self._published = True
        self._state = OrchestratorState.READY
        for listener in list(self._listeners):
            listener(suggestions)
