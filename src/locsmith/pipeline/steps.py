"""Tick-driven step machine used by the generation run."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
import logging
import time

from locsmith.core.exceptions import LocsmithError, exception_messages


logger = logging.getLogger(__name__)


class StepResult(str, Enum):
    """Outcome reported by a step action on each tick."""

    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


StepAction = Callable[["PipelineStep"], StepResult]


@dataclass(slots=True)
class PipelineStep:
    """One unit of work, polled until it reports success or failure."""

    name: str
    action: StepAction
    description: str = ""
    status: StepResult | None = None
    messages: list[str] = field(default_factory=list)
    progress: float = 0.0

    def note(self, message: str) -> None:
        self.messages.append(message)


class StepPipeline:
    """Run ``steps`` strictly in order, one action per :meth:`tick`.

    A step reporting ``FAILED`` halts the run for good. ``cleanup`` runs once
    when the run finishes either way, then ``on_finished`` receives whether
    every step succeeded.
    """

    def __init__(
        self,
        steps: Iterable[PipelineStep],
        *,
        on_finished: Callable[[bool], None] | None = None,
        cleanup: Callable[[], None] | None = None,
    ) -> None:
        self.steps = list(steps)
        self._on_finished = on_finished
        self._cleanup = cleanup
        self._cursor = 0
        self._status = StepResult.RUNNING
        self._finished = False

    @property
    def status(self) -> StepResult:
        return self._status

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def current_step(self) -> PipelineStep | None:
        if self._finished or self._cursor >= len(self.steps):
            return None
        return self.steps[self._cursor]

    @property
    def progress(self) -> float:
        """Fraction of the run completed, in ``[0, 1]``."""
        if not self.steps:
            return 1.0 if self._finished else 0.0
        if self._status is StepResult.SUCCESS:
            return 1.0
        step = self.current_step
        partial = min(max(step.progress, 0.0), 1.0) if step is not None else 0.0
        return (self._cursor + partial) / len(self.steps)

    @property
    def log(self) -> list[str]:
        """Messages of every step started so far, in order."""
        lines: list[str] = []
        for step in self.steps[: self._cursor + 1]:
            lines.extend(step.messages)
        return lines

    def tick(self) -> StepResult:
        """Advance the run by at most one step action."""
        if self._finished:
            return self._status
        if not self.steps:
            self._finish(True)
            return self._status

        step = self.steps[self._cursor]
        try:
            result = step.action(step)
        except LocsmithError as exc:
            step.messages.extend(exception_messages(exc))
            result = StepResult.FAILED
        except Exception:
            step.status = StepResult.FAILED
            self._finish(False)
            raise
        step.status = result

        if result is StepResult.RUNNING:
            return StepResult.RUNNING
        if result is StepResult.FAILED:
            logger.debug("Step %s failed", step.name)
            self._finish(False)
            return self._status

        step.progress = 1.0
        logger.debug("Step %s succeeded", step.name)
        self._cursor += 1
        if self._cursor >= len(self.steps):
            self._finish(True)
            return self._status
        return StepResult.RUNNING

    def run_to_completion(
        self,
        *,
        poll_interval: float = 0.05,
        progress: Callable[[float], None] | None = None,
    ) -> StepResult:
        """Tick until the run finishes, sleeping while a step is waiting."""
        while not self._finished:
            step = self.current_step
            self.tick()
            if progress is not None:
                progress(self.progress)
            if step is not None and step.status is StepResult.RUNNING and poll_interval > 0:
                time.sleep(poll_interval)
        return self._status

    def _finish(self, success: bool) -> None:
        self._finished = True
        self._status = StepResult.SUCCESS if success else StepResult.FAILED
        try:
            if self._cleanup is not None:
                self._cleanup()
        finally:
            if self._on_finished is not None:
                self._on_finished(success)


__all__ = ["PipelineStep", "StepAction", "StepPipeline", "StepResult"]
