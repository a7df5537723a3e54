from __future__ import annotations

import logging
from typing import List, Optional, Set

logger = logging.getLogger(__name__)


class ProgressDisplay:
    """
    Receiver of progress updates. Subclass and override what you need; the
    base class ignores everything.

    Calls are synchronous and happen on the thread that mutated the stage.
    """

    def stage_added(self, stage: "ProgressStage") -> None:
        pass

    def stage_updated(self, stage: "ProgressStage") -> None:
        pass

    def caption_changed(self, stage: "ProgressStage") -> None:
        pass

    def cleared(self) -> None:
        pass


class LoggingDisplay(ProgressDisplay):
    """Writes stage starts, completions and captions to the log."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self._log = log or logger
        self._finished: Set[int] = set()

    def stage_added(self, stage: "ProgressStage") -> None:
        self._log.info("Started: %s", stage.name, extra={"stage": stage.name})

    def stage_updated(self, stage: "ProgressStage") -> None:
        # Logged once per stage even if later updates report 1 again.
        if stage.total and stage.ratio == 1 and id(stage) not in self._finished:
            self._finished.add(id(stage))
            self._log.info("Finished: %s", stage.name, extra={"stage": stage.name})

    def caption_changed(self, stage: "ProgressStage") -> None:
        self._log.debug("%s", stage.caption, extra={"stage": stage.name})

    def cleared(self) -> None:
        self._finished.clear()


class ProgressStage:
    """
    A named completed/total counter pair.

    Invariant: 0 <= completed <= total. `ratio` is completed/total, or 0 while
    total is 0. Every mutation notifies the display before returning.
    """

    def __init__(self, name: str, display: Optional[ProgressDisplay] = None):
        self.name = name
        self._display = display or ProgressDisplay()
        self._total: float = 0
        self._completed: float = 0
        self._caption = ""

    @property
    def total(self) -> float:
        return self._total

    @total.setter
    def total(self, value: float) -> None:
        if value < self._completed:
            raise ValueError(f"total ({value}) cannot drop below completed ({self._completed})")
        self._total = value
        self._display.stage_updated(self)

    @property
    def completed(self) -> float:
        return self._completed

    @completed.setter
    def completed(self, value: float) -> None:
        if value < 0 or value > self._total:
            raise ValueError(f"completed ({value}) must be within 0..{self._total}")
        self._completed = value
        self._display.stage_updated(self)

    @property
    def ratio(self) -> float:
        if self._total == 0:
            return 0.0
        return self._completed / self._total

    @property
    def caption(self) -> str:
        return self._caption

    @caption.setter
    def caption(self, text: str) -> None:
        self._caption = text
        self._display.caption_changed(self)

    def finish(self) -> None:
        # Both counters change before the single notification.
        self._total = 1
        self._completed = 1
        self._display.stage_updated(self)

    def percent(self, fraction: float) -> None:
        """Set progress directly from a 0..1 fraction."""
        if fraction < 0 or fraction > 1:
            raise ValueError(f"fraction must be within 0..1, got {fraction}")
        self._total = 1
        self._completed = fraction
        self._display.stage_updated(self)

    def detach(self) -> None:
        self._display = ProgressDisplay()

    def __repr__(self) -> str:
        return f"ProgressStage({self.name!r}, completed={self._completed}, total={self._total})"


class ProgressBoard:
    """
    Creates stages for one pipeline run and hands each caller its own handle.

    A display typically shows the most recently added stage as the current
    one; concurrent stages are not merged into a single bar.
    """

    def __init__(self, display: Optional[ProgressDisplay] = None):
        self.display = display or ProgressDisplay()
        self.stages: List[ProgressStage] = []

    @property
    def current(self) -> Optional[ProgressStage]:
        return self.stages[-1] if self.stages else None

    def new_stage(self, name: str) -> ProgressStage:
        stage = ProgressStage(name, self.display)
        self.stages.append(stage)
        self.display.stage_added(stage)
        return stage

    def reset(self) -> None:
        """Detach every stage from the display; used when a new run begins."""
        for stage in self.stages:
            stage.detach()
        self.stages = []
        self.display.cleared()
