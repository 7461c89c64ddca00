"""
Exam lifecycle scheduler.

Moves exams forward on wall-clock time:

- ``scheduled`` exams whose ``start_at`` has passed become ``active``
- ``active`` exams whose ``end_at`` has passed become ``completed``

Both promotions are set-based and idempotent. A failed promotion is logged and
picked up again on the next tick; it never stops the loop.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List

from django.utils import timezone

from assessments.domain import ACTIVE, COMPLETED, SCHEDULED, ExamRegistry

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 60


@dataclass
class TickResult:
    activated: List[str] = field(default_factory=list)
    completed: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self):
        return not self.errors


class ExamLifecycleScheduler:
    def __init__(self, registry: ExamRegistry, clock: Callable = timezone.now):
        self.registry = registry
        self.clock = clock

    def tick(self) -> TickResult:
        now = self.clock()
        result = TickResult()

        try:
            result.activated = self.registry.promote(SCHEDULED, ACTIVE, "start_at", now)
        except Exception as exc:
            logger.exception("Scheduler failed to activate scheduled exams")
            result.errors.append(f"activate: {exc}")
        else:
            if result.activated:
                logger.info(
                    "Auto-activated %d exam(s): %s", len(result.activated), ", ".join(result.activated)
                )

        try:
            result.completed = self.registry.promote(ACTIVE, COMPLETED, "end_at", now)
        except Exception as exc:
            logger.exception("Scheduler failed to complete active exams")
            result.errors.append(f"complete: {exc}")
        else:
            if result.completed:
                logger.info(
                    "Auto-completed %d exam(s): %s", len(result.completed), ", ".join(result.completed)
                )

        return result

    def run_forever(
        self,
        interval: float = DEFAULT_INTERVAL_SECONDS,
        sleep: Callable = time.sleep,
        should_stop: Callable = lambda: False,
    ):
        """Tick once right away, then once per ``interval`` seconds until ``should_stop()``."""
        ticks = 0
        while not should_stop():
            try:
                self.tick()
            except Exception:
                logger.exception("Scheduler tick failed")
            ticks += 1
            if should_stop():
                break
            sleep(interval)
        return ticks
