"""Resumable sequences of independent store writes.

The store offers no cross-row atomicity for the operations built here, so
each step is an idempotent write and the saga remembers which ones are left.
A failed run can be resumed on the same object, or the whole operation can
be re-issued from scratch.
"""
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from worthwatch.core.exceptions import BaseAppException, PartialFailureException

logger = logging.getLogger(__name__)


@dataclass
class SagaStep:
    description: str
    action: Callable[[], object]


class Saga:
    """Runs steps in order, stopping at the first failure"""

    def __init__(self, operation: str, steps: Optional[List[SagaStep]] = None):
        self.operation = operation
        self.remaining: List[SagaStep] = list(steps or [])
        self.completed: List[str] = []

    def add_step(self, description: str, action: Callable[[], object]) -> "Saga":
        self.remaining.append(SagaStep(description, action))
        return self

    @property
    def done(self) -> bool:
        return not self.remaining

    def run(self) -> List[str]:
        """Execute every remaining step; returns the completed descriptions"""
        logger.info(f"{self.operation}: running {len(self.remaining)} steps")
        while self.remaining:
            step = self.remaining[0]
            try:
                step.action()
            except BaseAppException as e:
                logger.error(f"{self.operation}: step '{step.description}' failed: {e.message}")
                raise PartialFailureException(
                    self.operation,
                    completed=list(self.completed),
                    remaining=[s.description for s in self.remaining],
                    cause=e.message,
                ) from e
            self.remaining.pop(0)
            self.completed.append(step.description)
        logger.info(f"{self.operation}: completed {len(self.completed)} steps")
        return list(self.completed)

    def resume(self) -> List[str]:
        return self.run()
