"""
Ordered multi-step operations with compensating actions.

Client creation and deletion touch the auth accounts, the data tables and the
upload bucket, none of which share a transaction. A ``Saga`` runs its steps in
order; when a critical step fails, the compensations of the steps that already
succeeded run in reverse order and ``SagaStepFailed`` is raised. Steps marked
``best_effort`` never abort the saga: their failures are only logged.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging

logger = logging.getLogger(__name__)


class SagaStepFailed(Exception):
    def __init__(self, step: str, error: Exception):
        super().__init__(f"{step}: {error}")
        self.step = step
        self.error = error


@dataclass
class SagaStep:
    name: str
    action: Callable[[], Any]
    compensate: Optional[Callable[[Any], None]] = None
    best_effort: bool = False


@dataclass
class Saga:
    name: str
    steps: List[SagaStep] = field(default_factory=list)

    def add(self, name: str, action: Callable[[], Any],
            compensate: Callable[[Any], None] = None, best_effort: bool = False) -> "Saga":
        self.steps.append(SagaStep(name, action, compensate, best_effort))
        return self

    def run(self) -> Dict[str, Any]:
        """Execute all steps and return each step's result keyed by name"""
        completed: List[Tuple[SagaStep, Any]] = []
        results: Dict[str, Any] = {}

        for step in self.steps:
            try:
                result = step.action()
            except Exception as exc:
                if step.best_effort:
                    logger.warning(f"{self.name}: best-effort step '{step.name}' failed: {exc}")
                    results[step.name] = None
                    continue
                logger.error(f"{self.name}: step '{step.name}' failed: {exc}")
                self._compensate(completed)
                raise SagaStepFailed(step.name, exc) from exc

            completed.append((step, result))
            results[step.name] = result

        return results

    def _compensate(self, completed: List[Tuple[SagaStep, Any]]):
        for step, result in reversed(completed):
            if step.compensate is None:
                continue
            try:
                step.compensate(result)
                logger.info(f"{self.name}: compensated step '{step.name}'")
            except Exception as exc:
                logger.error(f"{self.name}: compensation for '{step.name}' failed: {exc}")
