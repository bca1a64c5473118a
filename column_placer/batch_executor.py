"""
Batch Executor Module

Runs the three placement phases over detected rectangles:

1. Resolve  - look up (or derive) a template for every distinct size. No
              scope is open; derivation opens its own short scope per template.
2. Activate - one scope activating every resolved, inactive template.
              Failures are logged and retried once at use time.
3. Create   - one scope placing a column at the centre of every rectangle.
              Rolled back in full if no column could be created.

Scopes never nest: each phase closes its scope before the next one opens.
Per-rectangle failures are recorded in the BatchReport and never stop the run.
"""

import logging
from enum import Enum
from typing import Dict, List, Optional, Sequence

from .batch_report import BatchReport, FailureKind
from .errors import ColumnPlacerError, InvalidStateTransition
from .geometry import Point
from .host import Level, ModelHost
from .level_selector import select_level
from .rectangle_detector import RectangleCandidate
from .settings import PlacementSettings
from .template_resolver import TemplateResolver
from .templates import TemplateEntry, dimension_key

logger = logging.getLogger("BatchExecutor")


class RunState(Enum):
    IDLE = "idle"
    COLLECTING_INPUT = "collecting_input"
    DETECTING = "detecting"
    RESOLVING = "resolving"
    ACTIVATING = "activating"
    CREATING = "creating"
    REPORTING = "reporting"
    DONE = "done"
    USER_CANCELLED = "user_cancelled"
    ABORTED = "aborted"


# Detecting -> CollectingInput is the "confirm rectangle count" prompt.
ALLOWED_TRANSITIONS = {
    RunState.IDLE: {RunState.COLLECTING_INPUT},
    RunState.COLLECTING_INPUT: {RunState.DETECTING, RunState.RESOLVING,
                                RunState.USER_CANCELLED, RunState.DONE},
    RunState.DETECTING: {RunState.COLLECTING_INPUT, RunState.RESOLVING, RunState.REPORTING},
    RunState.RESOLVING: {RunState.ACTIVATING},
    RunState.ACTIVATING: {RunState.CREATING},
    RunState.CREATING: {RunState.REPORTING, RunState.ABORTED},
    RunState.ABORTED: {RunState.REPORTING},
    RunState.REPORTING: {RunState.DONE},
    RunState.DONE: set(),
    RunState.USER_CANCELLED: set(),
}

MUTATING_STATES = {RunState.ACTIVATING, RunState.CREATING}


class RunStateMachine:
    """Tracks the state of one batch run and rejects illegal transitions"""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.logger = log or logger
        self.state = RunState.IDLE
        self.history: List[RunState] = [RunState.IDLE]

    def transition(self, new_state: RunState) -> None:
        if new_state not in ALLOWED_TRANSITIONS[self.state]:
            raise InvalidStateTransition(
                f"Cannot go from {self.state.value} to {new_state.value}"
            )
        self.logger.debug(f"Run state: {self.state.value} -> {new_state.value}")
        self.state = new_state
        self.history.append(new_state)

    @property
    def mutation_started(self) -> bool:
        return any(state in MUTATING_STATES for state in self.history)

    @property
    def is_finished(self) -> bool:
        return not ALLOWED_TRANSITIONS[self.state]


class PhasedPlacementExecutor:
    """
    Resolve / Activate / Create over a list of rectangle candidates.

    Args:
        host: Model host
        resolver: Template resolver holding the per-run cache (created if omitted)
        settings: Placement settings
        state_machine: Run state to advance through the phases (optional)
        log: Logger (module logger if omitted)
    """

    def __init__(
        self,
        host: ModelHost,
        resolver: Optional[TemplateResolver] = None,
        settings: Optional[PlacementSettings] = None,
        state_machine: Optional[RunStateMachine] = None,
        log: Optional[logging.Logger] = None
    ):
        self.host = host
        self.settings = settings or PlacementSettings()
        self.logger = log or logger
        self.resolver = resolver or TemplateResolver(host, self.settings, self.logger)
        self.state_machine = state_machine
        self.activation_calls = 0

    def _enter(self, state: RunState) -> None:
        if self.state_machine is not None:
            self.state_machine.transition(state)

    def execute(self, candidates: Sequence[RectangleCandidate], report: BatchReport) -> BatchReport:
        """Run all three phases; outcomes are appended to `report`."""
        self._enter(RunState.RESOLVING)
        self.resolve_phase(candidates)

        self._enter(RunState.ACTIVATING)
        self.activate_phase()

        self._enter(RunState.CREATING)
        self.create_phase(candidates, report)

        if report.rolled_back:
            self._enter(RunState.ABORTED)

        return report

    def resolve_phase(self, candidates: Sequence[RectangleCandidate]) -> Dict[str, Optional[TemplateEntry]]:
        """Resolve each distinct rectangle size once; returns key -> template."""
        resolved: Dict[str, Optional[TemplateEntry]] = {}

        for candidate in candidates:
            analysis = candidate.analysis
            key = dimension_key(analysis.width, analysis.height)
            resolved[key] = self.resolver.resolve(analysis.width, analysis.height)

        failed = sum(1 for entry in resolved.values() if entry is None)
        self.logger.info(f"Resolve phase: {len(resolved)} distinct sizes, {failed} unresolved "
                         f"({self.resolver.resolution_attempts} resolution attempts)")
        return resolved

    def activate_phase(self) -> List[TemplateEntry]:
        """
        Activate every resolved, inactive template in one scope.

        Returns:
            Templates that failed to activate
        """
        pending = [t for t in self.resolver.cache.resolved_templates() if not t.is_active]
        if not pending:
            self.logger.info("Activate phase: all templates already active")
            return []

        failed = []
        with self.host.mutation_scope("Activate Column Templates"):
            for template in pending:
                self.activation_calls += 1
                try:
                    self.host.activate_template(template)
                    self.logger.info(f"Activated template {template}")
                except ColumnPlacerError as e:
                    self.logger.warning(f"Could not activate template {template}: {e}")
                    failed.append(template)

        self.logger.info(f"Activate phase: {len(pending) - len(failed)} activated, {len(failed)} failed")
        return failed

    def create_phase(self, candidates: Sequence[RectangleCandidate], report: BatchReport) -> BatchReport:
        """Place one column per candidate; roll back if none were created."""
        levels = self.host.get_levels()
        activation_retries: Dict[str, bool] = {}
        created_before = report.success_count

        with self.host.mutation_scope("Create Batch Columns") as scope:
            for candidate in candidates:
                self._place(candidate, levels, report, activation_retries)

            created = report.success_count - created_before
            if created == 0:
                self.logger.error("No columns were created, rolling back")
                scope.rollback()
                report.rolled_back = True
            else:
                scope.commit()

        self.logger.info(f"Create phase: {report.success_count - created_before} created, "
                         f"{report.failure_count} failed")
        return report

    def _ensure_active(self, template: TemplateEntry, retries: Dict[str, bool]) -> bool:
        if template.is_active:
            return True

        if template.identity not in retries:
            self.activation_calls += 1
            try:
                self.host.activate_template(template)
                retries[template.identity] = True
                self.logger.info(f"Activated template {template} at use time")
            except ColumnPlacerError as e:
                self.logger.error(f"Could not activate template {template} at use time: {e}")
                retries[template.identity] = False

        return retries[template.identity]

    def _place(self, candidate: RectangleCandidate, levels: List[Level],
               report: BatchReport, activation_retries: Dict[str, bool]) -> None:
        analysis = candidate.analysis
        width, height, center = analysis.width, analysis.height, analysis.center
        location = f"({center.x:.2f}, {center.y:.2f})"

        template = self.resolver.cache.get(dimension_key(width, height))
        if template is None:
            report.add_failure(candidate, FailureKind.TEMPLATE_RESOLUTION,
                               f"Could not find template for {width:.3f} x {height:.3f} at {location}")
            return

        if not self._ensure_active(template, activation_retries):
            report.add_failure(candidate, FailureKind.ACTIVATION,
                               f"Template {template} could not be activated for column at {location}")
            return

        level = select_level(center, levels, self.logger)
        if level is None:
            report.add_failure(candidate, FailureKind.LEVEL_RESOLUTION,
                               f"Could not determine level for column at {location}")
            return

        try:
            element_ref = self.host.create_element(Point(center.x, center.y, level.elevation), template, level)
        except Exception as e:
            self.logger.error(f"Error creating column at {location}: {e}")
            report.add_failure(candidate, FailureKind.CREATION, f"Error creating column at {location}: {e}")
            return

        if not element_ref:
            report.add_failure(candidate, FailureKind.CREATION, f"Failed to create column at {location}")
            return

        report.add_success(candidate, element_ref, template.symbol_name, level.name)
        self.logger.info(f"Created column {width:.3f} x {height:.3f} at {location} "
                         f"on {level.name} using {template}")
