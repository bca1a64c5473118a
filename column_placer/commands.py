"""
Commands Module

User-facing column placement commands:
- BatchColumnCommand: detect every rectangle in a set of line segments and
  place one column inside each
- SingleColumnCommand: place one column inside the rectangle formed by
  exactly 4 line segments

Prompts (confirmation, final summary) go through a UserPrompt and only
happen before any model change, or after all of them.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from .batch_executor import PhasedPlacementExecutor, RunState, RunStateMachine
from .batch_report import BatchReport, detection_preview, format_dimension
from .errors import DetectionFailure, InputError
from .geometry import LineSegment
from .host import ModelHost
from .rectangle_detector import DetectionResult, RectangleCandidate, RectangleDetector
from .rectangle_validator import analyze_rectangle
from .settings import PlacementSettings
from .templates import dimension_key

logger = logging.getLogger("Commands")

DETECTION_HINTS = (
    "Make sure:\n"
    "  - Lines are connected end-to-end to form closed rectangles\n"
    "  - Each rectangle consists of exactly 4 lines\n"
    "  - Lines are properly aligned (horizontal and vertical)"
)


class CommandStatus(Enum):
    SUCCEEDED = "succeeded"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass
class CommandOutcome:
    status: CommandStatus
    message: str
    report: Optional[BatchReport] = None


class UserPrompt:
    """Blocking user interaction used by the commands"""

    def confirm(self, title: str, message: str) -> bool:
        raise NotImplementedError

    def show(self, title: str, message: str) -> None:
        raise NotImplementedError


class AutoPrompt(UserPrompt):
    """Answers every confirmation with `answer` and records all messages."""

    def __init__(self, answer: bool = True):
        self.answer = answer
        self.messages: List[Tuple[str, str]] = []

    def confirm(self, title: str, message: str) -> bool:
        self.messages.append((title, message))
        return self.answer

    def show(self, title: str, message: str) -> None:
        self.messages.append((title, message))


class BatchColumnCommand:
    """
    Batch command: rectangles from line segments, one column per rectangle.

    Args:
        host: Model host to place columns in
        settings: Placement settings
        prompt: User prompt (auto-confirm if omitted)
        log: Logger (module logger if omitted)
    """

    def __init__(self, host: ModelHost, settings: Optional[PlacementSettings] = None,
                 prompt: Optional[UserPrompt] = None, log: Optional[logging.Logger] = None):
        self.host = host
        self.settings = settings or PlacementSettings()
        self.prompt = prompt or AutoPrompt()
        self.logger = log or logger
        self.state_machine = RunStateMachine(self.logger)
        self.detection: Optional[DetectionResult] = None
        self.candidates: List[RectangleCandidate] = []
        self.executor: Optional[PhasedPlacementExecutor] = None

    def run(self, segments: Sequence[LineSegment]) -> CommandOutcome:
        self.logger.info("Starting Batch Column command")
        self.state_machine = RunStateMachine(self.logger)
        self.candidates = []
        self.state_machine.transition(RunState.COLLECTING_INPUT)

        try:
            segments = self.collect_input(segments)
            self.state_machine.transition(RunState.DETECTING)
            self.detection = self.detect(segments)
            self.candidates = self.detection.candidates
        except InputError as e:
            self.logger.warning(f"Batch Column command cancelled: {e}")
            self.state_machine.transition(RunState.DONE)
            return CommandOutcome(CommandStatus.CANCELLED, str(e))
        except DetectionFailure as e:
            self.logger.warning(str(e))
            report = BatchReport(total_segments=e.segment_count, segments_unused=e.segment_count)
            message = f"{e}.\n\n{DETECTION_HINTS}"
            self.state_machine.transition(RunState.REPORTING)
            self.prompt.show("No Rectangles Found", message)
            self.state_machine.transition(RunState.DONE)
            return CommandOutcome(CommandStatus.FAILED, message, report)

        report = BatchReport.from_detection(len(segments), self.detection)

        self.state_machine.transition(RunState.COLLECTING_INPUT)
        preview = detection_preview(self.detection, len(segments), self.settings.rectangle_preview_limit)
        if not self.prompt.confirm("Batch Column Creation", preview):
            self.logger.info("Batch Column command cancelled by user")
            self.state_machine.transition(RunState.USER_CANCELLED)
            return CommandOutcome(CommandStatus.CANCELLED, "Batch column creation cancelled", report)

        self.executor = PhasedPlacementExecutor(
            self.host, settings=self.settings, state_machine=self.state_machine, log=self.logger
        )
        self.executor.execute(self.detection.candidates, report)

        self.state_machine.transition(RunState.REPORTING)
        summary = report.summary(self.settings.failure_preview_limit)
        self.prompt.show("Batch Column Creation Complete", summary)
        self.state_machine.transition(RunState.DONE)

        self.logger.info(f"Batch Column command completed: {report.success_count} columns created")
        status = CommandStatus.SUCCEEDED if report.success_count > 0 else CommandStatus.FAILED
        return CommandOutcome(status, summary, report)

    def collect_input(self, segments: Optional[Sequence[LineSegment]]) -> List[LineSegment]:
        """
        Raises:
            InputError: If fewer than 4 segments were selected
        """
        segments = list(segments or [])
        if not segments:
            raise InputError("No line segments selected")
        if len(segments) < 4:
            raise InputError(f"At least 4 line segments are needed to form a rectangle, "
                             f"got {len(segments)}")
        self.logger.info(f"Processing {len(segments)} line segments")
        return segments

    def detect(self, segments: List[LineSegment]) -> DetectionResult:
        """
        Raises:
            DetectionFailure: If no rectangle was found
        """
        detector = RectangleDetector(
            self.settings.tolerance, self.settings.min_size, self.settings.max_size, self.logger
        )
        detection = detector.detect(segments)
        if not detection.candidates:
            raise DetectionFailure(len(segments))
        return detection


class SingleColumnCommand:
    """
    Single column command: exactly 4 segments forming one rectangle.

    Uses `single_max_size` as the upper size bound.
    """

    def __init__(self, host: ModelHost, settings: Optional[PlacementSettings] = None,
                 prompt: Optional[UserPrompt] = None, log: Optional[logging.Logger] = None):
        self.host = host
        self.settings = settings or PlacementSettings()
        self.prompt = prompt or AutoPrompt()
        self.logger = log or logger
        self.state_machine = RunStateMachine(self.logger)
        self.candidates: List[RectangleCandidate] = []
        self.executor: Optional[PhasedPlacementExecutor] = None

    def run(self, segments: Sequence[LineSegment]) -> CommandOutcome:
        self.logger.info("Starting Single Column command")
        self.state_machine = RunStateMachine(self.logger)
        self.candidates = []
        self.state_machine.transition(RunState.COLLECTING_INPUT)

        try:
            segments = self.collect_input(segments)
        except InputError as e:
            self.logger.warning(f"Single Column command cancelled: {e}")
            self.state_machine.transition(RunState.DONE)
            return CommandOutcome(CommandStatus.CANCELLED, str(e))

        self.state_machine.transition(RunState.DETECTING)
        analysis = analyze_rectangle(
            segments, self.settings.tolerance, self.settings.min_size,
            self.settings.single_max_size, self.logger
        )
        report = BatchReport(total_segments=4)

        if not analysis.is_valid:
            message = f"The selected lines do not form a valid rectangle: {analysis.error_message}"
            report.segments_unused = 4
            self.state_machine.transition(RunState.REPORTING)
            self.prompt.show("Invalid Rectangle", message)
            self.state_machine.transition(RunState.DONE)
            return CommandOutcome(CommandStatus.FAILED, message, report)

        report.rectangles_detected = 1
        report.segments_consumed = 4
        self.logger.info(f"Rectangle analyzed: {analysis.width:.3f} x {analysis.height:.3f} "
                         f"at ({analysis.center.x:.2f}, {analysis.center.y:.2f})")

        self.executor = PhasedPlacementExecutor(
            self.host, settings=self.settings, state_machine=self.state_machine, log=self.logger
        )
        self.candidates = [RectangleCandidate(segments, analysis)]
        self.executor.execute(self.candidates, report)

        self.state_machine.transition(RunState.REPORTING)
        if report.success_count:
            result = report.successes[0]
            template = self.executor.resolver.cache.get(dimension_key(analysis.width, analysis.height))
            message = (
                f"Column created at ({result.center.x:.2f}, {result.center.y:.2f})\n"
                f"Dimensions: {format_dimension(result.width)} x {format_dimension(result.height)}\n"
                f"Family: {template.family_name}\n"
                f"Symbol: {template.symbol_name}\n"
                f"Level: {result.level_name}"
            )
            self.prompt.show("Column Created Successfully", message)
            status = CommandStatus.SUCCEEDED
        else:
            message = report.failures[0].reason
            self.prompt.show("Column Creation Failed", message)
            status = CommandStatus.FAILED

        self.state_machine.transition(RunState.DONE)
        self.logger.info(f"Single Column command finished: {status.value}")
        return CommandOutcome(status, message, report)

    def collect_input(self, segments: Optional[Sequence[LineSegment]]) -> List[LineSegment]:
        """
        Raises:
            InputError: Unless exactly 4 segments were selected
        """
        segments = list(segments or [])
        if len(segments) != 4:
            raise InputError(f"Current selection: {len(segments)} line segments. This tool requires "
                             f"exactly 4 line segments that form a rectangle.")
        return segments
