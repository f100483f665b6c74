"""Step navigation state machine.

The engine moves between steps 1..N. Forward moves are gated on the
validator, backward moves are free, and jumps are limited to completed
steps plus the first incomplete one. Every move runs through a short
transition window during which further navigation is ignored.
"""

import asyncio
import logging
from typing import Any, Callable, Mapping, Optional, Sequence

from accountform.core.config import STEP_TRANSITION_SECONDS
from accountform.steps.model import FormSessionState, StepDefinition
from accountform.validation.validator import FieldValidator

logger = logging.getLogger(__name__)


class StepEngine:
    """Finite-state controller over an ordered list of steps.

    Args:
        steps: Step definitions with contiguous ids starting at 1
        validator: Field validator used to gate forward moves
        record: Returns the current form record
        transition_delay: Seconds of the visual transition (0 disables it)
        on_step_change: Called with the new step id after each move
    """

    def __init__(
        self,
        steps: Sequence[StepDefinition],
        validator: FieldValidator,
        record: Callable[[], Mapping[str, Any]],
        *,
        transition_delay: float = STEP_TRANSITION_SECONDS,
        on_step_change: Optional[Callable[[int], Any]] = None,
    ):
        ids = [step.id for step in steps]
        if not ids or ids != list(range(1, len(ids) + 1)):
            raise ValueError(f"Step ids must be contiguous from 1, got {ids}")

        self.steps = tuple(steps)
        self.transition_delay = transition_delay
        self.state = FormSessionState()
        self.field_errors: dict[str, str] = {}
        self._validator = validator
        self._record = record
        self._on_step_change = on_step_change
        self._generation = 0

    @property
    def step_count(self) -> int:
        return len(self.steps)

    @property
    def current_step(self) -> StepDefinition:
        return self.steps[self.state.current_step_id - 1]

    @property
    def is_last_step(self) -> bool:
        return self.state.current_step_id == self.step_count

    @property
    def can_go_next(self) -> bool:
        return not self.state.is_transitioning

    @property
    def can_go_previous(self) -> bool:
        return self.state.current_step_id > 1 and not self.state.is_transitioning

    @property
    def progress(self) -> int:
        """Completed share of the form, in percent."""
        return self.state.highest_completed_step_id * 100 // self.step_count

    def can_jump_to(self, target: int) -> bool:
        state = self.state
        return (
            1 <= target <= self.step_count
            and target != state.current_step_id
            and target <= state.highest_completed_step_id + 1
        )

    async def request_next(self) -> bool:
        """Validate the current step and advance. Returns True on a move."""
        if self.state.is_transitioning:
            return False

        current = self.state.current_step_id
        if not self._validate_steps([current]):
            return False

        target = min(current + 1, self.step_count)
        return await self._transition(target, completed=current)

    async def request_previous(self) -> bool:
        if not self.can_go_previous:
            return False
        return await self._transition(self.state.current_step_id - 1)

    async def request_jump(self, target: int) -> bool:
        """Jump to ``target``. Disallowed jumps are silently ignored."""
        if self.state.is_transitioning or not self.can_jump_to(target):
            return False

        current = self.state.current_step_id
        highest = self.state.highest_completed_step_id
        if target > current and target > highest:
            if not self._validate_steps(range(current, target)):
                return False
            return await self._transition(target, completed=target - 1)

        return await self._transition(target)

    def reset(self) -> None:
        """Return to step 1 and forget progress; abandons any transition."""
        self._generation += 1
        self.state = FormSessionState()
        self.field_errors = {}
        logger.info("Step engine reset", extra={"step": 1})
        self._notify(1)

    def _validate_steps(self, step_ids) -> bool:
        record = self._record()
        for step_id in step_ids:
            step = self.steps[step_id - 1]
            result = self._validator.validate(record, step.required_fields)
            if not result.is_valid:
                self.state.step_submit_attempted = True
                self.field_errors = result.field_errors
                logger.info(
                    "Step %d blocked on %d invalid field(s)",
                    step_id,
                    len(result.field_errors),
                    extra={"step": step_id},
                )
                return False
        self.field_errors = {}
        return True

    async def _transition(self, target: int, completed: Optional[int] = None) -> bool:
        generation = self._generation
        self.state.is_transitioning = True

        try:
            if self.transition_delay > 0:
                await asyncio.sleep(self.transition_delay)
        except asyncio.CancelledError:
            if generation == self._generation:
                self.state.is_transitioning = False
            raise

        if generation != self._generation:
            return False

        state = self.state
        state.current_step_id = target
        if completed is not None:
            state.highest_completed_step_id = max(
                state.highest_completed_step_id, completed
            )
        state.step_submit_attempted = False
        state.is_transitioning = False
        self.field_errors = {}

        logger.debug("Moved to step %d", target, extra={"step": target})
        self._notify(target)
        return True

    def _notify(self, step_id: int) -> None:
        if self._on_step_change is not None:
            self._on_step_change(step_id)
