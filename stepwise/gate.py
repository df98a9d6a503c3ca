"""Validation gate guarding forward transitions."""

from __future__ import annotations

import logging
from typing import Optional

from .contracts import FormBinding, StepDefinition
from .utils import maybe_await

logger = logging.getLogger(__name__)


class ValidationGate:
    """Compose field-level and step-level validation for a step.

    Both checks must pass, field validation first. A failing check is a
    normal ``False`` result; exceptions raised by the binding or the step's
    predicate are not caught.
    """

    def __init__(self, binding: Optional[FormBinding] = None) -> None:
        self._binding = binding

    @property
    def binding(self) -> Optional[FormBinding]:
        return self._binding

    async def check(self, step: StepDefinition) -> bool:
        """Return ``True`` when ``step`` may be left in the forward direction."""
        if not await self.check_fields(step):
            logger.debug(f"Field validation failed for step {step.id}: {step.fields}")
            return False

        if step.validate_step is not None:
            passed = await maybe_await(step.validate_step())
            if not passed:
                logger.debug(f"Step predicate rejected step {step.id}")
                return False

        return True

    async def check_fields(self, step: StepDefinition) -> bool:
        if not step.fields:
            return True
        if self._binding is None:
            logger.warning(
                f"Step {step.id} declares fields {step.fields} but no form binding "
                "is configured; skipping field validation"
            )
            return True
        return bool(await maybe_await(self._binding.validate_fields(list(step.fields))))
