"""Core contracts for the stepwise workflow engine."""

from __future__ import annotations

from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    FrozenSet,
    List,
    Mapping,
    Optional,
    Protocol,
    Union,
    runtime_checkable,
)

from pydantic import BaseModel, ConfigDict, Field, computed_field

StepPredicate = Callable[[], Union[bool, Awaitable[bool]]]
StepHook = Callable[[], Union[None, Awaitable[None]]]
StepCondition = Callable[[Mapping[str, Any]], bool]
CompletionCallback = Callable[[Dict[str, Any]], Union[None, Awaitable[None]]]


@runtime_checkable
class FormBinding(Protocol):
    """Capability that validates named form fields."""

    def validate_fields(self, names: List[str]) -> Union[bool, Awaitable[bool]]:
        """Return ``True`` when every named field is valid."""


class StepDefinition(BaseModel):
    """Describes one stage of a workflow.

    The descriptor is passive: hooks and predicates are stored here but only
    ever invoked by :class:`~stepwise.controller.WorkflowController`.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, populate_by_name=True)

    id: str
    title: str = ""
    description: Optional[str] = None
    optional: bool = False
    fields: List[str] = Field(default_factory=list)
    validate_step: Optional[StepPredicate] = Field(default=None, alias="validate")
    on_before_next: Optional[StepHook] = None
    on_before_previous: Optional[StepHook] = None
    condition: Optional[StepCondition] = None

    def is_visible(self, form_data: Mapping[str, Any]) -> bool:
        """Evaluate the render-time visibility predicate."""
        if self.condition is None:
            return True
        return bool(self.condition(form_data))


class WizardState(BaseModel):
    """Immutable snapshot of a workflow's position and accumulated data."""

    model_config = ConfigDict(frozen=True)

    current_step: int = 0
    total_steps: int
    visited_steps: FrozenSet[int] = frozenset({0})
    form_data: Dict[str, Any] = Field(default_factory=dict)
    is_loading: bool = False
    can_go_next: bool = True
    is_complete: bool = False

    @computed_field  # type: ignore[misc]
    @property
    def is_first_step(self) -> bool:
        return self.current_step == 0

    @computed_field  # type: ignore[misc]
    @property
    def is_last_step(self) -> bool:
        return self.current_step == self.total_steps - 1

    @computed_field  # type: ignore[misc]
    @property
    def can_go_previous(self) -> bool:
        return self.current_step > 0

    @computed_field  # type: ignore[misc]
    @property
    def progress(self) -> float:
        """Completion percentage counting the active step as reached."""
        return (self.current_step + 1) / self.total_steps * 100


class StepStatus(BaseModel):
    """Per-step view used by step indicators."""

    index: int
    id: str
    title: str
    is_active: bool
    is_completed: bool
    is_clickable: bool
    is_visible: bool = True
