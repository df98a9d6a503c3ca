"""Workflow controller driving a multi-step wizard."""

from __future__ import annotations

import logging
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    FrozenSet,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
)

from . import transitions
from .constants import DEFAULT_STORAGE_KEY
from .contracts import (
    CompletionCallback,
    FormBinding,
    StepDefinition,
    StepStatus,
    WizardState,
)
from .gate import ValidationGate
from .persistence import SequencedWriter, StorageAdapter, get_adapter
from .utils import maybe_await

if TYPE_CHECKING:
    from .config import StepwiseConfig

logger = logging.getLogger(__name__)

StateListener = Callable[[WizardState], None]


def visible_steps(
    steps: Iterable[StepDefinition], form_data: Mapping[str, Any]
) -> List[StepDefinition]:
    """Return the steps whose condition holds for ``form_data``.

    Use this to pre-filter a step list per user branch before constructing a
    controller; the controller itself never hides steps.
    """
    return [step for step in steps if step.is_visible(form_data)]


def options_from_config(
    config: Optional["StepwiseConfig"], options: Dict[str, Any]
) -> Dict[str, Any]:
    """Fill controller options not passed explicitly from ``config``."""
    if config is None:
        return options
    merged = {**config.wizard.model_dump(), **options}
    if merged.get("persist_state", True) and merged.get("storage") is None:
        merged["storage"] = get_adapter(config=config)
    return merged


class WorkflowController:
    """Own a :class:`WizardState` and expose the navigation actions.

    State only changes through the pure functions in
    :mod:`stepwise.transitions`; this class adds the effects around them:
    the validation gate, lifecycle hooks, the completion callback,
    persistence and change notification.
    """

    def __init__(
        self,
        steps: Sequence[StepDefinition],
        *,
        form_binding: Optional[FormBinding] = None,
        storage: Optional[StorageAdapter] = None,
        on_complete: Optional[CompletionCallback] = None,
        on_step_change: Optional[Callable[[int], None]] = None,
        allow_step_skipping: bool = False,
        persist_state: bool = True,
        storage_key: str = DEFAULT_STORAGE_KEY,
        clear_on_complete: bool = False,
        initial_data: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self._steps: tuple[StepDefinition, ...] = tuple(steps)
        if not self._steps:
            raise ValueError("A workflow needs at least one step")
        seen: set[str] = set()
        for step in self._steps:
            if step.id in seen:
                raise ValueError(f"Duplicate step id: {step.id}")
            seen.add(step.id)

        self._gate = ValidationGate(form_binding)
        self._on_complete = on_complete
        self._on_step_change = on_step_change
        self.allow_step_skipping = allow_step_skipping
        self.persist_state = persist_state
        self.storage_key = storage_key
        self.clear_on_complete = clear_on_complete
        self._initial_data = dict(initial_data or {})

        self._writer: Optional[SequencedWriter] = None
        if persist_state:
            self._writer = SequencedWriter(storage if storage is not None else get_adapter())

        self._state = transitions.initial_state(len(self._steps), self._initial_data)
        self._generation = 0
        # owner of the current is_loading flag; reset() drops it
        self._transition: Optional[object] = None
        self._listeners: List[StateListener] = []

    @classmethod
    async def create(
        cls,
        steps: Sequence[StepDefinition],
        *,
        config: Optional["StepwiseConfig"] = None,
        **options: Any,
    ) -> "WorkflowController":
        """Construct a controller and rehydrate its form data from storage.

        Options not passed explicitly are taken from ``config.wizard`` and the
        storage configured in ``config`` when a config is given.
        """
        controller = cls(steps, **options_from_config(config, options))
        await controller.hydrate()
        return controller

    # ------------------------------------------------------------------
    # State accessors
    @property
    def state(self) -> WizardState:
        return self._state

    @property
    def steps(self) -> tuple[StepDefinition, ...]:
        return self._steps

    @property
    def form_binding(self) -> Optional[FormBinding]:
        return self._gate.binding

    @property
    def current_step(self) -> int:
        return self._state.current_step

    @property
    def current_step_definition(self) -> StepDefinition:
        return self._steps[self._state.current_step]

    @property
    def total_steps(self) -> int:
        return self._state.total_steps

    @property
    def visited_steps(self) -> FrozenSet[int]:
        return self._state.visited_steps

    @property
    def form_data(self) -> Dict[str, Any]:
        return dict(self._state.form_data)

    @property
    def is_loading(self) -> bool:
        return self._state.is_loading

    @property
    def can_go_next(self) -> bool:
        return self._state.can_go_next

    @property
    def can_go_previous(self) -> bool:
        return self._state.can_go_previous

    @property
    def is_first_step(self) -> bool:
        return self._state.is_first_step

    @property
    def is_last_step(self) -> bool:
        return self._state.is_last_step

    @property
    def is_complete(self) -> bool:
        return self._state.is_complete

    @property
    def progress(self) -> float:
        return self._state.progress

    # ------------------------------------------------------------------
    # Observation
    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener`` with the new state after every change."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _apply(self, new_state: WizardState) -> None:
        if new_state is self._state:
            return
        previous, self._state = self._state, new_state
        if previous.current_step != new_state.current_step:
            self._generation += 1
            logger.debug(
                f"Moved from step {previous.current_step} to {new_state.current_step}"
            )
            if self._on_step_change is not None:
                self._on_step_change(new_state.current_step)
        for listener in list(self._listeners):
            listener(new_state)

    def _begin_transition(self) -> object:
        token = object()
        self._transition = token
        self._apply(transitions.begin_transition(self._state))
        return token

    def _end_transition(self, token: object) -> None:
        if self._transition is not token:
            return
        self._transition = None
        if self._state.is_loading:
            self._apply(transitions.end_transition(self._state))

    def _is_stale(self, generation: int) -> bool:
        if generation != self._generation:
            logger.debug(
                f"Discarding transition result from generation {generation}; "
                f"now at generation {self._generation}"
            )
            return True
        return False

    # ------------------------------------------------------------------
    # Navigation
    def go_to_step(self, step: int) -> bool:
        """Jump to ``step`` without validation; ignored when not reachable."""
        new_state = transitions.go_to(self._state, step, self.allow_step_skipping)
        if new_state is self._state:
            if step != self._state.current_step:
                logger.debug(f"Ignoring jump to step {step} from {self._state.current_step}")
            return False
        self._apply(new_state)
        return True

    async def next_step(self) -> bool:
        """Validate the active step and move forward, completing on the last step.

        Returns ``True`` when the workflow advanced or completed. A failed gate
        returns ``False`` and clears ``can_go_next``. Exceptions from
        ``on_before_next`` or the completion callback propagate and leave the
        position unchanged.
        """
        if self._state.is_loading:
            logger.debug("Ignoring next_step while a transition is in progress")
            return False
        if self._state.is_complete:
            logger.debug("Ignoring next_step on a completed workflow")
            return False

        index = self._state.current_step
        step = self._steps[index]
        generation = self._generation
        token = self._begin_transition()
        try:
            passed = await self._gate.check(step)
            if self._is_stale(generation):
                return False
            if not passed:
                self._apply(transitions.block(self._state))
                return False
            self._apply(transitions.set_can_go_next(self._state, True))

            if step.on_before_next is not None:
                await maybe_await(step.on_before_next())
                if self._is_stale(generation):
                    return False

            if index < len(self._steps) - 1:
                self._apply(transitions.advance(self._state))
                return True

            if self._on_complete is not None:
                await maybe_await(self._on_complete(self.form_data))
                if self._is_stale(generation):
                    return False
            self._apply(transitions.mark_complete(self._state))
            logger.info(f"Workflow {self.storage_key} completed at step {step.id}")
            if self.clear_on_complete and self._writer is not None:
                await self._writer.discard(self.storage_key)
            return True
        finally:
            self._end_transition(token)

    async def previous_step(self) -> bool:
        """Run ``on_before_previous`` and move back one step.

        Never blocked by validation. Exceptions from the hook propagate and
        leave the position unchanged.
        """
        if self._state.is_loading:
            logger.debug("Ignoring previous_step while a transition is in progress")
            return False
        index = self._state.current_step
        if index == 0:
            return False

        step = self._steps[index]
        generation = self._generation
        token = self._begin_transition()
        try:
            if step.on_before_previous is not None:
                await maybe_await(step.on_before_previous())
                if self._is_stale(generation):
                    return False
            self._apply(transitions.retreat(self._state))
            return True
        finally:
            self._end_transition(token)

    async def skip_step(self) -> bool:
        """Advance past an optional step without validation or hooks."""
        if self._state.is_loading or self._state.is_complete:
            return False
        step = self.current_step_definition
        if not step.optional:
            logger.warning(f"Step {step.id} is not optional and cannot be skipped")
            return False
        if self._state.is_last_step:
            return False
        self._apply(transitions.advance(self._state))
        logger.debug(f"Skipped optional step {step.id}")
        return True

    # ------------------------------------------------------------------
    # Data and validity
    async def update_form_data(self, patch: Mapping[str, Any]) -> None:
        """Merge ``patch`` into the form data and persist it."""
        self._apply(transitions.merge_form_data(self._state, patch))
        await self._persist()

    def set_can_go_next(self, value: bool) -> None:
        self._apply(transitions.set_can_go_next(self._state, value))

    async def revalidate(self) -> bool:
        """Run the gate for the active step and record the result."""
        generation = self._generation
        passed = await self._gate.check(self.current_step_definition)
        if not self._is_stale(generation):
            self.set_can_go_next(passed)
        return passed

    # ------------------------------------------------------------------
    # Persistence
    async def hydrate(self) -> None:
        """Merge previously stored form data into the current state."""
        if self._writer is None:
            return
        stored = await self._writer.read(self.storage_key)
        if stored is None:
            return
        if not isinstance(stored, dict):
            logger.warning(
                f"Ignoring stored data for key={self.storage_key}: expected a mapping, "
                f"got {type(stored).__name__}"
            )
            return
        self._apply(transitions.merge_form_data(self._state, stored))
        logger.debug(f"Restored {len(stored)} field(s) for key={self.storage_key}")

    async def _persist(self) -> None:
        if self._writer is None:
            return
        version = self._writer.stamp(self.storage_key)
        await self._writer.write(self.storage_key, self.form_data, version)

    async def reset(self) -> None:
        """Abandon progress: return to the first step and drop stored data."""
        self._generation += 1
        self._transition = None
        self._apply(transitions.initial_state(len(self._steps), self._initial_data))
        if self._writer is not None:
            await self._writer.discard(self.storage_key)

    # ------------------------------------------------------------------
    # Rendering helpers
    def visible_steps(self) -> List[StepDefinition]:
        return visible_steps(self._steps, self._state.form_data)

    def step_statuses(self) -> List[StepStatus]:
        state = self._state
        statuses = []
        for index, step in enumerate(self._steps):
            visited = index in state.visited_steps
            statuses.append(
                StepStatus(
                    index=index,
                    id=step.id,
                    title=step.title,
                    is_active=index == state.current_step,
                    is_completed=index < state.current_step or visited,
                    is_clickable=self.allow_step_skipping
                    and (visited or index <= state.current_step),
                    is_visible=step.is_visible(state.form_data),
                )
            )
        return statuses
