"""Pure state transitions for :class:`~stepwise.contracts.WizardState`.

Every function takes a state and returns a new one; rejected transitions
return the input state unchanged. Hooks, validation and persistence live in
the controller, never here.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from .contracts import WizardState


def initial_state(
    total_steps: int, form_data: Optional[Mapping[str, Any]] = None
) -> WizardState:
    if total_steps < 1:
        raise ValueError("A workflow needs at least one step")
    return WizardState(
        current_step=0,
        total_steps=total_steps,
        visited_steps=frozenset({0}),
        form_data=dict(form_data or {}),
    )


def can_jump(state: WizardState, target: int, allow_step_skipping: bool) -> bool:
    """Return ``True`` when ``go_to`` would accept ``target``."""
    if target < 0 or target >= state.total_steps:
        return False
    if (
        not allow_step_skipping
        and target > state.current_step
        and target not in state.visited_steps
    ):
        return False
    return True


def go_to(state: WizardState, target: int, allow_step_skipping: bool) -> WizardState:
    """Move to ``target``; the gate result of the previous step is dropped."""
    if not can_jump(state, target, allow_step_skipping) or target == state.current_step:
        return state
    return state.model_copy(
        update={
            "current_step": target,
            "visited_steps": state.visited_steps | {target},
            "can_go_next": True,
        }
    )


def advance(state: WizardState) -> WizardState:
    """Move to the following step, which is always reachable from the current one."""
    return go_to(state, state.current_step + 1, allow_step_skipping=True)


def retreat(state: WizardState) -> WizardState:
    return go_to(state, state.current_step - 1, allow_step_skipping=False)


def begin_transition(state: WizardState) -> WizardState:
    return state.model_copy(update={"is_loading": True})


def end_transition(state: WizardState) -> WizardState:
    return state.model_copy(update={"is_loading": False})


def block(state: WizardState) -> WizardState:
    """Record a failed gate for the active step."""
    return state.model_copy(update={"can_go_next": False, "is_loading": False})


def set_can_go_next(state: WizardState, value: bool) -> WizardState:
    return state.model_copy(update={"can_go_next": bool(value)})


def merge_form_data(state: WizardState, patch: Mapping[str, Any]) -> WizardState:
    """Shallow merge ``patch`` over the accumulated form data."""
    return state.model_copy(update={"form_data": {**state.form_data, **patch}})


def mark_complete(state: WizardState) -> WizardState:
    return state.model_copy(update={"is_complete": True, "is_loading": False})
