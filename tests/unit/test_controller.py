"""Workflow controller tests."""

import asyncio

import pytest

from stepwise import StepDefinition, WorkflowController, visible_steps
from stepwise.persistence import InMemoryStorageAdapter


def make_steps(count=5, overrides=None):
    overrides = overrides or {}
    steps = []
    for index in range(count):
        options = overrides.get(index, {})
        steps.append(StepDefinition(id=f"step-{index}", title=f"Step {index}", **options))
    return steps


def make_controller(steps=None, **kwargs):
    kwargs.setdefault("storage", InMemoryStorageAdapter())
    return WorkflowController(steps or make_steps(), **kwargs)


def test_construction_rejects_bad_step_lists():
    with pytest.raises(ValueError):
        WorkflowController([], persist_state=False)
    with pytest.raises(ValueError, match="Duplicate step id"):
        WorkflowController(
            [StepDefinition(id="a"), StepDefinition(id="a")], persist_state=False
        )


def test_initial_state():
    controller = make_controller()

    assert controller.current_step == 0
    assert controller.total_steps == 5
    assert controller.visited_steps == frozenset({0})
    assert controller.is_first_step
    assert not controller.is_last_step
    assert not controller.can_go_previous
    assert controller.can_go_next
    assert controller.current_step_definition.id == "step-0"


@pytest.mark.parametrize("target", [-1, 5, 10])
def test_go_to_step_out_of_range(target):
    controller = make_controller(allow_step_skipping=True)
    assert controller.go_to_step(target) is False
    assert controller.current_step == 0


def test_go_to_unvisited_step_is_ignored_without_skipping():
    controller = make_controller()

    assert controller.go_to_step(3) is False
    assert controller.current_step == 0
    assert controller.visited_steps == frozenset({0})


def test_go_to_step_with_skipping_allowed():
    controller = make_controller(allow_step_skipping=True)

    assert controller.go_to_step(3) is True
    assert controller.current_step == 3
    assert controller.visited_steps == frozenset({0, 3})


@pytest.mark.asyncio
async def test_go_to_visited_steps_without_validation():
    calls = []
    steps = make_steps(4, overrides={2: {"validate": lambda: calls.append("v") or True}})
    controller = make_controller(steps)

    await controller.next_step()
    await controller.next_step()
    await controller.next_step()
    assert controller.current_step == 3
    calls.clear()

    assert controller.go_to_step(0) is True
    assert controller.go_to_step(2) is True
    assert controller.current_step == 2
    assert calls == []


@pytest.mark.asyncio
async def test_next_step_blocked_by_failing_gate():
    async def reject():
        return False

    controller = make_controller(make_steps(overrides={0: {"validate": reject}}))

    assert await controller.next_step() is False
    assert controller.current_step == 0
    assert controller.can_go_next is False
    assert controller.is_loading is False


@pytest.mark.asyncio
async def test_next_step_runs_hook_and_advances():
    calls = []

    async def before_next():
        calls.append("before_next")

    controller = make_controller(make_steps(overrides={0: {"on_before_next": before_next}}))

    assert await controller.next_step() is True
    assert controller.current_step == 1
    assert controller.visited_steps == frozenset({0, 1})
    assert calls == ["before_next"]
    assert controller.is_loading is False


@pytest.mark.asyncio
async def test_failing_next_hook_propagates_and_keeps_position():
    def explode():
        raise RuntimeError("payment provider unavailable")

    controller = make_controller(make_steps(overrides={1: {"on_before_next": explode}}))
    await controller.next_step()
    assert controller.current_step == 1

    with pytest.raises(RuntimeError, match="payment provider unavailable"):
        await controller.next_step()

    assert controller.current_step == 1
    assert controller.visited_steps == frozenset({0, 1})
    assert controller.is_loading is False


@pytest.mark.asyncio
async def test_previous_step_ignores_validation():
    steps = make_steps(overrides={i: {"validate": lambda: False} for i in range(5)})
    controller = make_controller(steps, allow_step_skipping=True)
    controller.go_to_step(3)

    for expected in (2, 1, 0):
        assert await controller.previous_step() is True
        assert controller.current_step == expected

    assert await controller.previous_step() is False
    assert controller.current_step == 0


@pytest.mark.asyncio
async def test_failing_previous_hook_propagates_and_keeps_position():
    async def explode():
        raise ValueError("unsaved changes")

    controller = make_controller(
        make_steps(overrides={2: {"on_before_previous": explode}}), allow_step_skipping=True
    )
    controller.go_to_step(2)

    with pytest.raises(ValueError):
        await controller.previous_step()
    assert controller.current_step == 2
    assert controller.is_loading is False


@pytest.mark.asyncio
async def test_skip_optional_step_bypasses_gate_and_hook():
    calls = []
    steps = make_steps(
        overrides={
            2: {
                "optional": True,
                "validate": lambda: False,
                "on_before_next": lambda: calls.append("before_next"),
            }
        }
    )
    controller = make_controller(steps)
    await controller.next_step()
    await controller.next_step()
    assert controller.current_step == 2

    assert await controller.next_step() is False
    assert await controller.skip_step() is True

    assert controller.current_step == 3
    assert 3 in controller.visited_steps
    assert calls == []


@pytest.mark.asyncio
async def test_skip_requires_optional_step_before_the_last():
    steps = make_steps(2, overrides={1: {"optional": True}})
    controller = make_controller(steps)

    assert await controller.skip_step() is False
    assert controller.current_step == 0

    await controller.next_step()
    assert await controller.skip_step() is False
    assert controller.current_step == 1


@pytest.mark.asyncio
async def test_completion_runs_once_and_is_terminal():
    completed = []
    controller = make_controller(
        on_complete=lambda data: completed.append(data), allow_step_skipping=True
    )
    await controller.update_form_data({"name": "Ada"})
    controller.go_to_step(4)

    assert await controller.next_step() is True
    assert completed == [{"name": "Ada"}]
    assert controller.is_complete
    assert controller.current_step == 4

    assert await controller.next_step() is False
    assert len(completed) == 1


@pytest.mark.asyncio
async def test_last_step_gate_blocks_completion():
    completed = []
    controller = make_controller(
        make_steps(overrides={4: {"validate": lambda: False}}),
        on_complete=lambda data: completed.append(data),
        allow_step_skipping=True,
    )
    controller.go_to_step(4)

    assert await controller.next_step() is False
    assert completed == []
    assert not controller.is_complete


@pytest.mark.asyncio
async def test_failed_completion_can_be_retried():
    attempts = []

    async def submit(data):
        attempts.append(data)
        if len(attempts) == 1:
            raise ConnectionError("backend down")

    controller = make_controller(make_steps(1), on_complete=submit)

    with pytest.raises(ConnectionError):
        await controller.next_step()
    assert not controller.is_complete
    assert not controller.is_loading

    assert await controller.next_step() is True
    assert controller.is_complete
    assert len(attempts) == 2


@pytest.mark.asyncio
async def test_clear_on_complete_drops_persisted_data():
    storage = InMemoryStorageAdapter()
    controller = make_controller(make_steps(1), storage=storage, clear_on_complete=True)
    await controller.update_form_data({"name": "Ada"})
    assert await storage.load(controller.storage_key) == {"name": "Ada"}

    await controller.next_step()

    assert await storage.load(controller.storage_key) is None
    assert controller.form_data == {"name": "Ada"}


@pytest.mark.asyncio
async def test_update_form_data_merges_and_persists():
    storage = InMemoryStorageAdapter()
    controller = make_controller(storage=storage, storage_key="seller-onboarding")

    await controller.update_form_data({"name": "Ada", "plan": "basic"})
    await controller.update_form_data({"plan": "pro"})

    assert controller.form_data == {"name": "Ada", "plan": "pro"}
    assert await storage.load("seller-onboarding") == {"name": "Ada", "plan": "pro"}
    assert await storage.keys() == ["seller-onboarding"]
    assert controller.can_go_next is True


@pytest.mark.asyncio
async def test_persist_state_disabled_never_touches_storage():
    storage = InMemoryStorageAdapter()
    controller = make_controller(storage=storage, persist_state=False)

    await controller.update_form_data({"name": "Ada"})
    await controller.hydrate()

    assert await storage.keys() == []
    assert controller.form_data == {"name": "Ada"}


@pytest.mark.asyncio
async def test_default_storage_is_process_wide():
    first = WorkflowController(make_steps())
    await first.update_form_data({"email": "ada@example.com"})

    second = await WorkflowController.create(make_steps())
    assert second.form_data == {"email": "ada@example.com"}


def test_set_can_go_next():
    controller = make_controller()
    controller.set_can_go_next(False)
    assert controller.can_go_next is False
    controller.set_can_go_next(True)
    assert controller.can_go_next is True


@pytest.mark.asyncio
async def test_revalidate_reports_current_step_validity():
    valid = {"ok": False}
    controller = make_controller(make_steps(overrides={0: {"validate": lambda: valid["ok"]}}))

    assert await controller.revalidate() is False
    assert controller.can_go_next is False

    valid["ok"] = True
    assert await controller.revalidate() is True
    assert controller.can_go_next is True
    assert controller.current_step == 0


@pytest.mark.asyncio
async def test_visited_steps_never_shrink():
    controller = make_controller(allow_step_skipping=True)
    sizes = [len(controller.visited_steps)]

    actions = [
        controller.next_step(),
        controller.next_step(),
        controller.previous_step(),
        controller.previous_step(),
        controller.next_step(),
    ]
    for action in actions:
        await action
        sizes.append(len(controller.visited_steps))
        assert 0 in controller.visited_steps
        assert controller.current_step in controller.visited_steps

    controller.go_to_step(4)
    sizes.append(len(controller.visited_steps))
    controller.go_to_step(0)
    sizes.append(len(controller.visited_steps))

    assert sizes == sorted(sizes)
    assert controller.visited_steps == frozenset({0, 1, 2, 4})


@pytest.mark.asyncio
async def test_reset_returns_to_start_and_discards_storage():
    storage = InMemoryStorageAdapter()
    controller = make_controller(storage=storage, initial_data={"locale": "en"})
    await controller.update_form_data({"name": "Ada"})
    await controller.next_step()

    await controller.reset()

    assert controller.current_step == 0
    assert controller.visited_steps == frozenset({0})
    assert controller.form_data == {"locale": "en"}
    assert await storage.load(controller.storage_key) is None


@pytest.mark.asyncio
async def test_step_change_callback_and_listeners():
    changes = []
    states = []
    controller = make_controller(on_step_change=changes.append)
    unsubscribe = controller.subscribe(states.append)

    await controller.next_step()
    await controller.previous_step()
    unsubscribe()
    await controller.next_step()

    assert changes == [1, 0, 1]
    assert states
    assert states[-1].current_step == 0
    assert states[-1].is_loading is False


def test_step_statuses_for_indicator():
    controller = make_controller()
    statuses = controller.step_statuses()

    assert [s.id for s in statuses] == [f"step-{i}" for i in range(5)]
    assert statuses[0].is_active
    assert not any(s.is_clickable for s in statuses)

    skipping = make_controller(allow_step_skipping=True)
    skipping.go_to_step(2)
    statuses = skipping.step_statuses()
    assert [s.is_clickable for s in statuses] == [True, True, True, False, False]
    assert [s.is_completed for s in statuses] == [True, True, True, False, False]


@pytest.mark.asyncio
async def test_conditional_steps_keep_fixed_indices():
    steps = [
        StepDefinition(id="role"),
        StepDefinition(id="store", condition=lambda data: data.get("role") == "seller"),
        StepDefinition(id="review"),
    ]
    controller = make_controller(steps)

    assert [s.id for s in controller.visible_steps()] == ["role", "review"]
    assert controller.total_steps == 3
    assert [s.is_visible for s in controller.step_statuses()] == [True, False, True]

    await controller.update_form_data({"role": "seller"})
    assert [s.id for s in controller.visible_steps()] == ["role", "store", "review"]

    buyer_steps = visible_steps(steps, {"role": "buyer"})
    assert [s.id for s in buyer_steps] == ["role", "review"]


@pytest.mark.asyncio
async def test_concurrent_next_step_is_ignored_and_completion_runs_once():
    release = asyncio.Event()
    completed = []

    async def submit(data):
        await release.wait()
        completed.append(data)

    controller = make_controller(make_steps(1), on_complete=submit)

    first = asyncio.create_task(controller.next_step())
    await asyncio.sleep(0)
    assert controller.is_loading

    assert await controller.next_step() is False
    assert await controller.previous_step() is False

    release.set()
    assert await first is True
    assert completed == [{}]
    assert controller.is_complete
    assert await controller.next_step() is False
    assert len(completed) == 1


@pytest.mark.asyncio
async def test_jump_during_pending_validation_discards_result():
    release = asyncio.Event()

    async def slow_validate():
        await release.wait()
        return True

    controller = make_controller(
        make_steps(overrides={1: {"validate": slow_validate}}), allow_step_skipping=True
    )
    controller.go_to_step(1)

    pending = asyncio.create_task(controller.next_step())
    await asyncio.sleep(0)
    assert controller.go_to_step(3) is True

    release.set()
    assert await pending is False
    assert controller.current_step == 3
    assert 2 not in controller.visited_steps
    assert controller.is_loading is False


@pytest.mark.asyncio
async def test_progress_tracks_position():
    controller = make_controller()
    assert controller.progress == pytest.approx(20.0)
    await controller.next_step()
    assert controller.progress == pytest.approx(40.0)


@pytest.mark.asyncio
async def test_reset_during_transition_keeps_new_transition_guarded():
    releases = []

    async def held_validate():
        release = asyncio.Event()
        releases.append(release)
        await release.wait()
        return True

    controller = make_controller(make_steps(overrides={0: {"validate": held_validate}}))

    first = asyncio.create_task(controller.next_step())
    await asyncio.sleep(0)
    await controller.reset()
    second = asyncio.create_task(controller.next_step())
    await asyncio.sleep(0)
    assert len(releases) == 2

    releases[0].set()
    assert await first is False
    assert controller.is_loading is True
    assert await controller.next_step() is False

    releases[1].set()
    assert await second is True
    assert controller.current_step == 1
    assert controller.is_loading is False


@pytest.mark.asyncio
async def test_reset_during_completion_discards_the_result():
    release = asyncio.Event()
    completions = []

    async def submit(data):
        await release.wait()
        completions.append(data)

    storage = InMemoryStorageAdapter()
    controller = make_controller(
        make_steps(2),
        storage=storage,
        on_complete=submit,
        allow_step_skipping=True,
        clear_on_complete=True,
    )
    controller.go_to_step(1)

    pending = asyncio.create_task(controller.next_step())
    await asyncio.sleep(0)
    await controller.reset()
    await controller.update_form_data({"name": "Ada"})

    release.set()
    assert await pending is False
    assert completions == [{}]
    assert controller.current_step == 0
    assert not controller.is_complete
    assert await storage.load(controller.storage_key) == {"name": "Ada"}

    assert await controller.next_step() is True
    assert controller.current_step == 1
