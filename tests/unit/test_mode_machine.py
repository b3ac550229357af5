"""Unit tests for the editor mode state machine."""

import pytest

from followup_tracker.core.enums import EditorMode, ModeTrigger, SaveAction
from followup_tracker.editor.mode import (
    AFFORDANCES,
    InvalidTransitionError,
    ModeStateMachine,
    TRANSITIONS,
)


def _machine_in(mode: EditorMode) -> ModeStateMachine:
    machine = ModeStateMachine()
    if mode is EditorMode.VIEW:
        machine.fire(ModeTrigger.LOADED)
    elif mode is EditorMode.EDIT:
        machine.fire(ModeTrigger.LOADED)
        machine.fire(ModeTrigger.MUTATED)
    return machine


@pytest.mark.unit
class TestTransitions:

    def test_initial_mode_is_create(self):
        machine = ModeStateMachine()

        assert machine.mode is EditorMode.CREATE
        assert machine.affordance.is_selector
        assert not machine.dirty

    @pytest.mark.parametrize("start,trigger,expected", [
        (EditorMode.CREATE, ModeTrigger.MUTATED, EditorMode.CREATE),
        (EditorMode.CREATE, ModeTrigger.SAVED_AND_NEW, EditorMode.CREATE),
        (EditorMode.CREATE, ModeTrigger.SAVED_AND_VIEW, EditorMode.VIEW),
        (EditorMode.CREATE, ModeTrigger.LOADED, EditorMode.VIEW),
        (EditorMode.VIEW, ModeTrigger.MUTATED, EditorMode.EDIT),
        (EditorMode.VIEW, ModeTrigger.NEW, EditorMode.CREATE),
        (EditorMode.VIEW, ModeTrigger.LOADED, EditorMode.VIEW),
        (EditorMode.EDIT, ModeTrigger.MUTATED, EditorMode.EDIT),
        (EditorMode.EDIT, ModeTrigger.UPDATED, EditorMode.VIEW),
        (EditorMode.EDIT, ModeTrigger.NEW, EditorMode.CREATE),
        (EditorMode.EDIT, ModeTrigger.LOADED, EditorMode.VIEW),
    ])
    def test_transition(self, start, trigger, expected):
        machine = _machine_in(start)

        assert machine.fire(trigger) is expected
        assert machine.mode is expected
        assert machine.affordance == AFFORDANCES[expected]

    @pytest.mark.parametrize("start,trigger", [
        (EditorMode.VIEW, ModeTrigger.UPDATED),
        (EditorMode.VIEW, ModeTrigger.SAVED_AND_NEW),
        (EditorMode.EDIT, ModeTrigger.SAVED_AND_VIEW),
    ])
    def test_invalid_transition_raises(self, start, trigger):
        machine = _machine_in(start)

        assert not machine.can_fire(trigger)
        with pytest.raises(InvalidTransitionError):
            machine.fire(trigger)
        assert machine.mode is start

    def test_every_mode_accepts_new_and_loaded(self):
        for mode in EditorMode:
            assert (mode, ModeTrigger.NEW) in TRANSITIONS
            assert (mode, ModeTrigger.LOADED) in TRANSITIONS


@pytest.mark.unit
class TestAffordances:

    def test_create_offers_the_save_selector(self):
        affordance = AFFORDANCES[EditorMode.CREATE]

        assert affordance.kind == "save_selector"
        assert affordance.save_actions == (
            SaveAction.SAVE_AND_NEW,
            SaveAction.SAVE_AND_VIEW,
            SaveAction.SAVE_AND_CLOSE,
        )

    def test_view_offers_ok(self):
        assert AFFORDANCES[EditorMode.VIEW].kind == "ok"
        assert not AFFORDANCES[EditorMode.VIEW].is_selector

    def test_edit_offers_update(self):
        assert AFFORDANCES[EditorMode.EDIT].kind == "update"


@pytest.mark.unit
class TestDirtyFlag:

    def test_mutation_marks_dirty(self):
        machine = ModeStateMachine()

        machine.fire(ModeTrigger.MUTATED)

        assert machine.dirty
        assert machine.has_unsaved_changes

    def test_view_never_has_unsaved_changes(self):
        machine = _machine_in(EditorMode.VIEW)

        assert not machine.has_unsaved_changes

    def test_edit_has_unsaved_changes(self):
        assert _machine_in(EditorMode.EDIT).has_unsaved_changes

    @pytest.mark.parametrize("trigger", [ModeTrigger.UPDATED, ModeTrigger.LOADED, ModeTrigger.NEW])
    def test_clean_triggers_reset_dirty(self, trigger):
        machine = _machine_in(EditorMode.EDIT)

        machine.fire(trigger)

        assert not machine.dirty


@pytest.mark.unit
def test_listeners_receive_mode_and_affordance():
    machine = ModeStateMachine()
    seen = []
    machine.subscribe(lambda mode, affordance: seen.append((mode, affordance.kind)))

    machine.fire(ModeTrigger.LOADED)
    machine.fire(ModeTrigger.MUTATED)
    machine.fire(ModeTrigger.UPDATED)

    assert seen == [
        (EditorMode.VIEW, "ok"),
        (EditorMode.EDIT, "update"),
        (EditorMode.VIEW, "ok"),
    ]


@pytest.mark.unit
def test_invalid_transition_does_not_notify():
    machine = _machine_in(EditorMode.VIEW)
    seen = []
    machine.subscribe(lambda mode, affordance: seen.append(mode))

    with pytest.raises(InvalidTransitionError):
        machine.fire(ModeTrigger.UPDATED)

    assert seen == []
