"""Editor mode state machine.

One authoritative mode field plus a transition table. Every transition
re-derives the primary action affordance shown by the host surface.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Tuple

from ..core.enums import EditorMode, ModeTrigger, SaveAction


class InvalidTransitionError(ValueError):
    """Trigger not allowed in the current mode."""

    def __init__(self, mode: EditorMode, trigger: ModeTrigger):
        super().__init__(f"Trigger '{trigger.value}' is not allowed in {mode.value} mode")
        self.mode = mode
        self.trigger = trigger


@dataclass(frozen=True)
class PrimaryAffordance:
    """Primary action exposed by the surface in a given mode."""

    kind: str  # "save_selector", "ok" or "update"
    label: str
    save_actions: Tuple[SaveAction, ...] = ()

    @property
    def is_selector(self) -> bool:
        return bool(self.save_actions)


SAVE_SELECTOR = PrimaryAffordance(
    kind="save_selector",
    label="Add",
    save_actions=(SaveAction.SAVE_AND_NEW, SaveAction.SAVE_AND_VIEW, SaveAction.SAVE_AND_CLOSE),
)
OK_ACTION = PrimaryAffordance(kind="ok", label="OK")
UPDATE_ACTION = PrimaryAffordance(kind="update", label="Update")

AFFORDANCES: Dict[EditorMode, PrimaryAffordance] = {
    EditorMode.CREATE: SAVE_SELECTOR,
    EditorMode.VIEW: OK_ACTION,
    EditorMode.EDIT: UPDATE_ACTION,
}

_ANY_MODE = tuple(EditorMode)

TRANSITIONS: Dict[Tuple[EditorMode, ModeTrigger], EditorMode] = {
    **{(mode, ModeTrigger.NEW): EditorMode.CREATE for mode in _ANY_MODE},
    **{(mode, ModeTrigger.LOADED): EditorMode.VIEW for mode in _ANY_MODE},
    (EditorMode.CREATE, ModeTrigger.SAVED_AND_NEW): EditorMode.CREATE,
    (EditorMode.CREATE, ModeTrigger.SAVED_AND_VIEW): EditorMode.VIEW,
    (EditorMode.CREATE, ModeTrigger.MUTATED): EditorMode.CREATE,
    (EditorMode.VIEW, ModeTrigger.MUTATED): EditorMode.EDIT,
    (EditorMode.EDIT, ModeTrigger.MUTATED): EditorMode.EDIT,
    (EditorMode.EDIT, ModeTrigger.UPDATED): EditorMode.VIEW,
    # a Create buffer that already carries an id is saved through update
    (EditorMode.CREATE, ModeTrigger.UPDATED): EditorMode.VIEW,
}

# Triggers after which the buffer matches the store (or is a fresh document)
_CLEAN_TRIGGERS = {
    ModeTrigger.NEW,
    ModeTrigger.LOADED,
    ModeTrigger.SAVED_AND_NEW,
    ModeTrigger.SAVED_AND_VIEW,
    ModeTrigger.UPDATED,
}

ModeListener = Callable[[EditorMode, PrimaryAffordance], None]


class ModeStateMachine:
    """Owns the editor mode. Initial mode is Create."""

    def __init__(self):
        self._mode = EditorMode.CREATE
        self._affordance = AFFORDANCES[self._mode]
        self._dirty = False
        self._listeners: List[ModeListener] = []

    @property
    def mode(self) -> EditorMode:
        return self._mode

    @property
    def affordance(self) -> PrimaryAffordance:
        return self._affordance

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def has_unsaved_changes(self) -> bool:
        """True in Create or Edit once the buffer has been touched."""
        return self._dirty and self._mode in (EditorMode.CREATE, EditorMode.EDIT)

    def subscribe(self, listener: ModeListener) -> None:
        self._listeners.append(listener)

    def can_fire(self, trigger: ModeTrigger) -> bool:
        return (self._mode, trigger) in TRANSITIONS

    def fire(self, trigger: ModeTrigger) -> EditorMode:
        """Apply a trigger and return the new mode.

        Raises:
            InvalidTransitionError: If the trigger is not allowed in the current mode
        """
        try:
            target = TRANSITIONS[(self._mode, trigger)]
        except KeyError:
            raise InvalidTransitionError(self._mode, trigger) from None

        self._mode = target
        self._affordance = AFFORDANCES[target]
        if trigger is ModeTrigger.MUTATED:
            self._dirty = True
        elif trigger in _CLEAN_TRIGGERS:
            self._dirty = False

        for listener in self._listeners:
            listener(self._mode, self._affordance)
        return target
