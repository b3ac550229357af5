"""Stateful tracking document editor.

The editor owns one in-memory buffer (header plus lines) and drives a host
surface through the ``EditorSurface`` protocol.
"""

from .controller import TrackingEditor
from .lines import LineCollectionManager
from .loader import DocumentLoader
from .mode import ModeStateMachine, PrimaryAffordance
from .surface import EditorSurface, HeadlessSurface

__all__ = [
    "DocumentLoader",
    "EditorSurface",
    "HeadlessSurface",
    "LineCollectionManager",
    "ModeStateMachine",
    "PrimaryAffordance",
    "TrackingEditor",
]
