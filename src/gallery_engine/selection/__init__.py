"""Cross-page selection set and the controller that reconciles it."""

from .controller import ControllerState, PendingLoad, SelectionBus, SelectionController
from .store import SelectionSet

__all__ = [
    "ControllerState",
    "PendingLoad",
    "SelectionBus",
    "SelectionController",
    "SelectionSet",
]
