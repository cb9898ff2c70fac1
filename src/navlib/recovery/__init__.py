"""Reconstruction of window navigation state from the URL."""

from .hierarchy import Hierarchy, calculate_hierarchy
from .orchestrator import RecoveryOrchestrator, RecoveryRun, RecoveryState
from .reconstructor import ReconstructedState, apply_to_window, empty_state, reconstruct_state

__all__ = [
    "Hierarchy",
    "ReconstructedState",
    "RecoveryOrchestrator",
    "RecoveryRun",
    "RecoveryState",
    "apply_to_window",
    "calculate_hierarchy",
    "empty_state",
    "reconstruct_state",
]
