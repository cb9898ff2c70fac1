"""Per-window recovery runs keyed by (window identifier, URL signature)."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional, Set

from ..errors import MetadataUnavailable, RecoveryException
from ..models import TabState, WindowMetadata, WindowState
from ..url_codec import Params, has_recovery_data, recovery_signature
from .errors import RecoveryErrorType, classify_recovery_error, user_message
from .hierarchy import Hierarchy, calculate_hierarchy
from .reconstructor import ReconstructedState, apply_to_window, empty_state, reconstruct_state

logger = logging.getLogger(__name__)

MetadataProvider = Callable[[str], Optional[WindowMetadata]]
Calculator = Callable[[Optional[WindowMetadata], Mapping[str, TabState], str], Hierarchy]
Reconstructor = Callable[[Hierarchy, WindowMetadata, Mapping[str, TabState]], ReconstructedState]
Publisher = Callable[[WindowState], None]


class RecoveryState(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class RecoveryRun:
    signature: str
    state: RecoveryState = RecoveryState.IN_PROGRESS
    error_type: Optional[RecoveryErrorType] = None
    error_message: Optional[str] = None
    discarded: List[str] = field(default_factory=list)


class RecoveryOrchestrator:
    """Decides trivial init, full recovery or degraded fallback for each window.

    A run never raises: whatever goes wrong, the window is published as
    initialized, with nothing pre-selected in the worst case.
    """

    def __init__(
        self,
        metadata: MetadataProvider,
        publish: Optional[Publisher] = None,
        calculate: Calculator = calculate_hierarchy,
        reconstruct: Reconstructor = reconstruct_state,
    ) -> None:
        self._metadata = metadata
        self._publish = publish
        self._calculate = calculate
        self._reconstruct = reconstruct
        self._runs: Dict[str, RecoveryRun] = {}
        self._cancelled: Set[str] = set()
        self._mounted = True
        self.published: Dict[str, WindowState] = {}

    def state_of(self, window_identifier: str) -> RecoveryState:
        run = self._runs.get(window_identifier)
        return run.state if run else RecoveryState.NOT_STARTED

    def run_for(self, window_identifier: str) -> Optional[RecoveryRun]:
        return self._runs.get(window_identifier)

    def run(self, window: WindowState, slice_params: Params) -> Optional[WindowState]:
        """Recover one decoded window; None when the run was skipped or discarded."""
        identifier = window.window_identifier
        if not self._mounted:
            return None

        signature = recovery_signature(slice_params)
        existing = self._runs.get(identifier)
        if existing is not None and existing.signature == signature:
            if existing.state is RecoveryState.IN_PROGRESS:
                logger.debug("Recovery for %s already in progress; dropping trigger", identifier)
            return None

        run = RecoveryRun(signature=signature)
        self._runs[identifier] = run
        self._cancelled.discard(identifier)
        logger.info("Starting recovery for window %s", identifier)

        metadata: Optional[WindowMetadata] = None
        try:
            metadata = self._metadata(window.window_id)
            if not has_recovery_data(slice_params):
                if metadata is None:
                    raise MetadataUnavailable(window.window_id)
                result = empty_state(metadata)
            else:
                hierarchy = self._calculate(metadata, window.tabs, identifier)
                if metadata is None:
                    raise MetadataUnavailable(window.window_id)
                result = self._reconstruct(hierarchy, metadata, window.tabs)
                run.discarded = list(hierarchy.discarded)
            run.state = RecoveryState.COMPLETED
        except MetadataUnavailable as e:
            # Not recorded: the next run, once metadata is loaded, recovers for real.
            logger.info("%s; opening window %s with nothing pre-selected", e, identifier)
            if self._runs.get(identifier) is run:
                del self._runs[identifier]
            result = empty_state(None)
        except Exception as e:
            failure = RecoveryException(identifier, e)
            logger.error("%s", failure, exc_info=True)
            run.state = RecoveryState.FAILED
            run.error_type = classify_recovery_error(failure)
            run.error_message = user_message(failure)
            result = empty_state(metadata)

        recovered = apply_to_window(window, result)
        if metadata is not None:
            recovered = replace(recovered, title=metadata.name)
        return self._apply(identifier, run, recovered)

    def _apply(self, identifier: str, run: RecoveryRun, window: WindowState) -> Optional[WindowState]:
        if not self._mounted or identifier in self._cancelled:
            logger.debug("Discarding recovery result for %s (unmounted)", identifier)
            return None
        current = self._runs.get(identifier)
        if current is not None and current is not run:
            logger.debug("Discarding stale recovery result for %s", identifier)
            return None
        self.published[identifier] = window
        if self._publish is not None:
            self._publish(window)
        return window

    def forget(self, window_identifier: str) -> None:
        """Drop all recovery bookkeeping for a closed window."""
        run = self._runs.pop(window_identifier, None)
        if run is not None and run.state is RecoveryState.IN_PROGRESS:
            self._cancelled.add(window_identifier)
        self.published.pop(window_identifier, None)

    def unmount(self) -> None:
        self._mounted = False
