"""Top-level navigation context owning router, controller, recovery and selections."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, List, Optional

from .controller import MetadataProvider, NavigationController
from .models import NavigationTab, WindowMetadata, WindowState
from .persistence import NavigationTabStore, snapshot
from .recovery import RecoveryOrchestrator, RecoveryState
from .router import Router
from .selection_graph import SelectionGraph
from .url_codec import decode, window_slice

logger = logging.getLogger(__name__)


class NavigationSession:
    """One per application instance; pass it to whatever needs navigation."""

    def __init__(
        self,
        router: Router,
        metadata: MetadataProvider,
        store: Optional[NavigationTabStore] = None,
        base_path: str = "/window",
        orchestrator: Optional[RecoveryOrchestrator] = None,
    ) -> None:
        self.router = router
        self.metadata = metadata
        self.store = store
        self.base_path = base_path
        self.controller = NavigationController(router, metadata, base_path=base_path)
        self.orchestrator = orchestrator or RecoveryOrchestrator(metadata)
        self._graphs: Dict[str, SelectionGraph] = {}

    def selection_graph(self, window_identifier: str) -> Optional[SelectionGraph]:
        """Selection graph of an open window instance, built on first use."""
        graph = self._graphs.get(window_identifier)
        if graph is not None:
            return graph
        window = self.controller.window(window_identifier)
        if window is None:
            return None
        meta = self.metadata(window.window_id)
        graph = SelectionGraph(meta.tabs if meta else ())
        self._graphs[window_identifier] = graph
        return graph

    def recover(self) -> List[WindowState]:
        """Recover every window of the committed URL and return them in tab-bar order."""
        params = self.router.current_params()
        windows = decode(params)
        open_ids = {w.window_identifier for w in windows}

        for identifier in [i for i in self._graphs if i not in open_ids]:
            del self._graphs[identifier]
        for identifier in [i for i in self.orchestrator.published if i not in open_ids]:
            self.orchestrator.forget(identifier)

        result = []
        stale: Dict[str, Optional[List[str]]] = {}
        for window in windows:
            recovered = self.orchestrator.run(window, window_slice(params, window.window_identifier))
            if recovered is not None:
                self._sync_selections(recovered)
                run = self.orchestrator.run_for(window.window_identifier)
                if run is not None and run.state is RecoveryState.FAILED:
                    stale[window.window_identifier] = None
                elif run is not None and run.discarded:
                    stale[window.window_identifier] = run.discarded
            published = self.orchestrator.published.get(window.window_identifier)
            if published is None:
                continue
            # Activation and order may change without touching recovery-relevant keys.
            if published.is_active != window.is_active or published.order != window.order:
                published = _with_position(published, window)
                self.orchestrator.published[window.window_identifier] = published
            result.append(published)

        logger.info("Recovered %d window(s)", len(result))
        self._mirror_shell(result)
        self._prune(stale)
        return result

    def recovery_state(self, window_identifier: str) -> RecoveryState:
        return self.orchestrator.state_of(window_identifier)

    def cached_tabs(self) -> List[NavigationTab]:
        return self.store.load() if self.store else []

    def close(self) -> None:
        self.orchestrator.unmount()
        self._graphs.clear()

    def _sync_selections(self, window: WindowState) -> None:
        graph = self.selection_graph(window.window_identifier)
        if graph is None:
            return
        active = set(window.navigation.active_tabs_by_level.values())
        for tab_id in list(graph.nodes):
            record_id = window.tab(tab_id).selected_record if tab_id in active else None
            if record_id is not None:
                graph.select(tab_id, {"id": record_id})
            elif graph.get_selected(tab_id) is not None:
                graph.unselect(tab_id)

    def _prune(self, stale: Dict[str, Optional[List[str]]]) -> None:
        """Remove dangling and failed-window state from the URL; best effort."""
        try:
            if self.controller.prune(stale):
                logger.info("Removed stale URL state for %s", ", ".join(sorted(stale)) or "malformed keys")
        except Exception as e:
            logger.warning("Could not clean up the navigation URL: %s", e)

    def _mirror_shell(self, windows: List[WindowState]) -> None:
        if self.store is None:
            return
        known: Dict[str, WindowMetadata] = {}
        for w in windows:
            meta = self.metadata(w.window_id)
            if meta is not None:
                known[w.window_id] = meta
        self.store.save(snapshot(windows, self.base_path, known))


def _with_position(published: WindowState, decoded: WindowState) -> WindowState:
    return replace(published, is_active=decoded.is_active, order=decoded.order)
