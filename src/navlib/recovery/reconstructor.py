"""Builds the full window tab state from a calculated hierarchy."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, Mapping

from ..models import NavigationState, TabState, WindowMetadata, WindowState
from .hierarchy import Hierarchy


@dataclass(frozen=True)
class ReconstructedState:
    tabs: Dict[str, TabState] = field(default_factory=dict)
    navigation: NavigationState = field(default_factory=NavigationState)


def reconstruct_state(
    hierarchy: Hierarchy,
    metadata: WindowMetadata,
    raw: Mapping[str, TabState],
) -> ReconstructedState:
    """One TabState per metadata tab; only active tabs keep their URL state."""
    tabs: Dict[str, TabState] = {}
    for tab in metadata.tabs:
        source = raw.get(tab.tab_id)
        if source is not None and hierarchy.is_active(tab.tab_id):
            tabs[tab.tab_id] = replace(source, level=tab.level)
        else:
            tabs[tab.tab_id] = TabState(level=tab.level)

    return ReconstructedState(
        tabs=tabs,
        navigation=NavigationState(
            active_levels=hierarchy.active_levels,
            active_tabs_by_level=dict(hierarchy.active_tabs_by_level),
            initialized=True,
        ),
    )


def empty_state(metadata: WindowMetadata | None = None) -> ReconstructedState:
    """Initialized state with an empty tab map; only the root tab is active."""
    active: Dict[int, str] = {}
    if metadata is not None:
        roots = metadata.roots()
        if roots:
            active[roots[0].level] = roots[0].tab_id
    return ReconstructedState(
        navigation=NavigationState(
            active_levels=sorted(active),
            active_tabs_by_level=active,
            initialized=True,
        ),
    )


def apply_to_window(window: WindowState, state: ReconstructedState) -> WindowState:
    return replace(window, tabs=dict(state.tabs), navigation=state.navigation)
