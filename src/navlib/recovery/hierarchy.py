"""Active-tab-per-level calculation for one window."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

from ..errors import DanglingSelection, MetadataUnavailable
from ..models import TAB_MODE_FORM, TabMetadata, TabState, WindowMetadata

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Hierarchy:
    active_tabs_by_level: Dict[int, str] = field(default_factory=dict)
    discarded: List[str] = field(default_factory=list)

    @property
    def active_levels(self) -> List[int]:
        return sorted(self.active_tabs_by_level)

    def is_active(self, tab_id: str) -> bool:
        return tab_id in self.active_tabs_by_level.values()


def _pick(
    candidates: Sequence[TabMetadata],
    raw: Mapping[str, TabState],
    metadata: WindowMetadata,
) -> Optional[TabMetadata]:
    """State-carrying candidate; form mode first, then declaration order."""
    carrying = [
        c for c in candidates
        if c.tab_id in raw and (raw[c.tab_id].has_selection() or raw[c.tab_id].has_form_entry())
    ]
    if not carrying:
        return None
    if len(carrying) > 1:
        logger.debug(
            "Several sibling tabs carry state (%s); applying tie-break",
            ", ".join(c.tab_id for c in carrying),
        )
    carrying.sort(
        key=lambda c: (
            raw[c.tab_id].form.mode != TAB_MODE_FORM,
            metadata.declaration_index(c.tab_id),
        )
    )
    return carrying[0]


def calculate_hierarchy(
    metadata: Optional[WindowMetadata],
    raw: Mapping[str, TabState],
    window_identifier: str = "",
) -> Hierarchy:
    """Walk the tab tree level by level and pick one active tab per level.

    Level 0 is always active. A level n > 0 is only considered when the
    active tab at n-1 carries a record; its active tab is the child that
    carries a selection or form entry. Anything else that carries state is
    reported as discarded.
    """
    if metadata is None:
        raise MetadataUnavailable(window_identifier or "<unknown>")

    roots = metadata.roots()
    if not roots:
        logger.warning("Window %s declares no root tab", metadata.window_id)
        return Hierarchy(discarded=[t for t in raw if raw[t].carries_state()])

    active: Dict[int, str] = {}
    current = _pick(roots, raw, metadata) or roots[0]
    visited = set()
    while current is not None and current.tab_id not in visited:
        visited.add(current.tab_id)
        active[current.level] = current.tab_id
        state = raw.get(current.tab_id)
        if state is None or state.current_record() is None:
            break
        current = _pick(metadata.children(current.tab_id), raw, metadata)

    active_ids = set(active.values())
    discarded = []
    for tab_id, state in raw.items():
        if tab_id in active_ids or not state.carries_state():
            continue
        if metadata.tab(tab_id) is None:
            logger.warning("Tab %s is not part of window %s; ignoring its URL state", tab_id, metadata.window_id)
        else:
            logger.debug("%s", DanglingSelection(window_identifier or metadata.window_id, tab_id))
        discarded.append(tab_id)

    return Hierarchy(active_tabs_by_level=active, discarded=discarded)
