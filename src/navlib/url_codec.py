"""Bidirectional mapping between the flat query string and WindowState values.

Key grammar (the window segment is the instance identifier, which equals the
catalog window id for the first instance of a window):

    w_{win}=active|inactive     visible window marker
    o_{win}=<int>               tab-bar order
    wi_{win}=<identifier>       window instance identifier
    s_{win}_{tab}=<record>      selected record
    tf_{win}_{tab}=<record>     record open in form mode
    tm_{win}_{tab}=table|form   tab mode
    tfm_{win}_{tab}=edit|new    form sub-mode

Decoding never raises on bad input: unknown keys are skipped and malformed
values are logged and dropped.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import replace
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union
from urllib.parse import parse_qsl, urlencode, urlsplit

from .errors import MalformedUrlKey
from .models import (
    FORM_MODES,
    TAB_MODES,
    TabFormState,
    TabState,
    WindowState,
    window_id_from_identifier,
)

logger = logging.getLogger(__name__)

Params = List[Tuple[str, str]]
ParamsInput = Union[str, Mapping[str, str], Sequence[Tuple[str, str]]]

ACTIVE = "active"
INACTIVE = "inactive"

# "wi_" must be tested before "w_".
WINDOW_PREFIXES = ("wi_", "w_", "o_")
# Longest first so "tfm_" is not mistaken for "tf_".
TAB_PREFIXES = ("tfm_", "tf_", "tm_", "s_")
HOME_URL = "/"


def parse_query_string(query: str) -> Params:
    """Split a URL or bare query string into ordered (key, value) pairs."""
    if "?" in query or query.startswith("/"):
        query = urlsplit(query).query
    return parse_qsl(query.lstrip("?"), keep_blank_values=True)


def to_query_string(params: Params) -> str:
    return urlencode(params)


def _as_pairs(params: ParamsInput) -> Params:
    if isinstance(params, str):
        return parse_query_string(params)
    if isinstance(params, Mapping):
        return [(str(k), str(v)) for k, v in params.items()]
    return [(str(k), str(v)) for k, v in params]


def _split_window_key(key: str) -> Optional[Tuple[str, str]]:
    for prefix in WINDOW_PREFIXES:
        if key.startswith(prefix) and len(key) > len(prefix):
            return prefix, key[len(prefix):]
    return None


def _split_tab_key(key: str, segments: Iterable[str]) -> Optional[Tuple[str, str, str]]:
    for prefix in TAB_PREFIXES:
        if not key.startswith(prefix):
            continue
        rest = key[len(prefix):]
        best: Optional[str] = None
        for seg in segments:
            if rest.startswith(seg + "_") and len(rest) > len(seg) + 1:
                if best is None or len(seg) > len(best):
                    best = seg
        if best is None:
            raise MalformedUrlKey(key, "", "no open window matches this tab key")
        return prefix, best, rest[len(best) + 1:]
    return None


def _warn(error: MalformedUrlKey) -> None:
    logger.warning("Ignoring URL parameter: %s", error)


def decode(params: ParamsInput) -> List[WindowState]:
    """Decode query parameters into window states ordered for the tab bar."""
    pairs = _as_pairs(params)

    segments: List[str] = []
    active: Dict[str, bool] = {}
    orders: Dict[str, int] = {}

    for key, value in pairs:
        split = _split_window_key(key)
        if split is None:
            continue
        prefix, seg = split
        if seg not in segments:
            segments.append(seg)
        if prefix == "w_":
            if value not in (ACTIVE, INACTIVE):
                _warn(MalformedUrlKey(key, value, "expected 'active' or 'inactive'"))
            active[seg] = value == ACTIVE
        elif prefix == "o_":
            try:
                orders[seg] = int(value)
            except ValueError:
                _warn(MalformedUrlKey(key, value, "order must be an integer"))
        elif value != seg:
            _warn(MalformedUrlKey(key, value, f"identifier does not match key segment {seg!r}"))

    tabs: Dict[str, Dict[str, Dict[str, str]]] = {seg: {} for seg in segments}
    for key, value in pairs:
        try:
            split = _split_tab_key(key, segments)
        except MalformedUrlKey as e:
            _warn(MalformedUrlKey(key, value, e.reason))
            continue
        if split is None:
            continue
        prefix, seg, tab_id = split
        if value == "":
            _warn(MalformedUrlKey(key, value, "empty value"))
            continue
        if prefix == "tm_" and value not in TAB_MODES:
            _warn(MalformedUrlKey(key, value, f"mode must be one of {TAB_MODES}"))
            continue
        if prefix == "tfm_" and value not in FORM_MODES:
            _warn(MalformedUrlKey(key, value, f"form mode must be one of {FORM_MODES}"))
            continue
        tabs[seg].setdefault(tab_id, {})[prefix] = value

    # Windows without a usable order go after the others.
    next_order = max(orders.values(), default=0) + 1
    for seg in sorted(s for s in segments if s not in orders):
        orders[seg] = next_order
        next_order += 1

    windows: List[WindowState] = []
    for seg in segments:
        tab_states = {
            tab_id: TabState(
                selected_record=raw.get("s_"),
                form=TabFormState(
                    mode=raw.get("tm_"),
                    record_id=raw.get("tf_"),
                    form_mode=raw.get("tfm_"),
                ),
            )
            for tab_id, raw in tabs[seg].items()
        }
        windows.append(
            WindowState(
                window_id=window_id_from_identifier(seg),
                window_identifier=seg,
                order=orders[seg],
                is_active=active.get(seg, False),
                tabs=tab_states,
            )
        )

    windows = sorted(windows, key=lambda w: (w.order, w.window_identifier))
    return _single_active(windows)


def _single_active(windows: List[WindowState]) -> List[WindowState]:
    """Keep only the first window marked active (hand-edited URLs may mark several)."""
    seen = False
    result = []
    for w in windows:
        if w.is_active and seen:
            logger.warning("More than one active window in URL; deactivating %s", w.window_identifier)
            w = replace(w, is_active=False)
        seen = seen or w.is_active
        result.append(w)
    return result


def encode(windows: Iterable[WindowState]) -> Params:
    """Encode window states into ordered query pairs (deterministic)."""
    params: Params = []
    for w in sorted(windows, key=lambda w: (w.order, w.window_identifier)):
        seg = w.window_identifier
        params.append((f"w_{seg}", ACTIVE if w.is_active else INACTIVE))
        params.append((f"o_{seg}", str(w.order)))
        params.append((f"wi_{seg}", w.window_identifier))
        for tab_id, tab in w.tabs.items():
            if tab.selected_record is not None:
                params.append((f"s_{seg}_{tab_id}", tab.selected_record))
            if tab.form.record_id is not None:
                params.append((f"tf_{seg}_{tab_id}", tab.form.record_id))
            if tab.form.mode is not None:
                params.append((f"tm_{seg}_{tab_id}", tab.form.mode))
            if tab.form.form_mode is not None:
                params.append((f"tfm_{seg}_{tab_id}", tab.form.form_mode))
    return params


def build_url(base_path: str, windows: Iterable[WindowState]) -> str:
    params = encode(windows)
    if not params:
        return HOME_URL
    return f"{base_path}?{to_query_string(params)}"


def window_slice(params: ParamsInput, window_identifier: str) -> Params:
    """Pairs belonging to one window instance, in URL order."""
    pairs = _as_pairs(params)
    segments = []
    for key, _ in pairs:
        split = _split_window_key(key)
        if split is not None and split[1] not in segments:
            segments.append(split[1])

    result: Params = []
    for key, value in pairs:
        split = _split_window_key(key)
        if split is not None:
            if split[1] == window_identifier:
                result.append((key, value))
            continue
        try:
            tab_split = _split_tab_key(key, segments)
        except MalformedUrlKey:
            continue
        if tab_split is not None and tab_split[1] == window_identifier:
            result.append((key, value))
    return result


def has_recovery_data(slice_params: Params) -> bool:
    """True when the slice carries anything beyond w_/o_/wi_."""
    return any(key.startswith(TAB_PREFIXES) for key, _ in slice_params)


def recovery_signature(slice_params: Params) -> str:
    """Stable hash of the recovery-relevant keys of one window slice."""
    relevant = sorted((k, v) for k, v in slice_params if k.startswith(TAB_PREFIXES))
    digest = hashlib.sha1()
    for key, value in relevant:
        digest.update(f"{key}={value}\n".encode("utf-8"))
    return digest.hexdigest()
