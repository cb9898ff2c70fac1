from __future__ import annotations

from unittest.mock import Mock

import pytest

from conftest import MetadataCatalog, business_partner, sales_order
from navlib.controller import Selection
from navlib.persistence import MemoryStorage, NavigationTabStore
from navlib.recovery import RecoveryOrchestrator, RecoveryState
from navlib.router import InMemoryRouter
from navlib.session import NavigationSession


def new_session(url: str = "/", storage: MemoryStorage = None) -> NavigationSession:
    store = NavigationTabStore(storage or MemoryStorage())
    router = InMemoryRouter(url, auto_flush=True)
    return NavigationSession(router, MetadataCatalog(sales_order(), business_partner()), store=store)


@pytest.mark.integration
def test_navigate_then_reload_restores_hierarchy():
    session = new_session()
    controller = session.controller
    controller.open_window_and_select("143", Selection(tab_id="186", record_id="R1"))
    controller.select_record_in_tab("143", "187", "L1")
    controller.set_tab_mode("143", "189", "form", record_id="T1")
    controller.open_window("123")
    controller.set_active_window("143")
    url = session.router.url

    # A fresh session over the same URL is a page reload.
    reloaded = new_session(url)
    windows = reloaded.recover()

    assert [w.window_identifier for w in windows] == ["143", "123"]
    sales = windows[0]
    assert sales.is_active
    assert sales.navigation.active_tabs_by_level == {0: "186", 1: "187", 2: "189"}
    assert sales.tab("189").form.record_id == "T1"
    assert reloaded.recovery_state("143") is RecoveryState.COMPLETED
    assert reloaded.recovery_state("123") is RecoveryState.COMPLETED

    graph = reloaded.selection_graph("143")
    assert graph.get_selected("186") == {"id": "R1"}
    assert graph.get_selected("187") == {"id": "L1"}
    assert graph.get_selected("189") is None


@pytest.mark.integration
def test_selection_graph_follows_url_changes():
    session = new_session("/window?w_143=active&o_143=1&wi_143=143&s_143_186=R1&s_143_187=L1")
    session.recover()
    graph = session.selection_graph("143")
    unselected = Mock()
    graph.add_listener("unselected", "187", unselected)

    session.controller.select_record_in_tab("143", "186", "R2")
    session.recover()

    assert session.selection_graph("143") is graph
    assert graph.get_selected("186") == {"id": "R2"}
    assert graph.get_selected("187") is None
    unselected.assert_called_once_with("187")


@pytest.mark.integration
def test_activation_change_does_not_rerun_recovery():
    session = new_session("/window?w_143=active&o_143=1&wi_143=143&s_143_186=R1&w_123=inactive&o_123=2&wi_123=123")
    session.recover()
    run = session.orchestrator.run_for("143")

    session.controller.set_active_window("123")
    windows = session.recover()

    assert session.orchestrator.run_for("143") is run
    assert [w.is_active for w in windows] == [False, True]


@pytest.mark.integration
def test_closing_window_drops_its_recovery_and_graph():
    storage = MemoryStorage()
    session = new_session("/window?w_143=active&o_143=1&wi_143=143&w_123=inactive&o_123=2&wi_123=123", storage)
    session.recover()
    assert session.selection_graph("123") is not None

    session.controller.close_window("143")
    windows = session.recover()

    assert [w.window_identifier for w in windows] == ["123"]
    assert windows[0].is_active
    assert session.recovery_state("143") is RecoveryState.NOT_STARTED
    assert "143" not in session.orchestrator.published
    assert [t.window_id for t in session.cached_tabs()] == ["123"]

    session.close()
    assert session.orchestrator.run(windows[0], []) is None


@pytest.mark.integration
def test_dangling_selection_is_dropped_and_not_revived():
    session = new_session("/window?w_143=active&o_143=1&wi_143=143&s_143_186=R1&s_143_189=T_stale")
    session.recover()

    assert session.router.url == "/window?w_143=active&o_143=1&wi_143=143&s_143_186=R1"

    session.controller.set_tab_mode("143", "187", "form", record_id="L9")
    (window,) = session.recover()

    assert window.navigation.active_tabs_by_level == {0: "186", 1: "187"}
    assert window.tab("189").selected_record is None
    assert session.selection_graph("143").get_selected("189") is None


@pytest.mark.integration
def test_failed_recovery_cleans_window_state_from_url():
    url = "/window?w_143=active&o_143=1&wi_143=143&s_143_186=R1&s_143_187=L1"
    router = InMemoryRouter(url)
    metadata = MetadataCatalog(sales_order())
    orchestrator = RecoveryOrchestrator(metadata, calculate=Mock(side_effect=RuntimeError("boom")))
    session = NavigationSession(router, metadata, orchestrator=orchestrator)

    (window,) = session.recover()

    assert session.recovery_state("143") is RecoveryState.FAILED
    assert window.navigation.active_tabs_by_level == {0: "186"}
    assert router.url == "/window?w_143=active&o_143=1&wi_143=143"
    assert router.commit_count == 1


@pytest.mark.integration
def test_invalid_keys_are_removed_after_recovery():
    session = new_session("/window?w_143=active&o_143=1&wi_143=143&s_143_186=R1&tm_143_186=grid&tfm_143_186=view")
    session.recover()

    assert session.router.url == "/window?w_143=active&o_143=1&wi_143=143&s_143_186=R1"
    assert session.router.commit_count == 1


@pytest.mark.integration
def test_canonical_url_is_not_recommitted():
    session = new_session("/window?w_143=active&o_143=1&wi_143=143&s_143_186=R1&s_143_187=L1")
    session.recover()

    assert session.router.commit_count == 0
