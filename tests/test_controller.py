from __future__ import annotations

from unittest.mock import Mock

import pytest

from navlib.controller import NavigationController, Selection
from navlib.errors import InvalidNavigationRequest
from navlib.router import InMemoryRouter
from navlib.url_codec import parse_query_string


SALES = "/window?w_143=active&o_143=1&wi_143=143"


def make(metadata, url: str = "/"):
    router = InMemoryRouter(url)
    return router, NavigationController(router, metadata)


def test_open_window_and_select_on_empty_url(metadata):
    router, controller = make(metadata)
    identifier = controller.open_window_and_select("W9", Selection(tab_id="T10", record_id="R77"))

    assert identifier == "W9"
    assert router.url == "/window?w_W9=active&o_W9=1&wi_W9=W9&s_W9_T10=R77"
    assert router.commit_count == 1


def test_open_window_and_select_clears_children_of_open_window(metadata):
    router, controller = make(metadata, SALES + "&s_143_186=R1&s_143_187=L1_of_R1&tf_143_189=T1&tm_143_189=form")
    identifier = controller.open_window_and_select("143", Selection(tab_id="186", record_id="R2"))

    assert identifier == "143"
    assert router.url == SALES + "&s_143_186=R2"
    assert controller.active_record("143", "187") is None
    assert router.commit_count == 1


def test_open_window_and_select_in_form(metadata):
    router, controller = make(metadata)
    controller.open_window_and_select("143", Selection(tab_id="186", record_id="R1", open_form=True))

    assert router.url == SALES + "&s_143_186=R1&tf_143_186=R1&tm_143_186=form&tfm_143_186=edit"
    assert controller.tab_mode("143", "186") == "form"
    assert router.commit_count == 1


def test_clear_children_selections_removes_exactly_those_tabs(metadata):
    url = (
        "/window?w_W123=active&o_W123=1&wi_W123=W123"
        "&s_W123_C1=R1&tf_W123_C1=R1&tm_W123_C1=form"
        "&s_W123_C2=R2&tf_W123_C2=R2&tm_W123_C2=form"
    )
    router, controller = make(metadata, url)
    controller.clear_children_selections("W123", ["C1", "C2"])

    assert router.url == "/window?w_W123=active&o_W123=1&wi_W123=W123"
    assert router.commit_count == 1


def test_two_selects_before_render_keep_both(metadata):
    router, controller = make(metadata, SALES + "&s_143_186=R1")
    render = Mock()
    router.subscribe(render)

    controller.select_record_in_tab("143", "187", "L1")
    controller.select_record_in_tab("143", "188", "T1")

    params = dict(parse_query_string(router.url))
    assert params["s_143_187"] == "L1"
    assert params["s_143_188"] == "T1"
    assert params["s_143_186"] == "R1"
    render.assert_not_called()

    router.flush()
    render.assert_called_once_with(router.url)


def test_select_clears_descendants_in_one_commit(metadata):
    url = SALES + "&s_143_186=R1&s_143_187=L1&s_143_188=X1&s_143_189=T1&tf_143_189=T1&tm_143_189=form"
    router, controller = make(metadata, url)
    controller.select_record_in_tab("143", "186", "R2")

    assert router.url == SALES + "&s_143_186=R2"
    assert router.commit_count == 1


def test_select_leaves_siblings_alone(metadata):
    url = SALES + "&s_143_186=R1&s_143_187=L1&s_143_188=X1&s_143_189=T1"
    router, controller = make(metadata, url)
    controller.select_record_in_tab("143", "187", "L2")

    assert router.url == SALES + "&s_143_186=R1&s_143_187=L2&s_143_188=X1"


def test_clear_selected_record_cascades(metadata):
    url = SALES + "&s_143_186=R1&s_143_187=L1&s_143_189=T1"
    router, controller = make(metadata, url)
    controller.clear_selected_record("143", "187")

    assert router.url == SALES + "&s_143_186=R1"


def test_open_window_reuses_open_instance(metadata):
    router, controller = make(metadata)
    assert controller.open_window("143") == "143"
    assert controller.open_window("123") == "123"
    assert controller.open_window("143") == "143"

    assert router.url == (
        "/window?w_143=active&o_143=1&wi_143=143&w_123=inactive&o_123=2&wi_123=123"
    )
    assert router.commit_count == 3


def test_open_new_window_instance(metadata):
    router, controller = make(metadata, SALES)
    assert controller.open_new_window_instance("143") == "143_2"
    assert controller.open_new_window_instance("143") == "143_3"

    summaries = controller.open_windows()
    assert [(s.window_identifier, s.window_id, s.order, s.is_active) for s in summaries] == [
        ("143", "143", 1, False),
        ("143_2", "143", 2, False),
        ("143_3", "143", 3, True),
    ]
    assert summaries[0].title == "Sales Order"


def test_set_active_window(metadata):
    url = "/window?w_143=active&o_143=1&wi_143=143&w_123=inactive&o_123=2&wi_123=123"
    router, controller = make(metadata, url)
    controller.set_active_window("123")

    assert controller.active_window().window_identifier == "123"
    assert router.commit_count == 1


def test_unknown_window_recommits_unchanged_url(metadata, caplog):
    router, controller = make(metadata, SALES + "&s_143_186=R1")
    controller.select_record_in_tab("999", "1", "R1")

    assert router.url == SALES + "&s_143_186=R1"
    assert router.commit_count == 1
    assert "999" in caplog.text


def test_close_active_window_activates_highest_order(metadata):
    url = (
        "/window?w_143=inactive&o_143=1&wi_143=143&w_123=active&o_123=2&wi_123=123"
        "&w_143_2=inactive&o_143_2=3&wi_143_2=143_2"
    )
    router, controller = make(metadata, url)
    controller.close_window("123")

    windows = controller.windows()
    assert [w.window_identifier for w in windows] == ["143", "143_2"]
    assert [w.is_active for w in windows] == [False, True]
    assert router.commit_count == 1


def test_close_inactive_window_keeps_active(metadata):
    url = "/window?w_143=active&o_143=1&wi_143=143&w_123=inactive&o_123=2&wi_123=123&s_123_220=BP1"
    router, controller = make(metadata, url)
    controller.close_window("123")

    assert router.url == SALES


def test_close_last_window_goes_home(metadata):
    router, controller = make(metadata, SALES + "&s_143_186=R1")
    controller.close_window("143")
    assert router.url == "/"


def test_set_tab_mode_form_uses_selection(metadata):
    router, controller = make(metadata, SALES + "&s_143_186=R1")
    controller.set_tab_mode("143", "186", "form")

    assert router.url == SALES + "&s_143_186=R1&tf_143_186=R1&tm_143_186=form&tfm_143_186=edit"
    assert controller.tab_mode("143", "186") == "form"


def test_set_tab_mode_form_for_new_record(metadata):
    router, controller = make(metadata, SALES)
    controller.set_tab_mode("143", "186", "form", record_id="new")

    params = dict(parse_query_string(router.url))
    assert params["tf_143_186"] == "new"
    assert params["tfm_143_186"] == "new"


def test_set_tab_mode_table_drops_form_record(metadata):
    url = SALES + "&s_143_186=R1&tf_143_186=R1&tm_143_186=form&tfm_143_186=edit"
    router, controller = make(metadata, url)
    controller.set_tab_mode("143", "186", "table")

    assert router.url == SALES + "&s_143_186=R1&tm_143_186=table"
    assert controller.tab_mode("143", "186") == "table"
    assert controller.active_record("143", "186") == "R1"


def test_set_tab_mode_form_on_new_record_clears_children(metadata):
    router, controller = make(metadata, SALES + "&s_143_186=R1&s_143_189=T_stale")
    controller.set_tab_mode("143", "187", "form", record_id="L9")

    assert router.url == SALES + "&s_143_186=R1&tf_143_187=L9&tm_143_187=form&tfm_143_187=edit"
    assert controller.active_record("143", "189") is None
    assert router.commit_count == 1


def test_set_tab_mode_keeps_children_when_record_unchanged(metadata):
    router, controller = make(metadata, SALES + "&s_143_186=R1&s_143_187=L1")
    controller.set_tab_mode("143", "186", "form")

    assert controller.active_record("143", "187") == "L1"


def test_set_tab_mode_form_without_record_raises(metadata):
    router, controller = make(metadata, SALES)
    with pytest.raises(InvalidNavigationRequest):
        controller.set_tab_mode("143", "186", "form")
    assert router.commit_count == 0


def test_set_tab_mode_rejects_unknown_mode(metadata):
    router, controller = make(metadata, SALES)
    with pytest.raises(InvalidNavigationRequest):
        controller.set_tab_mode("143", "186", "grid")
    with pytest.raises(ValueError):
        controller.set_tab_mode("143", "186", "form", record_id="R1", form_mode="view")
    assert router.commit_count == 0


def test_reads_default_when_nothing_selected(metadata):
    _, controller = make(metadata)
    assert controller.active_window() is None
    assert controller.active_record("143", "186") is None
    assert controller.tab_mode("143", "186") == "table"
    assert controller.open_windows() == []


def test_prune_is_noop_on_canonical_url(metadata):
    router, controller = make(metadata, SALES + "&s_143_186=R1")

    assert controller.prune({}) is False
    assert router.commit_count == 0


def test_prune_drops_listed_tabs_once(metadata):
    url = (
        SALES
        + "&s_143_186=R1&s_143_189=T1&tf_143_189=T1&tm_143_189=form"
        + "&w_123=inactive&o_123=2&wi_123=123&s_123_220=P1"
    )
    router, controller = make(metadata, url)

    assert controller.prune({"143": ["189"], "123": None}) is True
    assert router.url == SALES + "&s_143_186=R1&w_123=inactive&o_123=2&wi_123=123"
    assert router.commit_count == 1


def test_prune_removes_malformed_keys(metadata):
    router, controller = make(metadata, SALES + "&s_143_186=R1&tm_143_186=grid&s_777_1=X")

    assert controller.prune({}) is True
    assert router.url == SALES + "&s_143_186=R1"
