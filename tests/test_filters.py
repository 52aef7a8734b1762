"""Tests for the filter engine."""
import pytest

from taskboard.filters import (
    HIDDEN_BY_FILTER,
    NO_SEARCH_MATCHES,
    active_filter_count,
    empty_reason,
    has_active_filters,
    hidden_columns,
    visible_tasks,
)
from taskboard.schema import ColumnId, FilterState

TODO, IN_PROGRESS, DONE = ColumnId.TODO, ColumnId.IN_PROGRESS, ColumnId.DONE


@pytest.fixture
def populated(engine):
    """todo: [groceries, report]; done: [deploy]"""
    report = engine.create_task("Write Report", "quarterly numbers")
    groceries = engine.create_task("Buy groceries")
    deploy = engine.create_task("Deploy", "push the REPORT service")
    engine.move_task(deploy, DONE)
    return engine, {"report": report, "groceries": groceries, "deploy": deploy}


def test_no_filters_returns_column_order(populated):
    engine, t = populated
    assert visible_tasks(engine.board, TODO) == (t["groceries"], t["report"])
    assert visible_tasks(engine.board, IN_PROGRESS) == ()


def test_search_matches_title_or_description_case_insensitively(populated):
    engine, t = populated
    engine.set_search_term("  report ")

    assert visible_tasks(engine.board, TODO) == (t["report"],)
    assert visible_tasks(engine.board, DONE) == (t["deploy"],)


def test_search_without_description_does_not_match(populated):
    engine, t = populated
    engine.set_search_term("numbers")
    assert visible_tasks(engine.board, TODO) == (t["report"],)


def test_blank_search_term_shows_everything(populated):
    engine, t = populated
    engine.set_search_term("   ")
    assert visible_tasks(engine.board, TODO) == (t["groceries"], t["report"])


def test_hidden_column_is_empty_regardless_of_search(populated):
    engine, t = populated
    engine.toggle_status_filter(DONE)
    assert visible_tasks(engine.board, DONE) == ()

    engine.set_search_term("deploy")
    assert visible_tasks(engine.board, DONE) == ()

    engine.clear_filters()
    assert visible_tasks(engine.board, DONE) == engine.board.column_ids(DONE)


def test_visible_tasks_is_pure(populated):
    engine, _ = populated
    engine.set_search_term("report")
    board = engine.board
    first = visible_tasks(board, TODO)
    assert visible_tasks(board, TODO) == first
    assert engine.board is board


def test_empty_reason(populated):
    engine, _ = populated
    assert empty_reason(engine.board, TODO) is None
    assert empty_reason(engine.board, IN_PROGRESS) is None

    engine.set_search_term("nothing matches this")
    assert empty_reason(engine.board, TODO) == NO_SEARCH_MATCHES

    engine.toggle_status_filter(TODO)
    assert empty_reason(engine.board, TODO) == HIDDEN_BY_FILTER


def test_active_filter_summary():
    filters = FilterState()
    assert not has_active_filters(filters)
    assert active_filter_count(filters) == 0

    filters = FilterState(
        search_term=" x ",
        status_filters={TODO: False, IN_PROGRESS: True, DONE: False},
    )
    assert hidden_columns(filters) == [TODO, DONE]
    assert active_filter_count(filters) == 3
    assert has_active_filters(filters)
