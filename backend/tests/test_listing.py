"""Armado de listados: visibilidad, búsqueda, orden, paginación y retroceso tras eliminar."""
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import event

from app.core.database import engine
from app.services.listing import (
    OutputMode,
    auto_complete,
    build_listing,
    relist_after_delete,
    sanitize_query,
)
from app.services.preference_service import save_preferences
from app.services.records import soft_delete
from app.services.resources import ACCOUNTS


@pytest.fixture
def two_accounts(db_session, current_user, make_account):
    user, _ = current_user
    save_preferences(db_session, user, ACCOUNTS, per_page=1)
    first = make_account(user, "First account")
    second = make_account(user, "Second account")
    return user, first, second


def _names(listing):
    return [a.name for a in listing.items]


def test_pages_follow_per_page_preference(db_session, two_accounts):
    user, _, _ = two_accounts
    session = {}
    page_one = build_listing(db_session, user, session, ACCOUNTS)
    assert _names(page_one) == ["First account"]
    assert page_one.pagination() == {
        "page": 1, "per_page": 1, "total": 2, "pages": 2, "has_next": True, "has_prev": False,
    }

    page_two = build_listing(db_session, user, session, ACCOUNTS, page=2)
    assert _names(page_two) == ["Second account"]
    assert session["accounts_current_page"] == 2


def test_stored_page_is_reused(db_session, two_accounts):
    user, _, _ = two_accounts
    session = {"accounts_current_page": 2}
    assert _names(build_listing(db_session, user, session, ACCOUNTS)) == ["Second account"]


def test_search_filters_and_is_remembered(db_session, two_accounts):
    user, _, _ = two_accounts
    session = {}
    listing = build_listing(db_session, user, session, ACCOUNTS, page=1, query="second")
    assert _names(listing) == ["Second account"]
    assert session["accounts_current_query"] == "second"

    again = build_listing(db_session, user, session, ACCOUNTS)
    assert again.query == "second"
    assert _names(again) == ["Second account"]

    cleared = build_listing(db_session, user, session, ACCOUNTS, query="")
    assert cleared.query is None
    assert cleared.total == 2


def test_search_ignores_punctuation(db_session, two_accounts):
    user, _, _ = two_accounts
    listing = build_listing(db_session, user, {}, ACCOUNTS, query="second?!")
    assert _names(listing) == ["Second account"]


def test_sanitize_query():
    assert sanitize_query("second?!") == "second"
    assert sanitize_query("  o'neil & co. ") == "o'neil  co."
    assert sanitize_query(None) == ""


def test_page_beyond_range_is_empty_and_kept(db_session, two_accounts):
    user, _, _ = two_accounts
    session = {}
    listing = build_listing(db_session, user, session, ACCOUNTS, page=42)
    assert listing.items == []
    assert listing.page == 42
    assert not listing.has_next
    assert session["accounts_current_page"] == 42


def test_export_mode_returns_everything(db_session, two_accounts):
    user, _, _ = two_accounts
    session = {"accounts_current_page": 42}
    listing = build_listing(db_session, user, session, ACCOUNTS, mode=OutputMode.export)
    assert _names(listing) == ["First account", "Second account"]
    assert not listing.has_next and not listing.has_prev


def test_only_visible_accounts_are_listed(db_session, current_user, other_user, third_user, make_account):
    user, _ = current_user
    other, _ = other_user
    third, _ = third_user
    make_account(other, "Public one", access="Public")
    make_account(other, "Private one", access="Private")
    make_account(other, "Shared with me", access="Shared", shared_with=[user.id])
    make_account(other, "Shared elsewhere", access="Shared", shared_with=[third.id])
    make_account(user, "Deleted", deleted_at=datetime.now(timezone.utc))

    listing = build_listing(db_session, user, {}, ACCOUNTS)
    assert _names(listing) == ["Public one", "Shared with me"]


def test_sort_preference_orders_results(db_session, current_user, make_account):
    user, _ = current_user
    now = datetime.now(timezone.utc)
    make_account(user, "Alpha", created_at=now - timedelta(days=2))
    make_account(user, "Beta", created_at=now)
    make_account(user, "Gamma", created_at=now - timedelta(days=1))

    assert _names(build_listing(db_session, user, {}, ACCOUNTS)) == ["Alpha", "Beta", "Gamma"]
    save_preferences(db_session, user, ACCOUNTS, sort_by="created_at")
    assert _names(build_listing(db_session, user, {}, ACCOUNTS)) == ["Beta", "Gamma", "Alpha"]


def test_rollback_steps_back_one_page(db_session, two_accounts):
    user, _, second = two_accounts
    session = {"accounts_current_page": 2}
    soft_delete(db_session, second)
    db_session.commit()

    listing, emptied = relist_after_delete(db_session, user, session, ACCOUNTS)
    assert emptied
    assert session["accounts_current_page"] == 1
    assert _names(listing) == ["First account"]


def test_rollback_goes_back_exactly_one_page_from_far_away(db_session, two_accounts):
    user, _, _ = two_accounts
    session = {"accounts_current_page": 42}
    listing, emptied = relist_after_delete(db_session, user, session, ACCOUNTS)
    assert emptied
    assert session["accounts_current_page"] == 41
    assert listing.items == []


def test_rollback_never_goes_below_first_page(db_session, two_accounts):
    user, first, second = two_accounts
    session = {"accounts_current_page": 1}
    soft_delete(db_session, first)
    soft_delete(db_session, second)
    db_session.commit()

    listing, emptied = relist_after_delete(db_session, user, session, ACCOUNTS)
    assert emptied
    assert session["accounts_current_page"] == 1
    assert listing.items == []


def test_no_rollback_when_page_still_has_records(db_session, two_accounts):
    user, first, _ = two_accounts
    session = {"accounts_current_page": 1}
    soft_delete(db_session, first)
    db_session.commit()

    listing, emptied = relist_after_delete(db_session, user, session, ACCOUNTS)
    assert not emptied
    assert _names(listing) == ["Second account"]


def test_auto_complete_matches_visible_names(db_session, current_user, other_user, make_account):
    user, _ = current_user
    other, _ = other_user
    make_account(user, "Acme North")
    make_account(user, "Globex")
    make_account(other, "Acme Hidden", access="Private")
    make_account(other, "Acme South", access="Public")

    matches = auto_complete(db_session, user, ACCOUNTS, "acme", limit=10)
    assert [a.name for a in matches] == ["Acme North", "Acme South"]
    assert [a.name for a in auto_complete(db_session, user, ACCOUNTS, "acme", limit=1)] == ["Acme North"]
    assert auto_complete(db_session, user, ACCOUNTS, "?!", limit=10) == []


def test_name_sort_ignores_case(db_session, current_user, make_account):
    user, _ = current_user
    for name in ("banana", "Apple", "cherry", "Date"):
        make_account(user, name)
    assert _names(build_listing(db_session, user, {}, ACCOUNTS)) == ["Apple", "banana", "cherry", "Date"]
    matches = auto_complete(db_session, user, ACCOUNTS, "a", limit=10)
    assert [a.name for a in matches] == ["Apple", "banana", "Date"]


def test_page_is_sliced_in_sql(db_session, current_user, make_account):
    user, _ = current_user
    save_preferences(db_session, user, ACCOUNTS, per_page=2)
    for name in ("A1", "A2", "A3", "A4", "A5"):
        make_account(user, name)

    statements = []

    def capture(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    event.listen(engine, "before_cursor_execute", capture)
    try:
        listing = build_listing(db_session, user, {}, ACCOUNTS, page=3)
    finally:
        event.remove(engine, "before_cursor_execute", capture)

    assert _names(listing) == ["A5"]
    assert listing.total == 5
    assert listing.pages == 3
    selects = [s for s in statements if "FROM accounts" in s and "count(" not in s.lower()]
    assert selects and all("LIMIT" in s for s in selects)
