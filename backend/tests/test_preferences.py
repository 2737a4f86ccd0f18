"""Preferencias de vista por usuario: defaults, persistencia y valores dañados."""
import pytest
from fastapi import HTTPException

from app.core.config import get_settings
from app.models import UserPreference
from app.services.preference_service import (
    decode_preference,
    encode_preference,
    get_preference,
    resolve_preferences,
    save_preferences,
    set_preference,
)
from app.services.resources import ACCOUNTS


def test_defaults_without_stored_preferences(db_session, current_user):
    user, _ = current_user
    prefs = resolve_preferences(db_session, user, ACCOUNTS)
    assert prefs.per_page == 20
    assert prefs.outline == "long"
    assert prefs.sort_key == "accounts.name ASC"
    assert prefs.sort_by == "name"


def test_encoded_value_is_opaque_and_decodable():
    raw = encode_preference(42)
    assert not raw.startswith("{")
    assert decode_preference(raw) == 42


def test_saved_preferences_are_returned(db_session, current_user):
    user, _ = current_user
    prefs = save_preferences(db_session, user, ACCOUNTS, per_page=5, outline="brief", sort_by="created_at")
    assert prefs.per_page == 5
    assert prefs.outline == "brief"
    assert prefs.sort_key == "accounts.created_at DESC"
    assert resolve_preferences(db_session, user, ACCOUNTS) == prefs


def test_partial_save_keeps_other_keys(db_session, current_user):
    user, _ = current_user
    save_preferences(db_session, user, ACCOUNTS, per_page=5, sort_by="updated_at")
    prefs = save_preferences(db_session, user, ACCOUNTS, outline="brief")
    assert prefs.per_page == 5
    assert prefs.sort_by == "updated_at"


def test_preferences_are_per_user(db_session, current_user, other_user):
    user, _ = current_user
    other, _ = other_user
    save_preferences(db_session, user, ACCOUNTS, per_page=3)
    assert resolve_preferences(db_session, other, ACCOUNTS).per_page == 20


def test_unknown_sort_field_is_rejected(db_session, current_user):
    user, _ = current_user
    with pytest.raises(HTTPException) as exc:
        save_preferences(db_session, user, ACCOUNTS, sort_by="password")
    assert exc.value.status_code == 400
    assert exc.value.detail["code"] == "bad_request"


def test_corrupt_value_falls_back_to_default(db_session, current_user):
    user, _ = current_user
    db_session.add(UserPreference(user_id=user.id, name="accounts_per_page", value="%%% not base64"))
    db_session.commit()
    assert get_preference(db_session, user, "accounts_per_page", 20) == 20
    assert resolve_preferences(db_session, user, ACCOUNTS).per_page == 20


def test_invalid_stored_values_fall_back_to_defaults(db_session, current_user):
    user, _ = current_user
    set_preference(db_session, user, "accounts_per_page", 0)
    set_preference(db_session, user, "accounts_outline", "huge")
    set_preference(db_session, user, "accounts_sort_by", "accounts.password ASC")
    db_session.commit()
    prefs = resolve_preferences(db_session, user, ACCOUNTS)
    assert (prefs.per_page, prefs.outline, prefs.sort_key) == (20, "long", "accounts.name ASC")


def test_per_page_is_capped(db_session, current_user):
    user, _ = current_user
    set_preference(db_session, user, "accounts_per_page", 10_000)
    db_session.commit()
    assert resolve_preferences(db_session, user, ACCOUNTS).per_page == 200


def test_per_page_above_configured_limit_is_rejected(db_session, current_user, monkeypatch):
    user, _ = current_user
    monkeypatch.setenv("MAX_PER_PAGE", "50")
    get_settings.cache_clear()
    try:
        assert save_preferences(db_session, user, ACCOUNTS, per_page=50).per_page == 50
        with pytest.raises(HTTPException) as exc:
            save_preferences(db_session, user, ACCOUNTS, per_page=51)
        assert exc.value.status_code == 400
        assert exc.value.detail["details"] == {"per_page": 51, "max": 50}
        assert resolve_preferences(db_session, user, ACCOUNTS).per_page == 50
    finally:
        monkeypatch.undo()
        get_settings.cache_clear()
