"""Reglas de visibilidad sin base de datos."""
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from app.services.visibility import Visibility, can_view, filter_visible, resolve_visibility

OWNER = SimpleNamespace(id=1)
GUEST = SimpleNamespace(id=2)
STRANGER = SimpleNamespace(id=3)


def _record(access="Public", shared=(), deleted=False, owner=OWNER):
    return SimpleNamespace(
        user_id=owner.id,
        access=access,
        shared_user_ids=set(shared),
        deleted_at=datetime.now(timezone.utc) if deleted else None,
    )


@pytest.mark.parametrize("access", ["Public", "Private", "Shared"])
def test_owner_always_sees_own_record(access):
    assert resolve_visibility(OWNER, _record(access)) is Visibility.visible


def test_public_record_visible_to_anyone():
    assert can_view(STRANGER, _record("Public"))


def test_private_record_denied_to_others():
    assert resolve_visibility(GUEST, _record("Private")) is Visibility.denied


def test_shared_record_only_for_listed_users():
    record = _record("Shared", shared=[GUEST.id])
    assert resolve_visibility(GUEST, record) is Visibility.visible
    assert resolve_visibility(STRANGER, record) is Visibility.denied


def test_missing_or_deleted_record_is_unavailable():
    assert resolve_visibility(OWNER, None) is Visibility.unavailable
    assert resolve_visibility(OWNER, _record(deleted=True)) is Visibility.unavailable


def test_access_change_takes_effect_immediately():
    record = _record("Public")
    assert can_view(GUEST, record)
    record.access = "Private"
    assert not can_view(GUEST, record)


def test_filter_visible_keeps_order():
    records = [_record("Public"), _record("Private"), _record("Shared", shared=[GUEST.id]), _record(deleted=True)]
    assert filter_visible(GUEST, records) == [records[0], records[2]]
