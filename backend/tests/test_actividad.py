"""Feed de actividad del usuario."""
from tests.conftest import client


def test_feed_requires_login():
    assert client.get("/api/actividad").status_code == 401


def test_feed_lists_own_actions(auth_headers, other_user, make_account):
    other, token = other_user
    theirs = make_account(other, "Theirs")
    client.get(f"/api/accounts/{theirs.id}", headers={"Authorization": f"Bearer {token}"})

    created = client.post("/api/accounts", json={"name": "Acme"}, headers=auth_headers).json()["account"]
    client.get(f"/api/accounts/{created['id']}", headers=auth_headers)
    client.get(f"/api/accounts/{created['id']}", headers=auth_headers)

    body = client.get("/api/actividad", headers=auth_headers).json()
    assert body["total"] == 2
    assert {a["action"] for a in body["actividad"]} == {"created", "viewed"}
    assert all(a["subject_id"] == created["id"] for a in body["actividad"])


def test_feed_filters_by_action(auth_headers):
    created = client.post("/api/accounts", json={"name": "Acme"}, headers=auth_headers).json()["account"]
    client.delete(f"/api/accounts/{created['id']}", headers=auth_headers)

    body = client.get("/api/actividad?action=deleted", headers=auth_headers).json()
    assert body["total"] == 1
    assert body["actividad"][0]["info"] == "Acme"
