# tests/v1/test_users_api.py
"""Tests for profile, search and presence endpoints."""

from fastapi import status
from fastapi.testclient import TestClient


def test_get_profile(client: TestClient, alice) -> None:
    response = client.get(f"/api/v1/users/{alice.id}")

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["nickname"] == "alice"
    assert client.get("/api/v1/users/NYX-ZZZZZZZZ").status_code == status.HTTP_404_NOT_FOUND


def test_search_users(client: TestClient, make_user) -> None:
    make_user("NYX-AAAAAAAA", "alice", searchable=True)
    make_user("NYX-BBBBBBBB", "alicia", searchable=False)

    response = client.get("/api/v1/users/search/ali")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == [{"id": "NYX-AAAAAAAA", "nickname": "alice", "avatar": None}]
    assert client.get("/api/v1/users/search/al").status_code == status.HTTP_400_BAD_REQUEST


def test_patch_profile(client: TestClient, alice, bob) -> None:
    response = client.patch(
        f"/api/v1/users/{alice.id}",
        json={"nickname": "alicia", "allowSearchByNickname": True},
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["nickname"] == "alicia"
    assert data["allowSearchByNickname"] is True

    taken = client.patch(f"/api/v1/users/{alice.id}", json={"nickname": "bob"})
    assert taken.status_code == status.HTTP_409_CONFLICT

    empty = client.patch(f"/api/v1/users/{alice.id}", json={})
    assert empty.status_code == status.HTTP_400_BAD_REQUEST


def test_status_follows_live_connections(client: TestClient, alice) -> None:
    assert client.get(f"/api/v1/users/{alice.id}/status").json() == {"userId": alice.id, "online": False}

    with client.websocket_connect("/ws") as ws:
        ws.send_json({"event": "auth", "data": {"userId": alice.id}})
        assert ws.receive_json()["event"] == "auth:ok"

        online = client.get(f"/api/v1/users/{alice.id}/status").json()
        assert online == {"userId": alice.id, "online": True}
