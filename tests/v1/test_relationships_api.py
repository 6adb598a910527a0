"""Tests for relationship endpoints."""

import uuid

from fastapi import status


def test_follow_is_idempotent(client, auth_token, other_user) -> None:
    url = f"/api/v1/relationships/follow/{other_user.id}"

    first = client.post(url, headers=auth_token)
    second = client.post(url, headers=auth_token)

    assert first.status_code == status.HTTP_200_OK
    assert first.json()["changed"] is True
    assert second.status_code == status.HTTP_200_OK
    body = second.json()
    assert body["success"] is True
    assert body["changed"] is False
    assert body["reason"] == "already_following"


def test_follow_self_is_bad_request(client, auth_token, test_user) -> None:
    r = client.post(f"/api/v1/relationships/follow/{test_user.id}", headers=auth_token)

    assert r.status_code == status.HTTP_400_BAD_REQUEST
    assert r.json() == {
        "detail": "You cannot follow yourself",
        "error": "InvalidOperation",
        "step": None,
    }


def test_follow_unknown_user(client, auth_token) -> None:
    r = client.post(f"/api/v1/relationships/follow/{uuid.uuid4()}", headers=auth_token)
    assert r.status_code == status.HTTP_404_NOT_FOUND
    assert r.json()["error"] == "NotFound"


def test_requires_authentication(client, other_user) -> None:
    r = client.post(f"/api/v1/relationships/follow/{other_user.id}")
    assert r.status_code in {status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN}

    r = client.post(
        f"/api/v1/relationships/follow/{other_user.id}",
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert r.status_code == status.HTTP_401_UNAUTHORIZED


def test_friend_request_flow(client, auth_token, other_auth_token, test_user, other_user) -> None:
    r = client.post(f"/api/v1/relationships/friend-requests/{other_user.id}", headers=auth_token)
    assert r.json()["changed"] is True

    r = client.get("/api/v1/users/me/friend-requests/received", headers=other_auth_token)
    requests = r.json()
    assert [entry["user"]["id"] for entry in requests] == [test_user.id]
    assert requests[0]["status"] == "pending"

    r = client.post(
        f"/api/v1/relationships/friend-requests/{test_user.id}/accept",
        headers=other_auth_token,
    )
    assert r.status_code == status.HTTP_200_OK
    assert r.json()["changed"] is True

    r = client.get(f"/api/v1/relationships/status/{other_user.id}", headers=auth_token)
    assert r.json() == {
        "user_id": other_user.id,
        "is_following": True,
        "is_followed_by": True,
        "are_mutual_friends": True,
        "is_blocked": False,
    }


def test_accept_missing_request_reports_step(client, other_auth_token, test_user) -> None:
    r = client.post(
        f"/api/v1/relationships/friend-requests/{test_user.id}/accept",
        headers=other_auth_token,
    )

    assert r.status_code == status.HTTP_404_NOT_FOUND
    assert r.json()["error"] == "RequestNotFound"
    assert r.json()["step"] == "accept_request"


def test_reject_and_cancel(client, auth_token, other_auth_token, test_user, other_user) -> None:
    client.post(f"/api/v1/relationships/friend-requests/{other_user.id}", headers=auth_token)
    r = client.post(
        f"/api/v1/relationships/friend-requests/{test_user.id}/reject",
        headers=other_auth_token,
    )
    assert r.json()["changed"] is True

    r = client.delete(
        f"/api/v1/relationships/friend-requests/{other_user.id}", headers=auth_token
    )
    assert r.status_code == status.HTTP_404_NOT_FOUND
    assert r.json()["step"] == "cancel_request"


def test_block_and_unblock(client, auth_token, other_auth_token, test_user, other_user) -> None:
    client.post(f"/api/v1/relationships/follow/{test_user.id}", headers=other_auth_token)

    r = client.post(f"/api/v1/relationships/block/{other_user.id}", headers=auth_token)
    assert r.json()["changed"] is True
    assert r.json()["incomplete"] == []

    r = client.post(f"/api/v1/relationships/follow/{test_user.id}", headers=other_auth_token)
    assert r.status_code == status.HTTP_400_BAD_REQUEST

    r = client.get("/api/v1/users/me/blocked", headers=auth_token)
    assert [user["id"] for user in r.json()] == [other_user.id]

    r = client.delete(f"/api/v1/relationships/block/{other_user.id}", headers=auth_token)
    assert r.json()["changed"] is True
    r = client.get(f"/api/v1/relationships/status/{other_user.id}", headers=auth_token)
    assert r.json()["is_blocked"] is False
    assert r.json()["is_followed_by"] is False
