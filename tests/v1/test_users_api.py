"""Tests for profile and relationship listing endpoints."""

import uuid

from fastapi import status


def test_me(client, auth_token, test_user) -> None:
    r = client.get("/api/v1/users/me", headers=auth_token)
    assert r.status_code == status.HTTP_200_OK
    assert r.json()["id"] == test_user.id
    assert r.json()["username"] == test_user.username


def test_profile_lookup(client, other_user) -> None:
    r = client.get(f"/api/v1/users/{other_user.id}")
    assert r.status_code == status.HTTP_200_OK
    assert r.json()["display_name"] == "Other User"

    r = client.get(f"/api/v1/users/{uuid.uuid4()}")
    assert r.status_code == status.HTTP_404_NOT_FOUND

    r = client.get("/api/v1/users/not-a-uuid")
    assert r.status_code == status.HTTP_400_BAD_REQUEST


def test_counts_and_lists(client, auth_token, auth_for, test_user, other_user, make_user) -> None:
    third = make_user("Third")
    client.post(f"/api/v1/relationships/follow/{other_user.id}", headers=auth_token)
    client.post(f"/api/v1/relationships/follow/{third.id}", headers=auth_token)
    client.post(f"/api/v1/relationships/follow/{test_user.id}", headers=auth_for(other_user))

    r = client.get(f"/api/v1/users/{test_user.id}/counts")
    assert r.json() == {"following_count": 2, "followers_count": 1, "friends_count": 1}

    r = client.get(f"/api/v1/users/{test_user.id}/friends")
    assert [user["id"] for user in r.json()] == [other_user.id]

    r = client.get(f"/api/v1/users/{test_user.id}/following")
    assert {user["id"] for user in r.json()} == {other_user.id, third.id}

    r = client.get(f"/api/v1/users/{third.id}/followers")
    assert [user["id"] for user in r.json()] == [test_user.id]


def test_suggestions(client, auth_token, test_user, other_user, make_user) -> None:
    fresh = make_user("Fresh")
    client.post(f"/api/v1/relationships/follow/{other_user.id}", headers=auth_token)

    r = client.get("/api/v1/users/me/suggestions", headers=auth_token)

    assert r.status_code == status.HTTP_200_OK
    assert [user["id"] for user in r.json()] == [fresh.id]

    r = client.get("/api/v1/users/me/suggestions", params={"limit": 0}, headers=auth_token)
    assert r.status_code == 422


def test_sent_requests(client, auth_token, other_user) -> None:
    client.post(f"/api/v1/relationships/friend-requests/{other_user.id}", headers=auth_token)

    r = client.get("/api/v1/users/me/friend-requests/sent", headers=auth_token)

    assert [entry["user"]["id"] for entry in r.json()] == [other_user.id]
