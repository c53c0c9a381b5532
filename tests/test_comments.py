"""
Tests for ticket comments.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from campus_ops.models.notification import Notification


async def _ticket(client: AsyncClient, headers: dict) -> int:
    response = await client.post(
        "/api/v1/tickets/simple",
        json={
            "title": "Broken chair",
            "location": "Room 101",
            "category": "Furniture",
            "description": "Leg snapped",
            "priority": "LOW",
        },
        headers=headers,
    )
    return response.json()["id"]


async def _comment(client: AsyncClient, ticket_id: int, headers: dict, content: str):
    return await client.post(
        f"/api/v1/comments/ticket/{ticket_id}", json={"content": content}, headers=headers
    )


@pytest.mark.asyncio
async def test_add_and_list_newest_first(client: AsyncClient, auth_headers, tech_headers):
    ticket_id = await _ticket(client, auth_headers)

    first = await _comment(client, ticket_id, auth_headers, "It wobbles")
    assert first.status_code == 201
    assert first.json()["author_role"] == "USER"
    assert first.json()["edited"] is False

    second = await _comment(client, ticket_id, tech_headers, "On my way")
    assert second.json()["author_role"] == "TECHNICIAN"

    listed = await client.get(f"/api/v1/comments/ticket/{ticket_id}", headers=auth_headers)
    assert [c["content"] for c in listed.json()] == ["On my way", "It wobbles"]


@pytest.mark.asyncio
async def test_comment_on_missing_ticket(client: AsyncClient, auth_headers):
    assert (await _comment(client, 9999, auth_headers, "hello")).status_code == 404
    assert (await client.get("/api/v1/comments/ticket/9999", headers=auth_headers)).status_code == 404


@pytest.mark.asyncio
async def test_blank_comment_rejected(client: AsyncClient, auth_headers):
    ticket_id = await _ticket(client, auth_headers)
    assert (await _comment(client, ticket_id, auth_headers, "   ")).status_code == 400


@pytest.mark.asyncio
async def test_only_author_edits(client: AsyncClient, auth_headers, other_headers, admin_headers):
    ticket_id = await _ticket(client, auth_headers)
    comment_id = (await _comment(client, ticket_id, auth_headers, "typo hree")).json()["id"]

    for headers in (other_headers, admin_headers):
        response = await client.put(f"/api/v1/comments/{comment_id}", json={"content": "hijack"}, headers=headers)
        assert response.status_code == 403

    edited = await client.put(f"/api/v1/comments/{comment_id}", json={"content": "typo here"}, headers=auth_headers)
    assert edited.status_code == 200
    assert edited.json()["content"] == "typo here"
    assert edited.json()["edited"] is True


@pytest.mark.asyncio
async def test_delete_by_author_or_admin(client: AsyncClient, auth_headers, other_headers, admin_headers):
    ticket_id = await _ticket(client, auth_headers)
    mine = (await _comment(client, ticket_id, auth_headers, "first")).json()["id"]
    theirs = (await _comment(client, ticket_id, other_headers, "second")).json()["id"]

    assert (await client.delete(f"/api/v1/comments/{theirs}", headers=auth_headers)).status_code == 403
    assert (await client.delete(f"/api/v1/comments/{mine}", headers=auth_headers)).status_code == 204
    assert (await client.delete(f"/api/v1/comments/{theirs}", headers=admin_headers)).status_code == 204
    assert (await client.delete(f"/api/v1/comments/{theirs}", headers=admin_headers)).status_code == 404


@pytest.mark.asyncio
async def test_comment_notifies_reporter_and_assignee_but_not_author(
    client: AsyncClient, db_session, auth_headers, admin_headers, tech_headers, test_user, technician
):
    ticket_id = await _ticket(client, auth_headers)
    await client.put(
        f"/api/v1/tickets/{ticket_id}/assign", json={"technician_id": technician.id}, headers=admin_headers
    )

    await _comment(client, ticket_id, tech_headers, "Will fix today")
    await _comment(client, ticket_id, auth_headers, "Thanks")

    async def comment_notes(user_id):
        result = await db_session.execute(
            select(Notification).where(
                Notification.user_id == user_id, Notification.type == "COMMENT_ADDED"
            )
        )
        return result.scalars().all()

    assert len(await comment_notes(test_user.id)) == 1
    assert len(await comment_notes(technician.id)) == 1


@pytest.mark.asyncio
async def test_comment_listing_follows_ticket_read_access(
    client: AsyncClient, auth_headers, other_headers, tech_headers, admin_headers
):
    ticket_id = await _ticket(client, auth_headers)
    await _comment(client, ticket_id, auth_headers, "Room number is 2.14")

    stranger = await client.get(f"/api/v1/comments/ticket/{ticket_id}", headers=other_headers)
    assert stranger.status_code == 403
    assert (await client.get(f"/api/v1/tickets/{ticket_id}", headers=other_headers)).status_code == 403

    for headers in (auth_headers, tech_headers, admin_headers):
        listed = await client.get(f"/api/v1/comments/ticket/{ticket_id}", headers=headers)
        assert listed.status_code == 200
        assert [c["content"] for c in listed.json()] == ["Room number is 2.14"]
