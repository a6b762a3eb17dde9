# tests/test_comments.py
from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.future import select

from vidshare import crud
from vidshare.models import Comment

pytestmark = pytest.mark.anyio


async def test_posted_comment_is_listed_for_its_video_only(client):
    r = await client.post("/api/comments", json={"videoId": "video-1", "userId": "user-1", "comment": "nice!"})
    assert r.status_code == 201
    assert r.json()["message"] == "Comment posted successfully"
    comment_id = r.json()["commentId"]

    r = await client.get("/api/comments/video-1")
    assert r.status_code == 200
    [comment] = r.json()
    assert comment["id"] == comment_id
    assert comment["videoId"] == "video-1"
    assert comment["userId"] == "user-1"
    assert comment["body"] == "nice!"
    assert comment["timestamp"]

    r = await client.get("/api/comments/video-2")
    assert r.json() == []


async def test_comments_keep_insertion_order(client):
    for text in ("first", "second", "third"):
        await client.post("/api/comments", json={"videoId": "v", "userId": "u", "comment": text})
    r = await client.get("/api/comments/v")
    assert [c["body"] for c in r.json()] == ["first", "second", "third"]


async def test_comment_on_unknown_video_is_accepted(client):
    r = await client.post("/api/comments", json={"videoId": "never-uploaded", "userId": "u", "comment": "hi"})
    assert r.status_code == 201


@pytest.mark.parametrize(
    "payload",
    [
        {"userId": "u", "comment": "hi"},
        {"videoId": "v", "comment": "hi"},
        {"videoId": "v", "userId": "u"},
        {"videoId": "v", "userId": "u", "comment": "   "},
    ],
)
async def test_missing_fields_is_400_and_writes_nothing(client, db, payload):
    r = await client.post("/api/comments", json=payload)
    assert r.status_code == 400
    assert (await db.execute(select(Comment))).scalars().all() == []


async def test_store_failure_is_generic_500(client, monkeypatch):
    async def broken_list_comments(db, video_id):
        raise OperationalError("SELECT", {}, Exception("connection reset by peer"))

    monkeypatch.setattr(crud, "list_comments", broken_list_comments)
    r = await client.get("/api/comments/v")
    assert r.status_code == 500
    assert r.json() == {"error": "Error fetching comments"}
    assert "connection reset" not in r.text
