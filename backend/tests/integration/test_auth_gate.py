"""Requests without a verified identity never reach the services."""

from types import SimpleNamespace

import pytest
from factories import error_code, make_course
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from courseforge.auth import config as auth_config
from courseforge.chapters.models import Chapter
from courseforge.config.settings import get_settings
from courseforge.courses.models import Course


SUPABASE_USER_ID = "22222222-2222-2222-2222-222222222222"


@pytest.fixture
def multi_user_mode(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(get_settings(), "AUTH_PROVIDER", "supabase")


@pytest.fixture
def fake_supabase(monkeypatch: pytest.MonkeyPatch, multi_user_mode: None) -> None:
    """Accept the token "good-token" and reject anything else."""

    def get_user(token: str) -> SimpleNamespace:
        if token == "expired-token":
            raise RuntimeError("JWT expired")
        if token != "good-token":
            raise RuntimeError("invalid JWT")
        return SimpleNamespace(user=SimpleNamespace(id=SUPABASE_USER_ID))

    client = SimpleNamespace(auth=SimpleNamespace(get_user=get_user))
    monkeypatch.setattr(auth_config, "get_supabase_client", lambda: client)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("path", "payload"),
    [
        ("/api/v1/course/createCourse", {"title": "Sneaky"}),
        ("/api/v1/chapter/createChapter", {"courseId": "00000000-0000-0000-0000-0000000000aa", "title": "x"}),
        ("/api/v1/chapter/onProgress", {"chapterId": "00000000-0000-0000-0000-0000000000bb", "isCompleted": True}),
    ],
)
async def test_missing_token_is_unauthorized_and_writes_nothing(
    client, db_session: AsyncSession, multi_user_mode: None, path: str, payload: dict
) -> None:
    resp = await client.post(path, json=payload)

    assert resp.status_code == 401
    assert error_code(resp) == "UNAUTHORIZED"
    assert await db_session.scalar(select(func.count()).select_from(Course)) == 0


@pytest.mark.asyncio
async def test_bearer_token_identifies_caller(client, fake_supabase: None) -> None:
    resp = await client.post(
        "/api/v1/course/createCourse",
        json={"title": "Owned by token"},
        headers={"Authorization": "Bearer good-token"},
    )

    assert resp.status_code == 200
    assert resp.json()["course"]["userId"] == SUPABASE_USER_ID


@pytest.mark.asyncio
async def test_access_token_cookie_identifies_caller(client, fake_supabase: None) -> None:
    client.cookies.set("access_token", "good-token")

    resp = await client.get("/api/v1/course")

    assert resp.status_code == 200
    assert resp.json()["courses"] == []


@pytest.mark.asyncio
@pytest.mark.parametrize("token", ["bad-token", "expired-token"])
async def test_rejected_token_is_unauthorized(
    client, db_session: AsyncSession, fake_supabase: None, token: str
) -> None:
    course = await make_course(db_session)

    resp = await client.post(
        "/api/v1/chapter/createChapter",
        json={"courseId": str(course.id), "title": "Nope"},
        headers={"Authorization": f"Bearer {token}"},
    )

    assert resp.status_code == 401
    assert error_code(resp) == "UNAUTHORIZED"
    assert await db_session.scalar(select(func.count()).select_from(Chapter)) == 0


@pytest.mark.asyncio
async def test_unconfigured_supabase_is_a_server_error(
    client, monkeypatch: pytest.MonkeyPatch, multi_user_mode: None
) -> None:
    monkeypatch.setattr(auth_config, "get_supabase_client", lambda: None)

    resp = await client.post(
        "/api/v1/course/createCourse",
        json={"title": "Nope"},
        headers={"Authorization": "Bearer good-token"},
    )

    assert resp.status_code == 500
    assert resp.json()["error"]["code"] == "INTERNAL_ERROR"
    assert resp.json()["error"]["category"] == "INTERNAL_ERROR"
