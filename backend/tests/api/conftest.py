"""Shared fixtures for API tests."""
from collections.abc import AsyncGenerator

import pytest
from fastapi import Depends, Request
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from models.user import User

USER2_HEADER = "X-Test-User"


@pytest.fixture
async def user2_client(
    client: AsyncClient,
    db_session: AsyncSession,
) -> AsyncGenerator[AsyncClient]:
    """
    Create an AsyncClient acting as a second user.

    Requests carrying the USER2_HEADER resolve to the second user (exposed as
    `user2_client.user`); all other requests, including those made through
    `client`, still resolve to the dev user. Shares the `client` fixture's
    database session and change feed.
    """
    from api.main import app  # noqa: PLC0415
    from core.auth import get_current_user, get_or_create_dev_user  # noqa: PLC0415
    from db.session import get_async_session  # noqa: PLC0415

    user2 = User(auth0_id="auth0|user2-bookmarks-test", email="user2@example.com")
    db_session.add(user2)
    await db_session.flush()

    async def override_get_current_user(
        request: Request,
        db: AsyncSession = Depends(get_async_session),
    ) -> User:
        if request.headers.get(USER2_HEADER) == "1":
            return user2
        return await get_or_create_dev_user(db)

    app.dependency_overrides[get_current_user] = override_get_current_user
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
            headers={USER2_HEADER: "1"},
        ) as second_client:
            second_client.user = user2
            yield second_client
    finally:
        app.dependency_overrides.pop(get_current_user, None)
