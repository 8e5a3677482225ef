import pytest_asyncio

from umkm.services import auth

ADMIN_USERNAME = "admin-desa"
ADMIN_PASSWORD = "rahasia-desa-123"


@pytest_asyncio.fixture
async def seed_admin(db_session):
    user = await auth.create_admin_user(
        db_session,
        username=ADMIN_USERNAME,
        password=ADMIN_PASSWORD,
        display_name="Admin Desa",
    )
    await db_session.commit()
    return {"admin_id": user.id, "username": ADMIN_USERNAME, "password": ADMIN_PASSWORD}


@pytest_asyncio.fixture
async def admin_headers(db_session, seed_admin):
    _, token, _ = await auth.login(db_session, username=seed_admin["username"], password=seed_admin["password"])
    return {"X-Admin-Token": token.plain}
