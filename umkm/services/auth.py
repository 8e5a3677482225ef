from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from fastapi import Depends, HTTPException, Security
from fastapi.security.api_key import APIKeyHeader
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from umkm.core.config import settings
from umkm.core.db import get_db
from umkm.core.security import (
    SessionTokenParts,
    generate_session_token,
    hash_password,
    hash_session_token,
    verify_password,
)
from umkm.models.admin import AdminSession, AdminUser

log = logging.getLogger(__name__)

admin_token_header = APIKeyHeader(name="X-Admin-Token", auto_error=False)


@dataclass(frozen=True)
class Admin:
    admin_id: str
    session_id: str
    username: str
    display_name: str | None


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back naive; they were written as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


async def create_admin_user(
    db: AsyncSession, *, username: str, password: str, display_name: str | None = None
) -> AdminUser:
    user = AdminUser(
        username=username.strip(),
        display_name=display_name,
        password_hash=hash_password(password),
        is_active=True,
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )
    db.add(user)
    await db.flush()
    return user


async def login(db: AsyncSession, *, username: str, password: str) -> tuple[AdminUser, SessionTokenParts, datetime]:
    stmt = select(AdminUser).where(AdminUser.username == username.strip(), AdminUser.is_active.is_(True))
    user = (await db.execute(stmt)).scalar_one_or_none()
    if user is None or not verify_password(password, user.password_hash):
        log.info("admin login rejected for %s", username)
        raise HTTPException(status_code=401, detail="Invalid username or password")

    now = datetime.now(timezone.utc)
    expires_at = now + timedelta(hours=settings.admin_session_ttl_hours)
    token = generate_session_token()
    db.add(
        AdminSession(
            admin_id=user.id,
            token_prefix=token.prefix,
            token_hash=token.hashed,
            expires_at=expires_at,
            created_at=now,
            updated_at=now,
        )
    )
    await db.commit()
    log.info("admin %s logged in", user.username)
    return user, token, expires_at


async def get_admin(
    token: str | None = Security(admin_token_header),
    db: AsyncSession = Depends(get_db),
) -> Admin:
    if not token:
        raise HTTPException(status_code=401, detail="Missing X-Admin-Token")

    stmt = (
        select(AdminSession, AdminUser)
        .join(AdminUser, AdminUser.id == AdminSession.admin_id)
        .where(
            AdminSession.token_hash == hash_session_token(token),
            AdminSession.revoked_at.is_(None),
            AdminUser.is_active.is_(True),
        )
    )
    row = (await db.execute(stmt)).one_or_none()
    if row is None:
        raise HTTPException(status_code=401, detail="Invalid admin token")

    session, user = row
    if _as_utc(session.expires_at) <= datetime.now(timezone.utc):
        raise HTTPException(status_code=401, detail="Admin session expired")

    return Admin(
        admin_id=user.id,
        session_id=session.id,
        username=user.username,
        display_name=user.display_name,
    )


async def logout(db: AsyncSession, admin: Admin) -> None:
    session = await db.get(AdminSession, admin.session_id)
    if session is not None and session.revoked_at is None:
        now = datetime.now(timezone.utc)
        session.revoked_at = now
        session.updated_at = now
        await db.commit()
