from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from umkm.core.db import get_db
from umkm.schemas.admin import AdminOut, LoginIn, LoginOut
from umkm.schemas.common import StatusResponse
from umkm.services import auth
from umkm.services.auth import Admin, get_admin

router = APIRouter()


@router.post("/admin/login", response_model=LoginOut)
async def admin_login(payload: LoginIn, db: AsyncSession = Depends(get_db)) -> LoginOut:
    user, token, expires_at = await auth.login(db, username=payload.username, password=payload.password)
    return LoginOut(
        token=token.plain,
        expires_at=expires_at,
        admin=AdminOut(id=user.id, username=user.username, display_name=user.display_name),
    )


@router.post("/admin/logout", response_model=StatusResponse)
async def admin_logout(admin: Admin = Depends(get_admin), db: AsyncSession = Depends(get_db)) -> StatusResponse:
    await auth.logout(db, admin)
    return StatusResponse(status="logged_out")


@router.get("/admin/me", response_model=AdminOut)
async def admin_me(admin: Admin = Depends(get_admin)) -> AdminOut:
    return AdminOut(id=admin.admin_id, username=admin.username, display_name=admin.display_name)
