import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from umkm.core.db import get_db
from umkm.schemas.admin import AdminCreate, AdminOut
from umkm.services.auth import create_admin_user
from umkm.services.internal_admin import require_internal_admin

log = logging.getLogger(__name__)
router = APIRouter()


@router.post("/internal/admins", response_model=AdminOut, status_code=201, dependencies=[Depends(require_internal_admin)])
async def bootstrap_admin(payload: AdminCreate, db: AsyncSession = Depends(get_db)) -> AdminOut:
    """
    Create an admin user. Internal-only (ops), protected by X-Internal-Admin-Key.
    """
    try:
        user = await create_admin_user(
            db,
            username=payload.username,
            password=payload.password,
            display_name=payload.display_name,
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        log.exception("admin bootstrap failed: integrity error")
        raise HTTPException(status_code=409, detail="Username already exists")

    return AdminOut(id=user.id, username=user.username, display_name=user.display_name)
