from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import require_admin
from core.db import get_db_session
from core.response import ok, paginate
from models.schemas import DiscountDecision, UserCreate, UserUpdate, VerificationUpdate
from services.user_db_service import UserDBService

# Every route here requires an admin bearer token
router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("/users")
async def list_users(
    search: Optional[str] = None,
    user_type: Optional[str] = None,
    discount_status: Optional[str] = Query(None, pattern="^(pending|approved|none)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    session: AsyncSession = Depends(get_db_session),
):
    """Admin: paginated user listing with search and type/discount filters."""
    users, total = await UserDBService(session).list_users(search, user_type, discount_status, page, limit)
    return ok({"users": users, "pagination": paginate(total, page, limit)})


@router.get("/users/{user_id}")
async def get_user(user_id: int, session: AsyncSession = Depends(get_db_session)):
    user = await UserDBService(session).get_user(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return ok(UserDBService.to_dict(user))


@router.post("/users", status_code=201)
async def create_user(body: UserCreate, session: AsyncSession = Depends(get_db_session)):
    """
    Admin: create a passenger, driver or admin.

    Runs the same field rules as the registration forms; field errors come
    back as 400 with error.fields, duplicate username/email as 409.
    """
    return ok(await UserDBService(session).create_user(body.model_dump()))


@router.patch("/users/{user_id}")
async def update_user(user_id: int, body: UserUpdate, session: AsyncSession = Depends(get_db_session)):
    updated = await UserDBService(session).update_user(user_id, body.model_dump(exclude_unset=True))
    if updated is None:
        raise HTTPException(status_code=404, detail="User not found")
    return ok(updated)


@router.patch("/users/{user_id}/discount")
async def decide_discount(user_id: int, body: DiscountDecision, session: AsyncSession = Depends(get_db_session)):
    result = await UserDBService(session).set_discount_status(user_id, body.status, body.rejection_reason)
    if result is None:
        raise HTTPException(status_code=404, detail="User not found")
    return ok(result)


@router.patch("/users/{user_id}/verify")
async def verify_user(user_id: int, body: VerificationUpdate, session: AsyncSession = Depends(get_db_session)):
    result = await UserDBService(session).set_verified(user_id, body.is_verified)
    if result is None:
        raise HTTPException(status_code=404, detail="User not found")
    return ok(result)


@router.get("/discounts/pending")
async def pending_discounts(session: AsyncSession = Depends(get_db_session)):
    return ok({"users": await UserDBService(session).pending_discounts()})
