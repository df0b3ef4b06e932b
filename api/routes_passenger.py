from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import get_current_user
from core.db import get_db_session
from core.response import ok
from models.schemas import DiscountApplication
from services.user_db_service import UserDBService

router = APIRouter()


@router.post("/discount-application")
async def apply_for_discount(
    body: DiscountApplication,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Passenger submits a discount document; an admin approves it later."""
    state = await UserDBService(session).submit_discount_application(
        user["user_id"], body.discount_type, body.document_path, body.document_name
    )
    if state is None:
        raise HTTPException(status_code=404, detail="User not found")
    return ok(state)


@router.get("/discount-status")
async def discount_status(user: dict = Depends(get_current_user), session: AsyncSession = Depends(get_db_session)):
    state = await UserDBService(session).discount_status(user["user_id"])
    if state is None:
        raise HTTPException(status_code=404, detail="User not found")
    return ok(state)
