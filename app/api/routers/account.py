from __future__ import annotations
import uuid

from fastapi import APIRouter, Depends

from ...auth.deps import get_account_service, get_current_user_id
from ...domain.schemas.account import ErrorOut, SetTwoFAIn, SuccessOut, TokenIn, UserInfoOut
from ...services.account import AccountService

# The session behind get_account_service commits when a route returns and rolls back when it raises.
router = APIRouter(prefix="/account", tags=["account"], responses={404: {"model": ErrorOut}})


@router.post("/2fa", response_model=SuccessOut)
async def set_two_fa(
    payload: SetTwoFAIn,
    user_id: uuid.UUID = Depends(get_current_user_id),
    svc: AccountService = Depends(get_account_service),
):
    return await svc.set_two_fa(user_id, payload.set_2fa)


@router.post("/2fa/disable/verify", response_model=SuccessOut)
async def disable_two_fa_verification(
    payload: TokenIn,
    user_id: uuid.UUID = Depends(get_current_user_id),
    svc: AccountService = Depends(get_account_service),
):
    return await svc.disable_two_fa_verification(user_id, payload.token)


@router.post("/phone/verify", response_model=SuccessOut)
async def verify_phone(
    user_id: uuid.UUID = Depends(get_current_user_id),
    svc: AccountService = Depends(get_account_service),
):
    return await svc.verify_phone(user_id)


@router.post("/phone/verify/confirm", response_model=SuccessOut)
async def validate_phone_verification(
    payload: TokenIn,
    user_id: uuid.UUID = Depends(get_current_user_id),
    svc: AccountService = Depends(get_account_service),
):
    return await svc.validate_phone_verification(user_id, payload.token)


@router.get("/me", response_model=UserInfoOut)
async def get_user_info(
    user_id: uuid.UUID = Depends(get_current_user_id),
    svc: AccountService = Depends(get_account_service),
):
    return await svc.get_user_info(user_id)
