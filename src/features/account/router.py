"""Account administration router (elevated accounts only)."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.dependencies import get_db_session
from src.features.auth.dependencies import require_elevated
from src.features.auth.jwt_utils import Identity
from src.shared.pagination.pagination import PaginationParams

from .exceptions import AccountNotFound
from .schemas import AccountListResponse, AccountResponse, AdminStatsResponse, MessageResponse
from .service import AccountService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin", tags=["Account Administration"], dependencies=[Depends(require_elevated)])


@router.get("/users", response_model=AccountListResponse)
async def list_users(
    pagination: PaginationParams = Depends(),
    session: AsyncSession = Depends(get_db_session),
):
    """List all accounts, newest first.

    Pagination is enabled by default:
    - `page`: Page number (1-indexed, default: 1)
    - `page_size`: Items per page (default: 50, max: 1000)
    """
    accounts, total = await AccountService.list_accounts(session, pagination)
    return AccountListResponse(
        users=[AccountResponse.model_validate(a) for a in accounts],
        total=total,
        page=pagination.page or 1,
        page_size=pagination.page_size or 50,
    )


@router.delete("/users/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: int,
    identity: Identity = Depends(require_elevated),
    session: AsyncSession = Depends(get_db_session),
):
    """Delete an account together with its refresh tokens."""
    deleted = await AccountService.delete_account(session, identity.user_id, user_id)

    if not deleted:
        raise AccountNotFound()

    await session.commit()
    logger.info(f"User deleted by admin {identity.username}: {user_id}")
    return MessageResponse(message="User deleted successfully")


@router.post("/users/{user_id}/promote", response_model=MessageResponse)
async def promote_user(
    user_id: int,
    identity: Identity = Depends(require_elevated),
    session: AsyncSession = Depends(get_db_session),
):
    """Grant the administrator flag to an account."""
    account = await AccountService.get_account(session, user_id)

    if not account:
        raise AccountNotFound()

    account = await AccountService.promote_account(session, account)
    await session.commit()

    logger.info(f"User promoted by admin {identity.username}: {account.username}")
    return MessageResponse(message=f"User '{account.username}' promoted to admin successfully")


@router.get("/stats", response_model=AdminStatsResponse)
async def get_stats(session: AsyncSession = Depends(get_db_session)):
    """System statistics."""
    return await AccountService.get_stats(session)
