"""Account schemas (DTOs)."""

from datetime import datetime

from pydantic import BaseModel


# Response schemas
class AccountResponse(BaseModel):
    """Account response."""

    id: int
    username: str
    is_admin: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class AccountListResponse(BaseModel):
    """Account list response."""

    users: list[AccountResponse]
    total: int
    page: int
    page_size: int


class AdminStatsResponse(BaseModel):
    """System statistics visible to elevated accounts."""

    total_users: int
    total_admins: int
    active_refresh_tokens: int


class MessageResponse(BaseModel):
    """Plain confirmation message."""

    message: str
