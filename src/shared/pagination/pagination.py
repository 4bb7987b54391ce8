"""Pagination parameters for list endpoints."""

from pydantic import BaseModel, Field


class PaginationParams(BaseModel):
    """Query parameters for pagination.

    Can be used as dependency in FastAPI routes:
    ```python
    @router.get("/admin/users")
    async def list_users(pagination: PaginationParams = Depends()):
        ...
    ```
    """

    page: int | None = Field(default=1, ge=1, description="Page number (1-indexed)")

    page_size: int | None = Field(default=50, ge=1, le=1000, description="Items per page")

    @property
    def skip(self) -> int:
        """Calculate skip/offset for database query."""
        if self.page is None or self.page_size is None:
            return 0
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int | None:
        """Calculate limit for database query (None = no limit)."""
        return self.page_size

    @property
    def is_paginated(self) -> bool:
        """Check if pagination is enabled."""
        return self.page is not None and self.page_size is not None


__all__ = ["PaginationParams"]
