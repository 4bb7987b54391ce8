"""Middleware for protecting API documentation routes to admin users only."""

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.security import HTTPBearer

from src.config.settings import settings
from src.features.auth.jwt_utils import TokenIssuer

PROTECTED_DOC_PATHS = {"/docs", "/redoc", "/openapi.json"}


async def admin_docs_middleware(request: Request, call_next):
    """Middleware to protect API documentation routes to admin users only.

    Protects:
    - /docs (Swagger UI)
    - /redoc (ReDoc)
    - /openapi.json (OpenAPI schema)

    Non-authenticated or non-admin users receive a 403 Forbidden response.
    Only the token is checked; no database session is opened.
    """
    if request.url.path in PROTECTED_DOC_PATHS:
        security = HTTPBearer(auto_error=False)
        credentials = await security(request)

        if credentials is None:
            return JSONResponse(status_code=403, content={"detail": "Not authenticated."})

        try:
            identity = TokenIssuer.from_settings(settings).verify(credentials.credentials)
        except HTTPException:
            return JSONResponse(status_code=403, content={"detail": "Not authenticated."})

        if not identity.is_admin:
            return JSONResponse(status_code=403, content={"detail": "Insufficient permissions."})

    return await call_next(request)
