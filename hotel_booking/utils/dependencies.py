from dataclasses import dataclass
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from .security import verify_access_token
from .logging_config import user_id_var

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class SessionContext:
    """Who is calling. Passed explicitly to engine operations that need it."""
    user_id: str
    role: str = "customer"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


async def get_session_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> SessionContext:
    """Resolve the bearer token into a SessionContext"""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception

    payload = verify_access_token(credentials.credentials)
    if payload is None or not payload.get("sub"):
        raise credentials_exception

    ctx = SessionContext(user_id=payload["sub"], role=payload.get("role", "customer"))
    user_id_var.set(ctx.user_id)
    return ctx


async def require_admin(ctx: SessionContext = Depends(get_session_context)) -> SessionContext:
    if not ctx.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return ctx
