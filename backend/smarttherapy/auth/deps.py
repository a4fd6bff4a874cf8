"""FastAPI dependencies for authentication and authorization.

Dependencies:
  get_current_user    → decode JWT, load user from DB, return User
  require_role(...)   → restrict to specific roles
  require_clinic      → user must belong to a clinic (clinic step done)

The clinic is read from the database, not from the token: a token issued
before the onboarding clinic step has no `clinic_id` claim.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from smarttherapy.auth.jwt import decode_token
from smarttherapy.database import get_db
from smarttherapy.models.user import User, UserRole

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


# ── Core user dependency ────────────────────────────────────

async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Decode the JWT, load the user, and return it.

    Also stashes the decoded payload on the user object as `_token_payload`
    so downstream deps can read claims without re-decoding.
    """
    payload = decode_token(token)
    user_id: str | None = payload.get("sub")
    if not user_id or payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )

    user._token_payload = payload  # type: ignore[attr-defined]
    return user


# ── Role-based access control ───────────────────────────────

def require_role(*roles: UserRole):
    """Dependency factory — restrict to one or more roles.

    Usage:
        @router.post("/clinic")
        async def submit(user: User = Depends(require_role(UserRole.CLINIC_ADMIN))):
            ...
    """
    async def _check(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role: {', '.join(r.value for r in roles)}",
            )
        return user

    return _check


# ── Clinic context ──────────────────────────────────────────

async def require_clinic(
    user: User = Depends(get_current_user),
) -> User:
    """Ensure the user belongs to a clinic.

    Raises HTTP 403 until the onboarding clinic step has been submitted.
    """
    if not user.clinic_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No clinic context — complete clinic onboarding first",
        )
    return user
