from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

import jwt

from backoffice.core.config import settings
from backoffice.modules.auth.schemas import UserRole


def create_access_token(user_id: UUID, role: UserRole, expires_delta: Optional[timedelta] = None) -> str:
    """Sign an access token carrying the user id (sub) and role."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    role_value = role.value if isinstance(role, UserRole) else str(role)
    payload = {"sub": str(user_id), "role": role_value, "type": "access", "exp": expire}
    return jwt.encode(payload, settings.APP_SECRET_STRING, algorithm=settings.ALGORITHM)
