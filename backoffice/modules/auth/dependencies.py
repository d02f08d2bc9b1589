"""
Authentication dependencies for FastAPI.

Sessions and users live in the external auth service; here we only decode
the bearer token it issues and enforce roles.
"""
from uuid import UUID
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import jwt

from backoffice.modules.auth.schemas import AuthContext, UserRole
from backoffice.core.config import settings

# Security scheme
security = HTTPBearer()

ALL_ROLES = [role.value for role in UserRole]
FINANCE_ROLES = ["ADMIN", "MANAGER", "ACCOUNTANT"]


class AuthDependencies:
    """Reusable authentication dependencies."""

    @staticmethod
    def get_auth_context(
        credentials: HTTPAuthorizationCredentials = Depends(security),
    ) -> AuthContext:
        credentials_exception = HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

        try:
            payload = jwt.decode(
                credentials.credentials,
                settings.APP_SECRET_STRING,
                algorithms=[settings.ALGORITHM]
            )
            user_id = payload.get("sub")
            role = payload.get("role")
            if user_id is None or role is None:
                raise credentials_exception
            return AuthContext(user_id=UUID(user_id), role=UserRole(role))
        except (jwt.PyJWTError, ValueError):
            raise credentials_exception

    @staticmethod
    def require_role(allowed_roles: list[str]):
        """
        Dependency factory that only lets the given roles through.
        """
        def role_checker(auth_context: AuthContext = Depends(AuthDependencies.get_auth_context)):
            if auth_context.role.value not in allowed_roles:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"One of these roles is required: {', '.join(allowed_roles)}"
                )
            return auth_context
        return role_checker

    @staticmethod
    def require_any_role():
        return AuthDependencies.require_role(ALL_ROLES)

    @staticmethod
    def require_finance_role():
        """Administrative escape hatches (manual status overrides)."""
        return AuthDependencies.require_role(FINANCE_ROLES)


get_auth_context = AuthDependencies.get_auth_context
require_any_role = AuthDependencies.require_any_role
require_finance_role = AuthDependencies.require_finance_role
