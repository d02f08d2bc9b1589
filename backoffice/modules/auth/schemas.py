from enum import Enum
from uuid import UUID

from pydantic import BaseModel


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    ACCOUNTANT = "ACCOUNTANT"
    EMPLOYEE = "EMPLOYEE"
    SALES_MANAGER = "SALES_MANAGER"
    SALES_EXECUTIVE = "SALES_EXECUTIVE"
    OPERATIONS = "OPERATIONS"


class AuthContext(BaseModel):
    """Who is calling. Issued by the session service, only decoded here."""
    user_id: UUID
    role: UserRole
