from fastapi import Depends
from sqlalchemy.orm import Session
from typing import Annotated
from backoffice.database.database import get_db
from backoffice.modules.auth.dependencies import AuthDependencies
from backoffice.modules.auth.schemas import AuthContext

db_dependency = Annotated[Session, Depends(get_db)]

# Any authenticated back-office user
auth_dependency = Annotated[AuthContext, Depends(AuthDependencies.require_any_role())]

# ADMIN / MANAGER / ACCOUNTANT only
finance_auth_dependency = Annotated[AuthContext, Depends(AuthDependencies.require_finance_role())]
