from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from academy.api.dependencies import get_db, get_settings
from academy.core import security
from academy.core.config import Settings
from academy.models import profile as profile_model

# Tokens are issued by the external identity provider; we only verify them
bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> profile_model.Profile:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception

    token_data = security.verify_token(
        credentials.credentials, settings.SECRET_KEY, settings.ALGORITHM, credentials_exception
    )
    user = db.query(profile_model.Profile).filter(profile_model.Profile.id == token_data.profile_id).first()
    if user is None:
        raise credentials_exception
    return user


def require_roles(*roles: str):
    """Dependency factory: the current user must hold one of `roles`."""

    def role_checker(current_user: profile_model.Profile = Depends(get_current_user)) -> profile_model.Profile:
        if current_user.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return current_user

    return role_checker


require_staff = require_roles(*profile_model.STAFF_ROLES)
require_match_editor = require_roles(*profile_model.MATCH_EDITOR_ROLES)
