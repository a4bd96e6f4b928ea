from datetime import datetime, timedelta
from typing import Optional

from jose import JWTError, jwt

from academy.schemas import auth_schemas

DEFAULT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 30


def create_access_token(
    data: dict,
    secret_key: str,
    algorithm: str = DEFAULT_ALGORITHM,
    expires_delta: Optional[timedelta] = None,
) -> str:
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, secret_key, algorithm=algorithm)


def verify_token(token: str, secret_key: str, algorithm: str, credentials_exception) -> auth_schemas.TokenData:
    # 'sub' carries the profile id issued by the identity provider
    try:
        payload = jwt.decode(token, secret_key, algorithms=[algorithm])
    except JWTError:
        raise credentials_exception
    profile_id = payload.get("sub")
    if profile_id is None:
        raise credentials_exception
    return auth_schemas.TokenData(profile_id=str(profile_id))
