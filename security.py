from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

import config
from database import get_db, sanitize, to_obj_id
from errors import AuthenticationError, AuthorizationError, ValidationError
from logger import setup_logger

logger = setup_logger("security")

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(password, hashed)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)


def token_for(user: Dict[str, Any]) -> str:
    user_id = str(user.get("_id") or user.get("id"))
    return create_access_token({"sub": user_id, "role": user.get("role")})


def get_current_user(token: Optional[str] = Depends(oauth2_scheme), db=Depends(get_db)) -> Dict[str, Any]:
    """Resolve the caller from the bearer token.

    Returns the sanitized user (``id``, ``role``, ...). Missing, malformed or
    expired tokens, and tokens for users that no longer exist or were
    deactivated, are all rejected with 401.
    """
    if not token:
        raise AuthenticationError("No token, authorization denied")
    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except JWTError as e:
        logger.warning(f"Rejected token: {e}")
        raise AuthenticationError("Token is not valid")
    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Token is not valid")
    try:
        key = to_obj_id(user_id)
    except ValidationError:
        raise AuthenticationError("Token is not valid")
    user = db["user"].find_one({"_id": key})
    if not user:
        raise AuthenticationError("Token is not valid")
    if not user.get("is_active", True):
        raise AuthenticationError("Account is deactivated")
    return sanitize(user)


def require_role(*roles: str):
    def role_dep(current_user=Depends(get_current_user)):
        if current_user.get("role") not in roles:
            logger.warning(f"User {current_user['id']} with role {current_user.get('role')} denied; needs {roles}")
            raise AuthorizationError(f"User role {current_user.get('role')} is not authorized to access this route")
        return current_user
    return role_dep
