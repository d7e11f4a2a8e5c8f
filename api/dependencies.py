"""API Dependencies - Authentication and role checks"""
from typing import Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError

from domain.auth import User, UserInDB
from domain.enums import UserRole, STAFF_ROLES
from infrastructure.security import get_password_hash, decode_access_token
from api.schemas import TokenData

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")

# (username, full name, password, role, user id) of the mock identity provider
_ROSTER = (
    ("admin", "Admin User", "admin123", UserRole.ADMIN, "123e4567-e89b-12d3-a456-426614174000"),
    ("manager", "Front Desk Manager", "manager123", UserRole.MANAGER, "123e4567-e89b-12d3-a456-426614174001"),
    ("guest", "Walk-in Guest", "guest123", UserRole.GUEST, "123e4567-e89b-12d3-a456-426614174002"),
)

fake_users_db: Dict[str, dict] = {
    username: {
        "user_id": user_id,
        "username": username,
        "full_name": full_name,
        "email": f"{username}@example.com",
        "role": role,
        "disabled": False,
        "plain_password": password,
    }
    for username, full_name, password, role, user_id in _ROSTER
}

# bcrypt is slow; hash each mock password once, on first login
_hashed_passwords: Dict[str, str] = {}


def get_user(db: Dict[str, dict], username: str) -> Optional[UserInDB]:
    record = db.get(username)
    if record is None:
        return None

    fields = {k: v for k, v in record.items() if k != "plain_password"}
    if "hashed_password" not in fields:
        if username not in _hashed_passwords:
            _hashed_passwords[username] = get_password_hash(record["plain_password"])
        fields["hashed_password"] = _hashed_passwords[username]
    return UserInDB(**fields)


async def get_current_user(token: str = Depends(oauth2_scheme)) -> UserInDB:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        token_data = TokenData(username=decode_access_token(token).get("sub"))
    except JWTError:
        raise credentials_exception
    if token_data.username is None:
        raise credentials_exception

    user = get_user(fake_users_db, token_data.username)
    if user is None:
        raise credentials_exception
    return user


async def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    if current_user.disabled:
        raise HTTPException(status_code=400, detail="Inactive user")
    return current_user


def require_roles(*roles: UserRole):
    """Dependency factory rejecting users whose role is not listed"""
    allowed = frozenset(roles)

    async def dependency(current_user: User = Depends(get_current_active_user)) -> User:
        if current_user.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Staff role required")
        return current_user

    return dependency


get_current_staff_user = require_roles(*STAFF_ROLES)
