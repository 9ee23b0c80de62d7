"""API Dependencies - Authentication and service wiring"""
from typing import Dict, List, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError

from hotel_scheduler.api.schemas import TokenData
from hotel_scheduler.application.bootstrap import SchedulerContainer
from hotel_scheduler.application.services import ReservationService, RoomService
from hotel_scheduler.application.statistics import StatisticsReporter
from hotel_scheduler.domain.auth import User, UserInDB
from hotel_scheduler.infrastructure.security import hash_password, token_subject

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")

STAFF_ROLES = ("ADMIN", "EMPLOYEE")

# Mock identity provider
# In production, this would be a database call
_fake_users_db: Dict[str, dict] = {
    "admin": {
        "username": "admin",
        "full_name": "Admin User",
        "email": "admin@hotel.com",
        "plain_password": "admin123",  # Will be hashed on first access
        "disabled": False,
        "role": "ADMIN",
        "user_id": "123e4567-e89b-12d3-a456-426614174000"
    },
    "guest": {
        "username": "guest",
        "full_name": "Guest User",
        "email": "guest@example.com",
        "plain_password": "guest123",
        "disabled": False,
        "role": "CLIENT",
        "user_id": "123e4567-e89b-12d3-a456-426614174001"
    }
}

# Public alias for backwards compatibility
fake_users_db = _fake_users_db

# Cache for hashed passwords
_password_hash_cache: Dict[str, str] = {}


class AuthenticatedUser(UserInDB):
    role: str = "CLIENT"

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


def _get_hashed_password(username: str) -> str:
    """Lazily hash passwords on first access"""
    if username not in _password_hash_cache:
        user = _fake_users_db.get(username)
        if user and "plain_password" in user:
            _password_hash_cache[username] = hash_password(user["plain_password"])
    return _password_hash_cache.get(username, "")


def get_user(db, username: str) -> Optional[AuthenticatedUser]:
    if username in db:
        user_dict = db[username].copy()
        if "plain_password" in user_dict:
            user_dict["hashed_password"] = _get_hashed_password(username)
            del user_dict["plain_password"]
        return AuthenticatedUser(**user_dict)
    return None


def directory_users() -> List[User]:
    """Users the scheduler's user repository is seeded with"""
    return [
        User(
            user_id=entry["user_id"],
            username=entry["username"],
            email=entry["email"],
            full_name=entry["full_name"],
            disabled=entry["disabled"]
        )
        for entry in _fake_users_db.values()
    ]


async def get_current_user(token: str = Depends(oauth2_scheme)) -> AuthenticatedUser:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        username = token_subject(token)
        if username is None:
            raise credentials_exception
        token_data = TokenData(username=username)
    except JWTError:
        raise credentials_exception

    user = get_user(_fake_users_db, username=token_data.username)
    if user is None:
        raise credentials_exception
    return user


async def get_current_active_user(current_user: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
    if current_user.disabled:
        raise HTTPException(status_code=400, detail="Inactive user")
    return current_user


async def get_current_staff_user(current_user: AuthenticatedUser = Depends(get_current_active_user)) -> AuthenticatedUser:
    if not current_user.is_staff:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Staff role required")
    return current_user


# ==================== SERVICES ====================

def get_container(request: Request) -> SchedulerContainer:
    return request.app.state.container


def get_reservation_service(container: SchedulerContainer = Depends(get_container)) -> ReservationService:
    return container.reservation_service


def get_room_service(container: SchedulerContainer = Depends(get_container)) -> RoomService:
    return container.room_service


def get_statistics_reporter(container: SchedulerContainer = Depends(get_container)) -> StatisticsReporter:
    return container.statistics
