"""Domain Entities - Auth"""
from pydantic import BaseModel, ConfigDict, Field
from uuid import UUID, uuid4
from typing import Optional


class User(BaseModel):
    """User Entity

    Guests, staff and the system actor are all users; the scheduler only
    needs their id and a display name.
    """
    model_config = ConfigDict(from_attributes=True)

    user_id: UUID = Field(default_factory=uuid4)
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    disabled: bool = False
    is_system: bool = False

    @property
    def display_name(self) -> str:
        return self.full_name or self.username


class UserInDB(User):
    """User with hashed password for DB storage"""
    hashed_password: str
