from pydantic import BaseModel, Field
from typing import List
from datetime import datetime
import enum


class UserRole(str, enum.Enum):
    """User roles"""
    USER = "user"
    ADMIN = "admin"


class User(BaseModel):
    """User document, shared by the MongoDB and in-memory stores"""

    id: str
    name: str
    email: str
    hashed_password: str
    role: UserRole = UserRole.USER
    upload_history: List[str] = Field(default_factory=list)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def public_dict(self) -> dict:
        """User fields safe to return over the API"""
        return self.model_dump(exclude={"hashed_password"}, mode="json")

    def __repr__(self):
        return f"<User {self.email}>"
