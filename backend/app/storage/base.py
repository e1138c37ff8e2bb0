"""
Repository interfaces shared by the MongoDB and in-memory stores.

Routes depend only on these interfaces, so both storage modes return
identical API responses. Ids are always strings.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from app.models.analysis import Analysis, ChartConfig
from app.models.user import User, UserRole


class UserRepository(ABC):

    @abstractmethod
    async def create(self, name: str, email: str, hashed_password: str,
                     role: UserRole = UserRole.USER) -> User:
        """Insert a user. Raises DuplicateEmailError if the e-mail is taken."""

    @abstractmethod
    async def get(self, user_id: str) -> Optional[User]:
        ...

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[User]:
        ...

    @abstractmethod
    async def list(self) -> List[User]:
        """All users, newest first"""

    @abstractmethod
    async def update_role(self, user_id: str, role: UserRole) -> Optional[User]:
        ...

    @abstractmethod
    async def delete(self, user_id: str) -> Optional[User]:
        """Remove a user and return it, None if it didn't exist"""

    @abstractmethod
    async def count(self) -> int:
        ...

    @abstractmethod
    async def count_by_role(self) -> Dict[str, int]:
        """Role value -> number of users with that role"""

    @abstractmethod
    async def add_upload(self, user_id: str, analysis_id: str) -> None:
        ...

    @abstractmethod
    async def remove_upload(self, user_id: str, analysis_id: str) -> None:
        ...


class AnalysisRepository(ABC):

    @abstractmethod
    async def create(self, user_id: str, filename: str, original_name: str,
                     data: List[Dict[str, Any]], columns: List[str]) -> Analysis:
        ...

    @abstractmethod
    async def get(self, analysis_id: str) -> Optional[Analysis]:
        ...

    @abstractmethod
    async def get_for_user(self, analysis_id: str, user_id: str) -> Optional[Analysis]:
        """Analysis only if owned by user_id"""

    @abstractmethod
    async def list_for_user(self, user_id: str) -> List[Analysis]:
        """User's analyses newest first, row data left out"""

    @abstractmethod
    async def list_all(self) -> List[Analysis]:
        """All analyses newest first, with owner populated"""

    @abstractmethod
    async def recent(self, limit: int = 5) -> List[Analysis]:
        """Most recent analyses with owner populated"""

    @abstractmethod
    async def add_chart(self, analysis_id: str, chart: ChartConfig) -> Optional[Analysis]:
        ...

    @abstractmethod
    async def delete(self, analysis_id: str) -> bool:
        ...

    @abstractmethod
    async def delete_for_user(self, user_id: str) -> int:
        """Delete every analysis owned by user_id, return how many"""

    @abstractmethod
    async def count(self) -> int:
        ...


class Storage(ABC):
    """Bundle of repositories for one storage backend"""

    mode: str
    users: UserRepository
    analyses: AnalysisRepository

    @property
    def is_mongo(self) -> bool:
        return self.mode == "mongo"

    async def ping(self) -> bool:
        """True when the backing database answers"""
        return False

    async def close(self) -> None:
        """Release backend resources"""
