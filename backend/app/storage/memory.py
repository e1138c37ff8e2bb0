"""
In-memory storage used when MongoDB is unreachable (demo mode).

Documents live in dicts keyed by id; ids come from per-collection
counters and are rendered as strings. Reads return deep copies so
callers can't mutate stored state.
"""
import asyncio
import copy
import itertools
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.core.exceptions import DuplicateEmailError
from app.core.logging_config import logger
from app.models.analysis import Analysis, ChartConfig, OwnerInfo
from app.models.user import User, UserRole
from app.storage.base import AnalysisRepository, Storage, UserRepository

MODE = "memory"


class MemoryUserRepository(UserRepository):

    def __init__(self):
        self._docs: Dict[str, Dict[str, Any]] = {}
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()

    def _load(self, doc: Optional[Dict[str, Any]]) -> Optional[User]:
        if doc is None:
            return None
        return User.model_validate(copy.deepcopy(doc))

    async def create(self, name: str, email: str, hashed_password: str,
                     role: UserRole = UserRole.USER) -> User:
        async with self._lock:
            if self._find_by_email(email) is not None:
                raise DuplicateEmailError(email)

            now = datetime.utcnow()
            user_id = str(next(self._ids))
            self._docs[user_id] = {
                "id": user_id,
                "name": name,
                "email": email.lower(),
                "hashed_password": hashed_password,
                "role": role.value,
                "upload_history": [],
                "created_at": now,
                "updated_at": now,
            }

        logger.log_storage_event("insert", "users", MODE, doc_id=user_id)
        return self._load(self._docs[user_id])

    def _find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        email = email.lower()
        for doc in self._docs.values():
            if doc["email"].lower() == email:
                return doc
        return None

    async def get(self, user_id: str) -> Optional[User]:
        return self._load(self._docs.get(str(user_id)))

    async def get_by_email(self, email: str) -> Optional[User]:
        return self._load(self._find_by_email(email))

    async def list(self) -> List[User]:
        # dicts keep insertion order, newest is last
        return [self._load(doc) for doc in reversed(list(self._docs.values()))]

    async def update_role(self, user_id: str, role: UserRole) -> Optional[User]:
        async with self._lock:
            doc = self._docs.get(str(user_id))
            if doc is None:
                return None
            doc["role"] = role.value
            doc["updated_at"] = datetime.utcnow()

        logger.log_storage_event("update", "users", MODE, doc_id=user_id)
        return self._load(doc)

    async def delete(self, user_id: str) -> Optional[User]:
        async with self._lock:
            doc = self._docs.pop(str(user_id), None)

        if doc is not None:
            logger.log_storage_event("delete", "users", MODE, doc_id=user_id)
        return self._load(doc)

    async def count(self) -> int:
        return len(self._docs)

    async def count_by_role(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for doc in self._docs.values():
            counts[doc["role"]] = counts.get(doc["role"], 0) + 1
        return counts

    async def add_upload(self, user_id: str, analysis_id: str) -> None:
        async with self._lock:
            doc = self._docs.get(str(user_id))
            if doc is not None:
                doc["upload_history"].append(analysis_id)
                doc["updated_at"] = datetime.utcnow()

    async def remove_upload(self, user_id: str, analysis_id: str) -> None:
        async with self._lock:
            doc = self._docs.get(str(user_id))
            if doc is not None and analysis_id in doc["upload_history"]:
                doc["upload_history"].remove(analysis_id)
                doc["updated_at"] = datetime.utcnow()


class MemoryAnalysisRepository(AnalysisRepository):

    def __init__(self, users: MemoryUserRepository):
        self._users = users
        self._docs: Dict[str, Dict[str, Any]] = {}
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()

    def _load(self, doc: Optional[Dict[str, Any]], with_data: bool = True,
              with_owner: bool = False) -> Optional[Analysis]:
        if doc is None:
            return None
        doc = copy.deepcopy(doc)
        if not with_data:
            doc["data"] = []
        if with_owner:
            owner = self._users._docs.get(doc["user_id"])
            if owner is not None:
                doc["owner"] = OwnerInfo(id=owner["id"], name=owner["name"], email=owner["email"])
        return Analysis.model_validate(doc)

    def _newest_first(self) -> List[Dict[str, Any]]:
        return list(reversed(list(self._docs.values())))

    async def create(self, user_id: str, filename: str, original_name: str,
                     data: List[Dict[str, Any]], columns: List[str]) -> Analysis:
        async with self._lock:
            now = datetime.utcnow()
            analysis_id = str(next(self._ids))
            self._docs[analysis_id] = {
                "id": analysis_id,
                "user_id": str(user_id),
                "filename": filename,
                "original_name": original_name,
                "data": copy.deepcopy(data),
                "columns": list(columns),
                "row_count": len(data),
                "charts": [],
                "created_at": now,
                "updated_at": now,
            }

        logger.log_storage_event("insert", "analyses", MODE, doc_id=analysis_id, rows=len(data))
        return self._load(self._docs[analysis_id])

    async def get(self, analysis_id: str) -> Optional[Analysis]:
        return self._load(self._docs.get(str(analysis_id)))

    async def get_for_user(self, analysis_id: str, user_id: str) -> Optional[Analysis]:
        doc = self._docs.get(str(analysis_id))
        if doc is None or doc["user_id"] != str(user_id):
            return None
        return self._load(doc)

    async def list_for_user(self, user_id: str) -> List[Analysis]:
        return [
            self._load(doc, with_data=False)
            for doc in self._newest_first()
            if doc["user_id"] == str(user_id)
        ]

    async def list_all(self) -> List[Analysis]:
        return [self._load(doc, with_owner=True) for doc in self._newest_first()]

    async def recent(self, limit: int = 5) -> List[Analysis]:
        return [
            self._load(doc, with_data=False, with_owner=True)
            for doc in self._newest_first()[:limit]
        ]

    async def add_chart(self, analysis_id: str, chart: ChartConfig) -> Optional[Analysis]:
        async with self._lock:
            doc = self._docs.get(str(analysis_id))
            if doc is None:
                return None
            doc["charts"].append(chart.model_dump())
            doc["updated_at"] = datetime.utcnow()

        logger.log_storage_event("update", "analyses", MODE, doc_id=analysis_id, chart_type=chart.type.value)
        return self._load(doc)

    async def delete(self, analysis_id: str) -> bool:
        async with self._lock:
            removed = self._docs.pop(str(analysis_id), None)
        return removed is not None

    async def delete_for_user(self, user_id: str) -> int:
        async with self._lock:
            doomed = [key for key, doc in self._docs.items() if doc["user_id"] == str(user_id)]
            for key in doomed:
                del self._docs[key]

        logger.log_storage_event("delete_many", "analyses", MODE, user_id=user_id, deleted=len(doomed))
        return len(doomed)

    async def count(self) -> int:
        return len(self._docs)


class MemoryStorage(Storage):
    """Process-local storage, lost on restart"""

    mode = MODE

    def __init__(self):
        self.users = MemoryUserRepository()
        self.analyses = MemoryAnalysisRepository(self.users)

    async def close(self) -> None:
        logger.info("In-memory storage discarded")
