"""
MongoDB storage on motor.

Documents keep their ObjectId in `_id`; everything leaving this module
carries it as a string `id`. Ids that aren't valid ObjectIds are treated
as not found rather than raising.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from app.core.exceptions import DuplicateEmailError, StorageError
from app.core.logging_config import logger
from app.models.analysis import Analysis, ChartConfig, OwnerInfo
from app.models.user import User, UserRole
from app.storage.base import AnalysisRepository, Storage, UserRepository

MODE = "mongo"

NEWEST_FIRST = [("created_at", DESCENDING), ("_id", DESCENDING)]


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Parse an id, returning None when it isn't a valid ObjectId"""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def _user_from_doc(doc: Optional[Dict[str, Any]]) -> Optional[User]:
    if doc is None:
        return None
    doc = dict(doc)
    doc["id"] = str(doc.pop("_id"))
    doc["upload_history"] = [str(item) for item in doc.get("upload_history", [])]
    return User.model_validate(doc)


def _analysis_from_doc(doc: Optional[Dict[str, Any]],
                       owner: Optional[OwnerInfo] = None) -> Optional[Analysis]:
    if doc is None:
        return None
    doc = dict(doc)
    doc["id"] = str(doc.pop("_id"))
    doc["user_id"] = str(doc["user_id"])
    if owner is not None:
        doc["owner"] = owner
    return Analysis.model_validate(doc)


class MongoUserRepository(UserRepository):

    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db["users"]

    async def create(self, name: str, email: str, hashed_password: str,
                     role: UserRole = UserRole.USER) -> User:
        now = datetime.utcnow()
        doc = {
            "name": name,
            "email": email.lower(),
            "hashed_password": hashed_password,
            "role": role.value,
            "upload_history": [],
            "created_at": now,
            "updated_at": now,
        }
        try:
            result = await self.collection.insert_one(doc)
        except DuplicateKeyError:
            raise DuplicateEmailError(email)

        doc["_id"] = result.inserted_id
        logger.log_storage_event("insert", "users", MODE, doc_id=str(result.inserted_id))
        return _user_from_doc(doc)

    async def get(self, user_id: str) -> Optional[User]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        return _user_from_doc(await self.collection.find_one({"_id": oid}))

    async def get_by_email(self, email: str) -> Optional[User]:
        return _user_from_doc(await self.collection.find_one({"email": email.lower()}))

    async def list(self) -> List[User]:
        cursor = self.collection.find().sort(NEWEST_FIRST)
        return [_user_from_doc(doc) async for doc in cursor]

    async def update_role(self, user_id: str, role: UserRole) -> Optional[User]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        doc = await self.collection.find_one_and_update(
            {"_id": oid},
            {"$set": {"role": role.value, "updated_at": datetime.utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if doc is not None:
            logger.log_storage_event("update", "users", MODE, doc_id=user_id)
        return _user_from_doc(doc)

    async def delete(self, user_id: str) -> Optional[User]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        doc = await self.collection.find_one_and_delete({"_id": oid})
        if doc is not None:
            logger.log_storage_event("delete", "users", MODE, doc_id=user_id)
        return _user_from_doc(doc)

    async def count(self) -> int:
        return await self.collection.count_documents({})

    async def count_by_role(self) -> Dict[str, int]:
        pipeline = [{"$group": {"_id": "$role", "count": {"$sum": 1}}}]
        return {row["_id"]: row["count"] async for row in self.collection.aggregate(pipeline)}

    async def add_upload(self, user_id: str, analysis_id: str) -> None:
        oid = to_object_id(user_id)
        if oid is None:
            return
        await self.collection.update_one(
            {"_id": oid},
            {"$push": {"upload_history": analysis_id}, "$set": {"updated_at": datetime.utcnow()}},
        )

    async def remove_upload(self, user_id: str, analysis_id: str) -> None:
        oid = to_object_id(user_id)
        if oid is None:
            return
        await self.collection.update_one(
            {"_id": oid},
            {"$pull": {"upload_history": analysis_id}, "$set": {"updated_at": datetime.utcnow()}},
        )


class MongoAnalysisRepository(AnalysisRepository):

    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db["analyses"]
        self.users = db["users"]

    async def _owners(self, docs: List[Dict[str, Any]]) -> Dict[str, OwnerInfo]:
        ids = list({doc["user_id"] for doc in docs})
        if not ids:
            return {}
        cursor = self.users.find({"_id": {"$in": ids}}, {"name": 1, "email": 1})
        return {
            str(user["_id"]): OwnerInfo(id=str(user["_id"]), name=user["name"], email=user["email"])
            async for user in cursor
        }

    async def _with_owners(self, docs: List[Dict[str, Any]]) -> List[Analysis]:
        owners = await self._owners(docs)
        return [_analysis_from_doc(doc, owners.get(str(doc["user_id"]))) for doc in docs]

    async def create(self, user_id: str, filename: str, original_name: str,
                     data: List[Dict[str, Any]], columns: List[str]) -> Analysis:
        now = datetime.utcnow()
        doc = {
            "user_id": to_object_id(user_id),
            "filename": filename,
            "original_name": original_name,
            "data": data,
            "columns": columns,
            "row_count": len(data),
            "charts": [],
            "created_at": now,
            "updated_at": now,
        }
        try:
            result = await self.collection.insert_one(doc)
        except PyMongoError as e:
            logger.log_error_with_context(e, "analysis insert")
            raise StorageError("Error saving analysis")

        doc["_id"] = result.inserted_id
        logger.log_storage_event("insert", "analyses", MODE, doc_id=str(result.inserted_id), rows=len(data))
        return _analysis_from_doc(doc)

    async def get(self, analysis_id: str) -> Optional[Analysis]:
        oid = to_object_id(analysis_id)
        if oid is None:
            return None
        return _analysis_from_doc(await self.collection.find_one({"_id": oid}))

    async def get_for_user(self, analysis_id: str, user_id: str) -> Optional[Analysis]:
        oid = to_object_id(analysis_id)
        owner = to_object_id(user_id)
        if oid is None or owner is None:
            return None
        return _analysis_from_doc(await self.collection.find_one({"_id": oid, "user_id": owner}))

    async def list_for_user(self, user_id: str) -> List[Analysis]:
        owner = to_object_id(user_id)
        if owner is None:
            return []
        cursor = self.collection.find({"user_id": owner}, {"data": 0}).sort(NEWEST_FIRST)
        return [_analysis_from_doc(doc) async for doc in cursor]

    async def list_all(self) -> List[Analysis]:
        docs = await self.collection.find().sort(NEWEST_FIRST).to_list(length=None)
        return await self._with_owners(docs)

    async def recent(self, limit: int = 5) -> List[Analysis]:
        cursor = self.collection.find({}, {"data": 0}).sort(NEWEST_FIRST).limit(limit)
        docs = await cursor.to_list(length=limit)
        return await self._with_owners(docs)

    async def add_chart(self, analysis_id: str, chart: ChartConfig) -> Optional[Analysis]:
        oid = to_object_id(analysis_id)
        if oid is None:
            return None
        doc = await self.collection.find_one_and_update(
            {"_id": oid},
            {"$push": {"charts": {**chart.model_dump(), "type": chart.type.value}},
             "$set": {"updated_at": datetime.utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if doc is not None:
            logger.log_storage_event("update", "analyses", MODE, doc_id=analysis_id, chart_type=chart.type.value)
        return _analysis_from_doc(doc)

    async def delete(self, analysis_id: str) -> bool:
        oid = to_object_id(analysis_id)
        if oid is None:
            return False
        result = await self.collection.delete_one({"_id": oid})
        return result.deleted_count > 0

    async def delete_for_user(self, user_id: str) -> int:
        owner = to_object_id(user_id)
        if owner is None:
            return 0
        result = await self.collection.delete_many({"user_id": owner})
        logger.log_storage_event("delete_many", "analyses", MODE, user_id=user_id, deleted=result.deleted_count)
        return result.deleted_count

    async def count(self) -> int:
        return await self.collection.count_documents({})


class MongoStorage(Storage):

    mode = MODE

    def __init__(self, client: AsyncIOMotorClient, db_name: str):
        self.client = client
        self.db = client[db_name]
        self.users = MongoUserRepository(self.db)
        self.analyses = MongoAnalysisRepository(self.db)

    async def ensure_indexes(self) -> None:
        await self.db["users"].create_index([("email", ASCENDING)], unique=True)
        await self.db["analyses"].create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])

    async def ping(self) -> bool:
        try:
            await self.client.admin.command("ping")
        except PyMongoError:
            return False
        return True

    async def close(self) -> None:
        self.client.close()
        logger.info("MongoDB connection closed")
