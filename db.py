# db.py

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

from fastapi.concurrency import run_in_threadpool
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import DuplicateKeyError

import config

logger = logging.getLogger(__name__)

COUNCILS = "municipalCouncils"
DISTRICTS = "Districts"
WARDS = "Wards"
SUPERVISORS = "supervisors"
TRUCKS = "trucks"
NATIONAL_ID_INDEX = "nationalIds"
PLATE_INDEX = "licensePlates"

# (path, data) pairs returned by queries
QueryResult = List[Tuple[str, Dict[str, Any]]]


class DocumentExists(Exception):
    """Raised by create() when a document already lives at the path."""

    def __init__(self, path: str):
        super().__init__(f"Document already exists: {path}")
        self.path = path


# ================= PATH HELPERS ====================

def join_path(*segments: str) -> str:
    return "/".join(segments)


def ward_path(council: str, district: str, ward: str) -> str:
    return join_path(COUNCILS, council, DISTRICTS, district, WARDS, ward)


def supervisor_path(council: str, district: str, ward: str, supervisor_id: str) -> str:
    return join_path(ward_path(council, district, ward), SUPERVISORS, supervisor_id)


def split_document_path(path: str) -> Tuple[str, str]:
    """
    Splits a document path into (collection path, collection id).

    "municipalCouncils/c/Districts/d" -> ("municipalCouncils/c/Districts", "Districts")
    """
    segments = path.split("/")
    if len(segments) < 2 or len(segments) % 2:
        raise ValueError(f"Not a document path: {path}")
    collection_path = "/".join(segments[:-1])
    return collection_path, segments[-2]


def location_of(path: str) -> Optional[str]:
    """Returns "council/district/ward" for any path filed under a ward, else None."""
    segments = path.split("/")
    if len(segments) >= 6 and segments[0] == COUNCILS and segments[2] == DISTRICTS and segments[4] == WARDS:
        return f"{segments[1]}/{segments[3]}/{segments[5]}"
    return None


# ================= DIRECTORY STORE ====================

class DirectoryStore:
    """
    Hierarchical document store keyed by slash-separated paths.

    Backends implement point reads/writes, create-if-absent, deletes and
    single-field equality queries scoped to one collection or to every
    collection sharing an id (a "group" query).
    """

    async def get(self, path: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    async def set(self, path: str, data: Dict[str, Any]) -> None:
        raise NotImplementedError

    async def create(self, path: str, data: Dict[str, Any]) -> None:
        raise NotImplementedError

    async def delete(self, path: str) -> None:
        raise NotImplementedError

    async def query(self, collection_path: str, field: str, value: Any) -> QueryResult:
        raise NotImplementedError

    async def query_group(self, collection_id: str, field: str, value: Any) -> QueryResult:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class MemoryDirectoryStore(DirectoryStore):
    """In-process store for local runs and tests. Counts every mutation in `writes`."""

    def __init__(self, documents: Optional[Dict[str, Dict[str, Any]]] = None):
        self.documents: Dict[str, Dict[str, Any]] = dict(documents or {})
        self.writes = 0

    async def get(self, path):
        await asyncio.sleep(0)
        doc = self.documents.get(path)
        return dict(doc) if doc is not None else None

    async def set(self, path, data):
        await asyncio.sleep(0)
        self.writes += 1
        self.documents[path] = dict(data)

    async def create(self, path, data):
        await asyncio.sleep(0)
        if path in self.documents:
            raise DocumentExists(path)
        self.writes += 1
        self.documents[path] = dict(data)

    async def delete(self, path):
        await asyncio.sleep(0)
        self.writes += 1
        self.documents.pop(path, None)

    async def query(self, collection_path, field, value):
        await asyncio.sleep(0)
        results = []
        for path, data in self.documents.items():
            parent, _ = split_document_path(path)
            if parent == collection_path and data.get(field) == value:
                results.append((path, dict(data)))
        return results

    async def query_group(self, collection_id, field, value):
        await asyncio.sleep(0)
        results = []
        for path, data in self.documents.items():
            _, cid = split_document_path(path)
            if cid == collection_id and data.get(field) == value:
                results.append((path, dict(data)))
        return results


class MongoDirectoryStore(DirectoryStore):
    """
    Maps the document tree onto one MongoDB collection.

    Each document is stored as {_id: path, parent: collection path,
    collection: collection id, data: {...}} so both scoped and group queries
    are plain equality filters.
    """

    def __init__(self, client: AsyncIOMotorClient, db_name: str, collection_name: str):
        self.client = client
        self.collection = client[db_name][collection_name]

    async def ensure_indexes(self):
        await self.collection.create_index([("parent", 1)])
        await self.collection.create_index([("collection", 1)])

    @staticmethod
    def _wrap(path: str, data: Dict[str, Any]) -> Dict[str, Any]:
        parent, cid = split_document_path(path)
        return {"_id": path, "parent": parent, "collection": cid, "data": data}

    async def get(self, path):
        doc = await self.collection.find_one({"_id": path})
        return doc["data"] if doc else None

    async def set(self, path, data):
        await self.collection.replace_one({"_id": path}, self._wrap(path, data), upsert=True)

    async def create(self, path, data):
        try:
            await self.collection.insert_one(self._wrap(path, data))
        except DuplicateKeyError:
            raise DocumentExists(path)

    async def delete(self, path):
        await self.collection.delete_one({"_id": path})

    async def query(self, collection_path, field, value):
        cursor = self.collection.find({"parent": collection_path, f"data.{field}": value})
        return [(doc["_id"], doc["data"]) async for doc in cursor]

    async def query_group(self, collection_id, field, value):
        cursor = self.collection.find({"collection": collection_id, f"data.{field}": value})
        return [(doc["_id"], doc["data"]) async for doc in cursor]

    async def close(self):
        self.client.close()


class FirestoreDirectoryStore(DirectoryStore):
    """Firestore backend. The SDK is synchronous, so calls run in the threadpool."""

    def __init__(self, client):
        self.client = client

    async def get(self, path):
        snap = await run_in_threadpool(self.client.document(path).get)
        return snap.to_dict() if snap.exists else None

    async def set(self, path, data):
        await run_in_threadpool(self.client.document(path).set, data)

    async def create(self, path, data):
        from google.api_core.exceptions import AlreadyExists

        try:
            await run_in_threadpool(self.client.document(path).create, data)
        except AlreadyExists:
            raise DocumentExists(path)

    async def delete(self, path):
        await run_in_threadpool(self.client.document(path).delete)

    @staticmethod
    def _collect(query) -> QueryResult:
        return [(snap.reference.path, snap.to_dict()) for snap in query.stream()]

    async def query(self, collection_path, field, value):
        from google.cloud.firestore_v1.base_query import FieldFilter

        q = self.client.collection(collection_path).where(filter=FieldFilter(field, "==", value))
        return await run_in_threadpool(self._collect, q)

    async def query_group(self, collection_id, field, value):
        from google.cloud.firestore_v1.base_query import FieldFilter

        q = self.client.collection_group(collection_id).where(filter=FieldFilter(field, "==", value))
        return await run_in_threadpool(self._collect, q)


# ================= DATABASE CLIENT ====================

async def get_directory_store(backend: Optional[str] = None) -> DirectoryStore:
    """
    Builds the configured Directory Store backend.
    """
    backend = (backend or config.DIRECTORY_BACKEND).lower()

    if backend == "mongo":
        client = AsyncIOMotorClient(config.MONGODB_URI)
        store = MongoDirectoryStore(client, config.MONGODB_DB, config.MONGODB_COLLECTION)
        await store.ensure_indexes()
        logger.info("Directory store: mongo (%s/%s)", config.MONGODB_DB, config.MONGODB_COLLECTION)
        return store

    if backend == "firestore":
        from firebase_admin import firestore

        from firebase_client import init_firebase_admin

        init_firebase_admin()
        logger.info("Directory store: firestore")
        return FirestoreDirectoryStore(firestore.client())

    if backend == "memory":
        logger.warning("Directory store: in-memory (data is lost on restart)")
        return MemoryDirectoryStore()

    raise ValueError(f"Unknown directory backend: {backend}")
