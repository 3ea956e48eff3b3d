"""
Document store for crawl artifacts (MongoDB via pymongo).

One insert per successful crawl; artifacts are never updated in place, so a
re-crawl of the same URL adds a new document.
"""

import logging
from typing import Any, Dict, List, Optional, Protocol

from pymongo import DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from .config import Settings
from .errors import PersistenceError
from .models import CrawlArtifact

logger = logging.getLogger(__name__)


class ArtifactStore(Protocol):
    def save(self, artifact: CrawlArtifact) -> None:
        ...

    def find_all(self) -> List[Dict[str, Any]]:
        ...


class MongoArtifactStore:
    """ArtifactStore backed by one MongoDB collection."""

    def __init__(
        self,
        uri: str = "mongodb://localhost:27017",
        database: str = "siteintel",
        collection: str = "website_data",
        client: Optional[MongoClient] = None
    ):
        self.uri = uri
        self.database_name = database
        self.collection_name = collection
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "MongoArtifactStore":
        return cls(
            uri=settings.mongodb_uri,
            database=settings.mongodb_database,
            collection=settings.mongodb_collection
        )

    @property
    def collection(self) -> Collection:
        if self._client is None:
            # tz_aware so timestamps come back as UTC datetimes
            self._client = MongoClient(self.uri, tz_aware=True, serverSelectionTimeoutMS=5000)
            logger.info(f"✅ MongoDB client initialized for database '{self.database_name}'")
        return self._client[self.database_name][self.collection_name]

    def save(self, artifact: CrawlArtifact) -> None:
        """
        Insert one artifact document.

        Raises:
            PersistenceError: the insert failed
        """
        try:
            result = self.collection.insert_one(artifact.to_document())
        except PyMongoError as e:
            raise PersistenceError(f"Failed to save artifact: {e}", url=artifact.url) from e
        logger.info(f"💾 Saved artifact {result.inserted_id} for {artifact.url}")

    def find_all(self) -> List[Dict[str, Any]]:
        """All artifact documents, newest first."""
        try:
            cursor = self.collection.find({}, {"_id": 0}).sort("timestamp", DESCENDING)
            return list(cursor)
        except PyMongoError as e:
            raise PersistenceError(f"Failed to load artifacts: {e}") from e

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
