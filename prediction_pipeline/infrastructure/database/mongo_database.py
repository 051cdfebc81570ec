"""
MongoDB Database - Infrastructure Layer

This module provides a MongoDB database client for the prediction pipeline.
It owns the connection, exposes collections and creates the indexes the
repositories rely on.
"""

import pymongo.errors
import structlog
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

logger = structlog.get_logger(__name__)

SESSIONS_COLLECTION = "prediction_sessions"
RESULTS_COLLECTION = "prediction_results"


class MongoDatabase:
    """MongoDB database client."""

    def __init__(self, mongo_uri: str, db_name: str):
        """
        Initialize the MongoDB database client.

        Args:
            mongo_uri: MongoDB connection URI
            db_name: Name of the database to use
        """
        # tz_aware so lease and staleness comparisons stay in UTC
        self.client: MongoClient = MongoClient(mongo_uri, tz_aware=True)
        self.db: Database = self.client[db_name]

    def get_collection(self, collection_name: str) -> Collection:
        """
        Get a collection from the database.

        Args:
            collection_name: Name of the collection

        Returns:
            MongoDB collection
        """
        return self.db[collection_name]

    def ping(self) -> None:
        """Round-trip to the server; raises PyMongoError when unreachable."""
        self.client.admin.command("ping")

    def close(self) -> None:
        """Close the database connection."""
        self.client.close()

    async def create_indexes(self) -> None:
        """
        Create all necessary indexes for the application.
        This is an async method to be called during application startup.
        """
        sessions = self.db[SESSIONS_COLLECTION]
        results = self.db[RESULTS_COLLECTION]

        try:
            sessions.create_index("id", name="session_id_idx", unique=True)
            # recovery scans and cleanup both filter on status + updated_at
            sessions.create_index(
                [("status", ASCENDING), ("updated_at", ASCENDING)],
                name="status_updated_at_idx",
                background=True,
            )
            sessions.create_index(
                [("owner_id", ASCENDING), ("created_at", DESCENDING)],
                name="owner_created_at_idx",
                background=True,
            )

            results.create_index(
                [("session_id", ASCENDING), ("market_id", ASCENDING)],
                name="session_market_idx",
                unique=True,
            )
            results.create_index("created_at", name="created_at_idx", background=True)
        except pymongo.errors.OperationFailure as e:
            logger.warning("mongo.indexes.failed", error=str(e))
