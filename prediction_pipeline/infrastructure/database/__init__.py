"""
Database package - Infrastructure Layer

This package contains the MongoDB connection used by the repositories.
"""

from prediction_pipeline.infrastructure.database.mongo_database import (
    RESULTS_COLLECTION,
    SESSIONS_COLLECTION,
    MongoDatabase,
)

__all__ = ["MongoDatabase", "RESULTS_COLLECTION", "SESSIONS_COLLECTION"]
