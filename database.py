"""
MongoDB connection and index setup.

The handle is built once at startup and passed to the Store; nothing here is a
module-level connection.
"""
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

from settings import Settings


def connect(settings: Settings) -> Database:
    client = MongoClient(settings.database_url)
    return client[settings.database_name]


def ensure_indexes(db: Database) -> None:
    """Declare the uniqueness constraints and lookup indexes. Idempotent."""
    db.user.create_index("email", unique=True)
    db.user.create_index("domain")

    db.mentor.create_index("user_id", unique=True)
    db.buddy.create_index("user_id", unique=True)
    db.buddy.create_index("assigned_mentor_id")
    db.buddy.create_index("status")

    db.topic.create_index("domain")
    db.topicprogress.create_index(
        [("buddy_id", ASCENDING), ("topic_id", ASCENDING)], unique=True
    )

    db.curriculum.create_index("domain")

    db.task.create_index("buddy_id")
    db.task.create_index("mentor_id")
    db.task.create_index([("created_at", DESCENDING)])
    db.submission.create_index([("task_id", ASCENDING), ("created_at", ASCENDING)])
    db.submission.create_index("buddy_id")
