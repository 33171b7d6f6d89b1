"""
Progress tracking and dashboard aggregates.

Nothing here is persisted: percentages and counts are recomputed from the
store on every call.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import structlog

from errors import NotFound, ValidationError
from schemas import BUDDY_STATUSES, TASK_STATUSES
from storage import Store, task_status_filter, utcnow

logger = structlog.get_logger(__name__)

WEEK = timedelta(days=7)


def percentage(done: int, total: int) -> int:
    """Whole-number percentage, halves rounded up; 0 when there is nothing to count."""
    if total <= 0:
        return 0
    return (200 * done + total) // (2 * total)


def empty_progress() -> Dict[str, Any]:
    return {"topics": [], "percentage": 0}


class ProgressTracker:
    def __init__(self, store: Store):
        self.store = store

    def get_buddy_progress(self, buddy_id: str) -> Dict[str, Any]:
        buddy = self.store.get_buddy_record(buddy_id)
        if buddy is None:
            return empty_progress()
        user = self.store.get_user(buddy["user_id"])
        if not user or not user.get("domain"):
            return empty_progress()

        checked_by_topic = {
            topic_id: record.get("checked", False)
            for topic_id, record in self.store.get_topic_progress(buddy["id"]).items()
        }
        topics = [
            {
                "topic_id": topic["id"],
                "name": topic["name"],
                "category": topic.get("category", ""),
                "checked": bool(checked_by_topic.get(topic["id"], False)),
            }
            for topic in self.store.list_topics(domain=user["domain"])
        ]
        done = sum(1 for t in topics if t["checked"])
        return {"topics": topics, "percentage": percentage(done, len(topics))}

    def update_topic_progress(self, buddy_id: str, topic_id: str, checked: bool) -> Dict[str, Any]:
        buddy = self.store.get_buddy_record(buddy_id)
        if buddy is None:
            raise NotFound("buddy", buddy_id)
        topic = self.store.get_topic(topic_id)
        if topic is None:
            raise NotFound("topic", topic_id)
        user = self.store.get_user(buddy["user_id"])
        domain = user.get("domain") if user else None
        if topic.get("domain") != domain:
            raise ValidationError(
                "Topic is not part of the buddy's domain",
                errors=[{"field": "topic_id", "message": f"Topic belongs to '{topic.get('domain')}'"}],
            )

        record = self.store.upsert_topic_progress(buddy["id"], topic["id"], bool(checked))
        logger.info("topic_progress_updated", buddy_id=buddy["id"], topic_id=topic["id"], checked=record["checked"])
        return record

    def get_dashboard_stats(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utcnow()
        count = self.store.count

        total_mentors = count("mentor")
        buddies = {status: count("buddy", {"status": status}) for status in BUDDY_STATUSES}
        tasks = {status: count("task", task_status_filter(status, now)) for status in TASK_STATUSES}
        total_tasks = count("task")

        return {
            "total_mentors": total_mentors,
            "active_buddies": buddies["active"],
            "weekly_tasks": count("task", {"created_at": {"$gt": now - WEEK}}),
            "completion_rate": percentage(tasks["completed"], total_tasks),
            "mentors": {
                "total": total_mentors,
                "active": count("mentor", {"is_active": True}),
            },
            "buddies": {"total": count("buddy"), **buddies},
            "tasks": {"total": total_tasks, **tasks},
        }

    def get_recent_activity(self, limit: int = 10) -> List[Dict[str, Any]]:
        return [
            {
                "task_id": task["id"],
                "title": task["title"],
                "mentor_name": task["mentor_name"],
                "buddy_name": task["buddy_name"],
                "action": "assigned a new task to",
                "type": task["effective_status"],
                "timestamp": task["created_at"],
            }
            for task in self.store.list_recent_tasks(limit)
        ]
