"""Mentor/buddy assignment: a buddy has at most one mentor at any time."""
from typing import Any, Dict, List

import structlog

from errors import NotFound
from storage import Store

logger = structlog.get_logger(__name__)


class AssignmentManager:
    def __init__(self, store: Store):
        self.store = store

    def assign(self, buddy_id: str, mentor_id: str) -> Dict[str, Any]:
        """
        Point the buddy at ``mentor_id``, replacing any previous mentor.

        Both ids must resolve; on failure nothing is written. The write itself
        is one atomic document update, so concurrent assignments of the same
        buddy resolve as last-write-wins.
        """
        mentor = self.store.get_mentor_record(mentor_id)
        if mentor is None:
            raise NotFound("mentor", mentor_id)
        buddy = self.store.set_assigned_mentor(buddy_id, mentor["id"])
        if buddy is None:
            raise NotFound("buddy", buddy_id)
        logger.info("buddy_assigned", buddy_id=buddy["id"], mentor_id=mentor["id"])
        return self.store.get_buddy(buddy["id"])

    def unassign(self, buddy_id: str) -> Dict[str, Any]:
        buddy = self.store.set_assigned_mentor(buddy_id, None)
        if buddy is None:
            raise NotFound("buddy", buddy_id)
        logger.info("buddy_unassigned", buddy_id=buddy["id"])
        return self.store.get_buddy(buddy["id"])

    def list_available_buddies(self) -> List[Dict[str, Any]]:
        return self.store.list_buddies(status="active", unassigned=True)

    def delete_mentor(self, mentor_id: str) -> int:
        """
        Delete a mentor, first releasing every buddy assigned to it.

        Returns how many buddies were released. Deleting a mentor that does
        not exist is a no-op.
        """
        mentor = self.store.get_mentor_record(mentor_id)
        if mentor is None:
            return 0
        released = self.store.release_buddies(mentor["id"])
        self.store.delete_mentor(mentor["id"])
        logger.info("mentor_deleted", mentor_id=mentor["id"], released_buddies=released)
        return released
