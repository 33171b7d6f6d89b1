"""
Entity store over MongoDB.

Every public method returns plain dicts with a string ``id`` in place of
``_id``. Lookups return ``None`` when absent; updates raise ``NotFound``;
deletes are idempotent and never cascade.
"""
import re
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Type

import structlog
from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from errors import DuplicateEmail, NotFound, ValidationError, format_errors
from schemas import (
    BUDDY_STATUSES, DOMAINS, OPEN_TASK_STATUSES, TASK_STATUSES,
    Buddy, BuddyUpdate, Curriculum, CurriculumUpdate, Mentor, MentorUpdate,
    Submission, Task, TaskUpdate,
    Topic, TopicUpdate, User, UserUpdate,
)

logger = structlog.get_logger(__name__)


# ---------------------------
# Helpers
# ---------------------------

def utcnow() -> datetime:
    """Naive UTC, the form pymongo hands back by default."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def to_str_id(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not doc:
        return doc
    out = dict(doc)
    if out.get("_id") is not None:
        out["id"] = str(out.pop("_id"))
    return out


def to_object_id(value: Any) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def canonical_id(value: Any) -> Any:
    """Lowercase hex form of a valid ObjectId string; anything else unchanged."""
    oid = to_object_id(value)
    return str(oid) if oid is not None else value


def validated(model: Type[BaseModel], data: Any) -> BaseModel:
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(
            f"Invalid {model.__name__.lower()} data", errors=format_errors(exc.errors())
        ) from exc


def is_constrained(value: Optional[str]) -> bool:
    return value is not None and value != "" and value != "all"


def check_choice(field: str, value: str, choices: List[str]) -> None:
    if value not in choices:
        raise ValidationError(
            f"Invalid {field} filter",
            errors=[{"field": field, "message": f"Must be one of: {', '.join(choices)}"}],
        )


def contains(text: str) -> Dict[str, str]:
    return {"$regex": re.escape(text), "$options": "i"}


def task_status_filter(status: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Mongo filter for tasks whose *effective* status equals ``status``."""
    now = now or utcnow()
    if status == "overdue":
        return {"$or": [
            {"status": "overdue"},
            {"status": {"$in": OPEN_TASK_STATUSES}, "due_date": {"$lt": now}},
        ]}
    if status in OPEN_TASK_STATUSES:
        return {"status": status, "$or": [{"due_date": None}, {"due_date": {"$gte": now}}]}
    return {"status": status}


def effective_status(task: Dict[str, Any], now: Optional[datetime] = None) -> str:
    status = task.get("status", "pending")
    due = as_utc(task.get("due_date"))
    if status in OPEN_TASK_STATUSES and due is not None and due < (now or utcnow()):
        return "overdue"
    return status


def with_effective_status(task: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    task["effective_status"] = effective_status(task, now)
    return task


# ---------------------------
# Store
# ---------------------------

class Store:
    def __init__(self, db: Database):
        self.db = db

    # -- generic plumbing --

    def _find(self, collection: str, entity_id: Any) -> Optional[Dict[str, Any]]:
        _id = to_object_id(entity_id)
        if _id is None:
            return None
        return self.db[collection].find_one({"_id": _id})

    def _require(self, collection: str, entity_id: Any) -> Dict[str, Any]:
        doc = self._find(collection, entity_id)
        if doc is None:
            raise NotFound(collection, entity_id)
        return doc

    def _ref(self, collection: str, entity_id: Any) -> str:
        """Stored form of a reference: the canonical id of an existing document."""
        return str(self._require(collection, entity_id)["_id"])

    def _by_id(self, collection: str, ids: Iterable[Any]) -> Dict[str, Dict[str, Any]]:
        oids = [o for o in (to_object_id(i) for i in ids if i) if o is not None]
        if not oids:
            return {}
        return {str(d["_id"]): d for d in self.db[collection].find({"_id": {"$in": oids}})}

    def _update(self, collection: str, entity_id: Any, changes: Dict[str, Any]) -> Dict[str, Any]:
        if not changes:
            return self._require(collection, entity_id)
        _id = to_object_id(entity_id)
        doc = None
        if _id is not None:
            doc = self.db[collection].find_one_and_update(
                {"_id": _id}, {"$set": changes}, return_document=ReturnDocument.AFTER
            )
        if doc is None:
            raise NotFound(collection, entity_id)
        return doc

    def _delete(self, collection: str, entity_id: Any) -> bool:
        _id = to_object_id(entity_id)
        if _id is None:
            return False
        return self.db[collection].delete_one({"_id": _id}).deleted_count > 0

    def _user_ids(self, query: Dict[str, Any]) -> List[str]:
        return [str(d["_id"]) for d in self.db.user.find(query, {"_id": 1})]

    def count(self, collection: str, query: Optional[Dict[str, Any]] = None) -> int:
        return self.db[collection].count_documents(query or {})

    # -- users --

    def create_user(self, data: Any) -> Dict[str, Any]:
        user = validated(User, data)
        doc = user.model_dump()
        if self.db.user.find_one({"email": doc["email"]}, {"_id": 1}):
            raise DuplicateEmail(doc["email"])
        doc["created_at"] = doc["updated_at"] = utcnow()
        try:
            self.db.user.insert_one(doc)
        except DuplicateKeyError as exc:
            raise DuplicateEmail(doc["email"]) from exc
        logger.info("user_created", user_id=str(doc["_id"]), role=doc["role"], domain=doc["domain"])
        return to_str_id(doc)

    def get_user(self, user_id: Any) -> Optional[Dict[str, Any]]:
        return to_str_id(self._find("user", user_id))

    def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return to_str_id(self.db.user.find_one({"email": email}))

    def list_users(self) -> List[Dict[str, Any]]:
        return [to_str_id(d) for d in self.db.user.find().sort("_id", ASCENDING)]

    def update_user(self, user_id: Any, data: Any) -> Dict[str, Any]:
        changes = validated(UserUpdate, data).changes()
        email = changes.get("email")
        if email is not None:
            other = self.db.user.find_one({"email": email}, {"_id": 1})
            if other is not None and str(other["_id"]) != canonical_id(user_id):
                raise DuplicateEmail(email)
        if changes:
            changes["updated_at"] = utcnow()
        try:
            return to_str_id(self._update("user", user_id, changes))
        except DuplicateKeyError as exc:
            raise DuplicateEmail(email) from exc

    def delete_user(self, user_id: Any) -> bool:
        return self._delete("user", user_id)

    # -- mentors --

    def _require_profile_owner(self, user_id: str, role: str) -> Dict[str, Any]:
        user = self._find("user", user_id)
        if user is None:
            raise NotFound("user", user_id)
        if user.get("role") != role:
            raise ValidationError(
                f"Invalid {role} data",
                errors=[{"field": "user_id", "message": f"User must have role '{role}'"}],
            )
        return user

    def create_mentor(self, data: Any) -> Dict[str, Any]:
        doc = validated(Mentor, data).model_dump()
        doc["user_id"] = str(self._require_profile_owner(doc["user_id"], "mentor")["_id"])
        doc["created_at"] = utcnow()
        try:
            self.db.mentor.insert_one(doc)
        except DuplicateKeyError as exc:
            raise ValidationError(
                "Invalid mentor data",
                errors=[{"field": "user_id", "message": "User already has a mentor profile"}],
            ) from exc
        logger.info("mentor_created", mentor_id=str(doc["_id"]), user_id=doc["user_id"])
        return to_str_id(doc)

    def get_mentor_record(self, mentor_id: Any) -> Optional[Dict[str, Any]]:
        return to_str_id(self._find("mentor", mentor_id))

    def get_mentor(self, mentor_id: Any) -> Optional[Dict[str, Any]]:
        mentor = self._find("mentor", mentor_id)
        if mentor is None:
            return None
        mid = str(mentor["_id"])
        buddy_statuses = Counter(
            b.get("status") for b in self.db.buddy.find({"assigned_mentor_id": mid}, {"status": 1})
        )
        result = to_str_id(mentor)
        result["user"] = self.get_user(mentor["user_id"])
        result["stats"] = {
            "total_buddies": sum(buddy_statuses.values()),
            "active_buddies": buddy_statuses.get("active", 0),
            "completed_tasks": self.count("task", {"mentor_id": mid, "status": "completed"}),
            "response_rate": mentor.get("response_rate", 0),
        }
        return result

    def list_mentors(self, domain: Optional[str] = None, status: Optional[str] = None,
                     search: Optional[str] = None) -> List[Dict[str, Any]]:
        clauses: List[Dict[str, Any]] = []
        if is_constrained(domain):
            check_choice("domain", domain, DOMAINS)
            clauses.append({"user_id": {"$in": self._user_ids({"domain": domain})}})
        if is_constrained(status):
            check_choice("status", status, ["active", "inactive"])
            clauses.append({"is_active": status == "active"})
        if search:
            matching = self._user_ids({"$or": [{"name": contains(search)}, {"email": contains(search)}]})
            clauses.append({"$or": [{"user_id": {"$in": matching}}, {"expertise": contains(search)}]})
        query = {"$and": clauses} if clauses else {}
        mentors = list(self.db.mentor.find(query).sort("_id", ASCENDING))

        ids = [str(m["_id"]) for m in mentors]
        users = self._by_id("user", [m["user_id"] for m in mentors])
        buddy_counts = Counter(
            b["assigned_mentor_id"]
            for b in self.db.buddy.find({"assigned_mentor_id": {"$in": ids}}, {"assigned_mentor_id": 1})
        )
        completed = Counter(
            t["mentor_id"]
            for t in self.db.task.find({"mentor_id": {"$in": ids}, "status": "completed"}, {"mentor_id": 1})
        )
        results = []
        for mentor in mentors:
            item = to_str_id(mentor)
            item["user"] = to_str_id(users.get(mentor["user_id"]))
            item["stats"] = {
                "buddies_count": buddy_counts.get(item["id"], 0),
                "completed_tasks": completed.get(item["id"], 0),
            }
            results.append(item)
        return results

    def update_mentor(self, mentor_id: Any, data: Any) -> Dict[str, Any]:
        changes = validated(MentorUpdate, data).changes()
        return to_str_id(self._update("mentor", mentor_id, changes))

    def delete_mentor(self, mentor_id: Any) -> bool:
        """Remove the mentor document only; see AssignmentManager.delete_mentor."""
        return self._delete("mentor", mentor_id)

    def list_mentor_buddies(self, mentor_id: Any, status: Optional[str] = None) -> List[Dict[str, Any]]:
        mentor = self._require("mentor", mentor_id)
        query: Dict[str, Any] = {"assigned_mentor_id": str(mentor["_id"])}
        if is_constrained(status):
            check_choice("status", status, BUDDY_STATUSES)
            query["status"] = status
        return self._enrich_buddies(self.db.buddy.find(query).sort("_id", ASCENDING))

    # -- buddies --

    def _enrich_buddies(self, docs: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        docs = list(docs)
        mentors = self._by_id("mentor", [d.get("assigned_mentor_id") for d in docs])
        users = self._by_id(
            "user", [d["user_id"] for d in docs] + [m["user_id"] for m in mentors.values()]
        )
        ids = [str(d["_id"]) for d in docs]
        totals: Counter = Counter()
        done: Counter = Counter()
        for t in self.db.task.find({"buddy_id": {"$in": ids}}, {"buddy_id": 1, "status": 1}):
            totals[t["buddy_id"]] += 1
            if t.get("status") == "completed":
                done[t["buddy_id"]] += 1

        results = []
        for doc in docs:
            item = to_str_id(doc)
            item["user"] = to_str_id(users.get(doc["user_id"]))
            mentor = mentors.get(doc.get("assigned_mentor_id") or "")
            if mentor is not None:
                mentor = to_str_id(mentor)
                mentor["user"] = to_str_id(users.get(mentor["user_id"]))
            item["mentor"] = mentor
            item["stats"] = {"completed_tasks": done[item["id"]], "total_tasks": totals[item["id"]]}
            results.append(item)
        return results

    def create_buddy(self, data: Any) -> Dict[str, Any]:
        doc = validated(Buddy, data).model_dump()
        doc["user_id"] = str(self._require_profile_owner(doc["user_id"], "buddy")["_id"])
        if doc["assigned_mentor_id"] is not None:
            doc["assigned_mentor_id"] = self._ref("mentor", doc["assigned_mentor_id"])
        now = utcnow()
        doc["join_date"] = as_utc(doc["join_date"]) or now
        doc["created_at"] = now
        try:
            self.db.buddy.insert_one(doc)
        except DuplicateKeyError as exc:
            raise ValidationError(
                "Invalid buddy data",
                errors=[{"field": "user_id", "message": "User already has a buddy profile"}],
            ) from exc
        logger.info("buddy_created", buddy_id=str(doc["_id"]), user_id=doc["user_id"])
        return to_str_id(doc)

    def get_buddy_record(self, buddy_id: Any) -> Optional[Dict[str, Any]]:
        return to_str_id(self._find("buddy", buddy_id))

    def get_buddy(self, buddy_id: Any) -> Optional[Dict[str, Any]]:
        buddy = self._find("buddy", buddy_id)
        if buddy is None:
            return None
        return self._enrich_buddies([buddy])[0]

    def list_buddies(self, status: Optional[str] = None, domain: Optional[str] = None,
                     search: Optional[str] = None, unassigned: bool = False) -> List[Dict[str, Any]]:
        query: Dict[str, Any] = {}
        if is_constrained(status):
            check_choice("status", status, BUDDY_STATUSES)
            query["status"] = status
        if unassigned:
            query["assigned_mentor_id"] = None
        user_query: Dict[str, Any] = {}
        if is_constrained(domain):
            check_choice("domain", domain, DOMAINS)
            user_query["domain"] = domain
        if search:
            user_query["$or"] = [{"name": contains(search)}, {"email": contains(search)}]
        if user_query:
            query["user_id"] = {"$in": self._user_ids(user_query)}
        return self._enrich_buddies(self.db.buddy.find(query).sort("_id", ASCENDING))

    def update_buddy(self, buddy_id: Any, data: Any) -> Dict[str, Any]:
        changes = validated(BuddyUpdate, data).changes()
        if changes.get("assigned_mentor_id") is not None:
            changes["assigned_mentor_id"] = self._ref("mentor", changes["assigned_mentor_id"])
        if "join_date" in changes:
            changes["join_date"] = as_utc(changes["join_date"])
        doc = self._update("buddy", buddy_id, changes)
        return self._enrich_buddies([doc])[0]

    def set_assigned_mentor(self, buddy_id: Any, mentor_id: Optional[str]) -> Optional[Dict[str, Any]]:
        """Single atomic write of the assignment; ``None`` when the buddy does not exist."""
        _id = to_object_id(buddy_id)
        if _id is None:
            return None
        return to_str_id(self.db.buddy.find_one_and_update(
            {"_id": _id},
            {"$set": {"assigned_mentor_id": mentor_id}},
            return_document=ReturnDocument.AFTER,
        ))

    def release_buddies(self, mentor_id: str) -> int:
        result = self.db.buddy.update_many(
            {"assigned_mentor_id": mentor_id}, {"$set": {"assigned_mentor_id": None}}
        )
        return result.modified_count

    def delete_buddy(self, buddy_id: Any) -> bool:
        return self._delete("buddy", buddy_id)

    def list_buddy_tasks(self, buddy_id: Any) -> List[Dict[str, Any]]:
        buddy = self._require("buddy", buddy_id)
        tasks = [
            to_str_id(t)
            for t in self.db.task.find({"buddy_id": str(buddy["_id"])}).sort(
                [("created_at", DESCENDING), ("_id", DESCENDING)]
            )
        ]
        by_task: Dict[str, List[Dict[str, Any]]] = {t["id"]: [] for t in tasks}
        cursor = self.db.submission.find({"task_id": {"$in": list(by_task)}}).sort(
            [("created_at", ASCENDING), ("_id", ASCENDING)]
        )
        for sub in cursor:
            by_task[sub["task_id"]].append(to_str_id(sub))
        now = utcnow()
        for task in tasks:
            with_effective_status(task, now)
            task["submissions"] = by_task[task["id"]]
        return tasks

    def get_buddy_portfolio(self, buddy_id: Any) -> List[Dict[str, Any]]:
        buddy = self._require("buddy", buddy_id)
        submissions = list(
            self.db.submission.find({"buddy_id": str(buddy["_id"])}).sort(
                [("created_at", ASCENDING), ("_id", ASCENDING)]
            )
        )
        tasks = self._by_id("task", [s["task_id"] for s in submissions])
        portfolio = []
        for sub in submissions:
            task = tasks.get(sub["task_id"])
            portfolio.append({
                "id": str(sub["_id"]),
                "task_id": sub["task_id"],
                "title": task["title"] if task else "Unknown Task",
                "description": sub.get("notes"),
                "github_link": sub.get("github_link"),
                "deployed_url": sub.get("deployed_url"),
                "completed_at": sub.get("created_at"),
            })
        return portfolio

    # -- topics and progress --

    def create_topic(self, data: Any) -> Dict[str, Any]:
        doc = validated(Topic, data).model_dump()
        self.db.topic.insert_one(doc)
        return to_str_id(doc)

    def get_topic(self, topic_id: Any) -> Optional[Dict[str, Any]]:
        return to_str_id(self._find("topic", topic_id))

    def list_topics(self, domain: Optional[str] = None) -> List[Dict[str, Any]]:
        query: Dict[str, Any] = {}
        if is_constrained(domain):
            check_choice("domain", domain, DOMAINS)
            query["domain"] = domain
        # ObjectIds grow with insertion, so this is creation order
        return [to_str_id(t) for t in self.db.topic.find(query).sort("_id", ASCENDING)]

    def update_topic(self, topic_id: Any, data: Any) -> Dict[str, Any]:
        changes = validated(TopicUpdate, data).changes()
        return to_str_id(self._update("topic", topic_id, changes))

    def delete_topic(self, topic_id: Any) -> bool:
        return self._delete("topic", topic_id)

    def get_topic_progress(self, buddy_id: str) -> Dict[str, Dict[str, Any]]:
        return {p["topic_id"]: to_str_id(p) for p in self.db.topicprogress.find({"buddy_id": buddy_id})}

    def upsert_topic_progress(self, buddy_id: str, topic_id: str, checked: bool) -> Dict[str, Any]:
        doc = self.db.topicprogress.find_one_and_update(
            {"buddy_id": buddy_id, "topic_id": topic_id},
            {"$set": {"checked": checked, "completed_at": utcnow() if checked else None}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return to_str_id(doc)

    # -- curriculum --

    def create_curriculum(self, data: Any) -> Dict[str, Any]:
        doc = validated(Curriculum, data).model_dump()
        doc["created_by"] = self._ref("user", doc["created_by"])
        doc["created_at"] = doc["updated_at"] = utcnow()
        self.db.curriculum.insert_one(doc)
        logger.info("curriculum_created", curriculum_id=str(doc["_id"]), domain=doc["domain"])
        return to_str_id(doc)

    def get_curriculum(self, curriculum_id: Any) -> Optional[Dict[str, Any]]:
        return to_str_id(self._find("curriculum", curriculum_id))

    def list_curriculum(self, domain: Optional[str] = None, search: Optional[str] = None) -> List[Dict[str, Any]]:
        query: Dict[str, Any] = {}
        if is_constrained(domain):
            check_choice("domain", domain, DOMAINS)
            query["domain"] = domain
        if search:
            query["title"] = contains(search)
        return [to_str_id(c) for c in self.db.curriculum.find(query).sort("_id", ASCENDING)]

    def update_curriculum(self, curriculum_id: Any, data: Any) -> Dict[str, Any]:
        changes = validated(CurriculumUpdate, data).changes()
        if changes:
            changes["updated_at"] = utcnow()
        return to_str_id(self._update("curriculum", curriculum_id, changes))

    def delete_curriculum(self, curriculum_id: Any) -> bool:
        return self._delete("curriculum", curriculum_id)

    # -- tasks and submissions --

    def create_task(self, data: Any) -> Dict[str, Any]:
        doc = validated(Task, data).model_dump()
        doc["buddy_id"] = self._ref("buddy", doc["buddy_id"])
        doc["mentor_id"] = self._ref("mentor", doc["mentor_id"])
        doc["due_date"] = as_utc(doc["due_date"])
        doc["created_at"] = utcnow()
        self.db.task.insert_one(doc)
        logger.info("task_created", task_id=str(doc["_id"]), buddy_id=doc["buddy_id"], mentor_id=doc["mentor_id"])
        return with_effective_status(to_str_id(doc))

    def get_task(self, task_id: Any) -> Optional[Dict[str, Any]]:
        task = self._find("task", task_id)
        return with_effective_status(to_str_id(task)) if task else None

    def list_tasks(self, status: Optional[str] = None, buddy_id: Optional[str] = None,
                   search: Optional[str] = None, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        now = now or utcnow()
        clauses: List[Dict[str, Any]] = []
        if is_constrained(status):
            check_choice("status", status, TASK_STATUSES)
            clauses.append(task_status_filter(status, now))
        if buddy_id:
            clauses.append({"buddy_id": canonical_id(buddy_id)})
        if search:
            clauses.append({"$or": [{"title": contains(search)}, {"description": contains(search)}]})
        query = {"$and": clauses} if clauses else {}
        cursor = self.db.task.find(query).sort([("created_at", DESCENDING), ("_id", DESCENDING)])
        return [with_effective_status(to_str_id(t), now) for t in cursor]

    def list_recent_tasks(self, limit: int = 10) -> List[Dict[str, Any]]:
        tasks = list(self.db.task.find().sort([("created_at", DESCENDING), ("_id", DESCENDING)]).limit(limit))
        mentors = self._by_id("mentor", [t["mentor_id"] for t in tasks])
        buddies = self._by_id("buddy", [t["buddy_id"] for t in tasks])
        users = self._by_id(
            "user", [m["user_id"] for m in mentors.values()] + [b["user_id"] for b in buddies.values()]
        )

        def name_of(profile: Optional[Dict[str, Any]]) -> Optional[str]:
            user = users.get(profile["user_id"]) if profile else None
            return user.get("name") if user else None

        now = utcnow()
        results = []
        for task in tasks:
            item = with_effective_status(to_str_id(task), now)
            item["mentor_name"] = name_of(mentors.get(task["mentor_id"]))
            item["buddy_name"] = name_of(buddies.get(task["buddy_id"]))
            results.append(item)
        return results

    def update_task(self, task_id: Any, data: Any) -> Dict[str, Any]:
        changes = validated(TaskUpdate, data).changes()
        if "due_date" in changes:
            changes["due_date"] = as_utc(changes["due_date"])
        task = to_str_id(self._update("task", task_id, changes))
        if "status" in changes:
            logger.info("task_status_changed", task_id=task["id"], status=changes["status"])
        return with_effective_status(task)

    def delete_task(self, task_id: Any) -> bool:
        return self._delete("task", task_id)

    def create_submission(self, data: Any) -> Dict[str, Any]:
        doc = validated(Submission, data).model_dump()
        task = self._require("task", doc["task_id"])
        doc["task_id"] = str(task["_id"])
        if doc["buddy_id"] is None:
            doc["buddy_id"] = task["buddy_id"]
        elif canonical_id(doc["buddy_id"]) != task["buddy_id"]:
            raise ValidationError(
                "Invalid submission data",
                errors=[{"field": "buddy_id", "message": "Task is assigned to a different buddy"}],
            )
        doc["created_at"] = utcnow()
        self.db.submission.insert_one(doc)
        logger.info("submission_created", submission_id=str(doc["_id"]), task_id=doc["task_id"])
        return to_str_id(doc)

    def list_submissions(self, task_id: Any) -> List[Dict[str, Any]]:
        task = self._require("task", task_id)
        cursor = self.db.submission.find({"task_id": str(task["_id"])}).sort(
            [("created_at", ASCENDING), ("_id", ASCENDING)]
        )
        return [to_str_id(s) for s in cursor]
