"""
Database Schemas for the Mentor Buddy Tracker

Each Pydantic model represents a collection in MongoDB (collection name is the lowercase class name).
The *Update models describe partial edits; only the fields a caller sends are applied.
"""

from datetime import datetime
from typing import Any, ClassVar, Dict, List, Literal, Optional, Tuple, get_args

from pydantic import BaseModel, EmailStr, Field, constr, model_validator

# ---------------------------
# ENUMERATED SETS
# ---------------------------

Role = Literal["manager", "mentor", "buddy"]
Domain = Literal["frontend", "backend", "devops", "qa", "hr"]
BuddyStatus = Literal["active", "inactive", "exited"]
TaskStatus = Literal["pending", "in_progress", "completed", "overdue"]

ROLES: List[str] = list(get_args(Role))
DOMAINS: List[str] = list(get_args(Domain))
BUDDY_STATUSES: List[str] = list(get_args(BuddyStatus))
TASK_STATUSES: List[str] = list(get_args(TaskStatus))

# statuses that turn overdue once the due date passes
OPEN_TASK_STATUSES: List[str] = ["pending", "in_progress"]


# ---------------------------
# USERS AND PROFILES
# ---------------------------

class User(BaseModel):
    name: constr(strip_whitespace=True, min_length=1)
    email: EmailStr
    role: Role = Field("buddy")
    domain: Domain = Field("frontend", description="Domain specialization")
    avatar_url: Optional[str] = None


class Mentor(BaseModel):
    user_id: str
    expertise: str = ""
    experience: str = ""
    response_rate: int = Field(0, ge=0, le=100)
    is_active: bool = True


class Buddy(BaseModel):
    user_id: str
    assigned_mentor_id: Optional[str] = None
    status: BuddyStatus = "active"
    join_date: Optional[datetime] = None


# ---------------------------
# TOPICS AND PROGRESS
# ---------------------------

class Topic(BaseModel):
    name: constr(strip_whitespace=True, min_length=1)
    category: str = ""
    domain: Domain = "frontend"


class TopicProgress(BaseModel):
    buddy_id: str
    topic_id: str
    checked: bool = False
    completed_at: Optional[datetime] = None


# ---------------------------
# CURRICULUM
# ---------------------------

class Curriculum(BaseModel):
    title: constr(strip_whitespace=True, min_length=1)
    description: str
    domain: Domain
    created_by: str = Field(..., description="Id of the authoring user")
    content: str
    attachments: Optional[str] = None


# ---------------------------
# TASKS AND SUBMISSIONS
# ---------------------------

class Task(BaseModel):
    mentor_id: str
    buddy_id: str
    title: constr(strip_whitespace=True, min_length=1)
    description: str = ""
    status: TaskStatus = "pending"
    due_date: Optional[datetime] = None


class Submission(BaseModel):
    task_id: str
    buddy_id: Optional[str] = Field(None, description="Defaults to the task's buddy")
    github_link: Optional[str] = None
    deployed_url: Optional[str] = None
    notes: Optional[str] = None
    feedback: Optional[str] = None


# ---------------------------
# PARTIAL UPDATES
# ---------------------------

class PartialUpdate(BaseModel):
    nullable_fields: ClassVar[Tuple[str, ...]] = ()

    @model_validator(mode="after")
    def reject_nulls(self):
        for name in self.model_fields_set:
            if getattr(self, name) is None and name not in self.nullable_fields:
                raise ValueError(f"{name} may not be null")
        return self

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class UserUpdate(PartialUpdate):
    nullable_fields: ClassVar[Tuple[str, ...]] = ("avatar_url",)

    name: Optional[constr(strip_whitespace=True, min_length=1)] = None
    email: Optional[EmailStr] = None
    role: Optional[Role] = None
    domain: Optional[Domain] = None
    avatar_url: Optional[str] = None


class MentorUpdate(PartialUpdate):
    expertise: Optional[str] = None
    experience: Optional[str] = None
    response_rate: Optional[int] = Field(None, ge=0, le=100)
    is_active: Optional[bool] = None


class BuddyUpdate(PartialUpdate):
    nullable_fields: ClassVar[Tuple[str, ...]] = ("assigned_mentor_id",)

    assigned_mentor_id: Optional[str] = None
    status: Optional[BuddyStatus] = None
    join_date: Optional[datetime] = None


class TopicUpdate(PartialUpdate):
    name: Optional[constr(strip_whitespace=True, min_length=1)] = None
    category: Optional[str] = None
    domain: Optional[Domain] = None


class CurriculumUpdate(PartialUpdate):
    nullable_fields: ClassVar[Tuple[str, ...]] = ("attachments",)

    title: Optional[constr(strip_whitespace=True, min_length=1)] = None
    description: Optional[str] = None
    domain: Optional[Domain] = None
    content: Optional[str] = None
    attachments: Optional[str] = None


class TaskUpdate(PartialUpdate):
    nullable_fields: ClassVar[Tuple[str, ...]] = ("due_date",)

    title: Optional[constr(strip_whitespace=True, min_length=1)] = None
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    due_date: Optional[datetime] = None
