import os
import time
import uuid
from contextlib import asynccontextmanager
from typing import Dict, List, Optional

import structlog
from fastapi import Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, EmailStr, constr
from pymongo.database import Database

from assignments import AssignmentManager
from database import connect, ensure_indexes
from errors import MentorBuddyError, ValidationError, format_errors
from logging_config import setup_logging
from progress import ProgressTracker
from schemas import (
    Curriculum, Domain, Topic, User, Task,
    UserUpdate, MentorUpdate, BuddyUpdate, TopicUpdate, CurriculumUpdate, TaskUpdate,
)
from settings import Settings, get_settings
from storage import Store

logger = structlog.get_logger(__name__)


# ---------------------------
# Seed topics (idempotent)
# ---------------------------
SEED_TOPICS: Dict[str, List[Topic]] = {
    "frontend": [
        Topic(name="React Fundamentals", category="Framework", domain="frontend"),
        Topic(name="TypeScript Basics", category="Language", domain="frontend"),
        Topic(name="Component Architecture", category="Design Patterns", domain="frontend"),
        Topic(name="State Management", category="Data Flow", domain="frontend"),
        Topic(name="Testing Strategies", category="Quality Assurance", domain="frontend"),
        Topic(name="Performance Optimization", category="Performance", domain="frontend"),
    ],
    "backend": [
        Topic(name="Node.js Fundamentals", category="Runtime", domain="backend"),
        Topic(name="Database Design", category="Data", domain="backend"),
        Topic(name="API Development", category="Integration", domain="backend"),
        Topic(name="Authentication & Authorization", category="Security", domain="backend"),
        Topic(name="Error Handling", category="Reliability", domain="backend"),
        Topic(name="Microservices Architecture", category="Architecture", domain="backend"),
    ],
    "devops": [
        Topic(name="Docker Containerization", category="Containers", domain="devops"),
        Topic(name="Kubernetes Orchestration", category="Orchestration", domain="devops"),
        Topic(name="CI/CD Pipelines", category="Automation", domain="devops"),
        Topic(name="Infrastructure as Code", category="IaC", domain="devops"),
        Topic(name="Monitoring & Logging", category="Observability", domain="devops"),
        Topic(name="Cloud Platform Management", category="Cloud", domain="devops"),
    ],
    "qa": [
        Topic(name="Test Planning", category="Strategy", domain="qa"),
        Topic(name="Automated Testing", category="Automation", domain="qa"),
        Topic(name="Bug Tracking", category="Process", domain="qa"),
        Topic(name="Performance Testing", category="Performance", domain="qa"),
        Topic(name="Security Testing", category="Security", domain="qa"),
        Topic(name="User Acceptance Testing", category="Validation", domain="qa"),
    ],
    "hr": [
        Topic(name="Recruitment Process", category="Hiring", domain="hr"),
        Topic(name="Employee Onboarding", category="Integration", domain="hr"),
        Topic(name="Performance Management", category="Evaluation", domain="hr"),
        Topic(name="Team Building", category="Culture", domain="hr"),
        Topic(name="Conflict Resolution", category="Management", domain="hr"),
        Topic(name="Policy Development", category="Governance", domain="hr"),
    ],
}


def ensure_topics_seeded(store: Store) -> int:
    if store.count("topic") > 0:
        return 0
    created = 0
    for topics in SEED_TOPICS.values():
        for topic in topics:
            store.create_topic(topic)
            created += 1
    logger.info("topics_seeded", count=created)
    return created


# ---------------------------
# Request payloads
# ---------------------------

class MentorCreate(BaseModel):
    name: constr(strip_whitespace=True, min_length=1)
    email: EmailStr
    domain: Domain
    expertise: str = ""
    experience: str = ""
    avatar_url: Optional[str] = None


class BuddyCreate(BaseModel):
    name: constr(strip_whitespace=True, min_length=1)
    email: EmailStr
    domain: Domain = "frontend"
    avatar_url: Optional[str] = None


class AssignRequest(BaseModel):
    mentor_id: str


class ProgressUpdate(BaseModel):
    checked: bool


class SubmissionCreate(BaseModel):
    buddy_id: Optional[str] = None
    github_link: Optional[str] = None
    deployed_url: Optional[str] = None
    notes: Optional[str] = None
    feedback: Optional[str] = None


# ---------------------------
# Dependencies
# ---------------------------

def get_store(request: Request) -> Store:
    return request.app.state.store


def get_assignments(request: Request) -> AssignmentManager:
    return request.app.state.assignments


def get_tracker(request: Request) -> ProgressTracker:
    return request.app.state.tracker


def not_found(entity: str) -> JSONResponse:
    return JSONResponse(status_code=404, content={"message": f"{entity} not found"})


# ---------------------------
# App factory
# ---------------------------

def create_app(db: Optional[Database] = None, settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the API.

    ``db`` is the MongoDB handle to use; when omitted one is opened from the
    settings at startup and closed at shutdown.
    """
    settings = settings or get_settings()
    setup_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database = db if db is not None else connect(settings)
        ensure_indexes(database)
        store = Store(database)
        app.state.store = store
        app.state.assignments = AssignmentManager(store)
        app.state.tracker = ProgressTracker(store)
        if settings.seed_default_topics:
            ensure_topics_seeded(store)
        logger.info("application_startup", app_name=settings.app_name, env=settings.app_env)
        yield
        logger.info("application_shutdown")
        if db is None:
            database.client.close()

    app = FastAPI(title="Mentor Buddy Tracker API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_allowed_origins_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = str(uuid.uuid4())
        start = time.time()
        structlog.contextvars.bind_contextvars(
            request_id=request_id, method=request.method, path=request.url.path
        )
        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            logger.info(
                "request_completed",
                status_code=response.status_code,
                duration_seconds=round(time.time() - start, 4),
            )
            return response
        finally:
            structlog.contextvars.clear_contextvars()

    # ---------------------------
    # Error mapping
    # ---------------------------
    @app.exception_handler(MentorBuddyError)
    async def domain_error_handler(request: Request, exc: MentorBuddyError):
        content = {"message": exc.message}
        if isinstance(exc, ValidationError) and exc.errors:
            content["errors"] = exc.errors
        logger.info("request_rejected", error_type=type(exc).__name__, detail=exc.message)
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"message": "Invalid request data", "errors": format_errors(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.error("unhandled_exception", error=str(exc), error_type=type(exc).__name__)
        return JSONResponse(status_code=500, content={"message": "Internal server error"})

    register_routes(app)
    return app


def register_routes(app: FastAPI) -> None:
    # ---------------------------
    # Health
    # ---------------------------
    @app.get("/")
    def read_root():
        return {"message": "Mentor Buddy Tracker API running"}

    @app.get("/api/health")
    def health():
        return {"status": "healthy", "version": "1.0.0"}

    @app.get("/test")
    def test_database(store: Store = Depends(get_store)):
        response = {
            "backend": "✅ Running",
            "database": "❌ Not Available",
            "database_url": "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set",
            "database_name": "✅ Set" if os.getenv("DATABASE_NAME") else "❌ Not Set",
            "connection_status": "Not Connected",
            "collections": [],
        }
        try:
            response["collections"] = store.db.list_collection_names()
            response["database"] = "✅ Connected & Working"
            response["connection_status"] = "Connected"
        except Exception as e:
            logger.warning("database_check_failed", error=str(e))
            response["database"] = f"⚠️ Error: {str(e)[:80]}"
        return response

    # ---------------------------
    # Users
    # ---------------------------
    @app.get("/api/users")
    def list_users(store: Store = Depends(get_store)):
        return {"users": store.list_users()}

    @app.post("/api/users", status_code=201)
    def create_user(user: User, store: Store = Depends(get_store)):
        return {"user": store.create_user(user)}

    @app.get("/api/users/{user_id}")
    def get_user(user_id: str, store: Store = Depends(get_store)):
        user = store.get_user(user_id)
        if not user:
            return not_found("User")
        return {"user": user}

    @app.put("/api/users/{user_id}")
    def update_user(user_id: str, payload: UserUpdate, store: Store = Depends(get_store)):
        return {"user": store.update_user(user_id, payload)}

    @app.delete("/api/users/{user_id}", status_code=204)
    def delete_user(user_id: str, store: Store = Depends(get_store)):
        store.delete_user(user_id)
        return Response(status_code=204)

    # ---------------------------
    # Mentors
    # ---------------------------
    @app.get("/api/mentors")
    def list_mentors(domain: Optional[str] = None, status: Optional[str] = None,
                     search: Optional[str] = None, store: Store = Depends(get_store)):
        return {"mentors": store.list_mentors(domain=domain, status=status, search=search)}

    @app.post("/api/mentors", status_code=201)
    def create_mentor(payload: MentorCreate, store: Store = Depends(get_store)):
        user = store.create_user({
            "name": payload.name,
            "email": payload.email,
            "role": "mentor",
            "domain": payload.domain,
            "avatar_url": payload.avatar_url,
        })
        mentor = store.create_mentor({
            "user_id": user["id"],
            "expertise": payload.expertise,
            "experience": payload.experience,
        })
        return {"mentor": store.get_mentor(mentor["id"])}

    @app.get("/api/mentors/{mentor_id}")
    def get_mentor(mentor_id: str, store: Store = Depends(get_store)):
        mentor = store.get_mentor(mentor_id)
        if not mentor:
            return not_found("Mentor")
        return {"mentor": mentor}

    @app.api_route("/api/mentors/{mentor_id}", methods=["PUT", "PATCH"])
    def update_mentor(mentor_id: str, payload: MentorUpdate, store: Store = Depends(get_store)):
        store.update_mentor(mentor_id, payload)
        return {"mentor": store.get_mentor(mentor_id)}

    @app.delete("/api/mentors/{mentor_id}", status_code=204)
    def delete_mentor(mentor_id: str, assignments: AssignmentManager = Depends(get_assignments)):
        assignments.delete_mentor(mentor_id)
        return Response(status_code=204)

    @app.get("/api/mentors/{mentor_id}/buddies")
    def list_mentor_buddies(mentor_id: str, status: Optional[str] = None,
                            store: Store = Depends(get_store)):
        return {"buddies": store.list_mentor_buddies(mentor_id, status=status)}

    # ---------------------------
    # Buddies
    # ---------------------------
    @app.get("/api/buddies")
    def list_buddies(status: Optional[str] = None, domain: Optional[str] = None,
                     search: Optional[str] = None, store: Store = Depends(get_store)):
        return {"buddies": store.list_buddies(status=status, domain=domain, search=search)}

    @app.get("/api/buddies/available")
    def list_available_buddies(assignments: AssignmentManager = Depends(get_assignments)):
        return {"buddies": assignments.list_available_buddies()}

    @app.post("/api/buddies", status_code=201)
    def create_buddy(payload: BuddyCreate, store: Store = Depends(get_store)):
        user = store.create_user({
            "name": payload.name,
            "email": payload.email,
            "role": "buddy",
            "domain": payload.domain,
            "avatar_url": payload.avatar_url,
        })
        buddy = store.create_buddy({"user_id": user["id"], "status": "active"})
        return {"buddy": store.get_buddy(buddy["id"])}

    @app.get("/api/buddies/{buddy_id}")
    def get_buddy(buddy_id: str, store: Store = Depends(get_store)):
        buddy = store.get_buddy(buddy_id)
        if not buddy:
            return not_found("Buddy")
        return {"buddy": buddy}

    @app.put("/api/buddies/{buddy_id}")
    def update_buddy(buddy_id: str, payload: BuddyUpdate, store: Store = Depends(get_store)):
        return {"buddy": store.update_buddy(buddy_id, payload)}

    @app.put("/api/buddies/{buddy_id}/assign")
    def assign_buddy(buddy_id: str, payload: AssignRequest,
                     assignments: AssignmentManager = Depends(get_assignments)):
        return {"buddy": assignments.assign(buddy_id, payload.mentor_id)}

    @app.delete("/api/buddies/{buddy_id}/assign")
    def unassign_buddy(buddy_id: str, assignments: AssignmentManager = Depends(get_assignments)):
        return {"buddy": assignments.unassign(buddy_id)}

    @app.get("/api/buddies/{buddy_id}/tasks")
    def list_buddy_tasks(buddy_id: str, store: Store = Depends(get_store)):
        return {"tasks": store.list_buddy_tasks(buddy_id)}

    @app.get("/api/buddies/{buddy_id}/progress")
    def get_buddy_progress(buddy_id: str, tracker: ProgressTracker = Depends(get_tracker)):
        return tracker.get_buddy_progress(buddy_id)

    @app.patch("/api/buddies/{buddy_id}/progress/{topic_id}")
    def update_buddy_progress(buddy_id: str, topic_id: str, payload: ProgressUpdate,
                              tracker: ProgressTracker = Depends(get_tracker)):
        return {"progress": tracker.update_topic_progress(buddy_id, topic_id, payload.checked)}

    @app.get("/api/buddies/{buddy_id}/portfolio")
    def get_buddy_portfolio(buddy_id: str, store: Store = Depends(get_store)):
        return {"portfolio": store.get_buddy_portfolio(buddy_id)}

    # ---------------------------
    # Topics
    # ---------------------------
    @app.get("/api/topics")
    def list_topics(domain: Optional[str] = None, store: Store = Depends(get_store)):
        return {"topics": store.list_topics(domain=domain)}

    @app.post("/api/topics", status_code=201)
    def create_topic(topic: Topic, store: Store = Depends(get_store)):
        return {"topic": store.create_topic(topic)}

    @app.get("/api/topics/{topic_id}")
    def get_topic(topic_id: str, store: Store = Depends(get_store)):
        topic = store.get_topic(topic_id)
        if not topic:
            return not_found("Topic")
        return {"topic": topic}

    @app.put("/api/topics/{topic_id}")
    def update_topic(topic_id: str, payload: TopicUpdate, store: Store = Depends(get_store)):
        return {"topic": store.update_topic(topic_id, payload)}

    @app.delete("/api/topics/{topic_id}", status_code=204)
    def delete_topic(topic_id: str, store: Store = Depends(get_store)):
        store.delete_topic(topic_id)
        return Response(status_code=204)

    # ---------------------------
    # Curriculum
    # ---------------------------
    @app.get("/api/curriculum")
    def list_curriculum(domain: Optional[str] = None, search: Optional[str] = None,
                        store: Store = Depends(get_store)):
        return {"curriculum": store.list_curriculum(domain=domain, search=search)}

    @app.post("/api/curriculum", status_code=201)
    def create_curriculum(item: Curriculum, store: Store = Depends(get_store)):
        return {"curriculum": store.create_curriculum(item)}

    @app.get("/api/curriculum/{curriculum_id}")
    def get_curriculum(curriculum_id: str, store: Store = Depends(get_store)):
        item = store.get_curriculum(curriculum_id)
        if not item:
            return not_found("Curriculum item")
        return {"curriculum": item}

    @app.api_route("/api/curriculum/{curriculum_id}", methods=["PUT", "PATCH"])
    def update_curriculum(curriculum_id: str, payload: CurriculumUpdate, store: Store = Depends(get_store)):
        return {"curriculum": store.update_curriculum(curriculum_id, payload)}

    @app.delete("/api/curriculum/{curriculum_id}", status_code=204)
    def delete_curriculum(curriculum_id: str, store: Store = Depends(get_store)):
        store.delete_curriculum(curriculum_id)
        return Response(status_code=204)

    # ---------------------------
    # Tasks and submissions
    # ---------------------------
    @app.get("/api/tasks")
    def list_tasks(status: Optional[str] = None, buddy_id: Optional[str] = None,
                   search: Optional[str] = None, store: Store = Depends(get_store)):
        return {"tasks": store.list_tasks(status=status, buddy_id=buddy_id, search=search)}

    @app.post("/api/tasks", status_code=201)
    def create_task(task: Task, store: Store = Depends(get_store)):
        return {"task": store.create_task(task)}

    @app.get("/api/tasks/{task_id}")
    def get_task(task_id: str, store: Store = Depends(get_store)):
        task = store.get_task(task_id)
        if not task:
            return not_found("Task")
        return {"task": task}

    @app.put("/api/tasks/{task_id}")
    def update_task(task_id: str, payload: TaskUpdate, store: Store = Depends(get_store)):
        return {"task": store.update_task(task_id, payload)}

    @app.delete("/api/tasks/{task_id}", status_code=204)
    def delete_task(task_id: str, store: Store = Depends(get_store)):
        store.delete_task(task_id)
        return Response(status_code=204)

    @app.get("/api/tasks/{task_id}/submissions")
    def list_submissions(task_id: str, store: Store = Depends(get_store)):
        return {"submissions": store.list_submissions(task_id)}

    @app.post("/api/tasks/{task_id}/submissions", status_code=201)
    def create_submission(task_id: str, payload: SubmissionCreate, store: Store = Depends(get_store)):
        data = payload.model_dump()
        data["task_id"] = task_id
        return {"submission": store.create_submission(data)}

    # ---------------------------
    # Dashboard
    # ---------------------------
    @app.get("/api/dashboard/stats")
    def dashboard_stats(tracker: ProgressTracker = Depends(get_tracker)):
        return tracker.get_dashboard_stats()

    @app.get("/api/dashboard/activity")
    def dashboard_activity(limit: int = 10, tracker: ProgressTracker = Depends(get_tracker)):
        return {"activity": tracker.get_recent_activity(limit=max(1, min(limit, 50)))}


app = create_app()


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", get_settings().port))
    uvicorn.run(app, host="0.0.0.0", port=port)
