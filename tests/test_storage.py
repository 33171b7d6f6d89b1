"""
Tests for the entity store.
"""
import pytest

from errors import DuplicateEmail, NotFound, ValidationError


class TestUsers:
    def test_create_user_applies_defaults(self, store) -> None:
        """Omitted role and domain fall back to buddy/frontend."""
        user = store.create_user({"name": "Ada", "email": "ada@example.com"})

        assert user["role"] == "buddy"
        assert user["domain"] == "frontend"
        assert user["avatar_url"] is None
        assert user["created_at"] is not None
        assert store.get_user(user["id"])["email"] == "ada@example.com"

    def test_duplicate_email_rejected(self, store, db) -> None:
        """Second user with the same email fails and leaves one record."""
        store.create_user({"name": "A", "email": "a@x.com"})

        with pytest.raises(DuplicateEmail):
            store.create_user({"name": "B", "email": "a@x.com"})

        assert db.user.count_documents({"email": "a@x.com"}) == 1

    def test_invalid_enum_is_rejected_not_coerced(self, store, db) -> None:
        with pytest.raises(ValidationError) as exc_info:
            store.create_user({"name": "C", "email": "c@x.com", "role": "admin", "domain": "sales"})

        fields = {err["field"] for err in exc_info.value.errors}
        assert {"role", "domain"} <= fields
        assert db.user.count_documents({}) == 0

    def test_missing_and_malformed_ids_return_none(self, store) -> None:
        assert store.get_user("not-an-object-id") is None
        assert store.get_user("0123456789abcdef01234567") is None
        assert store.get_user_by_email("nobody@example.com") is None

    def test_update_merges_fields_and_refreshes_timestamp(self, store) -> None:
        user = store.create_user({"name": "Dan", "email": "dan@example.com", "domain": "qa"})

        before = store.get_user(user["id"])

        updated = store.update_user(user["id"], {"name": "Daniel"})

        assert updated["name"] == "Daniel"
        assert updated["domain"] == "qa"
        assert updated["updated_at"] >= before["updated_at"]

    def test_update_unknown_user_raises_not_found(self, store) -> None:
        with pytest.raises(NotFound):
            store.update_user("0123456789abcdef01234567", {"name": "Ghost"})

    def test_update_to_taken_email_rejected(self, store) -> None:
        store.create_user({"name": "E", "email": "e@example.com"})
        other = store.create_user({"name": "F", "email": "f@example.com"})

        with pytest.raises(DuplicateEmail):
            store.update_user(other["id"], {"email": "e@example.com"})

    def test_null_for_required_field_rejected(self, store) -> None:
        user = store.create_user({"name": "G", "email": "g@example.com"})

        with pytest.raises(ValidationError):
            store.update_user(user["id"], {"role": None})

    def test_delete_is_idempotent(self, store) -> None:
        user = store.create_user({"name": "H", "email": "h@example.com"})

        assert store.delete_user(user["id"]) is True
        assert store.delete_user(user["id"]) is False
        assert store.get_user(user["id"]) is None


class TestProfiles:
    def test_buddy_requires_buddy_role(self, store, make_user) -> None:
        mentor_user = make_user(role="mentor")

        with pytest.raises(ValidationError):
            store.create_buddy({"user_id": mentor_user["id"]})

    def test_buddy_requires_existing_user(self, store) -> None:
        with pytest.raises(NotFound):
            store.create_buddy({"user_id": "0123456789abcdef01234567"})

    def test_buddy_with_unknown_mentor_rejected(self, store, make_user) -> None:
        user = make_user(role="buddy")

        with pytest.raises(NotFound):
            store.create_buddy({"user_id": user["id"], "assigned_mentor_id": "0123456789abcdef01234567"})

    def test_one_buddy_profile_per_user(self, store, make_user) -> None:
        user = make_user(role="buddy")
        store.create_buddy({"user_id": user["id"]})

        with pytest.raises(ValidationError):
            store.create_buddy({"user_id": user["id"]})

    def test_buddy_defaults(self, make_buddy) -> None:
        buddy = make_buddy()

        assert buddy["status"] == "active"
        assert buddy["assigned_mentor_id"] is None
        assert buddy["join_date"] is not None

    def test_mentor_response_rate_bounds(self, store, make_user) -> None:
        user = make_user(role="mentor")

        with pytest.raises(ValidationError):
            store.create_mentor({"user_id": user["id"], "response_rate": 120})

    def test_get_mentor_reports_stats(self, store, make_mentor, make_buddy, make_task, assignments) -> None:
        mentor = make_mentor()
        active = make_buddy()
        inactive = make_buddy(status="inactive")
        assignments.assign(active["id"], mentor["id"])
        assignments.assign(inactive["id"], mentor["id"])
        make_task(mentor, active, status="completed")
        make_task(mentor, active)

        result = store.get_mentor(mentor["id"])

        assert result["user"]["role"] == "mentor"
        assert result["stats"]["total_buddies"] == 2
        assert result["stats"]["active_buddies"] == 1
        assert result["stats"]["completed_tasks"] == 1

    def test_update_buddy_status(self, store, make_buddy) -> None:
        buddy = make_buddy()

        updated = store.update_buddy(buddy["id"], {"status": "exited"})

        assert updated["status"] == "exited"
        assert updated["user"]["id"] == buddy["user_id"]

    def test_update_buddy_rejects_unknown_mentor(self, store, make_buddy) -> None:
        buddy = make_buddy()

        with pytest.raises(NotFound):
            store.update_buddy(buddy["id"], {"assigned_mentor_id": "0123456789abcdef01234567"})


class TestListFilters:
    def test_buddy_filters_combine(self, store, make_buddy) -> None:
        make_buddy(domain="frontend", name="Alice Front")
        make_buddy(domain="backend", name="Bob Back")
        make_buddy(domain="frontend", status="inactive", name="Carol Front")

        assert len(store.list_buddies()) == 3
        assert len(store.list_buddies(status="all", domain="all")) == 3
        assert {b["user"]["name"] for b in store.list_buddies(domain="frontend")} == {"Alice Front", "Carol Front"}
        assert [b["user"]["name"] for b in store.list_buddies(status="active", domain="frontend")] == ["Alice Front"]
        assert [b["user"]["name"] for b in store.list_buddies(search="bOB")] == ["Bob Back"]
        assert store.list_buddies(search="nobody") == []

    def test_buddy_search_matches_email(self, store, make_buddy) -> None:
        make_buddy(email="zed@corp.com")
        make_buddy()

        found = store.list_buddies(search="CORP")

        assert [b["user"]["email"] for b in found] == ["zed@corp.com"]

    def test_search_text_is_literal(self, store, make_buddy) -> None:
        make_buddy(name="Dot.Name")
        make_buddy(name="DotXName")

        assert [b["user"]["name"] for b in store.list_buddies(search="t.N")] == ["Dot.Name"]

    def test_unknown_filter_value_rejected(self, store) -> None:
        with pytest.raises(ValidationError):
            store.list_buddies(status="sleeping")

    def test_mentor_filters(self, store, make_mentor) -> None:
        make_mentor(domain="frontend", expertise="React, CSS", name="Mia")
        make_mentor(domain="devops", expertise="Kubernetes", name="Noah", is_active=False)

        assert [m["user"]["name"] for m in store.list_mentors(domain="devops")] == ["Noah"]
        assert [m["user"]["name"] for m in store.list_mentors(search="react")] == ["Mia"]
        assert [m["user"]["name"] for m in store.list_mentors(search="noa")] == ["Noah"]
        assert [m["user"]["name"] for m in store.list_mentors(status="active")] == ["Mia"]

    def test_task_filters(self, store, make_mentor, make_buddy, make_task) -> None:
        mentor = make_mentor()
        first, second = make_buddy(), make_buddy()
        make_task(mentor, first, title="Portfolio site", description="Use flexbox")
        make_task(mentor, second, title="REST client", status="in_progress")
        make_task(mentor, second, title="Unit tests", description="Cover the FLEXBOX layout", status="completed")

        assert len(store.list_tasks()) == 3
        assert [t["title"] for t in store.list_tasks(buddy_id=first["id"])] == ["Portfolio site"]
        assert [t["title"] for t in store.list_tasks(status="in_progress")] == ["REST client"]
        assert {t["title"] for t in store.list_tasks(search="flexbox")} == {"Portfolio site", "Unit tests"}
        assert [t["title"] for t in store.list_tasks(status="completed", search="flex")] == ["Unit tests"]


class TestTasksAndSubmissions:
    def test_task_requires_existing_buddy_and_mentor(self, store, make_mentor, make_buddy) -> None:
        mentor = make_mentor()
        buddy = make_buddy()

        with pytest.raises(NotFound):
            store.create_task({"mentor_id": mentor["id"], "buddy_id": "0123456789abcdef01234567", "title": "x"})
        with pytest.raises(NotFound):
            store.create_task({"mentor_id": "0123456789abcdef01234567", "buddy_id": buddy["id"], "title": "x"})

    def test_task_defaults_to_pending(self, make_mentor, make_buddy, make_task) -> None:
        task = make_task(make_mentor(), make_buddy())

        assert task["status"] == "pending"
        assert task["effective_status"] == "pending"
        assert task["due_date"] is None

    def test_invalid_task_status_rejected(self, store, make_mentor, make_buddy, make_task) -> None:
        task = make_task(make_mentor(), make_buddy())

        with pytest.raises(ValidationError):
            store.update_task(task["id"], {"status": "done"})

    def test_submission_defaults_buddy_from_task(self, store, make_mentor, make_buddy, make_task) -> None:
        buddy = make_buddy()
        task = make_task(make_mentor(), buddy)

        submission = store.create_submission({"task_id": task["id"], "github_link": "https://github.com/b/site"})

        assert submission["buddy_id"] == buddy["id"]

    def test_submission_for_other_buddy_rejected(self, store, make_mentor, make_buddy, make_task) -> None:
        task = make_task(make_mentor(), make_buddy())
        stranger = make_buddy()

        with pytest.raises(ValidationError):
            store.create_submission({"task_id": task["id"], "buddy_id": stranger["id"]})

    def test_submissions_listed_oldest_first(self, store, make_mentor, make_buddy, make_task) -> None:
        task = make_task(make_mentor(), make_buddy())
        store.create_submission({"task_id": task["id"], "notes": "first try"})
        store.create_submission({"task_id": task["id"], "notes": "resubmitted"})

        notes = [s["notes"] for s in store.list_submissions(task["id"])]

        assert notes == ["first try", "resubmitted"]

    def test_submission_for_unknown_task_rejected(self, store) -> None:
        with pytest.raises(NotFound):
            store.create_submission({"task_id": "0123456789abcdef01234567"})

    def test_buddy_tasks_carry_submissions(self, store, make_mentor, make_buddy, make_task) -> None:
        mentor, buddy = make_mentor(), make_buddy()
        task = make_task(mentor, buddy, title="Landing page")
        make_task(mentor, buddy, title="Blog")
        store.create_submission({"task_id": task["id"], "deployed_url": "https://landing.example"})

        tasks = {t["title"]: t for t in store.list_buddy_tasks(buddy["id"])}

        assert len(tasks["Landing page"]["submissions"]) == 1
        assert tasks["Blog"]["submissions"] == []

    def test_portfolio_joins_task_titles(self, store, make_mentor, make_buddy, make_task) -> None:
        buddy = make_buddy()
        task = make_task(make_mentor(), buddy, title="Weather app")
        store.create_submission({"task_id": task["id"], "notes": "Uses a public API"})

        portfolio = store.get_buddy_portfolio(buddy["id"])

        assert portfolio[0]["title"] == "Weather app"
        assert portfolio[0]["description"] == "Uses a public API"


class TestStoredReferences:
    """Foreign ids are stored in canonical form whatever case the caller used."""

    def test_buddy_mentor_reference_is_canonical(self, store, make_buddy, make_mentor) -> None:
        mentor = make_mentor()
        buddy = make_buddy()

        updated = store.update_buddy(buddy["id"], {"assigned_mentor_id": mentor["id"].upper()})

        assert updated["assigned_mentor_id"] == mentor["id"]
        assert [b["id"] for b in store.list_mentor_buddies(mentor["id"])] == [buddy["id"]]

    def test_created_buddy_and_mentor_store_canonical_ids(self, store, make_user, make_mentor) -> None:
        mentor = make_mentor()
        user = make_user(role="buddy")

        buddy = store.create_buddy({"user_id": user["id"].upper(), "assigned_mentor_id": mentor["id"].upper()})

        assert buddy["user_id"] == user["id"]
        assert buddy["assigned_mentor_id"] == mentor["id"]
        with pytest.raises(ValidationError):
            store.create_buddy({"user_id": user["id"]})

    def test_task_references_are_canonical(self, store, make_mentor, make_buddy) -> None:
        mentor, buddy = make_mentor(), make_buddy()

        task = store.create_task({
            "mentor_id": mentor["id"].upper(),
            "buddy_id": buddy["id"].upper(),
            "title": "Shouting ids",
            "status": "completed",
        })

        assert task["buddy_id"] == buddy["id"]
        assert [t["id"] for t in store.list_buddy_tasks(buddy["id"])] == [task["id"]]
        assert [t["id"] for t in store.list_tasks(buddy_id=buddy["id"].upper())] == [task["id"]]
        assert store.get_mentor(mentor["id"])["stats"]["completed_tasks"] == 1

    def test_submission_accepts_uppercase_ids(self, store, make_mentor, make_buddy, make_task) -> None:
        buddy = make_buddy()
        task = make_task(make_mentor(), buddy)

        submission = store.create_submission({"task_id": task["id"].upper(), "buddy_id": buddy["id"].upper()})

        assert submission["task_id"] == task["id"]
        assert len(store.list_submissions(task["id"])) == 1

    def test_user_may_keep_own_email_with_uppercase_id(self, store, make_user) -> None:
        user = make_user()

        updated = store.update_user(user["id"].upper(), {"email": user["email"]})

        assert updated["id"] == user["id"]


class TestCurriculum:
    def test_create_and_fetch(self, store, make_user) -> None:
        author = make_user(role="manager")

        item = store.create_curriculum({
            "title": "Frontend onboarding",
            "description": "First two weeks",
            "domain": "frontend",
            "created_by": author["id"].upper(),
            "content": "Read the style guide",
        })

        assert item["created_by"] == author["id"]
        assert item["attachments"] is None
        assert item["created_at"] is not None
        assert store.get_curriculum(item["id"])["title"] == "Frontend onboarding"

    def test_unknown_author_rejected(self, store) -> None:
        with pytest.raises(NotFound):
            store.create_curriculum({
                "title": "T", "description": "", "domain": "qa",
                "created_by": "0123456789abcdef01234567", "content": "",
            })

    def test_missing_fields_rejected(self, store, make_user) -> None:
        with pytest.raises(ValidationError) as exc_info:
            store.create_curriculum({"title": "T", "domain": "qa", "created_by": make_user()["id"]})

        assert {"description", "content"} <= {err["field"] for err in exc_info.value.errors}

    def test_list_filters_by_domain_and_title(self, store, make_user) -> None:
        author = make_user(role="manager")
        for title, domain in [("Docker basics", "devops"), ("Docker for QA", "qa"), ("Test plans", "qa")]:
            store.create_curriculum({
                "title": title, "description": "", "domain": domain,
                "created_by": author["id"], "content": "",
            })

        assert len(store.list_curriculum(domain="all")) == 3
        assert [c["title"] for c in store.list_curriculum(domain="qa")] == ["Docker for QA", "Test plans"]
        assert [c["title"] for c in store.list_curriculum(search="docker")] == ["Docker basics", "Docker for QA"]
        assert [c["title"] for c in store.list_curriculum(domain="qa", search="DOCKER")] == ["Docker for QA"]
        with pytest.raises(ValidationError):
            store.list_curriculum(domain="sales")

    def test_update_and_delete(self, store, make_user) -> None:
        item = store.create_curriculum({
            "title": "Old", "description": "", "domain": "hr",
            "created_by": make_user()["id"], "content": "", "attachments": "handbook.pdf",
        })

        updated = store.update_curriculum(item["id"], {"title": "New", "attachments": None})

        assert updated["title"] == "New"
        assert updated["attachments"] is None
        assert updated["domain"] == "hr"
        assert store.delete_curriculum(item["id"]) is True
        assert store.delete_curriculum(item["id"]) is False
        with pytest.raises(NotFound):
            store.update_curriculum(item["id"], {"title": "Gone"})
