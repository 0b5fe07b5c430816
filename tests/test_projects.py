"""
Project submissions, reviews and XP awards
"""
from unittest.mock import AsyncMock, patch

from pymongo.errors import PyMongoError

from app import config


async def cohort(make_group, make_user):
    admin = await make_user(role="admin")
    group = await make_group(name="G1", admin=admin)
    alice = await make_user(username="alice", group=group)
    return admin, group, alice


async def submit(client, headers, student, **overrides):
    body = {
        "title": "Weather app",
        "description": "Forecasts from a public API",
        "githubUrl": "https://github.com/alice/weather",
        "technologies": [" React ", "Node"],
    }
    body.update(overrides)
    response = await client.post("/api/projects", headers=headers(student), json=body)
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestSubmit:
    async def test_submit_copies_group(self, client, make_group, make_user, headers):
        _, group, alice = await cohort(make_group, make_user)

        project = await submit(client, headers, alice)

        assert project["studentId"] == str(alice["_id"])
        assert project["groupId"] == str(group["_id"])
        assert project["status"] == "submitted"
        assert project["xpAwarded"] == 0
        assert project["technologies"] == ["React", "Node"]
        assert project["studentName"] == "alice"
        assert project["groupName"] == "G1"

    async def test_student_without_group(self, client, make_user, headers):
        loner = await make_user()
        response = await client.post("/api/projects", headers=headers(loner), json={
            "title": "Solo",
            "description": "No cohort",
        })
        assert response.status_code == 400
        assert response.json() == {"message": "Student must be assigned to a group to submit projects"}

    async def test_url_rules(self, client, make_group, make_user, headers):
        _, _, alice = await cohort(make_group, make_user)
        response = await client.post("/api/projects", headers=headers(alice), json={
            "title": "Bad links",
            "description": "Wrong hosts",
            "githubUrl": "https://gitlab.com/alice/x",
            "liveUrl": "ftp://example.com",
        })
        assert response.status_code == 400
        errors = {e["field"]: e["message"] for e in response.json()["errors"]}
        assert errors == {
            "githubUrl": "Must be a valid GitHub URL",
            "liveUrl": "Must be a valid URL",
        }

    async def test_only_students_submit(self, client, make_group, make_user, headers):
        admin, _, _ = await cohort(make_group, make_user)
        response = await client.post("/api/projects", headers=headers(admin), json={
            "title": "Admin project",
            "description": "Not allowed",
        })
        assert response.status_code == 403
        assert response.json() == {"message": "Access denied. Required role: student"}


class TestReview:
    async def test_approval_awards_xp(self, client, db, make_group, make_user, headers):
        admin, _, alice = await cohort(make_group, make_user)
        project = await submit(client, headers, alice)

        response = await client.put(
            f"/api/projects/{project['id']}",
            headers=headers(admin),
            json={"status": "approved", "xpAwarded": 50, "reviewNotes": "Nice work"},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "approved"
        assert data["reviewedBy"] == str(admin["_id"])
        assert data["reviewedAt"] is not None
        assert data["reviewerName"] == admin["username"]

        stored = await db.users.find_one({"_id": alice["_id"]})
        assert stored["xp"] == 50
        assert stored["level"] == 1

    async def test_reapproval_does_not_double_award(self, client, db, make_group, make_user, headers):
        admin, _, alice = await cohort(make_group, make_user)
        project = await submit(client, headers, alice)
        url = f"/api/projects/{project['id']}"

        await client.put(url, headers=headers(admin), json={"status": "approved", "xpAwarded": 120})
        await client.put(url, headers=headers(admin), json={"status": "approved", "xpAwarded": 120})

        stored = await db.users.find_one({"_id": alice["_id"]})
        assert stored["xp"] == 120
        assert stored["level"] == 2

    async def test_uses_previously_set_xp(self, client, db, make_group, make_user, headers):
        admin, _, alice = await cohort(make_group, make_user)
        project = await submit(client, headers, alice)
        url = f"/api/projects/{project['id']}"

        await client.put(url, headers=headers(admin), json={"status": "under_review", "xpAwarded": 30})
        await client.put(url, headers=headers(admin), json={"status": "approved"})

        stored = await db.users.find_one({"_id": alice["_id"]})
        assert stored["xp"] == 30

    async def test_reapproval_after_rejection_pays_once(self, client, db, make_group, make_user, headers):
        admin, _, alice = await cohort(make_group, make_user)
        project = await submit(client, headers, alice)
        url = f"/api/projects/{project['id']}"

        await client.put(url, headers=headers(admin), json={"status": "approved", "xpAwarded": 50})
        await client.put(url, headers=headers(admin), json={"status": "rejected"})
        response = await client.put(url, headers=headers(admin), json={"status": "approved"})

        data = response.json()["data"]
        assert data["status"] == "approved"
        assert data["xpAwarded"] == 50
        assert data["xpCredited"] == 50
        stored = await db.users.find_one({"_id": alice["_id"]})
        assert stored["xp"] == 50

    async def test_changing_award_on_approved_project(self, client, db, make_group, make_user, headers):
        admin, _, alice = await cohort(make_group, make_user)
        project = await submit(client, headers, alice)
        url = f"/api/projects/{project['id']}"
        await client.put(url, headers=headers(admin), json={"status": "approved", "xpAwarded": 50})

        raised = await client.put(url, headers=headers(admin), json={"xpAwarded": 80})
        assert raised.json()["data"]["xpCredited"] == 80
        stored = await db.users.find_one({"_id": alice["_id"]})
        assert stored["xp"] == 80

        lowered = await client.put(url, headers=headers(admin), json={"xpAwarded": 30})
        assert lowered.json()["data"]["xpCredited"] == 30
        stored = await db.users.find_one({"_id": alice["_id"]})
        assert stored["xp"] == 30
        assert stored["level"] == 1

    async def test_award_change_before_approval_pays_nothing(self, client, db, make_group, make_user, headers):
        admin, _, alice = await cohort(make_group, make_user)
        project = await submit(client, headers, alice)

        response = await client.put(
            f"/api/projects/{project['id']}",
            headers=headers(admin),
            json={"xpAwarded": 70},
        )

        assert response.json()["data"]["xpCredited"] == 0
        stored = await db.users.find_one({"_id": alice["_id"]})
        assert stored["xp"] == 0

    async def test_superadmin_edits_and_reviews(self, client, db, make_group, make_user, headers, superadmin_headers):
        _, _, alice = await cohort(make_group, make_user)
        project = await submit(client, headers, alice)

        response = await client.put(
            f"/api/projects/{project['id']}",
            headers=superadmin_headers,
            json={"title": "Weather app (final)", "status": "approved", "xpAwarded": 150, "reviewNotes": "Ship it"},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["title"] == "Weather app (final)"
        assert data["status"] == "approved"
        assert data["reviewNotes"] == "Ship it"
        assert data["reviewedBy"] == config.SUPERADMIN_ID
        assert data["reviewerName"] == config.SUPERADMIN_USERNAME
        assert data["reviewedAt"] is not None

        stored = await db.users.find_one({"_id": alice["_id"]})
        assert stored["xp"] == 150
        assert stored["level"] == 2

    async def test_rejection_stamps_review_without_xp(self, client, db, make_group, make_user, headers):
        admin, _, alice = await cohort(make_group, make_user)
        project = await submit(client, headers, alice)

        response = await client.put(
            f"/api/projects/{project['id']}",
            headers=headers(admin),
            json={"status": "rejected", "xpAwarded": 40},
        )

        data = response.json()["data"]
        assert data["status"] == "rejected"
        assert data["reviewedAt"] is not None
        stored = await db.users.find_one({"_id": alice["_id"]})
        assert stored["xp"] == 0

    async def test_student_cannot_self_approve(self, client, db, make_group, make_user, headers):
        _, _, alice = await cohort(make_group, make_user)
        project = await submit(client, headers, alice)

        response = await client.put(
            f"/api/projects/{project['id']}",
            headers=headers(alice),
            json={"title": "Weather app v2", "status": "approved", "xpAwarded": 1000},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["title"] == "Weather app v2"
        assert data["status"] == "submitted"
        assert data["reviewedAt"] is None
        stored = await db.users.find_one({"_id": alice["_id"]})
        assert stored["xp"] == 0

    async def test_admin_cannot_edit_content(self, client, make_group, make_user, headers):
        admin, _, alice = await cohort(make_group, make_user)
        project = await submit(client, headers, alice)

        response = await client.put(
            f"/api/projects/{project['id']}",
            headers=headers(admin),
            json={"title": "Hijacked"},
        )

        assert response.status_code == 200
        assert response.json()["data"]["title"] == "Weather app"

    async def test_admin_of_other_group(self, client, make_group, make_user, headers):
        _, _, alice = await cohort(make_group, make_user)
        other_admin = await make_user(role="admin")
        await make_group(name="G2", admin=other_admin)
        project = await submit(client, headers, alice)

        response = await client.put(
            f"/api/projects/{project['id']}",
            headers=headers(other_admin),
            json={"status": "approved", "xpAwarded": 10},
        )

        assert response.status_code == 403
        assert response.json() == {"message": "Access denied to this project"}

    async def test_failed_xp_credit_reverts_project(self, client, db, make_group, make_user, headers):
        admin, _, alice = await cohort(make_group, make_user)
        project = await submit(client, headers, alice)

        with patch(
            "app.projects.project_service.increment_xp",
            new=AsyncMock(side_effect=PyMongoError("write failed")),
        ):
            response = await client.put(
                f"/api/projects/{project['id']}",
                headers=headers(admin),
                json={"status": "approved", "xpAwarded": 50},
            )

        assert response.status_code == 500
        stored = await db.projects.find_one({"title": "Weather app"})
        assert stored["status"] == "submitted"
        assert stored.get("reviewedBy") is None
        assert stored["xpAwarded"] == 0


class TestReadAndDelete:
    async def test_scoped_listing(self, client, make_group, make_user, headers, superadmin_headers):
        admin, group, alice = await cohort(make_group, make_user)
        bob = await make_user(group=group)
        await submit(client, headers, alice, title="Alice's")
        await submit(client, headers, bob, title="Bob's")

        mine = await client.get("/api/projects", headers=headers(alice))
        assert [p["title"] for p in mine.json()["data"]] == ["Alice's"]

        admin_view = await client.get("/api/projects", headers=headers(admin))
        assert len(admin_view.json()["data"]) == 2

        everything = await client.get("/api/projects", headers=superadmin_headers)
        assert len(everything.json()["data"]) == 2

    async def test_status_filter(self, client, make_group, make_user, headers):
        admin, _, alice = await cohort(make_group, make_user)
        first = await submit(client, headers, alice, title="First")
        await submit(client, headers, alice, title="Second")
        await client.put(f"/api/projects/{first['id']}", headers=headers(admin), json={"status": "rejected"})

        response = await client.get("/api/projects?status=rejected", headers=headers(admin))

        assert [p["title"] for p in response.json()["data"]] == ["First"]

    async def test_other_students_project_is_hidden(self, client, make_group, make_user, headers):
        _, group, alice = await cohort(make_group, make_user)
        bob = await make_user(group=group)
        project = await submit(client, headers, alice)

        response = await client.get(f"/api/projects/{project['id']}", headers=headers(bob))

        assert response.status_code == 404
        assert response.json() == {"message": "Project not found"}

    async def test_owner_deletes(self, client, db, make_group, make_user, headers):
        _, _, alice = await cohort(make_group, make_user)
        project = await submit(client, headers, alice)

        response = await client.delete(f"/api/projects/{project['id']}", headers=headers(alice))

        assert response.status_code == 200
        assert await db.projects.count_documents({}) == 0

    async def test_other_student_cannot_delete(self, client, db, make_group, make_user, headers):
        _, group, alice = await cohort(make_group, make_user)
        bob = await make_user(group=group)
        project = await submit(client, headers, alice)

        response = await client.delete(f"/api/projects/{project['id']}", headers=headers(bob))

        assert response.status_code == 403
        assert await db.projects.count_documents({}) == 1
