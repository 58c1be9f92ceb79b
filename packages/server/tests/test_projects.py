"""
Integration tests for Project endpoints and project assignments.

Tests cover:
- Project CRUD (admin-only writes, member reads)
- Soft delete hides the project everywhere
- Project membership: context-membership precondition, duplicates, removal
"""

from __future__ import annotations

import uuid

import pytest
from pydantic import ValidationError

from nexposit_shared.schemas.common import DEFAULT_PROJECT_COLOR
from nexposit_shared.schemas.projects import ProjectCreate, ProjectUpdate


# ---------------------------------------------------------------------------
# Unit tests for project schemas
# ---------------------------------------------------------------------------


class TestProjectSchemas:
    def test_default_color(self):
        assert ProjectCreate(name="Launch").color_code == DEFAULT_PROJECT_COLOR

    @pytest.mark.parametrize("color", ["red", "#12345", "#GGGGGG", "3B82F6"])
    def test_bad_color_rejected(self, color):
        with pytest.raises(ValidationError):
            ProjectCreate(name="Launch", color_code=color)

    def test_short_name_rejected(self):
        with pytest.raises(ValidationError, match="Project name must be between 3 and 100"):
            ProjectCreate(name="ab")

    def test_update_is_partial(self):
        assert ProjectUpdate(description="x").model_dump(exclude_unset=True) == {"description": "x"}


# ---------------------------------------------------------------------------
# Integration tests
# ---------------------------------------------------------------------------


@pytest.fixture
async def workspace(make_user, make_context, join):
    alice = await make_user("alice")
    bob = await make_user("bob")
    ctx = await make_context(alice)
    await join(bob, ctx)
    return alice, bob, ctx


class TestProjectCRUD:
    async def test_admin_creates_project(self, client, workspace):
        alice, _, ctx = workspace
        resp = await client.post(
            f"/api/v1/contexts/{ctx['id']}/projects",
            json={"name": "Launch", "description": "Q3 launch", "color_code": "#FF0000"},
            headers=alice.headers,
        )
        assert resp.status_code == 201
        project = resp.json()["data"]["project"]
        assert project["context_id"] == ctx["id"]
        assert project["color_code"] == "#FF0000"

    async def test_member_cannot_create(self, client, workspace):
        _, bob, ctx = workspace
        resp = await client.post(
            f"/api/v1/contexts/{ctx['id']}/projects", json={"name": "Rogue"}, headers=bob.headers
        )
        assert resp.status_code == 403
        assert resp.json()["error"] == "Only admins can create projects"

    async def test_non_member_cannot_list(self, client, workspace, make_user):
        _, _, ctx = workspace
        eve = await make_user("eve")
        resp = await client.get(f"/api/v1/contexts/{ctx['id']}/projects", headers=eve.headers)
        assert resp.status_code == 403

    async def test_member_lists_and_reads(self, client, workspace, make_project):
        alice, bob, ctx = workspace
        first = await make_project(alice, ctx["id"], "First")
        await make_project(alice, ctx["id"], "Second")

        listed = await client.get(f"/api/v1/contexts/{ctx['id']}/projects", headers=bob.headers)
        assert listed.status_code == 200
        assert {p["name"] for p in listed.json()["data"]["projects"]} == {"First", "Second"}

        got = await client.get(f"/api/v1/projects/{first['id']}", headers=bob.headers)
        assert got.status_code == 200
        assert got.json()["data"]["project"]["name"] == "First"

    async def test_update(self, client, workspace, make_project):
        alice, bob, ctx = workspace
        project = await make_project(alice, ctx["id"])

        resp = await client.patch(
            f"/api/v1/projects/{project['id']}",
            json={"color_code": "#00FF00"},
            headers=alice.headers,
        )
        assert resp.status_code == 200
        updated = resp.json()["data"]["project"]
        assert updated["color_code"] == "#00FF00"
        assert updated["name"] == "Launch"

        denied = await client.patch(
            f"/api/v1/projects/{project['id']}", json={"name": "Mine"}, headers=bob.headers
        )
        assert denied.status_code == 403

    async def test_soft_delete_hides_project(self, client, workspace, make_project):
        alice, _, ctx = workspace
        project = await make_project(alice, ctx["id"])

        resp = await client.delete(f"/api/v1/projects/{project['id']}", headers=alice.headers)
        assert resp.status_code == 200
        assert resp.json()["message"] == "Project deleted successfully"

        gone = await client.get(f"/api/v1/projects/{project['id']}", headers=alice.headers)
        assert gone.status_code == 404
        listed = await client.get(f"/api/v1/contexts/{ctx['id']}/projects", headers=alice.headers)
        assert listed.json()["data"]["projects"] == []

    async def test_member_cannot_delete(self, client, workspace, make_project):
        alice, bob, ctx = workspace
        project = await make_project(alice, ctx["id"])
        resp = await client.delete(f"/api/v1/projects/{project['id']}", headers=bob.headers)
        assert resp.status_code == 403

    async def test_unknown_project(self, client, workspace):
        alice, _, _ = workspace
        resp = await client.get(f"/api/v1/projects/{uuid.uuid4()}", headers=alice.headers)
        assert resp.status_code == 404


class TestProjectMembers:
    async def test_add_list_remove(self, client, workspace, make_project):
        alice, bob, ctx = workspace
        project = await make_project(alice, ctx["id"])

        added = await client.post(
            f"/api/v1/projects/{project['id']}/members",
            json={"user_id": str(bob.id)},
            headers=alice.headers,
        )
        assert added.status_code == 201

        listed = await client.get(f"/api/v1/projects/{project['id']}/members", headers=bob.headers)
        assert [m["user_id"] for m in listed.json()["data"]["members"]] == [str(bob.id)]

        removed = await client.delete(
            f"/api/v1/projects/{project['id']}/members/{bob.id}", headers=alice.headers
        )
        assert removed.status_code == 200
        listed = await client.get(f"/api/v1/projects/{project['id']}/members", headers=bob.headers)
        assert listed.json()["data"]["members"] == []

    async def test_must_be_context_member_first(self, client, workspace, make_project, make_user):
        alice, _, ctx = workspace
        project = await make_project(alice, ctx["id"])
        eve = await make_user("eve")

        resp = await client.post(
            f"/api/v1/projects/{project['id']}/members",
            json={"user_id": str(eve.id)},
            headers=alice.headers,
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "User must be a member of the context first"

    async def test_duplicate_assignment_conflicts(
        self, client, workspace, make_project, add_to_project
    ):
        alice, bob, ctx = workspace
        project = await make_project(alice, ctx["id"])
        await add_to_project(alice, project, bob)

        resp = await client.post(
            f"/api/v1/projects/{project['id']}/members",
            json={"user_id": str(bob.id)},
            headers=alice.headers,
        )
        assert resp.status_code == 409

    async def test_remove_unassigned(self, client, workspace, make_project):
        alice, bob, ctx = workspace
        project = await make_project(alice, ctx["id"])
        resp = await client.delete(
            f"/api/v1/projects/{project['id']}/members/{bob.id}", headers=alice.headers
        )
        assert resp.status_code == 404
        assert resp.json()["error"] == "User is not a member of this project"

    async def test_member_cannot_assign(self, client, workspace, make_project):
        alice, bob, ctx = workspace
        project = await make_project(alice, ctx["id"])
        resp = await client.post(
            f"/api/v1/projects/{project['id']}/members",
            json={"user_id": str(bob.id)},
            headers=bob.headers,
        )
        assert resp.status_code == 403
