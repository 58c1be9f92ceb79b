"""
Tests for posts: scheduling rules, creator/admin gating and the approval
transition (pending -> approved, never back).
"""

from __future__ import annotations

import uuid
from datetime import date, timedelta

import pytest
from pydantic import ValidationError

from app.models.project import Project
from app.services.posts import today_utc
from nexposit_shared.schemas.common import PostStatus
from nexposit_shared.schemas.posts import PostCreate, validate_publish_window, validate_transition


def _day(offset: int) -> str:
    return (today_utc() + timedelta(days=offset)).isoformat()


# ---------------------------------------------------------------------------
# Unit tests for the rules
# ---------------------------------------------------------------------------


class TestPublishWindow:
    TODAY = date(2026, 3, 1)

    @pytest.mark.parametrize("offset", [0, 1, 59, 60])
    def test_inside_window(self, offset):
        valid, _ = validate_publish_window(self.TODAY + timedelta(days=offset), self.TODAY)
        assert valid

    def test_past_rejected(self):
        valid, msg = validate_publish_window(self.TODAY - timedelta(days=1), self.TODAY)
        assert not valid
        assert msg == "Publish date cannot be in the past"

    def test_beyond_horizon_rejected(self):
        valid, msg = validate_publish_window(self.TODAY + timedelta(days=61), self.TODAY)
        assert not valid
        assert "60 days" in msg

    def test_custom_horizon(self):
        valid, _ = validate_publish_window(self.TODAY + timedelta(days=8), self.TODAY, horizon_days=7)
        assert not valid


class TestApprovalTransition:
    def test_pending_to_approved(self):
        assert validate_transition(PostStatus.PENDING, PostStatus.APPROVED) == (True, "")

    def test_approved_is_terminal(self):
        valid, msg = validate_transition(PostStatus.APPROVED, PostStatus.APPROVED)
        assert not valid
        assert msg == "Post is already approved"

    def test_no_way_back(self):
        valid, _ = validate_transition(PostStatus.APPROVED, PostStatus.PENDING)
        assert not valid


class TestPostCreateSchema:
    def test_slot_and_time_exclusive(self):
        with pytest.raises(ValidationError, match="Cannot specify both time slot and specific time"):
            PostCreate(
                title="Launch",
                publish_date=date(2026, 3, 1),
                publish_time_slot="morning",
                specific_time="09:30",
            )

    def test_title_length(self):
        with pytest.raises(ValidationError):
            PostCreate(title="ab", publish_date=date(2026, 3, 1))


# ---------------------------------------------------------------------------
# Integration tests
# ---------------------------------------------------------------------------


@pytest.fixture
async def board(make_user, make_context, make_project, join, add_to_project):
    """Admin Alice, assigned member Bob, unassigned member Carol, one project."""
    alice = await make_user("alice")
    bob = await make_user("bob")
    carol = await make_user("carol")
    ctx = await make_context(alice)
    await join(bob, ctx)
    await join(carol, ctx)
    project = await make_project(alice, ctx["id"])
    await add_to_project(alice, project, bob)
    return alice, bob, carol, ctx, project


@pytest.fixture
def create_post(client):
    async def _create(user, project, offset: int = 1, title: str = "Teaser", **extra):
        return await client.post(
            f"/api/v1/projects/{project['id']}/posts",
            json={"title": title, "publish_date": _day(offset), **extra},
            headers=user.headers,
        )

    return _create


class TestCreatePost:
    async def test_assigned_member_creates_pending_post(self, board, create_post):
        _, bob, _, _, project = board
        resp = await create_post(bob, project, publish_time_slot="morning")
        assert resp.status_code == 201
        post = resp.json()["data"]["post"]
        assert post["status"] == "pending"
        assert post["created_by"] == str(bob.id)
        assert post["publish_time_slot"] == "morning"
        assert post["project"]["name"] == "Launch"
        assert post["created_by_user"]["full_name"] == "Bob"

    async def test_admin_need_not_be_assigned(self, board, create_post):
        alice, _, _, _, project = board
        resp = await create_post(alice, project)
        assert resp.status_code == 201

    async def test_unassigned_member_forbidden(self, board, create_post):
        _, _, carol, _, project = board
        resp = await create_post(carol, project)
        assert resp.status_code == 403
        assert resp.json()["error"] == "You must be assigned to this project to create posts"

    async def test_non_member_forbidden(self, board, create_post, make_user):
        _, _, _, _, project = board
        eve = await make_user("eve")
        resp = await create_post(eve, project)
        assert resp.status_code == 403

    @pytest.mark.parametrize("offset", [0, 60])
    async def test_window_edges_accepted(self, board, create_post, offset):
        _, bob, _, _, project = board
        resp = await create_post(bob, project, offset=offset)
        assert resp.status_code == 201

    @pytest.mark.parametrize("offset", [-1, 61])
    async def test_outside_window_rejected(self, board, create_post, offset):
        _, bob, _, _, project = board
        resp = await create_post(bob, project, offset=offset)
        assert resp.status_code == 400

    async def test_slot_and_time_rejected(self, board, create_post):
        _, bob, _, _, project = board
        resp = await create_post(
            bob, project, publish_time_slot="evening", specific_time="18:00:00"
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "Cannot specify both time slot and specific time"

    async def test_unknown_slot_rejected(self, board, create_post):
        _, bob, _, _, project = board
        resp = await create_post(bob, project, publish_time_slot="midnight")
        assert resp.status_code == 400


class TestUpdateAndDelete:
    async def test_creator_edits_own_pending_post(self, client, board, create_post):
        _, bob, _, _, project = board
        post = (await create_post(bob, project)).json()["data"]["post"]

        resp = await client.patch(
            f"/api/v1/posts/{post['id']}", json={"title": "Better teaser"}, headers=bob.headers
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["post"]["title"] == "Better teaser"

    async def test_choosing_time_clears_slot(self, client, board, create_post):
        _, bob, _, _, project = board
        post = (await create_post(bob, project, publish_time_slot="noon")).json()["data"]["post"]

        resp = await client.patch(
            f"/api/v1/posts/{post['id']}", json={"specific_time": "14:15:00"}, headers=bob.headers
        )
        updated = resp.json()["data"]["post"]
        assert updated["specific_time"] == "14:15:00"
        assert updated["publish_time_slot"] is None

    async def test_update_rejects_both_times(self, client, board, create_post):
        _, bob, _, _, project = board
        post = (await create_post(bob, project)).json()["data"]["post"]
        resp = await client.patch(
            f"/api/v1/posts/{post['id']}",
            json={"publish_time_slot": "noon", "specific_time": "14:15:00"},
            headers=bob.headers,
        )
        assert resp.status_code == 400

    async def test_update_checks_new_date(self, client, board, create_post):
        _, bob, _, _, project = board
        post = (await create_post(bob, project)).json()["data"]["post"]
        resp = await client.patch(
            f"/api/v1/posts/{post['id']}", json={"publish_date": _day(90)}, headers=bob.headers
        )
        assert resp.status_code == 400

    async def test_other_member_cannot_edit(self, client, board, create_post, add_to_project):
        alice, bob, carol, _, project = board
        await add_to_project(alice, project, carol)
        post = (await create_post(bob, project)).json()["data"]["post"]

        resp = await client.patch(
            f"/api/v1/posts/{post['id']}", json={"title": "Hijacked"}, headers=carol.headers
        )
        assert resp.status_code == 403
        deleted = await client.delete(f"/api/v1/posts/{post['id']}", headers=carol.headers)
        assert deleted.status_code == 403

    async def test_creator_locked_out_after_approval(self, client, board, create_post):
        alice, bob, _, _, project = board
        post = (await create_post(bob, project)).json()["data"]["post"]
        await client.patch(f"/api/v1/posts/{post['id']}/approve", headers=alice.headers)

        resp = await client.patch(
            f"/api/v1/posts/{post['id']}", json={"title": "Too late"}, headers=bob.headers
        )
        assert resp.status_code == 403
        assert resp.json()["error"] == (
            "You can only edit your own pending posts. Admins can edit any post."
        )
        deleted = await client.delete(f"/api/v1/posts/{post['id']}", headers=bob.headers)
        assert deleted.status_code == 403

    async def test_admin_edits_and_deletes_approved_post(self, client, board, create_post):
        alice, bob, _, _, project = board
        post = (await create_post(bob, project)).json()["data"]["post"]
        await client.patch(f"/api/v1/posts/{post['id']}/approve", headers=alice.headers)

        edited = await client.patch(
            f"/api/v1/posts/{post['id']}", json={"title": "Final copy"}, headers=alice.headers
        )
        assert edited.status_code == 200
        assert edited.json()["data"]["post"]["status"] == "approved"

        deleted = await client.delete(f"/api/v1/posts/{post['id']}", headers=alice.headers)
        assert deleted.status_code == 200
        gone = await client.get(f"/api/v1/posts/{post['id']}", headers=alice.headers)
        assert gone.status_code == 404

    async def test_creator_deletes_own_pending_post(self, client, board, create_post):
        _, bob, _, _, project = board
        post = (await create_post(bob, project)).json()["data"]["post"]
        resp = await client.delete(f"/api/v1/posts/{post['id']}", headers=bob.headers)
        assert resp.status_code == 200
        assert resp.json()["message"] == "Post deleted successfully"


class TestApproval:
    async def test_admin_approves_once(self, client, board, create_post):
        alice, bob, _, _, project = board
        post = (await create_post(bob, project)).json()["data"]["post"]

        resp = await client.patch(f"/api/v1/posts/{post['id']}/approve", headers=alice.headers)
        assert resp.status_code == 200
        approved = resp.json()["data"]["post"]
        assert approved["status"] == "approved"
        assert approved["approved_by"] == str(alice.id)
        assert approved["approved_at"] is not None
        assert approved["approved_by_user"]["full_name"] == "Alice"

        again = await client.patch(f"/api/v1/posts/{post['id']}/approve", headers=alice.headers)
        assert again.status_code == 409
        assert again.json()["error"] == "Post is already approved"

    async def test_member_cannot_approve(self, client, board, create_post):
        _, bob, _, _, project = board
        post = (await create_post(bob, project)).json()["data"]["post"]
        resp = await client.patch(f"/api/v1/posts/{post['id']}/approve", headers=bob.headers)
        assert resp.status_code == 403
        assert resp.json()["error"] == "Only admins can approve posts"

    async def test_unknown_post(self, client, board):
        alice, *_ = board
        resp = await client.patch(f"/api/v1/posts/{uuid.uuid4()}/approve", headers=alice.headers)
        assert resp.status_code == 404


class TestListingAndVisibility:
    async def test_project_posts_ordered_by_date(self, client, board, create_post):
        _, bob, _, _, project = board
        await create_post(bob, project, offset=5, title="Later")
        await create_post(bob, project, offset=2, title="Sooner")

        resp = await client.get(f"/api/v1/projects/{project['id']}/posts", headers=bob.headers)
        assert [p["title"] for p in resp.json()["data"]["posts"]] == ["Sooner", "Later"]

    async def test_context_posts_status_filter(self, client, board, create_post):
        alice, bob, _, ctx, project = board
        first = (await create_post(bob, project, title="First")).json()["data"]["post"]
        await create_post(bob, project, title="Second")
        await client.patch(f"/api/v1/posts/{first['id']}/approve", headers=alice.headers)

        everything = await client.get(f"/api/v1/contexts/{ctx['id']}/posts", headers=bob.headers)
        assert len(everything.json()["data"]["posts"]) == 2

        approved = await client.get(
            f"/api/v1/contexts/{ctx['id']}/posts", params={"status": "approved"}, headers=bob.headers
        )
        assert [p["title"] for p in approved.json()["data"]["posts"]] == ["First"]

    async def test_posts_of_hidden_project_disappear(self, client, board, create_post, db):
        alice, bob, _, ctx, project = board
        post = (await create_post(bob, project)).json()["data"]["post"]

        row = await db.get(Project, uuid.UUID(project["id"]))
        row.is_hidden = True
        db.add(row)
        await db.commit()

        got = await client.get(f"/api/v1/posts/{post['id']}", headers=alice.headers)
        assert got.status_code == 404
        listed = await client.get(f"/api/v1/contexts/{ctx['id']}/posts", headers=alice.headers)
        assert listed.json()["data"]["posts"] == []

    async def test_non_member_cannot_read_post(self, client, board, create_post, make_user):
        _, bob, _, _, project = board
        post = (await create_post(bob, project)).json()["data"]["post"]
        eve = await make_user("eve")
        resp = await client.get(f"/api/v1/posts/{post['id']}", headers=eve.headers)
        assert resp.status_code == 403


class TestSharedCalendarScenario:
    async def test_member_drafts_admin_approves_member_locked(self, client, board, create_post):
        """Bob drafts, Alice approves, Bob can no longer change it, Alice still can."""
        alice, bob, _, ctx, project = board
        post = (await create_post(bob, project, offset=3, publish_time_slot="evening")).json()[
            "data"
        ]["post"]

        pending = await client.get(
            f"/api/v1/contexts/{ctx['id']}/posts", params={"status": "pending"}, headers=alice.headers
        )
        assert [p["id"] for p in pending.json()["data"]["posts"]] == [post["id"]]

        approve = await client.patch(f"/api/v1/posts/{post['id']}/approve", headers=alice.headers)
        assert approve.status_code == 200

        locked = await client.patch(
            f"/api/v1/posts/{post['id']}", json={"publish_date": _day(4)}, headers=bob.headers
        )
        assert locked.status_code == 403

        moved = await client.patch(
            f"/api/v1/posts/{post['id']}", json={"publish_date": _day(4)}, headers=alice.headers
        )
        assert moved.status_code == 200
        assert moved.json()["data"]["post"]["publish_date"] == _day(4)

    async def test_owner_scenario_end_to_end(self, client, make_user, make_context, join):
        alice = await make_user("alice")
        bob = await make_user("bob")
        ctx = await make_context(alice, "Acme")
        assert ctx["is_owner"] is True and ctx["user_role"] == "admin"
        await join(bob, ctx)

        project = (
            await client.post(
                f"/api/v1/contexts/{ctx['id']}/projects", json={"name": "Launch"}, headers=alice.headers
            )
        ).json()["data"]["project"]
        assert project["color_code"] == "#3B82F6"
        await client.post(
            f"/api/v1/projects/{project['id']}/members",
            json={"user_id": str(bob.id)},
            headers=alice.headers,
        )

        created = await client.post(
            f"/api/v1/projects/{project['id']}/posts",
            json={"title": "Ship v1", "publish_date": _day(5), "publish_time_slot": "morning"},
            headers=bob.headers,
        )
        post = created.json()["data"]["post"]
        assert post["status"] == "pending"

        approved = await client.patch(f"/api/v1/posts/{post['id']}/approve", headers=alice.headers)
        assert approved.json()["data"]["post"]["approved_by"] == str(alice.id)

        assert (await client.delete(f"/api/v1/posts/{post['id']}", headers=bob.headers)).status_code == 403
        assert (await client.delete(f"/api/v1/posts/{post['id']}", headers=alice.headers)).status_code == 200
