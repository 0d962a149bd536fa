"""
Tests for content item endpoints.
"""
from datetime import date, timedelta

import pytest

from content_review.logging_config import get_logger
from content_review.main import app
from content_review.models import ContentItem
from content_review.policies import DEFAULT_POLICIES, SELECT, PolicyEngine, get_policy_engine


def new_item_payload(assignee_id, **overrides):
    payload = {
        "title": "Spring launch",
        "caption": "New collection drops Friday",
        "content_type": "Reel",
        "media_url": "https://drive.google.com/file/d/reel42/view",
        "schedule_date": (date.today() + timedelta(days=3)).isoformat(),
        "assigned_to": assignee_id,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def lifecycle_log(caplog):
    logger = get_logger("lifecycle").logger
    logger.propagate = True
    with caplog.at_level("INFO", logger="content_review.lifecycle"):
        yield caplog
    logger.propagate = False


def decisions(caplog):
    return [r.getMessage() for r in caplog.records if r.name == "content_review.lifecycle"]


class TestCreateContentItem:
    """Test content creation."""

    def test_admin_creates_pending_item(self, client, admin_headers, admin_user, client_user):
        response = client.post(
            "/api/content-items",
            headers=admin_headers,
            json=new_item_payload(client_user.id),
        )
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "Pending"
        assert data["assigned_to"] == client_user.id
        assert data["created_by"] == admin_user.id
        assert data["assigned_to_profile"]["email"] == "client@example.com"
        assert data["archived"] is False

    def test_requested_status_is_ignored(self, client, db, admin_headers, client_user):
        response = client.post(
            "/api/content-items",
            headers=admin_headers,
            json=new_item_payload(client_user.id, status="Approved"),
        )
        assert response.status_code == 201
        assert response.json()["status"] == "Pending"

        stored = db.query(ContentItem).filter(ContentItem.id == response.json()["id"]).one()
        assert stored.status == "Pending"

    def test_client_cannot_create(self, client, db, client_headers, client_user):
        response = client.post(
            "/api/content-items",
            headers=client_headers,
            json=new_item_payload(client_user.id),
        )
        assert response.status_code == 403
        assert response.json()["error_code"] == "FORBIDDEN"
        assert db.query(ContentItem).count() == 0

    def test_unauthenticated_cannot_create(self, client, client_user):
        response = client.post("/api/content-items", json=new_item_payload(client_user.id))
        assert response.status_code == 401

    def test_assignee_is_required(self, client, admin_headers, client_user):
        payload = new_item_payload(client_user.id)
        del payload["assigned_to"]
        response = client.post("/api/content-items", headers=admin_headers, json=payload)
        assert response.status_code == 422
        body = response.json()
        assert body["error_code"] == "VALIDATION_ERROR"
        assert "assigned_to" in body["details"]["fields"]

    def test_unknown_assignee_rejected(self, client, admin_headers):
        response = client.post(
            "/api/content-items",
            headers=admin_headers,
            json=new_item_payload("no-such-profile"),
        )
        assert response.status_code == 422
        assert response.json()["details"] == {"field": "assigned_to"}

    def test_content_type_is_constrained(self, client, admin_headers, client_user):
        response = client.post(
            "/api/content-items",
            headers=admin_headers,
            json=new_item_payload(client_user.id, content_type="Carousel"),
        )
        assert response.status_code == 422


class TestReadContentItems:
    """Test visibility through the API."""

    def test_client_sees_only_assigned_items(
        self, client, make_item, admin_user, client_user, other_client, client_headers
    ):
        mine = make_item(admin_user, client_user)
        make_item(admin_user, other_client)

        response = client.get("/api/content-items", headers=client_headers)
        assert response.status_code == 200
        data = response.json()
        assert [i["id"] for i in data["items"]] == [mine.id]

    def test_admin_sees_everything(self, client, make_item, admin_user, client_user, other_client, admin_headers):
        make_item(admin_user, client_user)
        make_item(admin_user, other_client)

        response = client.get("/api/content-items", headers=admin_headers)
        assert len(response.json()["items"]) == 2

    def test_other_clients_item_is_not_found(self, client, pending_item, other_headers):
        response = client.get(f"/api/content-items/{pending_item.id}", headers=other_headers)
        assert response.status_code == 404

    def test_counts_split_current_and_archived(self, client, make_item, admin_user, client_user, client_headers):
        make_item(admin_user, client_user, schedule_date=date.today() - timedelta(days=1))
        make_item(admin_user, client_user, schedule_date=date.today())
        make_item(admin_user, client_user, schedule_date=date.today() + timedelta(days=7))

        data = client.get("/api/content-items", headers=client_headers).json()
        assert data["current_count"] == 2
        assert data["archived_count"] == 1
        assert [i["archived"] for i in data["items"]] == [True, False, False]

    def test_list_view_hides_approved_and_archived(
        self, client, db, make_item, admin_user, client_user, client_headers
    ):
        approved = make_item(admin_user, client_user)
        approved.status = "Approved"
        db.commit()
        make_item(admin_user, client_user, schedule_date=date.today() - timedelta(days=2))
        pending = make_item(admin_user, client_user)

        data = client.get("/api/content-items?view=list", headers=client_headers).json()
        assert data["view"] == "list"
        assert [i["id"] for i in data["items"]] == [pending.id]

    def test_archive_groups_by_year(self, client, make_item, admin_user, client_user, client_headers):
        make_item(admin_user, client_user, schedule_date=date(2024, 2, 14))
        make_item(admin_user, client_user, schedule_date=date(2023, 12, 25))
        make_item(admin_user, client_user)

        data = client.get("/api/content-items/archive", headers=client_headers).json()
        assert list(data["years"]) == ["2024", "2023"]
        assert len(data["years"]["2023"][date(2023, 12, 1).strftime("%B")]) == 1

    def test_by_type_groups(self, client, make_item, admin_user, client_user, client_headers):
        make_item(admin_user, client_user, content_type="TikTok")

        data = client.get("/api/content-items/by-type", headers=client_headers).json()
        assert len(data["groups"]["TikTok"]) == 1
        assert data["groups"]["Post"] == []


class TestReviewDecisions:
    """Test approve and reject."""

    def test_assignee_approves(self, client, pending_item, client_headers):
        response = client.post(f"/api/content-items/{pending_item.id}/approve", headers=client_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "Approved"
        assert data["rejection_notes"] is None
        assert data["rejected_at"] is None

    def test_admin_approves(self, client, pending_item, admin_headers):
        response = client.post(f"/api/content-items/{pending_item.id}/approve", headers=admin_headers)
        assert response.json()["status"] == "Approved"

    def test_other_client_cannot_review(self, client, db, pending_item, other_headers):
        response = client.post(f"/api/content-items/{pending_item.id}/approve", headers=other_headers)
        assert response.status_code == 404
        db.refresh(pending_item)
        assert pending_item.status == "Pending"

    def test_reject_with_notes(self, client, pending_item, client_headers):
        response = client.post(
            f"/api/content-items/{pending_item.id}/reject",
            headers=client_headers,
            json={"rejection_notes": "Wrong brand colours"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "Rejected"
        assert data["rejection_notes"] == "Wrong brand colours"
        assert data["rejected_at"] is not None

    def test_reject_without_notes_fails(self, client, db, pending_item, client_headers):
        response = client.post(
            f"/api/content-items/{pending_item.id}/reject",
            headers=client_headers,
            json={"rejection_notes": "  "},
        )
        assert response.status_code == 422
        assert response.json()["details"] == {"field": "rejection_notes"}
        db.refresh(pending_item)
        assert pending_item.status == "Pending"

    def test_decision_is_final(self, client, pending_item, client_headers):
        client.post(f"/api/content-items/{pending_item.id}/approve", headers=client_headers)
        response = client.post(
            f"/api/content-items/{pending_item.id}/reject",
            headers=client_headers,
            json={"rejection_notes": "Actually no"},
        )
        assert response.status_code == 409
        assert response.json()["error_code"] == "INVALID_TRANSITION"


class TestEditContentItem:
    """Test the editorial update."""

    def test_admin_edits_and_reassigns(self, client, pending_item, admin_headers, other_client):
        response = client.patch(
            f"/api/content-items/{pending_item.id}",
            headers=admin_headers,
            json={"caption": "Updated caption", "assigned_to": other_client.id},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["caption"] == "Updated caption"
        assert data["assigned_to"] == other_client.id
        assert data["status"] == "Pending"

    def test_assignee_cannot_edit_caption(self, client, db, pending_item, client_headers):
        response = client.patch(
            f"/api/content-items/{pending_item.id}",
            headers=client_headers,
            json={"caption": "Sneaky edit"},
        )
        assert response.status_code == 403
        db.refresh(pending_item)
        assert pending_item.caption == "Launch teaser"

    def test_status_cannot_be_patched(self, client, db, pending_item, admin_headers):
        response = client.patch(
            f"/api/content-items/{pending_item.id}",
            headers=admin_headers,
            json={"status": "Approved"},
        )
        assert response.status_code == 200
        assert response.json()["status"] == "Pending"


class TestReviewAuditLog:
    """Decisions are logged only once they are stored."""

    def test_approval_logged_after_commit(self, client, pending_item, client_user, client_headers, lifecycle_log):
        response = client.post(f"/api/content-items/{pending_item.id}/approve", headers=client_headers)
        assert response.status_code == 200

        assert decisions(lifecycle_log) == ["Content approved"]
        record = lifecycle_log.records[-1]
        assert record.context["content_item_id"] == pending_item.id
        assert record.context["principal_id"] == client_user.id

    def test_rejection_logged(self, client, pending_item, admin_headers, lifecycle_log):
        client.post(
            f"/api/content-items/{pending_item.id}/reject",
            headers=admin_headers,
            json={"rejection_notes": "Wrong aspect ratio"},
        )
        assert decisions(lifecycle_log) == ["Content rejected"]

    def test_denied_review_is_not_logged(self, client, db, pending_item, client_headers, lifecycle_log):
        read_only = PolicyEngine([p for p in DEFAULT_POLICIES if p.command == SELECT])
        app.dependency_overrides[get_policy_engine] = lambda: read_only
        try:
            response = client.post(f"/api/content-items/{pending_item.id}/approve", headers=client_headers)
        finally:
            app.dependency_overrides.pop(get_policy_engine, None)

        assert response.status_code == 403
        assert decisions(lifecycle_log) == []
        db.refresh(pending_item)
        assert pending_item.status == "Pending"

    def test_edit_is_not_a_decision(self, client, pending_item, admin_headers, lifecycle_log):
        client.patch(
            f"/api/content-items/{pending_item.id}",
            headers=admin_headers,
            json={"caption": "New caption"},
        )
        assert decisions(lifecycle_log) == []
