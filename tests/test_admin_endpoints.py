from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from app.models import FollowupEntry, IntentDefinition, KnowledgeEntry, Message, ReplyTemplate
from app.services.config_cache import ConfigLoadError


class TestIntentEndpoints:
    def test_create_and_list(self, client, db):
        response = client.post(
            "/admin/intents",
            json={"name": "CHECKIN", "description": "체크인 문의", "is_action": True},
        )

        assert response.json() == {"success": True}
        listed = client.get("/admin/intents").json()
        assert listed == [
            {"id": 1, "name": "CHECKIN", "description": "체크인 문의", "is_action": True, "is_complaint_like": False}
        ]

    def test_duplicate_name_returns_500(self, client, db):
        client.post("/admin/intents", json={"name": "CHECKIN"})

        response = client.post("/admin/intents", json={"name": "CHECKIN"})

        assert response.status_code == 500
        assert "error" in response.json()

    def test_update_and_delete(self, client, db):
        db.add(IntentDefinition(name="PARTY"))
        db.commit()

        response = client.put("/admin/intents/1", json={"description": "파티 문의", "is_complaint_like": True})
        assert response.json() == {"success": True}
        db.expire_all()
        intent = db.get(IntentDefinition, 1)
        assert intent.description == "파티 문의"
        assert intent.is_complaint_like is True

        assert client.delete("/admin/intents/1").json() == {"success": True}
        db.expire_all()
        assert db.query(IntentDefinition).count() == 0

    def test_update_unknown_returns_404(self, client, db):
        assert client.put("/admin/intents/99", json={}).status_code == 404


class TestTemplateEndpoints:
    def test_list_filters_by_intent_and_active(self, client, db):
        db.add_all(
            [
                ReplyTemplate(intent_name="NIGHT_DEFER", message="B", sort_order=2),
                ReplyTemplate(intent_name="NIGHT_DEFER", message="A", sort_order=1),
                ReplyTemplate(intent_name="NIGHT_DEFER", message="hidden", is_active=False),
                ReplyTemplate(intent_name="COMPLAINT", message="C"),
            ]
        )
        db.commit()

        listed = client.get("/admin/templates", params={"intent": "NIGHT_DEFER"}).json()

        assert [t["message"] for t in listed] == ["A", "B"]

    def test_create_update_delete(self, client, db):
        client.post("/admin/templates", json={"intent_name": "COMPLAINT", "message": "죄송합니다"})

        response = client.put(
            "/admin/templates/1",
            json={"intent_name": "COMPLAINT", "sub_intent": None, "display_label": "기본", "message": "정말 죄송합니다"},
        )
        assert response.json() == {"success": True}
        db.expire_all()
        assert db.get(ReplyTemplate, 1).message == "정말 죄송합니다"

        client.delete("/admin/templates/1")
        db.expire_all()
        assert db.query(ReplyTemplate).count() == 0

    def test_edits_apply_after_reload(self, client, db, fresh_config_cache):
        client.post("/admin/templates", json={"intent_name": "COMPLAINT", "message": "v1"})
        client.post("/admin/reload-config")
        assert fresh_config_cache.get().first_template("COMPLAINT").message == "v1"

        client.put("/admin/templates/1", json={"intent_name": "COMPLAINT", "message": "v2"})
        assert fresh_config_cache.get().first_template("COMPLAINT").message == "v1"

        client.post("/admin/reload-config")
        assert fresh_config_cache.get().first_template("COMPLAINT").message == "v2"


class TestKnowledgeEndpoints:
    def test_create_list_and_update_bumps_updated_at(self, client, db):
        old = datetime(2025, 1, 1, tzinfo=timezone.utc)
        db.add(KnowledgeEntry(category="PARTY", title="파티", content="8시", created_at=old, updated_at=old))
        db.commit()
        client.post("/admin/knowledge", json={"category": "CHECKIN", "title": "체크인", "content": "4시"})

        assert [k["title"] for k in client.get("/admin/knowledge", params={"intent": "PARTY"}).json()] == ["파티"]

        client.put("/admin/knowledge/1", json={"category": "PARTY", "title": "파티 시간", "content": "저녁 8시"})
        db.expire_all()
        entry = db.get(KnowledgeEntry, 1)
        assert entry.title == "파티 시간"
        assert entry.updated_at.replace(tzinfo=timezone.utc) > old

    def test_delete(self, client, db):
        client.post("/admin/knowledge", json={"category": "PARTY", "title": "파티", "content": "8시"})

        assert client.delete("/admin/knowledge/1").json() == {"success": True}
        assert client.get("/admin/knowledge").json() == []


@pytest.fixture
def followups(db):
    base = datetime(2025, 12, 3, tzinfo=timezone.utc)
    first = Message(direction="IN", phone_number="01011112222", text="방이 추워요", intent="COMPLAINT", guest_state="CHECKED_IN")
    second = Message(direction="IN", phone_number="01033334444", text="체크인 변경", intent="CHECKIN")
    db.add_all([first, second])
    db.flush()
    db.add_all(
        [
            FollowupEntry(message_id=first.id, reason="COMPLAINT", created_at=base),
            FollowupEntry(message_id=second.id, reason="NIGHT_ACTION", status="RESOLVED", created_at=base + timedelta(hours=1)),
        ]
    )
    db.commit()
    return db


class TestFollowupEndpoints:
    def test_list_newest_first_with_message(self, client, followups):
        listed = client.get("/admin/followups", params={"status": "ALL"}).json()

        assert [f["reason"] for f in listed] == ["NIGHT_ACTION", "COMPLAINT"]
        assert listed[1]["message"]["phone_number"] == "01011112222"
        assert listed[1]["message"]["text"] == "방이 추워요"
        assert listed[1]["message"]["guest_state"] == "CHECKED_IN"
        assert listed[1]["message"]["intent"] == "COMPLAINT"

    def test_filters(self, client, followups):
        assert [f["reason"] for f in client.get("/admin/followups", params={"status": "PENDING"}).json()] == ["COMPLAINT"]
        assert [f["id"] for f in client.get("/admin/followups", params={"reason": "NIGHT_ACTION"}).json()] == [2]

    def test_patch_resolves(self, client, followups):
        response = client.patch("/admin/followups/1", json={"status": "RESOLVED", "memo": "히터 점검 완료"})

        assert response.json() == {"success": True}
        followups.expire_all()
        entry = followups.get(FollowupEntry, 1)
        assert entry.status == "RESOLVED"
        assert entry.memo == "히터 점검 완료"
        assert entry.resolved_at is not None

    def test_patch_dismiss_closes_and_reopen_clears(self, client, followups):
        client.patch("/admin/followups/1", json={"status": "DISMISSED"})

        followups.expire_all()
        assert followups.get(FollowupEntry, 1).resolved_at is not None

        client.patch("/admin/followups/1", json={"status": "PENDING"})

        followups.expire_all()
        entry = followups.get(FollowupEntry, 1)
        assert entry.status == "PENDING"
        assert entry.resolved_at is None

    def test_patch_memo_only(self, client, followups):
        client.patch("/admin/followups/1", json={"memo": "내일 연락"})

        followups.expire_all()
        entry = followups.get(FollowupEntry, 1)
        assert entry.status == "PENDING"
        assert entry.memo == "내일 연락"

    def test_patch_without_fields_returns_400(self, client, followups):
        response = client.patch("/admin/followups/1", json={})

        assert response.status_code == 400
        assert response.json() == {"error": "no fields to update"}

    def test_patch_invalid_transition_returns_400(self, client, followups):
        response = client.patch("/admin/followups/2", json={"status": "IN_PROGRESS"})

        assert response.status_code == 400
        assert "RESOLVED -> IN_PROGRESS" in response.json()["error"]

    def test_patch_unknown_status_returns_400(self, client, followups):
        assert client.patch("/admin/followups/1", json={"status": "DONE"}).status_code == 400

    def test_patch_unknown_id_returns_404(self, client, followups):
        assert client.patch("/admin/followups/99", json={"memo": "x"}).status_code == 404


class TestReloadConfig:
    def test_failure_returns_500(self, client, fresh_config_cache):
        with patch.object(fresh_config_cache, "load", side_effect=ConfigLoadError("relation \"intents\" does not exist")):
            response = client.post("/admin/reload-config")

        assert response.status_code == 500
        assert response.json() == {"error": 'relation "intents" does not exist'}
