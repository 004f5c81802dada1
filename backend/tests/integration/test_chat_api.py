"""
API tests for the visitor and admin chat endpoints.
"""

import pytest
from httpx import ASGITransport, AsyncClient

from app.api.deps import (
    get_auth_provider,
    get_chat_service,
    get_chat_session_repository,
    get_department_repository,
    get_knowledge_repository,
)
from app.infrastructure.local.mock_auth import MockAuthProvider
from app.models.department import DepartmentCreate
from main import create_app

ADMIN = {"Authorization": "Bearer dev_admin"}
AGENT = {"Authorization": "Bearer agent:kim"}
VISITOR = {"Authorization": "Bearer asha"}


@pytest.fixture
async def client(chat_service, session_repo, department_repo, knowledge_repo, settings):
    settings.AUTO_ROUTE_ON_OPEN = True
    app = create_app()
    app.dependency_overrides[get_chat_service] = lambda: chat_service
    app.dependency_overrides[get_chat_session_repository] = lambda: session_repo
    app.dependency_overrides[get_department_repository] = lambda: department_repo
    app.dependency_overrides[get_knowledge_repository] = lambda: knowledge_repo
    app.dependency_overrides[get_auth_provider] = lambda: MockAuthProvider(enabled=True)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def _open(client, message="need help", **extra):
    response = await client.post("/api/v1/chat", json={"message": message, **extra})
    assert response.status_code == 200, response.text
    return response.json()


class TestVisitorFlow:
    @pytest.mark.asyncio
    async def test_open_reply_resolve_rate(self, client, department_repo):
        await department_repo.create(DepartmentCreate(name="General", slug="general"))

        opened = await _open(client, visitor_name="Asha", visitor_email="asha@example.com")
        assert opened["status"] == "ASSIGNED"
        chat_id = opened["session_id"]

        reply = await client.post(
            "/api/v1/admin/chat", json={"chat_id": chat_id, "message": "hi Asha"}, headers=AGENT
        )
        assert reply.status_code == 200
        assert reply.json()["message"]["sender_id"] == "kim"

        transcript = await client.get("/api/v1/chat", params={"session_id": chat_id})
        assert transcript.status_code == 200
        messages = transcript.json()["messages"]
        assert [m["body"] for m in messages] == ["need help", "hi Asha"]
        assert messages[1]["read_at"] is not None

        resolved = await client.patch(
            "/api/v1/admin/chat", json={"chat_id": chat_id, "status": "RESOLVED"}, headers=AGENT
        )
        assert resolved.status_code == 200
        assert resolved.json()["status"] == "RESOLVED"

        rated = await client.post(
            "/api/v1/chat/rate", json={"session_id": chat_id, "rating": 5, "comment": "great"}
        )
        assert rated.status_code == 200
        again = await client.post("/api/v1/chat/rate", json={"session_id": chat_id, "rating": 3})
        assert again.status_code == 409
        assert again.json()["detail"]["error"] == "AlreadyRatedError"

    @pytest.mark.asyncio
    async def test_reopen_reports_flag(self, client):
        opened = await _open(client)
        chat_id = opened["session_id"]
        await client.patch(
            "/api/v1/admin/chat", json={"chat_id": chat_id, "status": "CLOSED"}, headers=ADMIN
        )

        response = await client.post("/api/v1/chat", json={"session_id": chat_id, "message": "again"})

        assert response.status_code == 200
        assert response.json()["status"] == "WAITING"
        assert response.json()["reopened"] is True

    @pytest.mark.asyncio
    async def test_unknown_session_404(self, client):
        response = await client.post(
            "/api/v1/chat",
            json={"session_id": "00000000-0000-0000-0000-000000000000", "message": "hello"},
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_transition_409(self, client):
        opened = await _open(client)
        response = await client.patch(
            "/api/v1/admin/chat",
            json={"chat_id": opened["session_id"], "status": "RESOLVED"},
            headers=ADMIN,
        )
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_cancel(self, client):
        opened = await _open(client)
        response = await client.post("/api/v1/chat/cancel", json={"session_id": opened["session_id"]})
        assert response.status_code == 200
        assert response.json()["status"] == "CLOSED"

    @pytest.mark.asyncio
    async def test_rating_out_of_range_rejected(self, client):
        opened = await _open(client)
        response = await client.post(
            "/api/v1/chat/rate", json={"session_id": opened["session_id"], "rating": 9}
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_visitor_message_types_limited(self, client):
        image = await client.post(
            "/api/v1/chat",
            json={"message": "screenshot", "message_type": "IMAGE", "file_url": "https://cdn.example.com/a.png"},
        )
        assert image.status_code == 200
        assert image.json()["message"]["message_type"] == "IMAGE"

        for forged in ("SYSTEM", "KNOWLEDGE_BASE"):
            response = await client.post("/api/v1/chat", json={"message": "hi", "message_type": forged})
            assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_offline_flag_reported(self, client):
        opened = await _open(client)
        assert opened["is_offline_message"] is True


class TestAdminAccess:
    @pytest.mark.asyncio
    async def test_visitor_cannot_list(self, client):
        response = await client.get("/api/v1/admin/chat", headers=VISITOR)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        response = await client.get("/api/v1/admin/chat")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_list_and_analytics(self, client):
        await _open(client, message="one")
        await _open(client, message="two")

        listing = await client.get("/api/v1/admin/chat", params={"limit": 1}, headers=AGENT)
        assert listing.status_code == 200
        body = listing.json()
        assert body["total"] == 2
        assert body["pages"] == 2
        assert len(body["sessions"]) == 1

        analytics = await client.get("/api/v1/admin/chat/analytics", params={"days": 7}, headers=AGENT)
        assert analytics.status_code == 200
        summary = analytics.json()
        assert summary["total_chats"] == 2
        assert summary["active_chats"] == 2
        assert set(summary["rating_distribution"]) == {"1", "2", "3", "4", "5"}

    @pytest.mark.asyncio
    async def test_agent_cannot_create_department(self, client):
        response = await client.post(
            "/api/v1/admin/chat/departments", json={"name": "Sales", "slug": "sales"}, headers=AGENT
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_department_routes_not_shadowed(self, client):
        created = await client.post(
            "/api/v1/admin/chat/departments", json={"name": "Sales", "slug": "sales"}, headers=ADMIN
        )
        assert created.status_code == 201

        listing = await client.get("/api/v1/admin/chat/departments", headers=AGENT)
        assert listing.status_code == 200
        assert [d["slug"] for d in listing.json()] == ["sales"]

        duplicate = await client.post(
            "/api/v1/admin/chat/departments", json={"name": "Sales", "slug": "sales"}, headers=ADMIN
        )
        assert duplicate.status_code == 409

        bad_slug = await client.post(
            "/api/v1/admin/chat/departments", json={"name": "Bad", "slug": "Not A Slug"}, headers=ADMIN
        )
        assert bad_slug.status_code == 422

        deleted = await client.delete(
            f"/api/v1/admin/chat/departments/{created.json()['id']}", headers=ADMIN
        )
        assert deleted.status_code == 200
        assert deleted.json()["detached_sessions"] == 0

    @pytest.mark.asyncio
    async def test_agent_cannot_send_system_message(self, client):
        opened = await _open(client)
        response = await client.post(
            "/api/v1/admin/chat",
            json={"chat_id": opened["session_id"], "message": "Session closed", "message_type": "SYSTEM"},
            headers=AGENT,
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_agent_sets_only_own_availability(self, client):
        created = await client.post(
            "/api/v1/admin/chat/departments", json={"name": "Sales", "slug": "sales"}, headers=ADMIN
        )
        department_id = created.json()["id"]
        for agent_id in ("kim", "lee"):
            added = await client.post(
                f"/api/v1/admin/chat/departments/{department_id}/agents",
                json={"agent_id": agent_id},
                headers=ADMIN,
            )
            assert added.status_code == 201

        other = await client.patch(
            f"/api/v1/admin/chat/departments/{department_id}/agents/lee",
            json={"is_available": False},
            headers=AGENT,
        )
        assert other.status_code == 403

        own = await client.patch(
            f"/api/v1/admin/chat/departments/{department_id}/agents/kim",
            json={"is_available": False},
            headers=AGENT,
        )
        assert own.status_code == 200
        assert own.json()["is_available"] is False

        by_admin = await client.patch(
            f"/api/v1/admin/chat/departments/{department_id}/agents/lee",
            json={"is_available": False},
            headers=ADMIN,
        )
        assert by_admin.status_code == 200


class TestKnowledgeBaseApi:
    @pytest.mark.asyncio
    async def test_admin_create_and_public_search(self, client):
        created = await client.post(
            "/api/v1/admin/chat/knowledge-base",
            json={"title": "Reset password", "content": "Use the forgot link.", "keywords": ["login"]},
            headers=ADMIN,
        )
        assert created.status_code == 201
        article_id = created.json()["id"]

        found = await client.get("/api/v1/chat/knowledge-base", params={"q": "login"})
        assert found.status_code == 200
        assert [a["id"] for a in found.json()] == [article_id]
        assert "views" not in found.json()[0]

        feedback = await client.post(
            f"/api/v1/chat/knowledge-base/{article_id}/feedback", json={"helpful": True}
        )
        assert feedback.status_code == 204

        fetched = await client.get(f"/api/v1/admin/chat/knowledge-base/{article_id}", headers=AGENT)
        assert fetched.json()["helpful"] == 1

    @pytest.mark.asyncio
    async def test_agent_sends_article(self, client):
        created = await client.post(
            "/api/v1/admin/chat/knowledge-base",
            json={"title": "Shipping", "content": "Ships in 2 days."},
            headers=ADMIN,
        )
        opened = await _open(client, message="when will it ship?")

        response = await client.post(
            "/api/v1/admin/chat",
            json={"chat_id": opened["session_id"], "article_id": created.json()["id"]},
            headers=AGENT,
        )

        assert response.status_code == 200
        assert response.json()["message"]["message_type"] == "KNOWLEDGE_BASE"


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
