import pytest
from httpx import ASGITransport, AsyncClient

from trackhub.main import create_app
from trackhub.services.identity import create_access_token

API = "/api/v1"


@pytest.fixture
async def client(settings, container):
    app = create_app(settings, container)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
def auth(settings):
    def _auth(user) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user, settings)}"}

    return _auth


# ===================================================================
#  Envelope and plumbing
# ===================================================================
class TestPlumbing:
    async def test_health(self, client):
        response = await client.get(f"{API}/health")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["status"] == "healthy"

    async def test_request_id_is_echoed(self, client):
        response = await client.get(f"{API}/health", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"
        assert "X-Process-Time" in response.headers

    async def test_request_id_is_generated(self, client):
        response = await client.get(f"{API}/health")

        assert response.headers["X-Request-ID"]

    async def test_unknown_route(self, client):
        response = await client.get(f"{API}/nope")

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": f"Route {API}/nope not found"}

    async def test_missing_token(self, client):
        response = await client.get(f"{API}/projects")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert response.json() == {"success": False, "message": "Access token required"}

    async def test_bad_token(self, client):
        response = await client.get(f"{API}/projects", headers={"Authorization": "Bearer garbage"})

        assert response.status_code == 401
        assert response.json()["success"] is False


# ===================================================================
#  Projects and items
# ===================================================================
class TestProjectEndpoints:
    async def test_create_and_list(self, client, auth, alice):
        created = await client.post(f"{API}/projects", json={"name": "Alpha", "key": "alpha"}, headers=auth(alice))

        assert created.status_code == 201
        assert created.json()["data"]["key"] == "ALPHA"

        listed = await client.get(f"{API}/projects", headers=auth(alice))
        body = listed.json()
        assert [p["key"] for p in body["data"]] == ["ALPHA"]
        assert body["pagination"] == {
            "currentPage": 1,
            "totalPages": 1,
            "totalItems": 1,
            "itemsPerPage": 50,
            "hasNextPage": False,
            "hasPrevPage": False,
        }

    async def test_validation_error_envelope(self, client, auth, alice):
        response = await client.post(f"{API}/projects", json={"name": "", "key": "A"}, headers=auth(alice))

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Validation error"
        assert any(e.startswith("name:") for e in body["errors"])
        assert any(e.startswith("key:") for e in body["errors"])

    async def test_key_is_not_updatable(self, client, auth, alice, project):
        response = await client.put(f"{API}/projects/{project.id}", json={"key": "NEW"}, headers=auth(alice))

        assert response.status_code == 400

    async def test_duplicate_key_conflict(self, client, auth, bob, project):
        response = await client.post(f"{API}/projects", json={"name": "x", "key": "ALPHA"}, headers=auth(bob))

        assert response.status_code == 409
        assert response.json() == {"success": False, "message": "Project key already exists"}

    async def test_forbidden_and_not_found(self, client, auth, project, make_user):
        dave = await make_user("dave")

        forbidden = await client.get(f"{API}/projects/{project.id}", headers=auth(dave))
        missing = await client.get(f"{API}/projects/missing", headers=auth(dave))

        assert forbidden.status_code == 403
        assert forbidden.json()["message"] == "Project access required"
        assert missing.status_code == 404
        assert missing.json()["message"] == "Project not found"

    async def test_item_lifecycle(self, client, auth, project, alice, bob, carol):
        created = await client.post(
            f"{API}/projects/{project.id}/items",
            json={"title": "Login", "priority": "high"},
            headers=auth(bob),
        )
        item = created.json()["data"]
        assert created.status_code == 201
        assert item["key"] == "ALPHA-1"

        status = await client.put(
            f"{API}/items/{item['id']}/status", json={"status": "review"}, headers=auth(bob)
        )
        assert status.json()["data"]["status"] == "review"

        viewer = await client.put(f"{API}/items/{item['id']}", json={"title": "x"}, headers=auth(carol))
        assert viewer.status_code == 403

        comment = await client.post(
            f"{API}/items/{item['id']}/comments", json={"content": "@bob ship it"}, headers=auth(carol)
        )
        assert comment.json()["data"]["mentioned_user_ids"] == [bob.id]

        mentions = await client.get(f"{API}/users/{bob.id}/mentions?unread_only=true", headers=auth(bob))
        assert mentions.json()["pagination"]["totalItems"] == 1

        deleted = await client.delete(f"{API}/items/{item['id']}", headers=auth(alice))
        assert deleted.status_code == 200
        gone = await client.get(f"{API}/items/{item['id']}", headers=auth(alice))
        assert gone.status_code == 404


# ===================================================================
#  Tags and users
# ===================================================================
class TestTagAndUserEndpoints:
    async def test_tag_delete_conflict_then_force(self, client, auth, project, alice, bob):
        tag = (
            await client.post(f"{API}/projects/{project.id}/tags", json={"name": "api"}, headers=auth(bob))
        ).json()["data"]
        await client.post(
            f"{API}/projects/{project.id}/items",
            json={"title": "x", "tag_ids": [tag["id"]]},
            headers=auth(bob),
        )

        conflict = await client.delete(f"{API}/tags/{tag['id']}", headers=auth(alice))
        assert conflict.status_code == 409

        forced = await client.delete(f"{API}/tags/{tag['id']}/force", headers=auth(alice))
        assert forced.status_code == 200
        assert forced.json()["data"] == {"removed_from_items": 1}

    async def test_user_responses_hide_password(self, client, auth, alice):
        response = await client.get(f"{API}/users/{alice.id}", headers=auth(alice))

        assert response.status_code == 200
        assert "password_hash" not in response.json()["data"]

    async def test_admin_only_listing(self, client, auth, admin, alice):
        denied = await client.get(f"{API}/users", headers=auth(alice))
        allowed = await client.get(f"{API}/users", headers=auth(admin))

        assert denied.status_code == 403
        assert allowed.status_code == 200
        assert {u["username"] for u in allowed.json()["data"]} == {"admin", "alice"}

    async def test_deleting_owner_transfers_projects_to_admin(self, client, auth, admin, project, alice):
        response = await client.delete(f"{API}/users/{alice.id}", headers=auth(admin))

        assert response.status_code == 200
        project_response = await client.get(f"{API}/projects/{project.id}", headers=auth(admin))
        assert project_response.json()["data"]["owner_id"] == admin.id


# ===================================================================
#  Auth
# ===================================================================
class TestAuthEndpoints:
    async def test_register_then_me(self, client):
        response = await client.post(
            f"{API}/auth/register",
            json={"username": "dave", "email": "dave@example.com", "password": "secret1", "role": "admin"},
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["user"]["role"] == "developer"
        assert "password_hash" not in data["user"]
        assert data["token_type"] == "bearer"

        me = await client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"})
        assert me.status_code == 200
        assert me.json()["data"]["username"] == "dave"

    async def test_register_short_password(self, client):
        response = await client.post(
            f"{API}/auth/register",
            json={"username": "dave", "email": "dave@example.com", "password": "123"},
        )

        assert response.status_code == 400

    async def test_login_records_activity(self, client, container, alice):
        response = await client.post(
            f"{API}/auth/login", json={"email": "alice@example.com", "password": "correct-horse"}
        )

        assert response.status_code == 200
        assert response.json()["data"]["user"]["last_active_at"] is not None
        assert (await container.users.find_by_id(alice.id)).last_active_at is not None

    @pytest.mark.parametrize(
        "email,password",
        [("alice@example.com", "wrong-horse"), ("nobody@example.com", "correct-horse")],
    )
    async def test_login_failure(self, client, alice, email, password):
        response = await client.post(f"{API}/auth/login", json={"email": email, "password": password})

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"

    async def test_refresh(self, client, alice):
        tokens = (
            await client.post(f"{API}/auth/login", json={"email": "alice@example.com", "password": "correct-horse"})
        ).json()["data"]

        refreshed = await client.post(f"{API}/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        wrong_type = await client.post(f"{API}/auth/refresh", json={"refresh_token": tokens["access_token"]})

        assert refreshed.status_code == 200
        assert refreshed.json()["data"]["access_token"]
        assert wrong_type.status_code == 401
        assert wrong_type.json()["message"] == "Invalid token type"

    async def test_refresh_token_is_not_an_access_token(self, client, alice):
        tokens = (
            await client.post(f"{API}/auth/login", json={"email": "alice@example.com", "password": "correct-horse"})
        ).json()["data"]

        response = await client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {tokens['refresh_token']}"})

        assert response.status_code == 401

    async def test_update_profile(self, client, auth, alice):
        response = await client.put(
            f"{API}/auth/me", json={"profile": {"first_name": "Alice"}}, headers=auth(alice)
        )

        assert response.status_code == 200
        assert response.json()["data"]["profile"] == {"first_name": "Alice"}

    async def test_change_password(self, client, auth, alice):
        wrong = await client.put(
            f"{API}/auth/password",
            json={"current_password": "nope", "new_password": "battery-staple"},
            headers=auth(alice),
        )
        changed = await client.put(
            f"{API}/auth/password",
            json={"current_password": "correct-horse", "new_password": "battery-staple"},
            headers=auth(alice),
        )
        login = await client.post(
            f"{API}/auth/login", json={"email": "alice@example.com", "password": "battery-staple"}
        )

        assert wrong.status_code == 400
        assert changed.status_code == 200
        assert login.status_code == 200

    async def test_logout(self, client, auth, alice):
        response = await client.post(f"{API}/auth/logout", headers=auth(alice))

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Successfully logged out"}
