"""
NoteCraft Backend: Auth and Notes API Tests (SQLite)
======================================================

What:  Register, login and the notes endpoints against a real (in-memory,
       aiosqlite) database, so ownership filtering runs as actual SQL.

What we test:
    ✅ Register/login happy paths and their 400 messages
    ✅ Login lockout answers 429 with Retry-After
    ✅ Notes CRUD, ordering and X-Total-Count
    ✅ Another user's note is a 404 for every operation
    ✅ Server-side corrections with the snapshot guard
    ✅ /health
"""

import uuid

import pytest

from notecraft.services.corrections import snapshot_token


async def register(client, email="ann@example.com", password="pw1234"):
    response = await client.post("/api/auth/register", json={"email": email, "password": password})
    assert response.status_code == 201, response.text
    return response.json()


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


async def create_note(client, headers, title="Groceries", content="milk, eggs"):
    response = await client.post("/api/notes", json={"title": title, "content": content}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestAuthApi:

    @pytest.mark.asyncio
    async def test_register_returns_token_and_user(self, test_client):
        body = await register(test_client, email="Ann@Example.com")

        assert body["user"]["email"] == "ann@example.com"
        assert body["token"]
        notes = await test_client.get("/api/notes", headers=bearer(body["token"]))
        assert notes.status_code == 200

    @pytest.mark.asyncio
    async def test_duplicate_email(self, test_client):
        await register(test_client)
        response = await test_client.post(
            "/api/auth/register", json={"email": "ANN@example.com", "password": "other1"}
        )
        assert response.status_code == 400
        assert response.json()["message"] == "User already exists"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload,message",
        [
            ({"email": "not-an-email", "password": "pw1234"}, "Please provide a valid email address"),
            ({"email": "ann@example.com", "password": "12345"}, "Password must be at least 6 characters long"),
            ({"password": "pw1234"}, "Please provide a valid email address"),
        ],
    )
    async def test_register_validation(self, test_client, payload, message):
        response = await test_client.post("/api/auth/register", json=payload)
        assert response.status_code == 400
        assert response.json()["message"] == message

    @pytest.mark.asyncio
    async def test_login(self, test_client):
        registered = await register(test_client)
        response = await test_client.post(
            "/api/auth/login", json={"email": "ann@example.com", "password": "pw1234"}
        )

        assert response.status_code == 200
        assert response.json()["user"]["id"] == registered["user"]["id"]

    @pytest.mark.asyncio
    async def test_login_failures_are_indistinguishable(self, test_client):
        await register(test_client)
        wrong_password = await test_client.post(
            "/api/auth/login", json={"email": "ann@example.com", "password": "nope12"}
        )
        unknown_user = await test_client.post(
            "/api/auth/login", json={"email": "bob@example.com", "password": "pw1234"}
        )

        assert wrong_password.status_code == unknown_user.status_code == 400
        assert wrong_password.json()["message"] == unknown_user.json()["message"] == "Invalid credentials"

    @pytest.mark.asyncio
    async def test_login_lockout(self, test_client, test_app):
        await register(test_client)
        limit = test_app.state.login_limiter.limit
        for _ in range(limit):
            response = await test_client.post(
                "/api/auth/login", json={"email": "ann@example.com", "password": "nope12"}
            )
            assert response.status_code == 400

        # Even the right password is refused while locked out
        response = await test_client.post(
            "/api/auth/login", json={"email": "ann@example.com", "password": "pw1234"}
        )
        assert response.status_code == 429
        assert int(response.headers["Retry-After"]) > 0


class TestNotesApi:

    @pytest.mark.asyncio
    async def test_crud_flow(self, test_client):
        headers = bearer((await register(test_client))["token"])

        note = await create_note(test_client, headers, title="  Plan  ", content="<p>Draft</p>")
        assert note["title"] == "Plan"
        assert note["content"] == "<p>Draft</p>"

        fetched = await test_client.get(f"/api/notes/{note['id']}", headers=headers)
        assert fetched.status_code == 200
        assert fetched.json()["id"] == note["id"]

        updated = await test_client.put(
            f"/api/notes/{note['id']}",
            json={"title": "Plan v2", "content": "Final"},
            headers=headers,
        )
        assert updated.status_code == 200
        assert updated.json()["title"] == "Plan v2"
        assert updated.json()["content"] == "Final"

        deleted = await test_client.delete(f"/api/notes/{note['id']}", headers=headers)
        assert deleted.status_code == 200
        assert deleted.json() == {"message": "Note deleted successfully"}

        gone = await test_client.get(f"/api/notes/{note['id']}", headers=headers)
        assert gone.status_code == 404

    @pytest.mark.asyncio
    async def test_list_most_recently_edited_first(self, test_client):
        headers = bearer((await register(test_client))["token"])
        first = await create_note(test_client, headers, title="first")
        await create_note(test_client, headers, title="second")
        await test_client.put(
            f"/api/notes/{first['id']}", json={"title": "first, edited", "content": ""}, headers=headers
        )

        response = await test_client.get("/api/notes", headers=headers)

        assert response.headers["X-Total-Count"] == "2"
        assert [n["title"] for n in response.json()] == ["first, edited", "second"]

    @pytest.mark.asyncio
    async def test_blank_title_rejected(self, test_client):
        headers = bearer((await register(test_client))["token"])
        response = await test_client.post("/api/notes", json={"title": "   ", "content": "x"}, headers=headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Title is required"

    @pytest.mark.asyncio
    async def test_malformed_id_is_400(self, test_client):
        headers = bearer((await register(test_client))["token"])
        response = await test_client.get("/api/notes/not-a-uuid", headers=headers)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_id_is_404(self, test_client):
        headers = bearer((await register(test_client))["token"])
        response = await test_client.get(f"/api/notes/{uuid.uuid4()}", headers=headers)
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_notes_require_token(self, test_client):
        response = await test_client.get("/api/notes")
        assert response.status_code == 401


class TestOwnership:

    @pytest.mark.asyncio
    async def test_other_user_gets_404_everywhere(self, test_client):
        alice = bearer((await register(test_client, "alice@example.com"))["token"])
        bob = bearer((await register(test_client, "bob@example.com"))["token"])
        note = await create_note(test_client, alice, title="Private", content="Teh secret")
        url = f"/api/notes/{note['id']}"

        assert (await test_client.get(url, headers=bob)).status_code == 404
        assert (
            await test_client.put(url, json={"title": "Hijacked", "content": ""}, headers=bob)
        ).status_code == 404
        assert (await test_client.delete(url, headers=bob)).status_code == 404
        assert (
            await test_client.post(
                f"{url}/corrections",
                json={"snapshot": snapshot_token("Teh secret"), "issues": []},
                headers=bob,
            )
        ).status_code == 404

        bobs_list = await test_client.get("/api/notes", headers=bob)
        assert bobs_list.json() == []
        assert bobs_list.headers["X-Total-Count"] == "0"

        still_there = await test_client.get(url, headers=alice)
        assert still_there.json()["title"] == "Private"


class TestNoteCorrections:

    @pytest.mark.asyncio
    async def test_applies_to_stored_content(self, test_client):
        headers = bearer((await register(test_client))["token"])
        note = await create_note(test_client, headers, title="Fox", content="Teh quik fox")

        response = await test_client.post(
            f"/api/notes/{note['id']}/corrections",
            json={
                "snapshot": snapshot_token("Teh quik fox"),
                "issues": [
                    {"offset": 0, "length": 3, "replacements": ["The"]},
                    {"offset": 4, "length": 4, "replacements": ["quick"]},
                ],
            },
            headers=headers,
        )

        assert response.status_code == 200
        assert response.json()["content"] == "The quick fox"
        stored = await test_client.get(f"/api/notes/{note['id']}", headers=headers)
        assert stored.json()["content"] == "The quick fox"

    @pytest.mark.asyncio
    async def test_stale_snapshot_is_409_and_note_unchanged(self, test_client):
        headers = bearer((await register(test_client))["token"])
        note = await create_note(test_client, headers, title="Fox", content="Teh quick fox")
        await test_client.put(
            f"/api/notes/{note['id']}",
            json={"title": "Fox", "content": "Teh quick brown fox"},
            headers=headers,
        )

        response = await test_client.post(
            f"/api/notes/{note['id']}/corrections",
            json={
                "snapshot": snapshot_token("Teh quick fox"),
                "issues": [{"offset": 0, "length": 3, "replacements": ["The"]}],
            },
            headers=headers,
        )

        assert response.status_code == 409
        stored = await test_client.get(f"/api/notes/{note['id']}", headers=headers)
        assert stored.json()["content"] == "Teh quick brown fox"


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["llm"] == "available"
        assert body["version"] == "1.0.0"
