from tests.helpers import bearer, register


async def _create(api_client, auth: dict, **overrides) -> dict:
    body = {"title": "Snippet", "content": "x = 1", "language": "python"}
    body.update(overrides)
    resp = await api_client.post("/api/snippets", json=body, headers=bearer(auth))
    assert resp.status_code == 201, resp.text
    return resp.json()


async def test_profile_get_and_update(api_client) -> None:
    alice = await register(api_client, "alice")

    profile = await api_client.get("/api/users/profile", headers=bearer(alice))
    assert profile.status_code == 200
    assert profile.json()["email"] == "alice@example.com"

    updated = await api_client.put(
        "/api/users/profile",
        json={"fullName": "Alice Liddell", "bio": "Writes snippets"},
        headers=bearer(alice),
    )
    assert updated.status_code == 200
    assert updated.json()["fullName"] == "Alice Liddell"
    assert updated.json()["bio"] == "Writes snippets"
    assert updated.json()["username"] == "alice"


async def test_profile_update_conflicts(api_client) -> None:
    alice = await register(api_client, "alice")
    await register(api_client, "bob")

    taken_name = await api_client.put("/api/users/profile", json={"username": "bob"}, headers=bearer(alice))
    assert taken_name.status_code == 409

    taken_email = await api_client.put(
        "/api/users/profile", json={"email": "bob@example.com"}, headers=bearer(alice)
    )
    assert taken_email.status_code == 409


async def test_profile_requires_authentication(api_client) -> None:
    assert (await api_client.get("/api/users/profile")).status_code == 401
    assert (await api_client.get("/api/users/dashboard")).status_code == 401


async def test_dashboard_statistics(api_client) -> None:
    alice = await register(api_client, "alice")
    bob = await register(api_client, "bob")
    shared = await _create(api_client, alice, language="python")
    await _create(api_client, alice, language="go", visibility="PRIVATE")
    await _create(api_client, alice, language="go", visibility="UNLISTED")

    await api_client.get(f"/api/snippets/{shared['id']}", headers=bearer(bob))
    await api_client.get(f"/api/snippets/{shared['id']}", headers=bearer(bob))

    resp = await api_client.get("/api/users/dashboard", headers=bearer(alice))
    assert resp.status_code == 200
    body = resp.json()
    assert body["profile"]["username"] == "alice"
    assert body["statistics"]["totalSnippets"] == 3
    assert body["statistics"]["publicSnippets"] == 1
    assert body["statistics"]["privateSnippets"] == 1
    assert body["statistics"]["unlistedSnippets"] == 1
    assert body["statistics"]["totalViews"] == 2
    assert body["recentLanguages"] == ["go", "python"]


async def test_my_snippets_filters(api_client) -> None:
    alice = await register(api_client, "alice")
    await _create(api_client, alice, title="Parser", language="rust", visibility="PRIVATE")
    await _create(api_client, alice, title="Lexer", language="rust")
    await _create(api_client, alice, title="Server", language="go")

    rust = await api_client.get("/api/users/snippets", params={"language": "rust"}, headers=bearer(alice))
    assert rust.json()["totalElements"] == 2

    private = await api_client.get(
        "/api/users/snippets", params={"visibility": "PRIVATE"}, headers=bearer(alice)
    )
    assert [s["title"] for s in private.json()["content"]] == ["Parser"]

    search = await api_client.get("/api/users/snippets", params={"search": "lex"}, headers=bearer(alice))
    assert [s["title"] for s in search.json()["content"]] == ["Lexer"]


async def test_delete_through_users_route(api_client) -> None:
    alice = await register(api_client, "alice")
    bob = await register(api_client, "bob")
    created = await _create(api_client, alice)

    assert (await api_client.delete(f"/api/users/snippets/{created['id']}", headers=bearer(bob))).status_code == 404
    assert (await api_client.delete(f"/api/users/snippets/{created['id']}", headers=bearer(alice))).status_code == 204


async def test_public_profile_and_snippets_list_public_only(api_client) -> None:
    alice = await register(api_client, "alice")
    public = await _create(api_client, alice, title="open")
    await _create(api_client, alice, title="closed", visibility="PRIVATE")
    await _create(api_client, alice, title="link only", visibility="UNLISTED")

    profile = await api_client.get("/api/users/alice/profile")
    assert profile.status_code == 200
    assert profile.json()["username"] == "alice"

    for path in ("/api/users/alice/snippets", "/api/snippets/user/alice"):
        resp = await api_client.get(path)
        assert resp.status_code == 200, path
        assert [s["id"] for s in resp.json()["content"]] == [public["id"]]


async def test_inactive_user_is_hidden_and_cannot_log_in(api_client, make_user) -> None:
    make_user("ghost", active=False)

    assert (await api_client.get("/api/users/ghost/profile")).status_code == 404
    assert (await api_client.get("/api/users/ghost/snippets")).status_code == 404
    assert (await api_client.get("/api/snippets/user/nobody")).status_code == 404

    login = await api_client.post("/api/auth/login", json={"username": "ghost", "password": "password123"})
    assert login.status_code == 401
