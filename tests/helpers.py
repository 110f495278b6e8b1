from httpx import AsyncClient


async def register(client: AsyncClient, username: str, password: str = "password123") -> dict:
    resp = await client.post(
        "/api/auth/register",
        json={"username": username, "email": f"{username}@example.com", "password": password},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def bearer(auth: dict) -> dict[str, str]:
    return {"Authorization": f"Bearer {auth['token']}"}
