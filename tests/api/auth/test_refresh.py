from jose import jwt
from core.config import settings
from tests.conftest import TEST_MEMBER_ID, TEST_PASSWORD


async def login(client):
    response = await client.post("/auth/login", json={
        "member_id": TEST_MEMBER_ID,
        "password": TEST_PASSWORD
    })
    assert response.status_code == 200
    return response.json()


async def test_refresh_token_success(client, active_user):
    """Test successful token refresh with valid refresh token."""
    old_tokens = await login(client)

    response = await client.post("/auth/refresh", json={
        "refresh_token": old_tokens["refresh_token"]
    })

    assert response.status_code == 200
    new_tokens = response.json()
    assert new_tokens["token_type"] == "bearer"
    assert new_tokens["refresh_token"] != old_tokens["refresh_token"]

    payload = jwt.decode(new_tokens["access_token"], settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    assert payload["sub"] == str(active_user.id)
    assert payload["type"] == "access"


async def test_refresh_token_rotation(client, active_user):
    """The old refresh token is unusable after a successful refresh."""
    old_tokens = await login(client)

    first = await client.post("/auth/refresh", json={"refresh_token": old_tokens["refresh_token"]})
    assert first.status_code == 200

    second = await client.post("/auth/refresh", json={"refresh_token": old_tokens["refresh_token"]})
    assert second.status_code == 401
    assert second.json()["detail"] == "Invalid or expired token"

    # The access token of the rotated pair is gone as well
    response = await client.get("/wallets", headers={"Authorization": f"Bearer {old_tokens['access_token']}"})
    assert response.status_code == 401


async def test_refresh_with_access_token(client, active_user):
    tokens = await login(client)

    response = await client.post("/auth/refresh", json={"refresh_token": tokens["access_token"]})

    assert response.status_code == 401


async def test_refresh_with_garbage_token(client):
    response = await client.post("/auth/refresh", json={"refresh_token": "invalid.token.here"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid or expired token"


async def test_refresh_with_empty_token(client):
    response = await client.post("/auth/refresh", json={"refresh_token": "   "})

    assert response.status_code == 422
