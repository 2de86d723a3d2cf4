from tests.conftest import TEST_MEMBER_ID, TEST_PASSWORD


async def login(client):
    response = await client.post("/auth/login", json={
        "member_id": TEST_MEMBER_ID,
        "password": TEST_PASSWORD
    })
    return response.json()


def bearer(tokens):
    return {"Authorization": f"Bearer {tokens['access_token']}"}


async def test_logout_success(client, active_user):
    tokens = await login(client)

    response = await client.post("/auth/logout", headers=bearer(tokens))

    assert response.status_code == 200
    assert response.json()["message"] == "Logged out successfully"

    response = await client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert response.status_code == 401


async def test_logout_single_device_keeps_other_session(client, active_user):
    phone = await login(client)
    laptop = await login(client)

    await client.post("/auth/logout", headers=bearer(phone))

    assert (await client.get("/wallets", headers=bearer(laptop))).status_code == 200
    assert (await client.get("/wallets", headers=bearer(phone))).status_code == 401


async def test_logout_all_devices(client, active_user):
    phone = await login(client)
    laptop = await login(client)

    response = await client.post("/auth/logout", params={"all_devices": "true"}, headers=bearer(phone))
    assert response.status_code == 200

    assert (await client.get("/wallets", headers=bearer(laptop))).status_code == 401
    response = await client.post("/auth/refresh", json={"refresh_token": laptop["refresh_token"]})
    assert response.status_code == 401


async def test_logout_without_token(client):
    response = await client.post("/auth/logout")

    assert response.status_code == 401


async def test_logout_with_refresh_token(client, active_user):
    tokens = await login(client)

    response = await client.post("/auth/logout", headers={"Authorization": f"Bearer {tokens['refresh_token']}"})

    assert response.status_code == 401
