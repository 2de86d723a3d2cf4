from decimal import Decimal

from core.config import settings
from models.wallets import Wallet, WalletType
from tests.conftest import TEST_MEMBER_ID, TEST_PASSWORD, create_user


async def auth_headers(client):
    response = await client.post("/auth/login", json={
        "member_id": TEST_MEMBER_ID,
        "password": TEST_PASSWORD
    })
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


async def test_create_and_list_wallets(client, active_user):
    headers = await auth_headers(client)

    response = await client.post("/wallets", json={"type": "gold"}, headers=headers)
    assert response.status_code == 201
    wallet = response.json()
    assert wallet["type"] == "gold"
    assert len(str(wallet["identifier"])) == settings.WALLET_IDENTIFIER_LENGTH

    response = await client.get("/wallets", headers=headers)
    assert response.status_code == 200
    assert [w["identifier"] for w in response.json()] == [wallet["identifier"]]


async def test_wallet_limit(client, active_user):
    headers = await auth_headers(client)
    for _ in range(settings.MAX_WALLETS_PER_USER):
        response = await client.post("/wallets", json={"type": "euro"}, headers=headers)
        assert response.status_code == 201

    response = await client.post("/wallets", json={"type": "euro"}, headers=headers)

    assert response.status_code == 400
    assert response.json()["detail"] == "Maximum number of wallets reached for this currency"


async def test_unknown_wallet_type(client, active_user):
    headers = await auth_headers(client)

    response = await client.post("/wallets", json={"type": "bitcoin"}, headers=headers)

    assert response.status_code == 422


async def test_wallets_require_authentication(client):
    response = await client.get("/wallets")
    assert response.status_code == 401

    response = await client.get("/wallets", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401


async def test_get_categories(client, active_user):
    headers = await auth_headers(client)

    response = await client.get("/wallets/categories", headers=headers)

    assert response.status_code == 200
    assert response.json() == [
        {"name": "currency", "types": ["us_dollar", "euro"]},
        {"name": "metal", "types": ["gold"]},
    ]


async def test_transfer_between_members(client, session, active_user):
    payee = create_user(session, member_id=7654321, email="payee@example.com")
    headers = await auth_headers(client)
    source = (await client.post("/wallets", json={"type": "us_dollar"}, headers=headers)).json()
    session.query(Wallet).filter(Wallet.identifier == source["identifier"]).update({Wallet.balance: Decimal("50.00")})
    session.commit()
    target = Wallet(user_id=payee.id, type=WalletType.US_DOLLAR, identifier=87654321)
    session.add(target)
    session.commit()

    response = await client.post("/wallets/transfers", json={
        "type": "us_dollar",
        "from_identifier": source["identifier"],
        "to_identifier": 87654321,
        "amount": "20.50"
    }, headers=headers)

    assert response.status_code == 201
    transfer = response.json()
    assert transfer["from_identifier"] == source["identifier"]
    assert transfer["to_identifier"] == 87654321
    assert Decimal(transfer["amount"]) == Decimal("20.50")

    wallets = (await client.get("/wallets", headers=headers)).json()
    assert Decimal(wallets[0]["balance"]) == Decimal("29.50")

    history = (await client.get("/wallets/transfers", headers=headers)).json()
    assert [t["id"] for t in history] == [transfer["id"]]


async def test_transfer_insufficient_funds(client, active_user):
    headers = await auth_headers(client)
    source = (await client.post("/wallets", json={"type": "gold"}, headers=headers)).json()
    target = (await client.post("/wallets", json={"type": "gold"}, headers=headers)).json()

    response = await client.post("/wallets/transfers", json={
        "type": "gold",
        "from_identifier": source["identifier"],
        "to_identifier": target["identifier"],
        "amount": "1.00"
    }, headers=headers)

    assert response.status_code == 400
    assert response.json()["detail"] == "Insufficient funds"


async def test_transfer_unknown_wallet(client, active_user):
    headers = await auth_headers(client)
    source = (await client.post("/wallets", json={"type": "euro"}, headers=headers)).json()

    response = await client.post("/wallets/transfers", json={
        "type": "euro",
        "from_identifier": source["identifier"],
        "to_identifier": 11111111 if source["identifier"] != 11111111 else 22222222,
        "amount": "1.00"
    }, headers=headers)

    assert response.status_code == 400
    assert response.json()["detail"] == "Wallet details is incorrect"


async def test_transfer_rejects_non_positive_amount(client, active_user):
    headers = await auth_headers(client)

    response = await client.post("/wallets/transfers", json={
        "type": "euro",
        "from_identifier": 12345678,
        "to_identifier": 87654321,
        "amount": "0"
    }, headers=headers)

    assert response.status_code == 422


async def test_transfers_require_authentication(client):
    response = await client.post("/wallets/transfers", json={
        "type": "euro",
        "from_identifier": 12345678,
        "to_identifier": 87654321,
        "amount": "1.00"
    })

    assert response.status_code == 401
