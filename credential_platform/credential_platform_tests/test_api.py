from unittest.mock import Mock

from sqlalchemy.exc import OperationalError

from credential_platform.credential_service.store import StoreUnavailable


def register(client, login="alice", password="testing12345"):
    return client.post("/register", json={"login": login, "password": password})


def login(client, login="alice", password="testing12345", **kwargs):
    return client.post("/login", json={"login": login, "password": password}, **kwargs)


def test_register_and_login(client):
    reg = register(client)
    assert reg.status_code == 200
    assert reg.json() == {"success": True, "message": "user created"}

    response = login(client)
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "ok"
    assert body["access_token"]
    assert body["token_type"] == "Bearer"
    assert body["expires_in_minutes"] == 60


def test_register_duplicate_returns_conflict(client):
    register(client, login="Alice")

    duplicate = register(client, login="ALICE")

    assert duplicate.status_code == 409
    assert duplicate.json() == {"success": False, "message": "user already exists"}


def test_register_blank_fields(client):
    response = register(client, login="  ", password="")
    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "login and password are required"}


def test_register_missing_fields(client):
    response = client.post("/register", json={"login": "user1"})
    assert response.status_code == 422


def test_login_too_long_is_rejected(client):
    response = login(client, login="a" * 201)
    assert response.status_code == 422


def test_login_invalid_password(client):
    register(client)

    bad_login = login(client, password="wrongpassword")

    assert bad_login.status_code == 401
    assert bad_login.json() == {
        "success": False,
        "message": "invalid credentials",
        "access_token": "",
        "token_type": "",
        "expires_in_minutes": 0,
    }


def test_login_unknown_user_matches_wrong_password(client):
    register(client)

    wrong_password = login(client, password="wrongpassword")
    unknown = login(client, login="nobody")

    assert unknown.status_code == wrong_password.status_code
    assert unknown.json() == wrong_password.json()


def test_login_blank_fields_are_not_audited(client):
    response = login(client, password="")

    assert response.status_code == 400
    assert response.json()["message"] == "login and password are required"
    assert client.app.state.store.list_login_attempts() == []


def test_login_records_client_metadata(client):
    register(client)

    login(client, headers={"User-Agent": "Mozilla/5.0 Test Browser"})

    attempts = client.app.state.store.list_login_attempts()
    assert len(attempts) == 1
    assert attempts[0].success is True
    assert attempts[0].remote_ip == "testclient"
    assert attempts[0].user_agent == "Mozilla/5.0 Test Browser"


def test_me_returns_token_subject(client):
    register(client, login="Alice")
    token = login(client, login="alice").json()["access_token"]

    response = client.get("/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.json() == {"login": "Alice"}


def test_me_requires_bearer_token(client):
    assert client.get("/me").status_code == 401
    assert client.get("/me", headers={"Authorization": "Basic abc"}).status_code == 401


def test_me_rejects_invalid_token(client):
    response = client.get("/me", headers={"Authorization": "Bearer not.a.token"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid token"


def test_store_failure_returns_503_without_detail(client):
    register(client)
    store = client.app.state.store
    cause = OperationalError("SELECT", {}, Exception("password authentication failed for db_admin"))
    failure = StoreUnavailable("account lookup failed")
    failure.__cause__ = cause
    store.find_account_by_normalized_login = Mock(side_effect=failure)

    response = login(client)

    assert response.status_code == 503
    assert response.json() == {"detail": "service unavailable"}
    assert "db_admin" not in response.text
    assert store.list_login_attempts() == []


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_ready(client):
    response = client.get("/ready")
    assert response.status_code == 200
    assert response.json()["database"] == "connected"


def test_tables_created_on_startup(client):
    # Startup ran init_db, so the store is usable straight away
    assert client.app.state.store.account_exists("ANYONE") is False
