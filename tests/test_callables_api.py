from __future__ import annotations

from collections.abc import Generator
from typing import Any

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ludendorff.core.config import get_settings
from ludendorff.core.database import Base
from ludendorff.main import app
from ludendorff.services import Services, build_services
from ludendorff.users.mail import MailMessage


class RecordingIndex:
    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.closed = False

    async def partial_update(self, index_name: str, obj: dict[str, Any]) -> None:
        if obj["objectID"] == "BROKEN":
            raise RuntimeError("index unavailable")
        self.calls.append((index_name, obj))

    async def aclose(self) -> None:
        self.closed = True


class RecordingMail:
    def __init__(self) -> None:
        self.sent: list[MailMessage] = []

    async def send(self, message: MailMessage) -> None:
        self.sent.append(message)


@pytest.fixture(autouse=True)
def configure_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    monkeypatch.setenv("JWT_SECRET", "callable-secret")
    monkeypatch.setenv("MAIL_SOURCE", "noreply@ludendorff.test")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def session_factory() -> Generator[sessionmaker[Session], None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def search_index() -> RecordingIndex:
    return RecordingIndex()


@pytest.fixture()
def mail() -> RecordingMail:
    return RecordingMail()


@pytest.fixture()
def services(
    session_factory: sessionmaker[Session], search_index: RecordingIndex, mail: RecordingMail
) -> Services:
    return build_services(get_settings(), session_factory=session_factory, search_index=search_index, mail=mail)


@pytest.fixture()
def client(services: Services) -> Generator[TestClient, None, None]:
    app.state.services = services
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        del app.state.services


def _token(uid: str) -> str:
    return jwt.encode({"sub": uid}, "callable-secret", algorithm="HS256")


def _seed_profile(client: TestClient, services: Services, uid: str, permissions: list[int]) -> str:
    client.portal.call(services.store.set, f"users/{uid}", {"userId": uid, "permissions": permissions})
    return _token(uid)


def test_index_callables_forward_entries(client: TestClient, search_index: RecordingIndex) -> None:
    entries = [{"stockNumber": "ABC123", "quantity": 2}]

    for name, index_name, field in (
        ("indexInventory", "inventories", "inventoryItems"),
        ("indexIssued", "issued", "issuedItems"),
        ("indexStockCard", "cards", "entries"),
    ):
        response = client.post(f"/callable/{name}", json={"data": {"id": "R-1", "entries": entries}})
        assert response.status_code == 200
        assert response.json() == {"result": None}
        assert search_index.calls[-1] == (index_name, {field: entries, "objectID": "R-1"})


def test_index_failure_is_reported_in_error_envelope(client: TestClient) -> None:
    response = client.post("/callable/indexInventory", json={"data": {"id": "BROKEN", "entries": []}})

    assert response.status_code == 500
    assert response.json() == {"error": {"status": "UNKNOWN", "message": "index unavailable"}}


def test_create_user_returns_new_uid_and_mails_password(
    client: TestClient, services: Services, mail: RecordingMail
) -> None:
    token = _seed_profile(client, services, "admin", [16])

    response = client.post(
        "/callable/createUser",
        json={
            "data": {
                "token": token,
                "email": "clerk@ludendorff.test",
                "firstName": "Clara",
                "lastName": "Clerk",
                "position": "Supply Officer",
                "permissions": [1, 2],
            }
        },
    )

    assert response.status_code == 200
    user_id = response.json()["result"]["userId"]
    record = client.portal.call(services.store.get, f"users/{user_id}").to_dict()
    assert record["email"] == "clerk@ludendorff.test"
    assert record["firstName"] == "Clara"
    assert record["userId"] == user_id
    assert "token" not in record
    assert [message.to for message in mail.sent] == ["clerk@ludendorff.test"]


def test_create_user_without_permission_fails_generically(
    client: TestClient, services: Services, mail: RecordingMail
) -> None:
    token = _seed_profile(client, services, "clerk", [1])

    response = client.post(
        "/callable/createUser",
        json={"data": {"token": token, "email": "x@ludendorff.test", "firstName": "X", "lastName": "Y"}},
    )

    assert response.status_code == 500
    assert response.json() == {"error": {"status": "UNKNOWN", "message": "permission denied"}}
    assert mail.sent == []


def test_modify_and_delete_user(client: TestClient, services: Services) -> None:
    token = _seed_profile(client, services, "admin", [32])
    created = client.post(
        "/callable/createUser",
        json={"data": {"token": token, "email": "temp@ludendorff.test", "firstName": "T", "lastName": "U"}},
    )
    user_id = created.json()["result"]["userId"]

    modified = client.post(
        "/callable/modifyUser",
        json={"data": {"token": token, "userId": user_id, "disabled": True}},
    )
    assert modified.status_code == 200
    assert client.portal.call(services.store.get, f"users/{user_id}").get("disabled") is True

    deleted = client.post("/callable/deleteUser", json={"data": {"token": token, "userId": user_id}})
    assert deleted.status_code == 200
    assert not client.portal.call(services.store.get, f"users/{user_id}").exists


def test_invalid_token_is_reported_as_callable_error(client: TestClient) -> None:
    response = client.post(
        "/callable/deleteUser",
        json={"data": {"token": "garbage", "userId": "someone"}},
    )

    assert response.status_code == 500
    assert response.json()["error"]["status"] == "UNKNOWN"


def test_malformed_payload_uses_error_envelope(client: TestClient, search_index: RecordingIndex) -> None:
    response = client.post("/callable/indexIssued", json={"data": {"entries": []}})

    assert response.status_code == 500
    assert response.json() == {"error": {"status": "UNKNOWN", "message": "invalid callable payload"}}
    assert search_index.calls == []


def test_validation_outside_callables_keeps_default_response(client: TestClient) -> None:
    client.headers["Authorization"] = "Bearer " + _token("admin")
    response = client.get("/logs", params={"limit": 0})

    assert response.status_code == 422
    assert "detail" in response.json()


def test_shutdown_closes_search_index(services: Services, search_index: RecordingIndex) -> None:
    app.state.services = services
    try:
        with TestClient(app):
            pass
    finally:
        del app.state.services
    assert search_index.closed is True
