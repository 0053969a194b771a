import pytest

from tuneserver.errors import NotFoundError, ValidationError
from tuneserver.relay import TokenRelay


def test_fetch_before_store():
    with pytest.raises(NotFoundError):
        TokenRelay().fetch()


def test_last_store_wins():
    relay = TokenRelay()
    relay.store("first")
    relay.store("second")
    assert relay.fetch() == "second"


def test_store_rejects_empty():
    relay = TokenRelay()
    with pytest.raises(ValidationError):
        relay.store("")
    with pytest.raises(ValidationError):
        relay.store(None)


def test_get_token_before_store(client):
    response = client.get("/get-token")
    assert response.status_code == 404
    assert response.json() == {"error": "No token stored!"}


def test_store_then_get(client):
    response = client.post("/store-token", json={"token": "abc123"})
    assert response.status_code == 200
    assert response.json() == {"message": "Token saved successfully!"}
    assert client.get("/get-token").json() == {"token": "abc123"}


def test_store_missing_token(client):
    response = client.post("/store-token", json={})
    assert response.status_code == 400
    assert response.json() == {"error": "Token is missing!"}
    assert client.get("/get-token").status_code == 404


def test_store_without_body(client):
    response = client.post("/store-token")
    assert response.status_code == 400
    assert response.json() == {"error": "Token is missing!"}


def test_store_with_unreadable_body(client):
    response = client.post("/store-token", json="abc123")
    assert response.status_code == 400
    assert response.json() == {"error": "Token is missing!"}
