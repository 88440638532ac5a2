"""Integration tests for /chats routes."""

import uuid

import pytest
from fastapi.testclient import TestClient

pytestmark = pytest.mark.integration


def test_create_chat_default_title(client: TestClient) -> None:
    """A chat created without a title gets the default one."""
    response = client.post("/chats")

    assert response.status_code == 201
    data = response.json()
    assert data["title"] == "New Chat"
    assert uuid.UUID(data["id"])
    assert "createdAt" in data


def test_create_chat_with_title(client: TestClient) -> None:
    """An explicit title is kept."""
    response = client.post("/chats", json={"title": "Travel policy"})

    assert response.status_code == 201
    assert response.json()["title"] == "Travel policy"


def test_list_chats_newest_first(client: TestClient) -> None:
    """Conversations are listed most recent first."""
    client.post("/chats", json={"title": "first"})
    client.post("/chats", json={"title": "second"})

    assert [c["title"] for c in client.get("/chats").json()] == ["second", "first"]


def test_new_chat_has_empty_history(client: TestClient) -> None:
    """A fresh conversation has no messages."""
    chat_id = client.post("/chats").json()["id"]

    response = client.get(f"/chats/{chat_id}")

    assert response.status_code == 200
    assert response.json() == []


def test_history_of_unknown_chat_returns_404(client: TestClient) -> None:
    """Unknown conversation ids are not found."""
    response = client.get(f"/chats/{uuid.uuid4()}")

    assert response.status_code == 404
    assert response.json() == {"error": "Chat not found"}


def test_rename_chat(client: TestClient) -> None:
    """PATCH replaces the title."""
    chat_id = client.post("/chats").json()["id"]

    response = client.patch("/chats", json={"id": chat_id, "title": "Renamed"})

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert client.get("/chats").json()[0]["title"] == "Renamed"


@pytest.mark.parametrize(
    "payload",
    [{"title": "x"}, {"id": str(uuid.uuid4())}, {"id": str(uuid.uuid4()), "title": " "}],
)
def test_rename_requires_id_and_title(client: TestClient, payload: dict) -> None:
    """Both id and a non-blank title are required."""
    response = client.patch("/chats", json=payload)

    assert response.status_code == 400
    assert response.json() == {"error": "Missing id or title"}


def test_rename_unknown_chat_returns_404(client: TestClient) -> None:
    """Renaming a chat that does not exist is a not-found error."""
    response = client.patch("/chats", json={"id": str(uuid.uuid4()), "title": "x"})

    assert response.status_code == 404


def test_delete_chat(client: TestClient) -> None:
    """Deleting removes the chat and its history."""
    chat_id = client.post("/chats").json()["id"]

    response = client.delete("/chats", params={"id": chat_id})

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert client.get("/chats").json() == []
    assert client.get(f"/chats/{chat_id}").status_code == 404
    assert client.delete("/chats", params={"id": chat_id}).status_code == 404


def test_delete_chat_without_id_returns_400(client: TestClient) -> None:
    """The id query parameter is required."""
    response = client.delete("/chats")

    assert response.status_code == 400
    assert response.json() == {"error": "No id provided"}
