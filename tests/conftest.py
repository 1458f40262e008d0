from __future__ import annotations

from types import SimpleNamespace

import pytest

from songchat.services import completion_service


class FakeGenaiClient:
    """Stands in for ``google.genai.Client``; records every client, chat and message."""

    instances: list["FakeGenaiClient"] = []
    reply: str | None = "Hello from Gemini"
    error: Exception | None = None

    def __init__(self, api_key: str) -> None:
        self.api_key = api_key
        self.chats_created: list[dict] = []
        self.sent: list[str] = []
        self.aio = SimpleNamespace(chats=SimpleNamespace(create=self._create_chat))
        FakeGenaiClient.instances.append(self)

    def _create_chat(self, model, config=None, history=None):
        self.chats_created.append({"model": model, "config": config, "history": history})
        client = self

        class _Chat:
            async def send_message(self, message):
                client.sent.append(message)
                if FakeGenaiClient.error is not None:
                    raise FakeGenaiClient.error
                return SimpleNamespace(text=FakeGenaiClient.reply)

        return _Chat()


@pytest.fixture
def fake_genai(monkeypatch):
    FakeGenaiClient.instances = []
    FakeGenaiClient.reply = "Hello from Gemini"
    FakeGenaiClient.error = None
    monkeypatch.setattr(completion_service.genai, "Client", FakeGenaiClient)
    return FakeGenaiClient
