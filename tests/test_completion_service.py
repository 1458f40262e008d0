import asyncio

import pytest

from songchat.agent.prompt_engine import reconcile
from songchat.models.song_prompt import Turn
from songchat.services.completion_service import (
    DEFAULT_MODEL_NAME,
    CompletionClient,
    GeminiCompletionClient,
    StubCompletionClient,
    get_mock_prompt,
    to_gemini_history,
)
from songchat.services.errors import MissingCredentialError


class TestGeminiHistory:
    def test_roles_mapped(self):
        """Test that assistant turns become Gemini 'model' turns."""
        history = to_gemini_history(
            [Turn(role="user", content="hi"), Turn(role="assistant", content="hello")]
        )
        assert [c.role for c in history] == ["user", "model"]
        assert [c.parts[0].text for c in history] == ["hi", "hello"]


class TestGeminiCompletionClient:
    def test_generate(self, fake_genai):
        client = GeminiCompletionClient(api_key="test-key", model_name="gemini-test")
        text = asyncio.run(
            client.generate([Turn(role="user", content="hi")], "next", "system rules")
        )

        assert text == "Hello from Gemini"
        [genai_client] = fake_genai.instances
        assert genai_client.api_key == "test-key"
        [chat] = genai_client.chats_created
        assert chat["model"] == "gemini-test"
        assert chat["config"].system_instruction == "system rules"
        assert len(chat["history"]) == 1
        assert genai_client.sent == ["next"]

    def test_client_reused(self, fake_genai):
        client = GeminiCompletionClient(api_key="test-key")
        asyncio.run(client.generate([], "one", "sys"))
        asyncio.run(client.generate([], "two", "sys"))
        assert len(fake_genai.instances) == 1

    def test_missing_key_fails_before_network(self, fake_genai, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        client = GeminiCompletionClient()
        with pytest.raises(MissingCredentialError):
            asyncio.run(client.generate([], "hi", "sys"))
        assert fake_genai.instances == []

    def test_env_configuration(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "env-key")
        monkeypatch.setenv("GEMINI_MODEL", "gemini-2.0-flash")
        client = GeminiCompletionClient()
        assert client.api_key == "env-key"
        assert client.model_name == "gemini-2.0-flash"

    def test_default_model(self, monkeypatch):
        monkeypatch.delenv("GEMINI_MODEL", raising=False)
        assert GeminiCompletionClient(api_key="k").model_name == DEFAULT_MODEL_NAME

    def test_upstream_error_propagates(self, fake_genai):
        fake_genai.error = RuntimeError("boom")
        client = GeminiCompletionClient(api_key="test-key")
        with pytest.raises(RuntimeError):
            asyncio.run(client.generate([], "hi", "sys"))


class TestStubCompletionClient:
    def test_satisfies_protocol(self):
        assert isinstance(StubCompletionClient(), CompletionClient)
        assert isinstance(GeminiCompletionClient(api_key="k"), CompletionClient)

    def test_canned_reply_carries_mock_prompt(self):
        """Test that the stub's prompt block reconciles into the mock prompt."""
        stub = StubCompletionClient()
        text = asyncio.run(stub.generate([], "hi", "sys"))
        display_text, prompt = reconcile(text, "hi", None)
        assert "[PROMPT_UPDATE]" not in display_text
        assert prompt.to_dict() == get_mock_prompt().to_dict()
        assert len(stub.calls) == 1
