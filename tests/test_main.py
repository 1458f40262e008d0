import asyncio
import json
from pathlib import Path

import pytest

import main
from songchat.models.song_prompt import SongPrompt, Turn
from songchat.services.chat_relay import ChatRelay
from songchat.services.completion_service import (
    GeminiCompletionClient,
    StubCompletionClient,
    get_mock_prompt,
)
from songchat.services.errors import MissingCredentialError


class TestRunTurn:
    def test_transcript_grows_with_display_text(self):
        stub = StubCompletionClient(reply='Nice!\n[PROMPT_UPDATE]{"title": "A"}[/PROMPT_UPDATE]')
        transcript: list[Turn] = []

        display_text, prompt = asyncio.run(
            main.run_turn(ChatRelay(stub), transcript, SongPrompt(), "let's write a song")
        )

        assert display_text == "Nice!"
        assert prompt.to_dict() == {"title": "A"}
        assert [(t.role, t.content) for t in transcript] == [
            ("user", "let's write a song"),
            ("assistant", "Nice!"),
        ]

    def test_failed_turn_is_removed(self, fake_genai):
        transcript: list[Turn] = []
        relay = ChatRelay(GeminiCompletionClient(api_key=""))
        with pytest.raises(MissingCredentialError):
            asyncio.run(main.run_turn(relay, transcript, SongPrompt(), "hi"))
        assert transcript == []


class TestMain:
    def test_one_shot_mock(self, tmp_path, capsys):
        """Test a single mocked turn writes the prompt and run parameters."""
        exit_code = asyncio.run(
            main.main(["--mock", "--message", "I want a house track", "--output-dir", str(tmp_path)])
        )

        assert exit_code == 0
        saved = json.loads((tmp_path / "prompt.json").read_text())
        assert saved == get_mock_prompt().to_dict()
        params = json.loads((tmp_path / "params.json").read_text())
        assert params["turns"] == 1
        assert params["mock"] is True
        assert "assistant>" in capsys.readouterr().out

    def test_seed_prompt_file(self, tmp_path):
        seed = tmp_path / "seed.json"
        seed.write_text(json.dumps({"lyrics": "first line"}))
        assert main.load_prompt(str(seed)).to_dict() == {"lyrics": "first line"}
        assert main.load_prompt(None).to_dict() == {}

    def test_one_shot_failure_exit_code(self, tmp_path, monkeypatch, fake_genai):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        exit_code = asyncio.run(
            main.main(["--message", "hi", "--output-dir", str(tmp_path)])
        )
        assert exit_code == 1
        assert not (tmp_path / "prompt.json").exists()
        assert json.loads((tmp_path / "params.json").read_text())["turns"] == 0


class TestPackaging:
    def test_cli_script_not_installed(self):
        """Test that the root-level chat script stays out of site-packages."""
        tomllib = pytest.importorskip("tomllib")
        pyproject = Path(__file__).resolve().parent.parent / "pyproject.toml"
        config = tomllib.loads(pyproject.read_text())

        assert config["tool"]["setuptools"]["py-modules"] == ["api_server"]
        assert all(not target.startswith("main:") for target in config["project"]["scripts"].values())
