"""CLI entry point: chat in the terminal while a structured song prompt is built."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import time
from datetime import datetime
from pathlib import Path

from songchat.agent.debug import trace_model_config, trace_system_instruction, trace_transcript
from songchat.agent.prompt_engine import reconcile
from songchat.models.song_prompt import SongPrompt, Turn
from songchat.services.chat_relay import ChatRelay
from songchat.services.completion_service import GeminiCompletionClient, StubCompletionClient
from songchat.services.errors import ChatError

log = logging.getLogger(__name__)

EXIT_COMMANDS = {"exit", "quit", ":q"}


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Chat with Gemini about a song and build a structured song prompt."
    )
    parser.add_argument(
        "--message",
        type=str,
        default=None,
        help="Send a single message and exit instead of starting an interactive chat.",
    )
    parser.add_argument(
        "--model", "-m",
        type=str,
        default=None,
        help="Gemini model name (default: GEMINI_MODEL or gemini-1.5-flash-latest).",
    )
    parser.add_argument(
        "--prompt-file",
        type=str,
        default=None,
        help="JSON file with a song prompt to start from.",
    )
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Use canned replies instead of calling Gemini.",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log each step to stderr.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log full debug trace of transcript, completion and prompt extraction.",
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Output directory (default: outputs/YYYY-MM-DD/HH-MM-SS).",
    )
    return parser.parse_args(argv)


def setup_output_dir(custom_dir: str | None = None) -> Path:
    """Create output directory with timestamp."""
    if custom_dir:
        output_dir = Path(custom_dir)
    else:
        now = datetime.now()
        output_dir = Path("outputs") / now.strftime("%Y-%m-%d") / now.strftime("%H-%M-%S")

    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


def setup_logging(output_dir: Path, verbose: bool = False, debug: bool = False) -> None:
    """Setup logging to both console and file."""
    log_level = logging.DEBUG if (verbose or debug) else logging.INFO
    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")

    # Console handler; stdout is reserved for the conversation
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level if (verbose or debug) else logging.WARNING)
    console_handler.setFormatter(formatter)

    # File handler
    file_handler = logging.FileHandler(output_dir / "execution.log")
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)


def load_prompt(path: str | None) -> SongPrompt:
    if not path:
        return SongPrompt()
    return SongPrompt.model_validate_json(Path(path).read_text())


def save_prompt(prompt: SongPrompt, output_dir: Path) -> Path:
    prompt_file = output_dir / "prompt.json"
    prompt_file.write_text(json.dumps(prompt.to_dict(), indent=2))
    return prompt_file


async def run_turn(
    relay: ChatRelay,
    transcript: list[Turn],
    prompt: SongPrompt,
    text: str,
    debug: bool = False,
) -> tuple[str, SongPrompt]:
    """Send one user message and return the reply text and the updated prompt.

    The user turn and the displayed assistant reply are appended to
    ``transcript``. On failure the user turn is removed again and the error
    propagates.
    """
    transcript.append(Turn(role="user", content=text))
    if debug:
        trace_transcript(transcript)

    try:
        completion = await relay.complete(transcript)
    except ChatError:
        transcript.pop()
        raise

    display_text, new_prompt = reconcile(completion, text, prompt, debug=debug)
    transcript.append(Turn(role="assistant", content=display_text))
    return display_text, new_prompt


async def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    output_dir = setup_output_dir(args.output_dir)
    setup_logging(output_dir, args.verbose, args.debug)

    start_time = time.time()
    start_datetime = datetime.now().isoformat()

    client = StubCompletionClient() if args.mock else GeminiCompletionClient(model_name=args.model)
    relay = ChatRelay(client)

    log.info("=" * 80)
    log.info("Starting song prompt chat")
    log.info(f"  - Timestamp: {start_datetime}")
    log.info(f"  - Model: {client.model_name}")
    log.info(f"  - Mode: {'one-shot' if args.message else 'interactive'}")
    log.info(f"  - Seed prompt: {args.prompt_file or '<none>'}")
    log.info(f"  - Output directory: {output_dir}")
    log.info("=" * 80)

    if args.debug:
        trace_model_config(client.model_name)
        trace_system_instruction(relay.system_instruction)

    prompt = load_prompt(args.prompt_file)
    transcript: list[Turn] = []
    exit_code = 0
    turns = 0

    if args.message:
        messages = iter([args.message])
    else:
        print("Describe the song you want. Type 'exit' to quit.")
        messages = None

    while True:
        if messages is not None:
            text = next(messages, None)
        else:
            try:
                text = input("\nyou> ")
            except EOFError:
                text = None
        if text is None or text.strip().lower() in EXIT_COMMANDS:
            break
        if not text.strip():
            continue

        try:
            display_text, prompt = await run_turn(relay, transcript, prompt, text, args.debug)
        except ChatError as e:
            log.error(f"Turn failed: {e.message}")
            print(f"Error: {e.message}", file=sys.stderr)
            exit_code = 1
            if messages is not None:
                break
            continue

        turns += 1
        print(f"\nassistant> {display_text}")
        prompt_file = save_prompt(prompt, output_dir)
        log.info(f"Prompt saved to {prompt_file}")

    elapsed_time = time.time() - start_time
    params = {
        "timestamp": start_datetime,
        "model": client.model_name,
        "mock": args.mock,
        "prompt_file": args.prompt_file,
        "turns": turns,
        "verbose": args.verbose,
        "debug": args.debug,
        "runtime_seconds": elapsed_time,
    }
    (output_dir / "params.json").write_text(json.dumps(params, indent=2))

    if not prompt.is_empty():
        print(json.dumps(prompt.to_dict(), indent=2))

    log.info(f"Chat finished after {turns} turn(s) in {elapsed_time:.2f}s")
    return exit_code


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
