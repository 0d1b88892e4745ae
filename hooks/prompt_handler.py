#!/usr/bin/env python3
"""
UserPromptSubmit Hook - Cognitive Mode Dispatch.

Runs before each user prompt is processed to:
1. Route the prompt to the best-fitting cognitive mode
2. Honor explicit `/mode <id>` requests
3. Print the active mode, its output and follow-up suggestions
4. Persist session history between invocations (MODE_ENGINE_STATE_DIR)

Never blocks the prompt: errors are reported and the hook exits 0.
"""

import json
import os
import re
import sys

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from mode_engine.config import load_engine_settings  # noqa: E402
from mode_engine.dispatch import DispatchResult, create_dispatcher  # noqa: E402
from mode_engine.engine_logging import setup_logging  # noqa: E402
from mode_engine.persistence import EnginePersistence  # noqa: E402

STATE_DIR_ENV = "MODE_ENGINE_STATE_DIR"

MODE_COMMAND = re.compile(r"^/mode\b(?:\s+(?P<mode_id>[\w-]+))?\s*(?P<rest>.*)$", re.S)


def format_result(outcome: DispatchResult, mode_name: str | None) -> str:
    """Render a dispatch outcome for the prompt context."""
    lines = []
    if mode_name:
        lines.append(f"[Mode: {mode_name}, confidence={outcome.confidence:.0%}]")

    if not outcome.success:
        lines.append(outcome.message)
        return "\n".join(lines)

    if outcome.message:
        lines.append(outcome.message)
    if outcome.suggestions:
        lines.append("Suggestions:")
        lines.extend(f"- {s}" for s in outcome.suggestions)
    if outcome.recommendations:
        names = ", ".join(r.mode_id for r in outcome.recommendations)
        lines.append(f"Often next: {names}")
    return "\n".join(lines)


def list_modes(dispatcher) -> str:
    lines = ["Available modes:"]
    for definition in dispatcher.get_all_modes():
        lines.append(
            f"- {definition.mode_id} {definition.symbol} {definition.description}".rstrip()
        )
    return "\n".join(lines)


def handle_prompt(dispatcher, session_id: str, prompt: str) -> str:
    """Dispatch one prompt and return the text to print."""
    command = MODE_COMMAND.match(prompt.strip())
    if command:
        mode_id = command.group("mode_id")
        if not mode_id:
            return list_modes(dispatcher)
        rest = command.group("rest").strip()
        if rest:
            outcome = dispatcher.process(session_id, rest, manual_mode_id=mode_id)
        else:
            outcome = dispatcher.set_mode(session_id, mode_id)
    else:
        outcome = dispatcher.process(session_id, prompt)

    current = dispatcher.get_current_mode(session_id)
    return format_result(outcome, current.name if current else None)


def main():
    """Run the prompt handler hook."""
    try:
        setup_logging(level=os.environ.get("MODE_ENGINE_LOG_LEVEL", "WARNING"))

        # Read input from stdin
        input_data = json.load(sys.stdin)
        prompt = input_data.get("prompt", "")
        session_id = input_data.get("session_id") or "default"

        if not prompt.strip():
            sys.exit(0)

        settings = load_engine_settings()
        state_dir = os.environ.get(STATE_DIR_ENV)
        persistence = EnginePersistence(state_dir) if state_dir else None

        if persistence is not None:
            saved_policy = persistence.load_policy()
            if saved_policy is not None:
                settings = settings.model_copy(update={"policy": saved_policy})

        with create_dispatcher(settings) as dispatcher:
            if persistence is not None:
                saved_state = persistence.load_state()
                if saved_state:
                    dispatcher.restore_state(saved_state)

            output = handle_prompt(dispatcher, session_id, prompt)

            if persistence is not None:
                persistence.save_state(dispatcher)

        if output:
            print(output)

        sys.exit(0)

    except Exception as e:
        # Fail open - don't block on errors
        sys.stderr.write(f"prompt_handler warning: {e}\n")
        sys.exit(0)


if __name__ == "__main__":
    main()
