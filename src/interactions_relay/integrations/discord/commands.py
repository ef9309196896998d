from __future__ import annotations

from typing import Any

# Discord application command types.
CHAT_INPUT = 1

# Discord application command option types.
STRING = 3


def build_application_commands() -> list[dict[str, Any]]:
    return [
        {
            "type": CHAT_INPUT,
            "name": "hello",
            "description": "Say hello",
        },
        {
            "type": CHAT_INPUT,
            "name": "question",
            "description": "Ask the assistant a question",
            "options": [
                {
                    "type": STRING,
                    "name": "text",
                    "description": "What do you want to ask?",
                    "required": True,
                }
            ],
        },
    ]
