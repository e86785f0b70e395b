"""Questionary / prompt_toolkit style for lftagops prompts.

Colours follow the rich theme in ``output``: cyan titles, yellow for the
destructive question, dim grey for hints.
"""

from __future__ import annotations

from prompt_toolkit.styles import Style

QUESTIONARY_STYLE_CONFIRM = Style.from_dict(
    {
        "qmark": "bold ansicyan",
        "question": "bold ansiyellow",
        "answer": "bold ansicyan",
        "instruction": "ansibrightblack",
        "error": "bold ansired",
    }
)
