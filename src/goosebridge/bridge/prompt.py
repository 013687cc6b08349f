"""Flatten chat-style prompts into goose's system/user prompt pair."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

Prompt = str | Sequence[Mapping[str, Any]]


@dataclass(frozen=True)
class PromptParts:
    prompt: str
    system: str | None = None


def _text_of(content: Any) -> list[str]:
    if isinstance(content, str):
        return [content]
    texts: list[str] = []
    if isinstance(content, Sequence):
        for part in content:
            if isinstance(part, Mapping) and part.get("type") == "text":
                text = part.get("text")
                if isinstance(text, str):
                    texts.append(text)
    return texts


def extract_prompt_parts(prompt: Prompt) -> PromptParts:
    """Split *prompt* into a system prompt and a user prompt.

    A plain string is the user prompt.  For a message list, ``system``
    messages form the system prompt and ``user`` text content forms the
    user prompt, each joined with blank lines.  goose keeps its own
    history, so assistant and tool messages are not replayed.
    """
    if isinstance(prompt, str):
        return PromptParts(prompt=prompt)

    system: list[str] = []
    user: list[str] = []
    for message in prompt:
        if not isinstance(message, Mapping):
            continue
        role = message.get("role")
        if role == "system":
            system.extend(_text_of(message.get("content")))
        elif role == "user":
            user.extend(_text_of(message.get("content")))

    return PromptParts(
        prompt="\n\n".join(user),
        system="\n\n".join(system) if system else None,
    )
