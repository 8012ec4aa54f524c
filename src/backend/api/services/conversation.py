"""Builds the message list sent to the model for one request."""

from __future__ import annotations

from typing import Any

from api.services.thread_store import ThreadStore
from core.prompts import SYSTEM_INSTRUCTIONS
from models.thread_models import Message


class ConversationAssembler:
    """Assemble model input: system instructions, history, then the new turn.

    Read-only with respect to the thread store. Assistant entries that are
    not finalized are skipped so in-flight placeholders never reach the model.
    """

    def __init__(self, thread_store: ThreadStore, system_instructions: str = SYSTEM_INSTRUCTIONS):
        self.thread_store = thread_store
        self.system_instructions = system_instructions

    async def build(self, thread_id: str, prompt: str, history: list[Message] | None = None) -> list[dict[str, Any]]:
        """Return chat-completions messages for ``prompt`` on ``thread_id``.

        ``history`` is the thread as it was before the current user turn was
        appended. When omitted it is read from the store, in which case the
        caller must not have appended the current turn yet.
        """
        if history is None:
            history = await self.thread_store.history(thread_id)

        messages: list[dict[str, Any]] = [{"role": "system", "content": self.system_instructions}]
        messages.extend(
            {"role": message.role, "content": message.content} for message in history if _include(message)
        )
        messages.append({"role": "user", "content": prompt})
        return messages


def _include(message: Message) -> bool:
    if message.role == "assistant":
        return message.finalized and bool(message.content)
    return True


__all__ = ["ConversationAssembler"]
