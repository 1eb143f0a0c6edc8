"""Ephemeral chat session — ordered turns for one project, never persisted."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from sidekick.index.renderers import utcnow
from sidekick.rag.citations import Citation
from sidekick.rag.pipeline import QueryPipeline, QueryResult

WELCOME = (
    "Hello! I'm your project assistant. I can answer questions about this project "
    "based on stakeholder interviews, uploaded documents, and project context. "
    "What would you like to know?"
)


@dataclass
class ChatTurn:
    role: Literal["user", "assistant"]
    text: str
    citations: list[Citation] = field(default_factory=list)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=utcnow)


class ChatSession:
    """Conversation state owned by the caller of the query pipeline.

    Each ``ask()`` appends the user turn and the assistant turn. Earlier turns
    are kept for display only; every question is answered independently.
    """

    def __init__(self, project_id: str, pipeline: QueryPipeline) -> None:
        self.project_id = project_id
        self._pipeline = pipeline
        self.turns: list[ChatTurn] = []
        self.last_result: QueryResult | None = None
        self.clear()

    def ask(self, question: str) -> ChatTurn:
        question = question.strip()
        if not question:
            raise ValueError("question must not be empty")

        self.turns.append(ChatTurn(role="user", text=question))
        result = self._pipeline.ask(self.project_id, question)
        self.last_result = result
        reply = ChatTurn(role="assistant", text=result.answer, citations=result.citations)
        self.turns.append(reply)
        return reply

    def clear(self) -> None:
        """Drop all turns and start over with the welcome message."""
        self.turns = [ChatTurn(role="assistant", text=WELCOME)]
        self.last_result = None
