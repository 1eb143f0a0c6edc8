"""Answer generator — grounded prompt over the assembled evidence.

The system message enumerates every evidence item with its index, type tag
and full text, followed by a fixed rule set. The user's question goes in a
separate turn. The generated text is returned as-is; grounding is not
verified after the fact.
"""

from __future__ import annotations

from sidekick.config import GenerationCfg
from sidekick.rag.evidence import EvidenceItem
from sidekick.rag.llm_client import complete

_RULES = """\
Rules:
1. Answer ONLY from the project context above. Never add outside knowledge.
2. Be specific about who, what and when: name people, roles, documents and dates.
3. When the context holds an enumerable list (stakeholders, sessions, documents),
   use the COMPLETE list. For example, "who hasn't responded" must be answered
   by checking every stakeholder and session in the context, not a sample.
4. If the information is not in the context, say so explicitly instead of guessing.
5. Refer to sources by their [number] when it helps the reader verify a claim."""

_NO_CONTEXT = "(No project context was found for this question.)"


def format_context(items: list[EvidenceItem]) -> str:
    """Render evidence as numbered, type-tagged blocks."""
    if not items:
        return _NO_CONTEXT
    return "\n\n".join(
        f"[{i + 1}] {item.source_type.value}:\n{item.text}" for i, item in enumerate(items)
    )


def build_system_prompt(items: list[EvidenceItem]) -> str:
    return (
        "You are a project assistant. You answer questions about one project using "
        "its stakeholder interviews, records, uploaded files and generated documents.\n\n"
        f"Project Context:\n{format_context(items)}\n\n"
        f"{_RULES}"
    )


def build_messages(question: str, items: list[EvidenceItem]) -> list[dict]:
    return [
        {"role": "system", "content": build_system_prompt(items)},
        {"role": "user", "content": question},
    ]


class AnswerGenerator:
    """Ask the completion service for an answer grounded in *items*."""

    def __init__(self, config: GenerationCfg | None = None) -> None:
        self._config = config or GenerationCfg()

    def answer(self, question: str, items: list[EvidenceItem]) -> str:
        """Return the model's answer text.

        Raises:
            ServiceError: If the completion call fails.
        """
        return complete(
            model=self._config.model,
            messages=build_messages(question, items),
            max_tokens=self._config.max_tokens,
            temperature=self._config.temperature,
        ).strip()
