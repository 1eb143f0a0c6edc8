"""Citation formatter — short source labels and excerpts for display.

Presentation only: runs after the model has been called and never changes
what evidence the model saw.
"""

from __future__ import annotations

from dataclasses import dataclass

from sidekick.db.models import SourceType
from sidekick.rag.evidence import EvidenceItem

EXCERPT_CHARS = 150
FALLBACK_LABEL = "Project Info"

# source_type → label template; every placeholder must resolve to a non-empty
# metadata value, otherwise the fallback label is used.
_LABELS: dict[SourceType, str] = {
    SourceType.PROJECT_OVERVIEW: "Project: {project_name}",
    SourceType.KICKOFF_TRANSCRIPT: "Kickoff Transcript: {project_name}",
    SourceType.STAKEHOLDER_INFO: "{stakeholder_name}",
    SourceType.QUESTION: "Question: {category}",
    SourceType.INTERVIEW_RESPONSE: "{stakeholder_name} - {question_category}",
    SourceType.TRANSCRIPTION: "{stakeholder_name} - Transcript",
    SourceType.INTERVIEW_SESSION: "Interview: {stakeholder_name}",
    SourceType.RESPONSE_TIMELINE: "Timeline: {stakeholder_name}",
    SourceType.DOCUMENT: "Doc: {title}",
    SourceType.DOCUMENT_CONTENT: "Doc: {title}",
    SourceType.UPLOAD: "File: {file_name}",
    SourceType.UPLOAD_CONTENT: "File: {file_name}",
    SourceType.DOCUMENT_TEMPLATE: "Template: {template_name}",
    SourceType.DOCUMENT_RUN: "Run: {run_label}",
    SourceType.PROJECT_EXPORT: "Export: {export_type}",
    SourceType.CLIENT_HISTORY: "Client: {client_name}",
    SourceType.CLIENT_ACTIVITY: "Client Activity: {client_name}",
}


@dataclass
class Citation:
    type: str
    display_name: str
    excerpt: str
    id: str


def display_name(item: EvidenceItem) -> str:
    template = _LABELS.get(item.source_type)
    if template is None:
        return FALLBACK_LABEL
    values = {k: v for k, v in item.metadata.items() if v not in (None, "")}
    try:
        return template.format_map(values)
    except KeyError:
        return FALLBACK_LABEL


def excerpt(text: str, limit: int = EXCERPT_CHARS) -> str:
    """First *limit* characters of *text*; '...' is appended only when text was cut."""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def format_citations(
    items: list[EvidenceItem], excerpt_chars: int = EXCERPT_CHARS
) -> list[Citation]:
    """Return one citation per evidence item, numbered like the prompt's [n] markers."""
    return [
        Citation(
            type=item.source_type.value,
            display_name=display_name(item),
            excerpt=excerpt(item.text, excerpt_chars),
            id=f"source-{i + 1}",
        )
        for i, item in enumerate(items)
    ]
