"""Domain models for the Sidekick database layer."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum


class SourceType(str, Enum):
    """What a knowledge chunk or evidence item was rendered from."""

    PROJECT_OVERVIEW = "project_overview"
    KICKOFF_TRANSCRIPT = "kickoff_transcript"
    STAKEHOLDER_INFO = "stakeholder_info"
    QUESTION = "question"
    INTERVIEW_RESPONSE = "interview_response"
    TRANSCRIPTION = "transcription"
    INTERVIEW_SESSION = "interview_session"
    RESPONSE_TIMELINE = "response_timeline"
    DOCUMENT = "document"
    DOCUMENT_CONTENT = "document_content"
    UPLOAD = "upload"
    UPLOAD_CONTENT = "upload_content"
    DOCUMENT_TEMPLATE = "document_template"
    DOCUMENT_RUN = "document_run"
    PROJECT_EXPORT = "project_export"
    CLIENT_HISTORY = "client_history"
    CLIENT_ACTIVITY = "client_activity"


# ---------------------------------------------------------------------------
# Chunk store
# ---------------------------------------------------------------------------


@dataclass
class KnowledgeChunk:
    project_id: str
    source_type: SourceType
    chunk_text: str
    embedding: list[float]
    source_id: str | None = None
    chunk_index: int = 0
    metadata: dict = field(default_factory=dict)
    id: str | None = None  # assigned on insert
    created_at: str | None = None

    @property
    def metadata_json(self) -> str:
        return json.dumps(self.metadata, default=str)


@dataclass
class SearchResult:
    """One row returned by a project-scoped similarity search."""

    source_type: SourceType
    source_id: str | None
    chunk_text: str
    metadata: dict
    similarity: float


# ---------------------------------------------------------------------------
# Project records (read-only)
# ---------------------------------------------------------------------------


@dataclass
class Client:
    id: str
    name: str
    industry: str = ""
    contact_person: str = ""
    email: str = ""
    status: str = "active"
    created_at: str | None = None


@dataclass
class Project:
    id: str
    name: str
    status: str = "Setup"
    description: str | None = None
    progress: int = 0
    customer_id: str = ""
    client_id: str | None = None
    start_date: str | None = None
    due_date: str | None = None
    transcript: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class Stakeholder:
    id: str
    project_id: str
    name: str
    email: str = ""
    role: str = ""
    department: str = ""
    phone: str | None = None
    seniority: str | None = None
    experience_years: int = 0
    status: str = "pending"
    mentioned_context: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class Question:
    id: str
    project_id: str
    text: str
    category: str = ""
    target_roles: list[str] = field(default_factory=list)
    created_at: str | None = None


@dataclass
class InterviewSession:
    id: str
    project_id: str
    stakeholder_id: str
    stakeholder_name: str
    stakeholder_role: str = ""
    interview_name: str | None = None
    status: str = "pending"
    started_at: str | None = None
    completed_at: str | None = None
    total_questions: int = 0
    answered_questions: int = 0
    completion_percentage: int = 0
    created_at: str | None = None

    @property
    def is_complete(self) -> bool:
        if self.status == "completed":
            return True
        return self.total_questions > 0 and self.answered_questions == self.total_questions


@dataclass
class InterviewResponse:
    id: str
    project_id: str
    stakeholder_id: str
    stakeholder_name: str
    stakeholder_role: str
    stakeholder_department: str
    question_id: str
    question_text: str
    question_category: str
    session_id: str | None = None
    response_type: str = "text"
    response_text: str | None = None
    transcription: str | None = None
    ai_summary: str | None = None
    sentiment: str | None = None
    created_at: str | None = None

    @property
    def answer_text(self) -> str:
        """Best available text for the answer: typed text, then transcription, then summary."""
        for candidate in (self.response_text, self.transcription, self.ai_summary):
            if candidate and candidate.strip():
                return candidate.strip()
        return ""


@dataclass
class Transcription:
    id: str
    response_id: str
    transcription_text: str
    stakeholder_id: str
    stakeholder_name: str
    question_text: str
    language: str = "en"
    duration_seconds: int | None = None
    created_at: str | None = None


@dataclass
class Document:
    id: str
    project_id: str
    title: str
    type: str = ""
    status: str = "draft"
    version: int = 1
    content: str = ""
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class Upload:
    id: str
    project_id: str
    file_name: str
    upload_type: str = "other"
    file_size: int = 0
    description: str | None = None
    meeting_date: str | None = None
    include_in_generation: bool = True
    extracted_content: str | None = None
    content_type: str | None = None
    created_at: str | None = None


@dataclass
class DocumentTemplate:
    id: str
    name: str
    scope: str = "org"
    description: str | None = None
    category: str | None = None
    output_format: str = "markdown"
    created_at: str | None = None


@dataclass
class DocumentRun:
    id: str
    project_id: str
    run_label: str | None = None
    llm_model: str = "gpt-4o"
    templates_used: list[str] = field(default_factory=list)
    status: str = "completed"
    error_message: str | None = None
    created_at: str | None = None


@dataclass
class ProjectExport:
    id: str
    project_name: str
    export_type: str = "full_backup"
    file_size: int | None = None
    schema_version: str = "1.0"
    created_at: str | None = None


@dataclass
class ResponseTimes:
    """First/last answer timestamps for one interview session."""

    session_id: str
    answer_count: int
    first_answer_at: str | None
    last_answer_at: str | None
