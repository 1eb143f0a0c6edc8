"""Fixed per-entity text templates.

Identifying fields (names, roles, dates, statuses) are written into the text
itself so similarity search can match on them without a keyword index. The
same renderers feed the indexer (chunks) and the direct evidence gatherer
(exact lookups), so a record reads identically in both paths.

Long-form bodies (kickoff transcript, document content, extracted upload
text) become a second item next to the record summary.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sidekick.db.models import (
    Client,
    Document,
    DocumentRun,
    DocumentTemplate,
    InterviewResponse,
    InterviewSession,
    Project,
    ProjectExport,
    Question,
    ResponseTimes,
    SourceType,
    Stakeholder,
    Transcription,
    Upload,
)

_SUMMARY_CHARS = 500
ACTIVITY_WINDOWS: tuple[int, ...] = (3, 6, 12)


@dataclass
class Rendered:
    """Text plus metadata for one record (or one derived rollup)."""

    source_type: SourceType
    text: str
    metadata: dict = field(default_factory=dict)
    source_id: str | None = None
    chunk_index: int = 0


# ---------------------------------------------------------------------------
# Project
# ---------------------------------------------------------------------------


def render_project(project: Project) -> list[Rendered]:
    overview = "\n".join(
        [
            f"Project: {project.name}",
            f"Status: {project.status}",
            f"Progress: {project.progress}%",
            f"Description: {project.description or 'No description'}",
            f"Start Date: {fmt_date(project.start_date)}",
            f"Due Date: {fmt_date(project.due_date)}",
            f"Created: {fmt_date(project.created_at)}",
            f"Last Updated: {fmt_date(project.updated_at)}",
        ]
    )
    items = [
        Rendered(
            source_type=SourceType.PROJECT_OVERVIEW,
            text=overview,
            source_id=project.id,
            metadata={
                "project_id": project.id,
                "project_name": project.name,
                "status": project.status,
                "start_date": project.start_date,
                "due_date": project.due_date,
                "created_at": project.created_at,
                "updated_at": project.updated_at,
            },
        )
    ]
    if project.transcript and project.transcript.strip():
        items.append(
            Rendered(
                source_type=SourceType.KICKOFF_TRANSCRIPT,
                text=f"Kickoff meeting transcript for {project.name}:\n{project.transcript.strip()}",
                source_id=project.id,
                chunk_index=1,
                metadata={
                    "project_id": project.id,
                    "project_name": project.name,
                    "source": "Kickoff meeting transcript",
                },
            )
        )
    return items


# ---------------------------------------------------------------------------
# People + questions
# ---------------------------------------------------------------------------


def render_stakeholder(s: Stakeholder) -> Rendered:
    experience = f"{s.experience_years} years" if s.experience_years else "Not specified"
    lines = [
        f"Stakeholder: {s.name}",
        f"Role: {s.role or 'Not specified'}",
        f"Department: {s.department or 'Not specified'}",
        f"Email: {s.email or 'Not provided'}",
        f"Phone: {s.phone or 'Not provided'}",
        f"Status: {s.status}",
        f"Seniority: {s.seniority or 'Not specified'}",
        f"Experience: {experience}",
    ]
    if s.mentioned_context:
        lines.append(f"Context: {s.mentioned_context}")
    lines += [
        f"Added: {fmt_timestamp(s.created_at)}",
        f"Last Updated: {fmt_timestamp(s.updated_at)}",
    ]
    return Rendered(
        source_type=SourceType.STAKEHOLDER_INFO,
        text="\n".join(lines),
        source_id=s.id,
        metadata={
            "stakeholder_id": s.id,
            "stakeholder_name": s.name,
            "role": s.role,
            "department": s.department,
            "status": s.status,
            "created_at": s.created_at,
            "updated_at": s.updated_at,
        },
    )


def render_question(q: Question) -> Rendered:
    text = "\n".join(
        [
            f"Question: {q.text}",
            f"Category: {q.category or 'Uncategorized'}",
            f"Target Roles: {', '.join(q.target_roles) or 'All'}",
            f"Created: {fmt_date(q.created_at)}",
        ]
    )
    return Rendered(
        source_type=SourceType.QUESTION,
        text=text,
        source_id=q.id,
        metadata={
            "question_id": q.id,
            "category": q.category,
            "target_roles": q.target_roles,
            "created_at": q.created_at,
        },
    )


# ---------------------------------------------------------------------------
# Interviews
# ---------------------------------------------------------------------------


def render_response(r: InterviewResponse) -> Rendered | None:
    """Render one answered question; None when the response carries no text at all."""
    answer = r.answer_text
    if not answer:
        return None
    lines = [
        f"Question: {r.question_text}",
        f"Category: {r.question_category}",
        f"Stakeholder: {r.stakeholder_name} ({r.stakeholder_role}, {r.stakeholder_department})",
        f"Response: {answer}",
        f"Answered: {fmt_timestamp(r.created_at)}",
    ]
    if r.sentiment:
        lines.append(f"Sentiment: {r.sentiment}")
    return Rendered(
        source_type=SourceType.INTERVIEW_RESPONSE,
        text="\n".join(lines),
        source_id=r.id,
        metadata={
            "response_id": r.id,
            "stakeholder_id": r.stakeholder_id,
            "stakeholder_name": r.stakeholder_name,
            "stakeholder_role": r.stakeholder_role,
            "stakeholder_department": r.stakeholder_department,
            "question_id": r.question_id,
            "question_text": r.question_text,
            "question_category": r.question_category,
            "session_id": r.session_id,
            "created_at": r.created_at,
        },
    )


def render_transcription(t: Transcription) -> Rendered:
    text = "\n".join(
        [
            f"Transcription of {t.stakeholder_name}'s answer to: {t.question_text}",
            f"Language: {t.language}",
            f"Recorded: {fmt_timestamp(t.created_at)}",
            t.transcription_text.strip(),
        ]
    )
    return Rendered(
        source_type=SourceType.TRANSCRIPTION,
        text=text,
        source_id=t.id,
        metadata={
            "transcription_id": t.id,
            "response_id": t.response_id,
            "stakeholder_id": t.stakeholder_id,
            "stakeholder_name": t.stakeholder_name,
            "question_text": t.question_text,
            "created_at": t.created_at,
        },
    )


def render_session(s: InterviewSession) -> Rendered:
    lines = [
        f"Interview Session: {s.interview_name or 'Interview'}",
        f"Stakeholder: {s.stakeholder_name} ({s.stakeholder_role or 'No role'})",
        f"Status: {s.status}",
        f"Progress: {s.answered_questions}/{s.total_questions} questions answered "
        f"({s.completion_percentage}%)",
        f"Started: {fmt_timestamp(s.started_at)}",
    ]
    if s.is_complete:
        lines.append(f"Completed: {fmt_timestamp(s.completed_at)}")
    else:
        lines.append("Completed: Not yet")
    return Rendered(
        source_type=SourceType.INTERVIEW_SESSION,
        text="\n".join(lines),
        source_id=s.id,
        metadata={
            "session_id": s.id,
            "stakeholder_id": s.stakeholder_id,
            "stakeholder_name": s.stakeholder_name,
            "status": s.status,
            "answered_questions": s.answered_questions,
            "total_questions": s.total_questions,
            "is_complete": s.is_complete,
            "completed_at": s.completed_at if s.is_complete else None,
        },
    )


def render_response_timeline(s: InterviewSession, times: ResponseTimes) -> Rendered:
    text = "\n".join(
        [
            f"Response Timeline: {s.stakeholder_name}",
            f"Answers Given: {times.answer_count}",
            f"First Answer: {fmt_timestamp(times.first_answer_at)}",
            f"Last Answer: {fmt_timestamp(times.last_answer_at)}",
        ]
    )
    return Rendered(
        source_type=SourceType.RESPONSE_TIMELINE,
        text=text,
        source_id=s.id,
        metadata={
            "session_id": s.id,
            "stakeholder_id": s.stakeholder_id,
            "stakeholder_name": s.stakeholder_name,
            "answer_count": times.answer_count,
            "first_answer_at": times.first_answer_at,
            "last_answer_at": times.last_answer_at,
        },
    )


# ---------------------------------------------------------------------------
# Files + generated outputs
# ---------------------------------------------------------------------------


def render_document(doc: Document) -> list[Rendered]:
    summary = doc.content[:_SUMMARY_CHARS] if doc.content else "No content"
    text = "\n".join(
        [
            f"Document: {doc.title}",
            f"Type: {doc.type}",
            f"Status: {doc.status}",
            f"Version: {doc.version}",
            f"Content Summary: {summary}",
            f"Created: {fmt_date(doc.created_at)}",
            f"Last Updated: {fmt_date(doc.updated_at)}",
        ]
    )
    items = [
        Rendered(
            source_type=SourceType.DOCUMENT,
            text=text,
            source_id=doc.id,
            metadata={
                "document_id": doc.id,
                "title": doc.title,
                "type": doc.type,
                "status": doc.status,
                "version": doc.version,
                "created_at": doc.created_at,
                "updated_at": doc.updated_at,
            },
        )
    ]
    if doc.content and len(doc.content) > _SUMMARY_CHARS:
        items.append(
            Rendered(
                source_type=SourceType.DOCUMENT_CONTENT,
                text=doc.content,
                source_id=doc.id,
                chunk_index=1,
                metadata={
                    "document_id": doc.id,
                    "title": doc.title,
                    "type": doc.type,
                },
            )
        )
    return items


def render_upload(u: Upload) -> list[Rendered]:
    text = "\n".join(
        [
            f"File: {u.file_name}",
            f"Type: {u.upload_type}",
            f"Size: {u.file_size / 1024:.2f} KB",
            f"Description: {u.description or 'No description'}",
            f"Meeting Date: {fmt_date(u.meeting_date, missing='Not specified')}",
            f"Uploaded: {fmt_date(u.created_at)}",
        ]
    )
    items = [
        Rendered(
            source_type=SourceType.UPLOAD,
            text=text,
            source_id=u.id,
            metadata={
                "upload_id": u.id,
                "file_name": u.file_name,
                "upload_type": u.upload_type,
                "file_size": u.file_size,
                "meeting_date": u.meeting_date,
                "created_at": u.created_at,
            },
        )
    ]
    if u.extracted_content and u.extracted_content.strip():
        items.append(
            Rendered(
                source_type=SourceType.UPLOAD_CONTENT,
                text=f"Content of {u.file_name}:\n{u.extracted_content.strip()}",
                source_id=u.id,
                chunk_index=1,
                metadata={
                    "upload_id": u.id,
                    "file_name": u.file_name,
                    "content_type": u.content_type,
                },
            )
        )
    return items


def render_template(t: DocumentTemplate) -> Rendered:
    text = "\n".join(
        [
            f"Document Template: {t.name}",
            f"Category: {t.category or 'General'}",
            f"Scope: {t.scope}",
            f"Output Format: {t.output_format}",
            f"Description: {t.description or 'No description'}",
        ]
    )
    return Rendered(
        source_type=SourceType.DOCUMENT_TEMPLATE,
        text=text,
        source_id=t.id,
        metadata={"template_id": t.id, "template_name": t.name, "category": t.category},
    )


def render_document_run(run: DocumentRun) -> Rendered:
    lines = [
        f"Document Run: {run.run_label or 'Unlabelled run'}",
        f"Model: {run.llm_model}",
        f"Templates Used: {', '.join(run.templates_used) or 'None'}",
        f"Status: {run.status}",
        f"Generated: {fmt_timestamp(run.created_at)}",
    ]
    if run.error_message:
        lines.append(f"Error: {run.error_message}")
    return Rendered(
        source_type=SourceType.DOCUMENT_RUN,
        text="\n".join(lines),
        source_id=run.id,
        metadata={
            "run_id": run.id,
            "run_label": run.run_label,
            "status": run.status,
            "created_at": run.created_at,
        },
    )


def render_export(e: ProjectExport) -> Rendered:
    size = f"{e.file_size / 1024:.2f} KB" if e.file_size else "Unknown"
    text = "\n".join(
        [
            f"Project Export: {e.project_name}",
            f"Export Type: {e.export_type}",
            f"Size: {size}",
            f"Schema Version: {e.schema_version}",
            f"Exported: {fmt_timestamp(e.created_at)}",
        ]
    )
    return Rendered(
        source_type=SourceType.PROJECT_EXPORT,
        text=text,
        source_id=e.id,
        metadata={
            "export_id": e.id,
            "export_type": e.export_type,
            "created_at": e.created_at,
        },
    )


# ---------------------------------------------------------------------------
# Client rollups
# ---------------------------------------------------------------------------


def render_client_history(client: Client, projects: list[Project]) -> Rendered:
    lines = [
        f"Client: {client.name}",
        f"Industry: {client.industry or 'Not specified'}",
        f"Contact: {client.contact_person or 'Not provided'} ({client.email or 'no email'})",
        f"Client Status: {client.status}",
        f"Total Projects: {len(projects)}",
    ]
    for p in projects:
        lines.append(
            f"- {p.name} | Status: {p.status} | Progress: {p.progress}% "
            f"| Created: {fmt_date(p.created_at)}"
        )
    return Rendered(
        source_type=SourceType.CLIENT_HISTORY,
        text="\n".join(lines),
        source_id=client.id,
        metadata={
            "client_id": client.id,
            "client_name": client.name,
            "project_count": len(projects),
        },
    )


def render_client_activity(
    client: Client, projects: list[Project], now: datetime | None = None
) -> Rendered:
    counts = activity_counts(projects, now)
    lines = [f"Client Activity: {client.name}"]
    lines += [f"Projects created in the last {n} months: {counts[n]}" for n in ACTIVITY_WINDOWS]
    return Rendered(
        source_type=SourceType.CLIENT_ACTIVITY,
        text="\n".join(lines),
        source_id=client.id,
        metadata={
            "client_id": client.id,
            "client_name": client.name,
            **{f"projects_last_{n}_months": counts[n] for n in ACTIVITY_WINDOWS},
        },
    )


def activity_counts(projects: list[Project], now: datetime | None = None) -> dict[int, int]:
    """Count projects created within each window of calendar months before *now*."""
    now = now or utcnow()
    counts: dict[int, int] = {}
    for months in ACTIVITY_WINDOWS:
        cutoff = months_before(now, months)
        counts[months] = sum(
            1
            for p in projects
            if (created := parse_ts(p.created_at)) is not None and created >= cutoff
        )
    return counts


# ---------------------------------------------------------------------------
# Date helpers
# ---------------------------------------------------------------------------


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def months_before(moment: datetime, months: int) -> datetime:
    """Shift *moment* back by whole calendar months, clamping the day (Mar 31 → Feb 28)."""
    index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def parse_ts(value: str | None) -> datetime | None:
    """Parse an ISO date/timestamp into naive UTC; None if missing or unparseable."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def fmt_date(value: str | None, missing: str = "Not set") -> str:
    parsed = parse_ts(value)
    if parsed is None:
        return value or missing
    return parsed.strftime("%Y-%m-%d")


def fmt_timestamp(value: str | None, missing: str = "Not set") -> str:
    parsed = parse_ts(value)
    if parsed is None:
        return value or missing
    return parsed.strftime("%Y-%m-%d %H:%M")
