"""Query classifier — declarative rule table mapping question patterns to topics.

Each rule is an independent case-insensitive pattern test; a question can set
any number of topics. Topics in ``DIRECT_TOPICS`` drive exact record lookups,
``SEMANTIC_TOPICS`` ask for similarity search over indexed content. A
question matching nothing is answered from semantic search alone.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum


class Topic(str, Enum):
    PEOPLE = "people"
    OVERVIEW = "overview"
    INTERVIEWS = "interviews"
    QUESTIONS = "questions"
    RESPONSES = "responses"
    DOCUMENTS = "documents"
    EXPORTS = "exports"
    TIMELINE = "timeline"
    CLIENT = "client"


DIRECT_TOPICS: frozenset[Topic] = frozenset(
    {
        Topic.PEOPLE,
        Topic.OVERVIEW,
        Topic.INTERVIEWS,
        Topic.DOCUMENTS,
        Topic.EXPORTS,
        Topic.TIMELINE,
        Topic.CLIENT,
    }
)
SEMANTIC_TOPICS: frozenset[Topic] = frozenset({Topic.QUESTIONS, Topic.RESPONSES})


@dataclass(frozen=True)
class Rule:
    topic: Topic
    pattern: re.Pattern[str]

    def matches(self, question: str) -> bool:
        return self.pattern.search(question) is not None


def _rule(topic: Topic, pattern: str) -> Rule:
    return Rule(topic, re.compile(pattern, re.IGNORECASE))


_MONTHS = (
    r"january|february|march|april|june|july|august|september|october|november|december"
    r"|jan|feb|mar|apr|jun|jul|aug|sept?|oct|nov|dec"
)

RULES: tuple[Rule, ...] = (
    _rule(
        Topic.PEOPLE,
        r"\b(who|whom|whose|stakeholders?|people|persons?|team|members?|contacts?"
        r"|roles?|names?|participants?|interviewees?|emails?|phone|seniority|departments?)\b",
    ),
    _rule(
        Topic.OVERVIEW,
        r"\b(project|overview|summary|summari[sz]e|status|goals?|objectives?|description"
        r"|scope|kick-?off|deadline|due|progress)\b",
    ),
    _rule(
        Topic.INTERVIEWS,
        r"\b(interviews?|interviewed|sessions?|respond(ed|ing)?|complet(e|ed|ion)|finished"
        r"|pending|outstanding|participat\w*)\b",
    ),
    _rule(Topic.QUESTIONS, r"\b(questions?|asked|questionnaires?|categor(y|ies))\b"),
    _rule(
        Topic.RESPONSES,
        r"\b(say|says|said|answers?|answered|responses?|feedback|think|thinks|thought"
        r"|opinions?|mention(s|ed)?|concerns?|views?|told|quotes?|insights?)\b",
    ),
    _rule(
        Topic.DOCUMENTS,
        r"\b(documents?|docs?|files?|uploads?|uploaded|attachments?|pdfs?|reports?"
        r"|deliverables?|templates?|generated|drafts?|recordings?)\b",
    ),
    _rule(Topic.EXPORTS, r"\b(exports?|exported|backups?|downloads?|archives?|zip)\b"),
    _rule(
        Topic.TIMELINE,
        r"\b(when|dates?|dated|timeline|timestamps?|recent(ly)?|latest|last|ago|yesterday"
        r"|today|tonight|this (week|month|year)|since|chronolog\w*|schedule[ds]?"
        rf"|{_MONTHS})\b"
        r"|\b\d{4}-\d{2}-\d{2}\b|\b\d{1,2}/\d{1,2}(/\d{2,4})?\b|\b(19|20)\d{2}\b",
    ),
    _rule(
        Topic.CLIENT,
        r"\b(clients?|customers?|company|companies|organi[sz]ations?|accounts?"
        r"|(other|previous|past|prior) projects|portfolio|relationship)\b",
    ),
)


def classify(question: str, rules: tuple[Rule, ...] = RULES) -> frozenset[Topic]:
    """Return the set of topics whose pattern matches *question*."""
    return frozenset(rule.topic for rule in rules if rule.matches(question))


def has_direct_topic(topics: frozenset[Topic]) -> bool:
    return bool(topics & DIRECT_TOPICS)
