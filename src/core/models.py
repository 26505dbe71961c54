# src/core/models.py — v2
"""Core domain models shared across pipeline stages and stores.

Candidate profiles, requirement sets, match results, conversation entries,
and the query/task records persisted for every pipeline invocation.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

AvailabilityStatus = Literal["available", "busy", "unavailable"]
RenownLevel = Literal["hidden", "rising", "established", "famous"]
SkillLevel = Literal["junior", "mid", "senior", "expert"]
QueryStatus = Literal["processing", "completed", "failed"]
TaskStatus = Literal["pending", "in_progress", "completed", "failed"]


def utc_now() -> datetime:
    """Timezone-aware current time used for every persisted timestamp."""
    return datetime.now(timezone.utc)


# === CANDIDATE PROFILES ===


class Skill(BaseModel):
    """One skill held by a candidate."""

    name: str
    level: SkillLevel = "mid"
    years_exp: float = 0


class Availability(BaseModel):
    """Working availability of a candidate."""

    timezone: str = "UTC"
    hours_per_week: int = 40
    status: AvailabilityStatus = "available"


class SourceLink(BaseModel):
    """Provenance of an ingested profile (e.g. github, stackoverflow)."""

    platform: str
    profile_url: str
    last_synced_at: datetime | None = None


class VerificationDetails(BaseModel):
    """Signals attached by the verifier stage."""

    profile_complete: bool
    has_external_links: bool
    availability_confirmed: bool


class CandidateProfile(BaseModel):
    """Searchable candidate profile.

    Read-only from the pipeline's point of view, except ``match_count``
    and the verifier annotations on in-flight copies.
    """

    id: str = ""
    name: str
    email: str = ""
    title: str
    department: str = "General"
    bio: str = ""
    skills: list[Skill] = Field(default_factory=list)
    embedding: list[float] = Field(default_factory=list)
    availability: Availability = Field(default_factory=Availability)
    renown_level: RenownLevel | None = None
    linkedin: str | None = None
    github: str | None = None
    stackoverflow: str | None = None
    sources: list[SourceLink] = Field(default_factory=list)
    match_count: int = 0
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    # Set by the verifier on the copies flowing through the pipeline.
    verified: bool = False
    verification: VerificationDetails | None = None

    @property
    def skill_names(self) -> list[str]:
        return [s.name for s in self.skills]

    @property
    def is_available(self) -> bool:
        return self.availability.status == "available"

    def without_embedding(self) -> CandidateProfile:
        """Copy suitable for responses and cached payloads."""
        return self.model_copy(update={"embedding": []})


class ScoredCandidate(BaseModel):
    """Vector search hit annotated with its similarity score."""

    candidate: CandidateProfile
    similarity: float


# === REQUIREMENTS ===


class SkillRequirement(BaseModel):
    """Weighted skill term extracted from a query."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    weight: float = Field(gt=0.0, le=1.0)


class Constraint(BaseModel):
    """Typed constraint extracted from a query (e.g. renown=popular)."""

    model_config = ConfigDict(frozen=True)

    type: str = Field(min_length=1)
    value: str


class RequirementSet(BaseModel):
    """Structured requirements derived once per invocation. Never mutated."""

    model_config = ConfigDict(frozen=True)

    skills: tuple[SkillRequirement, ...] = ()
    constraints: tuple[Constraint, ...] = ()
    intent: str = "technical_hire"
    summary: str = ""

    def constraint(self, constraint_type: str) -> Constraint | None:
        """First constraint of the given type, if any."""
        for c in self.constraints:
            if c.type == constraint_type:
                return c
        return None


# === RESULTS + CONVERSATION ===


class MatchResult(BaseModel):
    """Ranked candidate with its score and justification lines."""

    candidate: CandidateProfile
    score: float = Field(ge=0.0, le=1.0)
    reasoning: list[str] = Field(default_factory=list)
    matched_by: str


class ConversationEntry(BaseModel):
    """Append-only trace entry written by a pipeline stage."""

    model_config = ConfigDict(frozen=True)

    agent: str
    message: str
    data: Any = None
    timestamp: datetime = Field(default_factory=utc_now)


class QueryRecord(BaseModel):
    """Audit record of one pipeline invocation."""

    query_id: str
    raw_query: str
    status: QueryStatus = "processing"
    parsed_requirements: RequirementSet | None = None
    conversation: list[ConversationEntry] = Field(default_factory=list)
    results: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    completed_at: datetime | None = None


class TaskRecord(BaseModel):
    """Observability record of which stages ran for an invocation."""

    task_id: str
    query_id: str
    agents: list[str] = Field(default_factory=list)
    status: TaskStatus = "pending"
    started_at: datetime = Field(default_factory=utc_now)
    completed_at: datetime | None = None


class SearchResponse(BaseModel):
    """Payload returned by the orchestrator and stored in the result cache."""

    query_id: str
    matches: list[MatchResult] = Field(default_factory=list)
    conversation: list[ConversationEntry] = Field(default_factory=list)
    cached: bool = False


# === ANSWER MODE ===

RetrievalMethod = Literal["vector", "keyword"]


class AnswerExpert(BaseModel):
    """Condensed profile cited by a written answer."""

    id: str
    name: str
    title: str
    skills: list[str] = Field(default_factory=list)
    match_score: float
    bio: str = ""
    github: str | None = None


class AnswerResponse(BaseModel):
    """Written answer over the profiles retrieved for a query."""

    answer_id: str
    query: str
    answer: str
    experts: list[AnswerExpert] = Field(default_factory=list)
    retrieval_method: RetrievalMethod
    context: str | None = None
