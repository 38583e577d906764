"""Pydantic schemas shared by the services and the API."""

from hearttoheart.schemas.assessment import (
    AnswerOption,
    ChildProfile,
    FlowSnapshot,
    FlowStep,
    ProfileHints,
    QuestionAnswer,
)
from hearttoheart.schemas.catalog import AgeGroup, AssessmentDefinition, Catalog, SolutionCard
from hearttoheart.schemas.common import ErrorResponse, HealthResponse, HealthStatus
from hearttoheart.schemas.generation import ChatResponse, ReportResult, StoryResponse

__all__ = [
    "AgeGroup",
    "AnswerOption",
    "AssessmentDefinition",
    "Catalog",
    "ChatResponse",
    "ChildProfile",
    "ErrorResponse",
    "FlowSnapshot",
    "FlowStep",
    "HealthResponse",
    "HealthStatus",
    "ProfileHints",
    "QuestionAnswer",
    "ReportResult",
    "SolutionCard",
    "StoryResponse",
]
