"""Solution library Pydantic schemas."""

from pydantic import BaseModel, Field

from hearttoheart.schemas.assessment import UserRole
from hearttoheart.schemas.catalog import Language, SolutionCard


class SolutionCardView(BaseModel):
    """A solution card with the strategies for the requested role."""

    card: SolutionCard
    strategies: list[str] = Field(description="strategiesTeacher or strategiesParent, by role")


class SolutionListResponse(BaseModel):
    """Response for GET /solutions/{language}."""

    language: Language
    role: UserRole
    items: list[SolutionCardView]


class SolutionScenarioRequest(BaseModel):
    """Body for POST /solutions/{language}/{solution_id}/scenario."""

    role: UserRole = "parent"
    exact_age: str = Field(default="5", min_length=1, max_length=20)
    is_retry: bool = False


class SolutionScenarioResponse(BaseModel):
    """Example script for one solution card."""

    solution_id: str
    role: UserRole
    exact_age: str
    text: str
