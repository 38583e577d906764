"""Solution library API routes."""

from typing import Annotated

from fastapi import APIRouter, Query

from hearttoheart.api.deps import Solutions
from hearttoheart.api.middleware.error_handler import ConflictError
from hearttoheart.schemas.assessment import UserRole
from hearttoheart.schemas.catalog import Language
from hearttoheart.schemas.solution import (
    SolutionCardView,
    SolutionListResponse,
    SolutionScenarioRequest,
    SolutionScenarioResponse,
)

router = APIRouter(prefix="/solutions", tags=["solutions"])


@router.get(
    "/{language}",
    response_model=SolutionListResponse,
    summary="List solution cards",
    description="Each card carries the strategies for the requested role.",
)
async def list_solutions(
    language: Language,
    registry: Solutions,
    role: Annotated[UserRole, Query(description="Whose strategies to show")] = "parent",
) -> SolutionListResponse:
    library = registry.get(language, role=role)
    return SolutionListResponse(
        language=language,
        role=role,
        items=[
            SolutionCardView(card=card, strategies=list(library.strategies_for(card.id)))
            for card in library.cards
        ],
    )


@router.post(
    "/{language}/{solution_id}/scenario",
    response_model=SolutionScenarioResponse,
    summary="Get an example script for a solution card",
    responses={
        404: {"description": "Unknown solution id"},
        409: {"description": "A script for this card and context is already being generated"},
    },
)
async def solution_scenario(
    language: Language,
    solution_id: str,
    body: SolutionScenarioRequest,
    registry: Solutions,
) -> SolutionScenarioResponse:
    """Generate a role-play script for one card in the given role/age context."""
    library = registry.get(language, role=body.role, age=body.exact_age)
    text = await library.generate_scenario(solution_id, is_retry=body.is_retry)
    if text is None:
        raise ConflictError(f"Scenario for '{solution_id}' is already being generated")
    return SolutionScenarioResponse(
        solution_id=solution_id,
        role=library.context_role,
        exact_age=library.context_age,
        text=text,
    )
