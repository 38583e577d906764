"""FastAPI dependency injection functions."""

from typing import Annotated

from fastapi import Depends, Path

from hearttoheart.api.middleware.error_handler import NotFoundError
from hearttoheart.services.assessment_flow import AssessmentFlowEngine
from hearttoheart.services.flow_store import FlowStore, get_flow_store
from hearttoheart.services.generation_service import GenerationService, get_generation_service
from hearttoheart.services.solution_library import SolutionLibraryRegistry, get_solution_registry


def get_store() -> FlowStore:
    """Flow registry dependency (overridable in tests)."""
    return get_flow_store()


def get_generation() -> GenerationService:
    """Generation service dependency (overridable in tests)."""
    return get_generation_service()


def get_solutions() -> SolutionLibraryRegistry:
    """Solution library registry dependency (overridable in tests)."""
    return get_solution_registry()


Store = Annotated[FlowStore, Depends(get_store)]
Generation = Annotated[GenerationService, Depends(get_generation)]
Solutions = Annotated[SolutionLibraryRegistry, Depends(get_solutions)]


async def get_flow_engine(
    store: Store,
    flow_id: Annotated[str, Path(description="Flow id returned by POST /flows")],
) -> AssessmentFlowEngine:
    """Look up a live flow.

    Raises:
        NotFoundError: If the flow is unknown or expired.
    """
    engine = store.get(flow_id)
    if engine is None:
        raise NotFoundError(f"Flow not found: {flow_id}")
    return engine


FlowEngine = Annotated[AssessmentFlowEngine, Depends(get_flow_engine)]
