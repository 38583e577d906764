"""Assessment flow API routes.

Every mutating route returns the flow snapshot after the action. Actions not
available in the current step answer 409.
"""

import logging

from fastapi import APIRouter, status

from hearttoheart.api.deps import FlowEngine, Store
from hearttoheart.api.middleware.error_handler import NotFoundError
from hearttoheart.core.config import get_settings
from hearttoheart.schemas.assessment import (
    AgeGroupSelection,
    AnswerRequest,
    AssessmentSelection,
    DeepLinkRequest,
    DeepLinkResponse,
    FlowCreateRequest,
    FlowSnapshot,
    LanguageChange,
    ProfileEdit,
    RoleSelection,
    SubmitResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/flows", tags=["flows"])


@router.post(
    "",
    response_model=FlowSnapshot,
    status_code=status.HTTP_201_CREATED,
    summary="Start a new assessment flow",
)
async def create_flow(store: Store, body: FlowCreateRequest | None = None) -> FlowSnapshot:
    """Create a flow in SelectRole.

    Args:
        body: Optional language; defaults to the configured default language.

    Returns:
        FlowSnapshot: Initial state including the new flow_id.
    """
    language = (body.language if body else None) or get_settings().default_language
    flow_id, engine = store.create(language)
    logger.info("Created flow %s (%s)", flow_id, language)
    return engine.snapshot(flow_id)


@router.get("/{flow_id}", response_model=FlowSnapshot, summary="Get flow state")
async def get_flow(flow_id: str, engine: FlowEngine) -> FlowSnapshot:
    return engine.snapshot(flow_id)


@router.delete("/{flow_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Discard a flow")
async def delete_flow(flow_id: str, store: Store) -> None:
    if not store.delete(flow_id):
        raise NotFoundError(f"Flow not found: {flow_id}")


@router.post("/{flow_id}/role", response_model=FlowSnapshot, summary="Pick the respondent role")
async def select_role(flow_id: str, body: RoleSelection, engine: FlowEngine) -> FlowSnapshot:
    engine.select_role(body.role)
    return engine.snapshot(flow_id)


@router.post("/{flow_id}/age-group", response_model=FlowSnapshot, summary="Pick an age group")
async def select_age_group(flow_id: str, body: AgeGroupSelection, engine: FlowEngine) -> FlowSnapshot:
    engine.select_age_group(body.age_group_id)
    return engine.snapshot(flow_id)


@router.post("/{flow_id}/profile", response_model=FlowSnapshot, summary="Edit gender and exact age")
async def edit_profile(flow_id: str, body: ProfileEdit, engine: FlowEngine) -> FlowSnapshot:
    engine.update_profile(gender=body.gender, exact_age=body.exact_age)
    return engine.snapshot(flow_id)


@router.post(
    "/{flow_id}/profile/submit",
    response_model=FlowSnapshot,
    summary="Submit the profile",
    description="Moves to Questions if an assessment is already selected, else Dashboard. "
    "No change while the exact age is missing (see can_submit_profile).",
)
async def submit_profile(flow_id: str, engine: FlowEngine) -> FlowSnapshot:
    engine.submit_profile()
    return engine.snapshot(flow_id)


@router.post("/{flow_id}/assessment", response_model=FlowSnapshot, summary="Start an assessment from the dashboard")
async def start_assessment(flow_id: str, body: AssessmentSelection, engine: FlowEngine) -> FlowSnapshot:
    engine.start_assessment(body.assessment_id)
    return engine.snapshot(flow_id)


@router.post("/{flow_id}/answers", response_model=FlowSnapshot, summary="Answer one question")
async def answer_question(flow_id: str, body: AnswerRequest, engine: FlowEngine) -> FlowSnapshot:
    engine.answer(body.question_index, body.option)
    return engine.snapshot(flow_id)


@router.post(
    "/{flow_id}/submit",
    response_model=SubmitResponse,
    summary="Submit answers for a report",
    description="Requests the report and a contextual tip together. submitted is false when "
    "answers are incomplete, a submission is already running, or the report could not be generated.",
)
async def submit_answers(flow_id: str, engine: FlowEngine) -> SubmitResponse:
    submitted = await engine.submit()
    return SubmitResponse(submitted=submitted, flow=engine.snapshot(flow_id))


@router.post("/{flow_id}/back", response_model=FlowSnapshot, summary="Go to the previous step")
async def go_back(flow_id: str, engine: FlowEngine) -> FlowSnapshot:
    engine.back()
    return engine.snapshot(flow_id)


@router.post("/{flow_id}/dashboard", response_model=FlowSnapshot, summary="Leave the report for the dashboard")
async def return_to_dashboard(flow_id: str, engine: FlowEngine) -> FlowSnapshot:
    engine.return_to_dashboard()
    return engine.snapshot(flow_id)


@router.post("/{flow_id}/reset", response_model=FlowSnapshot, summary="Start over from role selection")
async def full_reset(flow_id: str, engine: FlowEngine) -> FlowSnapshot:
    engine.full_reset()
    return engine.snapshot(flow_id)


@router.post(
    "/{flow_id}/deep-link",
    response_model=DeepLinkResponse,
    summary="Apply an assessment deep link",
    description="Unknown assessment ids are ignored (applied=false, state unchanged).",
)
async def apply_deep_link(flow_id: str, body: DeepLinkRequest, engine: FlowEngine) -> DeepLinkResponse:
    applied = engine.apply_deep_link(body.token)
    return DeepLinkResponse(applied=applied, flow=engine.snapshot(flow_id))


@router.post("/{flow_id}/language", response_model=FlowSnapshot, summary="Switch content language")
async def change_language(flow_id: str, body: LanguageChange, engine: FlowEngine) -> FlowSnapshot:
    engine.set_language(body.language)
    return engine.snapshot(flow_id)
