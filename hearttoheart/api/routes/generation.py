"""Generation API routes: chat, tips, scenario scripts and bedtime stories.

These routes never fail because of the generation backend; they answer with
localized fallback content instead.
"""

from fastapi import APIRouter

from hearttoheart.api.deps import Generation
from hearttoheart.schemas.assessment import ChildProfile
from hearttoheart.schemas.generation import (
    ChatRequest,
    ChatResponse,
    ScenarioRequest,
    ScenarioResponse,
    StoryRequest,
    StoryResponse,
    TipRequest,
    TipResponse,
)

router = APIRouter(prefix="/generation", tags=["generation"])


@router.post(
    "/chat",
    response_model=ChatResponse,
    summary="Ask the parenting consultant",
    description="Returns the reply and any assessment deep links it contains.",
)
async def chat(body: ChatRequest, service: Generation) -> ChatResponse:
    return await service.send_chat_message(body.message, body.attachments, body.language)


@router.post("/tip", response_model=TipResponse, summary="Get a daily tip")
async def tip(body: TipRequest, service: Generation) -> TipResponse:
    text = await service.generate_tip(body.context, body.is_premium, body.language)
    return TipResponse(text=text)


@router.post("/scenario", response_model=ScenarioResponse, summary="Get a role-play example script")
async def scenario(body: ScenarioRequest, service: Generation) -> ScenarioResponse:
    profile = ChildProfile(exactAge=body.exact_age, role=body.role)
    text = await service.generate_scenario(profile, body.solution_title, body.language, is_retry=body.is_retry)
    return ScenarioResponse(text=text)


@router.post(
    "/story",
    response_model=StoryResponse,
    summary="Write and narrate a bedtime story",
    description="audio_base64 holds a WAV file; it is empty when narration failed.",
)
async def story(body: StoryRequest, service: Generation) -> StoryResponse:
    return await service.generate_story(
        child_name=body.child_name,
        age=body.age,
        skill_to_learn=body.skill_to_learn,
        issue_to_correct=body.issue_to_correct,
        voice_id=body.voice_id,
        language=body.language,
    )
