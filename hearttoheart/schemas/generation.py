"""Generation Pydantic schemas for chat, tip, scenario, story and report requests."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from hearttoheart.schemas.assessment import ProfileHints, UserRole
from hearttoheart.schemas.catalog import Language


class Attachment(BaseModel):
    """A base64-encoded file sent along with a chat message."""

    mime_type: str = Field(description="MIME type, e.g. image/png")
    data: str = Field(description="Base64 payload without data-URL prefix")
    type: Literal["image", "video", "audio"] = Field(default="image")


class ChatRequest(BaseModel):
    """Body for POST /generation/chat."""

    message: str = Field(default="", max_length=8000)
    attachments: list[Attachment] = Field(default_factory=list)
    language: Language = "zh"


class DeepLinkMarker(BaseModel):
    """An assessment link found in generated text."""

    model_config = ConfigDict(frozen=True)

    label: str = Field(description="Link text shown to the user")
    token: str = Field(description="Raw token after 'assessment:'")
    assessment_id: str
    profile_hints: ProfileHints


class ChatResponse(BaseModel):
    """Assistant reply plus the assessment links it contains."""

    text: str
    links: list[DeepLinkMarker] = Field(default_factory=list)


class TipRequest(BaseModel):
    """Body for POST /generation/tip."""

    context: str = Field(default="Parenting in general", max_length=2000)
    is_premium: bool = False
    language: Language = "zh"


class TipResponse(BaseModel):
    text: str


class ScenarioRequest(BaseModel):
    """Body for POST /generation/scenario."""

    solution_title: str = Field(min_length=1)
    role: UserRole = "parent"
    exact_age: str = "5"
    language: Language = "zh"
    is_retry: bool = False


class ScenarioResponse(BaseModel):
    text: str


class StoryRequest(BaseModel):
    """Body for POST /generation/story."""

    child_name: str = Field(min_length=1, max_length=100)
    age: str = Field(min_length=1, max_length=20)
    skill_to_learn: str = Field(default="", max_length=500)
    issue_to_correct: str = Field(default="", max_length=500)
    voice_id: str = Field(default="default", description="Story character identifier")
    language: Language = "zh"


class StoryResponse(BaseModel):
    """Story text and narration; audio fields are empty when speech failed."""

    text: str
    audio_base64: str = ""
    mime_type: str = ""


class ReportResult(BaseModel):
    """Outcome of a report request.

    The text is always usable; succeeded is False when it is a fallback.
    """

    model_config = ConfigDict(frozen=True)

    text: str
    succeeded: bool
