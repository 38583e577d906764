"""Client for report, tip, scenario, story and chat generation.

Every public method returns usable content: backend failures, timeouts and a
missing API key all degrade to localized fallback text instead of raising.
"""

import asyncio
import logging
from typing import Any

from openai import OpenAIError

from hearttoheart.core.config import Settings, get_settings
from hearttoheart.core.openai import TimedOpenAIClient, get_openai_client
from hearttoheart.schemas.assessment import ChildProfile, QuestionAnswer
from hearttoheart.schemas.catalog import Catalog
from hearttoheart.schemas.generation import (
    Attachment,
    ChatResponse,
    ReportResult,
    StoryResponse,
)
from hearttoheart.services.audio import pcm_to_wav_base64
from hearttoheart.services.catalog_service import load_catalog
from hearttoheart.services.deep_link import find_assessment_links
from hearttoheart.services.generation_prompts import (
    build_chat_system_prompt,
    build_report_prompt,
    build_scenario_prompt,
    build_story_prompt,
    build_tip_prompt,
    fallback,
    voice_for,
)

logger = logging.getLogger(__name__)

WAV_MIME_TYPE = "audio/wav"


class GenerationService:
    """Service for all text and speech generation against OpenAI."""

    REPORT_TEMPERATURE = 0.4
    TIP_TEMPERATURE = 0.8
    SCENARIO_TEMPERATURE = 0.7
    SCENARIO_RETRY_TEMPERATURE = 0.9  # Higher so a retry yields a different script
    STORY_TEMPERATURE = 0.8
    CHAT_TEMPERATURE = 0.7

    REPORT_MAX_TOKENS = 1500
    TIP_MAX_TOKENS = 150
    SCENARIO_MAX_TOKENS = 800
    STORY_MAX_TOKENS = 600
    CHAT_MAX_TOKENS = 1200

    def __init__(
        self,
        client: TimedOpenAIClient | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize generation service.

        Args:
            client: Optional OpenAI client for testing.
            settings: Optional settings for testing.
        """
        self.settings = settings or get_settings()
        self._client = client

    @property
    def client(self) -> TimedOpenAIClient:
        if self._client is None:
            self._client = get_openai_client()
        return self._client

    @property
    def is_configured(self) -> bool:
        return self.settings.generation_enabled

    async def _run(self, func: Any, **kwargs: Any) -> Any:
        """Run a blocking SDK call in a worker thread, bounded by the generation timeout."""
        return await asyncio.wait_for(
            asyncio.to_thread(func, **kwargs),
            timeout=self.settings.generation_timeout_seconds,
        )

    async def _complete(
        self,
        messages: list[dict[str, Any]],
        temperature: float,
        max_tokens: int,
    ) -> str:
        """Run a chat completion and return its stripped text ('' when empty)."""
        response = await self._run(
            self.client.chat.create,
            model=self.settings.openai_model,
            messages=messages,
            temperature=temperature,
            max_completion_tokens=max_tokens,
        )
        if not response.choices:
            return ""
        return (response.choices[0].message.content or "").strip()

    async def generate_report(
        self,
        profile: ChildProfile,
        assessment_title: str,
        answers: list[QuestionAnswer],
        language: str,
    ) -> ReportResult:
        """Generate an assessment report.

        Args:
            profile: Child profile at submission time.
            assessment_title: Localized title of the completed assessment.
            answers: Ordered question/answer pairs.
            language: Output language.

        Returns:
            ReportResult: The report, or fallback text with succeeded=False.
        """
        if not self.is_configured:
            logger.warning("Report requested without an OpenAI key; returning fallback")
            return ReportResult(text=fallback(language, "report_unconfigured"), succeeded=False)

        prompt = build_report_prompt(profile, assessment_title, answers, language)
        try:
            text = await self._complete(
                [{"role": "user", "content": prompt}],
                temperature=self.REPORT_TEMPERATURE,
                max_tokens=self.REPORT_MAX_TOKENS,
            )
        except asyncio.TimeoutError:
            logger.error(
                "Report generation for '%s' timed out after %.1fs",
                assessment_title,
                self.settings.generation_timeout_seconds,
            )
            return ReportResult(text=fallback(language, "report_error"), succeeded=False)
        except OpenAIError as e:
            logger.error("Report generation for '%s' failed: %s", assessment_title, e)
            return ReportResult(text=fallback(language, "report_error"), succeeded=False)
        except Exception as e:
            logger.exception("Unexpected error generating report for '%s': %s", assessment_title, e)
            return ReportResult(text=fallback(language, "report_error"), succeeded=False)

        if not text:
            logger.warning("Report generation for '%s' returned no text", assessment_title)
            return ReportResult(text=fallback(language, "report_empty"), succeeded=False)

        logger.info("Generated report for '%s' (%d chars)", assessment_title, len(text))
        return ReportResult(text=text, succeeded=True)

    async def generate_tip(self, context: str, is_premium: bool, language: str) -> str:
        """Generate a short daily tip for the given context."""
        if not self.is_configured:
            return fallback(language, "tip_unconfigured")

        try:
            text = await self._complete(
                [{"role": "user", "content": build_tip_prompt(context, is_premium, language)}],
                temperature=self.TIP_TEMPERATURE,
                max_tokens=self.TIP_MAX_TOKENS,
            )
        except asyncio.TimeoutError:
            logger.warning("Tip generation timed out")
            return fallback(language, "tip")
        except OpenAIError as e:
            logger.warning("Tip generation failed: %s", e)
            return fallback(language, "tip")
        except Exception as e:
            logger.exception("Unexpected error generating tip: %s", e)
            return fallback(language, "tip")

        return text or fallback(language, "tip")

    async def generate_scenario(
        self,
        profile: ChildProfile,
        solution_title: str,
        language: str,
        is_retry: bool = False,
    ) -> str:
        """Generate a role-play script contrasting a negative and a positive approach.

        Args:
            profile: Supplies the adult role and child age.
            solution_title: Behavior pattern being addressed.
            language: Output language.
            is_retry: Sample more freely so a retry gives a different script.
        """
        if not self.is_configured:
            return fallback(language, "scenario_unconfigured")

        temperature = self.SCENARIO_RETRY_TEMPERATURE if is_retry else self.SCENARIO_TEMPERATURE
        try:
            text = await self._complete(
                [{"role": "user", "content": build_scenario_prompt(profile, solution_title, language)}],
                temperature=temperature,
                max_tokens=self.SCENARIO_MAX_TOKENS,
            )
        except asyncio.TimeoutError:
            logger.warning("Scenario generation for '%s' timed out", solution_title)
            return fallback(language, "scenario_error")
        except OpenAIError as e:
            logger.warning("Scenario generation for '%s' failed: %s", solution_title, e)
            return fallback(language, "scenario_error")
        except Exception as e:
            logger.exception("Unexpected error generating scenario for '%s': %s", solution_title, e)
            return fallback(language, "scenario_error")

        return text or fallback(language, "scenario_empty")

    async def generate_story(
        self,
        child_name: str,
        age: str,
        skill_to_learn: str,
        issue_to_correct: str,
        voice_id: str,
        language: str,
    ) -> StoryResponse:
        """Write a bedtime story and narrate it.

        Story text failure yields the localized opening line with no audio;
        speech failure keeps the text and returns empty audio fields.
        """
        story_fallback = StoryResponse(text=fallback(language, "story_text"))
        if not self.is_configured:
            return story_fallback

        prompt = build_story_prompt(child_name, age, skill_to_learn, issue_to_correct, language)
        try:
            text = await self._complete(
                [{"role": "user", "content": prompt}],
                temperature=self.STORY_TEMPERATURE,
                max_tokens=self.STORY_MAX_TOKENS,
            )
        except asyncio.TimeoutError:
            logger.warning("Story text generation for '%s' timed out", child_name)
            return story_fallback
        except OpenAIError as e:
            logger.warning("Story text generation for '%s' failed: %s", child_name, e)
            return story_fallback
        except Exception as e:
            logger.exception("Unexpected error generating story for '%s': %s", child_name, e)
            return story_fallback

        if not text:
            return story_fallback

        voice = voice_for(voice_id)
        try:
            pcm = await self._run(
                self.client.speech.create,
                model=self.settings.tts_model,
                voice=voice,
                input=text,
                response_format="pcm",
            )
        except asyncio.TimeoutError:
            logger.warning("Story narration with voice '%s' timed out", voice)
            return StoryResponse(text=text)
        except OpenAIError as e:
            logger.warning("Story narration with voice '%s' failed: %s", voice, e)
            return StoryResponse(text=text)
        except Exception as e:
            logger.exception("Unexpected error narrating story: %s", e)
            return StoryResponse(text=text)

        if not pcm:
            return StoryResponse(text=text)

        return StoryResponse(
            text=text,
            audio_base64=pcm_to_wav_base64(pcm, self.settings.tts_sample_rate),
            mime_type=WAV_MIME_TYPE,
        )

    def _build_chat_user_content(
        self,
        message: str,
        attachments: list[Attachment],
        language: str,
    ) -> str | list[dict[str, Any]]:
        """Plain text, or content parts when images are attached."""
        images = [a for a in attachments if a.type == "image"]
        skipped = len(attachments) - len(images)
        if skipped:
            logger.info("Skipping %d non-image chat attachment(s)", skipped)

        text = message.strip()
        if not images:
            return text

        parts: list[dict[str, Any]] = [
            {"type": "text", "text": text or fallback(language, "attachment_prompt")}
        ]
        for image in images:
            parts.append(
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:{image.mime_type};base64,{image.data}"},
                }
            )
        return parts

    async def send_chat_message(
        self,
        message: str,
        attachments: list[Attachment],
        language: str,
        catalog: Catalog | None = None,
    ) -> ChatResponse:
        """Answer a consultation message.

        The system prompt lists every assessment in the catalog so the reply
        can embed assessment deep links, which are returned alongside the text.

        Args:
            message: User text (may be empty when attachments are sent).
            attachments: Base64 attachments; only images are forwarded.
            language: Reply language.
            catalog: Catalog to advertise; loaded for the language if omitted.
        """
        if not self.is_configured:
            return ChatResponse(text=fallback(language, "chat_unconfigured"))

        catalog = catalog or load_catalog(language)
        messages = [
            {"role": "system", "content": build_chat_system_prompt(catalog)},
            {"role": "user", "content": self._build_chat_user_content(message, attachments, language)},
        ]

        try:
            text = await self._complete(
                messages,
                temperature=self.CHAT_TEMPERATURE,
                max_tokens=self.CHAT_MAX_TOKENS,
            )
        except asyncio.TimeoutError:
            logger.error("Chat reply timed out after %.1fs", self.settings.generation_timeout_seconds)
            return ChatResponse(text=fallback(language, "chat_error"))
        except OpenAIError as e:
            logger.error("Chat reply failed: %s", e)
            return ChatResponse(text=fallback(language, "chat_error"))
        except Exception as e:
            logger.exception("Unexpected error in chat reply: %s", e)
            return ChatResponse(text=fallback(language, "chat_error"))

        if not text:
            return ChatResponse(text=fallback(language, "chat_empty"))

        return ChatResponse(text=text, links=find_assessment_links(text))


# Global singleton instance
_generation_service: GenerationService | None = None


def get_generation_service() -> GenerationService:
    """Get or create the global generation service instance."""
    global _generation_service
    if _generation_service is None:
        _generation_service = GenerationService()
    return _generation_service
