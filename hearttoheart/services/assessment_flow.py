"""Assessment flow engine.

A single-user wizard: role -> age group -> profile -> dashboard -> questions
-> report. The engine owns all flow state; callers drive it through the
methods below and render ``snapshot()``.
"""

import asyncio
import logging
from typing import Any

from hearttoheart.schemas.assessment import (
    ANSWER_OPTION_LABELS,
    UNSURE_ANSWER,
    AnswerOption,
    AnswerOptionView,
    ChildProfile,
    FlowSnapshot,
    FlowStep,
    Gender,
    ProfileHints,
    QuestionAnswer,
    ReportView,
    UserRole,
)
from hearttoheart.schemas.catalog import AgeGroup, AssessmentDefinition, Catalog, Language
from hearttoheart.services.catalog_service import load_catalog
from hearttoheart.services.deep_link import resolve_deep_link
from hearttoheart.services.generation_prompts import build_assessment_tip_context
from hearttoheart.services.generation_service import GenerationService, get_generation_service

logger = logging.getLogger(__name__)


class FlowError(Exception):
    """Base class for assessment flow faults."""


class InvalidTransitionError(FlowError):
    """Raised when an action is not available in the current step."""

    def __init__(self, action: str, step: FlowStep) -> None:
        self.action = action
        self.step = step
        super().__init__(f"Cannot {action} while in step '{step.value}'")


class UnknownAgeGroupError(FlowError):
    """Raised when a manually picked age group id is not in the catalog."""

    def __init__(self, age_group_id: str) -> None:
        self.age_group_id = age_group_id
        super().__init__(f"Unknown age group: {age_group_id}")


class UnknownAssessmentError(FlowError):
    """Raised when a manually picked assessment is not offered for the age group."""

    def __init__(self, assessment_id: str) -> None:
        self.assessment_id = assessment_id
        super().__init__(f"Unknown assessment: {assessment_id}")


class QuestionIndexError(FlowError):
    """Raised when an answer targets a question the assessment does not have."""

    def __init__(self, question_index: int, question_count: int) -> None:
        self.question_index = question_index
        self.question_count = question_count
        super().__init__(f"Question index {question_index} is out of range (0-{question_count - 1})")


# Step reached by "back" from each step
PREVIOUS_STEP: dict[FlowStep, FlowStep] = {
    FlowStep.SELECT_AGE_GROUP: FlowStep.SELECT_ROLE,
    FlowStep.PROFILE_INPUT: FlowStep.SELECT_AGE_GROUP,
    FlowStep.DASHBOARD: FlowStep.PROFILE_INPUT,
    FlowStep.QUESTIONS: FlowStep.DASHBOARD,
    FlowStep.REPORT: FlowStep.QUESTIONS,
}


class AssessmentFlowEngine:
    """State machine for one visitor's assessment flow.

    Every async action captures the current generation token before it
    awaits; navigation bumps the token, and a result whose token is no
    longer current is discarded.
    """

    def __init__(
        self,
        language: Language = "zh",
        generation_service: GenerationService | None = None,
    ) -> None:
        """Initialize the engine in SelectRole.

        Args:
            language: Content language.
            generation_service: Optional generation service for testing.
        """
        self.generation_service = generation_service or get_generation_service()
        self.language: Language = language
        self.catalog: Catalog = load_catalog(language)
        self._generation_token = 0
        self._clear()

    def _clear(self) -> None:
        self.step = FlowStep.SELECT_ROLE
        self.profile = ChildProfile()
        self.age_group_id: str | None = None
        self.selected_assessment: AssessmentDefinition | None = None
        self.answers: dict[int, AnswerOption] = {}
        self.report: ReportView | None = None
        self.latest_tip: str | None = None
        self.is_submitting = False

    def _require_step(self, action: str, *steps: FlowStep) -> None:
        if self.step not in steps:
            raise InvalidTransitionError(action, self.step)

    def _invalidate_pending(self) -> None:
        """Make any in-flight result stale."""
        self._generation_token += 1
        self.is_submitting = False

    def _set_profile(self, **fields: Any) -> None:
        """Replace profile fields, validating the result."""
        self.profile = ChildProfile(**{**self.profile.model_dump(), **fields})

    @property
    def age_group(self) -> AgeGroup | None:
        if self.age_group_id is None:
            return None
        return self.catalog.age_group(self.age_group_id)

    @property
    def generation_token(self) -> int:
        return self._generation_token

    # --- Wizard steps ---

    def select_role(self, role: UserRole) -> None:
        self._require_step("select a role", FlowStep.SELECT_ROLE)
        self._set_profile(role=role)
        self.step = FlowStep.SELECT_AGE_GROUP

    def select_age_group(self, age_group_id: str) -> None:
        """Pick an age group and move on to the profile form.

        A previously selected assessment from another age group is dropped.
        """
        self._require_step("select an age group", FlowStep.SELECT_AGE_GROUP)
        group = self.catalog.age_group(age_group_id)
        if group is None:
            raise UnknownAgeGroupError(age_group_id)

        if self.selected_assessment is not None and self.age_group_id != age_group_id:
            self.selected_assessment = None
            self.answers = {}
            self.report = None

        self.age_group_id = group.id
        self._set_profile(ageGroup=group.label)
        self.step = FlowStep.PROFILE_INPUT

    def update_profile(self, gender: Gender | None = None, exact_age: str | None = None) -> None:
        """Edit profile fields; None leaves a field unchanged."""
        self._require_step("edit the profile", FlowStep.PROFILE_INPUT)
        update: dict[str, str] = {}
        if gender is not None:
            update["gender"] = gender
        if exact_age is not None:
            update["exactAge"] = exact_age.strip()
        if update:
            self._set_profile(**update)

    @property
    def can_submit_profile(self) -> bool:
        return self.step == FlowStep.PROFILE_INPUT and self.profile.is_complete

    def submit_profile(self) -> bool:
        """Leave the profile form.

        Returns:
            bool: False (and no change) while the exact age is missing.
        """
        self._require_step("submit the profile", FlowStep.PROFILE_INPUT)
        if not self.profile.is_complete:
            return False
        self.step = FlowStep.QUESTIONS if self.selected_assessment else FlowStep.DASHBOARD
        return True

    @property
    def dashboard_assessments(self) -> tuple[AssessmentDefinition, ...]:
        if self.age_group_id is None:
            return ()
        return self.catalog.assessments_for(self.age_group_id)

    def start_assessment(self, assessment_id: str) -> None:
        """Pick an assessment from the dashboard and start with no answers."""
        self._require_step("start an assessment", FlowStep.DASHBOARD)
        assessment = next((a for a in self.dashboard_assessments if a.id == assessment_id), None)
        if assessment is None:
            raise UnknownAssessmentError(assessment_id)

        self._invalidate_pending()
        self.selected_assessment = assessment
        self.answers = {}
        self.report = None
        self.step = FlowStep.QUESTIONS

    # --- Questions ---

    @property
    def question_count(self) -> int:
        return self.selected_assessment.question_count if self.selected_assessment else 0

    def answer(self, question_index: int, option: AnswerOption) -> None:
        """Record (or change) the answer to one question."""
        self._require_step("answer a question", FlowStep.QUESTIONS)
        if self.is_submitting:
            raise InvalidTransitionError("change answers during submission", self.step)
        if not 0 <= question_index < self.question_count:
            raise QuestionIndexError(question_index, self.question_count)
        self.answers[question_index] = AnswerOption(option)

    @property
    def can_submit(self) -> bool:
        return (
            self.step == FlowStep.QUESTIONS
            and self.selected_assessment is not None
            and len(self.answers) == self.question_count
            and not self.is_submitting
        )

    def _answer_pairs(self) -> list[QuestionAnswer]:
        labels = ANSWER_OPTION_LABELS[self.language]
        return [
            QuestionAnswer(
                question=question,
                answer=labels[self.answers[idx]] if idx in self.answers else UNSURE_ANSWER,
            )
            for idx, question in enumerate(self.selected_assessment.questions)
        ]

    async def submit(self) -> bool:
        """Request the report and a contextual tip together, then show the report.

        Tip failure never blocks the transition. A failed report leaves the
        engine in Questions with answers intact so the user can resubmit.

        Returns:
            bool: True when the engine moved to Report.
        """
        if not self.can_submit:
            logger.debug("Submission rejected in step %s (%d/%d answered)",
                          self.step.value, len(self.answers), self.question_count)
            return False

        token = self._generation_token
        self.is_submitting = True

        assessment = self.selected_assessment
        profile = self.profile.model_copy()
        language = self.language
        tip_context = build_assessment_tip_context(profile.exactAge, assessment.title, profile.role)

        report_result, tip = await asyncio.gather(
            self.generation_service.generate_report(profile, assessment.title, self._answer_pairs(), language),
            self.generation_service.generate_tip(tip_context, False, language),
            return_exceptions=True,
        )

        if token != self._generation_token:
            logger.info("Discarding stale report for '%s'", assessment.id)
            return False

        self.is_submitting = False

        if isinstance(tip, BaseException):
            logger.warning("Contextual tip failed during submission: %s", tip)
        elif tip:
            self.latest_tip = tip

        if isinstance(report_result, BaseException):
            logger.error("Report request for '%s' raised: %s", assessment.id, report_result)
            return False
        if not report_result.succeeded:
            logger.warning("Report for '%s' unavailable; staying on questions", assessment.id)
            return False

        self.report = ReportView(
            text=report_result.text,
            assessment_id=assessment.id,
            assessment_title=assessment.title,
            profile=profile,
        )
        self.step = FlowStep.REPORT
        return True

    # --- Navigation ---

    @property
    def can_go_back(self) -> bool:
        return self.step in PREVIOUS_STEP

    def back(self) -> None:
        """Move to the preceding step, keeping everything collected so far."""
        if not self.can_go_back:
            raise InvalidTransitionError("go back", self.step)
        self._invalidate_pending()
        self.step = PREVIOUS_STEP[self.step]

    def return_to_dashboard(self) -> None:
        """Leave the report for the dashboard, keeping the profile."""
        self._require_step("return to the dashboard", FlowStep.REPORT)
        self._invalidate_pending()
        self.selected_assessment = None
        self.answers = {}
        self.report = None
        self.step = FlowStep.DASHBOARD

    def full_reset(self) -> None:
        """Return to SelectRole with a default profile, from any step."""
        self._invalidate_pending()
        self._clear()

    # --- Entry from outside the wizard ---

    def preseed(self, assessment_id: str, profile_hints: ProfileHints | None = None) -> bool:
        """Jump straight to an assessment.

        Goes to Questions when the hints carry an exact age, otherwise to
        ProfileInput. An id that is not in the catalog changes nothing.

        Returns:
            bool: Whether the assessment was found and applied.
        """
        found = self.catalog.find_assessment(assessment_id)
        if found is None:
            logger.info("Ignoring deep link to unknown assessment '%s'", assessment_id)
            return False

        age_group_id, assessment = found
        hints = (profile_hints or ProfileHints()).model_dump(exclude_none=True)
        if "exactAge" in hints:
            hints["exactAge"] = hints["exactAge"].strip()
            if not hints["exactAge"]:
                del hints["exactAge"]

        self._invalidate_pending()
        self.age_group_id = age_group_id
        self.profile = ChildProfile(ageGroup=self.catalog.age_group(age_group_id).label, **hints)
        self.selected_assessment = assessment
        self.answers = {}
        self.report = None
        self.step = FlowStep.QUESTIONS if self.profile.is_complete else FlowStep.PROFILE_INPUT
        logger.info("Pre-seeded flow with '%s' at step %s", assessment_id, self.step.value)
        return True

    def apply_deep_link(self, raw_token: str) -> bool:
        """Resolve a chat deep-link token and pre-seed the flow with it."""
        resolved = resolve_deep_link(raw_token)
        if not resolved.assessment_id:
            return False
        return self.preseed(resolved.assessment_id, resolved.profile_hints)

    def set_language(self, language: Language) -> None:
        """Switch to a freshly loaded catalog.

        Selected age group and assessment are re-resolved by id so their
        labels follow the new language. Pending results become stale, and a
        report on screen is dropped in favour of the kept answers.
        """
        if language == self.language:
            return

        catalog = load_catalog(language)
        self._invalidate_pending()
        self.language = language
        self.catalog = catalog

        if self.age_group_id is not None:
            group = catalog.age_group(self.age_group_id)
            self._set_profile(ageGroup=group.label if group else None)
            if group is None:
                self.age_group_id = None

        if self.selected_assessment is not None:
            found = catalog.find_assessment(self.selected_assessment.id)
            self.selected_assessment = found[1] if found else None

        # A report is written in the language it was requested in
        if self.report is not None:
            self.report = None
            if self.step == FlowStep.REPORT:
                self.step = FlowStep.QUESTIONS

        logger.debug("Flow language switched to %s", language)

    # --- Observation ---

    def snapshot(self, flow_id: str | None = None) -> FlowSnapshot:
        """Full observable state for rendering."""
        group = self.age_group
        labels = ANSWER_OPTION_LABELS[self.language]
        return FlowSnapshot(
            flow_id=flow_id,
            language=self.language,
            step=self.step,
            profile=self.profile,
            age_group=group,
            selected_assessment=self.selected_assessment,
            answers=dict(self.answers),
            answered_count=len(self.answers),
            question_count=self.question_count,
            can_go_back=self.can_go_back,
            can_submit_profile=self.can_submit_profile,
            can_submit_answers=self.can_submit,
            is_submitting=self.is_submitting,
            dashboard_assessments=list(self.dashboard_assessments),
            milestones=self.catalog.milestonesByAgeGroup.get(group.id) if group else None,
            answer_options=[AnswerOptionView(value=option, label=labels[option]) for option in AnswerOption],
            report=self.report,
            latest_tip=self.latest_tip,
        )
