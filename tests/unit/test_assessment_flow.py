"""Unit tests for AssessmentFlowEngine."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import ValidationError

from hearttoheart.schemas.assessment import AnswerOption, ChildProfile, FlowStep, ProfileHints
from hearttoheart.schemas.generation import ReportResult
from hearttoheart.services.assessment_flow import (
    AssessmentFlowEngine,
    InvalidTransitionError,
    QuestionIndexError,
    UnknownAgeGroupError,
    UnknownAssessmentError,
)


@pytest.fixture
def engine(mock_generation_service: MagicMock) -> AssessmentFlowEngine:
    return AssessmentFlowEngine(language="en", generation_service=mock_generation_service)


def _to_dashboard(engine: AssessmentFlowEngine, age_group_id: str = "school", age: str = "8") -> None:
    engine.select_role("parent")
    engine.select_age_group(age_group_id)
    engine.update_profile(exact_age=age)
    assert engine.submit_profile() is True


def _answer_all(engine: AssessmentFlowEngine, option: AnswerOption = AnswerOption.SOMETIMES) -> None:
    for idx in range(engine.question_count):
        engine.answer(idx, option)


class TestWizardSteps:
    """Tests for the forward path through the wizard."""

    def test_initial_state(self, engine: AssessmentFlowEngine) -> None:
        """Test that a new engine starts in SelectRole with a default profile."""
        assert engine.step == FlowStep.SELECT_ROLE
        assert engine.profile == ChildProfile(gender="undisclosed", role="parent")
        assert engine.can_go_back is False

    def test_school_dashboard_lists_school_assessments(self, engine: AssessmentFlowEngine) -> None:
        """Test that submitting the profile without a selection lands on the age group's dashboard."""
        engine.select_role("parent")
        assert engine.step == FlowStep.SELECT_AGE_GROUP

        engine.select_age_group("school")
        assert engine.step == FlowStep.PROFILE_INPUT
        assert engine.profile.ageGroup == "6-12 Years"

        engine.update_profile(exact_age="8")
        assert engine.submit_profile() is True

        snapshot = engine.snapshot()
        assert snapshot.step == FlowStep.DASHBOARD
        assert [a.id for a in snapshot.dashboard_assessments] == [
            a.id for a in engine.catalog.assessments_for("school")
        ]
        assert snapshot.milestones == engine.catalog.milestonesByAgeGroup["school"]

    def test_profile_submit_rejected_without_age(self, engine: AssessmentFlowEngine) -> None:
        """Test that the profile gate holds until an exact age is entered."""
        engine.select_role("teacher")
        engine.select_age_group("toddler")
        engine.update_profile(gender="girl", exact_age="   ")

        assert engine.can_submit_profile is False
        assert engine.submit_profile() is False
        assert engine.step == FlowStep.PROFILE_INPUT
        assert engine.profile.gender == "girl"

    def test_profile_edit_keeps_unspecified_fields(self, engine: AssessmentFlowEngine) -> None:
        """Test that None leaves a profile field unchanged."""
        engine.select_role("parent")
        engine.select_age_group("teen")
        engine.update_profile(gender="boy")
        engine.update_profile(exact_age="14")

        assert engine.profile.gender == "boy"
        assert engine.profile.exactAge == "14"

    def test_profile_edit_rejects_unknown_gender(self, engine: AssessmentFlowEngine) -> None:
        """Test that profile edits are validated against the gender enum."""
        engine.select_role("parent")
        engine.select_age_group("school")

        with pytest.raises(ValidationError):
            engine.update_profile(gender="robot", exact_age="8")

        assert engine.profile.gender == "undisclosed"
        assert engine.profile.exactAge is None

    def test_unknown_age_group_rejected(self, engine: AssessmentFlowEngine) -> None:
        """Test that a manual pick outside the catalog raises."""
        engine.select_role("parent")

        with pytest.raises(UnknownAgeGroupError):
            engine.select_age_group("adult")
        assert engine.step == FlowStep.SELECT_AGE_GROUP

    def test_start_assessment_enters_questions_empty(self, engine: AssessmentFlowEngine) -> None:
        """Test that picking attention_snap starts at 0/8."""
        _to_dashboard(engine)

        engine.start_assessment("attention_snap")

        snapshot = engine.snapshot()
        assert snapshot.step == FlowStep.QUESTIONS
        assert snapshot.answered_count == 0
        assert snapshot.question_count == 8
        assert snapshot.can_submit_answers is False

    def test_assessment_from_other_age_group_rejected(self, engine: AssessmentFlowEngine) -> None:
        """Test that the dashboard only offers its own age group's assessments."""
        _to_dashboard(engine)

        with pytest.raises(UnknownAssessmentError):
            engine.start_assessment("depression_phq")
        assert engine.step == FlowStep.DASHBOARD

    def test_action_outside_its_step_raises(self, engine: AssessmentFlowEngine) -> None:
        """Test that actions unavailable in the current step raise InvalidTransitionError."""
        with pytest.raises(InvalidTransitionError):
            engine.select_age_group("school")
        with pytest.raises(InvalidTransitionError):
            engine.answer(0, AnswerOption.ALWAYS)
        with pytest.raises(InvalidTransitionError):
            engine.return_to_dashboard()

    def test_answer_index_out_of_range(self, engine: AssessmentFlowEngine) -> None:
        """Test that answers must target an existing question."""
        _to_dashboard(engine)
        engine.start_assessment("attention_snap")

        with pytest.raises(QuestionIndexError):
            engine.answer(8, AnswerOption.NEVER)

    def test_answers_can_be_changed(self, engine: AssessmentFlowEngine) -> None:
        """Test that re-answering replaces the previous option."""
        _to_dashboard(engine)
        engine.start_assessment("attention_snap")

        engine.answer(0, AnswerOption.ALWAYS)
        engine.answer(0, AnswerOption.NEVER)

        assert engine.answers == {0: AnswerOption.NEVER}


class TestSubmit:
    """Tests for answer submission."""

    @pytest.mark.asyncio
    async def test_incomplete_answers_rejected_without_network_call(
        self, engine: AssessmentFlowEngine, mock_generation_service: MagicMock
    ) -> None:
        """Test that any answer set smaller than the question count is rejected."""
        _to_dashboard(engine)
        engine.start_assessment("attention_snap")

        for idx in range(7):
            engine.answer(idx, AnswerOption.RARELY)
            assert await engine.submit() is False

        assert engine.step == FlowStep.QUESTIONS
        mock_generation_service.generate_report.assert_not_called()
        mock_generation_service.generate_tip.assert_not_called()

    @pytest.mark.asyncio
    async def test_complete_submission_reaches_report(
        self, engine: AssessmentFlowEngine, mock_generation_service: MagicMock
    ) -> None:
        """Test that answering all 8 questions and submitting shows the report."""
        _to_dashboard(engine)
        engine.start_assessment("attention_snap")
        _answer_all(engine)
        assert engine.can_submit is True

        assert await engine.submit() is True

        snapshot = engine.snapshot()
        assert snapshot.step == FlowStep.REPORT
        assert snapshot.report.text == mock_generation_service.generate_report.return_value.text
        assert snapshot.report.assessment_id == "attention_snap"
        assert snapshot.latest_tip == mock_generation_service.generate_tip.return_value
        assert snapshot.is_submitting is False

    @pytest.mark.asyncio
    async def test_report_request_carries_localized_pairs(
        self, engine: AssessmentFlowEngine, mock_generation_service: MagicMock
    ) -> None:
        """Test that the report receives ordered question/label pairs and the tip a context string."""
        _to_dashboard(engine)
        engine.start_assessment("attention_snap")
        _answer_all(engine, AnswerOption.ALWAYS)

        await engine.submit()

        profile, title, answers, language = mock_generation_service.generate_report.call_args.args
        assert profile.exactAge == "8"
        assert title == engine.report.assessment_title
        assert [a.question for a in answers] == list(engine.selected_assessment.questions)
        assert {a.answer for a in answers} == {"Always"}
        assert language == "en"

        context, is_premium, _ = mock_generation_service.generate_tip.call_args.args
        assert context == f"Child age 8, Issue: {title}, Role: parent"
        assert is_premium is False

    @pytest.mark.asyncio
    async def test_report_failure_stays_in_questions(
        self, engine: AssessmentFlowEngine, mock_generation_service: MagicMock
    ) -> None:
        """Test that a failed report keeps the answers and allows resubmission."""
        mock_generation_service.generate_report.return_value = ReportResult(text="Error", succeeded=False)
        _to_dashboard(engine)
        engine.start_assessment("attention_snap")
        _answer_all(engine)
        answers_before = dict(engine.answers)

        assert await engine.submit() is False

        assert engine.step == FlowStep.QUESTIONS
        assert engine.is_submitting is False
        assert engine.answers == answers_before
        assert engine.report is None
        assert engine.can_submit is True

    @pytest.mark.asyncio
    async def test_report_exception_stays_in_questions(
        self, engine: AssessmentFlowEngine, mock_generation_service: MagicMock
    ) -> None:
        """Test that an exception from the report call is treated as failure."""
        mock_generation_service.generate_report.side_effect = RuntimeError("boom")
        _to_dashboard(engine)
        engine.start_assessment("attention_snap")
        _answer_all(engine)

        assert await engine.submit() is False
        assert engine.step == FlowStep.QUESTIONS
        assert engine.is_submitting is False

    @pytest.mark.asyncio
    async def test_tip_failure_does_not_block_report(
        self, engine: AssessmentFlowEngine, mock_generation_service: MagicMock
    ) -> None:
        """Test that the tip is best-effort."""
        mock_generation_service.generate_tip.side_effect = RuntimeError("tip down")
        _to_dashboard(engine)
        engine.start_assessment("attention_snap")
        _answer_all(engine)

        assert await engine.submit() is True
        assert engine.step == FlowStep.REPORT
        assert engine.latest_tip is None

    @pytest.mark.asyncio
    async def test_reentrant_submission_rejected(
        self, engine: AssessmentFlowEngine, mock_generation_service: MagicMock
    ) -> None:
        """Test that a second submit while one is in flight is a no-op."""
        release = asyncio.Event()

        async def slow_report(*args, **kwargs):
            await release.wait()
            return ReportResult(text="late report", succeeded=True)

        mock_generation_service.generate_report = AsyncMock(side_effect=slow_report)
        _to_dashboard(engine)
        engine.start_assessment("attention_snap")
        _answer_all(engine)

        first = asyncio.create_task(engine.submit())
        await asyncio.sleep(0)
        assert engine.is_submitting is True
        assert engine.snapshot().can_submit_answers is False

        assert await engine.submit() is False

        release.set()
        assert await first is True
        assert mock_generation_service.generate_report.await_count == 1

    @pytest.mark.asyncio
    async def test_stale_result_discarded_after_reset(
        self, engine: AssessmentFlowEngine, mock_generation_service: MagicMock
    ) -> None:
        """Test that a report landing after a full reset is ignored."""
        release = asyncio.Event()

        async def slow_report(*args, **kwargs):
            await release.wait()
            return ReportResult(text="late report", succeeded=True)

        mock_generation_service.generate_report = AsyncMock(side_effect=slow_report)
        _to_dashboard(engine)
        engine.start_assessment("attention_snap")
        _answer_all(engine)

        pending = asyncio.create_task(engine.submit())
        await asyncio.sleep(0)
        engine.full_reset()
        release.set()

        assert await pending is False
        assert engine.step == FlowStep.SELECT_ROLE
        assert engine.report is None
        assert engine.latest_tip is None

    @pytest.mark.asyncio
    async def test_stale_result_discarded_after_back(
        self, engine: AssessmentFlowEngine, mock_generation_service: MagicMock
    ) -> None:
        """Test that navigating back during submission drops the late report."""
        release = asyncio.Event()

        async def slow_report(*args, **kwargs):
            await release.wait()
            return ReportResult(text="late report", succeeded=True)

        mock_generation_service.generate_report = AsyncMock(side_effect=slow_report)
        _to_dashboard(engine)
        engine.start_assessment("attention_snap")
        _answer_all(engine)

        pending = asyncio.create_task(engine.submit())
        await asyncio.sleep(0)
        engine.back()
        release.set()

        assert await pending is False
        assert engine.step == FlowStep.DASHBOARD
        assert engine.report is None


class TestNavigation:
    """Tests for back, return to dashboard and full reset."""

    def test_back_retains_earlier_state(self, engine: AssessmentFlowEngine) -> None:
        """Test that going back from Dashboard keeps role and age group."""
        engine.select_role("teacher")
        engine.select_age_group("school")
        engine.update_profile(exact_age="9")
        engine.submit_profile()

        engine.back()

        assert engine.step == FlowStep.PROFILE_INPUT
        assert engine.profile.role == "teacher"
        assert engine.age_group_id == "school"
        assert engine.profile.exactAge == "9"

    def test_back_walks_to_select_role(self, engine: AssessmentFlowEngine) -> None:
        """Test that back steps through every preceding state and stops at SelectRole."""
        _to_dashboard(engine)
        engine.start_assessment("attention_snap")

        visited = []
        while engine.can_go_back:
            engine.back()
            visited.append(engine.step)

        assert visited == [
            FlowStep.DASHBOARD,
            FlowStep.PROFILE_INPUT,
            FlowStep.SELECT_AGE_GROUP,
            FlowStep.SELECT_ROLE,
        ]
        with pytest.raises(InvalidTransitionError):
            engine.back()

    def test_profile_submit_with_selection_returns_to_questions(self, engine: AssessmentFlowEngine) -> None:
        """Test that a selected assessment skips the dashboard after the profile step."""
        _to_dashboard(engine)
        engine.start_assessment("attention_snap")
        engine.answer(0, AnswerOption.ALWAYS)
        engine.back()
        engine.back()

        assert engine.submit_profile() is True
        assert engine.step == FlowStep.QUESTIONS
        assert engine.answers == {0: AnswerOption.ALWAYS}

    def test_changing_age_group_drops_selection(self, engine: AssessmentFlowEngine) -> None:
        """Test that a selection from another age group does not survive a group change."""
        _to_dashboard(engine)
        engine.start_assessment("attention_snap")
        engine.back()
        engine.back()
        engine.back()

        engine.select_age_group("teen")

        assert engine.selected_assessment is None
        assert engine.answers == {}

    @pytest.mark.asyncio
    async def test_return_to_dashboard_keeps_profile(self, engine: AssessmentFlowEngine) -> None:
        """Test that leaving the report clears the assessment but not the profile."""
        _to_dashboard(engine)
        engine.start_assessment("attention_snap")
        _answer_all(engine)
        await engine.submit()

        engine.return_to_dashboard()

        assert engine.step == FlowStep.DASHBOARD
        assert engine.selected_assessment is None
        assert engine.answers == {}
        assert engine.report is None
        assert engine.profile.exactAge == "8"
        assert engine.age_group_id == "school"

    @pytest.mark.parametrize("steps_taken", [0, 1, 2, 3, 4])
    def test_full_reset_from_any_step(self, engine: AssessmentFlowEngine, steps_taken: int) -> None:
        """Test that full reset always yields SelectRole and the default profile."""
        actions = [
            lambda: engine.select_role("teacher"),
            lambda: engine.select_age_group("preschool"),
            lambda: engine.update_profile(gender="girl", exact_age="4"),
            lambda: engine.submit_profile(),
            lambda: engine.start_assessment("adhd_early"),
        ]
        for action in actions[:steps_taken + 1]:
            action()

        engine.full_reset()

        assert engine.step == FlowStep.SELECT_ROLE
        assert engine.profile == ChildProfile(gender="undisclosed", role="parent")
        assert engine.age_group_id is None
        assert engine.selected_assessment is None
        assert engine.answers == {}

    @pytest.mark.asyncio
    async def test_full_reset_clears_latest_tip(self, engine: AssessmentFlowEngine) -> None:
        """Test that the tip from a previous submission does not survive a reset."""
        _to_dashboard(engine)
        engine.start_assessment("attention_snap")
        _answer_all(engine)
        assert await engine.submit() is True
        assert engine.latest_tip is not None

        engine.full_reset()

        assert engine.latest_tip is None
        assert engine.snapshot().latest_tip is None


class TestPreseed:
    """Tests for entry via deep link."""

    def test_deep_link_with_age_jumps_to_questions(self, engine: AssessmentFlowEngine) -> None:
        """Test that a link with an age skips straight to the questions."""
        assert engine.apply_deep_link("attention_snap?age=7&gender=boy&role=teacher") is True

        assert engine.step == FlowStep.QUESTIONS
        assert engine.age_group_id == "school"
        assert engine.selected_assessment.id == "attention_snap"
        assert engine.profile == ChildProfile(ageGroup="6-12 Years", exactAge="7", gender="boy", role="teacher")
        assert engine.answers == {}

    def test_deep_link_without_age_goes_to_profile(self, engine: AssessmentFlowEngine) -> None:
        """Test that a link without an age stops at the profile form."""
        assert engine.preseed("sensory", ProfileHints(gender="girl")) is True

        assert engine.step == FlowStep.PROFILE_INPUT
        assert engine.age_group_id == "toddler"
        assert engine.profile.gender == "girl"
        assert engine.profile.role == "parent"

        engine.update_profile(exact_age="2")
        engine.submit_profile()
        assert engine.step == FlowStep.QUESTIONS

    def test_unknown_id_is_a_no_op(self, engine: AssessmentFlowEngine) -> None:
        """Test that an unknown assessment id leaves the engine untouched."""
        _to_dashboard(engine)
        before = engine.snapshot()

        assert engine.apply_deep_link("nonexistent_id?age=5") is False

        assert engine.snapshot() == before

    def test_empty_token_is_a_no_op(self, engine: AssessmentFlowEngine) -> None:
        """Test that a token without an id is ignored."""
        assert engine.apply_deep_link("?age=5") is False
        assert engine.step == FlowStep.SELECT_ROLE

    def test_deep_link_replaces_current_assessment(self, engine: AssessmentFlowEngine) -> None:
        """Test that a link mid-assessment starts the linked one fresh."""
        _to_dashboard(engine)
        engine.start_assessment("attention_snap")
        engine.answer(0, AnswerOption.ALWAYS)

        engine.apply_deep_link("depression_phq?age=15")

        assert engine.age_group_id == "teen"
        assert engine.selected_assessment.id == "depression_phq"
        assert engine.answers == {}


class TestLanguageSwitch:
    """Tests for switching the content language."""

    def test_switch_refreshes_labels(self, engine: AssessmentFlowEngine) -> None:
        """Test that selected group and assessment follow the new language."""
        _to_dashboard(engine)
        engine.start_assessment("attention_snap")
        engine.answer(0, AnswerOption.ALWAYS)
        en_title = engine.selected_assessment.title

        engine.set_language("zh")

        assert engine.language == "zh"
        assert engine.profile.ageGroup == "6-12 岁"
        assert engine.selected_assessment.id == "attention_snap"
        assert engine.selected_assessment.title != en_title
        assert engine.answers == {0: AnswerOption.ALWAYS}
        assert engine.snapshot().answer_options[0].label == "总是"

    def test_switch_and_back_restores_state(self, engine: AssessmentFlowEngine) -> None:
        """Test that en -> zh -> en yields the original snapshot."""
        _to_dashboard(engine)
        before = engine.snapshot()

        engine.set_language("zh")
        engine.set_language("en")

        assert engine.snapshot() == before

    def test_switch_bumps_generation_token(self, engine: AssessmentFlowEngine) -> None:
        """Test that in-flight results become stale on a language change."""
        token = engine.generation_token

        engine.set_language("zh")

        assert engine.generation_token == token + 1

    @pytest.mark.asyncio
    async def test_switch_in_report_drops_report(self, engine: AssessmentFlowEngine) -> None:
        """Test that a report in the old language is dropped and answers kept for resubmission."""
        _to_dashboard(engine)
        engine.start_assessment("attention_snap")
        _answer_all(engine, AnswerOption.RARELY)
        assert await engine.submit() is True
        assert engine.step == FlowStep.REPORT

        engine.set_language("zh")

        assert engine.step == FlowStep.QUESTIONS
        assert engine.report is None
        assert engine.snapshot().report is None
        assert engine.selected_assessment.title == "专注力与多动评估 (SNAP-IV参考)"
        assert len(engine.answers) == engine.question_count
        assert engine.can_submit is True

        assert await engine.submit() is True
        assert engine.step == FlowStep.REPORT
        assert engine.report.assessment_title == engine.selected_assessment.title
        assert engine.report.profile.ageGroup == "6-12 岁"


class TestSnapshot:
    """Tests for snapshot()."""

    def test_answer_options_in_scale_order(self, engine: AssessmentFlowEngine) -> None:
        """Test that the four options are listed with localized labels."""
        options = engine.snapshot().answer_options

        assert [o.value for o in options] == list(AnswerOption)
        assert [o.label for o in options] == ["Always", "Sometimes", "Rarely", "Never"]

    def test_snapshot_carries_flow_id(self, engine: AssessmentFlowEngine) -> None:
        """Test that the registry id is echoed."""
        assert engine.snapshot("abc").flow_id == "abc"
