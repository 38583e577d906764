"""Assessment flow Pydantic schemas for engine state and API request/response models."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from hearttoheart.schemas.catalog import AgeGroup, AssessmentDefinition, Language

# Respondent role and child gender literals
UserRole = Literal["parent", "teacher"]
Gender = Literal["boy", "girl", "undisclosed"]

USER_ROLES: tuple[str, ...] = ("parent", "teacher")
GENDERS: tuple[str, ...] = ("boy", "girl", "undisclosed")


class FlowStep(str, Enum):
    """Steps of the assessment wizard, in forward order."""

    SELECT_ROLE = "select_role"
    SELECT_AGE_GROUP = "select_age_group"
    PROFILE_INPUT = "profile_input"
    DASHBOARD = "dashboard"
    QUESTIONS = "questions"
    REPORT = "report"


class AnswerOption(str, Enum):
    """The fixed four-point frequency scale."""

    ALWAYS = "always"
    SOMETIMES = "sometimes"
    RARELY = "rarely"
    NEVER = "never"


ANSWER_OPTION_LABELS: dict[str, dict[AnswerOption, str]] = {
    "zh": {
        AnswerOption.ALWAYS: "总是",
        AnswerOption.SOMETIMES: "有时",
        AnswerOption.RARELY: "很少",
        AnswerOption.NEVER: "从不",
    },
    "en": {
        AnswerOption.ALWAYS: "Always",
        AnswerOption.SOMETIMES: "Sometimes",
        AnswerOption.RARELY: "Rarely",
        AnswerOption.NEVER: "Never",
    },
}

# Used for any question without a recorded answer
UNSURE_ANSWER = "Unsure"


class ChildProfile(BaseModel):
    """The subject of an assessment, filled in field by field."""

    model_config = ConfigDict(from_attributes=True)

    ageGroup: str | None = Field(default=None, description="Localized label of the selected age group")
    exactAge: str | None = Field(default=None, description="Free-form age text (e.g. '7', '3.5')")
    gender: Gender = Field(default="undisclosed", description="Child gender")
    role: UserRole = Field(default="parent", description="Role of the respondent")

    @property
    def is_complete(self) -> bool:
        """A profile may leave ProfileInput only once an exact age is set."""
        return bool(self.exactAge and self.exactAge.strip())


class ProfileHints(BaseModel):
    """Validated profile values carried by a deep link; unset fields are None."""

    model_config = ConfigDict(frozen=True)

    exactAge: str | None = Field(default=None, description="Child age from the link")
    gender: Gender | None = Field(default=None, description="Child gender from the link")
    role: UserRole | None = Field(default=None, description="Respondent role from the link")


class QuestionAnswer(BaseModel):
    """One question paired with the label of the chosen answer."""

    question: str
    answer: str


# --- Request models ---


class FlowCreateRequest(BaseModel):
    """Body for POST /flows."""

    language: Language | None = Field(default=None, description="Content language; defaults to settings")


class RoleSelection(BaseModel):
    """Body for POST /flows/{id}/role."""

    role: UserRole


class AgeGroupSelection(BaseModel):
    """Body for POST /flows/{id}/age-group."""

    age_group_id: str = Field(min_length=1)


class ProfileEdit(BaseModel):
    """Body for POST /flows/{id}/profile. Omitted fields stay unchanged."""

    gender: Gender | None = None
    exact_age: str | None = None


class AssessmentSelection(BaseModel):
    """Body for POST /flows/{id}/assessment."""

    assessment_id: str = Field(min_length=1)


class AnswerRequest(BaseModel):
    """Body for POST /flows/{id}/answers."""

    question_index: int = Field(ge=0, description="0-based index into the assessment's questions")
    option: AnswerOption


class DeepLinkRequest(BaseModel):
    """Body for POST /flows/{id}/deep-link."""

    token: str = Field(description="Token of the form 'id?age=..&gender=..&role=..'")


class LanguageChange(BaseModel):
    """Body for POST /flows/{id}/language."""

    language: Language


# --- Response models ---


class AnswerOptionView(BaseModel):
    """A selectable answer with its localized label."""

    value: AnswerOption
    label: str


class ReportView(BaseModel):
    """A generated report with the inputs that produced it."""

    model_config = ConfigDict(from_attributes=True)

    text: str = Field(description="Report text as returned by the generation backend")
    assessment_id: str
    assessment_title: str
    profile: ChildProfile = Field(description="Profile snapshot at submission time")


class FlowSnapshot(BaseModel):
    """Full observable state of an assessment flow."""

    model_config = ConfigDict(from_attributes=True)

    flow_id: str | None = Field(default=None, description="Registry id of this flow")
    language: Language
    step: FlowStep
    profile: ChildProfile
    age_group: AgeGroup | None = None
    selected_assessment: AssessmentDefinition | None = None
    answers: dict[int, AnswerOption] = Field(default_factory=dict)
    answered_count: int = 0
    question_count: int = 0
    can_go_back: bool = False
    can_submit_profile: bool = False
    can_submit_answers: bool = False
    is_submitting: bool = False
    dashboard_assessments: list[AssessmentDefinition] = Field(
        default_factory=list, description="Assessments of the selected age group"
    )
    milestones: str | None = Field(default=None, description="Milestone text of the selected age group")
    answer_options: list[AnswerOptionView] = Field(default_factory=list)
    report: ReportView | None = None
    latest_tip: str | None = None


class DeepLinkResponse(BaseModel):
    """Result of applying a deep link to a flow."""

    applied: bool = Field(description="False when the assessment id is unknown")
    flow: FlowSnapshot


class SubmitResponse(BaseModel):
    """Result of an answer submission."""

    submitted: bool = Field(description="True when the flow advanced to the report")
    flow: FlowSnapshot
