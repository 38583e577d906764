"""Content catalog Pydantic schemas: age groups, assessments and solution cards."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

# Supported content languages
Language = Literal["zh", "en"]
SUPPORTED_LANGUAGES: tuple[str, ...] = ("zh", "en")


class AgeGroup(BaseModel):
    """A developmental band used to bucket assessments and milestones."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Stable age group identifier (e.g. 'school')")
    label: str = Field(description="Localized display label (e.g. '6-12 Years')")
    range: str = Field(description="Age range in years")
    description: str = Field(description="Localized focus areas of this band")


class AssessmentDefinition(BaseModel):
    """A named questionnaire belonging to exactly one age group."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Identifier, unique across the whole catalog")
    title: str = Field(description="Localized questionnaire title")
    description: str = Field(description="Localized short description")
    questions: tuple[str, ...] = Field(description="Ordered question texts")
    tags: frozenset[str] = Field(default_factory=frozenset, description="Topic tags (e.g. 'adhd', 'social')")

    @property
    def question_count(self) -> int:
        return len(self.questions)


class SolutionCard(BaseModel):
    """A behavioral strategy card from the solution library."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Solution identifier")
    title: str = Field(description="Localized title of the behavior pattern")
    subtitle: str = Field(description="What the child seems to be saying")
    icon: str = Field(description="Display icon")
    description: str = Field(description="How the pattern shows up")
    strategiesParent: tuple[str, ...] = Field(description="Strategies for parents at home")
    strategiesTeacher: tuple[str, ...] = Field(description="Strategies for teachers in class")
    kidSkill: str = Field(description="The skill the child needs to learn (Kid's Skills reframing)")


class Catalog(BaseModel):
    """All static reference data for one language.

    Built wholesale per language; never patched across languages.
    """

    model_config = ConfigDict(frozen=True)

    language: Language = Field(description="Language of every localized string in the catalog")
    ageGroups: tuple[AgeGroup, ...] = Field(description="Age groups in display order")
    assessmentsByAgeGroup: dict[str, tuple[AssessmentDefinition, ...]] = Field(
        description="Assessments keyed by age group id"
    )
    milestonesByAgeGroup: dict[str, str] = Field(description="Milestone text keyed by age group id")
    solutionCards: tuple[SolutionCard, ...] = Field(description="Strategy cards in display order")

    def age_group(self, age_group_id: str) -> AgeGroup | None:
        """Look up an age group by id."""
        return next((group for group in self.ageGroups if group.id == age_group_id), None)

    def assessments_for(self, age_group_id: str) -> tuple[AssessmentDefinition, ...]:
        """Return the assessments bucketed under an age group (empty if unknown)."""
        return self.assessmentsByAgeGroup.get(age_group_id, ())

    def find_assessment(self, assessment_id: str) -> tuple[str, AssessmentDefinition] | None:
        """Scan every age group bucket for an assessment id.

        Returns:
            (age_group_id, definition) or None if the id is not in the catalog.
        """
        for age_group_id, assessments in self.assessmentsByAgeGroup.items():
            for assessment in assessments:
                if assessment.id == assessment_id:
                    return age_group_id, assessment
        return None

    def solution(self, solution_id: str) -> SolutionCard | None:
        """Look up a solution card by id."""
        return next((card for card in self.solutionCards if card.id == solution_id), None)

    def all_assessments(self) -> list[tuple[str, AssessmentDefinition]]:
        """Flatten the catalog into (age_group_id, definition) pairs."""
        return [
            (age_group_id, assessment)
            for age_group_id, assessments in self.assessmentsByAgeGroup.items()
            for assessment in assessments
        ]


class AssessmentLookupResponse(BaseModel):
    """An assessment together with the age group it is bucketed under."""

    age_group_id: str
    assessment: AssessmentDefinition
