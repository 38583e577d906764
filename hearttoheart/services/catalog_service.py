"""Content catalog loading and integrity checks."""

import logging
from collections import Counter

from hearttoheart.schemas.catalog import (
    SUPPORTED_LANGUAGES,
    AgeGroup,
    AssessmentDefinition,
    Catalog,
    Language,
    SolutionCard,
)
from hearttoheart.services.catalog_constants import (
    AGE_GROUPS,
    ASSESSMENT_LIBRARY,
    MILESTONES,
    SOLUTION_CARDS,
)

logger = logging.getLogger(__name__)


class UnsupportedLanguageError(ValueError):
    """Raised when a catalog is requested for a language without content."""


class CatalogIntegrityError(Exception):
    """Raised when static content violates catalog invariants."""

    def __init__(self, language: str, problems: list[str]) -> None:
        self.language = language
        self.problems = problems
        super().__init__(f"Catalog '{language}' is malformed: {'; '.join(problems)}")


def load_catalog(language: Language) -> Catalog:
    """Build the catalog for a language.

    A new instance is returned on every call; nothing is cached or shared
    between languages.

    Args:
        language: Content language ('zh' or 'en').

    Returns:
        Catalog: Immutable catalog for the language.

    Raises:
        UnsupportedLanguageError: If no content exists for the language.
    """
    if language not in SUPPORTED_LANGUAGES:
        raise UnsupportedLanguageError(f"Unsupported language: {language}")

    age_groups = tuple(AgeGroup(**group) for group in AGE_GROUPS[language])

    assessments_by_age_group = {
        age_group_id: tuple(
            AssessmentDefinition(
                id=item["id"],
                title=item["title"],
                description=item["description"],
                questions=tuple(item["questions"]),
                tags=frozenset(item.get("tags", [])),
            )
            for item in items
        )
        for age_group_id, items in ASSESSMENT_LIBRARY[language].items()
    }

    solution_cards = tuple(
        SolutionCard(
            **{
                **card,
                "strategiesParent": tuple(card["strategiesParent"]),
                "strategiesTeacher": tuple(card["strategiesTeacher"]),
            }
        )
        for card in SOLUTION_CARDS[language]
    )

    return Catalog(
        language=language,
        ageGroups=age_groups,
        assessmentsByAgeGroup=assessments_by_age_group,
        milestonesByAgeGroup=dict(MILESTONES[language]),
        solutionCards=solution_cards,
    )


def find_integrity_problems(catalog: Catalog) -> list[str]:
    """List every invariant the catalog violates (empty when sound)."""
    problems: list[str] = []

    group_ids = [group.id for group in catalog.ageGroups]
    for group_id, count in Counter(group_ids).items():
        if count > 1:
            problems.append(f"duplicate age group id '{group_id}'")

    expected = set(group_ids)
    for name, keys in (
        ("assessmentsByAgeGroup", set(catalog.assessmentsByAgeGroup)),
        ("milestonesByAgeGroup", set(catalog.milestonesByAgeGroup)),
    ):
        for orphan in sorted(keys - expected):
            problems.append(f"{name} has orphan key '{orphan}'")
        for missing in sorted(expected - keys):
            problems.append(f"{name} is missing age group '{missing}'")

    assessment_ids = [assessment.id for _, assessment in catalog.all_assessments()]
    for assessment_id, count in Counter(assessment_ids).items():
        if count > 1:
            problems.append(f"assessment id '{assessment_id}' appears {count} times")

    for _, assessment in catalog.all_assessments():
        if not assessment.questions:
            problems.append(f"assessment '{assessment.id}' has no questions")

    card_ids = [card.id for card in catalog.solutionCards]
    for card_id, count in Counter(card_ids).items():
        if count > 1:
            problems.append(f"duplicate solution card id '{card_id}'")

    return problems


def validate_catalog(catalog: Catalog) -> None:
    """Raise if the catalog violates an invariant.

    Raises:
        CatalogIntegrityError: Listing every problem found.
    """
    problems = find_integrity_problems(catalog)
    if problems:
        raise CatalogIntegrityError(catalog.language, problems)


def verify_all_catalogs() -> None:
    """Load and validate every supported language. Call at app startup.

    Also checks that all languages share the same ids, since a partial
    language is not a supported state.
    """
    reference_shape: tuple | None = None
    for language in SUPPORTED_LANGUAGES:
        catalog = load_catalog(language)
        validate_catalog(catalog)

        shape = catalog_shape(catalog)
        if reference_shape is None:
            reference_shape = shape
        elif shape != reference_shape:
            raise CatalogIntegrityError(language, ["ids differ from the other languages"])

        logger.info(
            "Catalog '%s' verified: %d age groups, %d assessments, %d solution cards",
            language,
            len(catalog.ageGroups),
            len(catalog.all_assessments()),
            len(catalog.solutionCards),
        )


def catalog_shape(catalog: Catalog) -> tuple:
    """Language-independent structure of a catalog (ids and question counts)."""
    return (
        tuple(group.id for group in catalog.ageGroups),
        tuple(
            (group_id, tuple((a.id, len(a.questions), tuple(sorted(a.tags))) for a in assessments))
            for group_id, assessments in catalog.assessmentsByAgeGroup.items()
        ),
        tuple(sorted(catalog.milestonesByAgeGroup)),
        tuple(card.id for card in catalog.solutionCards),
    )
