"""Content catalog API routes."""

from fastapi import APIRouter

from hearttoheart.api.middleware.error_handler import NotFoundError
from hearttoheart.schemas.catalog import AssessmentLookupResponse, Catalog, Language
from hearttoheart.services.catalog_service import load_catalog

router = APIRouter(prefix="/catalog", tags=["catalog"])


@router.get(
    "/{language}",
    response_model=Catalog,
    summary="Get the content catalog",
    description="Age groups, assessments by age group, milestones and solution cards for one language.",
)
async def get_catalog(language: Language) -> Catalog:
    """Return the full catalog for a language."""
    return load_catalog(language)


@router.get(
    "/{language}/assessments/{assessment_id}",
    response_model=AssessmentLookupResponse,
    summary="Look up an assessment by id",
    responses={404: {"description": "Assessment not in catalog"}},
)
async def get_assessment(language: Language, assessment_id: str) -> AssessmentLookupResponse:
    """Resolve an assessment id across all age groups.

    Raises:
        NotFoundError: If no age group holds the id.
    """
    found = load_catalog(language).find_assessment(assessment_id)
    if found is None:
        raise NotFoundError(f"Assessment not found: {assessment_id}")
    age_group_id, assessment = found
    return AssessmentLookupResponse(age_group_id=age_group_id, assessment=assessment)
