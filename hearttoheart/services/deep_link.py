"""Assessment deep links embedded in assistant replies.

Token grammar: ``<assessmentId>?age=<str>&gender=<boy|girl|...>&role=<parent|teacher>``.
All parameters are optional and order-insensitive; unknown parameters are
ignored. Inside chat text a link is written as ``[Label](assessment:<token>)``.
"""

import logging
import re
from dataclasses import dataclass, field
from urllib.parse import parse_qs

from hearttoheart.schemas.assessment import GENDERS, USER_ROLES, ProfileHints
from hearttoheart.schemas.generation import DeepLinkMarker

logger = logging.getLogger(__name__)

ASSESSMENT_LINK_PATTERN = re.compile(r"\[(.*?)\]\(assessment:(.*?)\)")

GENDER_ALIASES = {"prefer_not_to_say": "undisclosed"}


@dataclass(frozen=True)
class ResolvedDeepLink:
    """An assessment id and the validated profile hints that came with it."""

    assessment_id: str
    profile_hints: ProfileHints = field(default_factory=ProfileHints)


def _first(params: dict[str, list[str]], key: str) -> str | None:
    values = params.get(key)
    if not values:
        return None
    value = values[0].strip()
    return value or None


def _validate_gender(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = GENDER_ALIASES.get(value.lower(), value.lower())
    if normalized not in GENDERS:
        logger.debug("Ignoring unrecognized gender hint %r", value)
        return None
    return normalized


def _validate_role(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.lower()
    if normalized not in USER_ROLES:
        logger.debug("Ignoring unrecognized role hint %r", value)
        return None
    return normalized


def resolve_deep_link(raw_token: str) -> ResolvedDeepLink:
    """Parse a deep-link token into an assessment id and profile hints.

    Gender and role values outside their enums become unset rather than
    being passed through.

    Args:
        raw_token: Token such as ``attention_snap?age=7&gender=boy&role=teacher``.

    Returns:
        ResolvedDeepLink: The id (possibly empty) and hints.
    """
    assessment_id, _, query = raw_token.strip().partition("?")
    params = parse_qs(query, keep_blank_values=False)

    hints = ProfileHints(
        exactAge=_first(params, "age"),
        gender=_validate_gender(_first(params, "gender")),
        role=_validate_role(_first(params, "role")),
    )
    return ResolvedDeepLink(assessment_id=assessment_id.strip(), profile_hints=hints)


def find_assessment_links(text: str) -> list[DeepLinkMarker]:
    """Extract every ``[label](assessment:token)`` marker from free text."""
    markers: list[DeepLinkMarker] = []
    for match in ASSESSMENT_LINK_PATTERN.finditer(text or ""):
        label, token = match.group(1), match.group(2)
        resolved = resolve_deep_link(token)
        if not resolved.assessment_id:
            continue
        markers.append(
            DeepLinkMarker(
                label=label,
                token=token,
                assessment_id=resolved.assessment_id,
                profile_hints=resolved.profile_hints,
            )
        )
    return markers
