"""Unit tests for deep-link token parsing and marker extraction."""

from hearttoheart.schemas.assessment import ProfileHints
from hearttoheart.services.deep_link import find_assessment_links, resolve_deep_link


class TestResolveDeepLink:
    """Tests for resolve_deep_link."""

    def test_full_token(self) -> None:
        """Test that all recognized parameters are parsed."""
        resolved = resolve_deep_link("attention_snap?age=7&gender=boy&role=teacher")

        assert resolved.assessment_id == "attention_snap"
        assert resolved.profile_hints == ProfileHints(exactAge="7", gender="boy", role="teacher")

    def test_parameter_order_does_not_matter(self) -> None:
        """Test that parameters are order-insensitive."""
        resolved = resolve_deep_link("attention_snap?role=teacher&gender=boy&age=7")

        assert resolved.profile_hints == ProfileHints(exactAge="7", gender="boy", role="teacher")

    def test_bare_id_has_no_hints(self) -> None:
        """Test that a token without a query leaves every hint unset."""
        resolved = resolve_deep_link("sensory")

        assert resolved.assessment_id == "sensory"
        assert resolved.profile_hints == ProfileHints()

    def test_unknown_parameters_ignored(self) -> None:
        """Test that unrecognized keys are dropped."""
        resolved = resolve_deep_link("sensory?age=2&color=blue")

        assert resolved.profile_hints == ProfileHints(exactAge="2")

    def test_unknown_gender_and_role_become_unset(self) -> None:
        """Test that values outside the enums are not propagated."""
        resolved = resolve_deep_link("autonomy?gender=robot&role=coach&age=14")

        assert resolved.profile_hints.gender is None
        assert resolved.profile_hints.role is None
        assert resolved.profile_hints.exactAge == "14"

    def test_gender_case_and_alias(self) -> None:
        """Test that gender is case-insensitive and prefer_not_to_say maps to undisclosed."""
        assert resolve_deep_link("x?gender=GIRL").profile_hints.gender == "girl"
        assert resolve_deep_link("x?gender=prefer_not_to_say").profile_hints.gender == "undisclosed"

    def test_decimal_and_encoded_age(self) -> None:
        """Test that age is kept as free text after URL decoding."""
        assert resolve_deep_link("dev_milestone?age=3.5").profile_hints.exactAge == "3.5"
        assert resolve_deep_link("dev_milestone?age=2%20years").profile_hints.exactAge == "2 years"

    def test_empty_age_is_unset(self) -> None:
        """Test that an empty age value leaves the hint unset."""
        assert resolve_deep_link("sensory?age=").profile_hints.exactAge is None

    def test_unknown_id_is_still_returned(self) -> None:
        """Test that the resolver does not consult the catalog."""
        assert resolve_deep_link("nonexistent_id?age=5").assessment_id == "nonexistent_id"


class TestFindAssessmentLinks:
    """Tests for find_assessment_links."""

    def test_extracts_markers_from_prose(self) -> None:
        """Test that every link marker in a reply is found."""
        text = (
            "You could start with the [Attention Check](assessment:attention_snap?age=7&gender=boy) "
            "and later the [Conduct Screen](assessment:conduct_sdq)."
        )

        links = find_assessment_links(text)

        assert [link.assessment_id for link in links] == ["attention_snap", "conduct_sdq"]
        assert links[0].label == "Attention Check"
        assert links[0].token == "attention_snap?age=7&gender=boy"
        assert links[0].profile_hints.exactAge == "7"

    def test_ignores_ordinary_markdown_links(self) -> None:
        """Test that non-assessment links are not markers."""
        assert find_assessment_links("See [our site](https://example.com).") == []

    def test_skips_marker_without_id(self) -> None:
        """Test that a marker with an empty token is dropped."""
        assert find_assessment_links("[Broken](assessment:)") == []

    def test_empty_text(self) -> None:
        """Test that empty input yields no links."""
        assert find_assessment_links("") == []
