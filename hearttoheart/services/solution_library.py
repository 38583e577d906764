"""Solution library controller: strategy cards with role-aware scenario scripts."""

import logging
from dataclasses import dataclass
from threading import Lock

from hearttoheart.schemas.assessment import ChildProfile, UserRole
from hearttoheart.schemas.catalog import Catalog, Language, SolutionCard
from hearttoheart.services.catalog_service import load_catalog
from hearttoheart.services.generation_service import GenerationService, get_generation_service

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT_ROLE: UserRole = "parent"
DEFAULT_CONTEXT_AGE = "5"
DEFAULT_REGISTRY_SIZE = 256


@dataclass
class ScenarioState:
    """Latest script and request bookkeeping for one solution card."""

    script: str | None = None
    in_flight: bool = False
    token: int = 0


class UnknownSolutionError(LookupError):
    """Raised when a solution id is not in the catalog."""

    def __init__(self, solution_id: str) -> None:
        self.solution_id = solution_id
        super().__init__(f"Unknown solution: {solution_id}")


class SolutionLibrary:
    """Browses solution cards for a role/age context and fetches example scripts.

    Scenario requests are tracked per solution id: one in flight at a time,
    and a result is stored only if its token is still current when it lands.
    """

    def __init__(
        self,
        language: Language = "zh",
        generation_service: GenerationService | None = None,
    ) -> None:
        self.generation_service = generation_service or get_generation_service()
        self.language: Language = language
        self.catalog: Catalog = load_catalog(language)
        self.context_role: UserRole = DEFAULT_CONTEXT_ROLE
        self.context_age: str = DEFAULT_CONTEXT_AGE
        self._scenarios: dict[str, ScenarioState] = {}

    @property
    def cards(self) -> tuple[SolutionCard, ...]:
        return self.catalog.solutionCards

    def card(self, solution_id: str) -> SolutionCard:
        card = self.catalog.solution(solution_id)
        if card is None:
            raise UnknownSolutionError(solution_id)
        return card

    def strategies_for(self, solution_id: str) -> tuple[str, ...]:
        """Strategies of a card for the active role."""
        card = self.card(solution_id)
        return card.strategiesTeacher if self.context_role == "teacher" else card.strategiesParent

    def _state(self, solution_id: str) -> ScenarioState:
        return self._scenarios.setdefault(solution_id, ScenarioState())

    def _invalidate_all(self) -> None:
        for state in self._scenarios.values():
            state.token += 1
            state.in_flight = False
            state.script = None

    def set_context(self, role: UserRole | None = None, age: str | None = None) -> None:
        """Change the role/age context; existing scripts no longer apply."""
        changed = False
        if role is not None and role != self.context_role:
            self.context_role = role
            changed = True
        if age is not None and age.strip() and age.strip() != self.context_age:
            self.context_age = age.strip()
            changed = True
        if changed:
            self._invalidate_all()

    def set_language(self, language: Language) -> None:
        if language == self.language:
            return
        self.catalog = load_catalog(language)
        self.language = language
        self._invalidate_all()

    def is_in_flight(self, solution_id: str) -> bool:
        return solution_id in self._scenarios and self._scenarios[solution_id].in_flight

    @property
    def has_in_flight(self) -> bool:
        return any(state.in_flight for state in self._scenarios.values())

    def script_for(self, solution_id: str) -> str | None:
        state = self._scenarios.get(solution_id)
        return state.script if state else None

    async def generate_scenario(self, solution_id: str, is_retry: bool = False) -> str | None:
        """Fetch an example script for a card.

        Args:
            solution_id: Card to script.
            is_retry: Ask for a different script than last time.

        Returns:
            The script, or None when a request for this card is already in
            flight or the context changed before the response arrived.

        Raises:
            UnknownSolutionError: If the id is not in the catalog.
        """
        card = self.card(solution_id)
        state = self._state(solution_id)
        if state.in_flight:
            logger.debug("Scenario for '%s' already in flight", solution_id)
            return None

        state.token += 1
        token = state.token
        state.in_flight = True

        profile = ChildProfile(exactAge=self.context_age, role=self.context_role)
        try:
            script = await self.generation_service.generate_scenario(
                profile, card.title, self.language, is_retry=is_retry
            )
        finally:
            if state.token == token:
                state.in_flight = False

        if state.token != token:
            logger.info("Discarding stale scenario for '%s'", solution_id)
            return None

        state.script = script
        return script


class SolutionLibraryRegistry:
    """Shared solution libraries, one per (language, role, age) context.

    Requests for the same context reuse one library, so its per-card
    in-flight flag holds across requests. When full, the oldest idle
    library is dropped.
    """

    def __init__(
        self,
        generation_service: GenerationService | None = None,
        max_size: int = DEFAULT_REGISTRY_SIZE,
    ) -> None:
        self.generation_service = generation_service
        self.max_size = max_size
        self._libraries: dict[tuple[Language, UserRole, str], SolutionLibrary] = {}
        self._lock = Lock()

    def get(self, language: Language, role: UserRole | None = None, age: str | None = None) -> SolutionLibrary:
        """Return the library for a context, creating it on first use."""
        role = role or DEFAULT_CONTEXT_ROLE
        age = (age or "").strip() or DEFAULT_CONTEXT_AGE
        key = (language, role, age)

        with self._lock:
            library = self._libraries.get(key)
            if library is None:
                if len(self._libraries) >= self.max_size:
                    self._evict_idle()
                library = SolutionLibrary(language, self.generation_service)
                library.set_context(role=role, age=age)
                self._libraries[key] = library
            return library

    def _evict_idle(self) -> None:
        """Drop the oldest library with nothing in flight. Must be called with lock held."""
        for key, library in self._libraries.items():
            if not library.has_in_flight:
                del self._libraries[key]
                logger.debug("Solution registry full; dropped context %s", key)
                return

    def count(self) -> int:
        with self._lock:
            return len(self._libraries)


# Global singleton instance
_registry: SolutionLibraryRegistry | None = None


def get_solution_registry() -> SolutionLibraryRegistry:
    """Get or create the global solution library registry."""
    global _registry
    if _registry is None:
        _registry = SolutionLibraryRegistry()
    return _registry
