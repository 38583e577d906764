"""In-memory TTL registry of assessment flows, one per visitor."""

from __future__ import annotations

import asyncio
import logging
import secrets
import time
from dataclasses import dataclass
from threading import Lock

from hearttoheart.schemas.catalog import Language
from hearttoheart.services.assessment_flow import AssessmentFlowEngine
from hearttoheart.services.generation_service import GenerationService

logger = logging.getLogger(__name__)


@dataclass
class FlowEntry:
    """A stored flow with its idle expiry."""

    engine: AssessmentFlowEngine
    expires_at: float

    def is_expired(self) -> bool:
        """Check if this entry has expired."""
        return time.time() > self.expires_at


@dataclass
class FlowStoreConfig:
    """Configuration for the flow registry."""

    max_size: int = 1000  # Maximum live flows
    ttl_seconds: int = 3600  # Idle lifetime
    cleanup_interval_seconds: int = 300

    @classmethod
    def from_settings(cls) -> "FlowStoreConfig":
        """Create config from application settings."""
        from hearttoheart.core.config import get_settings
        settings = get_settings()
        return cls(
            max_size=settings.flow_max_count,
            ttl_seconds=settings.flow_ttl_seconds,
            cleanup_interval_seconds=settings.flow_cleanup_interval_seconds,
        )


class FlowStore:
    """Thread-safe registry of flow engines keyed by random id.

    Reading a flow refreshes its expiry. When full, expired flows are
    dropped first, then the least recently used tenth.
    """

    def __init__(
        self,
        config: FlowStoreConfig | None = None,
        generation_service: GenerationService | None = None,
    ) -> None:
        """Initialize the flow store.

        Args:
            config: Optional store configuration.
            generation_service: Optional generation service handed to new engines.
        """
        self.config = config or FlowStoreConfig()
        self.generation_service = generation_service
        self._flows: dict[str, FlowEntry] = {}
        self._lock = Lock()
        self._cleanup_task: asyncio.Task | None = None

    async def start_cleanup_task(self) -> None:
        """Start background cleanup task."""
        if self._cleanup_task is None:
            self._cleanup_task = asyncio.create_task(self._cleanup_loop())
            logger.info("Flow store cleanup task started")

    async def stop_cleanup_task(self) -> None:
        """Stop background cleanup task."""
        if self._cleanup_task:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None
            logger.info("Flow store cleanup task stopped")

    async def _cleanup_loop(self) -> None:
        """Background loop to drop expired flows."""
        while True:
            await asyncio.sleep(self.config.cleanup_interval_seconds)
            count = self.cleanup()
            if count > 0:
                logger.debug("Flow store removed %d expired flows", count)

    def create(self, language: Language) -> tuple[str, AssessmentFlowEngine]:
        """Register a new flow in SelectRole.

        Returns:
            (flow_id, engine)
        """
        engine = AssessmentFlowEngine(language=language, generation_service=self.generation_service)
        flow_id = secrets.token_urlsafe(16)

        with self._lock:
            if len(self._flows) >= self.config.max_size:
                self._evict_oldest()
            self._flows[flow_id] = FlowEntry(engine=engine, expires_at=time.time() + self.config.ttl_seconds)

        logger.debug("Created flow %s (%s)", flow_id, language)
        return flow_id, engine

    def get(self, flow_id: str) -> AssessmentFlowEngine | None:
        """Get a live flow and extend its lifetime.

        Returns:
            The engine, or None if unknown or expired.
        """
        with self._lock:
            entry = self._flows.get(flow_id)
            if entry is None:
                return None

            if entry.is_expired():
                logger.debug("Flow %s expired", flow_id)
                del self._flows[flow_id]
                return None

            entry.expires_at = time.time() + self.config.ttl_seconds
            return entry.engine

    def delete(self, flow_id: str) -> bool:
        """Remove a flow. Returns whether it existed."""
        with self._lock:
            return self._flows.pop(flow_id, None) is not None

    def _evict_oldest(self) -> None:
        """Evict flows to make room. Must be called with lock held."""
        expired_ids = [k for k, v in self._flows.items() if v.is_expired()]
        for flow_id in expired_ids:
            del self._flows[flow_id]

        if len(self._flows) >= self.config.max_size:
            sorted_entries = sorted(self._flows.items(), key=lambda x: x[1].expires_at)
            to_remove = max(1, len(self._flows) // 10)
            for flow_id, _ in sorted_entries[:to_remove]:
                del self._flows[flow_id]
            logger.warning("Flow store full; evicted %d least recently used flows", to_remove)

    def cleanup(self) -> int:
        """Remove all expired flows.

        Returns:
            Number of flows removed.
        """
        with self._lock:
            expired_ids = [k for k, v in self._flows.items() if v.is_expired()]
            for flow_id in expired_ids:
                del self._flows[flow_id]
            return len(expired_ids)

    def count(self) -> int:
        """Number of live (unexpired) flows."""
        with self._lock:
            return sum(1 for v in self._flows.values() if not v.is_expired())


# Global singleton instance
_flow_store: FlowStore | None = None


def get_flow_store() -> FlowStore:
    """Get or create the global flow store instance."""
    global _flow_store
    if _flow_store is None:
        _flow_store = FlowStore(FlowStoreConfig.from_settings())
    return _flow_store


async def init_flow_store() -> FlowStore:
    """Initialize flow store with cleanup task. Call at app startup."""
    store = get_flow_store()
    await store.start_cleanup_task()
    return store


async def shutdown_flow_store() -> None:
    """Shutdown flow store cleanup task. Call at app shutdown."""
    global _flow_store
    if _flow_store:
        await _flow_store.stop_cleanup_task()
