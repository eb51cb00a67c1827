"""
Guidance Engine - the query and refresh interface.

Wires Registry -> Matcher -> Resolver -> Composer. Each query pins the
registry snapshot current at its start, so a concurrent refresh never
produces a mixed result.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from .bundles.loader import default_sources
from .bundles.models import Activation, Bundle, Composition, Query
from .bundles.registry import BundleRegistry, RegistrySnapshot
from .config import Config
from .engine.composer import compose
from .engine.matcher import Matcher
from .engine.resolver import resolve

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Selection:
	"""Every intermediate stage of one query, for explaining a result."""
	query: Query
	ranking: tuple[tuple[Bundle, float], ...]
	activations: tuple[Activation, ...]
	composition: Composition


class GuidanceEngine:
	"""
	Selects and composes guidance bundles for a task.

	Usage:
		engine = GuidanceEngine(config)
		engine.load()
		composition = engine.query("write a test for the button's aria attributes")
	"""

	def __init__(self, config: Optional[Config] = None, registry: Optional[BundleRegistry] = None):
		self.config = config or Config()
		self.registry = registry or BundleRegistry(subtopic_overrides=self.config.subtopics)
		self.matcher = Matcher(self.config.weights)

	def load(self, sources: Optional[Iterable] = None) -> RegistrySnapshot:
		"""Load bundles from sources, or from the configured skill dirs."""
		if sources is None:
			sources = default_sources(self.config.skill_dirs)
		return self.registry.load(sources)

	def refresh(self) -> RegistrySnapshot:
		"""Re-read the bundle sources and swap the snapshot atomically."""
		if not self.registry.loaded:
			return self.load()
		return self.registry.refresh()

	def _snapshot(self) -> RegistrySnapshot:
		if not self.registry.loaded:
			self.load()
		return self.registry.snapshot

	def select(
		self,
		text: str = "",
		hints: Sequence[str] = (),
		expand_references: Optional[bool] = None,
	) -> Selection:
		"""
		Run the full pipeline and keep every stage.

		Raises:
			NotFoundError: a hint names an unknown bundle
		"""
		snapshot = self._snapshot()
		query = Query(text=text or "", hints=tuple(dict.fromkeys(h.strip() for h in hints if h.strip())))
		if expand_references is None:
			expand_references = self.config.expand_references

		ranking = self.matcher.rank(query, snapshot.all())
		activations = resolve(ranking, self.config.min_relevance)
		low_confidence = not activations

		if low_confidence and self.config.default_bundle and self.config.default_bundle in snapshot:
			logger.info(f"No bundle matched, falling back to '{self.config.default_bundle}'")
			activations = [Activation(bundle_id=self.config.default_bundle, score=0.0)]
		elif low_confidence and self.config.default_bundle:
			logger.warning(f"Configured default bundle '{self.config.default_bundle}' is not loaded")

		composition = compose(
			activations,
			snapshot,
			expand_references=expand_references,
			low_confidence=low_confidence,
		)
		logger.debug(f"Query {query.text[:60]!r} hints={list(query.hints)} -> {composition.bundle_ids}")
		return Selection(
			query=query,
			ranking=tuple(ranking),
			activations=tuple(activations),
			composition=composition,
		)

	def query(
		self,
		text: str = "",
		hints: Sequence[str] = (),
		expand_references: Optional[bool] = None,
	) -> Composition:
		"""Return the composed guidance for a task description and hints."""
		return self.select(text, hints, expand_references).composition


# Global engine instance
_engine: GuidanceEngine | None = None


def get_engine(config: Optional[Config] = None) -> GuidanceEngine:
	"""Get or create the global engine instance."""
	global _engine
	if _engine is None:
		_engine = GuidanceEngine(config)
	return _engine
