"""
Bundle Registry - validated, immutable snapshots of all bundles.

A RegistrySnapshot is built in one go from a batch of definitions and never
changes afterwards. BundleRegistry holds the current snapshot and swaps it
atomically on load/refresh, so readers that grabbed the old snapshot keep a
consistent view until they are done with it.
"""

import logging
import threading
from typing import Iterable, Mapping, Optional, Sequence

from ..errors import NotFoundError, RegistryError
from .loader import BundleSource
from .models import Bundle, BundleDefinition, SubDocument
from .sections import section_tags

logger = logging.getLogger(__name__)


class RegistrySnapshot:
	"""Immutable view of a validated bundle set."""

	def __init__(self, bundles: Sequence[Bundle], documents: Mapping[str, SubDocument]):
		self._bundles = tuple(sorted(bundles, key=lambda b: b.id))
		self._by_id = {bundle.id: bundle for bundle in self._bundles}
		self._documents = dict(documents)

	def __len__(self) -> int:
		return len(self._bundles)

	def __contains__(self, bundle_id: object) -> bool:
		return bundle_id in self._by_id

	def get(self, bundle_id: str) -> Bundle:
		try:
			return self._by_id[bundle_id]
		except KeyError:
			raise NotFoundError(f"Bundle not found: {bundle_id}") from None

	def all(self) -> tuple[Bundle, ...]:
		"""All bundles, sorted by id. A tuple, so it can be iterated any number of times."""
		return self._bundles

	def ids(self) -> list[str]:
		return [bundle.id for bundle in self._bundles]

	def document(self, document_id: str) -> SubDocument:
		try:
			return self._documents[document_id]
		except KeyError:
			raise NotFoundError(f"Sub-document not found: {document_id}") from None

	def documents(self) -> list[str]:
		return sorted(self._documents)

	def subtopic_table(self) -> dict[str, list[str]]:
		"""The explicit bundle id -> subtopic tags table used for deference."""
		return {bundle.id: sorted(bundle.subtopics) for bundle in self._bundles}

	@classmethod
	def build(
		cls,
		definitions: Iterable[BundleDefinition],
		subtopic_overrides: Optional[Mapping[str, Iterable[str]]] = None,
	) -> "RegistrySnapshot":
		"""
		Validate definitions and build a snapshot.

		Args:
			definitions: Normalized bundle definitions from one or more sources
			subtopic_overrides: Bundle id -> subtopic tags, replacing the
				tags the bundle declares itself

		Raises:
			RegistryError: on the first structural problem found
		"""
		by_id: dict[str, BundleDefinition] = {}
		documents: dict[str, SubDocument] = {}

		for definition in definitions:
			if definition.id in by_id:
				raise RegistryError(
					f"Duplicate bundle id '{definition.id}' "
					f"({by_id[definition.id].source_path or '<memory>'} and "
					f"{definition.source_path or '<memory>'})"
				)
			by_id[definition.id] = definition
			for document in definition.documents:
				if document.id in documents:
					raise RegistryError(f"Duplicate sub-document id '{document.id}'")
				documents[document.id] = document

		overrides = {key: [t.lower() for t in tags] for key, tags in (subtopic_overrides or {}).items()}
		for bundle_id in overrides:
			if bundle_id not in by_id:
				raise RegistryError(f"Subtopic table names unknown bundle '{bundle_id}'")

		for definition in by_id.values():
			for target in definition.defers_to:
				if target == definition.id:
					raise RegistryError(f"Bundle '{definition.id}' defers to itself")
				if target not in by_id:
					raise RegistryError(f"Bundle '{definition.id}' defers to unknown bundle '{target}'")
			for reference in definition.references:
				if reference not in documents:
					raise RegistryError(
						f"Bundle '{definition.id}' references unknown sub-document '{reference}'"
					)

		bundles = [
			Bundle(
				id=d.id,
				description=d.description,
				content=d.content,
				triggers=frozenset(d.triggers),
				references=tuple(d.references),
				defers_to=frozenset(d.defers_to),
				subtopics=frozenset(overrides.get(d.id, d.subtopics)),
				source_path=d.source_path,
				version=d.version,
			)
			for d in by_id.values()
		]

		_check_deference_cycles(bundles)

		for bundle in bundles:
			untracked = section_tags(bundle.content) - bundle.subtopics
			if untracked:
				logger.warning(
					f"Bundle '{bundle.id}' tags sections {sorted(untracked)} "
					f"that are not in its subtopic table; they can never be suppressed"
				)

		referenced = {ref for bundle in bundles for ref in bundle.references}
		for document_id in sorted(set(documents) - referenced):
			logger.debug(f"Sub-document '{document_id}' is not referenced by any bundle")

		return cls(bundles, documents)


def _check_deference_cycles(bundles: Sequence[Bundle]) -> None:
	"""
	Reject deference cycles on a shared subtopic.

	For each subtopic there is a graph with an edge A -> B whenever A defers
	to B and both carry the subtopic; each of those graphs must be acyclic.
	"""
	by_id = {bundle.id: bundle for bundle in bundles}
	all_tags = sorted({tag for bundle in bundles for tag in bundle.subtopics})

	for tag in all_tags:
		edges = {
			bundle.id: sorted(
				target for target in bundle.defers_to
				if tag in by_id[target].subtopics
			)
			for bundle in sorted(bundles, key=lambda b: b.id)
			if tag in bundle.subtopics
		}

		# 0 = unvisited, 1 = on stack, 2 = done
		state = {node: 0 for node in edges}

		def visit(node: str, path: list[str]) -> None:
			state[node] = 1
			path.append(node)
			for target in edges[node]:
				if state[target] == 1:
					cycle = path[path.index(target):] + [target]
					raise RegistryError(
						f"Deference cycle on subtopic '{tag}': {' -> '.join(cycle)}"
					)
				if state[target] == 0:
					visit(target, path)
			path.pop()
			state[node] = 2

		for node in edges:
			if state[node] == 0:
				visit(node, [])


class BundleRegistry:
	"""
	Holds the current RegistrySnapshot.

	load() and refresh() build a new snapshot completely before swapping it
	in; a failed load leaves the previous snapshot active. Reads never take
	the lock.
	"""

	def __init__(self, subtopic_overrides: Optional[Mapping[str, Iterable[str]]] = None):
		self._snapshot: Optional[RegistrySnapshot] = None
		self._sources: list[BundleSource | BundleDefinition] = []
		self._subtopic_overrides = dict(subtopic_overrides or {})
		self._load_lock = threading.Lock()

	@property
	def loaded(self) -> bool:
		return self._snapshot is not None

	@property
	def snapshot(self) -> RegistrySnapshot:
		snapshot = self._snapshot
		if snapshot is None:
			raise RegistryError("Registry has not been loaded")
		return snapshot

	def load(self, sources: Iterable[BundleSource | BundleDefinition]) -> RegistrySnapshot:
		"""
		Read all sources and swap in the resulting snapshot.

		Args:
			sources: Bundle sources (anything with read()) and/or ready-made
				BundleDefinitions

		Raises:
			RegistryError: the definitions are structurally invalid; the
				previous snapshot (if any) stays active
		"""
		sources = list(sources)
		with self._load_lock:
			definitions: list[BundleDefinition] = []
			for source in sources:
				if isinstance(source, BundleDefinition):
					definitions.append(source)
				else:
					definitions.extend(source.read())

			try:
				snapshot = RegistrySnapshot.build(definitions, self._subtopic_overrides)
			except RegistryError as e:
				logger.error(f"Registry load rejected: {e}")
				raise

			self._snapshot = snapshot
			self._sources = sources

		logger.info(f"Registry loaded {len(snapshot)} bundles, {len(snapshot.documents())} sub-documents")
		return snapshot

	def refresh(self) -> RegistrySnapshot:
		"""Re-read the sources given to the last successful load()."""
		if not self._sources:
			raise RegistryError("Registry has no sources to refresh from")
		return self.load(self._sources)

	def get(self, bundle_id: str) -> Bundle:
		return self.snapshot.get(bundle_id)

	def all(self) -> tuple[Bundle, ...]:
		return self.snapshot.all()

	def document(self, document_id: str) -> SubDocument:
		return self.snapshot.document(document_id)

	def subtopic_table(self) -> dict[str, list[str]]:
		return self.snapshot.subtopic_table()
