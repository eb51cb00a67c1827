"""
Bundle Models - the shapes that flow through the selection pipeline.

Registry -> Matcher -> Resolver -> Composer. Everything here is immutable:
bundles are built once per registry snapshot and never mutated.
"""

from dataclasses import dataclass, field
from functools import cached_property
from pathlib import Path
from typing import Any, Optional


@dataclass(frozen=True)
class SubDocument:
	"""A supplementary document owned by a bundle, loaded on first access."""
	id: str
	source_path: Optional[Path] = None
	text: Optional[str] = None

	@cached_property
	def content(self) -> str:
		if self.text is not None:
			return self.text
		if self.source_path is None:
			return ""
		return self.source_path.read_text(encoding="utf-8").strip()


@dataclass(frozen=True)
class BundleDefinition:
	"""
	Normalized but not yet validated bundle definition.

	Every source (skill directories, in-memory fixtures) produces this shape;
	the registry validates a whole batch of them before building bundles.
	"""
	id: str
	description: str = ""
	triggers: tuple[str, ...] = ()
	references: tuple[str, ...] = ()
	defers_to: tuple[str, ...] = ()
	subtopics: tuple[str, ...] = ()
	content: str = ""
	documents: tuple[SubDocument, ...] = ()
	source_path: str = ""
	version: str = "1.0.0"


@dataclass(frozen=True)
class Bundle:
	"""A named, immutable unit of guidance."""
	id: str
	description: str
	content: str
	triggers: frozenset[str] = frozenset()
	references: tuple[str, ...] = ()
	defers_to: frozenset[str] = frozenset()
	subtopics: frozenset[str] = frozenset()
	source_path: str = ""
	version: str = "1.0.0"

	def summary(self) -> dict[str, Any]:
		"""Metadata without the prose body."""
		return {
			"id": self.id,
			"description": self.description,
			"triggers": sorted(self.triggers),
			"references": list(self.references),
			"defers_to": sorted(self.defers_to),
			"subtopics": sorted(self.subtopics),
			"source_path": self.source_path,
			"version": self.version,
		}


@dataclass(frozen=True)
class Query:
	"""A request for guidance: task text plus explicit bundle hints."""
	text: str = ""
	hints: tuple[str, ...] = ()

	@property
	def is_empty(self) -> bool:
		return not self.text.strip() and not self.hints


@dataclass(frozen=True)
class Activation:
	"""The resolver's decision for one bundle."""
	bundle_id: str
	score: float
	suppressed: frozenset[str] = frozenset()
	deferred_to: tuple[tuple[str, str], ...] = ()

	@property
	def is_suppressed(self) -> bool:
		"""True when at least one subtopic is covered by another bundle."""
		return bool(self.suppressed)

	def to_dict(self) -> dict[str, Any]:
		return {
			"bundle_id": self.bundle_id,
			"score": round(self.score, 4),
			"suppressed": sorted(self.suppressed),
			"deferred_to": dict(self.deferred_to),
		}


@dataclass(frozen=True)
class IncludedReference:
	id: str
	content: str


@dataclass(frozen=True)
class CompositionEntry:
	"""One bundle's contribution to a composition."""
	bundle_id: str
	content: str
	included_references: tuple[IncludedReference, ...] = ()

	def to_dict(self) -> dict[str, Any]:
		return {
			"id": self.bundle_id,
			"content": self.content,
			"includedReferences": [
				{"id": ref.id, "content": ref.content} for ref in self.included_references
			],
		}


@dataclass(frozen=True)
class Composition:
	"""Final ordered, deduplicated guidance payload."""
	entries: tuple[CompositionEntry, ...] = ()
	low_confidence: bool = False
	activations: tuple[Activation, ...] = field(default=(), compare=False)

	def __len__(self) -> int:
		return len(self.entries)

	def __iter__(self):
		return iter(self.entries)

	@property
	def bundle_ids(self) -> list[str]:
		return [entry.bundle_id for entry in self.entries]

	def to_dict(self) -> dict[str, Any]:
		return {
			"entries": [entry.to_dict() for entry in self.entries],
			"low_confidence": self.low_confidence,
			"activations": [activation.to_dict() for activation in self.activations],
		}

	def render(self) -> str:
		"""Render the whole composition as a single markdown document."""
		parts = []
		for entry in self.entries:
			parts.append(f"<!-- bundle: {entry.bundle_id} -->\n{entry.content}")
			for ref in entry.included_references:
				parts.append(f"<!-- reference: {ref.id} -->\n{ref.content}")
		return "\n\n".join(parts)
