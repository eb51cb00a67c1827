"""
Composer - assembles activated bundles into the final guidance payload.

Sub-documents are expanded after the bundle that references them. A
sub-document appears at most once per composition: the first bundle that
references it gets it, later references are dropped. A shared sub-document
only loses the subtopics suppressed on every activated bundle that
references it.
"""

import logging
from typing import Sequence

from ..bundles.models import Activation, Composition, CompositionEntry, IncludedReference
from ..bundles.registry import RegistrySnapshot
from ..bundles.sections import strip_sections

logger = logging.getLogger(__name__)


def _reference_suppression(
	activations: Sequence[Activation],
	snapshot: RegistrySnapshot,
) -> dict[str, frozenset[str]]:
	"""Subtopics suppressed on every activated bundle that references each sub-document."""
	suppression: dict[str, frozenset[str]] = {}
	for activation in activations:
		for reference_id in snapshot.get(activation.bundle_id).references:
			if reference_id in suppression:
				suppression[reference_id] &= activation.suppressed
			else:
				suppression[reference_id] = activation.suppressed
	return suppression


def compose(
	activations: Sequence[Activation],
	snapshot: RegistrySnapshot,
	expand_references: bool = True,
	low_confidence: bool = False,
) -> Composition:
	"""
	Compose activations into a Composition.

	Args:
		activations: Resolver output, in presentation order
		snapshot: Registry snapshot the activations were resolved against
		expand_references: Include referenced sub-document content
		low_confidence: Carried through to the result

	Returns:
		Composition with one entry per activation
	"""
	entries = []
	seen_references: set[str] = set()
	reference_suppression = _reference_suppression(activations, snapshot) if expand_references else {}

	for activation in activations:
		bundle = snapshot.get(activation.bundle_id)
		content = strip_sections(bundle.content, activation.suppressed)

		included = []
		if expand_references:
			for reference_id in bundle.references:
				if reference_id in seen_references:
					continue
				seen_references.add(reference_id)
				document = snapshot.document(reference_id)
				included.append(IncludedReference(
					id=reference_id,
					content=strip_sections(document.content, reference_suppression[reference_id]),
				))

		entries.append(CompositionEntry(
			bundle_id=bundle.id,
			content=content,
			included_references=tuple(included),
		))

	logger.debug(f"Composed {len(entries)} bundles, {len(seen_references)} sub-documents")
	return Composition(
		entries=tuple(entries),
		low_confidence=low_confidence,
		activations=tuple(activations),
	)
