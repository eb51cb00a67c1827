"""
Resolver - turns a ranking into activations and applies deference.

If A and B are both activated and A defers to B, every subtopic the two
share is suppressed on A. A itself stays active; only the shared subtopics
are flagged so the composer can drop those sections.
"""

import logging
from typing import Sequence

from ..bundles.models import Activation, Bundle

logger = logging.getLogger(__name__)

DEFAULT_MIN_RELEVANCE = 0.1


def resolve(
	ranked: Sequence[tuple[Bundle, float]],
	min_relevance: float = DEFAULT_MIN_RELEVANCE,
) -> list[Activation]:
	"""
	Build the ordered activation list for a ranking.

	Args:
		ranked: (bundle, score) pairs as produced by Matcher.rank
		min_relevance: Pairs scoring below this are not activated

	Returns:
		Activations in ranked order; empty when nothing clears the threshold
	"""
	if not 0.0 <= min_relevance <= 1.0:
		raise ValueError(f"min_relevance must be in [0, 1], got {min_relevance}")

	active = [(bundle, score) for bundle, score in ranked if score > 0.0 and score >= min_relevance]
	if not active:
		logger.debug("No bundle cleared the relevance threshold")
		return []

	activations = []
	for bundle, score in active:
		deferred: dict[str, str] = {}
		for other, _ in active:
			if other.id not in bundle.defers_to:
				continue
			for tag in sorted(bundle.subtopics & other.subtopics):
				deferred.setdefault(tag, other.id)

		if deferred:
			logger.debug(f"Bundle '{bundle.id}' defers {deferred}")

		activations.append(Activation(
			bundle_id=bundle.id,
			score=score,
			suppressed=frozenset(deferred),
			deferred_to=tuple(sorted(deferred.items())),
		))

	return activations
