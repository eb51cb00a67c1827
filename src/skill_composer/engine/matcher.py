"""
Matcher - scores bundles against a query.

Scoring tiers:
- explicit hint: 1.0
- trigger hit: baseline + step per extra distinct trigger, capped at 1.0
- description overlap only: [0, description_ceiling), always below any trigger hit
"""

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable

from ..bundles.models import Bundle, Query
from ..errors import NotFoundError

logger = logging.getLogger(__name__)

STOPWORDS = frozenset({
	"the", "and", "for", "with", "that", "this", "from", "into", "when", "what",
	"use", "using", "are", "was", "were", "will", "can", "should", "must", "its",
	"your", "you", "how", "any", "all", "not", "but", "about", "also", "than",
	"them", "then", "there", "their", "which", "who", "why", "has", "have",
})

_WORD_RE = re.compile(r"[a-z0-9]+")


@dataclass(frozen=True)
class MatchWeights:
	"""Tunable scoring weights."""

	trigger_baseline: float = 0.8
	trigger_step: float = 0.05
	description_ceiling: float = 0.45

	def __post_init__(self) -> None:
		if not 0.5 < self.trigger_baseline <= 1.0:
			raise ValueError(f"trigger_baseline must be in (0.5, 1.0], got {self.trigger_baseline}")
		if self.trigger_step < 0:
			raise ValueError(f"trigger_step must be >= 0, got {self.trigger_step}")
		if not 0.0 <= self.description_ceiling < 0.5:
			raise ValueError(f"description_ceiling must be in [0, 0.5), got {self.description_ceiling}")


def _stem(word: str) -> str:
	if len(word) > 3 and word.endswith("s") and not word.endswith("ss"):
		return word[:-1]
	return word


def keywords(text: str) -> set[str]:
	"""Lower-cased, lightly stemmed content words of a text."""
	return {
		_stem(word) for word in _WORD_RE.findall(text.lower())
		if len(word) >= 3 and word not in STOPWORDS
	}


@lru_cache(maxsize=1024)
def _trigger_pattern(trigger: str) -> re.Pattern:
	words = [re.escape(part) for part in trigger.split()]
	return re.compile(r"(?<!\w)" + r"\s+".join(words) + r"(?!\w)", re.IGNORECASE)


def matched_triggers(text: str, bundle: Bundle) -> list[str]:
	"""Triggers of the bundle that occur in text as whole words."""
	return sorted(t for t in bundle.triggers if t and _trigger_pattern(t).search(text))


class Matcher:
	"""Scores and ranks bundles for a query."""

	def __init__(self, weights: MatchWeights | None = None):
		self.weights = weights or MatchWeights()

	def score(self, query: Query, bundle: Bundle) -> float:
		"""Relevance of a bundle to a query, in [0, 1]."""
		if bundle.id in query.hints:
			return 1.0

		text = query.text.strip()
		if not text:
			return 0.0

		hits = matched_triggers(text, bundle)
		if hits:
			score = self.weights.trigger_baseline + self.weights.trigger_step * (len(hits) - 1)
			return min(1.0, score)

		return self._description_score(text, bundle.description)

	def _description_score(self, text: str, description: str) -> float:
		described = keywords(description)
		if not described:
			return 0.0
		overlap = described & keywords(text)
		return self.weights.description_ceiling * len(overlap) / len(described)

	def rank(self, query: Query, bundles: Iterable[Bundle]) -> list[tuple[Bundle, float]]:
		"""
		Score every bundle, highest first. Ties go to hinted bundles, then
		ascending id.

		Raises:
			NotFoundError: a query hint names a bundle that is not in bundles
		"""
		bundles = list(bundles)
		known = {bundle.id for bundle in bundles}
		for hint in query.hints:
			if hint not in known:
				raise NotFoundError(f"Bundle not found: {hint}")

		scored = [(bundle, self.score(query, bundle)) for bundle in bundles]
		scored.sort(key=lambda pair: (-pair[1], pair[0].id not in query.hints, pair[0].id))

		if logger.isEnabledFor(logging.DEBUG):
			top = ", ".join(f"{b.id}={s:.2f}" for b, s in scored[:5])
			logger.debug(f"Ranked {len(scored)} bundles: {top}")
		return scored
