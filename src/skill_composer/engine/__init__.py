"""Engine module - Matching, deference resolution and composition."""

from .composer import compose
from .matcher import Matcher, MatchWeights
from .resolver import DEFAULT_MIN_RELEVANCE, resolve

__all__ = [
	"DEFAULT_MIN_RELEVANCE",
	"Matcher",
	"MatchWeights",
	"compose",
	"resolve",
]
