"""Tests for bundle scoring and ranking."""

import pytest

from skill_composer.bundles.models import Query
from skill_composer.bundles.registry import RegistrySnapshot
from skill_composer.engine.matcher import Matcher, MatchWeights, keywords, matched_triggers
from skill_composer.errors import NotFoundError

from .helpers import make_definition, scenario_definitions


@pytest.fixture
def snapshot() -> RegistrySnapshot:
	return RegistrySnapshot.build(scenario_definitions())


@pytest.fixture
def matcher() -> Matcher:
	return Matcher()


class TestScore:
	"""Tests for Matcher.score."""

	def test_single_trigger_hits_baseline(self, matcher: Matcher, snapshot: RegistrySnapshot):
		score = matcher.score(Query("fix the aria label"), snapshot.get("a11y"))
		assert score == pytest.approx(0.8)

	def test_extra_triggers_add_weight(self, matcher: Matcher, snapshot: RegistrySnapshot):
		score = matcher.score(Query("aria and accessibility review"), snapshot.get("a11y"))
		assert score == pytest.approx(0.85)

	def test_trigger_score_capped(self, snapshot: RegistrySnapshot):
		matcher = Matcher(MatchWeights(trigger_baseline=0.9, trigger_step=0.2))
		score = matcher.score(Query("aria accessibility"), snapshot.get("a11y"))
		assert score == 1.0

	def test_case_insensitive_whole_word(self, matcher: Matcher, snapshot: RegistrySnapshot):
		testing = snapshot.get("testing")
		assert matcher.score(Query("Write a TEST"), testing) == pytest.approx(0.8)
		assert matcher.score(Query("run the test-suite"), testing) == pytest.approx(0.8)
		# "test" inside "attestation" or "contest" is not a whole word
		assert matcher.score(Query("attestation contest"), testing) < 0.5

	def test_phrase_trigger_spans_whitespace(self, matcher: Matcher):
		bundle = RegistrySnapshot.build([make_definition("sr", triggers=["screen reader"])]).get("sr")
		assert matched_triggers("check with a Screen   Reader", bundle) == ["screen reader"]
		assert matched_triggers("screenreader", bundle) == []

	def test_description_fallback_below_half(self, matcher: Matcher):
		bundle = RegistrySnapshot.build([
			make_definition("perf", description="Performance profiling of rendering loops"),
		]).get("perf")
		score = matcher.score(Query("profiling performance of rendering loops"), bundle)
		assert 0.0 < score < 0.5
		assert score == pytest.approx(0.45)

	def test_partial_description_overlap(self, matcher: Matcher):
		bundle = RegistrySnapshot.build([
			make_definition("perf", description="performance profiling rendering loops"),
		]).get("perf")
		score = matcher.score(Query("improve rendering"), bundle)
		assert score == pytest.approx(0.45 / 4)

	def test_hint_forces_full_score(self, matcher: Matcher, snapshot: RegistrySnapshot):
		score = matcher.score(Query("", hints=("css-styling",)), snapshot.get("css-styling"))
		assert score == 1.0

	def test_empty_query_scores_zero(self, matcher: Matcher, snapshot: RegistrySnapshot):
		for bundle in snapshot.all():
			assert matcher.score(Query(""), bundle) == 0.0
			assert matcher.score(Query("   "), bundle) == 0.0


class TestRank:
	"""Tests for Matcher.rank."""

	def test_scenario_ranking(self, matcher: Matcher, snapshot: RegistrySnapshot):
		"""aria and test tie on triggers; the tie goes to the lower id."""
		ranked = matcher.rank(Query("write a test for the button's aria attributes"), snapshot.all())
		ids = [bundle.id for bundle, _ in ranked]
		scores = dict((bundle.id, score) for bundle, score in ranked)

		assert ids == ["a11y", "testing", "css-styling"]
		assert scores["a11y"] == scores["testing"] == pytest.approx(0.8)
		assert 0.0 < scores["css-styling"] < 0.5

	def test_hint_ranks_first(self, matcher: Matcher, snapshot: RegistrySnapshot):
		ranked = matcher.rank(Query("aria vitest", hints=("css-styling",)), snapshot.all())
		assert ranked[0][0].id == "css-styling"
		assert ranked[0][1] == 1.0

	def test_hint_ranks_ahead_of_saturated_trigger_score(self, matcher: Matcher):
		"""Five trigger hits also reach 1.0; the hinted bundle still comes first."""
		snapshot = RegistrySnapshot.build([
			make_definition("a11y", triggers=["accessibility", "a11y", "aria", "wcag", "screen reader"]),
			make_definition("testing", triggers=["vitest"]),
		])
		query = Query("accessibility a11y aria wcag screen reader", hints=("testing",))
		ranked = matcher.rank(query, snapshot.all())
		assert [(b.id, s) for b, s in ranked] == [("testing", 1.0), ("a11y", 1.0)]

	def test_sorted_non_increasing_with_id_tiebreak(self, matcher: Matcher):
		snapshot = RegistrySnapshot.build([
			make_definition("zeta", triggers=["deploy"]),
			make_definition("alpha", triggers=["deploy"]),
			make_definition("mid", triggers=["deploy", "docker"]),
			make_definition("none"),
		])
		ranked = matcher.rank(Query("deploy with docker"), snapshot.all())
		assert [b.id for b, _ in ranked] == ["mid", "alpha", "zeta", "none"]
		scores = [s for _, s in ranked]
		assert scores == sorted(scores, reverse=True)

	def test_empty_query_ranks_everything_at_zero(self, matcher: Matcher, snapshot: RegistrySnapshot):
		ranked = matcher.rank(Query(""), snapshot.all())
		assert [score for _, score in ranked] == [0.0, 0.0, 0.0]
		assert [b.id for b, _ in ranked] == ["a11y", "css-styling", "testing"]

	def test_unknown_hint(self, matcher: Matcher, snapshot: RegistrySnapshot):
		with pytest.raises(NotFoundError, match="ghost"):
			matcher.rank(Query("x", hints=("ghost",)), snapshot.all())


class TestMatchWeights:
	"""Tests for weight validation."""

	def test_defaults(self):
		weights = MatchWeights()
		assert weights.trigger_baseline == 0.8
		assert weights.description_ceiling < 0.5

	@pytest.mark.parametrize("kwargs", [
		{"trigger_baseline": 0.5},
		{"trigger_baseline": 1.1},
		{"trigger_step": -0.1},
		{"description_ceiling": 0.5},
		{"description_ceiling": -0.1},
	])
	def test_rejects_out_of_range(self, kwargs: dict):
		with pytest.raises(ValueError):
			MatchWeights(**kwargs)


def test_keywords_drop_stopwords_and_stem():
	assert keywords("The buttons and their layouts") == {"button", "layout"}
