"""Tests for composition assembly."""

import pytest

from skill_composer.bundles.models import Activation, Query
from skill_composer.bundles.registry import RegistrySnapshot
from skill_composer.engine.composer import compose
from skill_composer.engine.matcher import Matcher
from skill_composer.engine.resolver import resolve

from .helpers import make_definition, scenario_definitions


@pytest.fixture
def snapshot() -> RegistrySnapshot:
	return RegistrySnapshot.build(scenario_definitions())


def _activations(snapshot: RegistrySnapshot, text: str) -> list[Activation]:
	return resolve(Matcher().rank(Query(text), snapshot.all()))


def test_deferred_subtopic_excluded_from_deferring_bundle(snapshot: RegistrySnapshot):
	"""A loses its T content, B keeps T, A keeps its non-T content."""
	composition = compose(_activations(snapshot, "write a test for the button's aria attributes"), snapshot)
	entries = {entry.bundle_id: entry for entry in composition}

	assert "A11y testing tooling." not in entries["a11y"].content
	assert "A11y contrast rules." in entries["a11y"].content
	assert "Use native elements." in entries["a11y"].content
	assert "Testing a11y with axe." in entries["testing"].content


def test_contrast_deference(snapshot: RegistrySnapshot):
	composition = compose(_activations(snapshot, "css styling contrast for aria widgets"), snapshot)
	entries = {entry.bundle_id: entry for entry in composition}

	assert "CSS contrast rules." not in entries["css-styling"].content
	assert "Use tokens." in entries["css-styling"].content
	assert "Mobile first." in entries["css-styling"].content
	assert "A11y contrast rules." in entries["a11y"].content


def test_markers_removed(snapshot: RegistrySnapshot):
	composition = compose(_activations(snapshot, "aria"), snapshot)
	assert "<!--" not in composition.entries[0].content


def test_references_included_once(snapshot: RegistrySnapshot):
	"""a11y/aria-patterns goes to the first bundle that references it."""
	composition = compose(_activations(snapshot, "write a test for the button's aria attributes"), snapshot)
	entries = {entry.bundle_id: entry for entry in composition}

	assert [r.id for r in entries["a11y"].included_references] == ["a11y/aria-patterns"]
	assert [r.id for r in entries["testing"].included_references] == ["testing/vitest-recipes"]
	assert entries["a11y"].included_references[0].content == "ARIA patterns."


def test_references_follow_activation_order(snapshot: RegistrySnapshot):
	"""When testing comes first it claims the shared reference."""
	activations = [Activation("testing", 1.0), Activation("a11y", 0.8)]
	composition = compose(activations, snapshot)
	assert [r.id for r in composition.entries[0].included_references] == [
		"testing/vitest-recipes", "a11y/aria-patterns",
	]
	assert composition.entries[1].included_references == ()


def test_no_reference_expansion(snapshot: RegistrySnapshot):
	composition = compose(_activations(snapshot, "aria"), snapshot, expand_references=False)
	assert composition.entries[0].included_references == ()


def test_idempotent(snapshot: RegistrySnapshot):
	activations = _activations(snapshot, "write a test for the button's aria attributes")
	first = compose(activations, snapshot)
	second = compose(activations, snapshot)
	assert first == second
	assert first.render() == second.render()
	assert first.to_dict() == second.to_dict()


def test_empty_activations(snapshot: RegistrySnapshot):
	composition = compose([], snapshot, low_confidence=True)
	assert len(composition) == 0
	assert composition.low_confidence is True
	assert composition.render() == ""


def test_suppression_applies_to_sub_documents():
	snapshot = RegistrySnapshot.build([
		make_definition(
			"a", references=["a/doc"], defers_to=["b"], subtopics=["t"],
			documents={"a/doc": "Shared.\n<!-- subtopic: t -->\nOnly a.\n<!-- /subtopic -->"},
		),
		make_definition("b", subtopics=["t"]),
	])
	composition = compose([Activation("a", 0.8, suppressed=frozenset({"t"})), Activation("b", 0.8)], snapshot)
	assert composition.entries[0].included_references[0].content == "Shared.\n"


def test_render_and_to_dict(snapshot: RegistrySnapshot):
	composition = compose([Activation("a11y", 0.8)], snapshot)
	rendered = composition.render()
	assert rendered.startswith("<!-- bundle: a11y -->")
	assert "<!-- reference: a11y/aria-patterns -->\nARIA patterns." in rendered

	data = composition.to_dict()
	assert data["entries"][0]["id"] == "a11y"
	assert data["entries"][0]["includedReferences"] == [{"id": "a11y/aria-patterns", "content": "ARIA patterns."}]
	assert data["activations"][0]["bundle_id"] == "a11y"


def test_shared_sub_document_keeps_deference_target_content():
	"""a defers t to b; both reference b/doc, so b's t section survives."""
	snapshot = RegistrySnapshot.build([
		make_definition("a", triggers=["x"], references=["b/doc"], defers_to=["b"], subtopics=["t"]),
		make_definition(
			"b", triggers=["x"], references=["b/doc"], subtopics=["t"],
			documents={"b/doc": "Shared.\n<!-- subtopic: t -->\nB owns T.\n<!-- /subtopic -->"},
		),
	])
	composition = compose(_activations(snapshot, "x"), snapshot)

	assert composition.bundle_ids == ["a", "b"]
	assert composition.activations[0].suppressed == frozenset({"t"})
	assert "B owns T." in composition.render()
	assert [r.id for r in composition.entries[0].included_references] == ["b/doc"]
	assert composition.entries[1].included_references == ()


def test_shared_sub_document_stripped_when_every_referrer_defers():
	snapshot = RegistrySnapshot.build([
		make_definition(
			"a", references=["a/doc"], defers_to=["c"], subtopics=["t"],
			documents={"a/doc": "Shared.\n<!-- subtopic: t -->\nDeferred.\n<!-- /subtopic -->"},
		),
		make_definition("b", references=["a/doc"], defers_to=["c"], subtopics=["t"]),
		make_definition("c", subtopics=["t"]),
	])
	activations = [
		Activation("a", 0.8, suppressed=frozenset({"t"})),
		Activation("b", 0.8, suppressed=frozenset({"t"})),
		Activation("c", 0.8),
	]
	composition = compose(activations, snapshot)
	assert composition.entries[0].included_references[0].content == "Shared.\n"
