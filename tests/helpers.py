"""Shared test fixtures and helpers for skill-composer tests."""

from pathlib import Path
from typing import Callable, Iterable
from unittest.mock import MagicMock

from skill_composer.bundles.models import BundleDefinition, SubDocument


def capture_tools(config: MagicMock, register_fn: Callable, **kwargs) -> dict:
	"""Register tools on a mock MCP and return the captured tool functions.

	Args:
		config: Config object to pass to the registration function
		register_fn: The registration function (e.g., register_guidance_tools)

	Returns:
		Dict mapping tool name to the tool function
	"""
	captured = {}

	class MockMCP:
		def tool(self):
			def decorator(fn):
				captured[fn.__name__] = fn
				return fn
			return decorator

	register_fn(MockMCP(), config, **kwargs)
	return captured


def make_definition(
	bundle_id: str,
	triggers: Iterable[str] = (),
	description: str = "",
	content: str = "",
	references: Iterable[str] = (),
	defers_to: Iterable[str] = (),
	subtopics: Iterable[str] = (),
	documents: dict[str, str] | None = None,
) -> BundleDefinition:
	"""Build an in-memory definition; documents maps sub-document id to text."""
	return BundleDefinition(
		id=bundle_id,
		description=description,
		triggers=tuple(triggers),
		references=tuple(references),
		defers_to=tuple(defers_to),
		subtopics=tuple(subtopics),
		content=content or f"# {bundle_id}\n\nGeneral {bundle_id} guidance.",
		documents=tuple(SubDocument(id=k, text=v) for k, v in (documents or {}).items()),
	)


def scenario_definitions() -> list[BundleDefinition]:
	"""The css-styling / a11y / testing trio used across tests."""
	return [
		make_definition(
			"css-styling",
			triggers=["css", "styling"],
			description="Styling patterns for buttons, layouts and responsive design",
			content=(
				"# CSS\n\nUse tokens.\n\n"
				"<!-- subtopic: contrast -->\nCSS contrast rules.\n<!-- /subtopic -->\n\n"
				"Mobile first."
			),
			defers_to=["a11y"],
			subtopics=["contrast"],
		),
		make_definition(
			"a11y",
			triggers=["accessibility", "aria"],
			description="Accessibility rules for interactive components",
			content=(
				"# A11y\n\nUse native elements.\n\n"
				"<!-- subtopic: contrast -->\nA11y contrast rules.\n<!-- /subtopic -->\n\n"
				"<!-- subtopic: a11y-testing -->\nA11y testing tooling.\n<!-- /subtopic -->"
			),
			defers_to=["testing"],
			subtopics=["contrast", "a11y-testing"],
			references=["a11y/aria-patterns"],
			documents={"a11y/aria-patterns": "ARIA patterns."},
		),
		make_definition(
			"testing",
			triggers=["test", "vitest"],
			description="Unit testing recipes",
			content=(
				"# Testing\n\nTest behavior.\n\n"
				"<!-- subtopic: a11y-testing -->\nTesting a11y with axe.\n<!-- /subtopic -->"
			),
			subtopics=["a11y-testing"],
			references=["testing/vitest-recipes", "a11y/aria-patterns"],
			documents={"testing/vitest-recipes": "Vitest recipes."},
		),
	]


def write_skill(root: Path, name: str, frontmatter: str, body: str = "", references: dict[str, str] | None = None) -> Path:
	"""Write <root>/<name>/SKILL.md (and references/) and return the skill dir."""
	skill_dir = root / name
	skill_dir.mkdir(parents=True, exist_ok=True)
	(skill_dir / "SKILL.md").write_text(f"---\n{frontmatter.strip()}\n---\n\n{body}\n", encoding="utf-8")
	for ref_name, text in (references or {}).items():
		ref_path = skill_dir / "references" / f"{ref_name}.md"
		ref_path.parent.mkdir(parents=True, exist_ok=True)
		ref_path.write_text(text, encoding="utf-8")
	return skill_dir
