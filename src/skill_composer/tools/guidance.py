"""Guidance selection tools."""

import json
import logging
from pathlib import Path
from typing import Optional

from mcp.server.fastmcp import FastMCP

from ..bundles.loader import create_bundle_template as _create_bundle_template
from ..config import Config
from ..errors import NotFoundError, RegistryError
from ..service import GuidanceEngine, get_engine

logger = logging.getLogger(__name__)


def _split_hints(hints: str) -> list[str]:
	return [h.strip() for h in hints.split(",") if h.strip()]


def register_guidance_tools(mcp: FastMCP, config: Config, engine: Optional[GuidanceEngine] = None) -> None:
	"""Register guidance selection tools."""
	engine = engine or get_engine(config)

	@mcp.tool()
	async def select_guidance(text: str = "", hints: str = "", expand_references: bool = True) -> str:
		"""
		Select and compose the guidance bundles relevant to a task.

		Args:
			text: Free-text description of the current task
			hints: Comma-separated bundle ids to include regardless of the text
			expand_references: Include the sub-documents bundles reference

		Returns the ordered composition: one entry per bundle with its content
		and included references. An empty result has low_confidence set.
		"""
		try:
			composition = engine.query(text, _split_hints(hints), expand_references)
		except NotFoundError as e:
			return json.dumps({
				"error": str(e),
				"available_bundles": engine.registry.snapshot.ids(),
			}, indent=2)
		except RegistryError as e:
			return json.dumps({"error": str(e)}, indent=2)

		return json.dumps(composition.to_dict(), indent=2)

	@mcp.tool()
	async def explain_selection(text: str = "", hints: str = "") -> str:
		"""
		Show how bundles were scored and which subtopics were deferred.

		Args:
			text: Free-text description of the current task
			hints: Comma-separated bundle ids to force
		"""
		try:
			selection = engine.select(text, _split_hints(hints), expand_references=False)
		except (NotFoundError, RegistryError) as e:
			return json.dumps({"error": str(e)}, indent=2)

		return json.dumps({
			"query": {"text": selection.query.text, "hints": list(selection.query.hints)},
			"ranking": [
				{"id": bundle.id, "score": round(score, 4)}
				for bundle, score in selection.ranking
			],
			"activations": [a.to_dict() for a in selection.activations],
			"low_confidence": selection.composition.low_confidence,
			"min_relevance": config.min_relevance,
		}, indent=2)

	@mcp.tool()
	async def list_bundles() -> str:
		"""List all loaded guidance bundles with their triggers and deference."""
		try:
			bundles = engine.registry.all() if engine.registry.loaded else engine.load().all()
		except RegistryError as e:
			return json.dumps({"error": str(e)}, indent=2)

		return json.dumps({
			"bundles": [bundle.summary() for bundle in bundles],
			"total": len(bundles),
			"subtopics": engine.registry.subtopic_table(),
		}, indent=2)

	@mcp.tool()
	async def get_bundle(bundle_id: str) -> str:
		"""
		Get full details of a bundle including its content.

		Args:
			bundle_id: Id of the bundle
		"""
		try:
			if not engine.registry.loaded:
				engine.load()
			bundle = engine.registry.get(bundle_id)
		except NotFoundError as e:
			return json.dumps({
				"error": str(e),
				"available_bundles": engine.registry.snapshot.ids(),
			}, indent=2)
		except RegistryError as e:
			return json.dumps({"error": str(e)}, indent=2)

		return json.dumps({**bundle.summary(), "content": bundle.content}, indent=2)

	@mcp.tool()
	async def refresh_bundles() -> str:
		"""
		Re-read all bundle sources and replace the registry atomically.

		On failure the previous bundles stay active and the first structural
		problem (duplicate id, dangling reference, deference cycle) is returned.
		"""
		try:
			snapshot = engine.refresh()
		except RegistryError as e:
			return json.dumps({"refreshed": False, "error": str(e)}, indent=2)

		return json.dumps({
			"refreshed": True,
			"bundles": snapshot.ids(),
			"total": len(snapshot),
		}, indent=2)

	@mcp.tool()
	async def create_bundle_template(
		bundle_name: str,
		global_bundle: bool = False,
		project_path: str = "",
	) -> str:
		"""
		Create a new guidance bundle template.

		Args:
			bundle_name: Name for the new bundle (used as directory name)
			global_bundle: If True, create in ~/.claude/skills/; otherwise in the project's .claude/skills/
			project_path: Project path (only used if global_bundle=False)
		"""
		if global_bundle:
			root = Path.home() / ".claude" / "skills"
		else:
			root = Path(project_path or Path.cwd()) / ".claude" / "skills"

		try:
			skill_file = _create_bundle_template(root, bundle_name)
		except (FileExistsError, ValueError) as e:
			return json.dumps({"created": False, "error": str(e)}, indent=2)

		return json.dumps({
			"created": True,
			"skill_file": str(skill_file),
			"bundle_name": bundle_name,
			"location": "global" if global_bundle else "project",
		}, indent=2)
