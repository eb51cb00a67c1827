"""
Bundle Loader - Reads bundle definitions from skill directories.

A skill directory looks like:

	<root>/<skill-name>/SKILL.md
	<root>/<skill-name>/references/*.md

SKILL.md carries YAML frontmatter. Two styles exist in the wild and both are
normalized here into one BundleDefinition shape:

	---                                   ---
	name: a11y                            triggers: [css, styling]
	description: Accessibility rules      description: ...
	---                                   ---
"""

import logging
import re
from dataclasses import replace
from pathlib import Path
from typing import Any, Iterable, Optional, Protocol

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import RegistryError
from .models import BundleDefinition, SubDocument

logger = logging.getLogger(__name__)

SKILL_FILENAME = "SKILL.md"
REFERENCES_DIRNAME = "references"
BUNDLED_SKILLS_PATH = Path(__file__).resolve().parent.parent / "bundled"

FRONTMATTER_RE = re.compile(r"^---\s*\n(.*?)\n---\s*(?:\n(.*))?$", re.DOTALL)


class BundleSource(Protocol):
	"""Anything that can produce bundle definitions."""

	def read(self) -> list[BundleDefinition]:
		...


class FrontMatter(BaseModel):
	"""Accepted SKILL.md frontmatter keys."""

	model_config = ConfigDict(extra="ignore")

	id: Optional[str] = None
	name: Optional[str] = None
	description: str = ""
	triggers: list[str] = Field(default_factory=list)
	references: list[str] = Field(default_factory=list)
	defers_to: list[str] = Field(
		default_factory=list,
		validation_alias=AliasChoices("defers-to", "defers_to", "defersTo"),
	)
	subtopics: list[str] = Field(default_factory=list)
	version: str = "1.0.0"

	@field_validator("triggers", "references", "defers_to", "subtopics", mode="before")
	@classmethod
	def _split_list(cls, value: Any) -> list[str]:
		if value is None:
			return []
		if isinstance(value, str):
			return [v.strip() for v in value.split(",") if v.strip()]
		if isinstance(value, (list, tuple)):
			return [str(v).strip() for v in value if str(v).strip()]
		raise ValueError(f"expected a list or comma-separated string, got {type(value).__name__}")

	@field_validator("description", "version", mode="before")
	@classmethod
	def _coerce_text(cls, value: Any) -> str:
		return "" if value is None else str(value).strip()


def normalize_trigger(trigger: str) -> str:
	return " ".join(trigger.lower().split())


def qualify_reference(bundle_id: str, reference: str) -> str:
	"""
	Turn a reference as written in frontmatter into a sub-document id.

	"aria-patterns", "references/aria-patterns.md" and "a11y/aria-patterns"
	all name the same document when written inside the a11y bundle.
	"""
	ref = reference.strip().removesuffix(".md")
	ref = ref.removeprefix(f"{REFERENCES_DIRNAME}/")
	if "/" not in ref:
		return f"{bundle_id}/{ref}"
	return ref


def parse_skill_file(content: str, source_path: str, fallback_id: str = "") -> BundleDefinition:
	"""
	Parse a SKILL.md file into a definition (documents are attached by the caller).

	Raises:
		RegistryError: frontmatter is missing, not YAML, or has invalid fields
	"""
	match = FRONTMATTER_RE.match(content)
	if not match:
		raise RegistryError(f"No frontmatter found in {source_path}")

	try:
		raw = yaml.safe_load(match.group(1))
	except yaml.YAMLError as e:
		raise RegistryError(f"Invalid YAML frontmatter in {source_path}: {e}") from e

	if not isinstance(raw, dict):
		raise RegistryError(f"Frontmatter in {source_path} is not a mapping")

	try:
		front = FrontMatter.model_validate(raw)
	except ValidationError as e:
		raise RegistryError(f"Invalid frontmatter in {source_path}: {e}") from e

	bundle_id = (front.id or front.name or fallback_id).strip()
	if not bundle_id:
		raise RegistryError(f"Missing 'id' or 'name' in {source_path}")

	triggers = []
	for trigger in front.triggers:
		normalized = normalize_trigger(trigger)
		if normalized and normalized not in triggers:
			triggers.append(normalized)

	return BundleDefinition(
		id=bundle_id,
		description=front.description,
		triggers=tuple(triggers),
		references=tuple(dict.fromkeys(qualify_reference(bundle_id, r) for r in front.references)),
		defers_to=tuple(dict.fromkeys(front.defers_to)),
		subtopics=tuple(dict.fromkeys(s.lower() for s in front.subtopics)),
		content=(match.group(2) or "").strip(),
		source_path=source_path,
		version=front.version or "1.0.0",
	)


class SkillDirectorySource:
	"""
	Reads every <skill>/SKILL.md under a root directory.

	Directories without a SKILL.md are skipped with a warning; a SKILL.md that
	cannot be parsed fails the whole read.
	"""

	def __init__(self, root: str | Path):
		self.root = Path(root)

	def __repr__(self) -> str:
		return f"SkillDirectorySource({str(self.root)!r})"

	def read(self) -> list[BundleDefinition]:
		if not self.root.exists():
			logger.debug(f"Skill directory does not exist: {self.root}")
			return []

		definitions = []
		for skill_dir in sorted(self.root.iterdir()):
			if not skill_dir.is_dir() or skill_dir.name.startswith("."):
				continue
			definition = self._load_skill(skill_dir)
			if definition:
				definitions.append(definition)
				logger.debug(f"Loaded bundle definition: {definition.id}")

		logger.info(f"Read {len(definitions)} bundle definitions from {self.root}")
		return definitions

	def _load_skill(self, skill_dir: Path) -> BundleDefinition | None:
		skill_file = skill_dir / SKILL_FILENAME
		if not skill_file.exists():
			logger.warning(f"No {SKILL_FILENAME} in {skill_dir}")
			return None

		try:
			content = skill_file.read_text(encoding="utf-8")
		except OSError as e:
			raise RegistryError(f"Failed to read {skill_file}: {e}") from e

		definition = parse_skill_file(content, str(skill_file), fallback_id=skill_dir.name)
		documents = tuple(self._discover_documents(definition.id, skill_dir))
		return replace(definition, documents=documents)

	def _discover_documents(self, bundle_id: str, skill_dir: Path) -> Iterable[SubDocument]:
		"""Sub-documents under references/, content left unread until composed."""
		references_dir = skill_dir / REFERENCES_DIRNAME
		if not references_dir.is_dir():
			return []
		return [
			SubDocument(
				id=f"{bundle_id}/{path.relative_to(references_dir).with_suffix('').as_posix()}",
				source_path=path,
			)
			for path in sorted(references_dir.rglob("*.md"))
		]


def default_sources(skill_dirs: Iterable[Path]) -> list[SkillDirectorySource]:
	"""Sources for the configured skill dirs, or the bundled samples if none exist."""
	existing = [Path(d) for d in skill_dirs if Path(d).is_dir()]
	if not existing:
		logger.info(f"No skill directories found, using bundled skills at {BUNDLED_SKILLS_PATH}")
		existing = [BUNDLED_SKILLS_PATH]
	return [SkillDirectorySource(d) for d in existing]


def create_bundle_template(root: str | Path, name: str) -> Path:
	"""
	Create a skill directory with a SKILL.md template.

	Returns:
		Path to the created SKILL.md file

	Raises:
		FileExistsError: the skill already has a SKILL.md
		ValueError: the name is not a single directory name
	"""
	if not name or name in (".", "..") or "/" in name or "\\" in name:
		raise ValueError(f"Invalid bundle name: {name!r}")

	skill_dir = Path(root) / name
	skill_file = skill_dir / SKILL_FILENAME
	if skill_file.exists():
		raise FileExistsError(f"{skill_file} already exists")

	(skill_dir / REFERENCES_DIRNAME).mkdir(parents=True, exist_ok=True)

	template = f"""---
name: {name}
description: Brief description of when this guidance applies
triggers: []
subtopics: []
defers-to: []
references: []
version: 1.0.0
---

# {name.replace("-", " ").title()}

## Overview
[What this guidance covers]

<!-- subtopic: example -->
[Prose another bundle may take over via defers-to]
<!-- /subtopic -->
"""

	skill_file.write_text(template, encoding="utf-8")
	logger.info(f"Created bundle template at {skill_file}")
	return skill_file
