"""Configuration system using platformdirs for cross-platform paths."""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

import platformdirs

from .engine.matcher import MatchWeights
from .engine.resolver import DEFAULT_MIN_RELEVANCE

APP_NAME = "skill-composer"
APP_AUTHOR = "skill-composer"


def _default_skill_dirs() -> list[Path]:
	return [
		Path.cwd() / ".claude" / "skills",
		Path.home() / ".claude" / "skills",
	]


@dataclass
class Config:
	"""Central configuration with XDG/platform conventions."""

	config_dir: Path = field(default_factory=lambda: Path(platformdirs.user_config_dir(APP_NAME)))
	data_dir: Path = field(default_factory=lambda: Path(platformdirs.user_data_dir(APP_NAME)))

	# Derived paths
	log_dir: Path = field(init=False)

	# Bundle sources, in load order
	skill_dirs: list[Path] = field(default_factory=_default_skill_dirs)

	# Selection tuning
	min_relevance: float = DEFAULT_MIN_RELEVANCE
	trigger_baseline: float = 0.8
	trigger_step: float = 0.05
	description_ceiling: float = 0.45
	default_bundle: str = ""
	expand_references: bool = True

	# Bundle id -> subtopic tags, overriding what bundles declare
	subtopics: dict[str, list[str]] = field(default_factory=dict)

	def __post_init__(self) -> None:
		self.log_dir = self.data_dir / "logs"

	@property
	def weights(self) -> MatchWeights:
		"""Matcher weights; raises ValueError when out of range."""
		return MatchWeights(
			trigger_baseline=self.trigger_baseline,
			trigger_step=self.trigger_step,
			description_ceiling=self.description_ceiling,
		)

	def validate(self) -> None:
		"""Raise ValueError for out-of-range selection settings."""
		MatchWeights(
			trigger_baseline=self.trigger_baseline,
			trigger_step=self.trigger_step,
			description_ceiling=self.description_ceiling,
		)
		if not 0.0 <= self.min_relevance <= 1.0:
			raise ValueError(f"min_relevance must be in [0, 1], got {self.min_relevance}")

	def ensure_dirs(self) -> None:
		"""Create all required directories."""
		self.config_dir.mkdir(parents=True, exist_ok=True)
		self.data_dir.mkdir(parents=True, exist_ok=True)
		self.log_dir.mkdir(parents=True, exist_ok=True)


def _apply_env_overrides(config: Config) -> Config:
	"""Apply SKILL_COMPOSER_* environment variable overrides."""
	env_map = {
		"SKILL_COMPOSER_CONFIG_DIR": "config_dir",
		"SKILL_COMPOSER_DATA_DIR": "data_dir",
	}
	for env_key, attr in env_map.items():
		val = os.getenv(env_key)
		if val:
			setattr(config, attr, Path(val))

	skill_dirs = os.getenv("SKILL_COMPOSER_SKILL_DIRS")
	if skill_dirs:
		config.skill_dirs = [Path(os.path.expanduser(p)) for p in skill_dirs.split(os.pathsep) if p]

	min_relevance = os.getenv("SKILL_COMPOSER_MIN_RELEVANCE")
	if min_relevance:
		config.min_relevance = float(min_relevance)

	default_bundle = os.getenv("SKILL_COMPOSER_DEFAULT_BUNDLE")
	if default_bundle is not None:
		config.default_bundle = default_bundle

	# Recompute derived paths after overrides
	config.__post_init__()
	return config


def _apply_toml(config: Config) -> Config:
	"""Apply config.toml overrides if file exists."""
	toml_path = config.config_dir / "config.toml"
	if not toml_path.exists():
		return config

	with open(toml_path, "rb") as f:
		data = tomllib.load(f)

	path_fields = {"config_dir", "data_dir"}
	for key, val in data.items():
		if not hasattr(config, key):
			continue
		if key in path_fields:
			setattr(config, key, Path(os.path.expanduser(val)))
		elif key == "skill_dirs":
			config.skill_dirs = [Path(os.path.expanduser(p)) for p in val]
		elif key == "subtopics":
			config.subtopics = {bundle_id: list(tags) for bundle_id, tags in val.items()}
		else:
			setattr(config, key, val)

	# Recompute derived paths after toml overrides
	config.__post_init__()
	return config


def load_config() -> Config:
	"""Load config with precedence: env vars > config.toml > defaults."""
	config = Config()
	# config.toml lives in the config dir, so an env override of it applies first
	env_config_dir = os.getenv("SKILL_COMPOSER_CONFIG_DIR")
	if env_config_dir:
		config.config_dir = Path(env_config_dir)
	config = _apply_toml(config)
	config = _apply_env_overrides(config)
	config.validate()
	config.ensure_dirs()
	return config


# Singleton
_config: Config | None = None


def get_config() -> Config:
	"""Get or create the global config instance."""
	global _config
	if _config is None:
		_config = load_config()
	return _config
