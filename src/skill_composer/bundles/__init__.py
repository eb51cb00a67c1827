"""Bundles module - Bundle discovery, validation and snapshots."""

from .loader import SkillDirectorySource, create_bundle_template, default_sources, parse_skill_file
from .models import (
	Activation,
	Bundle,
	BundleDefinition,
	Composition,
	CompositionEntry,
	IncludedReference,
	Query,
	SubDocument,
)
from .registry import BundleRegistry, RegistrySnapshot

__all__ = [
	"Activation",
	"Bundle",
	"BundleDefinition",
	"BundleRegistry",
	"Composition",
	"CompositionEntry",
	"IncludedReference",
	"Query",
	"RegistrySnapshot",
	"SkillDirectorySource",
	"SubDocument",
	"create_bundle_template",
	"default_sources",
	"parse_skill_file",
]
