"""CLI for skill-composer: serve, doctor, list, query, check, and new commands."""

import argparse
import json
import platform
import sys
from pathlib import Path

from importlib.metadata import version as pkg_version

from .config import load_config
from .errors import RegistryError, SkillComposerError
from .logging_config import setup_logging

CORE_DEPS = ["mcp", "platformdirs", "PyYAML", "pydantic", "rich"]


def _build_engine(args: argparse.Namespace):
	"""Engine for the configured skill dirs, or the --dir overrides."""
	from .bundles.loader import SkillDirectorySource
	from .service import GuidanceEngine

	config = load_config()
	engine = GuidanceEngine(config)
	dirs = getattr(args, "dir", None)
	if dirs:
		engine.load([SkillDirectorySource(d) for d in dirs])
	else:
		engine.load()
	return engine


def cmd_serve(args: argparse.Namespace) -> None:
	"""Run the MCP server (stdio transport)."""
	from .server import mcp
	mcp.run()


def _check_config_toml(config_dir: Path) -> tuple[str, str | None]:
	"""Validate config.toml. Returns (status, issue_or_none)."""
	import tomllib

	toml_path = config_dir / "config.toml"
	if not toml_path.exists():
		return "not found (optional)", None
	try:
		with open(toml_path, "rb") as f:
			tomllib.load(f)
		return "valid", None
	except tomllib.TOMLDecodeError as e:
		msg = f"config.toml parse error: {e}"
		return f"INVALID ({e})", msg


def _check_registry() -> tuple[str, str | None]:
	"""Load the configured bundles. Returns (status, issue_or_none)."""
	try:
		engine = _build_engine(argparse.Namespace())
		count = len(engine.registry.snapshot)
		return f"OK ({count} bundles)", None
	except RegistryError as e:
		return f"INVALID ({e})", f"Bundle registry failed to load: {e}"
	except ValueError as e:
		return f"INVALID ({e})", f"Configuration error: {e}"


def _check_server_startup() -> tuple[str, str | None]:
	"""Try importing and counting registered tools. Returns (status, issue_or_none)."""
	try:
		from .server import mcp as server_instance
		# FastMCP stores tools internally - count them
		tools = server_instance._tool_manager._tools
		count = len(tools)
		return f"OK ({count} tools registered)", None
	except Exception as e:
		return f"FAILED ({e})", f"Server startup failed: {e}"


def cmd_doctor(args: argparse.Namespace) -> None:
	"""Health check - verify installation, configuration and bundles."""
	print("skill-composer doctor")
	print(f"{'=' * 40}")

	issues: list[str] = []

	py_ver = f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
	print(f"  Python:       {py_ver}")
	print(f"  Platform:     {platform.system()} {platform.machine()}")
	print()

	print("  Core deps:")
	for dep in CORE_DEPS:
		try:
			dep_ver = pkg_version(dep)
			print(f"    {dep:22s} {dep_ver}")
		except Exception:
			print(f"    {dep:22s} NOT INSTALLED")
			issues.append(f"{dep} package not installed")
	print()

	try:
		config = load_config()
	except (ValueError, OSError) as e:
		print(f"  Config:       INVALID ({e})")
		issues.append(f"Configuration error: {e}")
		config = None

	if config is not None:
		print("  Config:")
		toml_status, toml_issue = _check_config_toml(config.config_dir)
		print(f"    config.toml:         {toml_status}")
		if toml_issue:
			issues.append(toml_issue)
		for skill_dir in config.skill_dirs:
			status = "present" if skill_dir.is_dir() else "missing"
			print(f"    skill dir:           {skill_dir} ({status})")
		print()

		print("  Bundles:")
		registry_status, registry_issue = _check_registry()
		print(f"    {registry_status}")
		if registry_issue:
			issues.append(registry_issue)
		print()

		print("  Server:")
		server_status, server_issue = _check_server_startup()
		print(f"    {server_status}")
		if server_issue:
			issues.append(server_issue)
		print()

	if issues:
		print(f"  {len(issues)} issue(s) found:")
		for issue in issues:
			print(f"    - {issue}")
		sys.exit(1)
	else:
		print("  All checks passed.")


def cmd_check(args: argparse.Namespace) -> None:
	"""Validate bundle definitions without serving them."""
	try:
		engine = _build_engine(args)
	except (RegistryError, ValueError) as e:
		print(f"INVALID: {e}")
		sys.exit(1)

	snapshot = engine.registry.snapshot
	print(f"OK: {len(snapshot)} bundles, {len(snapshot.documents())} sub-documents")
	for bundle_id, tags in snapshot.subtopic_table().items():
		if tags:
			print(f"  {bundle_id}: {', '.join(tags)}")


def cmd_list(args: argparse.Namespace) -> None:
	"""List loaded bundles."""
	from .render import render_bundle_list

	try:
		engine = _build_engine(args)
	except (RegistryError, ValueError) as e:
		print(f"Error: {e}")
		sys.exit(1)

	bundles = engine.registry.all()
	if getattr(args, "json", False):
		print(json.dumps([b.summary() for b in bundles], indent=2))
		return
	render_bundle_list(bundles)


def cmd_query(args: argparse.Namespace) -> None:
	"""Select and compose guidance for a task description."""
	from .render import render_composition, render_selection

	text = " ".join(args.text or [])
	try:
		engine = _build_engine(args)
		selection = engine.select(
			text,
			args.hint or [],
			expand_references=False if args.no_references else None,
		)
	except (SkillComposerError, ValueError) as e:
		print(f"Error: {e}")
		sys.exit(1)

	if args.json:
		print(json.dumps(selection.composition.to_dict(), indent=2))
		return

	if args.explain:
		render_selection(selection)
		return

	if args.raw:
		print(selection.composition.render())
		return

	render_composition(selection.composition)


def cmd_new(args: argparse.Namespace) -> None:
	"""Scaffold a new bundle directory."""
	from .bundles.loader import create_bundle_template

	if args.global_bundle:
		root = Path.home() / ".claude" / "skills"
	else:
		root = Path(args.path) / ".claude" / "skills"

	try:
		skill_file = create_bundle_template(root, args.name)
	except (FileExistsError, ValueError) as e:
		print(f"Error: {e}")
		sys.exit(1)
	print(f"Created {skill_file}")


def main() -> None:
	"""CLI entry point."""
	parser = argparse.ArgumentParser(
		prog="skill-composer",
		description="Select and compose guidance bundles for a task",
	)
	parser.add_argument("--log-level", type=str, default=None, help="DEBUG, INFO, WARNING or ERROR")
	subparsers = parser.add_subparsers(dest="command")

	# serve
	serve_parser = subparsers.add_parser("serve", help="Run MCP server (stdio)")
	serve_parser.set_defaults(func=cmd_serve)

	# doctor
	doctor_parser = subparsers.add_parser("doctor", help="Health check")
	doctor_parser.set_defaults(func=cmd_doctor)

	# check
	check_parser = subparsers.add_parser("check", help="Validate bundle definitions")
	check_parser.add_argument("--dir", action="append", help="Skill directory (repeatable, default: configured dirs)")
	check_parser.set_defaults(func=cmd_check)

	# list
	list_parser = subparsers.add_parser("list", help="List loaded bundles")
	list_parser.add_argument("--dir", action="append", help="Skill directory (repeatable)")
	list_parser.add_argument("--json", action="store_true", help="Print JSON instead of a table")
	list_parser.set_defaults(func=cmd_list)

	# query
	query_parser = subparsers.add_parser("query", help="Compose guidance for a task")
	query_parser.add_argument("text", nargs="*", help="Task description")
	query_parser.add_argument("--hint", action="append", help="Bundle id to include regardless of text (repeatable)")
	query_parser.add_argument("--dir", action="append", help="Skill directory (repeatable)")
	query_parser.add_argument("--explain", action="store_true", help="Show ranking and deference instead of content")
	query_parser.add_argument("--json", action="store_true", help="Print the composition as JSON")
	query_parser.add_argument("--raw", action="store_true", help="Print the composition as plain markdown")
	query_parser.add_argument("--no-references", action="store_true", help="Don't expand referenced sub-documents")
	query_parser.set_defaults(func=cmd_query)

	# new
	new_parser = subparsers.add_parser("new", help="Create a bundle template")
	new_parser.add_argument("name", help="Bundle name (directory name)")
	new_parser.add_argument("--global", dest="global_bundle", action="store_true", help="Create in ~/.claude/skills")
	new_parser.add_argument("--path", type=str, default=".", help="Project path (default: current directory)")
	new_parser.set_defaults(func=cmd_new)

	args = parser.parse_args()

	if not args.command:
		parser.print_help()
		sys.exit(1)

	setup_logging(level=args.log_level)
	args.func(args)
