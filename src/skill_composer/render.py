"""Rich views for bundles, rankings and compositions."""

from typing import Optional, Sequence

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from .bundles.models import Bundle, Composition
from .service import Selection


def score_style(score: float) -> str:
	if score >= 0.8:
		return "green"
	if score > 0.0:
		return "yellow"
	return "dim"


def truncate(text: str, max_len: int = 60) -> str:
	text = " ".join(text.split())
	if len(text) <= max_len:
		return text
	return text[:max_len - 3] + "..."


def render_bundle_list(bundles: Sequence[Bundle], console: Optional[Console] = None) -> None:
	"""Render a table of loaded bundles."""
	console = console or Console()

	if not bundles:
		console.print("[dim]No bundles loaded.[/dim]")
		return

	table = Table(title=f"Guidance Bundles ({len(bundles)})")
	table.add_column("Id", style="cyan")
	table.add_column("Triggers")
	table.add_column("Subtopics")
	table.add_column("Defers To")
	table.add_column("Refs", justify="right")
	table.add_column("Description")

	for bundle in bundles:
		table.add_row(
			bundle.id,
			", ".join(sorted(bundle.triggers)) or "[dim]-[/dim]",
			", ".join(sorted(bundle.subtopics)) or "[dim]-[/dim]",
			", ".join(sorted(bundle.defers_to)) or "[dim]-[/dim]",
			str(len(bundle.references)),
			truncate(bundle.description, 50),
		)

	console.print(table)


def render_selection(selection: Selection, console: Optional[Console] = None, limit: int = 10) -> None:
	"""Render ranking and activations for one query."""
	console = console or Console()
	activations = {a.bundle_id: a for a in selection.activations}

	table = Table(title="Ranking")
	table.add_column("#", justify="right")
	table.add_column("Bundle", style="cyan")
	table.add_column("Score", justify="right")
	table.add_column("Active", justify="center")
	table.add_column("Deferred Subtopics")

	for position, (bundle, score) in enumerate(selection.ranking[:limit], start=1):
		style = score_style(score)
		activation = activations.get(bundle.id)
		deferred = ""
		if activation and activation.deferred_to:
			deferred = ", ".join(f"{tag} -> {target}" for tag, target in activation.deferred_to)
		table.add_row(
			str(position),
			bundle.id,
			f"[{style}]{score:.2f}[/{style}]",
			"[green]yes[/green]" if activation else "[dim]no[/dim]",
			deferred,
		)

	console.print(table)
	if selection.composition.low_confidence:
		console.print("[yellow]No bundle cleared the relevance threshold.[/yellow]")


def render_composition(composition: Composition, console: Optional[Console] = None) -> None:
	"""Render each composed bundle as a markdown panel."""
	console = console or Console()

	if not composition.entries:
		console.print("[dim]No guidance selected.[/dim]")
		return

	for entry in composition.entries:
		console.print(Panel(Markdown(entry.content), title=entry.bundle_id, border_style="cyan"))
		for ref in entry.included_references:
			console.print(Panel(Markdown(ref.content), title=ref.id, border_style="dim"))
