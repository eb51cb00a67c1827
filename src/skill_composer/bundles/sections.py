"""
Subtopic sections inside bundle bodies.

Prose that belongs to a subtopic is wrapped in HTML comment markers so the
composer can drop it when the bundle defers that subtopic elsewhere:

	<!-- subtopic: contrast -->
	Text contrast must be at least 4.5:1 ...
	<!-- /subtopic -->

Untagged prose always survives. An unterminated section runs to the end of
the document.
"""

import re

OPEN_MARKER = re.compile(r"^\s*<!--\s*subtopic:\s*([\w.-]+)\s*-->\s*$", re.IGNORECASE)
CLOSE_MARKER = re.compile(r"^\s*<!--\s*/subtopic\s*-->\s*$", re.IGNORECASE)


def split_sections(content: str) -> list[tuple[str | None, str]]:
	"""
	Split content into (tag, text) runs in document order.

	Untagged runs carry a tag of None. Marker lines are not part of any run.
	"""
	runs: list[tuple[str | None, list[str]]] = [(None, [])]
	for line in content.splitlines():
		opened = OPEN_MARKER.match(line)
		if opened:
			runs.append((opened.group(1).lower(), []))
			continue
		if CLOSE_MARKER.match(line):
			runs.append((None, []))
			continue
		runs[-1][1].append(line)

	return [(tag, "\n".join(lines)) for tag, lines in runs if any(line.strip() for line in lines)]


def section_tags(content: str) -> set[str]:
	"""All subtopic tags used in the content."""
	return {tag for tag, _ in split_sections(content) if tag is not None}


def strip_sections(content: str, suppressed: frozenset[str] | set[str]) -> str:
	"""
	Drop sections tagged with a suppressed subtopic and remove all markers.

	Every other line is kept byte-for-byte, blank lines and code fences
	included. Content without markers comes back unchanged.
	"""
	kept: list[str] = []
	tag: str | None = None
	for line in content.splitlines(keepends=True):
		opened = OPEN_MARKER.match(line)
		if opened:
			tag = opened.group(1).lower()
			continue
		if CLOSE_MARKER.match(line):
			tag = None
			continue
		if tag is None or tag not in suppressed:
			kept.append(line)
	return "".join(kept)
