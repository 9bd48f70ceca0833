"""
Span location: map classifier strings back onto positioned text fragments.

The extractor gives fragments with coordinates but no labels; the classifier
gives labelled strings with no coordinates. This module joins the fragments
into one text, remembers which fragment owns every character, finds each
classifier string in that text, and turns every occurrence into one
rectangle per visual line.
"""

import math
import re
import logging
from typing import Callable, Iterable, Optional

from .models import TextFragment, SensitiveSpan, RedactionRegion


logger = logging.getLogger(__name__)

# Inserted between adjacent fragments in the joined text
SEPARATOR = " "

LineKey = Callable[[TextFragment], tuple]


def build_full_text(
    fragments: list[TextFragment]
) -> tuple[str, list[Optional[int]]]:
    """
    Join fragment texts and build the character ownership index.

    Args:
        fragments: Fragments in extraction order

    Returns:
        Tuple of (full_text, owners) where owners[i] is the index of the
        fragment that produced character i, or None for a separator
    """
    parts = []
    owners: list[Optional[int]] = []

    for idx, fragment in enumerate(fragments):
        if idx > 0:
            parts.append(SEPARATOR)
            owners.append(None)
        parts.append(fragment.text)
        owners.extend([idx] * len(fragment.text))

    return "".join(parts), owners


def unique_spans(spans: Iterable[SensitiveSpan]) -> list[SensitiveSpan]:
    """
    Drop repeated literals, keeping the first occurrence of each.

    Literals are compared after trimming; blank literals are dropped.
    The returned spans carry the trimmed literal.
    """
    seen: dict[str, SensitiveSpan] = {}
    for span in spans:
        literal = span.literal.strip()
        if not literal or literal in seen:
            continue
        seen[literal] = SensitiveSpan(category=span.category, literal=literal)
    return list(seen.values())


def build_search_pattern(literal: str) -> re.Pattern:
    """
    Compile a whitespace-tolerant pattern for a literal.

    Every character matches verbatim except runs of whitespace, which match
    any run of one or more whitespace characters.
    """
    words = literal.split()
    return re.compile(r"\s+".join(re.escape(word) for word in words))


def default_line_key(fragment: TextFragment) -> tuple:
    """
    Same page and baseline rounded to the nearest whole point.

    Non-finite baselines cannot be rounded; they share one line per page
    and the resulting region is rejected as degenerate when drawn.
    """
    if not math.isfinite(fragment.y):
        return (fragment.page, str(fragment.y))
    return (fragment.page, math.floor(fragment.y + 0.5))


def group_by_line(
    fragments: list[TextFragment],
    line_key: LineKey = default_line_key
) -> list[list[TextFragment]]:
    """
    Partition fragments into visual lines.

    Groups are returned in order of first appearance; fragments inside a
    group keep their input order.
    """
    lines: dict[tuple, list[TextFragment]] = {}
    for fragment in fragments:
        lines.setdefault(line_key(fragment), []).append(fragment)
    return list(lines.values())


def line_rectangle(line: list[TextFragment]) -> tuple[float, float, float, float]:
    """
    Bounding rectangle of one line of fragments.

    Returns:
        (x, y, width, height) in page-space; y is the leftmost fragment's baseline
    """
    ordered = sorted(line, key=lambda f: f.x)
    first = ordered[0]
    last = ordered[-1]
    x = first.x
    width = (last.x + last.width) - first.x
    height = max(f.height for f in ordered)
    return (x, first.y, width, height)


def dedupe_regions(regions: list[RedactionRegion]) -> list[RedactionRegion]:
    """Collapse regions with the same page and rounded rectangle; first wins."""
    kept: dict[tuple, RedactionRegion] = {}
    for region in regions:
        kept.setdefault(region.position_key, region)
    return list(kept.values())


def locate(
    fragments: list[TextFragment],
    spans: Iterable[SensitiveSpan],
    line_key: LineKey = default_line_key
) -> list[RedactionRegion]:
    """
    Find every occurrence of every span and return its redaction regions.

    Args:
        fragments: Fragments in extraction order
        spans: Classifier output (duplicates and blanks allowed)
        line_key: Policy deciding which fragments share a visual line

    Returns:
        Deduplicated regions, one per visual line per occurrence
    """
    full_text, owners = build_full_text(fragments)
    regions: list[RedactionRegion] = []
    counter = 0

    for span in unique_spans(spans):
        pattern = build_search_pattern(span.literal)
        occurrences = 0

        for match in pattern.finditer(full_text):
            # dict keeps first-seen order of the owning fragments
            owning = {}
            for pos in range(match.start(), match.end()):
                owner = owners[pos]
                if owner is not None:
                    owning[owner] = fragments[owner]

            if not owning:
                continue
            occurrences += 1

            for line in group_by_line(list(owning.values()), line_key):
                x, y, width, height = line_rectangle(line)
                regions.append(RedactionRegion(
                    id=f"region-{counter}",
                    category=span.category,
                    literal=span.literal,
                    page=line[0].page,
                    x=x,
                    y=y,
                    width=width,
                    height=height,
                ))
                counter += 1

        if occurrences == 0:
            logger.debug(f"No occurrence of a {span.category} literal")

    deduped = dedupe_regions(regions)
    logger.info(
        f"Located {len(deduped)} regions ({len(regions) - len(deduped)} duplicates collapsed) "
        f"across {len(fragments)} fragments"
    )
    return deduped
