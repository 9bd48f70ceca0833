"""Tests for the span locator."""

import math

import pytest

from pdf_sanitizer.locator import (
    build_full_text, build_search_pattern, unique_spans, group_by_line,
    line_rectangle, dedupe_regions, default_line_key, locate
)
from pdf_sanitizer.geometry import is_degenerate
from pdf_sanitizer.models import RedactionRegion

from conftest import frag, spans_of


# ── Full text and ownership ──────────────────────────────────────────

def test_full_text_joins_with_single_space():
    text, owners = build_full_text([frag("ab", 10), frag("c", 30)])
    assert text == "ab c"
    assert owners == [0, 0, None, 1]


def test_full_text_empty():
    assert build_full_text([]) == ("", [])


def test_identical_fragments_keep_separate_owners():
    a = frag("Acme", 10)
    text, owners = build_full_text([a, a])
    assert text == "Acme Acme"
    assert owners[:4] == [0] * 4
    assert owners[5:] == [1] * 4


# ── Span dedup and patterns ──────────────────────────────────────────

def test_unique_spans_first_wins_and_trims():
    spans = unique_spans(spans_of(
        ("Name", "  John Smith "),
        ("ORG", "John Smith"),
        ("ORG", "   "),
        ("ORG", ""),
    ))
    assert len(spans) == 1
    assert spans[0].category == "Name"
    assert spans[0].literal == "John Smith"


def test_pattern_tolerates_whitespace_runs():
    pattern = build_search_pattern("John  \n Smith")
    assert pattern.search("to John Smith today")
    assert pattern.search("John\t\tSmith")
    assert not pattern.search("JohnSmith")


def test_pattern_escapes_special_characters():
    pattern = build_search_pattern("$1,000 (USD)*")
    assert pattern.search("Fee: $1,000 (USD)* due")
    assert not pattern.search("Fee: 1,000 USD due")


def test_pattern_is_case_sensitive():
    assert not build_search_pattern("Acme Corp").search("acme corp")


# ── Line grouping ────────────────────────────────────────────────────

def test_line_key_rounds_to_nearest_unit():
    assert default_line_key(frag("a", 0, y=700.2)) == default_line_key(frag("b", 0, y=699.9))
    assert default_line_key(frag("a", 0, y=700.4)) != default_line_key(frag("b", 0, y=700.6))


def test_line_key_separates_pages():
    assert default_line_key(frag("a", 0, page=1)) != default_line_key(frag("a", 0, page=2))


def test_group_by_line_keeps_first_appearance_order():
    a = frag("a", 10, y=700)
    b = frag("b", 10, y=686)
    c = frag("c", 30, y=700)
    assert group_by_line([a, b, c]) == [[a, c], [b]]


def test_line_rectangle_spans_leftmost_to_rightmost():
    right = frag("Smith", 38, y=700.3, width=30, height=10)
    left = frag("John", 10, y=700.0, width=24, height=12)
    assert line_rectangle([right, left]) == (10, 700.0, 58, 12)


# ── Region dedup ─────────────────────────────────────────────────────

def test_dedupe_regions_uses_rounded_position():
    a = RedactionRegion("region-0", "Name", "x", 1, 10.001, 700, 50, 12)
    b = RedactionRegion("region-1", "ORG", "y", 1, 10.004, 700, 50, 12)
    c = RedactionRegion("region-2", "ORG", "y", 2, 10.0, 700, 50, 12)
    assert dedupe_regions([a, b, c]) == [a, c]


# ── locate() ─────────────────────────────────────────────────────────

def test_literal_inside_one_fragment_uses_fragment_geometry():
    fragments = [frag("John Smith, 12 Main St", 10, y=700, width=150, height=12)]
    regions = locate(fragments, spans_of(("PERSON", "John Smith")))

    assert len(regions) == 1
    region = regions[0]
    assert region.page == 1
    assert (region.x, region.y, region.width, region.height) == (10, 700, 150, 12)
    assert region.category == "PERSON"
    assert region.literal == "John Smith"


def test_literal_across_two_fragments_on_one_line():
    fragments = [
        frag("John", 10, width=24),
        frag("Smith", 38, width=30),
        frag("signed", 72, width=36),
    ]
    regions = locate(fragments, spans_of(("Name", "John Smith")))

    assert len(regions) == 1
    assert regions[0].x == 10
    assert regions[0].width == 58


def test_wrapped_literal_gives_one_region_per_line():
    fragments = [
        frag("12 Main St,", 10, y=700, width=66),
        frag("Springfield", 10, y=686, width=66),
    ]
    regions = locate(fragments, spans_of(("ADDRESS", "12 Main St, Springfield")))

    assert len(regions) == 2
    assert [r.y for r in regions] == [700, 686]
    assert all(r.width == 66 for r in regions)


def test_duplicate_literals_give_one_region():
    fragments = [frag("Contact", 10), frag("Acme Corp", 60), frag("today", 120)]
    regions = locate(fragments, spans_of(("T", "Acme Corp"), ("ORG", "Acme Corp")))

    assert len(regions) == 1
    assert regions[0].category == "T"


def test_absent_literal_gives_no_regions():
    fragments = [frag("Nothing to see here", 10)]
    assert locate(fragments, spans_of(("Name", "Jane Doe"))) == []


def test_no_spans_or_no_fragments():
    assert locate([frag("John Smith", 10)], []) == []
    assert locate([], spans_of(("Name", "John Smith"))) == []


def test_every_occurrence_is_located():
    fragments = [
        frag("John Smith", 10, y=700),
        frag("and then", 10, y=680),
        frag("John Smith", 10, y=660),
    ]
    regions = locate(fragments, spans_of(("Name", "John Smith")))
    assert [r.y for r in regions] == [700, 660]


def test_substring_literals_are_not_merged():
    fragments = [frag("Acme", 10, width=24), frag("Corp", 40, width=24)]
    regions = locate(fragments, spans_of(("ORG", "Acme"), ("ORG", "Acme Corp")))

    assert len(regions) == 2
    assert sorted(r.width for r in regions) == [24, 54]


def test_same_fragment_matched_by_two_literals_collapses():
    fragments = [frag("Acme Corp Ltd", 10)]
    regions = locate(fragments, spans_of(("Name", "Acme"), ("ORG", "Acme Corp")))

    assert len(regions) == 1
    assert regions[0].category == "Name"


def test_match_across_pages_splits_by_page():
    fragments = [frag("Acme", 10, page=1), frag("Corp", 10, page=2)]
    regions = locate(fragments, spans_of(("ORG", "Acme Corp")))
    assert sorted(r.page for r in regions) == [1, 2]


def test_case_mismatch_is_not_located():
    assert locate([frag("ACME CORP", 10)], spans_of(("ORG", "Acme Corp"))) == []


def test_display_literal_is_trimmed():
    regions = locate([frag("John Smith", 10)], spans_of(("Name", "  John Smith\n")))
    assert regions[0].literal == "John Smith"


def test_region_ids_are_unique():
    fragments = [frag("Acme", 10, y=700), frag("Acme", 10, y=600), frag("Bob", 10, y=500)]
    regions = locate(fragments, spans_of(("ORG", "Acme"), ("Name", "Bob")))
    ids = [r.id for r in regions]
    assert len(ids) == 3
    assert len(set(ids)) == 3


def test_custom_line_key():
    fragments = [
        frag("12 Main St,", 10, y=700, width=66),
        frag("Springfield", 10, y=686, width=66),
    ]
    regions = locate(
        fragments,
        spans_of(("ADDRESS", "12 Main St, Springfield")),
        line_key=lambda f: (f.page,),
    )
    assert len(regions) == 1


@pytest.mark.parametrize("literal", ["John", "Smith", "John Smith"])
def test_partial_fragment_match_covers_whole_fragment(literal):
    regions = locate([frag("John Smith", 10, width=60)], spans_of(("Name", literal)))
    assert len(regions) == 1
    assert regions[0].width == 60


@pytest.mark.parametrize("y", [math.nan, math.inf, -math.inf])
def test_non_finite_baseline_reaches_compositor_as_degenerate(y):
    regions = locate([frag("John Smith", 10, y=y)], spans_of(("Name", "John Smith")))

    assert len(regions) == 1
    region = regions[0]
    assert is_degenerate((region.x, region.y, region.width, region.height))


def test_non_finite_line_key_is_per_page():
    assert default_line_key(frag("a", 0, y=math.nan, page=1)) == (1, "nan")
    assert default_line_key(frag("a", 0, y=math.inf, page=2)) == (2, "inf")
