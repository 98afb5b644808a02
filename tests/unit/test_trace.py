import pytest

from researchkb.errors import ItemNotFound, SourceMissing
from researchkb.trace import extract_section

PAPER_MD = """# Efficient Attention Mechanisms for Transformers

## Abstract

We propose an efficient attention mechanism.

<!-- page 2 -->

## Method

Efficient attention reduces computation from quadratic to n log n.

### Kernel Approximation

We approximate softmax with random features.

<!-- page 3 -->

More method details.

## Results

Our method achieves 89.2% accuracy on the GLUE benchmark.
"""


def test_extract_section_stops_at_same_level():
    body = extract_section(PAPER_MD, "Abstract")
    assert body == "We propose an efficient attention mechanism."


def test_extract_section_keeps_subsections_and_drops_page_markers():
    body = extract_section(PAPER_MD, "Method")
    assert body.startswith("Efficient attention reduces computation")
    assert "### Kernel Approximation" in body
    assert "More method details." in body
    assert "<!-- page" not in body
    assert "89.2%" not in body


def test_extract_subsection_stops_at_parent_level():
    body = extract_section(PAPER_MD, "Kernel Approximation")
    assert body.startswith("We approximate softmax")
    assert body.endswith("More method details.")


def test_extract_last_section_runs_to_end():
    assert extract_section(PAPER_MD, "Results") == "Our method achieves 89.2% accuracy on the GLUE benchmark."


def test_extract_missing_section():
    assert extract_section(PAPER_MD, "Conclusion") == ""
    assert extract_section(PAPER_MD, "") == ""


def test_heading_match_is_exact():
    assert extract_section(PAPER_MD, "Meth") == ""


def test_trace_item(kb, ingested):
    kb.write_markdown("2301.07041", PAPER_MD)

    text = ingested.trace("2301.07041-result1")

    assert text == "Our method achieves 89.2% accuracy on the GLUE benchmark."


def test_trace_item_in_subsectioned_section(kb, ingested):
    kb.write_markdown("2301.07041", PAPER_MD)
    text = ingested.trace("2301.07041-claim1")
    assert "Kernel Approximation" in text


def test_trace_unknown_item(ingested):
    with pytest.raises(ItemNotFound) as exc:
        ingested.trace("nonexistent")
    assert exc.value.item_id == "nonexistent"
    assert "nonexistent" in str(exc.value)


def test_trace_missing_markdown(kb, ingested):
    with pytest.raises(SourceMissing) as exc:
        ingested.trace("2301.07041-result1")
    assert exc.value.path == kb.markdown_dir / "2301.07041.md"


def test_trace_section_absent_from_markdown(kb, ingested):
    kb.write_markdown("2301.07041", "# Title\n\n## Introduction\n\nSomething else.\n")
    assert ingested.trace("2301.07041-def1") == ""
