import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
import yaml

from researchkb.models import KnowledgeBaseConfig
from researchkb.store import KnowledgeStore


def sample_items(paper_id: str) -> List[Dict[str, Any]]:
    return [
        {
            "id": f"{paper_id}-claim1", "type": "claim",
            "content": "Efficient attention reduces computation from quadratic to n log n",
            "paper_id": paper_id, "section": "Method", "page": 2, "confidence": 0.92,
            "tags": ["attention", "efficiency"],
        },
        {
            "id": f"{paper_id}-method1", "type": "method",
            "content": "We define efficient attention as a linear approximation of softmax",
            "paper_id": paper_id, "section": "Method", "page": 3, "confidence": 0.95,
            "tags": ["attention", "linear-approximation"],
        },
        {
            "id": f"{paper_id}-def1", "type": "definition",
            "content": "Softmax attention computes weighted averages over all input positions",
            "paper_id": paper_id, "section": "Background", "page": 1, "confidence": 0.88,
            "tags": ["attention", "softmax"],
        },
        {
            "id": f"{paper_id}-result1", "type": "result",
            "content": "Our method achieves 89.2% accuracy on the GLUE benchmark",
            "paper_id": paper_id, "section": "Results", "page": 5, "confidence": 0.97,
            "tags": ["benchmark", "accuracy"],
        },
    ]


class KnowledgeFixture:
    """Writes input files into a temporary knowledge/ + papers/ layout."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.knowledge_dir = root / "knowledge"
        self.papers_dir = root / "papers"
        self.extracted_dir = self.knowledge_dir / "extracted"
        self.metadata_dir = self.papers_dir / "metadata"
        self.markdown_dir = self.papers_dir / "markdown"
        for d in (self.extracted_dir, self.metadata_dir, self.markdown_dir):
            d.mkdir(parents=True, exist_ok=True)
        self._clock = 1_700_000_000

    def config(self, max_results: int = 20) -> KnowledgeBaseConfig:
        return KnowledgeBaseConfig(
            knowledge_dir=str(self.knowledge_dir),
            papers_dir=str(self.papers_dir),
            max_results=max_results,
        )

    def extraction_path(self, paper_id: str) -> Path:
        return self.extracted_dir / f"{paper_id}-items.yaml"

    def write_extraction(self, paper_id: str, items: Optional[List[Dict[str, Any]]] = None) -> Path:
        """Writes the file and gives it a strictly newer modification time."""
        payload = {
            "paper_id": paper_id,
            "items": sample_items(paper_id) if items is None else items,
            "bibliography": [],
            "paper_tags": [],
        }
        path = self.extraction_path(paper_id)
        path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
        self._clock += 10
        os.utime(path, ns=(self._clock * 1_000_000_000, self._clock * 1_000_000_000))
        return path

    def write_raw_extraction(self, paper_id: str, text: str) -> Path:
        path = self.extraction_path(paper_id)
        path.write_text(text, encoding="utf-8")
        return path

    def write_paper_meta(self, paper_id: str, title: str = "Efficient Attention Mechanisms for Transformers",
                         authors: Optional[List[str]] = None, **extra: Any) -> Path:
        data = {"id": paper_id, "title": title,
                "authors": ["Smith, J.", "Doe, A."] if authors is None else authors}
        data.update(extra)
        path = self.metadata_dir / f"{paper_id}.yaml"
        path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
        return path

    def write_markdown(self, paper_id: str, content: str) -> Path:
        path = self.markdown_dir / f"{paper_id}.md"
        path.write_text(content, encoding="utf-8")
        return path


@pytest.fixture
def kb(tmp_path) -> KnowledgeFixture:
    return KnowledgeFixture(tmp_path)


@pytest.fixture
def store(kb):
    s = KnowledgeStore(kb.config())
    yield s
    s.close()


@pytest.fixture
def ingested(kb, store):
    """Store with one paper (4 items) and its metadata ingested."""
    kb.write_extraction("2301.07041")
    kb.write_paper_meta("2301.07041")
    store.ingest()
    return store
