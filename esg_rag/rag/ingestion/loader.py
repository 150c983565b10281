"""
Corpus Loader

Loads plain-text regulatory documents from a corpus directory laid out as

    <root>/<region>/<file>
    <root>/<region>/<organization>/<file>

Region and organization come from the directory names. Only .txt and .md
files are read; binary formats need an upstream text extractor.
"""

import hashlib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional


logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = (".txt", ".md")


def generate_document_id(source: str, text: str) -> str:
    """
    Deterministic document id: SHA256 of source + content, 16 hex chars.

    Re-ingesting the same file yields the same id, so its records are
    not stored twice.
    """
    digest = hashlib.sha256(f"{source}|{text}".encode("utf-8")).hexdigest()[:16]
    return f"doc_{digest}"


@dataclass
class LoadedDocument:
    text: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def filename(self) -> str:
        return self.metadata.get("filename", "Unknown")


def load_text_file(path: Path, region: str = "Unknown", organization: Optional[str] = None) -> LoadedDocument:
    text = path.read_text(encoding="utf-8", errors="replace")
    metadata: Dict[str, Any] = {
        "filename": path.name,
        "filepath": str(path),
        "region": region,
        "documentType": path.suffix.lstrip(".").lower() or "text",
    }
    if organization:
        metadata["organization"] = organization
    return LoadedDocument(text=text, metadata=metadata)


def load_text_corpus(root: str) -> List[LoadedDocument]:
    """
    Load every supported document under ``root``.

    Raises:
        FileNotFoundError: If the corpus directory doesn't exist
    """
    root_path = Path(root)
    if not root_path.is_dir():
        raise FileNotFoundError(f"Corpus directory not found: {root}")

    documents: List[LoadedDocument] = []
    for region_dir in sorted(p for p in root_path.iterdir() if p.is_dir() and not p.name.startswith(".")):
        region = region_dir.name
        for item in sorted(region_dir.iterdir()):
            if item.name.startswith("."):
                continue
            if item.is_dir():
                for path in sorted(item.iterdir()):
                    if path.is_file() and path.suffix.lower() in SUPPORTED_SUFFIXES:
                        documents.append(load_text_file(path, region=region, organization=item.name))
            elif item.suffix.lower() in SUPPORTED_SUFFIXES:
                documents.append(load_text_file(item, region=region))

    logger.info(f"Loaded {len(documents)} documents from {root}")
    return documents
