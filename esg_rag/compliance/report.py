"""Report sectioning and the gap-analysis prompt sent for each requirement."""

import re
from typing import List


SECTION_MIN_CHARS = 100
FALLBACK_SLICE_CHARS = 2000
SECTION_DELIMITER = "\n\n---\n\n"

_SECTION_HEADINGS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"executive\s+summary",
        r"governance",
        r"strategy",
        r"risk\s+management",
        r"metrics\s+and\s+targets",
        r"environmental",
        r"social",
        r"climate",
        r"emissions",
        r"sustainability",
    )
]


def _is_heading(line: str) -> bool:
    stripped = line.strip()
    return any(pattern.search(stripped) for pattern in _SECTION_HEADINGS)


def extract_report_sections(content: str) -> List[str]:
    """
    Split a report into sections at ESG heading keywords.

    A heading line only starts a new section once the running section is
    longer than 100 characters. When fewer than two sections come out, the
    report is cut into fixed 2000-character slices instead.
    """
    sections: List[str] = []
    current = ""

    for line in content.split("\n"):
        if _is_heading(line) and len(current) > SECTION_MIN_CHARS:
            sections.append(current.strip())
            current = line
        else:
            current += "\n" + line

    if len(current.strip()) > SECTION_MIN_CHARS:
        sections.append(current.strip())

    if len(sections) < 2:
        sections = [
            content[i:i + FALLBACK_SLICE_CHARS]
            for i in range(0, len(content), FALLBACK_SLICE_CHARS)
        ]

    return sections


def build_compliance_prompt(standard: str, requirements: str, sections: List[str]) -> str:
    """Gap-analysis question comparing report sections against one requirement answer."""
    return (
        f"\nBased on the following {standard} requirement:\n{requirements}\n\n"
        "And the following report content, identify any compliance gaps, missing disclosures, or issues:\n\n"
        f"REPORT CONTENT:\n{SECTION_DELIMITER.join(sections)}\n\n"
        "Please identify specific compliance issues in the following format:\n"
        "- Issue description\n"
        "- Severity (critical/warning/info)  \n"
        "- Category\n"
        "- Specific recommendation\n\n"
        "Focus only on clear gaps or deficiencies relative to the stated requirements.\n"
    )
