"""
Ordered rule tables.

Each table is a sequence of (predicate, result) rules evaluated top to
bottom; the first matching rule wins and a default covers the rest.
"""

from dataclasses import dataclass
from typing import Callable, Sequence, Tuple


@dataclass(frozen=True)
class Rule:
    name: str
    predicate: Callable[[str], bool]
    result: str


def keyword_rule(result: str, keywords: Sequence[str]) -> Rule:
    """Rule matching any keyword as a case-insensitive substring."""
    lowered = tuple(k.lower() for k in keywords)
    return Rule(
        name=result,
        predicate=lambda text: any(keyword in text.lower() for keyword in lowered),
        result=result,
    )


def exact_rule(key: str, result: str) -> Rule:
    """Rule matching one value exactly (case-insensitive)."""
    expected = key.upper()
    return Rule(name=key, predicate=lambda text: text.strip().upper() == expected, result=result)


def evaluate(rules: Sequence[Rule], text: str, default: str) -> str:
    for rule in rules:
        if rule.predicate(text):
            return rule.result
    return default


DEFAULT_CATEGORY = "Compliance"

CATEGORY_RULES: Tuple[Rule, ...] = (
    keyword_rule("Governance", ["governance", "board", "oversight", "management", "leadership"]),
    keyword_rule("Strategy", ["strategy", "strategic", "planning", "scenario", "transition"]),
    keyword_rule("Risk Management", ["risk", "risks", "management", "assessment", "mitigation"]),
    keyword_rule("Metrics and Targets", ["metrics", "targets", "kpi", "indicators", "measurement"]),
    keyword_rule("Environmental", ["environmental", "climate", "emissions", "carbon", "energy"]),
    keyword_rule("Social", ["social", "workforce", "human rights", "diversity", "community"]),
    keyword_rule("Disclosure", ["disclosure", "reporting", "transparency", "information"]),
)

ORGANIZATION_RULES: Tuple[Rule, ...] = (
    exact_rule("TCFD", "TCFD"),
    exact_rule("ESRS", "EFRAG"),
    exact_rule("GRI", "GRI"),
    exact_rule("SASB", "SASB"),
    exact_rule("SEC", "SEC"),
)


def categorize_issue(description: str) -> str:
    """Category for an issue description; "Compliance" when no keyword group matches."""
    return evaluate(CATEGORY_RULES, description, DEFAULT_CATEGORY)


def standard_organization(standard: str) -> str:
    """Issuing organization for a standard; the standard itself when unknown."""
    return evaluate(ORGANIZATION_RULES, standard, standard)
