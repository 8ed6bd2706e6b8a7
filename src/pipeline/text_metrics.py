# src/pipeline/text_metrics.py - v1
"""Heuristic text metrics reported by the drafting stages.

These are cheap regex scores attached to StageRun artifacts for progress
display. They do not parse citations; a match only means the text looks
like a case name, statute or constitutional reference.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from wavebrief.core.models import BriefSection

_CASE_RE = re.compile(r"\w+\s+v\.\s+\w+")
_STATUTE_RE = re.compile(r"\d+\s+U\.S\.C\.\s+§\s*\d+")
_CONSTITUTION_RE = re.compile(r"U\.S\.\s+Const\.")
_ANY_CITATION_RE = re.compile(r"\w+\s+v\.\s+\w+|U\.S\.\s+Const\.|U\.S\.C\.\s+§|\d+\s+U\.S\.")
_BLUEBOOK_CASE_RE = re.compile(r"\w+\s+v\.\s+\w+,\s+\d+\s+U\.S\.\s+\d+")

_TOA_PATTERNS: dict[str, re.Pattern[str]] = {
    "Constitutional Provisions": re.compile(r"U\.S\.\s+Const\.[^.;\n]*"),
    "Supreme Court Cases": re.compile(r"\w+\s+v\.\s+\w+,\s+\d+\s+U\.S\.(?:\s+\d+)?"),
    "Statutes": re.compile(r"\d+\s+U\.S\.C\.\s+§\s*\d+"),
}

_COUNTERARGUMENT_RES = (
    re.compile(r"to be sure[^.]*\.", re.IGNORECASE),
    re.compile(r"while opponents may argue[^.]*\.", re.IGNORECASE),
    re.compile(r"although critics claim[^.]*\.", re.IGNORECASE),
    re.compile(r"some might contend[^.]*\.", re.IGNORECASE),
)
_REBUTTAL_RES = (
    re.compile(r"however[^.]*\.", re.IGNORECASE),
    re.compile(r"but this argument fails[^.]*\.", re.IGNORECASE),
    re.compile(r"this contention is wrong[^.]*\.", re.IGNORECASE),
    re.compile(r"this reasoning is flawed[^.]*\.", re.IGNORECASE),
)

_FORMAL_MARKERS = ("respectfully", "this court", "constitutional", "precedent", "holding")
_INFORMAL_MARKERS = ("you", "we think", "obviously", "clearly")
_TRANSITIONS = ("moreover", "furthermore", "additionally", "in addition", "similarly", "consequently")
_ARGUMENT_MARKERS = ("therefore", "consequently", "thus", "accordingly", "because", "since")
_CONSTITUTIONAL_TERMS = (
    "constitutional", "amendment", "clause", "precedent",
    "judicial review", "due process", "equal protection",
)

_ROMAN_HEADING_RE = re.compile(r"^[IVXLC]+\.\s+\S")
_MARKDOWN_HEADING_RE = re.compile(r"^#{1,6}\s+(.+)$")


def word_count(text: str) -> int:
    return len(text.split())


def _clamp(value: float, low: float = 1, high: float = 10) -> float:
    return max(low, min(high, value))


# ------------------------------------------------------------------
# Sections
# ------------------------------------------------------------------


def is_standardized_heading(title: str) -> bool:
    """True for ALL-CAPS headings and roman-numeral headings ("II. ARGUMENT")."""
    title = title.strip()
    if not title:
        return False
    if _ROMAN_HEADING_RE.match(title):
        return True
    letters = [c for c in title if c.isalpha()]
    return len(letters) >= 3 and all(c.isupper() for c in letters)


def _heading_title(line: str) -> str | None:
    stripped = line.strip()
    if not stripped or len(stripped) > 120:
        return None
    md = _MARKDOWN_HEADING_RE.match(stripped)
    if md:
        return md.group(1).strip()
    if is_standardized_heading(stripped):
        return stripped
    return None


def parse_sections(content: str) -> tuple[BriefSection, ...]:
    """Split a brief into headed sections.

    Text before the first heading becomes its own section, titled by its
    first line. Content with no headings is one section.
    """
    sections: list[tuple[str, list[str]]] = []
    for line in content.splitlines():
        title = _heading_title(line)
        if title is not None:
            sections.append((title, [line]))
        elif sections:
            sections[-1][1].append(line)
        elif line.strip():
            sections.append((line.strip()[:80], [line]))

    result = []
    for i, (title, lines) in enumerate(sections, start=1):
        body = "\n".join(lines).strip()
        if body:
            result.append(BriefSection(id=f"section-{i}", title=title, content=body))
    return tuple(result)


# ------------------------------------------------------------------
# Citations
# ------------------------------------------------------------------


def count_citations(content: str) -> int:
    return len(_ANY_CITATION_RE.findall(content))


def citations_by_type(content: str) -> dict[str, int]:
    cases = len(_CASE_RE.findall(content))
    statutes = len(_STATUTE_RE.findall(content))
    constitutional = len(_CONSTITUTION_RE.findall(content))
    return {
        "total": cases + statutes + constitutional,
        "cases": cases,
        "statutes": statutes,
        "constitutional": constitutional,
    }


def new_citations(new_content: str, old_content: str) -> list[str]:
    """Citations present in new_content that did not appear in old_content."""
    old = set(_ANY_CITATION_RE.findall(old_content))
    return [c for c in _ANY_CITATION_RE.findall(new_content) if c not in old]


def table_of_authorities(content: str) -> dict[str, list[str]]:
    """Group citation-like spans by authority type, deduplicated in order."""
    table: dict[str, list[str]] = {}
    for heading, pattern in _TOA_PATTERNS.items():
        seen: dict[str, None] = {}
        for match in pattern.findall(content):
            seen.setdefault(match.strip(), None)
        table[heading] = list(seen)
    return table


def bluebook_compliance(content: str) -> int:
    """Share of case citations carrying a U.S. Reports cite, scaled to 0-10."""
    total = len(_CASE_RE.findall(content))
    if total == 0:
        return 5
    return round(len(_BLUEBOOK_CASE_RE.findall(content)) / total * 10)


# ------------------------------------------------------------------
# Mentions and argument structure
# ------------------------------------------------------------------


def find_mentions(content: str, names: Iterable[str]) -> list[str]:
    """Return the names that occur in content (case-insensitive)."""
    lowered = content.lower()
    return [name for name in names if name and name.lower() in lowered]


def counterarguments(content: str) -> list[str]:
    return [m for pattern in _COUNTERARGUMENT_RES for m in pattern.findall(content)]


def rebuttals(content: str) -> list[str]:
    return [m for pattern in _REBUTTAL_RES for m in pattern.findall(content)]


def formal_tone_score(content: str) -> int:
    lowered = content.lower()
    score = 5
    score += sum(1 for marker in _FORMAL_MARKERS if marker in lowered)
    score -= sum(1 for marker in _INFORMAL_MARKERS if re.search(rf"\b{marker}\b", lowered))
    return int(_clamp(score))


def transition_score(content: str) -> int:
    lowered = content.lower()
    count = sum(lowered.count(t) for t in _TRANSITIONS)
    return int(_clamp(count))


def argument_strength(content: str) -> int:
    lowered = content.lower()
    score = 5.0
    for marker in _ARGUMENT_MARKERS:
        score += min(len(re.findall(rf"\b{marker}\b", lowered)) * 0.1, 1)
    return round(_clamp(score))


def constitutional_depth(content: str) -> int:
    lowered = content.lower()
    score = sum(lowered.count(term) * 0.1 for term in _CONSTITUTIONAL_TERMS)
    return round(_clamp(score))


def citation_density(content: str) -> float:
    """Citations per thousand words."""
    words = word_count(content)
    if words == 0:
        return 0.0
    return count_citations(content) / words * 1000
