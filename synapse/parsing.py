"""Parsing of structured and semi-structured LLM output."""

import json
import re

_HEADING = re.compile(r"^\s*#{1,6}\s*(.+?)\s*$")
_LIST_ITEM = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+(?:\[[ xX]\]\s*)?(.+?)\s*$")

_SECTION_KEYWORDS = {
    "summary": ("summary", "conclusion", "요약", "결론"),
    "evidence": ("evidence", "근거", "출처"),
    "check_list": ("checklist", "check list", "action", "체크리스트", "실행"),
}


def parse_json_object(text: str) -> dict | None:
    """Return the first well-formed JSON object embedded in text, or None."""
    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            value, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
            continue
        if isinstance(value, dict):
            return value
        start = text.find("{", start + 1)
    return None


def _section_for(heading: str) -> str | None:
    lowered = heading.lower()
    for section, keywords in _SECTION_KEYWORDS.items():
        if any(k in lowered for k in keywords):
            return section
    return None


def parse_answer_sections(text: str) -> dict[str, list[str]]:
    """Collect list items under Summary / Evidence / Checklist style headings."""
    sections: dict[str, list[str]] = {key: [] for key in _SECTION_KEYWORDS}
    current: str | None = None
    for line in text.splitlines():
        heading = _HEADING.match(line)
        if heading:
            current = _section_for(heading.group(1))
            continue
        if current is None:
            continue
        item = _LIST_ITEM.match(line)
        if item:
            sections[current].append(item.group(1).strip())
    return sections


def leading_lines(text: str, count: int = 3) -> list[str]:
    """First non-empty prose lines, markdown markers stripped."""
    lines: list[str] = []
    for line in text.splitlines():
        stripped = line.strip().lstrip("#>-*• ").strip()
        if not stripped:
            continue
        lines.append(stripped)
        if len(lines) == count:
            break
    return lines
