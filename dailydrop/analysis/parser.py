"""
Parser for free-form analysis text returned by the generation service.

The prompt asks for three marked sections::

    SUMMARY: one line
    ANALYSIS:
    three paragraphs
    INSIGHTS:
    • bullet
    • bullet

Models do not always comply, so each marker is matched loosely. A marker sits at the start of a
line, may be wrapped in markdown (``## Analysis``, ``**SUMMARY:**``) and is case-insensitive.
The insights marker also accepts a ``KEY`` prefix (``KEY INSIGHTS:``, ``## Key Insights``,
``**KEY INSIGHTS**``). When no summary marker starts a line, an inline ``SUMMARY:`` is accepted
(``Here is your analysis. SUMMARY: ...``); the other two markers must start a line. Anything that
cannot be extracted is replaced by a fixed fallback, so ``parse_analysis_response``
never fails and never returns an empty field.
"""

import logging
import re
from typing import List, Optional

from dailydrop.analysis.schemas import ParsedAnalysis

logger = logging.getLogger(__name__)

SUMMARY_MAX_LENGTH = 100
MAX_BULLET_POINTS = 5

FALLBACK_SUMMARY = "Personal growth insights identified"
FALLBACK_CONTENT = "Analysis content unavailable"
FALLBACK_BULLET_POINTS = ["Key insights will be identified in future analyses"]


def _marker(word: str) -> re.Pattern:
    # Line start, optional heading hashes and bold, the word, then a colon or end of line.
    return re.compile(
        rf"^[ \t]*(?:#{{1,6}}[ \t]*)?(?:\*\*|__)?[ \t]*{word}[ \t]*(?:\*\*|__)?[ \t]*(?::[ \t]*(?:\*\*|__)?|$)",
        re.IGNORECASE | re.MULTILINE,
    )


SUMMARY_MARKER = _marker("SUMMARY")
ANALYSIS_MARKER = _marker("ANALYSIS")
INSIGHTS_MARKER = _marker(r"(?:KEY[ \t]+)?INSIGHTS")
INLINE_SUMMARY_MARKER = re.compile(r"\bSUMMARY[ \t]*:", re.IGNORECASE)

_BULLET_LINE = re.compile(r"^[ \t]*(?:•|▪|◦|‣|[-*](?=\s))[ \t]*(.+?)[ \t]*$")
_EXCESS_BLANK_LINES = re.compile(r"\n{3,}")
_DECORATION = " \t*_\"'"


def extract_summary(raw: str) -> Optional[str]:
    """First non-empty line after the summary marker, truncated."""
    match = SUMMARY_MARKER.search(raw) or INLINE_SUMMARY_MARKER.search(raw)
    if not match:
        return None
    for line in raw[match.end():].splitlines():
        if ANALYSIS_MARKER.match(line) or INSIGHTS_MARKER.match(line):
            return None
        line = line.strip().strip(_DECORATION).strip()
        if line:
            return line[:SUMMARY_MAX_LENGTH].rstrip()
    return None


def extract_content(raw: str) -> Optional[str]:
    """Text between the analysis marker and the insights marker, with any leaked marker removed."""
    match = ANALYSIS_MARKER.search(raw)
    if not match:
        return None
    body = raw[match.end():]

    insights = INSIGHTS_MARKER.search(body)
    if insights:
        body = body[: insights.start()]

    body = _EXCESS_BLANK_LINES.sub("\n\n", body).strip()
    return body or None


def extract_bullet_points(raw: str) -> List[str]:
    """Bullet lines following the insights marker, glyph removed, at most five."""
    match = INSIGHTS_MARKER.search(raw)
    if not match:
        return []

    bullets: List[str] = []
    for line in raw[match.end():].splitlines():
        bullet = _BULLET_LINE.match(line)
        if bullet:
            text = bullet.group(1).strip()
            if text:
                bullets.append(text)
        if len(bullets) == MAX_BULLET_POINTS:
            break
    return bullets


def parse_analysis_response(raw: Optional[str]) -> ParsedAnalysis:
    """
    Splits generated text into summary, body and insights.

    Args:
        raw (str): Text returned by the generation service. May be empty or unformatted.

    Returns:
        ParsedAnalysis: Always fully populated; missing sections get fallback values.
    """
    raw = (raw or "").replace("\r\n", "\n")

    summary = extract_summary(raw)
    content = extract_content(raw)
    bullet_points = extract_bullet_points(raw)

    if summary is None:
        logger.warning("Generated analysis has no usable summary section; using fallback")
    if content is None:
        logger.warning("Generated analysis has no usable analysis section; using fallback")
    if not bullet_points:
        logger.warning("Generated analysis has no usable insights section; using fallback")

    return ParsedAnalysis(
        summary=summary or FALLBACK_SUMMARY,
        content=content or FALLBACK_CONTENT,
        bullet_points=bullet_points or list(FALLBACK_BULLET_POINTS),
    )
