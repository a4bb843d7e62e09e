"""
Channel-specific title envelopes.

Each YouTube channel wraps its uploads in a recognisable promotional
envelope ("| FULL MOVIE | Action", "(Ganzer Film bei Moviedome)", ...).
Rules are keyed by channel handle. A rule is a list of patterns applied in
order: replacement patterns rewrite the title, extractor patterns pull the
real title out of a capture group and stop the rule on first success.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class TitlePattern:
    regex: re.Pattern
    description: str
    replacement: str = ""
    # capture group holding the title; None for replacement patterns
    extract_group: Optional[int] = None
    # re.sub count: 1 replaces the first occurrence, 0 replaces all
    count: int = 1

    def apply(self, title: str) -> Tuple[str, bool]:
        """Return ``(new_title, extracted)``."""
        if self.extract_group is not None:
            m = self.regex.search(title)
            if m:
                value = (m.group(self.extract_group) or "").strip()
                if value:
                    return value, True
            return title, False
        return self.regex.sub(self.replacement, title, count=self.count), False


@dataclass(frozen=True)
class ChannelRule:
    channel_id: str
    channel_name: str
    patterns: List[TitlePattern]
    # (dirty, clean) pairs documenting the envelope
    examples: List[Tuple[str, str]] = field(default_factory=list)


CHANNEL_RULES: List[ChannelRule] = [
    ChannelRule(
        channel_id="@Netzkino",
        channel_name="Netzkino",
        patterns=[
            TitlePattern(re.compile(r"^Watch\s+", re.I), 'Remove "Watch" prefix'),
            TitlePattern(
                re.compile(
                    r"\s*\([^)]*(?:full.*?movie|movie.*?full|comedy|drama|thriller|horror|film|classic"
                    r"|ganzer film|romantic|family|animal)[^)]*\)\s*$",
                    re.I,
                ),
                "Remove promotional text in parentheses at end",
            ),
        ],
        examples=[
            (
                "Golden Winter 2 (Christmas comedy full movie in German, family movies, animal comedies)",
                "Golden Winter 2",
            ),
            (
                "Dead Awake (FULL HORROR MOVIE in German, new horror movies 2025, full-length mystery thriller)",
                "Dead Awake",
            ),
            (
                "The Driftless Area - Nothing is as it seems (THRILLING THRILLER with ZOOEY DESHANEL, Mystery)",
                "The Driftless Area - Nothing is as it seems",
            ),
            ("Watch Golden Winter 2", "Golden Winter 2"),
        ],
    ),
    ChannelRule(
        channel_id="@FilmRiseMovies",
        channel_name="FilmRise Movies",
        patterns=[
            TitlePattern(
                re.compile(r"\s*\|\s*(?:Free Full|Part \d+ of \d+).*$", re.I),
                "Remove branding and part indicators after pipe",
            ),
        ],
        examples=[
            ("A Christmas Karen | Free Full Holiday Movie | FilmRise Movies", "A Christmas Karen"),
            ("Steve Martini's The Judge | Part 1 of 2", "Steve Martini's The Judge"),
        ],
    ),
    ChannelRule(
        channel_id="@Popcornflix",
        channel_name="Popcornflix",
        patterns=[
            TitlePattern(
                re.compile(r"\s*(?:\(\d{4}\))?\s*\|\s*(?:Part \d+ of \d+\s*\|)?\s*FULL MOVIE.*$", re.I),
                "Remove year, part indicators, FULL MOVIE, and genre info",
            ),
        ],
        examples=[
            ("Jason & the Argonauts | Part 1 of 2 | FULL MOVIE | Epic Adventure, Myth", "Jason & the Argonauts"),
            ("Banger (2018) | FULL MOVIE | Action, Crime | Omar Gooding", "Banger"),
        ],
    ),
    ChannelRule(
        channel_id="@MovieCentral",
        channel_name="Movie Central",
        patterns=[
            TitlePattern(
                re.compile(r"^[^|]+\|\s*([^|]+?)(?:\s*\|\s*(?:HD|20\d{2}).*)?$"),
                "Extract alternate title (second part between pipes)",
                extract_group=1,
            ),
            TitlePattern(re.compile(r"\s*\|\s*(?:HD|20\d{2}).*$", re.I), "Fallback: remove HD/year patterns"),
        ],
        examples=[
            ("Surviving The Club Underworld | Young Lion of the West", "Young Lion of the West"),
            ("When Exes Crash The Holidays | Christmas With Da Fam | HD 2025 Christmas Movie", "Christmas With Da Fam"),
        ],
    ),
    ChannelRule(
        channel_id="@TimelessClassicMovies",
        channel_name="Timeless Classic Movies",
        patterns=[
            TitlePattern(re.compile(r"\s*\[[^\]]+\]\s*"), "Remove all [Genre] tags", count=0),
        ],
        examples=[
            ("Johnny O'Clock [Film Noir] [Drama] [Crime]", "Johnny O'Clock"),
            ("Vampire over London [Comedy] [Horror]", "Vampire over London"),
        ],
    ),
    ChannelRule(
        channel_id="@Mosfilm",
        channel_name="Mosfilm",
        patterns=[
            TitlePattern(re.compile(r"\s*\|\s*[A-Za-z]+(?:\s*\|.*)?$"), "Remove genre and subtitle info after pipe"),
        ],
        examples=[
            ('Operacion "Y" | COMEDIA | Subtítulos en español', 'Operacion "Y"'),
            ("COUNTERMOVE | Action", "COUNTERMOVE"),
        ],
    ),
    ChannelRule(
        channel_id="@Moviedome",
        channel_name="Moviedome",
        patterns=[
            TitlePattern(
                re.compile(r".*:\s*([^(]+?)(?:\s*\(Ganzer Film.*)?$"),
                "Extract title after colon, before (Ganzer Film)",
                extract_group=1,
            ),
            TitlePattern(re.compile(r"\s*\(Ganzer Film[^)]*\)\s*$", re.I), "Fallback: remove (Ganzer Film...) suffix"),
        ],
        examples=[
            ("So ein toller Liebesfilm mit Starbesetzung: Testament of Youth (Ganzer Film)", "Testament of Youth"),
            (
                "Dieser Entführungsfilm mit RAY LIOTTA ist extrem spannend: THE ENTITLED (Ganzer Film bei Moviedome)",
                "THE ENTITLED",
            ),
        ],
    ),
]

RULES_BY_CHANNEL: Dict[str, ChannelRule] = {rule.channel_id: rule for rule in CHANNEL_RULES}


def rule_for(channel_id: Optional[str]) -> Optional[ChannelRule]:
    if not channel_id:
        return None
    return RULES_BY_CHANNEL.get(channel_id)


def clean_for_channel(title: str, channel_id: Optional[str]) -> str:
    """Strip a channel's envelope; unknown channels only get trimmed."""
    rule = rule_for(channel_id)
    if rule is None:
        return title.strip()

    cleaned = title
    for pattern in rule.patterns:
        cleaned, extracted = pattern.apply(cleaned)
        if extracted:
            break

    return cleaned.strip() or title.strip()
