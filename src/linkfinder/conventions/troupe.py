"""Troupe inference from free-text titles.

Troupes are a display-only label: they group results for the operator and
never influence which candidates are generated or probed.
"""
from enum import Enum
from typing import Dict, List, Optional, Tuple


class Troupe(Enum):
    """Closed set of troupes (組) that products are published under."""

    HANA = ('花', '花組', '#f472b6')
    TSUKI = ('月', '月組', '#facc15')
    YUKI = ('雪', '雪組', '#34d399')
    HOSHI = ('星', '星組', '#60a5fa')
    SORA = ('宙', '宙組', '#a78bfa')
    SENKA = ('専', '専科', '#9ca3af')

    def __init__(self, token: str, label: str, color: str):
        self.token = token
        self.label = label
        self.color = color

    def to_dict(self) -> dict:
        return {'id': self.name.lower(), 'token': self.token, 'label': self.label, 'color': self.color}


# Keyword -> troupe. Matched case-insensitively as substrings.
# Bare kanji ("花", "月", ...) are too common in titles to be used alone.
TROUPE_KEYWORDS: Dict[str, Troupe] = {
    '花組': Troupe.HANA, 'hana-gumi': Troupe.HANA, 'hanagumi': Troupe.HANA, 'flower troupe': Troupe.HANA,
    '月組': Troupe.TSUKI, 'tsuki-gumi': Troupe.TSUKI, 'tsukigumi': Troupe.TSUKI, 'moon troupe': Troupe.TSUKI,
    '雪組': Troupe.YUKI, 'yuki-gumi': Troupe.YUKI, 'yukigumi': Troupe.YUKI, 'snow troupe': Troupe.YUKI,
    '星組': Troupe.HOSHI, 'hoshi-gumi': Troupe.HOSHI, 'hoshigumi': Troupe.HOSHI, 'star troupe': Troupe.HOSHI,
    '宙組': Troupe.SORA, 'sora-gumi': Troupe.SORA, 'soragumi': Troupe.SORA, 'cosmos troupe': Troupe.SORA,
    '専科': Troupe.SENKA, 'senka': Troupe.SENKA, 'superior members': Troupe.SENKA,
}


def _keyword_hits(text: str) -> List[Tuple[int, Troupe]]:
    text_lower = text.lower()
    hits = []
    for keyword, troupe in TROUPE_KEYWORDS.items():
        pos = text_lower.find(keyword)
        if pos >= 0:
            hits.append((pos, troupe))
    return hits


def infer_troupe(text: Optional[str]) -> Optional[Troupe]:
    """
    Infer the troupe mentioned in a title.

    When several troupes appear ("花組・月組 合同"), the one mentioned first
    wins. Returns None when no keyword matches.
    """
    if not text:
        return None

    hits = _keyword_hits(text)
    if not hits:
        return None

    hits.sort(key=lambda h: h[0])
    return hits[0][1]


def troupe_from_token(token: Optional[str]) -> Optional[Troupe]:
    """Look up a troupe by its single-character token or enum name."""
    if not token:
        return None
    for troupe in Troupe:
        if token == troupe.token or token.upper() == troupe.name or token == troupe.label:
            return troupe
    return None
