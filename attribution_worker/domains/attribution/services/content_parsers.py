"""
Keyword parsers for content-to-project attribution
"""

import re
from typing import List

from ..models import ContentSignals

CASHTAG_PATTERN = re.compile(r"\$([A-Z][A-Z0-9]{0,9})\b")
HASHTAG_PATTERN = re.compile(r"#([A-Za-z][A-Za-z0-9_]{0,29})\b")


def _unique(values: List[str]) -> List[str]:
    seen = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


def parse_cashtags(text: str) -> List[str]:
    """`$SYMBOL` tokens: uppercase, up to 10 characters, deduplicated"""
    if not text:
        return []
    return _unique([f"${symbol}" for symbol in CASHTAG_PATTERN.findall(text)])


def parse_hashtags(text: str) -> List[str]:
    """`#tag` tokens, lowercased and deduplicated"""
    if not text:
        return []
    return _unique([f"#{tag.lower()}" for tag in HASHTAG_PATTERN.findall(text)])


def contains_project_name(text: str, project_name: str) -> bool:
    if not text or not project_name:
        return False
    pattern = r"\b" + re.escape(project_name.strip()) + r"\b"
    return re.search(pattern, text, re.IGNORECASE) is not None


def normalize_symbol(symbol: str) -> str:
    """`$WOLF` -> `wolf`, `#WolfToken` -> `wolftoken`"""
    return re.sub(r"^[$#]", "", symbol.strip()).lower()


def matches_token_symbol(tag: str, token_symbol: str) -> bool:
    """Exact or containing match, so `#WolfToken` matches `WOLF`"""
    if not tag or not token_symbol:
        return False
    normalized_tag = normalize_symbol(tag)
    normalized_symbol = normalize_symbol(token_symbol)
    if not normalized_symbol:
        return False
    return normalized_symbol in normalized_tag


def extract_signals(text: str) -> ContentSignals:
    return ContentSignals(cashtags=parse_cashtags(text), hashtags=parse_hashtags(text))
