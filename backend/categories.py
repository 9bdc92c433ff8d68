"""Character-class helpers and coarse category labels for extracted keywords."""

from __future__ import annotations

import re

KATAKANA_FULL = re.compile(r"[ァ-ヴー]+")
HIRAGANA_FULL = re.compile(r"[ぁ-ゖー]+")
LATIN_FULL = re.compile(r"[A-Za-z]+")
IDEOGRAPH_FULL = re.compile(r"[一-鿿々]+")

# Technical vocabulary the demo was built around.
TECH_TERMS = {
    "ai", "ml", "dx", "iot", "api", "sdk", "ui", "ux", "css", "html",
    "javascript", "python", "react",
}

# Japanese terms that are always worth a lookup when they show up.
IMPORTANT_TERMS = {
    "機械学習", "人工知能", "データサイエンス", "プログラミング",
    "ウェブ開発", "フロントエンド", "バックエンド", "データベース",
    "セキュリティ", "クラウド", "インフラ", "ネットワーク",
    "設計", "開発", "実装", "運用", "保守", "テスト",
    "アルゴリズム", "データ構造", "フレームワーク", "ライブラリ",
}

KNOWN_TERMS = TECH_TERMS | {term.lower() for term in IMPORTANT_TERMS}

CATEGORIES = ("technology", "acronym", "katakana", "kanji", "latin", "other")


def char_class(keyword: str) -> str:
    """Return the script class of a keyword: katakana, acronym, latin, kanji or other."""
    if not keyword:
        return "other"
    if KATAKANA_FULL.fullmatch(keyword):
        return "katakana"
    if LATIN_FULL.fullmatch(keyword):
        if len(keyword) >= 2 and keyword.isupper():
            return "acronym"
        return "latin"
    if IDEOGRAPH_FULL.fullmatch(keyword):
        return "kanji"
    return "other"


def is_known_term(keyword: str) -> bool:
    return (keyword or "").strip().lower() in KNOWN_TERMS


def categorize(keyword: str) -> str:
    if is_known_term(keyword):
        return "technology"
    return char_class((keyword or "").strip())


__all__ = [
    "CATEGORIES",
    "IMPORTANT_TERMS",
    "KNOWN_TERMS",
    "TECH_TERMS",
    "categorize",
    "char_class",
    "is_known_term",
]
