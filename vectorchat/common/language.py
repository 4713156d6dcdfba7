"""
Language Detection

Per-question language detection using langdetect with a Unicode script fallback.
Questions the rule-based classifier cannot read (non-English) are routed to the
optional LLM classifier.
"""

import re
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from langdetect import DetectorFactory, LangDetectException, detect_langs

# Seed langdetect for deterministic results
DetectorFactory.seed = 0

# Any Hangul, Kana, CJK, Cyrillic, Arabic or Thai character
_NON_LATIN_RE = re.compile(
    r'[Ѐ-ӿ؀-ۿ฀-๿ᄀ-ᇿ぀-ゟ'
    r'゠-ヿ㄰-㆏㐀-䶿一-鿿가-힯]'
)

_SCRIPT_RANGES = [
    (0xAC00, 0xD7AF, "Hangul", "ko"),
    (0x1100, 0x11FF, "Hangul", "ko"),
    (0x3130, 0x318F, "Hangul", "ko"),
    (0x3040, 0x309F, "Kana", "ja"),
    (0x30A0, 0x30FF, "Kana", "ja"),
    (0x4E00, 0x9FFF, "CJK", "zh"),
    (0x3400, 0x4DBF, "CJK", "zh"),
    (0x0400, 0x04FF, "Cyrillic", "ru"),
    (0x0600, 0x06FF, "Arabic", "ar"),
    (0x0E00, 0x0E7F, "Thai", "th"),
]

_PUNCTUATION = set('.,!?;:"\'-()[]{}')


@dataclass(frozen=True)
class LanguageInfo:
    """Detected language of a question"""
    code: str           # ISO 639-1: "en", "ko", "ja"
    confidence: float   # 0.0~1.0
    script: str         # "Latin", "Hangul", "CJK", "Kana", "Cyrillic", "Mixed", ...

    @property
    def is_english(self) -> bool:
        return self.code == "en"

    @property
    def needs_llm_classification(self) -> bool:
        """The rule tiers only understand English phrasing"""
        return not self.is_english


def _detect_script(text: str) -> Tuple[str, Optional[str]]:
    """Dominant script of ``text`` as (script_name, language_code).

    Latin-dominant text returns ("Latin", None).
    """
    script_counts: Dict[str, int] = {}
    total = 0

    for ch in text:
        if ch.isspace() or ch in _PUNCTUATION:
            continue
        total += 1
        cp = ord(ch)
        script = "Latin"
        for start, end, name, _ in _SCRIPT_RANGES:
            if start <= cp <= end:
                script = name
                break
        script_counts[script] = script_counts.get(script, 0) + 1

    if total == 0:
        return "Latin", None

    non_latin = {k: v for k, v in script_counts.items() if k != "Latin"}
    if not non_latin:
        return "Latin", None

    # Japanese mixes kanji with kana
    if "Kana" in non_latin:
        return "Kana", "ja"

    if len(non_latin) > 1:
        top_two = sorted(non_latin.values(), reverse=True)[:2]
        if top_two[1] > total * 0.2:
            return "Mixed", None

    dominant = max(non_latin, key=non_latin.get)
    if non_latin[dominant] <= total * 0.15:
        return "Latin", None
    for _, _, name, lang in _SCRIPT_RANGES:
        if name == dominant:
            return dominant, lang
    return "Latin", None


def detect_language(text: str) -> LanguageInfo:
    """Detect the language of a question.

    Short texts (<10 chars) default to English unless they are written in a
    non-Latin script. Latin-script text is always treated as English, since
    langdetect misreads short English questions as fr/nl/af and the rule
    classifier handles them fine.
    """
    if not text or not text.strip():
        return LanguageInfo(code="en", confidence=1.0, script="Latin")

    cleaned = text.strip()
    script, script_lang = _detect_script(cleaned)

    if len(cleaned) < 10:
        if script_lang:
            return LanguageInfo(code=script_lang, confidence=0.6, script=script)
        return LanguageInfo(code="en", confidence=0.5, script="Latin")

    if not _NON_LATIN_RE.search(cleaned):
        return LanguageInfo(code="en", confidence=0.5, script="Latin")

    try:
        results = detect_langs(cleaned)
    except LangDetectException:
        results = []

    if results:
        top = results[0]
        return LanguageInfo(code=top.lang, confidence=round(top.prob, 4), script=script)

    if script_lang:
        return LanguageInfo(code=script_lang, confidence=0.7, script=script)
    return LanguageInfo(code="en", confidence=0.5, script="Latin")
