"""
Query Processor

Extracts entities and field filters from a question and classifies its intent
with ordered, first-match-wins rule tiers. Non-English questions can be
delegated to an LLM for classification + translation.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..common.events import LLM_FALLBACK, EventSink, LoggingEventSink, emit
from ..common.language import LanguageInfo, detect_language
from ..common.llm_utils import parse_llm_json, pick_str
from ..common.schemas.intent import (
    DELEGATED_CONFIDENCE,
    INTENT_TYPES,
    SEARCH_FALLBACK_CONFIDENCE,
    AggregateIntent,
    CountIntent,
    FilterIntent,
    QueryIntent,
    SearchIntent,
    UnknownIntent,
)

logger = logging.getLogger("vectorchat.retriever.query_processor")

_EXTENSIONS = r"jpe?g|png|gif|webp|bmp|tiff?|svg|heic|pdf|txt|md|csv|json|docx?"

_QUOTED_RE = re.compile(r'"([^"]+)"|“([^”]+)”')
_FIELD_NAME_RE = re.compile(
    r"(?i:\b(?:by|artist|author|creator|named|called)\b)\s+"
    r"([A-Z][\w.-]*(?:\s+[A-Z][\w.-]*)*)"
)
_FILE_NAME_RE = re.compile(
    r"\bfile(?:[ _]?name)?(?:\s+(?:named|called))?\s+[\"']?([\w-]+(?:\.[\w-]+)*\.[A-Za-z0-9]{2,5})\b",
    re.IGNORECASE,
)
_EXTENSION_RES = [
    re.compile(rf"(?:^|[\s(])\.({_EXTENSIONS})\b", re.IGNORECASE),
    re.compile(rf"\b({_EXTENSIONS})\s+(?:images?|files?|pictures?|photos?|documents?)\b", re.IGNORECASE),
    re.compile(rf"\b({_EXTENSIONS})\s+extension\b", re.IGNORECASE),
]
_COUNT_TARGET_RE = re.compile(
    r"\b(?:how many|number of|count)\s+(?:of\s+)?(?:the\s+|all\s+)?([a-z][\w-]*)", re.IGNORECASE
)
_COLLECTION_RES = [
    re.compile(r"\b(?:in|from)\s+([A-Za-z][\w-]*)", re.IGNORECASE),
    re.compile(r"\b([A-Za-z][\w-]*)\s+collection\b", re.IGNORECASE),
    re.compile(r"\bcollection\s+([A-Za-z][\w-]*)", re.IGNORECASE),
]
_POSSESSIVE_RE = re.compile(r"['’]s$")
_WORD_CHAR_RE = re.compile(r"\w")


@dataclass
class ParsedQuery:
    """Result of parsing one question"""
    original: str
    text: str                   # English text used for search
    intent: QueryIntent
    language: Optional[LanguageInfo] = None
    delegated: bool = False     # classified by the LLM instead of the rule tiers
    filters: Dict[str, Any] = field(default_factory=dict)


class QueryProcessor:
    """
    Turns questions into tagged intents.

    Tiers (first match wins):
    1. count      - quantity interrogative
    2. filter     - extracted entity plus a target noun
    3. aggregate  - statistics / summary verbs
    4. search     - retrieval verbs, then any other non-empty question
    5. unknown    - no word characters at all
    """

    COUNT_PATTERNS = [r"\bhow many\b", r"\bcount\b", r"\bnumber of\b"]

    INTENT_PATTERNS = {
        "aggregate": [
            r"\baverage\b", r"\bmean\b", r"\bsum\b", r"\btotal\b",
            r"\bstatistics\b", r"\bstats\b", r"\bsummar(?:y|ize|ise)\b",
            r"\bdescribe\b", r"\btop\b", r"\bmost\b", r"\bleast\b",
        ],
        "search": [
            r"\bfind\b", r"\bshow\b", r"\blist\b", r"\bsearch\b", r"\bget\b",
            r"\bdisplay\b", r"\bfetch\b", r"\blook for\b", r"\bgive me\b",
        ],
    }

    # Nouns naming the things a filter question asks for
    TARGET_NOUNS = {
        "work", "works", "artwork", "artworks", "art", "pieces", "creations",
        "image", "images", "picture", "pictures", "photo", "photos",
        "painting", "paintings", "item", "items", "document", "documents",
        "record", "records", "file", "files",
    }

    # Words that follow "in"/"from" or precede "collection" without naming one
    COLLECTION_STOP_WORDS = {
        "the", "this", "that", "my", "your", "our", "their", "all", "some",
        "any", "each", "every", "a", "an", "it", "them", "there", "here",
        "same", "which", "what", "other", "one", "collection", "collections",
        "database", "general", "total", "detail", "order", "particular", "case",
    }

    STOP_WORDS = {
        "the", "a", "an", "is", "are", "was", "were", "be", "been", "being",
        "have", "has", "had", "do", "does", "did", "will", "would", "could",
        "should", "may", "might", "must", "can", "to", "of", "in", "for", "on",
        "with", "at", "by", "from", "there", "we", "our", "us", "i", "me", "my",
        "you", "your", "it", "its", "they", "them", "their", "this", "that",
        "these", "those", "what", "which", "who", "when", "where", "why", "how",
    }

    TOPIC_PATTERNS = [
        ("images", r"\b(?:image|picture|photo)"),
        ("artists", r"\b(?:artist|painter)"),
        ("collections", r"\bcollection"),
    ]

    QUERY_PARSE_PROMPT = """Classify this question about the contents of a vector database.
The question may be in any language. Translate all outputs to English.

Respond with a valid JSON object:
{{
    "type": one of ["count", "filter", "aggregate", "search", "unknown"],
    "english_query": "the question translated to English",
    "entity": "person or named thing the question is about" or null,
    "target": "what is counted or listed, e.g. images, artists" or null,
    "collection": "collection name mentioned in the question" or null
}}

Question: {question}

JSON:"""

    def __init__(
        self,
        llm_client=None,
        known_collections: Optional[Iterable[str]] = None,
        events: Optional[EventSink] = None,
    ):
        """Initialize query processor.

        Args:
            llm_client: Optional LLMClient used for non-English questions
            known_collections: Collection names recognised anywhere in a question
            events: Sink for structured events
        """
        self._llm = llm_client
        self._known_collections = [c for c in (known_collections or []) if c]
        self._events = events or LoggingEventSink()

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def parse(self, question: str, collections: Optional[Iterable[str]] = None) -> ParsedQuery:
        """Parse a question.

        Args:
            question: Question text
            collections: Extra collection names to recognise, e.g. the one
                sent with the request
        """
        language = detect_language(question)

        if language.is_english or self._llm is None or not self._llm.is_available:
            return self._parse_rules(question, language, collections)
        return self._parse_multilingual(question, language, collections)

    def parse_intent(self, question: str, collections: Optional[Iterable[str]] = None) -> QueryIntent:
        """Classify a question. Identical input always yields an identical intent."""
        return self.parse(question, collections).intent

    def _parse_rules(
        self,
        question: str,
        language: Optional[LanguageInfo] = None,
        collections: Optional[Iterable[str]] = None,
    ) -> ParsedQuery:
        intent = self.classify(question, collections=collections)
        return ParsedQuery(
            original=question,
            text=question,
            intent=intent,
            language=language,
            filters=dict(intent.extracted_filters),
        )

    def _parse_multilingual(
        self,
        question: str,
        language: LanguageInfo,
        collections: Optional[Iterable[str]] = None,
    ) -> ParsedQuery:
        """LLM classification + translation, falling back to the rule tiers."""
        try:
            raw = self._llm.generate(
                self.QUERY_PARSE_PROMPT.format(question=question),
                max_tokens=256,
            )
            result = parse_llm_json(raw)
            intent_type = pick_str(result, "type", INTENT_TYPES)
            if intent_type is None:
                raise ValueError(f"unusable classification reply: {raw[:80]!r}")

            english = pick_str(result, "english_query") or question
            filters = self.extract_filters(english)
            entity = pick_str(result, "entity")
            if entity:
                filters["name"] = entity
            collection = pick_str(result, "collection") or self.extract_collection(english, collections)
            filters = _without_collection_name(filters, collection)

            intent = INTENT_TYPES[intent_type.lower()](
                confidence=DELEGATED_CONFIDENCE,
                extracted_filters=filters,
                target=pick_str(result, "target") or self.extract_target(english),
                collection=collection,
            )
            return ParsedQuery(
                original=question,
                text=english,
                intent=intent,
                language=language,
                delegated=True,
                filters=filters,
            )
        except Exception as e:
            logger.warning("LLM classification failed, using rules: %s", e)
            emit(self._events, LLM_FALLBACK, language=language.code, error=str(e))
            return self._parse_rules(question, language, collections)

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def classify(
        self,
        question: str,
        filters: Optional[Dict[str, Any]] = None,
        collections: Optional[Iterable[str]] = None,
    ) -> QueryIntent:
        """Apply the rule tiers to an (English) question"""
        if not isinstance(question, str) or not _WORD_CHAR_RE.search(question):
            return UnknownIntent()

        if filters is None:
            filters = self.extract_filters(question)
        collection = self.extract_collection(question, collections)
        filters = _without_collection_name(filters, collection)
        query_lower = question.lower()
        common = {
            "extracted_filters": filters,
            "target": self.extract_target(question),
            "collection": collection,
        }

        if self._matches(query_lower, self.COUNT_PATTERNS):
            return CountIntent(**common)

        if filters.get("name") and self._has_target_noun(query_lower):
            return FilterIntent(**common)

        if self._matches(query_lower, self.INTENT_PATTERNS["aggregate"]):
            return AggregateIntent(**common)

        if self._matches(query_lower, self.INTENT_PATTERNS["search"]):
            return SearchIntent(**common)

        return SearchIntent(confidence=SEARCH_FALLBACK_CONFIDENCE, **common)

    @staticmethod
    def _matches(text: str, patterns: List[str]) -> bool:
        return any(re.search(p, text) for p in patterns)

    def _has_target_noun(self, query_lower: str) -> bool:
        return any(w in self.TARGET_NOUNS for w in re.findall(r"[a-z]+", query_lower))

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    def extract_filters(self, question: Any) -> Dict[str, Any]:
        """Field filters found in the question; ``{}`` when nothing matches."""
        if not isinstance(question, str) or not question.strip():
            return {}

        filters: Dict[str, Any] = {}

        name = self._quoted_name(question) or self._field_keyword_name(question) \
            or self._capitalized_name(question)
        if name:
            filters["name"] = name

        file_match = _FILE_NAME_RE.search(question)
        if file_match:
            filters["file_name"] = file_match.group(1)

        for pattern in _EXTENSION_RES:
            ext_match = pattern.search(question)
            if ext_match:
                filters["extension"] = ext_match.group(1).lower()
                break

        return filters

    @staticmethod
    def _quoted_name(question: str) -> Optional[str]:
        for match in _QUOTED_RE.finditer(question):
            value = (match.group(1) or match.group(2) or "").strip()
            if len(value) > 1:
                return value
        return None

    @staticmethod
    def _field_keyword_name(question: str) -> Optional[str]:
        match = _FIELD_NAME_RE.search(question)
        if not match:
            return None
        words = []
        for word in match.group(1).split():
            cleaned, ended = _clean_name_token(word)
            words.append(cleaned)
            if ended:
                break
        name = " ".join(w for w in words if w)
        return name or None

    @staticmethod
    def _capitalized_name(question: str) -> Optional[str]:
        """First run of capitalized words that does not open a sentence"""
        tokens = question.split()
        i = 0
        while i < len(tokens):
            sentence_start = i == 0 or tokens[i - 1].rstrip("\"')").endswith((".", "!", "?"))
            if sentence_start or not _is_name_token(tokens[i]):
                i += 1
                continue
            phrase = []
            j = i
            while j < len(tokens) and _is_name_token(tokens[j]):
                cleaned, ended = _clean_name_token(tokens[j])
                phrase.append(cleaned)
                j += 1
                if ended:
                    break
            return " ".join(phrase)
        return None

    def extract_collection(self, question: Any, collections: Optional[Iterable[str]] = None) -> Optional[str]:
        """Collection named in the question, if any.

        ``collections`` are extra names (the request's collection) matched
        case-insensitively after in/from/collection, like known collections.
        """
        if not isinstance(question, str) or not question.strip():
            return None

        lowered = question.lower()
        for name in self._known_collections:
            if re.search(rf"(?<![\w-]){re.escape(name.lower())}(?![\w-])", lowered):
                return name

        expected = {c.strip().lower(): c.strip() for c in (collections or []) if c and c.strip()}

        for pattern in _COLLECTION_RES:
            for match in pattern.finditer(question):
                candidate = match.group(1)
                if candidate.lower() in expected:
                    return expected[candidate.lower()]
                # Other capitalized words are entities ("images from Chris Dyer")
                if candidate[0].isupper() or candidate.lower() in self.COLLECTION_STOP_WORDS:
                    continue
                return candidate
        return None

    def extract_target(self, question: Any) -> Optional[str]:
        """What the question counts or lists ("artists", "images")"""
        if not isinstance(question, str):
            return None
        match = _COUNT_TARGET_RE.search(question)
        if match and match.group(1).lower() not in self.STOP_WORDS:
            return match.group(1).lower()
        for word in re.findall(r"[a-z]+", question.lower()):
            if word in self.TARGET_NOUNS or word in ("artists", "artist", "collections"):
                return word
        return None

    def extract_topic(self, question: Any) -> str:
        if not isinstance(question, str):
            return "general"
        lowered = question.lower()
        for topic, pattern in self.TOPIC_PATTERNS:
            if re.search(pattern, lowered):
                return topic
        return "general"


def _is_name_token(token: str) -> bool:
    word = token.lstrip("\"'(“")
    return len(word) > 1 and word[0].isupper() and word[0].isalpha()


def _clean_name_token(token: str) -> Tuple[str, bool]:
    """Strip quotes, trailing punctuation and possessive; report if the phrase ends here."""
    word = token.lstrip("\"'(“")
    stripped = word.rstrip(".,;:!?\"')”")
    ended = stripped != word
    without_possessive = _POSSESSIVE_RE.sub("", stripped)
    if without_possessive != stripped:
        ended = True
    return without_possessive, ended


def _without_collection_name(filters: Dict[str, Any], collection: Optional[str]) -> Dict[str, Any]:
    """Drop a ``name`` filter that is really the collection ("images in Artworks")"""
    name = filters.get("name")
    if not collection or not isinstance(name, str) or name.strip().lower() != collection.lower():
        return filters
    return {k: v for k, v in filters.items() if k != "name"}
