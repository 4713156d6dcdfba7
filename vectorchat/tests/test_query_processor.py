"""
Tests for QueryProcessor

Tests rule-tier classification, filter extraction and LLM delegation.
"""

import pytest
from unittest.mock import MagicMock, patch


class TestClassification:
    """Rule tiers, first match wins"""

    @pytest.fixture
    def processor(self):
        from vectorchat.retriever.query_processor import QueryProcessor
        return QueryProcessor()

    def test_count_question(self, processor):
        from vectorchat.common.schemas.intent import CountIntent

        intent = processor.parse_intent("How many images are in midjourneysample?")

        assert isinstance(intent, CountIntent)
        assert intent.type == "count"
        assert intent.confidence == 0.9
        assert intent.target == "images"
        assert intent.collection == "midjourneysample"

    def test_filter_question_with_possessive_name(self, processor):
        intent = processor.parse_intent("Show me Chris Dyer's work")

        assert intent.type == "filter"
        assert intent.confidence == 0.8
        assert intent.entity == "Chris Dyer"
        assert intent.extracted_filters == {"name": "Chris Dyer"}

    def test_count_wins_over_filter(self, processor):
        intent = processor.parse_intent("How many images does Chris Dyer have?")

        assert intent.type == "count"
        assert intent.entity == "Chris Dyer"

    def test_aggregate_question(self, processor):
        intent = processor.parse_intent("What is the average score?")

        assert intent.type == "aggregate"
        assert intent.confidence == 0.75

    def test_search_question(self, processor):
        intent = processor.parse_intent("Find cats")

        assert intent.type == "search"
        assert intent.confidence == 0.7

    def test_plain_question_falls_back_to_search(self, processor):
        intent = processor.parse_intent("sunsets over the ocean")

        assert intent.type == "search"
        assert intent.confidence == 0.5

    def test_name_without_target_noun_is_not_filter(self, processor):
        intent = processor.parse_intent("Find anything about Alice")

        assert intent.type == "search"
        assert intent.entity == "Alice"

    @pytest.mark.parametrize("question", ["???", "...!", "  ?  "])
    def test_no_word_characters_is_unknown(self, processor, question):
        intent = processor.parse_intent(question)

        assert intent.type == "unknown"
        assert intent.confidence == 0.0

    def test_classification_is_deterministic(self, processor):
        question = "How many images does Chris Dyer have in midjourneysample?"

        first = processor.parse_intent(question)
        second = processor.parse_intent(question)

        assert first == second
        assert first.to_dict() == second.to_dict()

    def test_classify_non_string_is_unknown(self, processor):
        assert processor.classify(None).type == "unknown"


class TestFilterExtraction:
    @pytest.fixture
    def processor(self):
        from vectorchat.retriever.query_processor import QueryProcessor
        return QueryProcessor()

    def test_quoted_name(self, processor):
        filters = processor.extract_filters('Find works by "Claude Monet"')
        assert filters["name"] == "Claude Monet"

    def test_field_keyword_name(self, processor):
        filters = processor.extract_filters("show images by Alice please")
        assert filters["name"] == "Alice"

    def test_sentence_start_capital_is_not_a_name(self, processor):
        assert processor.extract_filters("Show me images") == {}

    def test_file_name(self, processor):
        filters = processor.extract_filters("Find the file sunset.jpg")
        assert filters["file_name"] == "sunset.jpg"

    def test_extension_from_dotted_form(self, processor):
        filters = processor.extract_filters("Find .JPEG images")
        assert filters["extension"] == "jpeg"

    def test_extension_from_noun_form(self, processor):
        filters = processor.extract_filters("show me png files")
        assert filters["extension"] == "png"

    @pytest.mark.parametrize("question", [None, "", "   ", 42])
    def test_malformed_input_yields_no_filters(self, processor, question):
        assert processor.extract_filters(question) == {}


class TestCollectionExtraction:
    def test_in_phrase(self):
        from vectorchat.retriever.query_processor import QueryProcessor

        processor = QueryProcessor()
        assert processor.extract_collection("Count images in midjourneysample") == "midjourneysample"

    def test_stop_words_are_skipped(self):
        from vectorchat.retriever.query_processor import QueryProcessor

        processor = QueryProcessor()
        assert processor.extract_collection("How many images are in the collection?") is None

    def test_capitalized_candidate_is_an_entity(self):
        from vectorchat.retriever.query_processor import QueryProcessor

        processor = QueryProcessor()
        assert processor.extract_collection("Show images from Chris Dyer") is None

    def test_known_collection_anywhere(self):
        from vectorchat.retriever.query_processor import QueryProcessor

        processor = QueryProcessor(known_collections=["art-2024"])
        assert processor.extract_collection("art-2024: how many images?") == "art-2024"

    def test_capitalized_request_collection(self):
        from vectorchat.retriever.query_processor import QueryProcessor

        processor = QueryProcessor()

        assert processor.extract_collection("How many images are in Artworks?", ["artworks"]) == "artworks"
        assert processor.extract_collection("How many images are in Artworks?") is None

    def test_collection_word_is_not_a_name_filter(self):
        from vectorchat.retriever.query_processor import QueryProcessor

        processor = QueryProcessor()

        intent = processor.parse_intent("How many images are in Artworks?", ["artworks"])

        assert intent.type == "count"
        assert intent.collection == "artworks"
        assert "name" not in intent.extracted_filters

    def test_known_collection_capitalized_is_not_a_name_filter(self):
        from vectorchat.retriever.query_processor import QueryProcessor

        processor = QueryProcessor(known_collections=["artworks"])

        intent = processor.parse_intent("Show me the images in Artworks")

        assert intent.collection == "artworks"
        assert intent.extracted_filters == {}

    def test_unrecognised_capitalized_word_stays_an_entity(self):
        from vectorchat.retriever.query_processor import QueryProcessor

        processor = QueryProcessor()

        intent = processor.parse_intent("Show images from Chris Dyer", ["artworks"])

        assert intent.collection is None
        assert intent.entity == "Chris Dyer"

    def test_topic(self):
        from vectorchat.retriever.query_processor import QueryProcessor

        processor = QueryProcessor()
        assert processor.extract_topic("Show me pictures") == "images"
        assert processor.extract_topic("How many artists are there?") == "artists"
        assert processor.extract_topic("Find cats") == "general"


class TestMultilingual:
    """Non-English questions go to the LLM, with the rule tiers as fallback"""

    KOREAN = "미드저니 샘플에 이미지가 몇 개 있나요?"

    @pytest.fixture
    def korean(self):
        from vectorchat.common.language import LanguageInfo

        with patch(
            "vectorchat.retriever.query_processor.detect_language",
            return_value=LanguageInfo(code="ko", confidence=0.99, script="Hangul"),
        ):
            yield

    @pytest.fixture
    def llm(self):
        client = MagicMock()
        client.is_available = True
        return client

    def test_llm_classification(self, korean, llm):
        from vectorchat.retriever.query_processor import QueryProcessor

        llm.generate.return_value = (
            '```json\n{"type": "count", "english_query": "How many images are in midjourneysample?", '
            '"entity": null, "target": "images", "collection": "midjourneysample"}\n```'
        )
        processor = QueryProcessor(llm_client=llm)

        parsed = processor.parse(self.KOREAN)

        assert parsed.delegated is True
        assert parsed.text == "How many images are in midjourneysample?"
        assert parsed.intent.type == "count"
        assert parsed.intent.confidence == 0.6
        assert parsed.intent.collection == "midjourneysample"
        assert parsed.intent.target == "images"

    def test_llm_entity_becomes_name_filter(self, korean, llm):
        from vectorchat.retriever.query_processor import QueryProcessor

        llm.generate.return_value = (
            '{"type": "filter", "english_query": "show works by chris dyer", "entity": "Chris Dyer"}'
        )
        processor = QueryProcessor(llm_client=llm)

        intent = processor.parse_intent(self.KOREAN)

        assert intent.type == "filter"
        assert intent.entity == "Chris Dyer"

    def test_llm_failure_falls_back_to_rules(self, korean, llm, events, caplog):
        import logging
        from vectorchat.common.events import LLM_FALLBACK
        from vectorchat.retriever.query_processor import QueryProcessor

        llm.generate.side_effect = RuntimeError("rate limited")
        processor = QueryProcessor(llm_client=llm, events=events)

        with caplog.at_level(logging.WARNING, logger="vectorchat.retriever.query_processor"):
            parsed = processor.parse(self.KOREAN)

        assert parsed.delegated is False
        assert parsed.intent.type == "search"
        assert LLM_FALLBACK in events.names()
        assert events.first(LLM_FALLBACK).fields["language"] == "ko"
        assert "LLM classification failed" in caplog.text

    def test_unusable_reply_falls_back_to_rules(self, korean, llm, events):
        from vectorchat.retriever.query_processor import QueryProcessor

        llm.generate.return_value = "Sorry, I can't help with that."
        processor = QueryProcessor(llm_client=llm, events=events)

        parsed = processor.parse(self.KOREAN)

        assert parsed.delegated is False
        assert events.names() == ["llm_fallback"]

    def test_english_never_calls_llm(self, llm):
        from vectorchat.retriever.query_processor import QueryProcessor

        processor = QueryProcessor(llm_client=llm)
        processor.parse("How many images are there?")

        llm.generate.assert_not_called()

    def test_unavailable_llm_uses_rules(self, korean):
        from vectorchat.retriever.query_processor import QueryProcessor

        llm = MagicMock()
        llm.is_available = False
        processor = QueryProcessor(llm_client=llm)

        parsed = processor.parse(self.KOREAN)

        assert parsed.delegated is False
        llm.generate.assert_not_called()
