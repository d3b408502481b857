import json
import random

import pytest

from app.domain.errors import NewsGenerationFailure
from app.infrastructure.llm.text_client import TextGenerationError
from app.infrastructure.news.fallback_news import FallbackNewsSynthesizer
from app.infrastructure.news.news_generator import (
    NewsGenerator,
    build_news_prompt,
    parse_news_payload,
)


def _payload(*items):
    return "Here you go:\n" + json.dumps(list(items)) + "\nEnjoy."


def _item(ticker="ACME", sentiment=0.5, magnitude=0.6, **overrides):
    item = {
        "ticker": ticker,
        "headline": f"{ticker} wins contract",
        "body": "Big deal.",
        "sentiment": sentiment,
        "magnitude": magnitude,
    }
    item.update(overrides)
    return item


def test_prompt_lists_every_company(companies):
    prompt = build_news_prompt(companies, 2)
    assert "Generate 2" in prompt
    for company in companies:
        assert company.ticker in prompt


class TestParseNewsPayload:
    def test_extracts_array_from_surrounding_text(self, companies, clock):
        events = parse_news_payload(_payload(_item("ACME"), _item("BOLT")), companies, 3, clock.now)
        assert [e.ticker for e in events] == ["ACME", "BOLT"]
        assert all(e.timestamp == clock.now for e in events)

    def test_drops_malformed_and_unknown_items(self, companies, clock):
        text = _payload(
            _item("ZZZZ"),
            _item("ACME", headline=""),
            _item("BOLT", sentiment="very good"),
            "not an object",
            {"ticker": "CRUX"},
            _item("crux"),
        )
        events = parse_news_payload(text, companies, 3, clock.now)
        assert [e.ticker for e in events] == ["CRUX"]

    def test_clamps_out_of_range_scores(self, companies, clock):
        events = parse_news_payload(
            _payload(_item("ACME", sentiment=4.0, magnitude=0.05), _item("BOLT", sentiment=-2, magnitude=3)),
            companies,
            2,
            clock.now,
        )
        assert (events[0].sentiment, events[0].magnitude) == (1.0, 0.3)
        assert (events[1].sentiment, events[1].magnitude) == (-1.0, 1.0)

    def test_drops_non_finite_scores(self, companies, clock):
        text = _payload(
            _item("ACME", sentiment=float("nan")),
            _item("BOLT", magnitude=float("inf")),
            _item("CRUX", sentiment="-Infinity"),
            _item("ACME", sentiment=0.2),
        )
        events = parse_news_payload(text, companies, 4, clock.now)
        assert [(e.ticker, e.sentiment) for e in events] == [("ACME", 0.2)]

    def test_truncates_to_requested_count(self, companies, clock):
        text = _payload(_item("ACME"), _item("BOLT"), _item("CRUX"))
        assert len(parse_news_payload(text, companies, 1, clock.now)) == 1

    def test_no_array_raises(self, companies):
        with pytest.raises(ValueError):
            parse_news_payload("Sorry, I cannot help with that.", companies, 2)


class TestNewsGenerator:
    async def test_uses_llm_when_enabled(self, companies, text_client_factory):
        client = text_client_factory([_payload(_item("ACME"), _item("BOLT"))])
        generator = NewsGenerator(client=client, fallback=FallbackNewsSynthesizer(random.Random(1)))

        events = await generator.generate_news(companies, 2)

        assert [e.ticker for e in events] == ["ACME", "BOLT"]
        assert generator.last_source == "llm"
        assert len(client.prompts) == 1

    async def test_falls_back_on_llm_error(self, companies, text_client_factory):
        client = text_client_factory([TextGenerationError("timeout")])
        generator = NewsGenerator(client=client, fallback=FallbackNewsSynthesizer(random.Random(1)))

        events = await generator.generate_news(companies, 2)

        assert len(events) == 2
        assert generator.last_source == "fallback"

    async def test_falls_back_on_unparseable_response(self, companies, text_client_factory):
        client = text_client_factory(["no json here"])
        generator = NewsGenerator(client=client, fallback=FallbackNewsSynthesizer(random.Random(1)))

        events = await generator.generate_news(companies, 3)

        assert len(events) == 3
        assert generator.last_source == "fallback"

    async def test_disabled_client_goes_straight_to_fallback(self, companies, text_client_factory):
        client = text_client_factory(enabled=False)
        generator = NewsGenerator(client=client, fallback=FallbackNewsSynthesizer(random.Random(1)))

        events = await generator.generate_news(companies, 1)

        assert len(events) == 1
        assert client.prompts == []

    async def test_raises_when_fallback_disabled(self, companies, text_client_factory):
        client = text_client_factory([TextGenerationError("503")])
        generator = NewsGenerator(client=client, fallback_enabled=False)

        with pytest.raises(NewsGenerationFailure):
            await generator.generate_news(companies, 2)

    async def test_empty_roster_yields_nothing(self, text_client_factory):
        client = text_client_factory()
        generator = NewsGenerator(client=client)
        assert await generator.generate_news([], 2) == []
