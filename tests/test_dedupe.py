"""Tests for catalog-level duplicate detection."""

from types import SimpleNamespace

import pytest

from ai_tools_catalog.dedupe import DeduplicationEngine


def candidate(name, url, description=""):
    return SimpleNamespace(name=name, url=url, description=description)


@pytest.fixture
def engine(store, make_tool):
    store.insert_tool(make_tool("ChatGPT", "https://chat.openai.com"))
    return DeduplicationEngine(store)


class TestDeduplicationEngine:
    """Tests for DeduplicationEngine.find_match ordering."""

    def test_url_match_after_normalisation(self, engine):
        match = engine.find_match(candidate("Something Else", "https://CHAT.openai.com/?ref=hn#x"))
        assert match.reason == "url"
        assert match.tool_name == "ChatGPT"

    def test_case_insensitive_name_match(self, engine):
        match = engine.find_match(candidate("chatgpt", "https://elsewhere.io"))
        assert match.reason == "name"

    def test_similar_name(self, engine):
        match = engine.find_match(candidate("Chat-GPT", "https://chatgpt-clone.dev"))
        assert match.reason == "similar_name"

    def test_same_domain(self, engine):
        match = engine.find_match(candidate("Totally Different", "https://www.chat.openai.com/other"))
        assert match.reason == "domain"

    def test_new_tool_is_not_duplicate(self, engine):
        assert engine.find_match(candidate("Midjourney", "https://midjourney.com")) is None
        assert not engine.is_duplicate(candidate("Midjourney", "https://midjourney.com"))

    def test_different_github_owners_are_distinct(self, store, make_tool):
        store.insert_tool(make_tool("alpha-agent", "https://github.com/acme/alpha-agent"))
        engine = DeduplicationEngine(store)
        assert not engine.is_duplicate(candidate("vector-kit", "https://github.com/other/vector-kit"))
        assert engine.is_duplicate(candidate("vector-kit", "https://github.com/acme/vector-kit"))

    def test_empty_catalog(self, store):
        assert not DeduplicationEngine(store).is_duplicate(candidate("Anything", "https://anything.ai"))
