"""Source scrapers against stubbed APIs (httpx.MockTransport)."""

import asyncio
import json
from datetime import datetime
from datetime import timedelta
from datetime import timezone

import httpx
import pytest

from ai_tools_catalog import retry
from ai_tools_catalog.classifier import Classifier
from ai_tools_catalog.models import ClassificationResult
from ai_tools_catalog.models import InsertResult
from ai_tools_catalog.scrapers import SCRAPER_SLUGS
from ai_tools_catalog.scrapers import get_all_scrapers
from ai_tools_catalog.scrapers import get_scraper
from ai_tools_catalog.scrapers.devto import DevToScraper
from ai_tools_catalog.scrapers.github import GitHubScraper
from ai_tools_catalog.scrapers.hackernews import HackerNewsScraper
from ai_tools_catalog.scrapers.hackernews import clean_hn_title
from ai_tools_catalog.scrapers.huggingface import HuggingFaceScraper
from ai_tools_catalog.scrapers.producthunt import ProductHuntScraper
from ai_tools_catalog.scrapers.reddit import RedditScraper
from ai_tools_catalog.scrapers.reddit import extract_tool_name as reddit_tool_name
from ai_tools_catalog.scrapers.rss import RSSScraper
from ai_tools_catalog.scrapers.rss import extract_tool_name as rss_tool_name
from ai_tools_catalog.scrapers.youtube import YouTubeScraper

NOW = datetime.now(timezone.utc)


def iso(moment):
    return moment.strftime("%Y-%m-%dT%H:%M:%SZ")


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    """Backoff and rate-limit waits return immediately."""
    sleeps = []

    async def fake_sleep(delay):
        sleeps.append(delay)

    monkeypatch.setattr(retry.asyncio, "sleep", fake_sleep)
    return sleeps


@pytest.fixture
def classifier():
    return Classifier()


def transport(handler):
    requests = []

    def record(request):
        requests.append(request)
        return handler(request)

    mock = httpx.MockTransport(record)
    mock.requests = requests
    return mock


def run(scraper):
    return asyncio.run(scraper.run())


class RenamingStrategy:
    """External classifier stand-in that always returns the same canonical name."""

    def __init__(self, name):
        self.name = name

    async def classify(self, title, content):
        return ClassificationResult(is_tool=True, name=self.name, category="Code & Development", tags=["testing"])


class TestRegistry:
    """Tests for the scraper registry."""

    def test_all_eight(self, store, classifier):
        scrapers = get_all_scrapers(store, classifier)
        assert len(scrapers) == 8
        assert [scraper.slug for scraper in scrapers] == list(SCRAPER_SLUGS)

    def test_lookup_by_slug(self, store, classifier):
        assert isinstance(get_scraper("GitHub", store, classifier), GitHubScraper)
        with pytest.raises(KeyError):
            get_scraper("myspace", store, classifier)


class TestGitHubScraper:
    """End-to-end GitHub scrape with one known and one new repository."""

    def test_one_duplicate_one_added(self, store, classifier, make_tool):
        store.insert_tool(make_tool("old-agent", "https://github.com/acme/old-agent", source="GitHub"))
        payload = {
            "total_count": 2,
            "items": [
                {
                    "name": "old-agent",
                    "full_name": "acme/old-agent",
                    "html_url": "https://github.com/acme/old-agent",
                    "description": "An agent framework",
                    "topics": ["ai"],
                    "stargazers_count": 120,
                    "created_at": iso(NOW - timedelta(hours=30)),
                },
                {
                    "name": "vector-kit",
                    "full_name": "newco/vector-kit",
                    "html_url": "https://github.com/newco/vector-kit",
                    "description": None,
                    "topics": ["ai", "embeddings"],
                    "stargazers_count": 0,
                    "created_at": iso(NOW - timedelta(days=1)),
                },
            ],
        }
        mock = transport(lambda request: httpx.Response(200, json=payload))

        results = run(GitHubScraper(store, classifier, transport=mock))

        assert results.to_dict() == {"total": 2, "added": 1, "duplicates": 1, "errors": 0, "errors_detail": []}
        new_tools = store.get_tools()
        added = [tool for tool in new_tools if tool.name == "vector-kit"]
        assert len(added) == 1
        tool = added[0]
        assert tool.source == "GitHub"
        assert tool.url == "https://github.com/newco/vector-kit"
        assert tool.description == "GitHub repository for vector-kit"
        assert "github" in tool.tags and "open-source" in tool.tags
        assert "embeddings" in tool.tags
        assert tool.release_date == (NOW - timedelta(days=1)).date()

        request = mock.requests[0]
        assert request.url.params["q"].startswith("topic:ai created:>")
        assert request.url.params["sort"] == "stars"
        assert request.url.params["per_page"] == "20"

    def test_api_error_is_retried_then_raised(self, store, classifier, no_sleep):
        mock = transport(lambda request: httpx.Response(503))
        with pytest.raises(Exception, match="503"):
            run(GitHubScraper(store, classifier, transport=mock))
        assert len(mock.requests) == 3
        assert no_sleep == [1.0, 2.0]


class TestHackerNewsScraper:
    """Tests for the Show HN scraper."""

    def test_title_cleaning(self):
        assert clean_hn_title("Show HN: Widgetly - a faster notes tool") == "Widgetly"
        assert clean_hn_title("show hn:   Foo-Bar") == "Foo-Bar"

    def test_only_external_stories(self, store, classifier):
        items = {
            "1": {"id": 1, "type": "story", "title": "Show HN: Widgetly - notes", "url": "https://widgetly.app", "time": 1714557600},
            "2": {"id": 2, "type": "job", "title": "Hiring", "url": "https://jobs.example.com"},
            "3": {"id": 3, "type": "story", "title": "Ask HN: anything?"},
        }

        def handler(request):
            if request.url.path.endswith("showstories.json"):
                return httpx.Response(200, json=[1, 2, 3, 4])
            item_id = request.url.path.rsplit("/", 1)[-1].removesuffix(".json")
            return httpx.Response(200, content=json.dumps(items.get(item_id)))

        results = run(HackerNewsScraper(store, classifier, transport=transport(handler)))

        assert results.total == 4
        assert results.added == 1
        assert results.errors == 0
        tool = store.find_tool_by_url("https://widgetly.app")
        assert tool.name == "Widgetly"
        assert tool.description == "Show HN: Widgetly - notes (via Hacker News)"
        assert {"show hn", "hacker news"} <= set(tool.tags)

    def test_failing_item_does_not_stop_the_rest(self, store, classifier):
        story = {"id": 2, "type": "story", "title": "Show HN: Widgetly - notes", "url": "https://widgetly.app"}

        def handler(request):
            if request.url.path.endswith("showstories.json"):
                return httpx.Response(200, json=[1, 2])
            if request.url.path.endswith("/item/1.json"):
                return httpx.Response(500)
            return httpx.Response(200, json=story)

        results = run(HackerNewsScraper(store, classifier, transport=transport(handler)))

        assert results.total == 2
        assert results.added == 1
        assert results.errors == 1
        assert results.errors_detail[0].startswith("Item 1: ")
        assert store.find_tool_by_url("https://widgetly.app") is not None

    def test_insert_failure_is_counted(self, store, classifier, monkeypatch):
        story = {"id": 1, "type": "story", "title": "Show HN: Widgetly - notes", "url": "https://widgetly.app"}
        monkeypatch.setattr(store, "insert_tool", lambda tool: InsertResult(error="database is locked"))

        def handler(request):
            if request.url.path.endswith("showstories.json"):
                return httpx.Response(200, json=[1])
            return httpx.Response(200, json=story)

        results = run(HackerNewsScraper(store, classifier, transport=transport(handler)))

        assert results.to_dict() == {
            "total": 1,
            "added": 0,
            "duplicates": 0,
            "errors": 1,
            "errors_detail": ["Widgetly: database is locked"],
        }


class TestRedditScraper:
    """Tests for the subreddit scraper."""

    def test_tool_name_cleaning(self):
        assert reddit_tool_name("[P] Introducing Vectorly - semantic search") == "Vectorly"
        assert reddit_tool_name("Check out Foo: a thing") == "Foo"

    def test_subreddits(self, store, classifier, monkeypatch, no_sleep):
        monkeypatch.delenv("REDDIT_CLIENT_ID", raising=False)
        monkeypatch.delenv("REDDIT_CLIENT_SECRET", raising=False)
        created = NOW.timestamp()
        posts = [
            {"title": "[P] Introducing Vectorly - semantic search tool", "url": "https://vectorly.dev", "selftext": ""},
            {"title": "Question: best tool?", "url": "https://www.reddit.com/r/artificial/comments/a", "selftext": ""},
            {"title": "Discussion: I built a thing", "url": "https://www.reddit.com/r/artificial/comments/b", "selftext": "https://thing.dev"},
            {
                "title": "I made an open model runner",
                "url": "https://www.reddit.com/r/artificial/comments/c",
                "selftext": "Code at https://runner.sh. Feedback welcome",
            },
        ]
        listing = {
            "data": {"children": [{"data": {**post, "created_utc": created, "subreddit": "artificial"}} for post in posts]}
        }

        def handler(request):
            if "/r/artificial/" in request.url.path:
                return httpx.Response(200, json=listing)
            if "/r/MachineLearning/" in request.url.path:
                return httpx.Response(429, headers={"Retry-After": "5"})
            return httpx.Response(200, json={"data": {"children": []}})

        results = run(RedditScraper(store, classifier, transport=transport(handler)))

        assert results.total == 4
        assert results.added == 2
        assert results.errors == 1
        assert results.errors_detail[0].startswith("Subreddit MachineLearning")
        assert no_sleep == [1.0, 2.0, 5]

        vectorly = store.find_tool_by_url("https://vectorly.dev")
        assert vectorly.name == "Vectorly"
        assert vectorly.source == "Reddit r/artificial"
        assert "artificial" in vectorly.tags
        assert store.find_tool_by_url("https://runner.sh") is not None
        assert store.find_tool_by_url("https://thing.dev") is None


FEED_XML = """<?xml version="1.0"?>
<rss version="2.0"><channel><title>TechCrunch</title>
<item>
  <title>Acme launches Widgetron, an AI tool for spreadsheets</title>
  <link>https://techcrunch.com/2024/05/06/acme-widgetron/</link>
  <description><![CDATA[<p>Acme releases a new tool for analysts.</p>]]></description>
  <pubDate>Mon, 06 May 2024 10:00:00 +0000</pubDate>
</item>
<item>
  <title>Why AI is overhyped</title>
  <link>https://techcrunch.com/2024/05/06/overhyped/</link>
  <description>An opinion piece</description>
</item>
</channel></rss>
"""

ARTICLE_HTML = """
<html><body>
<a href="https://twitter.com/acme">Follow</a>
<a href="/tag/ai">AI</a>
<a href="https://techcrunch.com/other">Related</a>
<a href="https://widgetron.ai/?ref=techcrunch">Widgetron</a>
</body></html>
"""


class TestRSSScraper:
    """Tests for the news feed scraper."""

    def test_tool_name_from_headline(self):
        assert rss_tool_name("Acme launches Widgetron, an AI tool") == "Widgetron"
        assert rss_tool_name("OpenAI unveils Sora - video model") == "Sora"

    def test_feeds(self, store, classifier):
        def handler(request):
            if request.url.host == "techcrunch.com":
                if request.url.path.endswith("/feed/"):
                    return httpx.Response(200, text=FEED_XML)
                return httpx.Response(200, text=ARTICLE_HTML)
            return httpx.Response(500)

        results = run(RSSScraper(store, classifier, transport=transport(handler)))

        assert results.total == 2
        assert results.added == 1
        assert results.errors == 2
        assert results.errors_detail[0].startswith("Feed The Verge AI")
        tool = store.find_tool_by_url("https://widgetron.ai")
        assert tool.name == "Widgetron"
        assert tool.source == "TechCrunch AI"
        assert tool.description == "Acme releases a new tool for analysts."
        assert tool.release_date.isoformat() == "2024-05-06"


class TestDevToScraper:
    """Tests for the Dev.to scraper."""

    def test_recent_showcases_only(self, store, classifier):
        articles = [
            {
                "id": 1,
                "title": "I built an open source library for prompt testing",
                "description": "Meet promptcheck",
                "url": "https://dev.to/jane/promptcheck",
                "published_timestamp": iso(NOW - timedelta(hours=3)),
                "tag_list": ["ai", "python"],
                "social_image": "https://dev.to/img.png",
            },
            {
                "id": 2,
                "title": "I built a tool years ago",
                "description": "old",
                "url": "https://dev.to/joe/old",
                "published_timestamp": iso(NOW - timedelta(days=5)),
                "tag_list": ["ai"],
            },
        ]
        results = run(DevToScraper(store, classifier, transport=transport(lambda r: httpx.Response(200, json=articles))))

        assert results.total == 2
        assert results.added == 1
        tool = store.find_tool_by_url("https://dev.to/jane/promptcheck")
        assert tool.source == "Dev.to"
        assert tool.image_url == "https://dev.to/img.png"
        assert tool.name == "I built an open source library for prompt testing"
        assert {"dev.to", "ai", "python"} <= set(tool.tags)

    def test_classifier_rename_is_deduplicated(self, store, make_tool):
        store.insert_tool(make_tool("PromptCheck", "https://github.com/acme/promptcheck"))
        article = {
            "id": 1,
            "title": "I built an open source library for prompt testing",
            "description": "Meet promptcheck",
            "url": "https://dev.to/jane/promptcheck",
            "published_timestamp": iso(NOW - timedelta(hours=3)),
            "tag_list": ["ai"],
        }
        classifier = Classifier(external=RenamingStrategy("PromptCheck"))
        mock = transport(lambda r: httpx.Response(200, json=[article]))

        results = run(DevToScraper(store, classifier, transport=mock))

        assert (results.added, results.duplicates) == (0, 1)
        assert [tool.name for tool in store.get_tools()] == ["PromptCheck"]


class TestHuggingFaceScraper:
    """Tests for the Spaces scraper."""

    def test_active_and_popular(self, store, classifier):
        spaces = [
            {"id": "acme/fancy-demo", "likes": 120, "lastModified": iso(NOW - timedelta(days=1)), "cardData": {"title": "Fancy Demo"}},
            {"id": "solo/tiny", "likes": 3, "lastModified": iso(NOW - timedelta(days=1))},
            {"id": "old/stale", "likes": 900, "lastModified": iso(NOW - timedelta(days=30))},
        ]
        results = run(HuggingFaceScraper(store, classifier, transport=transport(lambda r: httpx.Response(200, json=spaces))))

        assert results.total == 3
        assert results.added == 1
        tool = store.find_tool_by_url("https://huggingface.co/spaces/acme/fancy-demo")
        assert tool.name == "Fancy Demo"
        assert tool.description == "AI Space by acme"
        assert {"hugging-face", "demo"} <= set(tool.tags)


class TestProductHuntScraper:
    """Tests for the ProductHunt scraper."""

    def test_missing_token_fails(self, store, classifier, monkeypatch):
        monkeypatch.delenv("PRODUCTHUNT_API_TOKEN", raising=False)
        with pytest.raises(ValueError, match="PRODUCTHUNT_API_TOKEN"):
            run(ProductHuntScraper(store, classifier, transport=transport(lambda r: httpx.Response(200))))

    def test_ai_posts(self, store, classifier, monkeypatch):
        monkeypatch.setenv("PRODUCTHUNT_API_TOKEN", "ph-token")
        posts = [
            {
                "id": "1",
                "name": "AutoWriter",
                "tagline": "AI writing assistant",
                "description": "Drafts emails",
                "url": "https://www.producthunt.com/posts/autowriter",
                "thumbnail": {"url": "https://ph-files.example.com/autowriter.png"},
                "createdAt": iso(NOW),
                "topics": {"edges": [{"node": {"name": "Productivity"}}]},
            },
            {
                "id": "2",
                "name": "Plant Pot",
                "tagline": "A pot for plants",
                "description": "Ceramic",
                "url": "https://www.producthunt.com/posts/plant-pot",
                "createdAt": iso(NOW),
            },
        ]
        payload = {"data": {"posts": {"edges": [{"node": post} for post in posts]}}}
        mock = transport(lambda r: httpx.Response(200, json=payload))

        results = run(ProductHuntScraper(store, classifier, transport=mock))

        assert results.total == 2
        assert results.added == 1
        assert mock.requests[0].headers["Authorization"] == "Bearer ph-token"
        tool = store.find_tool_by_name("AutoWriter")
        assert tool.image_url == "https://ph-files.example.com/autowriter.png"
        assert "productivity" in tool.tags


class TestYouTubeScraper:
    """Tests for the YouTube scraper."""

    def test_missing_key_fails(self, store, classifier, monkeypatch):
        monkeypatch.delenv("YOUTUBE_API_KEY", raising=False)
        with pytest.raises(ValueError, match="YOUTUBE_API_KEY"):
            run(YouTubeScraper(store, classifier, transport=transport(lambda r: httpx.Response(200))))

    def test_first_external_description_link(self, store, classifier, monkeypatch):
        monkeypatch.setenv("YOUTUBE_API_KEY", "yt-key")
        videos = {
            "v1": {
                "title": "This new AI tool writes code for you",
                "description": "Watch https://youtu.be/x follow https://twitter.com/y try https://codewriter.ai/start now",
                "publishedAt": iso(NOW),
            },
            "v2": {"title": "My new AI tool tier list", "description": "no links here", "publishedAt": iso(NOW)},
        }

        def handler(request):
            if request.url.path.endswith("/search"):
                items = [{"id": {"videoId": "v1"}}, {"id": {"videoId": "v2"}}, {"id": {"kind": "youtube#channel"}}]
                return httpx.Response(200, json={"items": items})
            video_id = request.url.params["id"]
            return httpx.Response(200, json={"items": [{"id": video_id, "snippet": videos[video_id]}]})

        results = run(YouTubeScraper(store, classifier, transport=transport(handler)))

        assert results.total == 2
        assert results.added == 1
        tool = store.find_tool_by_url("https://codewriter.ai/start")
        assert tool.source == "YouTube"
        assert {"youtube", "review"} <= set(tool.tags)
