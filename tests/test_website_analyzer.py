"""Unit tests for website analysis."""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest

from lead_discovery.analyzer.website_analyzer import WebsiteAnalyzer
from lead_discovery.core.exceptions import AnalysisError, CrawlDisallowedError, LLMError, NavigationError
from lead_discovery.models.analysis import AnalysisContext
from lead_discovery.models.crawl_result import CrawlError, PageResult

URL = "https://smile-dental.example.com/"
CONTEXT = AnalysisContext(target_industry="dental", service_offering="web design")

ANALYSIS_REPLY = {
    "summary": "Smile Dental is a family dental clinic in Austin.",
    "metadata": {
        "title": "Smile Dental",
        "description": "Family dentistry",
        "industry": "dental",
        "services": "cleanings",
        "contactInfo": {"phone": "555-0100", "address": None, "socialMedia": []},
    },
}


@pytest.fixture
def analyzer(browser_pool, chat_client) -> WebsiteAnalyzer:
    return WebsiteAnalyzer(browser_pool, chat_client, timeout_ms=5000)


@pytest.mark.asyncio
async def test_analyze_website(analyzer, fake_browser, chat_client, browser_pool):
    fake_browser.add_page(URL, "<h1>Smile Dental</h1><p>Write to info@smile-dental.example.com</p>")
    chat_client.create_chat_completion.side_effect = [
        json.dumps(ANALYSIS_REPLY),
        "  Hi Smile Dental team, ...  ",
    ]

    result = await analyzer.analyze_website(URL, CONTEXT)

    assert result.url == URL
    assert result.summary == "Smile Dental is a family dental clinic in Austin."
    assert result.emails == ["info@smile-dental.example.com"]
    assert result.suggested_email == "Hi Smile Dental team, ..."
    assert result.metadata.industry == "dental"
    assert result.metadata.services == ["cleanings"]
    assert result.metadata.contact_info.phone == "555-0100"

    analysis_call, email_call = chat_client.create_chat_completion.await_args_list
    assert "Smile Dental" in analysis_call.args[0][1]["content"]
    assert "web design" in analysis_call.args[0][0]["content"]
    assert analysis_call.kwargs["temperature"] == 0.3
    assert email_call.kwargs["temperature"] == 0.7
    assert browser_pool.idle_count == 1


@pytest.mark.asyncio
async def test_crawled_pages_add_content_and_emails(analyzer, fake_browser, chat_client):
    fake_browser.add_page(URL, "<p>Welcome to Smile Dental</p>")
    chat_client.create_chat_completion.side_effect = [json.dumps(ANALYSIS_REPLY), "email"]
    pages = [
        PageResult(url=URL + "contact", content="Contact office@smile-dental.example.com", depth=1),
        PageResult(
            url=URL + "broken",
            content="hidden@smile-dental.example.com",
            error=CrawlError(message="net::ERR_NAME_NOT_RESOLVED")
        ),
    ]

    result = await analyzer.analyze_website(URL, CONTEXT, crawl_pages=pages)

    assert result.emails == ["office@smile-dental.example.com"]
    content = chat_client.create_chat_completion.await_args_list[0].args[0][1]["content"]
    assert "Welcome to Smile Dental" in content
    assert "Contact office@" in content


@pytest.mark.asyncio
async def test_no_content(analyzer, fake_browser, chat_client, browser_pool):
    fake_browser.add_page(URL, "")

    with pytest.raises(AnalysisError, match="No content available"):
        await analyzer.analyze_website(URL, CONTEXT)

    chat_client.create_chat_completion.assert_not_awaited()
    assert browser_pool.idle_count == 1


@pytest.mark.asyncio
async def test_invalid_analysis_reply(analyzer, fake_browser, chat_client, browser_pool):
    """Test that a bad model reply fails the analysis without charging the session."""
    fake_browser.add_page(URL, "<p>Smile Dental</p>")
    chat_client.create_chat_completion.return_value = json.dumps({"metadata": {}})

    with pytest.raises(AnalysisError, match="Invalid analysis response"):
        await analyzer.analyze_website(URL, CONTEXT)

    assert fake_browser.sessions[0].error_count == 0
    assert browser_pool.idle_count == 1


@pytest.mark.asyncio
async def test_llm_failure_propagates(analyzer, fake_browser, chat_client):
    fake_browser.add_page(URL, "<p>Smile Dental</p>")
    chat_client.create_chat_completion.side_effect = LLMError("Chat completion failed: boom")

    with pytest.raises(LLMError):
        await analyzer.analyze_website(URL, CONTEXT)


@pytest.mark.asyncio
async def test_navigation_failure_counts_against_session(analyzer, fake_browser, browser_pool):
    with pytest.raises(NavigationError):
        await analyzer.analyze_website("https://missing.example.com/", CONTEXT)

    assert fake_browser.sessions[0].error_count == 1
    assert browser_pool.idle_count == 1


@pytest.mark.asyncio
async def test_navigation_timeout(analyzer, fake_browser):
    fake_browser.add_page(URL, "<p>slow</p>")
    fake_browser.fail(URL, asyncio.TimeoutError())

    with pytest.raises(NavigationError, match="Navigation timeout of 5000 ms exceeded"):
        await analyzer.analyze_website(URL, CONTEXT)

    assert fake_browser.sessions[0].error_count == 1


@pytest.mark.asyncio
async def test_disallowed_site_is_never_loaded(browser_pool, chat_client, fake_browser):
    robots = AsyncMock()
    robots.is_allowed.return_value = False
    rate_limiter = AsyncMock()
    analyzer = WebsiteAnalyzer(browser_pool, chat_client, robots_parser=robots, rate_limiter=rate_limiter)
    fake_browser.add_page(URL, "<p>Smile Dental</p>")

    with pytest.raises(CrawlDisallowedError) as exc_info:
        await analyzer.analyze_website(URL, CONTEXT)

    assert exc_info.value.url == URL
    assert fake_browser.navigations == []
    rate_limiter.wait.assert_not_awaited()
    chat_client.create_chat_completion.assert_not_awaited()
    assert browser_pool.size == 0


@pytest.mark.asyncio
async def test_landing_page_load_is_rate_limited(browser_pool, chat_client, fake_browser):
    robots = AsyncMock()
    robots.is_allowed.return_value = True
    rate_limiter = AsyncMock()
    analyzer = WebsiteAnalyzer(browser_pool, chat_client, robots_parser=robots, rate_limiter=rate_limiter)
    fake_browser.add_page(URL, "<p>Smile Dental</p>")
    chat_client.create_chat_completion.side_effect = [json.dumps(ANALYSIS_REPLY), "email"]

    await analyzer.analyze_website(URL, CONTEXT)

    robots.is_allowed.assert_awaited_once_with(URL)
    rate_limiter.wait.assert_awaited_once_with("smile-dental.example.com")
    assert fake_browser.navigations == [URL]


@pytest.mark.asyncio
async def test_is_allowed_without_robots_parser(analyzer):
    assert await analyzer.is_allowed(URL) is True


@pytest.mark.asyncio
async def test_pattern_metadata_is_merged(analyzer, fake_browser, chat_client):
    fake_browser.add_page(
        URL,
        '<p>Call (512) 555-0199 today.</p><p>Built with WordPress.</p>'
        '<a href="https://www.facebook.com/smiledental/">Facebook</a>'
    )
    reply = {**ANALYSIS_REPLY, "metadata": {**ANALYSIS_REPLY["metadata"], "technologies": ["PHP"]}}
    chat_client.create_chat_completion.side_effect = [json.dumps(reply), "email"]

    result = await analyzer.analyze_website(URL, CONTEXT)

    assert result.metadata.contact_info.phone == "(512) 555-0199"
    assert result.metadata.contact_info.social_media == ["https://www.facebook.com/smiledental"]
    assert result.metadata.technologies == ["PHP", "wordpress"]
    assert result.metadata.industry == "dental"
