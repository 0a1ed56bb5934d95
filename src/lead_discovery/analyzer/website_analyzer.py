"""Website analysis: business profile extraction and outreach drafting."""

import asyncio
import logging
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from .content_processor import ContentProcessor
from .metadata_extractor import MetadataExtractor
from ..core.exceptions import AnalysisError, CrawlDisallowedError, NavigationError, ProcessingError
from ..core.logging import get_logger
from ..crawler.browser_pool import BrowserPool
from ..crawler.rate_limiter import RateLimiter
from ..crawler.robots import RobotsTxtParser
from ..llm.client import ChatClient, parse_json_response
from ..models.analysis import AnalysisContext, AnalysisResult, BusinessAnalysis
from ..models.crawl_result import PageResult
from ..utils.content_utils import extract_emails, html_to_text, truncate_text
from ..utils.url_utils import get_domain


ANALYSIS_PROMPT = """You analyze business websites for a company that sells {service} to the {industry} industry.

Read the website content and describe the business behind it, paying attention to
anything that matters when offering {service}.

Respond with JSON only:
{{
  "summary": "two or three sentences about the business",
  "metadata": {{
    "title": "business name",
    "description": "what the business does",
    "industry": "the business's industry",
    "services": ["service the business offers"],
    "technologies": ["website platform or technology in use"],
    "contactInfo": {{
      "phone": "phone number or null",
      "address": "postal address or null",
      "socialMedia": ["profile URL"]
    }}
  }}
}}"""

EMAIL_PROMPT = """You write short, personal cold emails for a company offering {service} to businesses in the {industry} industry.

Use the business analysis you are given to make the email specific to the recipient.
Keep it professional and concise, and explain how {service} helps with their situation.
Return only the email text."""

# Failures that say something about the browser session itself
SESSION_ERRORS = (NavigationError, asyncio.TimeoutError)


class WebsiteAnalyzer:
    """
    Produces an AnalysisResult for one prospect website.

    The landing page is loaded in a pooled browser session, its text and any
    email addresses are extracted, and two chat completions turn the content
    into a business profile and an outreach draft. Phone numbers, social
    profiles and technologies found by pattern are merged into the profile.

    With a robots.txt parser, disallowed sites are never loaded. A rate
    limiter shared with the crawler spaces the landing page load against the
    crawler's requests to the same host.
    """

    def __init__(
        self,
        browser_pool: BrowserPool,
        chat_client: ChatClient,
        content_processor: Optional[ContentProcessor] = None,
        metadata_extractor: Optional[MetadataExtractor] = None,
        robots_parser: Optional[RobotsTxtParser] = None,
        rate_limiter: Optional[RateLimiter] = None,
        timeout_ms: int = 30000,
        max_content_chars: int = 12000,
        logger: Optional[logging.Logger] = None
    ):
        self.browser_pool = browser_pool
        self.chat_client = chat_client
        self.logger = logger or get_logger("website_analyzer")
        self.content_processor = content_processor or ContentProcessor(logger=self.logger)
        self.metadata_extractor = metadata_extractor or MetadataExtractor(logger=self.logger)
        self.robots_parser = robots_parser
        self.rate_limiter = rate_limiter
        self.timeout_ms = timeout_ms
        self.max_content_chars = max_content_chars

    async def is_allowed(self, url: str) -> bool:
        """Whether robots.txt lets us load ``url``; always True without a parser."""
        if self.robots_parser is None:
            return True
        return await self.robots_parser.is_allowed(url)

    async def analyze_website(
        self,
        url: str,
        context: AnalysisContext,
        crawl_pages: Optional[List[PageResult]] = None
    ) -> AnalysisResult:
        """
        Analyze a prospect website.

        Args:
            url: Landing page URL
            context: What the user sells and to whom
            crawl_pages: Pages already crawled on the same site, used for
                extra content and email addresses

        Returns:
            AnalysisResult

        Raises:
            CrawlDisallowedError: If robots.txt forbids loading the landing page
            NavigationError: If the landing page cannot be loaded
            AnalysisError: If there is no content or the model output is unusable
            LLMError: If a chat completion fails
        """
        if not await self.is_allowed(url):
            self.logger.info(f"Not analyzing {url}: disallowed by robots.txt")
            raise CrawlDisallowedError(url)

        crawl_pages = [page for page in (crawl_pages or []) if page.error is None]
        if self.rate_limiter is not None:
            await self.rate_limiter.wait(get_domain(url) or url)

        session = await self.browser_pool.get_driver()
        session_error: Optional[BaseException] = None

        try:
            try:
                await asyncio.wait_for(
                    session.navigate(url, timeout_ms=self.timeout_ms),
                    timeout=self.timeout_ms / 1000.0
                )
            except asyncio.TimeoutError as e:
                raise NavigationError(f"Navigation timeout of {self.timeout_ms} ms exceeded", url=url) from e

            page_source = await session.get_content()
            content = self._build_content(page_source, url, crawl_pages)
            if not content:
                raise AnalysisError("No content available for analysis", url=url)

            emails = extract_emails(page_source, *[page.content for page in crawl_pages])
            extracted = self.metadata_extractor.extract(content, page_source)

            analysis = await self._generate_analysis(content, context, url)
            suggested_email = await self._generate_email_template(analysis, context)

            result = AnalysisResult(
                url=url,
                summary=analysis.summary,
                emails=emails,
                suggested_email=suggested_email,
                metadata=self.metadata_extractor.merge(analysis.metadata, extracted)
            )
            self.logger.info(f"Analyzed {url}: {len(emails)} emails, industry={result.metadata.industry or 'unknown'}")
            return result

        except Exception as e:
            if isinstance(e, SESSION_ERRORS):
                session_error = e
            self.logger.error(f"Website analysis failed for {url}: {e}")
            raise
        finally:
            await self.browser_pool.release_driver(session, error=session_error)

    def _build_content(self, page_source: str, url: str, crawl_pages: List[PageResult]) -> str:
        try:
            landing_text = self.content_processor.process_content(page_source, url).text
        except ProcessingError as e:
            self.logger.warning(f"Could not process landing page of {url}, using crawled text: {e.message}")
            landing_text = html_to_text(page_source)

        parts = [landing_text] if landing_text else []
        parts.extend(page.content for page in crawl_pages if page.content and page.content != landing_text)
        return truncate_text("\n\n".join(parts), self.max_content_chars)

    async def _generate_analysis(self, content: str, context: AnalysisContext, url: str) -> BusinessAnalysis:
        response = await self.chat_client.create_chat_completion(
            [
                {
                    "role": "system",
                    "content": ANALYSIS_PROMPT.format(
                        service=context.service_offering,
                        industry=context.target_industry
                    )
                },
                {"role": "user", "content": content},
            ],
            temperature=0.3,
            max_tokens=1000
        )

        try:
            return BusinessAnalysis.model_validate(parse_json_response(response))
        except (PydanticValidationError, ValueError) as e:
            raise AnalysisError(f"Invalid analysis response: {e}", url=url) from e

    async def _generate_email_template(self, analysis: BusinessAnalysis, context: AnalysisContext) -> str:
        response = await self.chat_client.create_chat_completion(
            [
                {
                    "role": "system",
                    "content": EMAIL_PROMPT.format(
                        service=context.service_offering,
                        industry=context.target_industry
                    )
                },
                {"role": "user", "content": analysis.model_dump_json(by_alias=True)},
            ],
            temperature=0.7,
            max_tokens=500
        )
        return response.strip()
