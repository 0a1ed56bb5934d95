"""HTML content processing: cleaning, text, XML sections, links, images, metadata."""
import copy
import logging
from typing import List, Optional, Tuple
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Tag

from ..core.exceptions import ProcessingError
from ..core.logging import get_logger
from ..models.content import ImageRef, LinkRef, ProcessedContent
from ..utils.content_utils import normalize_whitespace

UNWANTED_SELECTORS = [
    "script",
    "style",
    "iframe",
    "noscript",
    '[aria-hidden="true"]',
    ".hidden",
    "#cookie-banner",
    ".cookie-notice",
    ".advertisement",
    ".social-share",
]

UNWANTED_ATTRIBUTES = ("style", "class", "id")
UNWANTED_ATTRIBUTE_PREFIXES = ("on", "data-")

SECTION_SELECTOR = "main, article, section, .content"
MIN_SECTION_CHARS = 100


class ContentProcessor:
    """Turns raw page HTML into normalized views for analysis."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or get_logger("content_processor")

    def process_content(self, html: str, base_url: str) -> ProcessedContent:
        """
        Process raw HTML.

        Args:
            html: Page HTML
            base_url: URL the HTML was loaded from, used to resolve links

        Returns:
            ProcessedContent

        Raises:
            ProcessingError: For blank HTML or a missing/malformed base URL
        """
        if not html or not html.strip():
            self.logger.error("Failed to process content: Empty HTML")
            raise ProcessingError("Empty HTML")

        if not base_url or not base_url.strip():
            self.logger.error("Failed to process content: Invalid base URL")
            raise ProcessingError("Invalid base URL")

        parsed = urlparse(base_url.strip())
        if not parsed.scheme or not parsed.netloc:
            self.logger.error(f"Failed to process content: Invalid base URL format ({base_url})")
            raise ProcessingError("Invalid base URL format", source=base_url)

        try:
            soup = BeautifulSoup(html, "html.parser")
            self._remove_unwanted_elements(soup)

            title, description = self._extract_metadata(soup)
            result = ProcessedContent(
                text=self._extract_text(soup),
                html=self._clean_html(soup),
                xml=self._convert_to_xml(soup),
                title=title,
                description=description,
                links=self._extract_links(soup, base_url),
                images=self._extract_images(soup, base_url)
            )
        except Exception as e:
            self.logger.error(f"Failed to process content for {base_url}: {e}")
            raise ProcessingError(f"Failed to process content: {e}", source=base_url) from e

        self.logger.debug(
            f"Processed {base_url}: {len(result.text)} chars, "
            f"{len(result.links)} links, {len(result.images)} images"
        )
        return result

    @staticmethod
    def _remove_unwanted_elements(soup: BeautifulSoup):
        for selector in UNWANTED_SELECTORS:
            for element in soup.select(selector):
                element.decompose()

    @staticmethod
    def _extract_text(soup: BeautifulSoup) -> str:
        lines = (normalize_whitespace(line) for line in soup.get_text(separator="\n").splitlines())
        return "\n".join(line for line in lines if line)

    @staticmethod
    def _clean_html(soup: BeautifulSoup) -> str:
        clone = copy.copy(soup)
        for element in clone.find_all(True):
            for attr in list(element.attrs):
                name = attr.lower()
                if name in UNWANTED_ATTRIBUTES or name.startswith(UNWANTED_ATTRIBUTE_PREFIXES):
                    del element.attrs[attr]
        return str(clone).strip()

    @staticmethod
    def _convert_to_xml(soup: BeautifulSoup) -> str:
        sections: List[Tag] = [
            element for element in soup.select(SECTION_SELECTOR)
            if len(element.get_text().strip()) > MIN_SECTION_CHARS
        ]
        if not sections:
            sections = [soup.body or soup]

        parts = ["<content>"]
        for index, section in enumerate(sections, start=1):
            parts.append(f'<section id="section-{index}">{section.decode_contents()}</section>')
        parts.append("</content>")
        return "".join(parts)

    @staticmethod
    def _extract_links(soup: BeautifulSoup, base_url: str) -> List[LinkRef]:
        links: List[LinkRef] = []
        seen = set()

        for anchor in soup.find_all("a", href=True):
            href = anchor["href"].strip()
            if not href or href.startswith("#") or href.lower().startswith("javascript:"):
                continue

            try:
                url = urljoin(base_url, href)
            except ValueError:
                continue

            if urlparse(url).scheme not in ("http", "https"):
                continue

            url = url.rstrip("/")
            if url in seen:
                continue
            seen.add(url)
            links.append(LinkRef(url=url, text=normalize_whitespace(anchor.get_text())))

        return links

    @staticmethod
    def _extract_images(soup: BeautifulSoup, base_url: str) -> List[ImageRef]:
        images: List[ImageRef] = []
        for img in soup.find_all("img"):
            src = (img.get("src") or "").strip()
            if not src:
                continue
            try:
                url = urljoin(base_url, src)
            except ValueError:
                continue
            images.append(ImageRef(url=url, alt=(img.get("alt") or "").strip()))
        return images

    @staticmethod
    def _extract_metadata(soup: BeautifulSoup) -> Tuple[str, str]:
        def meta_content(**attrs) -> str:
            tag = soup.find("meta", attrs=attrs)
            if tag and tag.get("content"):
                return tag["content"].strip()
            return ""

        title = ""
        if soup.title and soup.title.get_text(strip=True):
            title = soup.title.get_text(strip=True)
        title = title or meta_content(property="og:title")
        if not title:
            h1 = soup.find("h1")
            title = h1.get_text(strip=True) if h1 else ""

        description = meta_content(name="description") or meta_content(property="og:description")
        return title, description
