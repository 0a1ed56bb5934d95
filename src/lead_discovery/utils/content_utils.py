"""Content cleaning and text utilities."""
from typing import List
import re
from bs4 import BeautifulSoup
from ..core.logging import logger

EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")


def normalize_whitespace(text: str) -> str:
    """
    Collapse runs of whitespace into single spaces.

    Args:
        text: Raw text

    Returns:
        Trimmed text with single spaces
    """
    if not text:
        return ""
    return re.sub(r"\s+", " ", text).strip()


def html_to_text(html: str) -> str:
    """
    Convert HTML to whitespace-normalized visible text.

    Args:
        html: Raw HTML content

    Returns:
        Text content, or an empty string if the markup is unusable
    """
    if not html:
        return ""

    try:
        soup = BeautifulSoup(html, 'html.parser')

        for element in soup(["script", "style", "noscript"]):
            element.decompose()

        return normalize_whitespace(soup.get_text(separator=" "))

    except Exception as e:
        logger.error(f"Error converting HTML to text: {e}")
        return ""


def extract_emails(*texts: str) -> List[str]:
    """
    Extract unique email addresses from one or more texts.

    Args:
        *texts: Texts to scan

    Returns:
        Emails in first-seen order
    """
    seen = set()
    emails = []
    for text in texts:
        if not text:
            continue
        for email in EMAIL_PATTERN.findall(text):
            key = email.lower()
            if key not in seen:
                seen.add(key)
                emails.append(email)
    return emails


def truncate_text(text: str, max_chars: int) -> str:
    """Cut text to at most ``max_chars`` characters on a word boundary."""
    if len(text) <= max_chars:
        return text
    cut = text[:max_chars]
    space = cut.rfind(" ")
    if space > max_chars // 2:
        cut = cut[:space]
    return cut.rstrip()
