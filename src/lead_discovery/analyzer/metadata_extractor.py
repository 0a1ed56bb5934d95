"""Pattern-based business metadata: phone numbers, social profiles, technologies."""
import logging
import re
from typing import Iterable, List, Optional

from ..core.logging import get_logger
from ..models.analysis import BusinessMetadata, ContactInfo

# North American numbers, optionally with +1 and punctuation between groups
PHONE_PATTERN = re.compile(r"(?:\+?1[-.\s]?)?\(?\b[0-9]{3}\)?[-.\s]?[0-9]{3}[-.\s]?[0-9]{4}\b")

SOCIAL_PATTERN = re.compile(
    r"https?://(?:www\.)?(?:facebook|twitter|linkedin|instagram)\.com/[A-Za-z0-9_\-./]+",
    re.IGNORECASE
)

TECHNOLOGY_KEYWORDS = [
    "wordpress", "shopify", "wix", "squarespace",
    "react", "angular", "vue", "node",
    "php", "python", "java", "ruby",
    "aws", "azure", "google cloud",
    "mongodb", "mysql", "postgresql",
]

TECHNOLOGY_PATTERN = re.compile(
    r"\b(?:" + "|".join(re.escape(keyword) for keyword in TECHNOLOGY_KEYWORDS) + r")\b",
    re.IGNORECASE
)


def _unique(values: Iterable[str]) -> List[str]:
    seen = set()
    unique = []
    for value in values:
        key = value.lower()
        if key not in seen:
            seen.add(key)
            unique.append(value)
    return unique


class MetadataExtractor:
    """
    Finds contact details and technology mentions with regular expressions.

    The results complement the model's business profile: pattern matches are
    taken verbatim from the page, so they replace the model's phone number and
    social profiles when present, and technologies from both sources are merged.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or get_logger("metadata_extractor")

    def extract(self, text: str, html: str = "") -> BusinessMetadata:
        """
        Scan page text (and raw HTML for profile links).

        Args:
            text: Visible page text
            html: Raw page HTML, where profile links usually live in hrefs

        Returns:
            BusinessMetadata holding only the pattern-derived fields
        """
        phones = PHONE_PATTERN.findall(text or "")
        social = _unique(
            match.rstrip("/.")
            for match in SOCIAL_PATTERN.findall(f"{html or ''}\n{text or ''}")
        )
        technologies = _unique(match.lower() for match in TECHNOLOGY_PATTERN.findall(text or ""))

        self.logger.debug(
            f"Pattern metadata: {len(phones)} phones, {len(social)} profiles, "
            f"{len(technologies)} technologies"
        )
        return BusinessMetadata(
            contact_info=ContactInfo(
                phone=phones[0].strip() if phones else None,
                social_media=social
            ),
            technologies=technologies
        )

    @staticmethod
    def merge(model_metadata: BusinessMetadata, extracted: BusinessMetadata) -> BusinessMetadata:
        """Overlay pattern matches on the model's profile."""
        contact = model_metadata.contact_info
        merged_contact = ContactInfo(
            phone=extracted.contact_info.phone or contact.phone,
            address=contact.address,
            social_media=extracted.contact_info.social_media or contact.social_media
        )
        return model_metadata.model_copy(update={
            "contact_info": merged_contact,
            "technologies": _unique([*model_metadata.technologies, *extracted.technologies]),
        })
