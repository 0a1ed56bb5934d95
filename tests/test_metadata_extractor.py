"""Unit tests for pattern-based business metadata."""

import pytest

from lead_discovery.analyzer.metadata_extractor import MetadataExtractor
from lead_discovery.models.analysis import BusinessMetadata, ContactInfo


@pytest.fixture
def extractor() -> MetadataExtractor:
    return MetadataExtractor()


@pytest.mark.parametrize("text, phone", [
    ("Call us at (512) 555-0199 today", "(512) 555-0199"),
    ("Phone: 512.555.0199", "512.555.0199"),
    ("Toll free +1 800-555-0100 or 512-555-0199", "+1 800-555-0100"),
    ("Open 9 to 5, suite 1200", None),
    ("Order #20240115123456", None),
])
def test_phone_numbers(extractor, text, phone):
    assert extractor.extract(text).contact_info.phone == phone


def test_social_profiles_from_html_and_text(extractor):
    html = (
        '<a href="https://www.facebook.com/smiledental/">Facebook</a>'
        '<a href="https://twitter.com/smiledental">Twitter</a>'
        '<a href="https://example.com/about">About</a>'
    )
    text = "Follow https://www.linkedin.com/company/smile-dental. Also https://TWITTER.com/smiledental"

    metadata = extractor.extract(text, html)

    assert metadata.contact_info.social_media == [
        "https://www.facebook.com/smiledental",
        "https://twitter.com/smiledental",
        "https://www.linkedin.com/company/smile-dental",
    ]


def test_technologies_match_whole_words(extractor):
    text = "Our JavaScript store runs on Shopify and WordPress, backed by Google Cloud. Visit nodejs.org? No."

    metadata = extractor.extract(text)

    assert metadata.technologies == ["shopify", "wordpress", "google cloud"]


def test_nothing_found(extractor):
    metadata = extractor.extract("Family dentistry since 1985.")

    assert metadata.contact_info.phone is None
    assert metadata.contact_info.social_media == []
    assert metadata.technologies == []


def test_merge_prefers_pattern_contacts():
    model = BusinessMetadata(
        title="Smile Dental",
        industry="dental",
        technologies=["React"],
        contact_info=ContactInfo(
            phone="555-0100",
            address="1 Main St",
            social_media=["https://facebook.com/old"]
        )
    )
    extracted = BusinessMetadata(
        technologies=["react", "wordpress"],
        contact_info=ContactInfo(phone="(512) 555-0199", social_media=["https://twitter.com/smile"])
    )

    merged = MetadataExtractor.merge(model, extracted)

    assert merged.title == "Smile Dental"
    assert merged.industry == "dental"
    assert merged.contact_info.phone == "(512) 555-0199"
    assert merged.contact_info.address == "1 Main St"
    assert merged.contact_info.social_media == ["https://twitter.com/smile"]
    assert merged.technologies == ["React", "wordpress"]


def test_merge_keeps_model_contacts_when_nothing_matched():
    model = BusinessMetadata(contact_info=ContactInfo(phone="555-0100", social_media=["https://facebook.com/a"]))

    merged = MetadataExtractor.merge(model, BusinessMetadata())

    assert merged.contact_info.phone == "555-0100"
    assert merged.contact_info.social_media == ["https://facebook.com/a"]
    assert merged.technologies == []
