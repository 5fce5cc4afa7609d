"""
PreFilter - Cheap early rejection of raw candidates.

Runs before classification and validation to bound downstream cost. A
candidate is dropped when its domain is untrusted, its title shares no
query term, it does not look like the requested content type, it reads as
non-English, or it looks like commercial spam.
"""

import re
import time
from urllib.parse import urlparse

from models.search_types import ContentType, ResourceType
from tools.search.contracts import RawCandidate
from utils.logger import get_logger
from utils.metrics import MetricsRecorder

logger = get_logger(__name__)

DIY_DOMAINS = [
    "youtube.com",
    "homedepot.com",
    "lowes.com",
    "thisoldhouse.com",
    "familyhandyman.com",
    "diynetwork.com",
    "bobvila.com",
    "instructables.com",
    "wikihow.com",
    "ana-white.com",
    "shanty-2-chic.com",
    "buildwithbryan.com",
    "hammerhandhome.com",
    "remodelaholic.com",
    "prettyprudent.com",
    "abeautifulmess.com",
    "yellowbrickhome.com",
]

MATERIAL_DOMAINS = DIY_DOMAINS + [
    "amazon.com",
    "menards.com",
    "wayfair.com",
    "overstock.com",
    "acehardware.com",
    "harborfreight.com",
]

DIY_DOMAIN_PATTERNS = [
    re.compile(pattern)
    for pattern in (
        r"diy",
        r"build",
        r"maker",
        r"craft",
        r"wood",
        r"tool",
        r"repair",
        r"fix",
        r"home.*improvement",
        r"construction",
    )
]

SEMANTIC_SYNONYMS: dict[str, list[str]] = {
    "repair": ["fix", "restore", "mend", "rebuild"],
    "build": ["construct", "make", "create", "assemble"],
    "install": ["mount", "attach", "setup", "place"],
    "paint": ["painting", "painted", "color", "finish"],
    "wood": ["wooden", "lumber", "timber", "plywood"],
    "kitchen": ["countertop", "cabinet", "appliance"],
    "bathroom": ["toilet", "shower", "sink", "vanity"],
    "garden": ["outdoor", "yard", "landscaping", "plants"],
}

# One pattern per script family; a character may count for more than one family
NON_ENGLISH_PATTERNS = [
    re.compile(r"[ñáéíóúüç]", re.IGNORECASE),  # Spanish/Portuguese
    re.compile(r"[àâäéèêëïîôöùûüÿ]", re.IGNORECASE),  # French
    re.compile(r"[äöüßẞ]", re.IGNORECASE),  # German
    re.compile(r"[αβγδεζηθικλμνξοπρστυφχψω]", re.IGNORECASE),  # Greek
    re.compile(r"[а-я]", re.IGNORECASE),  # Cyrillic
    re.compile(r"[\u4e00-\u9fef]"),  # CJK ideographs
    re.compile(r"[\u3040-\u30ff]"),  # Japanese kana
    re.compile(r"[\uac00-\ud7a3]"),  # Hangul
]
NON_ENGLISH_RATIO = 0.05
NON_ENGLISH_MIN_TEXT = 50

SPAM_INDICATORS = [
    "buy now",
    "on sale",
    "% off",
    "discount",
    "coupon",
    "limited time",
    "act now",
    "exclusive deal",
    "free shipping",
    "compare prices",
    "best price",
    "lowest price",
]
SPAM_THRESHOLD = 3

ARTICLE_MIN_TEXT = 500


def hostname_of(url: str) -> str | None:
    """Lower-cased hostname without a leading ``www.``, or None if unparseable."""
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        return None
    if not hostname:
        return None
    return hostname.lower().replace("www.", "", 1)


def is_valid_diy_url(url: str, resource_type: ResourceType) -> bool:
    domain = hostname_of(url)
    if domain is None:
        return False

    trusted = MATERIAL_DOMAINS if resource_type == ResourceType.MATERIALS else DIY_DOMAINS
    if any(trusted_domain in domain for trusted_domain in trusted):
        return True

    return any(pattern.search(domain) for pattern in DIY_DOMAIN_PATTERNS)


def is_semantic_match(term: str, text: str) -> bool:
    return any(synonym in text for synonym in SEMANTIC_SYNONYMS.get(term, []))


def matches_content_type(candidate: RawCandidate, content_type: ContentType) -> bool:
    url = candidate.url or ""
    title = (candidate.title or "").lower()
    text = (candidate.text or "").lower()

    if content_type == ContentType.VIDEO:
        return (
            "youtube.com" in url
            or "vimeo.com" in url
            or "video" in title
            or "tutorial" in title
        )
    if content_type == ContentType.VISUAL:
        return (
            "pinterest.com" in url
            or "instagram.com" in url
            or "photo" in title
            or "image" in title
            or "gallery" in title
            or "before and after" in title
        )
    if content_type == ContentType.ARTICLE:
        return (
            "youtube.com" not in url
            and "pinterest.com" not in url
            and (len(text) > ARTICLE_MIN_TEXT or "guide" in title or "how to" in title)
        )
    return True


def detect_non_english(text: str | None) -> bool:
    """Heuristic: share of accented/non-Latin characters above 5% of the text."""
    if not text or len(text) < NON_ENGLISH_MIN_TEXT:
        return False
    count = sum(len(pattern.findall(text)) for pattern in NON_ENGLISH_PATTERNS)
    return count / len(text) > NON_ENGLISH_RATIO


def is_commercial_spam(candidate: RawCandidate, resource_type: ResourceType) -> bool:
    # Shopping language is expected for materials
    if resource_type == ResourceType.MATERIALS:
        return False

    title = (candidate.title or "").lower()
    text = (candidate.text or "").lower()
    spam_count = sum(
        1 for indicator in SPAM_INDICATORS if indicator in title or indicator in text
    )
    return spam_count >= SPAM_THRESHOLD


class PreFilter:
    """Applies the early rejection rules to a batch of raw candidates."""

    def __init__(self, metrics: MetricsRecorder | None = None):
        self._metrics = metrics

    def filter(
        self,
        candidates: list[RawCandidate],
        query: str,
        resource_type: ResourceType,
        content_type: ContentType,
    ) -> list[RawCandidate]:
        """
        Drop candidates that fail any early check. Never adds candidates.

        Args:
            candidates: Raw provider output
            query: The query string that produced the candidates
            resource_type: Requested resource type
            content_type: Requested content type (mixed disables the type check)

        Returns:
            The surviving candidates in their original order
        """
        start = time.perf_counter()
        query_terms = [term for term in query.lower().split() if len(term) > 2]

        kept = [
            candidate
            for candidate in candidates
            if self._accept(candidate, query_terms, resource_type, content_type)
        ]

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        logger.info(
            f"Pre-filtered {len(candidates)} -> {len(kept)} results in {elapsed_ms}ms",
            extra={"extra_fields": {"before": len(candidates), "after": len(kept)}},
        )
        if self._metrics is not None:
            self._metrics.record_prefilter_efficiency(len(candidates), len(kept))
        return kept

    @staticmethod
    def _accept(
        candidate: RawCandidate,
        query_terms: list[str],
        resource_type: ResourceType,
        content_type: ContentType,
    ) -> bool:
        if not is_valid_diy_url(candidate.url, resource_type):
            return False

        title = (candidate.title or "").lower()
        if not any(term in title or is_semantic_match(term, title) for term in query_terms):
            return False

        if content_type != ContentType.MIXED and not matches_content_type(candidate, content_type):
            return False

        if detect_non_english(candidate.text):
            return False

        return not is_commercial_spam(candidate, resource_type)
