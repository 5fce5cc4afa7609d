"""
ContentClassifier - Pure text analysis turning raw candidates into DIYSearchResult.

Classification uses title, snippet, url and page text only; no network calls.
"""

import re
from dataclasses import dataclass
from urllib.parse import urlparse

from models.search_result import DIYSearchResult
from models.search_types import ContentType, Difficulty, ResourceType, VisualQuality
from tools.search.contracts import RawCandidate
from utils.logger import get_logger

logger = get_logger(__name__)

SNIPPET_MAX_LENGTH = 300
DEFAULT_PROVIDER_SCORE = 0.5
MAX_TAGS = 8

VIDEO_URL_MARKERS = ("youtube.com", "youtu.be", "vimeo.com")
VIDEO_KEYWORDS = ("video", "tutorial", "watch")

STRONG_VISUAL_INDICATORS = (
    "gallery",
    "photos",
    "images",
    "pinterest",
    "before and after",
    "photo gallery",
    "picture",
    "visual",
    "showcase",
    "lookbook",
)
VISUAL_PLATFORM_URLS = ("pinterest.com", "houzz.com")

HIGH_QUALITY_INDICATORS = (
    "professional",
    "hd",
    "high quality",
    "photography",
    "architect",
    "designer",
    "magazine",
    "featured",
    "award",
    "beautiful",
)
MEDIUM_QUALITY_INDICATORS = (
    "gallery",
    "photos",
    "before after",
    "makeover",
    "renovation",
    "project",
    "design",
    "inspiration",
)

IMAGE_INDICATORS = ("photo", "image", "picture", "gallery", "visual")
BEFORE_AFTER_INDICATORS = ("before and after", "before/after", "makeover", "transformation")

YOUTUBE_ID_PATTERN = re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/)([^&\n?#]+)")
YOUTUBE_THUMBNAIL = "https://img.youtube.com/vi/{video_id}/mqdefault.jpg"

SOURCE_NAMES = {
    "youtube.com": "YouTube",
    "youtu.be": "YouTube",
    "homedepot.com": "Home Depot",
    "lowes.com": "Lowe's",
    "thisoldhouse.com": "This Old House",
    "familyhandyman.com": "Family Handyman",
    "diynetwork.com": "DIY Network",
    "bobvila.com": "Bob Vila",
    "instructables.com": "Instructables",
    "wikihow.com": "WikiHow",
}

BEGINNER_KEYWORDS = ("easy", "simple", "basic", "beginner", "quick", "no experience")
ADVANCED_KEYWORDS = ("advanced", "expert", "professional", "complex", "difficult", "technical")

CATEGORY_TAGS = {
    "woodworking": ("wood", "lumber", "saw", "drill", "cabinet", "furniture"),
    "painting": ("paint", "brush", "color", "wall", "primer"),
    "plumbing": ("pipe", "water", "sink", "toilet", "faucet"),
    "electrical": ("wire", "outlet", "switch", "electrical", "circuit"),
    "flooring": ("floor", "tile", "carpet", "hardwood", "vinyl"),
    "kitchen": ("kitchen", "cabinet", "countertop", "appliance"),
    "bathroom": ("bathroom", "shower", "bath", "vanity"),
    "outdoor": ("outdoor", "patio", "deck", "garden", "fence"),
}

SPANISH_MARKERS = ("cómo", "paso a paso", "materiales", "proyecto")
FRENCH_MARKERS = ("étape", "matériaux", "projet")


@dataclass(frozen=True)
class ContentAnalysis:
    content_type: ContentType
    visual_quality: VisualQuality
    has_images: bool
    image_count: int
    is_gallery: bool
    has_before_after: bool
    is_pinterest: bool
    thumbnail_url: str | None = None


def extract_youtube_id(url: str) -> str | None:
    match = YOUTUBE_ID_PATTERN.search(url)
    return match.group(1) if match else None


def format_source_name(hostname: str) -> str:
    """Display label for a hostname: known DIY sites by name, else the capitalized first label."""
    host = hostname.replace("www.", "", 1)
    if host in SOURCE_NAMES:
        return SOURCE_NAMES[host]
    first_label = host.split(".")[0]
    return first_label[:1].upper() + first_label[1:]


def estimate_difficulty(title: str, snippet: str) -> Difficulty:
    content = f"{title} {snippet}".lower()
    beginner_count = sum(1 for word in BEGINNER_KEYWORDS if word in content)
    advanced_count = sum(1 for word in ADVANCED_KEYWORDS if word in content)

    if beginner_count > advanced_count:
        return Difficulty.BEGINNER
    if advanced_count > 0:
        return Difficulty.ADVANCED
    return Difficulty.INTERMEDIATE


def detect_language(title: str, text: str) -> str:
    content = f"{title} {text}".lower()
    if any(marker in content for marker in SPANISH_MARKERS):
        return "es"
    if any(marker in content for marker in FRENCH_MARKERS):
        return "fr"
    return "en"


def generate_tags(
    title: str, snippet: str, resource_type: ResourceType, analysis: ContentAnalysis
) -> list[str]:
    tags = [ResourceType(resource_type).value]

    if analysis.content_type != ContentType.ARTICLE:
        tags.append(analysis.content_type.value)
    if analysis.is_gallery:
        tags.append("gallery")
    if analysis.has_before_after:
        tags.append("before-after")
    if analysis.is_pinterest:
        tags.append("pinterest")
    if analysis.visual_quality == VisualQuality.HIGH:
        tags.append("high-quality")

    content = f"{title} {snippet}".lower()
    for category, keywords in CATEGORY_TAGS.items():
        if any(keyword in content for keyword in keywords):
            tags.append(category)

    return tags[:MAX_TAGS]


class ContentClassifier:
    """Derives content type, visual quality and structural metadata from candidate text."""

    def analyze(
        self, candidate: RawCandidate, full_text: str | None = None, source: str | None = None
    ) -> ContentAnalysis:
        title = (candidate.title or "").lower()
        snippet = (candidate.snippet or "").lower()
        text = (full_text or "").lower()
        url = (candidate.url or "").lower()
        content = f"{title} {snippet} {text}"

        content_type = ContentType.ARTICLE
        if any(marker in url for marker in VIDEO_URL_MARKERS) or any(
            keyword in content for keyword in VIDEO_KEYWORDS
        ):
            content_type = ContentType.VIDEO

        visual_score = sum(1 for indicator in STRONG_VISUAL_INDICATORS if indicator in content)
        if visual_score >= 2 or any(platform in url for platform in VISUAL_PLATFORM_URLS):
            content_type = ContentType.VISUAL
        elif visual_score >= 1 and content_type != ContentType.VIDEO:
            content_type = ContentType.MIXED

        if any(indicator in content for indicator in HIGH_QUALITY_INDICATORS):
            visual_quality = VisualQuality.HIGH
        elif any(indicator in content for indicator in MEDIUM_QUALITY_INDICATORS):
            visual_quality = VisualQuality.MEDIUM
        else:
            visual_quality = VisualQuality.LOW

        is_pinterest_url = "pinterest.com" in url
        has_images = (
            any(indicator in content for indicator in IMAGE_INDICATORS)
            or content_type == ContentType.VISUAL
            or is_pinterest_url
        )

        image_count = 0
        if "gallery" in content or "photos" in content:
            image_count += 5
        if "step by step" in content and has_images:
            image_count += 3
        if "before and after" in content:
            image_count += 2
        if has_images and image_count == 0:
            image_count = 1

        is_gallery = (
            "gallery" in content
            or "photos" in content
            or "collection" in content
            or is_pinterest_url
            or image_count >= 5
        )
        has_before_after = any(indicator in content for indicator in BEFORE_AFTER_INDICATORS)
        is_pinterest = is_pinterest_url or "pinterest" in (source or "").lower()

        thumbnail_url = None
        if "youtube.com" in url or "youtu.be" in url:
            video_id = extract_youtube_id(candidate.url)
            if video_id:
                thumbnail_url = YOUTUBE_THUMBNAIL.format(video_id=video_id)

        return ContentAnalysis(
            content_type=content_type,
            visual_quality=visual_quality,
            has_images=has_images,
            image_count=image_count,
            is_gallery=is_gallery,
            has_before_after=has_before_after,
            is_pinterest=is_pinterest,
            thumbnail_url=thumbnail_url,
        )

    def process(self, candidate: RawCandidate, resource_type: ResourceType) -> DIYSearchResult | None:
        """
        Build a DIYSearchResult from a raw candidate.

        Returns None when the candidate has no usable URL; callers drop it.
        """
        try:
            hostname = urlparse(candidate.url).hostname if candidate.url else None
        except ValueError:
            hostname = None
        if not hostname:
            logger.debug(f"Dropping candidate with invalid url: {candidate.url!r}")
            return None

        title = candidate.title or "Untitled"
        body = candidate.text or candidate.snippet or ""
        source = format_source_name(hostname)
        is_youtube = "youtube.com" in hostname or "youtu.be" in hostname

        analysis = self.analyze(candidate, body, source)
        snippet = body[:SNIPPET_MAX_LENGTH] + ("..." if len(body) > SNIPPET_MAX_LENGTH else "")

        return DIYSearchResult(
            title=title,
            url=candidate.url,
            snippet=snippet,
            source=source,
            tags=generate_tags(title, body, resource_type, analysis),
            is_youtube=is_youtube,
            score=candidate.score or DEFAULT_PROVIDER_SCORE,
            difficulty=estimate_difficulty(title, body),
            video_id=extract_youtube_id(candidate.url) if is_youtube else None,
            published_date=candidate.published_date,
            content_type=analysis.content_type,
            visual_quality=analysis.visual_quality,
            has_images=analysis.has_images,
            image_count=analysis.image_count,
            thumbnail_url=analysis.thumbnail_url,
            content_length=len(body),
            language=detect_language(title, body),
            is_pinterest=analysis.is_pinterest,
            is_gallery=analysis.is_gallery,
            has_before_after=analysis.has_before_after,
        )
