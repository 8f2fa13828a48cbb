# verity/news.py
"""
Global intel feed: NewsAPI listings annotated with a coarse trust score.

The score comes from a static table of publisher reputations; within a
tier it is drawn at random, so the same source can score differently on
two requests. It encodes reputation bands, not a precise metric.
"""
import logging
import random
import time
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Optional

import requests

from .config import Settings
from .errors import NewsFeedError, UpstreamError
from .models import TrustAnnotation

logger = logging.getLogger(__name__)


class SourceTier(str, Enum):
    HIGH = "High"
    MID = "Mid"
    TABLOID = "Tabloid"


SOURCE_TIERS = MappingProxyType({
    # international agencies and papers of record
    SourceTier.HIGH: (
        "Reuters", "Associated Press", "AP News", "AFP", "BBC News", "BBC",
        "The Guardian", "The New York Times", "The Washington Post", "NPR",
        "PBS", "The Wall Street Journal", "Financial Times", "The Economist",
        "Bloomberg", "Al Jazeera English", "Deutsche Welle", "France 24",
        "The Hindu", "Times of India", "NDTV", "The Indian Express",
    ),
    # reputable regional / specialist outlets
    SourceTier.MID: (
        "CNN", "ABC News", "CBS News", "NBC News", "MSNBC", "Sky News",
        "USA Today", "Los Angeles Times", "Chicago Tribune", "Axios",
        "Politico", "The Atlantic", "Wired", "Ars Technica", "TechCrunch",
        "The Verge", "Business Insider", "Forbes", "Fortune", "CNBC",
        "Hindustan Times", "India Today", "News18", "Scroll.in", "The Wire",
    ),
    # tabloid, hyper-partisan or state media
    SourceTier.TABLOID: (
        "Daily Mail", "The Sun", "New York Post", "Daily Mirror", "The Daily Star",
        "Breitbart", "InfoWars", "The Gateway Pundit", "OAN", "Newsmax",
        "BuzzFeed News", "Huffington Post", "Salon", "Vox", "Vice News",
        "RT", "Sputnik", "Daily Express", "Daily Record", "Mirror Online",
    ),
})

# closed integer intervals
TIER_BANDS = MappingProxyType({
    SourceTier.HIGH: (85, 99),
    SourceTier.MID: (60, 83),
    SourceTier.TABLOID: (15, 39),
})
UNKNOWN_BAND = (45, 64)
NO_SOURCE_SCORE = 50

_LOWERED = MappingProxyType({
    tier: tuple(name.lower() for name in names) for tier, names in SOURCE_TIERS.items()
})

DEFAULT_QUERY = "technology OR world news"
MAX_PAGE_SIZE = 100


def source_tier(source_name: Optional[str]) -> Optional[SourceTier]:
    name = (source_name or "").strip().lower()
    if not name:
        return None
    for tier in (SourceTier.HIGH, SourceTier.MID, SourceTier.TABLOID):
        if any(known in name for known in _LOWERED[tier]):
            return tier
    return None


def trust_tier(score: int) -> str:
    if score >= 75:
        return "VERIFIED"
    if score >= 50:
        return "MODERATE"
    return "CAUTION"


def classify(source_name: Optional[str], rng: Optional[random.Random] = None) -> TrustAnnotation:
    rng = rng or random
    if not (source_name or "").strip():
        score = NO_SOURCE_SCORE
    else:
        tier = source_tier(source_name)
        lo, hi = TIER_BANDS[tier] if tier else UNKNOWN_BAND
        score = rng.randint(lo, hi)
    return TrustAnnotation(score=score, tier=trust_tier(score))


def annotate_article(article: Dict[str, Any], index: int, rng: Optional[random.Random] = None) -> Dict[str, Any]:
    source = article.get("source") or {}
    trust = classify(source.get("name"), rng)
    return {
        "id": f"{source.get('id') or 'unknown'}-{int(time.time() * 1000)}-{index}",
        "title": article.get("title"),
        "description": article.get("description"),
        "content": article.get("content"),
        "url": article.get("url"),
        "urlToImage": article.get("urlToImage"),
        "publishedAt": article.get("publishedAt"),
        "source": {"id": source.get("id"), "name": source.get("name")},
        "author": article.get("author"),
        "trustScore": trust.score,
        "trustTier": trust.tier,
        "isTrusted": trust.score >= 70,
        "isTabloid": trust.score < 40,
    }


class NewsFeed:
    def __init__(self, settings: Settings, session: Optional[requests.Session] = None,
                 rng: Optional[random.Random] = None):
        self.settings = settings
        self.session = session or requests.Session()
        self.rng = rng

    def fetch(self, q: Optional[str] = None, category: Optional[str] = None, page_size: int = 20,
              page: int = 1, sort_by: str = "publishedAt", language: str = "en") -> Dict[str, Any]:
        api_key = self.settings.NEWS_API_KEY
        if not api_key:
            raise UpstreamError("News API key not configured")

        page_size = max(1, min(MAX_PAGE_SIZE, page_size))
        page = max(1, page)
        base = self.settings.NEWS_API_URL.rstrip("/")
        if category:
            url = f"{base}/top-headlines"
            params = {"category": category, "pageSize": page_size, "page": page, "language": language}
        else:
            url = f"{base}/everything"
            params = {"q": q or DEFAULT_QUERY, "pageSize": page_size, "page": page,
                      "sortBy": sort_by, "language": language}
        params["apiKey"] = api_key

        logger.info("Fetching news: page %s, pageSize %s", page, page_size)
        try:
            resp = self.session.get(url, params=params, timeout=self.settings.PROVIDER_TIMEOUT_SECONDS)
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("NewsAPI request failed: %s", e)
            raise UpstreamError("Failed to fetch news feed") from e

        if not isinstance(data, dict) or data.get("status") != "ok":
            message = data.get("message") if isinstance(data, dict) else None
            logger.error("NewsAPI error: %s", message)
            raise NewsFeedError(message or "Failed to fetch news")

        articles = [
            annotate_article(a, i, self.rng)
            for i, a in enumerate(
                a for a in (data.get("articles") or [])
                if isinstance(a, dict) and a.get("title") and a.get("title") != "[Removed]"
            )
        ]
        total = int(data.get("totalResults") or 0)
        logger.info("Processed %s articles", len(articles))
        return {
            "articles": articles,
            "totalResults": total,
            "page": page,
            "pageSize": page_size,
            "hasMore": page * page_size < total,
        }
