"""Citation extraction, reachability probing and trust scoring."""

import asyncio
import logging
import re
from collections.abc import Callable
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from urllib.parse import urlparse

import httpx

from synapse.models import DomainType, Source

logger = logging.getLogger(__name__)

SOURCE_MARKER = re.compile(r"\[Source\s*(\d+):\s*(https?://[^\s\]]+)\]")

_USER_AGENT = "Mozilla/5.0 (compatible; SynapseBot/1.0)"

_GOVERNMENT_SUFFIXES = (".gov", ".mil", ".go.kr", ".gov.uk")
_ACADEMIC_SUFFIXES = (".edu", ".ac.kr", ".ac.uk", ".ac.jp")
_ACADEMIC_HOSTS = ("arxiv.org", "nature.com", "science.org", "pubmed.ncbi.nlm.nih.gov", "sciencedirect.com")
_NEWS_HOSTS = ("reuters.com", "apnews.com", "bbc.com", "bbc.co.uk", "nytimes.com", "wsj.com", "ft.com")

_AUTHORITY = {
    DomainType.GOVERNMENT: 3,
    DomainType.ACADEMIC: 3,
    DomainType.NEWS: 2,
    DomainType.OTHER: 1,
}


def extract_sources(text: str) -> list[Source]:
    """Find every [Source N: URL] marker, dropping repeated URLs (first one wins)."""
    seen: set[str] = set()
    sources: list[Source] = []
    for match in SOURCE_MARKER.finditer(text):
        url = match.group(2)
        if url in seen:
            continue
        seen.add(url)
        sources.append(Source(id=int(match.group(1)), url=url))
    return sources


def render_sources(sources: list[Source]) -> str:
    """Render sources back into marker text, one per line."""
    return "\n".join(f"[Source {s.id}: {s.url}]" for s in sources)


def _host_matches(host: str, domain: str) -> bool:
    return host == domain or host.endswith("." + domain)


def classify_domain(url: str) -> DomainType:
    host = (urlparse(url).hostname or "").lower()
    if any(_host_matches(host, d) for d in _ACADEMIC_HOSTS):
        return DomainType.ACADEMIC
    if host.endswith(_GOVERNMENT_SUFFIXES):
        return DomainType.GOVERNMENT
    if host.endswith(_ACADEMIC_SUFFIXES):
        return DomainType.ACADEMIC
    if any(_host_matches(host, d) for d in _NEWS_HOSTS):
        return DomainType.NEWS
    return DomainType.OTHER


def recency_bonus(last_modified: str | None, now: datetime) -> int:
    """+2 within a year, +1 within three years, else 0. Unparseable headers score 0."""
    if not last_modified:
        return 0
    try:
        modified = parsedate_to_datetime(last_modified)
    except (TypeError, ValueError):
        return 0
    if modified.tzinfo is None:
        modified = modified.replace(tzinfo=timezone.utc)
    age_days = (now - modified).total_seconds() / 86400
    if age_days <= 365:
        return 2
    if age_days <= 1095:
        return 1
    return 0


def trust_level(source: Source) -> str:
    score = source.trust_score or 0
    if score >= 3:
        return "High"
    if score >= 2:
        return "Medium"
    return "Low"


def format_source(source: Source) -> dict:
    """Display-ready view of a validated source."""
    return {
        "url": source.url,
        "domain": urlparse(source.url).hostname or "",
        "trust_level": trust_level(source),
        "is_valid": bool(source.is_valid),
    }


class SourceValidator:
    """Probes sources concurrently through a bounded pool and ranks them by trust."""

    def __init__(
        self,
        timeout_sec: float = 5.0,
        max_concurrency: int = 8,
        transport: httpx.AsyncBaseTransport | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._timeout_sec = timeout_sec
        self._max_concurrency = max(1, max_concurrency)
        self._transport = transport
        self._now = now or (lambda: datetime.now(timezone.utc))

    async def _probe(self, client: httpx.AsyncClient, semaphore: asyncio.Semaphore, source: Source) -> None:
        async with semaphore:
            try:
                async with asyncio.timeout(self._timeout_sec):
                    response = await client.head(source.url)
                    if response.status_code == 405:
                        response = await client.get(source.url)
            except TimeoutError:
                logger.warning("Source validation timed out for %s after %ss", source.url, self._timeout_sec)
                source.is_valid = False
                source.trust_score = 0
                source.domain_type = DomainType.OTHER
                return
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning("Source validation failed for %s: %s", source.url, exc)
                source.is_valid = False
                source.trust_score = 0
                source.domain_type = DomainType.OTHER
                return

        source.domain_type = classify_domain(source.url)
        source.is_valid = response.is_success
        if not source.is_valid:
            logger.warning("Source %s unreachable: HTTP %d", source.url, response.status_code)
            source.trust_score = 0
            return
        source.trust_score = _AUTHORITY[source.domain_type] + recency_bonus(
            response.headers.get("last-modified"), self._now()
        )

    async def validate_and_score(self, sources: list[Source]) -> list[Source]:
        """Validate every source in place and return them sorted by trust score.

        Ties keep extraction order.
        """
        if not sources:
            return []
        semaphore = asyncio.Semaphore(self._max_concurrency)
        async with httpx.AsyncClient(
            timeout=self._timeout_sec,
            follow_redirects=True,
            headers={"User-Agent": _USER_AGENT},
            transport=self._transport,
        ) as client:
            await asyncio.gather(*(self._probe(client, semaphore, s) for s in sources))
        return sorted(sources, key=lambda s: -(s.trust_score or 0))
