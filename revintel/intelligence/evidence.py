"""
Source credibility and publication-date enrichment for search hits.

Every hit that comes back from the search provider is annotated with the
host it came from, a heuristic credibility score in [0, 1], and the most
precise publication date that can be recovered from its title and snippet.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Dict, Iterable, Mapping, Optional, Tuple
from urllib.parse import urlparse

import structlog
import tldextract
from dateutil import parser as date_parser

from revintel.core.models import DatePrecision
from revintel.intelligence.research_models import EnrichedEvidence, RawSearchHit

logger = structlog.get_logger(__name__)

UNKNOWN_DOMAIN = "unknown"
DEFAULT_CREDIBILITY = 0.4

# Curated source reputation. Subdomains inherit their parent's score.
DEFAULT_CREDIBILITY_SCORES: Dict[str, float] = {
    # Regulators and filings
    "sec.gov": 1.0,
    "annualreports.com": 0.85,
    # Wire services and top-tier business press
    "reuters.com": 0.95,
    "bloomberg.com": 0.95,
    "wsj.com": 0.95,
    "apnews.com": 0.9,
    "ft.com": 0.9,
    "economist.com": 0.9,
    "nytimes.com": 0.85,
    "cnbc.com": 0.85,
    "marketwatch.com": 0.85,
    "barrons.com": 0.85,
    "fortune.com": 0.8,
    "forbes.com": 0.8,
    "businessinsider.com": 0.75,
    "techcrunch.com": 0.8,
    "theinformation.com": 0.8,
    "axios.com": 0.8,
    # Trade press
    "supermarketnews.com": 0.75,
    "fooddive.com": 0.75,
    "retaildive.com": 0.75,
    "supplychaindive.com": 0.75,
    "grocerydive.com": 0.75,
    "progressivegrocer.com": 0.7,
    "foodbusinessnews.net": 0.7,
    # Business databases
    "pitchbook.com": 0.8,
    "crunchbase.com": 0.75,
    "dnb.com": 0.75,
    "zoominfo.com": 0.7,
    "linkedin.com": 0.7,
    "owler.com": 0.55,
    "craft.co": 0.55,
    "cbinsights.com": 0.75,
    # Press release distribution
    "prnewswire.com": 0.65,
    "businesswire.com": 0.65,
    "globenewswire.com": 0.6,
    "accesswire.com": 0.55,
    # Reference and community
    "wikipedia.org": 0.6,
    "glassdoor.com": 0.5,
    "indeed.com": 0.5,
    "medium.com": 0.35,
    "reddit.com": 0.3,
    "quora.com": 0.25,
}

GOV_SCORE = 0.9
INVESTOR_RELATIONS_SCORE = 0.85
NEWSROOM_SCORE = 0.7

# Bare years older than this many years are ignored as publication dates.
RECENT_YEAR_WINDOW = 5

_MONTHS = (
    r"(?:January|February|March|April|May|June|July|August|September|October|"
    r"November|December|Jan|Feb|Mar|Apr|Jun|Jul|Aug|Sept|Sep|Oct|Nov|Dec)"
)

ISO_DATE_RE = re.compile(r"\b(\d{4})-(\d{2})-(\d{2})(?!\d)")
MONTH_DAY_YEAR_RE = re.compile(
    rf"\b({_MONTHS})\.?\s+(\d{{1,2}})(?:st|nd|rd|th)?,?\s+(\d{{4}})\b"
)
DAY_MONTH_YEAR_RE = re.compile(
    rf"\b(\d{{1,2}})(?:st|nd|rd|th)?\s+({_MONTHS})\.?,?\s+(\d{{4}})\b"
)
MONTH_YEAR_RE = re.compile(rf"\b({_MONTHS})\.?,?\s+(\d{{4}})\b")
NUMERIC_QUARTER_RE = re.compile(r"\bQ([1-4])\s*(?:FY\s*)?(\d{4})\b", re.IGNORECASE)
YEAR_QUARTER_RE = re.compile(r"\b(\d{4})\s*Q([1-4])\b", re.IGNORECASE)
WORD_QUARTER_RE = re.compile(
    r"\b(first|second|third|fourth)\s+quarter\s+(?:of\s+)?(?:fiscal\s+(?:year\s+)?)?(\d{4})\b",
    re.IGNORECASE,
)
BARE_YEAR_RE = re.compile(r"\b((?:19|20)\d{2})\b")

_QUARTER_WORDS = {"first": 1, "second": 2, "third": 3, "fourth": 4}

# Offline public-suffix lookups; no network fetch of the suffix list.
_tld_extract = tldextract.TLDExtract(suffix_list_urls=())


def extract_domain(url: str) -> str:
    """Return the lowercased host of ``url`` without ``www.``, or ``"unknown"``."""
    if not url:
        return UNKNOWN_DOMAIN
    try:
        parsed = urlparse(url if "://" in url else f"https://{url}")
        host = parsed.hostname
    except ValueError:
        logger.debug("url_parse_failed", url=url)
        return UNKNOWN_DOMAIN
    if not host or "." not in host:
        return UNKNOWN_DOMAIN
    if host.startswith("www."):
        host = host[4:]
    return host


def _parent_domains(domain: str) -> Iterable[str]:
    """Yield successively shorter parents of ``domain`` down to its registered domain."""
    registered = _tld_extract(domain).registered_domain
    labels = domain.split(".")
    for i in range(1, len(labels)):
        candidate = ".".join(labels[i:])
        if registered and len(candidate) < len(registered):
            break
        yield candidate
        if not registered or candidate == registered:
            break


def score_credibility(
    domain: str, table: Optional[Mapping[str, float]] = None
) -> float:
    """
    Score a source domain's credibility.

    Exact table match wins, then the nearest parent domain in the table, then
    the ``.gov`` / investor-relations / newsroom heuristics, then the default.
    """
    table = DEFAULT_CREDIBILITY_SCORES if table is None else table
    domain = (domain or "").lower().strip(".")
    if not domain or domain == UNKNOWN_DOMAIN:
        return DEFAULT_CREDIBILITY

    if domain in table:
        return _clamp(table[domain])

    for parent in _parent_domains(domain):
        if parent in table:
            return _clamp(table[parent])

    if domain.endswith(".gov"):
        return GOV_SCORE
    if "investor." in domain or "investors." in domain:
        return INVESTOR_RELATIONS_SCORE
    if "newsroom." in domain or "news." in domain:
        return NEWSROOM_SCORE
    return DEFAULT_CREDIBILITY


def _clamp(score: float) -> float:
    return max(0.0, min(1.0, float(score)))


def _parse_exact(text: str) -> Optional[str]:
    try:
        return date_parser.parse(text, fuzzy=False).date().isoformat()
    except (ValueError, OverflowError):
        return None


def extract_publication_date(
    text: str, reference_year: Optional[int] = None
) -> Tuple[Optional[str], DatePrecision]:
    """
    Recover the most precise publication date mentioned in ``text``.

    Patterns are tried from most to least precise and the first hit wins, so an
    exact date is preferred over a month, quarter, or bare year elsewhere in
    the same text. Returns ``(None, UNKNOWN)`` when nothing matches.
    """
    if not text:
        return None, DatePrecision.UNKNOWN

    for match in ISO_DATE_RE.finditer(text):
        year, month, day = (int(g) for g in match.groups())
        try:
            return date(year, month, day).isoformat(), DatePrecision.EXACT
        except ValueError:
            continue

    for match in MONTH_DAY_YEAR_RE.finditer(text):
        month, day, year = match.groups()
        parsed = _parse_exact(f"{month} {day} {year}")
        if parsed:
            return parsed, DatePrecision.EXACT

    for match in DAY_MONTH_YEAR_RE.finditer(text):
        day, month, year = match.groups()
        parsed = _parse_exact(f"{month} {day} {year}")
        if parsed:
            return parsed, DatePrecision.EXACT

    for match in MONTH_YEAR_RE.finditer(text):
        month, year = match.groups()
        try:
            parsed = date_parser.parse(f"{month} {year}", default=datetime(int(year), 1, 1))
        except (ValueError, OverflowError):
            continue
        return parsed.strftime("%Y-%m"), DatePrecision.MONTH

    quarter = _extract_quarter(text)
    if quarter:
        return quarter, DatePrecision.QUARTER

    current_year = reference_year or date.today().year
    for match in BARE_YEAR_RE.finditer(text):
        year = int(match.group(1))
        if current_year - RECENT_YEAR_WINDOW <= year <= current_year + 1:
            return str(year), DatePrecision.YEAR

    return None, DatePrecision.UNKNOWN


def _extract_quarter(text: str) -> Optional[str]:
    """Return the first quarter reference normalised to ``Qn YYYY``."""
    candidates = []
    match = NUMERIC_QUARTER_RE.search(text)
    if match:
        candidates.append((match.start(), f"Q{match.group(1)} {match.group(2)}"))
    match = YEAR_QUARTER_RE.search(text)
    if match:
        candidates.append((match.start(), f"Q{match.group(2)} {match.group(1)}"))
    match = WORD_QUARTER_RE.search(text)
    if match:
        number = _QUARTER_WORDS[match.group(1).lower()]
        candidates.append((match.start(), f"Q{number} {match.group(2)}"))
    if not candidates:
        return None
    candidates.sort(key=lambda pair: pair[0])
    return candidates[0][1]


class EvidenceEnricher:
    """Annotate raw search hits with domain, credibility, and date."""

    def __init__(
        self,
        credibility_scores: Optional[Mapping[str, float]] = None,
        reference_year: Optional[int] = None,
    ):
        """
        Initialise the enricher.

        Args:
            credibility_scores: Extra or overriding domain scores merged onto
                the curated defaults.
            reference_year: Year used to bound bare-year matches; defaults to
                the current year.
        """
        table = dict(DEFAULT_CREDIBILITY_SCORES)
        for domain, score in (credibility_scores or {}).items():
            table[domain.lower()] = _clamp(score)
        self.credibility_scores = table
        self.reference_year = reference_year

    def enrich(self, hit: RawSearchHit) -> EnrichedEvidence:
        domain = extract_domain(hit.url)
        publication_date, precision = extract_publication_date(
            f"{hit.title} {hit.content}", reference_year=self.reference_year
        )
        return EnrichedEvidence(
            title=hit.title,
            url=hit.url,
            content=hit.content,
            score=hit.score,
            domain=domain,
            credibility_score=score_credibility(domain, self.credibility_scores),
            publication_date=publication_date,
            date_precision=precision,
        )


__all__ = [
    "DEFAULT_CREDIBILITY_SCORES",
    "EvidenceEnricher",
    "extract_domain",
    "extract_publication_date",
    "score_credibility",
]
