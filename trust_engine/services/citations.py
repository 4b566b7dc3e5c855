"""
Trust Engine - Auto-Citation Builder

Turns an expert's source link into a citation record on the
contribution. Titles are derived from the URL alone; no page is fetched.

    https://www.example.com/article              -> "example.com"
    https://pubmed.ncbi.nlm.nih.gov/12345678/    -> "PubMed: 12345678"
    not a url                                    -> "not a url"
"""

from __future__ import annotations

import logging
import re
from typing import Optional
from urllib.parse import urlsplit

from ..core.models import CitationRecord
from ..pipeline.ports import CitationStore

logger = logging.getLogger(__name__)

PUBMED_HOST = "pubmed.ncbi.nlm.nih.gov"
_PUBMED_ID = re.compile(r"/(\d+)/?$")

# Citations from these domains (or their subdomains) are marked pre-screened
APPROVED_DOMAINS = frozenset(
    {
        "pubmed.ncbi.nlm.nih.gov",
        "ncbi.nlm.nih.gov",
        "nih.gov",
        "thelancet.com",
        "jamanetwork.com",
        "nejm.org",
        "bmj.com",
        "nature.com",
        "sciencedirect.com",
        "springer.com",
        "wiley.com",
        "plos.org",
        "doi.org",
    }
)


def extract_hostname(url: str) -> Optional[str]:
    """Lower-cased hostname of an absolute http(s) URL, or None if malformed."""
    try:
        parts = urlsplit(url.strip())
        hostname = parts.hostname
    except ValueError:
        return None
    if parts.scheme not in ("http", "https") or not hostname:
        return None
    return hostname.lower()


def derive_citation_title(url: str) -> str:
    hostname = extract_hostname(url)
    if hostname is None:
        return url

    if hostname == PUBMED_HOST or hostname.endswith("." + PUBMED_HOST):
        match = _PUBMED_ID.search(urlsplit(url.strip()).path)
        if match:
            return f"PubMed: {match.group(1)}"

    return hostname[4:] if hostname.startswith("www.") else hostname


def is_prescreened_domain(url: str) -> bool:
    hostname = extract_hostname(url)
    if hostname is None:
        return False
    if hostname.startswith("www."):
        hostname = hostname[4:]
    return any(hostname == domain or hostname.endswith("." + domain) for domain in APPROVED_DOMAINS)


def build_citation(contribution_id: str, source_link: str) -> CitationRecord:
    return CitationRecord(
        contribution_id=contribution_id,
        resource_title=derive_citation_title(source_link),
        resource_url=source_link,
        is_prescreened=is_prescreened_domain(source_link),
    )


class AutoCitationBuilder:
    """Creates at most one citation per contribution."""

    def __init__(self, store: CitationStore):
        self._store = store

    async def attach(self, contribution_id: str, source_link: str) -> Optional[CitationRecord]:
        """
        Build and store the citation.

        Returns:
            The stored record, or None if the contribution already had one
        """
        record = build_citation(contribution_id, source_link)
        created = await self._store.insert(record)
        if not created:
            logger.info("Citation already exists: contribution_id=%s", contribution_id)
            return None

        logger.info(
            "Citation added: contribution_id=%s title=%s prescreened=%s",
            contribution_id,
            record.resource_title,
            record.is_prescreened,
            extra={"contribution_id": contribution_id},
        )
        return record
