"""
Tests for trust_engine.services.citations
"""

from __future__ import annotations

import pytest

from trust_engine.services.citations import (
    AutoCitationBuilder,
    derive_citation_title,
    is_prescreened_domain,
)
from tests.helpers import FakeCitationStore


class TestDeriveCitationTitle:
    @pytest.mark.parametrize(
        "url,title",
        [
            ("https://pubmed.ncbi.nlm.nih.gov/12345678/", "PubMed: 12345678"),
            ("https://pubmed.ncbi.nlm.nih.gov/12345678", "PubMed: 12345678"),
            ("https://pubmed.ncbi.nlm.nih.gov/?term=zinc", "pubmed.ncbi.nlm.nih.gov"),
            ("https://www.pubmed.ncbi.nlm.nih.gov/12345678/", "PubMed: 12345678"),
            ("https://notpubmed.example.com/12345678/", "notpubmed.example.com"),
            ("https://pubmed.ncbi.nlm.nih.gov.evil.example/12345678/", "pubmed.ncbi.nlm.nih.gov.evil.example"),
            ("https://www.example.com/article", "example.com"),
            ("http://blog.example.com/a/b?c=d", "blog.example.com"),
            ("https://WWW.Nature.com/articles/x", "nature.com"),
        ],
    )
    def test_titles(self, url, title):
        assert derive_citation_title(url) == title

    @pytest.mark.parametrize("url", ["not a url", "ftp://files.example.com/x", "https://"])
    def test_malformed_falls_back_to_raw_link(self, url):
        assert derive_citation_title(url) == url


class TestPrescreen:
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://pubmed.ncbi.nlm.nih.gov/1/", True),
            ("https://www.nejm.org/doi/full/x", True),
            ("https://journals.plos.org/plosone/article", True),
            ("https://evilnih.gov/", False),
            ("https://example.com/", False),
            ("garbage", False),
        ],
    )
    def test_approved_domains(self, url, expected):
        assert is_prescreened_domain(url) is expected


class TestAutoCitationBuilder:
    @pytest.mark.asyncio
    async def test_attaches_once(self):
        store = FakeCitationStore()
        builder = AutoCitationBuilder(store)

        first = await builder.attach("c-1", "https://www.example.com/a")
        second = await builder.attach("c-1", "https://other.example.com/b")

        assert first is not None
        assert first.resource_title == "example.com"
        assert second is None
        assert store.records["c-1"].resource_url == "https://www.example.com/a"
