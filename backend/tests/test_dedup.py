"""Tests for cross-source deduplication."""
import pytest

from conftest import make_document


class TestDocumentKey:
    """Test dedup key derivation."""

    def test_doi_key_is_normalized(self):
        """DOI URLs, prefixes and case all reduce to one key."""
        from litsearch.services.search.dedup import document_key

        a = make_document(1, doi="https://doi.org/10.1000/ABC.1")
        b = make_document(2, doi="doi:10.1000/abc.1")
        c = make_document(3, doi=" 10.1000/Abc.1 ")

        assert document_key(a) == document_key(b) == document_key(c) == "doi:10.1000/abc.1"

    def test_title_key_when_no_doi(self):
        """Without a DOI the normalized title is the key."""
        from litsearch.services.search.dedup import document_key

        doc = make_document(1, doi="", title="  Rapamycin,  and Lifespan!  ")
        assert document_key(doc) == "title:rapamycin and lifespan"

    def test_title_key_is_truncated(self):
        """Very long titles are capped."""
        from litsearch.services.search.dedup import TITLE_KEY_LENGTH, normalize_title

        assert len(normalize_title("word " * 100)) == TITLE_KEY_LENGTH

    def test_synthetic_key_is_stable(self):
        """A document with neither DOI nor title keeps its generated key."""
        from litsearch.services.search.dedup import document_key

        doc = make_document(1, doi="", title="")
        first = document_key(doc)

        assert first.startswith("unknown:")
        assert document_key(doc) == first

    def test_doi_takes_priority_over_title(self):
        """Same title, different DOI are different papers."""
        from litsearch.services.search.dedup import dedupe

        a = make_document(1, title="Same title", doi="10.1/a")
        b = make_document(2, title="Same title", doi="10.1/b")
        assert len(dedupe([a, b])) == 2


class TestMerge:
    """Test merging duplicate documents."""

    def test_sources_and_authors_are_unioned(self):
        """Merged documents remember every source and author."""
        from litsearch.services.search.dedup import merge_into

        pool = {}
        first = make_document(1, source="PubMed", authors=["A. One"])
        second = make_document(1, source="OpenAlex", authors=["A. One", "B. Two"])

        assert merge_into(pool, [first]) == 1
        assert merge_into(pool, [second]) == 0

        merged = next(iter(pool.values()))
        assert merged.sources == ["PubMed", "OpenAlex"]
        assert merged.authors == ["A. One", "B. Two"]

    def test_higher_score_wins(self):
        """The better-scored instance is kept, under the existing key."""
        from litsearch.services.search.dedup import document_key, merge_documents

        existing = make_document(1, source="PubMed", overall_score=40.0)
        incoming = make_document(1, source="CrossRef", overall_score=70.0)
        key = document_key(existing)

        winner = merge_documents(existing, incoming)
        assert winner is incoming
        assert winner.key == key

    def test_scored_beats_unscored(self):
        """An unscored duplicate never replaces a scored one."""
        from litsearch.services.search.dedup import document_key, merge_documents

        existing = make_document(1, overall_score=10.0)
        document_key(existing)
        incoming = make_document(1)

        assert merge_documents(existing, incoming) is existing

    def test_tie_keeps_existing(self):
        """Equal scores keep what is already in the pool."""
        from litsearch.services.search.dedup import document_key, merge_documents

        existing = make_document(1, overall_score=50.0)
        document_key(existing)
        assert merge_documents(existing, make_document(1, overall_score=50.0)) is existing

    def test_missing_identifiers_are_filled(self):
        """A PMID known to one source is kept on the merged record."""
        from litsearch.services.search.dedup import merge_into

        pool = {}
        merge_into(pool, [make_document(1, pmid="")])
        merge_into(pool, [make_document(1, pmid="999")])

        assert next(iter(pool.values())).pmid == "999"


class TestDedupe:
    """Test batch deduplication."""

    def test_removes_cross_source_duplicates(self):
        """The same DOI from three sources becomes one document."""
        from litsearch.services.search.dedup import dedupe

        docs = [make_document(1, source=s) for s in ("PubMed", "OpenAlex", "EuropePMC")]
        docs.append(make_document(2))

        result = dedupe(docs)
        assert len(result) == 2
        assert result[0].sources == ["PubMed", "OpenAlex", "EuropePMC"]

    def test_keeps_first_seen_order(self):
        """Output follows first appearance of each key."""
        from litsearch.services.search.dedup import dedupe

        docs = [make_document(3), make_document(1), make_document(3), make_document(2)]
        assert [d.doi for d in dedupe(docs)] == ["10.1000/doc.3", "10.1000/doc.1", "10.1000/doc.2"]

    def test_idempotent(self):
        """Deduplicating twice changes nothing."""
        from litsearch.services.search.dedup import dedupe

        docs = [make_document(i % 4, doi="" if i % 2 else f"10.1/{i % 4}") for i in range(12)]
        docs.append(make_document(99, doi="", title=""))

        once = dedupe(docs)
        twice = dedupe(once)
        assert [d.key for d in twice] == [d.key for d in once]

    def test_empty(self):
        """No documents, no output."""
        from litsearch.services.search.dedup import dedupe

        assert dedupe([]) == []
