"""Tests for full-text search and excerpts."""

from kbase.database import SearchFilters, create_space, search_documents, update_document
from kbase.database.search import make_excerpt, quote_fts_query
from kbase.models.documents import DocumentType


class TestExcerpt:
    """Test excerpt generation."""

    def test_centred_on_match(self):
        text = "a" * 50 + "needle" + "b" * 50
        assert make_excerpt(text, "needle") == "..." + "a" * 40 + "needle" + "b" * 40 + "..."

    def test_match_near_start_has_no_prefix(self):
        text = "needle in a short haystack"
        assert make_excerpt(text, "NEEDLE") == text

    def test_no_match_falls_back_to_start(self):
        text = "x" * 150
        assert make_excerpt(text, "absent") == "x" * 100 + "..."
        assert make_excerpt("short", "absent") == "short"

    def test_quotes_are_stripped(self):
        assert make_excerpt("find the phrase here", '"phrase"') == "find the phrase here"

    def test_quote_fts_query(self):
        assert quote_fts_query("wal-mode") == '"wal-mode"'
        assert quote_fts_query('say "hi"') == '"say ""hi"""'


class TestSearchDocuments:
    """Test search over the FTS index."""

    def test_matches_title_and_content(self, db, make_document):
        make_document("Busy timeout", content="Writers wait five seconds")
        make_document("Unrelated", content="nothing to see")
        make_document("Other", content="the busy writer wins")

        titles = {r.document.title for r in search_documents(db, "busy")}
        assert titles == {"Busy timeout", "Other"}

    def test_excerpt_from_content(self, db, make_document):
        make_document("Doc", content="Use WAL mode for concurrent readers")
        [result] = search_documents(db, "wal")
        assert result.excerpt == "Use WAL mode for concurrent readers"

    def test_punctuation_is_literal(self, db, make_document):
        make_document("Hyphen", content="enable write-ahead logging")
        assert len(search_documents(db, "write-ahead")) == 1
        assert search_documents(db, 'odd "quote') == []

    def test_index_follows_updates(self, db, make_document):
        doc = make_document("Doc", content="before")
        update_document(db, doc.id, content="after")
        assert search_documents(db, "before") == []
        assert [r.document.id for r in search_documents(db, "after")] == [doc.id]

    def test_filters(self, db, space, make_document):
        other = create_space(db, "ops", "Ops")
        make_document("Decision", DocumentType.DECISION, "sqlite chosen", labels=["db"])
        make_document("Reference", DocumentType.REFERENCE, "sqlite docs")
        make_document("Ops note", DocumentType.REFERENCE, "sqlite ops", space_id=other.id)

        def titles(filters):
            return {r.document.title for r in search_documents(db, "sqlite", filters)}

        assert titles(SearchFilters(space_id=space.id)) == {"Decision", "Reference"}
        assert titles(SearchFilters(doc_type=DocumentType.DECISION)) == {"Decision"}
        assert titles(SearchFilters(label="db")) == {"Decision"}
        assert titles(SearchFilters(created_by_agent="pytest")) == {
            "Decision",
            "Reference",
            "Ops note",
        }
        assert titles(SearchFilters(created_by_agent="someone-else")) == set()

    def test_section_filter_excerpts_section(self, db, make_document):
        make_document(
            "Outage",
            DocumentType.TROUBLESHOOTING,
            sections={"problem": "disk full", "diagnosis": "logs", "solution": "rotate the disk logs"},
        )
        make_document("Plain", content="disk space note")

        results = search_documents(db, "disk", SearchFilters(section="solution"))
        assert [r.document.title for r in results] == ["Outage"]
        assert results[0].excerpt == "rotate the disk logs"

    def test_without_query_filters_only(self, db, make_document):
        make_document("Tagged", labels=["db"])
        make_document("Untagged")
        results = search_documents(db, None, SearchFilters(label="db"))
        assert [r.document.title for r in results] == ["Tagged"]
        assert results[0].excerpt == ""

    def test_results_carry_labels(self, db, make_document):
        make_document("Doc", content="searchable", labels=["b", "a"])
        [result] = search_documents(db, "searchable")
        assert result.document.labels == ["a", "b"]

    def test_no_results(self, db, make_document):
        make_document("Doc", content="content")
        assert search_documents(db, "missing") == []
