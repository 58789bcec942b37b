"""Document metadata fix-up and formatting tests."""

from aposbot.constants.vectorstore import DEFAULT_DOCUMENT_URL
from aposbot.qa.documents import fix_document_metadata, format_context, format_document
from aposbot.qa.schemas import Document


def test_reference_url_line_moves_into_metadata():
    """A 'Reference URL:' line becomes metadata.url and leaves the content."""
    doc = Document(page_content="Some text\nReference URL: https://example.com/x\nMore text")

    fix_document_metadata([doc])

    assert doc.metadata["url"] == "https://example.com/x"
    assert doc.page_content == "Some text\nMore text"
    assert "Reference URL:" not in doc.page_content


def test_existing_url_is_kept():
    """Documents that already have a URL are left alone."""
    doc = Document(
        page_content="Intro\nReference URL: https://example.com/other",
        metadata={"url": "https://docs.apostrophecms.org/guide/widgets.html"},
    )

    fix_document_metadata([doc])

    assert doc.metadata["url"] == "https://docs.apostrophecms.org/guide/widgets.html"
    assert "Reference URL:" in doc.page_content


def test_missing_url_gets_default():
    doc = Document(page_content="No link here", metadata={"title": "Pieces"})

    fix_document_metadata([doc])

    assert doc.metadata["url"] == DEFAULT_DOCUMENT_URL
    assert doc.metadata["title"] == "Pieces"
    assert doc.page_content == "No link here"


def test_empty_url_is_treated_as_missing():
    doc = Document(page_content="Text", metadata={"url": ""})

    fix_document_metadata([doc])

    assert doc.metadata["url"] == DEFAULT_DOCUMENT_URL


def test_only_first_reference_line_is_extracted():
    doc = Document(
        page_content=(
            "Reference URL: https://example.com/first\n"
            "Body\n"
            "Reference URL: https://example.com/second"
        )
    )

    fix_document_metadata([doc])

    assert doc.metadata["url"] == "https://example.com/first"
    assert doc.page_content == "Body\nReference URL: https://example.com/second"


def test_marker_inside_a_sentence_is_not_a_reference_line():
    doc = Document(page_content="Look for the Reference URL: field in the footer")

    fix_document_metadata([doc])

    assert doc.metadata["url"] == DEFAULT_DOCUMENT_URL
    assert doc.page_content == "Look for the Reference URL: field in the footer"


def test_blank_reference_line_falls_back_to_default():
    doc = Document(page_content="Body\nReference URL:   ")

    fix_document_metadata([doc])

    assert doc.metadata["url"] == DEFAULT_DOCUMENT_URL


def test_custom_default_url():
    doc = Document(page_content="Body")

    fix_document_metadata([doc], default_url="https://example.org/")

    assert doc.metadata["url"] == "https://example.org/"


def test_format_document_appends_url():
    doc = Document(page_content="Widgets live in modules.", metadata={"url": "https://x.test/w"})

    assert format_document(doc) == "Widgets live in modules.\nURL: https://x.test/w"


def test_format_context_joins_documents_in_order():
    docs = [
        Document(page_content="First", metadata={"url": "https://x.test/1"}),
        Document(page_content="Second", metadata={"url": "https://x.test/2"}),
    ]

    context = format_context(docs)

    assert context == "First\nURL: https://x.test/1\n\nSecond\nURL: https://x.test/2"


def test_format_context_of_nothing_is_empty():
    assert format_context([]) == ""


def test_format_document_without_url():
    doc = Document(page_content="Orphan chunk", metadata={"url": ""})

    assert format_document(doc) == "Orphan chunk\nURL: "
