"""Document metadata normalization and context formatting."""

import logging

from aposbot.constants.vectorstore import DEFAULT_DOCUMENT_URL, REFERENCE_URL_MARKER
from aposbot.qa.schemas import Document

logger = logging.getLogger(__name__)


def fix_document_metadata(
    documents: list[Document],
    default_url: str = DEFAULT_DOCUMENT_URL,
) -> list[Document]:
    """Make sure every document carries a citation URL.

    A document without ``metadata["url"]`` whose content has a line starting
    with ``Reference URL:`` gets that URL moved into metadata and the line
    removed from its content. Anything still missing a URL gets
    ``default_url``. Documents are updated in place.

    Args:
        documents: Retrieved documents.
        default_url: Fallback citation URL.

    Returns:
        The same list, for chaining.
    """
    for doc in documents:
        if not doc.metadata.get("url") and REFERENCE_URL_MARKER in doc.page_content:
            lines = doc.page_content.split("\n")
            index = next(
                (i for i, line in enumerate(lines) if line.lstrip().startswith(REFERENCE_URL_MARKER)),
                None,
            )
            url = ""
            if index is not None:
                url = lines[index].lstrip()[len(REFERENCE_URL_MARKER) :].strip()
            if url:
                doc.metadata["url"] = url
                doc.page_content = "\n".join(lines[:index] + lines[index + 1 :])
                logger.debug(f"Extracted URL to metadata: {url}")

        if not doc.metadata.get("url"):
            doc.metadata["url"] = default_url

    return documents


def format_document(doc: Document) -> str:
    """Render a document for the model context block."""
    return f"{doc.page_content}\nURL: {doc.url or ''}"


def format_context(documents: list[Document]) -> str:
    """Join formatted documents into a single context block."""
    return "\n\n".join(format_document(doc) for doc in documents)
