"""Vector store configuration.

The documentation index is a single Chroma collection built ahead of time
with cosine distance.
"""

# =============================================================================
# Collection
# =============================================================================

COLLECTION_NAME = "langchain"
DEFAULT_CHROMA_PATH = "./chroma_db/"

# =============================================================================
# Startup Retries
# =============================================================================
# Opening the persistent client can fail while the volume is still being
# mounted. Startup retries a fixed number of times with a fixed delay, then
# gives up.

INIT_ATTEMPTS = 3
RETRY_DELAY_SECONDS = 2.0

# =============================================================================
# Citations
# =============================================================================
# Some chunks carry their source URL inline as a "Reference URL: ..." line
# instead of in metadata. Chunks with no URL at all cite the docs home page.

REFERENCE_URL_MARKER = "Reference URL:"
DEFAULT_DOCUMENT_URL = "https://docs.apostrophecms.org/"
