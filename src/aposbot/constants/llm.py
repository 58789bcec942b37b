"""LLM client configuration.

Default parameters for chat completion and embedding calls. These can be
overridden per-call but provide sensible defaults.
"""

# =============================================================================
# Generation Defaults
# =============================================================================
# Answers should be reproducible for the same context, so TEMPERATURE is 0.
# MAX_TOKENS caps response length to control costs.

MAX_TOKENS = 4096
TEMPERATURE = 0.0

# =============================================================================
# Embeddings
# =============================================================================
# The embedding model must match the one used to build the Chroma collection,
# otherwise similarities are meaningless.

EMBEDDING_MODEL = "text-embedding-3-small"
EMBEDDING_CACHE_MAX_ENTRIES = 2048
