"""Q&A pipeline configuration.

These settings control when the assistant declines to answer. Every
question passes a duplicate check against the session history and a
confidence check against the retrieved documentation before the language
model is called.
"""

# =============================================================================
# Similarity Thresholds
# =============================================================================
# Both checks compare embeddings with cosine similarity (1.0 = same direction,
# 0.0 = unrelated). A new question at or above DUPLICATE_THRESHOLD against any
# earlier question in the session is treated as a repeat. A question whose best
# retrieved document stays below CONFIDENCE_THRESHOLD is not answered.

DUPLICATE_THRESHOLD = 0.85
CONFIDENCE_THRESHOLD = 0.7

# =============================================================================
# Retrieval
# =============================================================================
# Number of nearest documentation chunks fetched per question.

RETRIEVAL_TOP_K = 6

# =============================================================================
# Advisory Messages
# =============================================================================
# Returned instead of a model answer. These are normal outcomes, not errors.

DUPLICATE_QUESTION_MESSAGE = (
    "It looks like you're asking a similar question to one you've already asked. "
    "This can lead to increased hallucination. Please refer to the ApostropheCMS "
    "documentation links given in the original answer or rephrase your question to "
    "be more specific. If you have additional questions, consider joining our Discord "
    "community from the link below for further assistance."
)

EMPTY_KNOWLEDGE_BASE_MESSAGE = (
    "I'm sorry, the knowledge base appears to be empty. Please contact the administrator."
)

LOW_CONFIDENCE_MESSAGE = (
    "I'm sorry, I cannot provide a confident answer based on the available information "
    "in our current RAG database. The specific terms you are using may not exist or not "
    "be documented. Please consider rephrasing your question or joining our Discord for "
    "additional assistance."
)

BUSY_SESSION_MESSAGE = "Please wait for the current response."
QUERY_FAILED_MESSAGE = "An error occurred while processing your query."
