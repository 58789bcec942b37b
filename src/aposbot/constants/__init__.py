"""Configuration constants.

Re-exports all constants for convenient importing:
    from aposbot.constants import CONFIDENCE_THRESHOLD, DEFAULT_DOCUMENT_URL
"""

from aposbot.constants.qa import *  # noqa: F403
from aposbot.constants.llm import *  # noqa: F403
from aposbot.constants.vectorstore import *  # noqa: F403
