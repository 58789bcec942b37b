"""Post answered questions to a Slack incoming webhook."""

import logging
from datetime import datetime, timezone

import httpx

logger = logging.getLogger(__name__)


class SlackConversationLogger:
    """Sends each question/answer pair to Slack for review.

    Failures are logged and never raised; a Slack outage must not affect
    answering.
    """

    def __init__(
        self,
        webhook_url: str | None,
        enabled: bool = False,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.webhook_url = webhook_url
        self.enabled = enabled
        self.timeout = timeout
        self._transport = transport

    @property
    def active(self) -> bool:
        return self.enabled and bool(self.webhook_url)

    @staticmethod
    def format_message(session_id: str, question: str, answer: str, model: str | None) -> str:
        timestamp = datetime.now(timezone.utc).isoformat()
        return (
            f"User session ID: {session_id}\n"
            f"Time: {timestamp}\n"
            f"Model: {model}\n"
            f"Question: {question}\n"
            f"Answer: {answer}"
        )

    async def log_exchange(
        self,
        session_id: str,
        question: str,
        answer: str,
        model: str | None,
    ) -> bool:
        """Post one exchange to the webhook.

        Returns:
            True if Slack accepted the message.
        """
        if not self.active:
            logger.debug(f"Slack logging disabled (model {model})")
            return False

        payload = {"text": self.format_message(session_id, question, answer, model)}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.webhook_url, json=payload)  # type: ignore[arg-type]
        except httpx.HTTPError as e:
            logger.error(f"Error sending to Slack: {e}")
            return False

        if response.status_code != 200:
            logger.error(
                f"Request to Slack returned an error {response.status_code}, "
                f"the response is: {response.text}"
            )
            return False
        return True
