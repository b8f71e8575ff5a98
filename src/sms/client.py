# =============================================================================
# SMS Gateway Client
# =============================================================================
# Posts outbound SMS to the gateway's JSON API using HTTP basic auth.
#
# Usage:
#   client = SmsGatewayClient(
#       api_url="https://api.modica.test/rest/gateway/messages",
#       username="app-user",
#       password="secret",
#   )
#   client.send("+640000001", "Your agent replied")
# =============================================================================

import logging
import requests
from typing import Any, Dict
from dataclasses import dataclass

logger = logging.getLogger(__name__)


class SmsGatewayError(Exception):
    """Raised when the gateway cannot be reached or rejects a message."""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class SmsGatewayConfig:
    """Configuration for the SMS gateway client."""
    api_url: str
    username: str
    password: str
    timeout: int = 10


class SmsGatewayClient:
    """Client for the SMS gateway message API."""

    def __init__(self, api_url: str, username: str, password: str, timeout: int = 10):
        self.config = SmsGatewayConfig(
            api_url=api_url,
            username=username,
            password=password,
            timeout=timeout,
        )

    @property
    def configured(self) -> bool:
        return bool(self.config.api_url and self.config.username and self.config.password)

    def send(self, destination: str, content: str) -> Dict[str, Any]:
        """
        Send an SMS.

        Args:
            destination: Recipient phone number
            content: Message text

        Returns:
            Gateway response body (empty dict if the gateway returns none)

        Raises:
            SmsGatewayError: missing configuration, transport or HTTP error
        """
        if not self.configured:
            raise SmsGatewayError(
                "Missing SMS gateway configuration: SMS_GATEWAY_URL, SMS_GATEWAY_USER, SMS_GATEWAY_PASS"
            )

        logger.info(f"Sending SMS to {destination} via {self.config.api_url}")
        try:
            response = requests.post(
                self.config.api_url,
                json={"destination": destination, "content": content},
                auth=(self.config.username, self.config.password),
                headers={"Accept": "application/json"},
                timeout=self.config.timeout,
            )
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else 0
            raise SmsGatewayError(f"SMS gateway rejected message: {e}", status_code=status) from e
        except requests.exceptions.RequestException as e:
            raise SmsGatewayError(f"SMS gateway request failed: {e}") from e

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {"rawBody": response.text}
