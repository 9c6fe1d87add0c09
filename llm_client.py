# llm_client.py
# Description: Provides a client for posting chat requests to the Cohere API.
# Handles auth headers, JSON decoding and mapping of transport errors. Error
# payloads from the API are returned, not raised, so the caller can parse them.

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from errors import ConnectionFailure, TimeoutFailure, TransportFailure

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.cohere.ai"


def _validate_base_url(url: str) -> None:
    """Refuse to send the API key over plain HTTP to a non-local host."""
    if url.startswith("http://") and not any(
        host in url for host in ("localhost", "127.0.0.1")
    ):
        raise ValueError("Insecure API URL configured for non-local host; use https://")


# ---------------------------------------------------------------------------
# client
# ---------------------------------------------------------------------------

class CohereClient:
    """Thin blocking transport for the chat endpoints."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 60,
        session: Optional[requests.Session] = None,
    ) -> None:
        _validate_base_url(base_url)
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def post(self, path: str, json_body: Dict[str, Any]) -> Any:
        """
        Posts a JSON body and returns the decoded response.

        Args:
            path: endpoint path, e.g. "/v1/chat".
            json_body: the request payload.

        Returns:
            The decoded JSON body whatever the HTTP status, or the raw text
            when the body is not JSON.

        Raises:
            TransportFailure: when no response was received at all.
        """
        url = self.url_for(path)
        logger.info("Sending request to Cohere", extra={"url": url, "model": json_body.get("model")})

        try:
            response = self.session.post(
                url, headers=self.headers(), json=json_body, timeout=self.timeout
            )
        except requests.exceptions.ConnectionError as e:
            raise ConnectionFailure(f"Connection to {url} failed.") from e
        except requests.exceptions.Timeout as e:
            raise TimeoutFailure("Request timed out.") from e
        except requests.exceptions.RequestException as e:
            raise TransportFailure("An unexpected request error occurred.") from e

        if response.status_code >= 400:
            logger.warning(
                "Cohere returned an error status",
                extra={"url": url, "status": response.status_code},
            )

        try:
            return response.json()
        except ValueError:
            logger.warning("Response body is not JSON", extra={"url": url, "status": response.status_code})
            return response.text
