# context.py
# Description: Builds the preamble sent with every request: an identity line
# followed by optional location and local time facts and, after an upload,
# a snippet of the uploaded file.

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Protocol

import requests

from errors import ErrorKind
from uploads import UploadedFile

logger = logging.getLogger(__name__)

UNKNOWN_CITY = "Unknown"
LOCATION_DISABLED = "(location disabled)"
TIME_DISABLED = "(time/date disabled)"
TIME_FORMAT = "%a %b %d %H:%M:%S %Z %Y"  # same layout as date(1)

IDENTITY_TEMPLATE = "You are an AI assistant powered by Cohere's {model} model."
CONTEXT_INSTRUCTION = "Use this context as needed to inform your answers."


@dataclass(frozen=True)
class Preferences:
    """The user-controlled inputs to the preamble."""
    model_name: str
    inject_location: bool = False
    inject_time: bool = False


class LocationService(Protocol):
    def current_city(self) -> str: ...


class IPInfoLocator:
    """Looks up the current city from the public IP address."""

    def __init__(self, url: str = "https://ipinfo.io/city", timeout: float = 3.0) -> None:
        self.url = url
        self.timeout = timeout

    def current_city(self) -> str:
        try:
            response = requests.get(self.url, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.warning(
                "Location lookup failed",
                extra={"kind": ErrorKind.LOCATION_UNAVAILABLE.value, "error": str(e)},
            )
            return UNKNOWN_CITY
        city = response.text.replace("\r", "").replace("\n", "").strip()
        return city or UNKNOWN_CITY


def _local_now() -> datetime:
    return datetime.now().astimezone()


class ContextInjector:
    """Renders the preamble from preferences and session facts."""

    def __init__(
        self,
        locator: LocationService,
        clock: Callable[[], datetime] = _local_now,
    ) -> None:
        self.locator = locator
        self.clock = clock

    def refresh(self, preferences: Preferences, uploaded_file: Optional[UploadedFile] = None) -> str:
        city = LOCATION_DISABLED
        if preferences.inject_location:
            try:
                city = self.locator.current_city() or UNKNOWN_CITY
            except Exception as e:
                # a misbehaving locator must never abort the turn
                logger.warning(
                    "Location service raised",
                    extra={"kind": ErrorKind.LOCATION_UNAVAILABLE.value, "error": str(e)},
                )
                city = UNKNOWN_CITY

        now = TIME_DISABLED
        if preferences.inject_time:
            now = self.clock().strftime(TIME_FORMAT).strip()

        lines = [
            IDENTITY_TEMPLATE.format(model=preferences.model_name),
            "",
            f"Location: {city}",
            f"Local time/date: {now}",
            CONTEXT_INSTRUCTION,
        ]
        preamble = "\n".join(lines)

        if uploaded_file is not None:
            preamble += f"\n\nFile Uploaded: {uploaded_file.path}\nSnippet:\n{uploaded_file.snippet}"
        return preamble
