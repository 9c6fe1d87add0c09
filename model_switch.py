# model_switch.py
# Description: Resolves user-facing model names and switches the active
# profile. A switch to a different model is committed only after a probe
# call succeeds, and it always starts a fresh transcript because the stored
# history of one profile is not valid input for another.

from __future__ import annotations

import logging
from typing import Any, Dict, Protocol

from context import IDENTITY_TEMPLATE
from errors import InvalidModel
from history_utils import PROFILES, ModelProfile, build_single_turn_payload
from response_parser import is_model_error
from transcript_store import MessageStore

logger = logging.getLogger(__name__)

PROBE_MESSAGE = "Hello"

# lower-cased alias -> canonical model name
MODEL_ALIASES: Dict[str, str] = {
    "command-r-plus": "command-r-plus",
    "command r+": "command-r-plus",
    "command r": "command-r-plus",
    "r+": "command-r-plus",
    "command-a-03-2025": "command-a-03-2025",
    "command a": "command-a-03-2025",
    "command-a": "command-a-03-2025",
    "a": "command-a-03-2025",
    "command-r7b-12-2024": "command-r7b-12-2024",
    "command r7b": "command-r7b-12-2024",
    "r7b": "command-r7b-12-2024",
}

SUPPORTED_MODELS_HELP = """Supported models:
- Command R+ (aliases: r+, command r, command r+)
- Command A (aliases: a, command a, command-a-03-2025)
- Command R7B (aliases: r7b, command r7b, command-r7b-12-2024)"""


class Transport(Protocol):
    def post(self, path: str, json_body: Dict[str, Any]) -> Any: ...


def resolve_model(requested: str) -> ModelProfile:
    """Map an alias or canonical name to its profile."""
    key = " ".join(requested.strip().lower().split())
    canonical = MODEL_ALIASES.get(key, key)
    profile = PROFILES.get(canonical)
    if profile is None:
        raise InvalidModel(f"Invalid model name: {requested.strip()}")
    return profile


class ModelSwitchController:
    """Owns the active profile and keeps it consistent with the transcript."""

    def __init__(self, store: MessageStore, transport: Transport, active: ModelProfile) -> None:
        self.store = store
        self.transport = transport
        self.active = active

    def probe(self, profile: ModelProfile) -> None:
        """Send one throwaway request; raise InvalidModel if the API rejects the model."""
        payload = build_single_turn_payload(
            profile, PROBE_MESSAGE, IDENTITY_TEMPLATE.format(model=profile.name)
        )
        raw = self.transport.post(profile.api_path, payload)
        error = is_model_error(raw)
        if error is not None:
            logger.warning("Model probe rejected", extra={"model": profile.name, "error": error})
            raise InvalidModel(f"Error: {error}")

    def switch_to(self, requested: str) -> ModelProfile:
        """
        Switch the active model.

        Args:
            requested: a model alias or canonical name.

        Returns:
            The active profile after the call.

        Raises:
            InvalidModel: unknown name or the probe was rejected; the prior
            profile and transcript are left untouched.
            TransportFailure: the probe could not be sent; nothing changes.
            StorageError: the reset transcript could not be saved; the prior
            profile stays active.
        """
        target = resolve_model(requested)
        if target.name == self.active.name:
            return self.active

        self.probe(target)

        previous = self.active
        self.store.reset(target.bootstrap())
        self.active = target
        logger.info("Model switched", extra={"from": previous.name, "to": target.name})
        return target
