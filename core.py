# core.py
# Description: Core conversation logic for the chat client. Ties together
# the transcript, preamble, history projection, transport and response
# parsing, and turns every outcome into a TurnResult for the terminal layer.

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from config import AppConfig, set_config_var
from context import ContextInjector, Preferences
from errors import ChatFailure, TransportFailure
from history_utils import (
    ModelProfile,
    build_chat_payload,
    build_single_turn_payload,
    project,
)
from logging_config import set_debug_level
from model_switch import ModelSwitchController, Transport
from response_parser import ParsedResponse, format_citations, parse
from transcript_store import MessageStore, Role, Turn
from uploads import UPLOAD_ACK_ASSISTANT, UPLOAD_ACK_USER, UploadedFile, load_upload

logger = logging.getLogger(__name__)

MODEL_NAME_QUESTION = (
    "What is your model name and version? Please be very specific and include "
    "all version details. Answer in 15 words or less."
)
MODEL_NAME_PREAMBLE = (
    "You are an AI assistant powered by Cohere. Please answer questions about "
    "your model name and version truthfully."
)
CAPABILITIES_QUESTION = (
    "What are your key capabilities compared to other Cohere models? "
    "Answer in 25 words or less."
)
CAPABILITIES_PREAMBLE = (
    "You are an AI assistant powered by Cohere. Please answer questions about "
    "your capabilities truthfully and concisely."
)

LAST_REQUEST_FILE = "last-request.json"
LAST_ERROR_FILE = "last-error.json"


@dataclass(frozen=True)
class TurnResult:
    """What the terminal shows for one exchange."""
    display_role: str
    display_text: str
    citation_block: str = ""
    error: Optional[ChatFailure] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ModelInfo:
    name: str
    display_name: str
    self_description: str
    capabilities: str


class ChatSession:
    """One interactive session: owns the transcript and the active model."""

    def __init__(
        self,
        settings: AppConfig,
        store: MessageStore,
        transport: Transport,
        injector: ContextInjector,
        profile: ModelProfile,
        config_file: Optional[Path] = None,
    ) -> None:
        self.settings = settings
        self.store = store
        self.transport = transport
        self.injector = injector
        self.config_file = config_file
        self.switcher = ModelSwitchController(store, transport, profile)
        self.uploaded_file: Optional[UploadedFile] = None

        if profile.requires_bootstrap and len(store) == 0:
            store.reset(profile.bootstrap())

    # ------------------------------------------------------------------
    # state
    # ------------------------------------------------------------------
    @property
    def profile(self) -> ModelProfile:
        return self.switcher.active

    @property
    def debug(self) -> bool:
        return self.settings.debug

    def preferences(self) -> Preferences:
        return Preferences(
            model_name=self.profile.name,
            inject_location=bool(self.settings.inject_location),
            inject_time=bool(self.settings.inject_time),
        )

    def refresh_preamble(self) -> str:
        preamble = self.injector.refresh(self.preferences(), self.uploaded_file)
        if self.profile.preamble_in_transcript:
            self.store.set_preamble(preamble)
        return preamble

    def assistant_label(self, web: bool = False) -> str:
        suffix = " - web" if web else ""
        return f"Assistant ({self.profile.display_name}{suffix})"

    # ------------------------------------------------------------------
    # conversation
    # ------------------------------------------------------------------
    def send_message(self, text: str) -> TurnResult:
        """
        Run one multi-turn exchange.

        The user turn is persisted before the request. The assistant turn is
        appended only when the response yields text, so a failed exchange
        leaves the user turn without a reply.
        """
        self.store.append(Turn(Role.USER, text))
        preamble = self.refresh_preamble()
        history = project(self.store.snapshot(), self.profile, text)
        payload = build_chat_payload(self.profile, text, preamble, history)

        logger.debug(
            "Chat request prepared",
            extra={"model": self.profile.name, "history_turns": len(history), "stored_turns": len(self.store)},
        )
        self._write_debug_file(LAST_REQUEST_FILE, payload)

        label = self.assistant_label()
        raw, failure = self._post(payload)
        if failure is not None:
            return TurnResult(label, failure.message, error=failure)

        parsed = parse(raw)
        if not parsed.ok:
            return self._failed(label, parsed)

        self.store.append(Turn(Role.ASSISTANT, parsed.text))
        return TurnResult(label, parsed.text, format_citations(parsed.citations))

    def web_search(self, query: str) -> TurnResult:
        """Single-turn question with the web-search connector; the transcript is untouched."""
        preamble = self.injector.refresh(self.preferences(), self.uploaded_file)
        if not self.profile.supports_connectors:
            logger.warning("Model has no web-search connector; sending plain query", extra={"model": self.profile.name})
        payload = build_single_turn_payload(self.profile, query, preamble, web_search=True)
        self._write_debug_file(LAST_REQUEST_FILE, payload)

        label = self.assistant_label(web=True)
        raw, failure = self._post(payload)
        if failure is not None:
            return TurnResult(label, failure.message, error=failure)

        parsed = parse(raw)
        if not parsed.ok:
            return self._failed(label, parsed)
        return TurnResult(label, parsed.text, format_citations(parsed.citations))

    def upload(self, raw_path: str) -> UploadedFile:
        """Ingest a file; raises UploadRejected and leaves state alone on failure."""
        uploaded = load_upload(raw_path)
        self.uploaded_file = uploaded
        self.store.append(Turn(Role.USER, UPLOAD_ACK_USER.format(path=uploaded.path)))
        self.store.append(Turn(Role.ASSISTANT, UPLOAD_ACK_ASSISTANT))
        return uploaded

    # ------------------------------------------------------------------
    # model management
    # ------------------------------------------------------------------
    def switch_model(self, requested: str) -> ModelProfile:
        """Switch models; raises InvalidModel or TransportFailure without changing state."""
        previous = self.profile
        profile = self.switcher.switch_to(requested)
        if profile.name != previous.name:
            # the uploaded snippet belonged to the discarded conversation
            self.uploaded_file = None
        self.settings.default_model = profile.name
        self._persist_setting("default_model", profile.name)
        return profile

    def describe_model(self) -> ModelInfo:
        """Ask the active model about itself (the :i command)."""
        answers = []
        for question, preamble in (
            (MODEL_NAME_QUESTION, MODEL_NAME_PREAMBLE),
            (CAPABILITIES_QUESTION, CAPABILITIES_PREAMBLE),
        ):
            payload = build_single_turn_payload(self.profile, question, preamble)
            raw, failure = self._post(payload)
            if failure is not None:
                answers.append(failure.message)
                continue
            parsed = parse(raw)
            answers.append(parsed.text if parsed.ok else parsed.error.message)  # type: ignore[union-attr]
        return ModelInfo(
            name=self.profile.name,
            display_name=self.profile.display_name,
            self_description=answers[0],
            capabilities=answers[1],
        )

    def toggle_debug(self) -> bool:
        self.settings.debug_mode = not self.debug
        self._persist_setting("debug_mode", self.settings.debug_mode)
        set_debug_level(self.settings.debug_mode)
        return self.settings.debug_mode

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _post(self, payload: Dict[str, Any]) -> Tuple[Any, Optional[ChatFailure]]:
        try:
            return self.transport.post(self.profile.api_path, payload), None
        except TransportFailure as e:
            logger.error("Transport failure", extra={"error": str(e), "cause": repr(e.__cause__)})
            return None, ChatFailure.from_exception(e)

    def _failed(self, label: str, parsed: ParsedResponse) -> TurnResult:
        failure = parsed.error
        if failure is None:
            return TurnResult(label, parsed.text)
        if failure.detail is not None:
            self._write_debug_file(LAST_ERROR_FILE, failure.detail)
        return TurnResult(label, failure.message, error=failure)

    def _persist_setting(self, key: str, value: Any) -> None:
        if self.config_file is not None:
            set_config_var(self.config_file, key, value)

    def _write_debug_file(self, name: str, content: Any) -> None:
        if not self.debug:
            return
        text = content if isinstance(content, str) else json.dumps(content, indent=2, ensure_ascii=False)
        path = self.settings.debug_dir / name
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        except OSError as e:
            logger.warning("Could not write debug file", extra={"path": str(path), "error": str(e)})
            return
        logger.debug("Debug file written", extra={"path": str(path)})

