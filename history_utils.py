# history_utils.py
#
# Description: Model profiles and the projection of the stored transcript
#              into the request shape each Cohere model variant expects.
#              Profiles differ in role labels, the history field name, the
#              key that carries a turn's text and where the preamble lives.
#

# --------------------------------------------------------------------------- #
# imports
# --------------------------------------------------------------------------- #
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from transcript_store import Role, Turn

# --------------------------------------------------------------------------- #
# constants and type definitions
# --------------------------------------------------------------------------- #
BOOTSTRAP_MARKER = "System: Initialize conversation"
BOOTSTRAP_PAIR = (
    Turn(Role.USER, "System: Initialize conversation."),
    Turn(Role.ASSISTANT, "System: Conversation initialized and ready."),
)

WEB_SEARCH_CONNECTOR = {"id": "web-search"}

V1_ROLE_LABELS = {Role.SYSTEM: "System", Role.USER: "User", Role.ASSISTANT: "Chatbot"}
V2_ROLE_LABELS = {Role.SYSTEM: "system", Role.USER: "user", Role.ASSISTANT: "assistant"}

WireHistory = List[Dict[str, str]]


@dataclass(frozen=True)
class ModelProfile:
    """The wire dialect and constraints of one backend model variant."""
    name: str
    display_name: str
    api_path: str
    role_labels: Mapping[Role, str] = field(default_factory=lambda: dict(V1_ROLE_LABELS))
    history_field: str = "chat_history"
    text_field: str = "content"
    # the pending user text travels in its own "message" field
    sends_current_message: bool = True
    # the preamble is kept as the first transcript turn instead of a side-band field
    preamble_in_transcript: bool = False
    requires_bootstrap: bool = False
    supports_connectors: bool = True

    def bootstrap(self) -> Sequence[Turn]:
        return BOOTSTRAP_PAIR if self.requires_bootstrap else ()

    def label(self, role: Role) -> str:
        return self.role_labels[role]


COMMAND_R_PLUS = ModelProfile(
    name="command-r-plus",
    display_name="Command R+",
    api_path="/v1/chat",
)

COMMAND_A = ModelProfile(
    name="command-a-03-2025",
    display_name="Command A",
    api_path="/v1/chat",
    text_field="message",
    requires_bootstrap=True,
)

COMMAND_R7B = ModelProfile(
    name="command-r7b-12-2024",
    display_name="Command R7B",
    api_path="/v2/chat",
    role_labels=dict(V2_ROLE_LABELS),
    history_field="messages",
    sends_current_message=False,
    preamble_in_transcript=True,
    supports_connectors=False,
)

PROFILES: Dict[str, ModelProfile] = {
    p.name: p for p in (COMMAND_R_PLUS, COMMAND_A, COMMAND_R7B)
}
DEFAULT_MODEL = COMMAND_R_PLUS.name


# --------------------------------------------------------------------------- #
# projection
# --------------------------------------------------------------------------- #
def _is_bootstrap_only(history: WireHistory, profile: ModelProfile) -> bool:
    if len(history) != 2:
        return False
    return BOOTSTRAP_MARKER in history[0].get(profile.text_field, "")


def project(
    transcript: Sequence[Turn],
    profile: ModelProfile,
    pending_user_text: Optional[str] = None,
) -> WireHistory:
    """
    Builds the history sent with a request, without touching the transcript.
    It:
    - Drops the most recent turn equal to the pending text when the request
      also carries that text as the current message.
    - Drops system turns unless the profile keeps the preamble in the history.
    - Relabels roles and renames the text key for the profile.
    - Sends an empty history instead of a lone bootstrap pair.
    Returns:
    The wire history as a list of plain dicts.
    """
    turns = list(transcript)

    # string equality is the only link between the pending text and its turn;
    # if the user repeats themselves only the latest copy is dropped
    if profile.sends_current_message and pending_user_text is not None:
        for idx in range(len(turns) - 1, -1, -1):
            if turns[idx].content == pending_user_text:
                del turns[idx]
                break

    history: WireHistory = []
    for turn in turns:
        if turn.role is Role.SYSTEM and not profile.preamble_in_transcript:
            continue
        history.append({"role": profile.label(turn.role), profile.text_field: turn.content})

    if profile.requires_bootstrap and (not history or _is_bootstrap_only(history, profile)):
        return []
    return history


# --------------------------------------------------------------------------- #
# request bodies
# --------------------------------------------------------------------------- #
def build_chat_payload(
    profile: ModelProfile,
    message: str,
    preamble: str,
    history: WireHistory,
) -> Dict[str, Any]:
    """Request body for a multi-turn chat call."""
    if not profile.sends_current_message:
        # history already holds the system turn and the pending user turn
        return {"model": profile.name, profile.history_field: history}
    return {
        "model": profile.name,
        "message": message,
        profile.history_field: history,
        "preamble": preamble,
    }


def build_single_turn_payload(
    profile: ModelProfile,
    message: str,
    preamble: str,
    web_search: bool = False,
) -> Dict[str, Any]:
    """Request body for a call that carries no conversation history."""
    if not profile.sends_current_message:
        payload: Dict[str, Any] = {
            "model": profile.name,
            profile.history_field: [
                {"role": profile.label(Role.SYSTEM), profile.text_field: preamble},
                {"role": profile.label(Role.USER), profile.text_field: message},
            ],
        }
    else:
        payload = {"model": profile.name, "message": message, "preamble": preamble}

    if web_search and profile.supports_connectors:
        payload["connectors"] = [WEB_SEARCH_CONNECTOR]
    return payload
