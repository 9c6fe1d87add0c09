# transcript_store.py
#
# Description: In-memory conversation transcript mirrored to a JSON file on
#              disk. Every mutation rewrites the whole document so the file
#              always matches what the session holds in memory.
#

# --------------------------------------------------------------------------- #
# imports
# --------------------------------------------------------------------------- #
from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from errors import StorageError

logger = logging.getLogger(__name__)

# --------------------------------------------------------------------------- #
# constants and type definitions
# --------------------------------------------------------------------------- #
class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


# wire labels written by older versions of the client
LEGACY_ROLE_LABELS = {
    "system": Role.SYSTEM,
    "user": Role.USER,
    "assistant": Role.ASSISTANT,
    "chatbot": Role.ASSISTANT,
}


@dataclass(frozen=True)
class Turn:
    """One message in the conversation, tagged with a role."""
    role: Role
    content: str

    def to_dict(self) -> dict:
        return {"role": self.role.value, "content": self.content}

    @classmethod
    def from_dict(cls, data: Any) -> Optional["Turn"]:
        """Build a turn from a persisted entry, or None if it is unusable."""
        if not isinstance(data, dict):
            return None
        role = LEGACY_ROLE_LABELS.get(str(data.get("role", "")).strip().lower())
        content = data.get("content", data.get("message"))
        if role is None or not isinstance(content, str):
            return None
        return cls(role=role, content=content)


Transcript = Tuple[Turn, ...]


# --------------------------------------------------------------------------- #
# persistence
# --------------------------------------------------------------------------- #
class TranscriptFile:
    """Whole-document JSON persistence for the transcript."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> List[Turn]:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(
                "Could not read transcript; starting empty",
                extra={"path": str(self.path), "error": str(e)},
            )
            return []
        if not isinstance(data, list):
            logger.warning("Transcript is not a JSON array; ignoring it", extra={"path": str(self.path)})
            return []

        turns: List[Turn] = []
        for entry in data:
            turn = Turn.from_dict(entry)
            if turn is None:
                logger.warning("Skipping malformed transcript entry", extra={"entry": repr(entry)})
                continue
            turns.append(turn)
        return turns

    def save(self, turns: Iterable[Turn]) -> None:
        """Write the transcript to a temp file, then swap it into place."""
        payload = json.dumps([t.to_dict() for t in turns], indent=2, ensure_ascii=False)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=str(self.path.parent), prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(payload)
                os.chmod(tmp_name, 0o600)
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise StorageError(f"Could not write transcript to {self.path}: {e}") from e


# --------------------------------------------------------------------------- #
# message store
# --------------------------------------------------------------------------- #
class MessageStore:
    """Ordered transcript of turns, persisted after every mutation.

    Turns are never edited or removed one by one. The only in-place change is
    the leading system turn, which `set_preamble` replaces wholesale. Request
    specific filtering happens in `history_utils.project`, not here.
    """

    def __init__(self, persistence: TranscriptFile, turns: Sequence[Turn] = ()) -> None:
        self._persistence = persistence
        self._turns: List[Turn] = list(turns)

    @classmethod
    def load(cls, persistence: TranscriptFile) -> "MessageStore":
        turns = persistence.load()
        logger.info("Transcript loaded", extra={"turns": len(turns)})
        return cls(persistence, turns)

    def snapshot(self) -> Transcript:
        return tuple(self._turns)

    def __len__(self) -> int:
        return len(self._turns)

    def append(self, turn: Turn) -> None:
        self._commit(self._turns + [turn])

    def reset(self, bootstrap: Sequence[Turn] = ()) -> None:
        """Replace the transcript with `bootstrap` (usually empty)."""
        self._commit(list(bootstrap))
        logger.info("Transcript reset", extra={"bootstrap_turns": len(self._turns)})

    def set_preamble(self, text: str) -> None:
        """Store `text` as the leading system turn, replacing any previous one."""
        preamble = Turn(Role.SYSTEM, text)
        if self._turns and self._turns[0].role is Role.SYSTEM:
            if self._turns[0] == preamble:
                return
            turns = [preamble] + self._turns[1:]
        else:
            turns = [preamble] + self._turns
        self._commit(turns)

    def _commit(self, turns: List[Turn]) -> None:
        # memory only changes once the file holds the same turns
        self._persistence.save(turns)
        self._turns = turns
