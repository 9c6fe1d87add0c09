import pytest

from errors import ConnectionFailure, InvalidModel, StorageError
from history_utils import BOOTSTRAP_PAIR, COMMAND_A, COMMAND_R7B, COMMAND_R_PLUS
from model_switch import ModelSwitchController, resolve_model
from transcript_store import Role, Turn

OK_BODY = {"text": "Hello! How can I help?"}


class TestResolveModel:
    @pytest.mark.parametrize(
        "alias, expected",
        [
            ("r+", "command-r-plus"),
            ("Command R+", "command-r-plus"),
            ("command r", "command-r-plus"),
            ("A", "command-a-03-2025"),
            ("  command   a ", "command-a-03-2025"),
            ("command-a-03-2025", "command-a-03-2025"),
            ("R7B", "command-r7b-12-2024"),
        ],
    )
    def test_aliases_are_case_insensitive(self, alias, expected):
        assert resolve_model(alias).name == expected

    @pytest.mark.parametrize("name", ["gpt-4", "command-x", ""])
    def test_unknown_names_rejected(self, name):
        with pytest.raises(InvalidModel):
            resolve_model(name)


class TestModelSwitchController:
    @pytest.fixture
    def populated_store(self, store):
        store.append(Turn(Role.USER, "Hello"))
        store.append(Turn(Role.ASSISTANT, "Hi there"))
        return store

    def test_successful_switch_resets_transcript(self, populated_store, make_transport):
        # Arrange
        transport = make_transport([OK_BODY])
        controller = ModelSwitchController(populated_store, transport, COMMAND_R_PLUS)
        # Act
        profile = controller.switch_to("command a")
        # Assert
        assert profile is COMMAND_A
        assert controller.active is COMMAND_A
        assert populated_store.snapshot() == BOOTSTRAP_PAIR
        path, body = transport.calls[0]
        assert path == "/v1/chat"
        assert body["model"] == "command-a-03-2025"
        assert body["message"] == "Hello"

    def test_switch_to_profile_without_bootstrap_clears(self, populated_store, make_transport):
        controller = ModelSwitchController(populated_store, make_transport([OK_BODY]), COMMAND_A)
        controller.switch_to("r+")
        assert populated_store.snapshot() == ()

    def test_rejected_verification_leaves_state_unchanged(self, populated_store, make_transport):
        """An error body mentioning "invalid" aborts the switch atomically."""
        # Arrange
        before = populated_store.snapshot()
        transport = make_transport([{"message": "invalid request: unknown model"}])
        controller = ModelSwitchController(populated_store, transport, COMMAND_R_PLUS)
        # Act
        with pytest.raises(InvalidModel):
            controller.switch_to("r7b")
        # Assert
        assert controller.active is COMMAND_R_PLUS
        assert populated_store.snapshot() == before

    def test_unrelated_api_error_does_not_block(self, populated_store, make_transport):
        transport = make_transport([{"message": "rate limit exceeded, retry later"}])
        controller = ModelSwitchController(populated_store, transport, COMMAND_R_PLUS)
        assert controller.switch_to("a") is COMMAND_A

    def test_transport_failure_aborts_switch(self, populated_store, make_transport):
        before = populated_store.snapshot()
        transport = make_transport([ConnectionFailure("down")])
        controller = ModelSwitchController(populated_store, transport, COMMAND_R_PLUS)
        with pytest.raises(ConnectionFailure):
            controller.switch_to("a")
        assert controller.active is COMMAND_R_PLUS
        assert populated_store.snapshot() == before

    def test_failed_reset_keeps_previous_profile(self, populated_store, make_transport, monkeypatch):
        """If the reset cannot be saved, the switch is not committed."""
        # Arrange
        before = populated_store.snapshot()

        def refuse(turns):
            raise StorageError("Could not write transcript: disk full")

        monkeypatch.setattr(populated_store._persistence, "save", refuse)
        controller = ModelSwitchController(populated_store, make_transport([OK_BODY]), COMMAND_R_PLUS)
        # Act
        with pytest.raises(StorageError):
            controller.switch_to("a")
        # Assert
        assert controller.active is COMMAND_R_PLUS
        assert populated_store.snapshot() == before

    def test_same_model_sends_nothing_and_keeps_history(self, populated_store, make_transport):
        transport = make_transport([])
        before = populated_store.snapshot()
        controller = ModelSwitchController(populated_store, transport, COMMAND_R_PLUS)
        assert controller.switch_to("Command R+") is COMMAND_R_PLUS
        assert transport.calls == []
        assert populated_store.snapshot() == before

    def test_unknown_name_never_sends_request(self, populated_store, make_transport):
        transport = make_transport([])
        controller = ModelSwitchController(populated_store, transport, COMMAND_R_PLUS)
        with pytest.raises(InvalidModel):
            controller.switch_to("llama")
        assert transport.calls == []

    def test_verification_uses_messages_dialect_for_v2(self, store, make_transport):
        transport = make_transport([{"message": {"content": [{"type": "text", "text": "hi"}]}}])
        controller = ModelSwitchController(store, transport, COMMAND_R_PLUS)
        controller.switch_to("r7b")
        path, body = transport.calls[0]
        assert path == "/v2/chat"
        assert body["messages"][-1] == {"role": "user", "content": "Hello"}
        assert controller.active is COMMAND_R7B
