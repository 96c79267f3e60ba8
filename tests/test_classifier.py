"""Tests for provider dispatch and the provider registry."""

import pytest

from agent_deck.chat.models import ParsedUpdate, ToolCallBuffer
from agent_deck.providers import classifier
from agent_deck.providers.classifier import classify
from agent_deck.providers.registry import PROVIDER_DEFS, ProviderTag, get_provider_def, parse_provider_tag


class TestClassify:
    def test_dispatches_by_tag(self):
        assert classify("gemini", {"delta": "Hi"}).updates == [ParsedUpdate.text("Hi")]
        assert classify(ProviderTag.CODEX, {"method": "turn/completed"}).turn_ended

    def test_unknown_provider_is_empty(self):
        buffer = ToolCallBuffer(tool_name="Read")
        result = classify("copilot", {"delta": "Hi"}, buffer)

        assert result.is_empty
        assert result.tool_buffer is buffer

    @pytest.mark.parametrize("payload", [None, "text", 42, ["delta"]])
    def test_non_object_payload_is_empty(self, payload):
        assert classify("gemini", payload).is_empty

    def test_non_streaming_providers_keep_buffer(self):
        buffer = ToolCallBuffer(tool_name="Read", block_index=1, partial_args_json='{"a"')

        assert classify("codex", {"method": "turn/started"}, buffer).tool_buffer is buffer
        assert classify("gemini", {"delta": "x"}, buffer).tool_buffer is buffer

    def test_classifier_errors_are_absorbed(self, monkeypatch):
        def explode(data, status_limit):
            raise RuntimeError("boom")

        monkeypatch.setattr(classifier, "classify_gemini_event", explode)
        buffer = ToolCallBuffer(tool_name="Bash")
        result = classify("gemini", {"delta": "x"}, buffer)

        assert result.is_empty
        assert result.tool_buffer is buffer

    def test_non_string_provider_is_empty(self):
        buffer = ToolCallBuffer(tool_name="Read")
        result = classify(1, {"delta": "Hi"}, buffer)

        assert result.is_empty
        assert result.tool_buffer is buffer

    def test_status_limit_is_applied(self):
        result = classify("gemini", {"status": "s" * 50}, status_limit=10)

        assert len(result.live_status) == 10


class TestRegistry:
    def test_parse_is_lenient(self):
        assert parse_provider_tag(" Codex ") is ProviderTag.CODEX
        assert parse_provider_tag("unknown") is None

    def test_every_tag_has_definition(self):
        assert set(PROVIDER_DEFS) == set(ProviderTag)

    def test_unknown_provider_raises(self):
        with pytest.raises(ValueError, match="Expected one of"):
            get_provider_def("copilot")

    @pytest.mark.parametrize("value", [None, 1, 2.5, ["codex"]])
    def test_non_string_tag_is_unknown(self, value):
        assert parse_provider_tag(value) is None
