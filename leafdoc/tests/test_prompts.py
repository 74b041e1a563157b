"""Tests for report context defaults and prompt building."""
import json

import pytest
from pydantic import ValidationError

from leafdoc.models import ChatRequest, ChatTurn, ReportContext
from leafdoc.prompts import build_analyze_prompt, build_chat_instruction


class TestReportContext:
    """Test ReportContext sentinel defaults."""

    def test_all_absent(self):
        context = ReportContext()
        assert context.plant_name == "Unknown"
        assert context.disease == "Unknown"
        assert context.severity == "N/A"
        assert context.health_score == "N/A"

    def test_null_and_blank_become_sentinels(self):
        context = ReportContext.model_validate(
            {"plantName": None, "disease": "  ", "severity": "", "healthScore": None}
        )
        assert context == ReportContext()

    def test_camel_case_keys(self):
        context = ReportContext.model_validate(
            {"plantName": "Tomato", "disease": "Blight", "severity": "High", "healthScore": 40}
        )
        assert context.plant_name == "Tomato"
        assert context.health_score == "40"

    def test_float_score(self):
        assert ReportContext.model_validate({"healthScore": 40.0}).health_score == "40"
        assert ReportContext.model_validate({"healthScore": 72.5}).health_score == "72.5"

    def test_unknown_keys_ignored(self):
        context = ReportContext.model_validate({"plantName": "Rose", "owner": "me"})
        assert context.plant_name == "Rose"


class TestChatRequest:
    """Test ChatRequest parsing."""

    def test_defaults(self):
        request = ChatRequest.model_validate({"message": "hi"})
        assert request.report_context is None
        assert request.history is None

    def test_history_turns(self):
        request = ChatRequest.model_validate({
            "message": "hi",
            "history": [{"role": "assistant", "content": "hello"}, {"role": "user"}],
        })
        assert request.history[0] == ChatTurn(role="assistant", content="hello")
        assert request.history[1].content is None

    def test_history_must_be_list(self):
        with pytest.raises(ValidationError):
            ChatRequest.model_validate({"message": "hi", "history": "nope"})


class TestBuildChatInstruction:
    """Test build_chat_instruction."""

    def test_includes_report(self):
        context = ReportContext.model_validate(
            {"plantName": "Tomato", "disease": "Blight", "severity": "High", "healthScore": 40}
        )
        instruction = build_chat_instruction(context)
        assert "Plant: Tomato" in instruction
        assert "Disease: Blight" in instruction
        assert "Severity: High" in instruction
        assert "Health Score: 40%" in instruction
        assert "Only answer plant-health related questions." in instruction

    def test_sentinels(self):
        instruction = build_chat_instruction(ReportContext())
        assert "Plant: Unknown" in instruction
        assert "Severity: N/A" in instruction


class TestBuildAnalyzePrompt:
    """Test build_analyze_prompt."""

    def test_language(self):
        assert "Use fr for any text" in build_analyze_prompt("fr")

    def test_default_language(self):
        assert "Use en for any text" in build_analyze_prompt("")

    def test_schema_example_is_valid_json(self):
        prompt = build_analyze_prompt("en")
        schema = json.loads(prompt[prompt.index("{"):prompt.rindex("}") + 1])
        assert schema["isPlantLeaf"] is False
        assert set(schema["careGuide"]) == {"watering", "sunlight", "soil", "fertilizer", "temperature"}
