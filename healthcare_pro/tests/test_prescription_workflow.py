import asyncio
import json

import pytest

from conftest import FakeLLM, prescription_json
from healthcare_pro.services import prompts
from healthcare_pro.services.workflows.base import SyncStatus, WorkflowState
from healthcare_pro.services.workflows.prescription import (
    PrescriptionWorkflow,
    check_interactions,
    clean_medication_names,
    lookup_medication,
)
from healthcare_pro.utils.exceptions import ApiError, ApiErrorKind, InvalidTransitionError, PersistenceError, ValidationError

RX = "Amoxicillin 500 mg three times daily\nIbuprofen 200 mg as needed"


class BrokenStore:
    def insert(self, table, values):
        raise PersistenceError(f"Could not insert {table}")


class UnreachableStore:
    def insert(self, table, values):
        raise ConnectionError("remote store unreachable")


def _analyze(wf, text, llm, store, **kwargs):
    return asyncio.run(wf.analyze(text, llm, store, **kwargs))


def test_analysis_completes_and_is_saved(store):
    llm = FakeLLM(prescription_json())
    wf = _analyze(PrescriptionWorkflow("user-1"), RX, llm, store, profile={"age": 40})

    assert wf.state == WorkflowState.COMPLETE
    analysis = wf.result["analysis"]
    assert [m["name"] for m in analysis["medications"]] == ["Amoxicillin", "Ibuprofen"]
    assert analysis["isFallback"] is False
    assert wf.result["success"] is True
    assert wf.result["disclaimer"]

    call = llm.calls[0]
    assert call["temperature"] == 0.2
    assert call["top_p"] == 0.9
    assert call["system"] == prompts.PRESCRIPTION_SYSTEM_PROMPT
    assert "Amoxicillin 500 mg" in call["prompt"]

    rows = store.select("prescription_analyses")
    assert [r["id"] for r in rows] == [wf.analysis_id]
    assert rows[0]["analysis_type"] == "full"
    assert rows[0]["user_profile"] == {"age": 40}
    assert wf.sync_status == SyncStatus.SYNCED


@pytest.mark.parametrize("text", ["", "   ", "x" * 10001])
def test_bad_text_rejected_before_llm(store, text):
    llm = FakeLLM()
    wf = PrescriptionWorkflow("user-1")
    with pytest.raises(ValidationError):
        _analyze(wf, text, llm, store)
    assert llm.calls == []
    assert wf.state == WorkflowState.INITIAL


def test_unknown_analysis_type(store):
    with pytest.raises(ValidationError):
        _analyze(PrescriptionWorkflow("user-1"), RX, FakeLLM(), store, analysis_type="astrology")


def test_prose_answer_falls_back_to_text_extraction(store):
    llm = FakeLLM("I'm sorry, I could not read that prescription.")
    wf = _analyze(PrescriptionWorkflow("user-1"), RX, llm, store)

    assert wf.state == WorkflowState.COMPLETE
    analysis = wf.result["analysis"]
    assert analysis["isFallback"] is True
    assert [m["name"] for m in analysis["medications"]] == ["Amoxicillin", "Ibuprofen"]
    assert analysis["medications"][0]["dosage"] == "500 mg"


def test_broken_json_is_an_error(store):
    wf = _analyze(PrescriptionWorkflow("user-1"), RX, FakeLLM('{"medications": [1 2 3]}'), store)
    assert wf.state == WorkflowState.ERROR
    assert wf.error == "Failed to parse AI response. Please try again."
    assert store.select("prescription_analyses") == []


def test_rate_limit_message(store):
    wf = _analyze(PrescriptionWorkflow("user-1"), RX, FakeLLM(ApiError(ApiErrorKind.RATE_LIMITED)), store)
    assert wf.error == "Rate limit exceeded. Please try again in a few minutes."


def test_retry_reuses_input(store):
    llm = FakeLLM(ApiError(ApiErrorKind.NETWORK), prescription_json())
    wf = _analyze(PrescriptionWorkflow("user-1"), RX, llm, store, analysis_type="side-effects")
    assert wf.state == WorkflowState.ERROR
    assert wf.error == "Analysis failed. Please try again."

    asyncio.run(wf.retry(llm, store))
    assert wf.state == WorkflowState.COMPLETE
    assert llm.calls[0]["prompt"] == llm.calls[1]["prompt"]
    assert wf.analysis_type == "side-effects"


def test_retry_requires_error_state(store):
    with pytest.raises(InvalidTransitionError):
        asyncio.run(PrescriptionWorkflow("user-1").retry(FakeLLM(), store))


def test_save_failure_still_completes():
    wf = _analyze(PrescriptionWorkflow("user-1"), RX, FakeLLM(prescription_json()), BrokenStore())
    assert wf.state == WorkflowState.COMPLETE
    assert wf.sync_status == SyncStatus.FAILED
    assert wf.analysis_id is None


def test_clean_medication_names():
    assert clean_medication_names([" Warfarin ", "", "aspirin", "Aspirin"]) == ["Warfarin", "aspirin"]


def test_check_interactions():
    body = json.dumps({
        "interactions": [{"medications": ["Warfarin", "Aspirin"], "severity": "Major"}],
        "riskLevel": "High",
    })
    llm = FakeLLM(body)
    result = asyncio.run(check_interactions(["Warfarin", "Aspirin"], llm))

    assert result["success"] is True
    interaction = result["analysis"]["interactions"][0]
    assert interaction["severity"] == "Major"
    assert interaction["management"] == "Consult your pharmacist"
    assert result["analysis"]["riskLevel"] == "High"
    assert "Warfarin" in llm.calls[0]["prompt"]


def test_check_interactions_needs_a_name():
    llm = FakeLLM()
    with pytest.raises(ValidationError):
        asyncio.run(check_interactions(["  "], llm))
    assert llm.calls == []


def test_lookup_records_search(store):
    llm = FakeLLM(json.dumps({"medication": {"name": "Metformin", "genericName": "metformin"}}))
    result = asyncio.run(lookup_medication("Metformin", llm, store))

    assert result["info"]["medication"]["name"] == "Metformin"
    assert result["sync_status"] == "synced"
    rows = store.select("medication_searches")
    assert rows[0]["medication_name"] == "Metformin"


def test_lookup_fallback_and_failed_save():
    result = asyncio.run(lookup_medication("Metformin", FakeLLM("no idea"), BrokenStore()))
    assert result["info"]["isFallback"] is True
    assert result["info"]["medication"]["name"] == "Metformin"
    assert result["sync_status"] == "failed"


def test_unexpected_store_error_is_reported_as_failed_sync():
    wf = _analyze(PrescriptionWorkflow("user-1"), RX, FakeLLM(prescription_json()), UnreachableStore())
    assert wf.state == WorkflowState.COMPLETE
    assert wf.sync_status == SyncStatus.FAILED
    assert wf.sync_error == "remote store unreachable"

    result = asyncio.run(lookup_medication("Metformin", FakeLLM("no idea"), UnreachableStore()))
    assert result["info"]["medication"]["name"] == "Metformin"
    assert result["sync_status"] == "failed"
