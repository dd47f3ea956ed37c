import pytest
from pydantic import ValidationError

from voice_agent.core.presets import (
    QualifyLeadArgs,
    customer_support_context,
    recruiter_context,
    sdr_context,
    tool_from_model,
)


def test_sdr_tools_generated_from_args_models():
    tools = {t.function.name: t.function for t in sdr_context().assistant.tools}
    assert set(tools) == {"schedule_meeting", "qualify_lead", "log_call_notes"}

    meeting = tools["schedule_meeting"].parameters
    assert meeting["type"] == "object"
    assert meeting["required"] == ["prospect_name", "meeting_type", "proposed_time"]
    assert meeting["properties"]["meeting_type"]["enum"] == ["demo", "discovery", "follow-up"]
    assert "title" not in meeting["properties"]["prospect_name"]


def test_optional_fields_collapse_to_plain_type():
    tool = tool_from_model("qualify_lead", "desc", QualifyLeadArgs)
    budget = tool.function.parameters["properties"]["budget"]
    assert budget == {"type": "string"}
    score = tool.function.parameters["properties"]["score"]
    assert score["minimum"] == 1 and score["maximum"] == 10


def test_every_tool_has_a_handler():
    for context in (sdr_context(), recruiter_context()):
        names = {t.function.name for t in context.assistant.tools}
        assert names == set(context.function_handlers)


def test_customer_support_has_no_handlers():
    context = customer_support_context()
    assert context.id == "customer-support"
    assert context.function_handlers == {}


def test_assistant_overrides_apply():
    context = sdr_context(name="Custom SDR")
    assert context.assistant.name == "Custom SDR"
    assert context.id == "sdr"


@pytest.mark.asyncio
async def test_qualify_lead_marks_qualified():
    handler = sdr_context().get_handler("qualify_lead")
    result = await handler({"prospect_name": "John", "company": "Acme", "need": "CRM", "score": 8})
    assert result["success"] is True
    assert result["qualified"] is True
    assert result["lead_id"].startswith("lead_")
    assert result["company"] == "Acme"

    low = await handler({"prospect_name": "John", "company": "Acme", "need": "CRM", "score": 3})
    assert low["qualified"] is False


@pytest.mark.asyncio
async def test_record_candidate_info_status():
    handler = recruiter_context().get_handler("record_candidate_info")
    result = await handler({"candidate_name": "Sarah", "current_role": "SWE", "overall_rating": 7})
    assert result["status"] == "promising"

    result = await handler({"candidate_name": "Sarah", "current_role": "SWE", "overall_rating": 5})
    assert result["status"] == "needs_review"


@pytest.mark.asyncio
async def test_assess_technical_skills_competency():
    handler = recruiter_context().get_handler("assess_technical_skills")
    result = await handler({
        "candidate_name": "Sarah",
        "skills_assessed": ["python", "sql"],
        "technical_rating": 9,
    })
    assert result["competency_level"] == "expert"
    assert result["assessment_id"].startswith("assessment_")


@pytest.mark.asyncio
async def test_handler_rejects_invalid_parameters():
    handler = sdr_context().get_handler("schedule_meeting")
    with pytest.raises(ValidationError):
        await handler({"prospect_name": "John", "meeting_type": "lunch", "proposed_time": "noon"})
