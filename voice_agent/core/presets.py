"""
Built-in conversation contexts.

The SDR and Recruiter contexts are registered automatically by
``ContextRegistry``; Customer Support is available on request. Function
handlers validate their parameters with the args models below, and the tool
declarations sent to the model are generated from the same models.
"""
import logging
import time
from typing import Any, Dict, List, Literal, Optional, Type

from pydantic import BaseModel, Field

from voice_agent.core.assistant_config import (
    DEFAULT_MODELS,
    DEFAULT_TRANSCRIBERS,
    DEFAULT_VOICES,
    AssistantConfig,
    FunctionDeclaration,
    ToolConfig,
)
from voice_agent.core.context_config import ContextConfig

logger = logging.getLogger(__name__)


# --- Tool Input Models ---

class ScheduleMeetingArgs(BaseModel):
    prospect_name: str = Field(..., description="Prospect full name")
    meeting_type: Literal["demo", "discovery", "follow-up"]
    proposed_time: str = Field(..., description="Proposed meeting time")


class QualifyLeadArgs(BaseModel):
    prospect_name: str
    company: str
    budget: Optional[str] = None
    authority: Optional[str] = None
    need: str
    timeline: Optional[str] = None
    score: float = Field(..., ge=1, le=10)


class LogCallNotesArgs(BaseModel):
    prospect_name: str
    notes: str = Field(..., description="Summary of the conversation")
    outcome: Optional[str] = Field(None, description="Call outcome, e.g. 'interested'")


class RecordCandidateInfoArgs(BaseModel):
    candidate_name: str
    current_role: str
    experience_years: Optional[float] = None
    skills: Optional[List[str]] = None
    overall_rating: float = Field(..., ge=1, le=10)


class AssessTechnicalSkillsArgs(BaseModel):
    candidate_name: str
    skills_assessed: List[str]
    technical_rating: float = Field(..., ge=1, le=10)
    strengths: Optional[List[str]] = None


class LogInterviewNotesArgs(BaseModel):
    candidate_name: str
    notes: str = Field(..., description="Summary of the interview")
    next_steps: Optional[str] = None


def _clean_schema(schema: Dict[str, Any]) -> Dict[str, Any]:
    """Strips pydantic-only keys and collapses Optional[...] to its non-null type."""
    if "anyOf" in schema:
        valid_types = [x for x in schema["anyOf"] if x.get("type") != "null"]
        if valid_types:
            merged = {k: v for k, v in schema.items() if k not in ("anyOf", "default")}
            merged.update(valid_types[0])
            schema = merged

    cleaned = {}
    for key, value in schema.items():
        if key == "title" or (key == "default" and value is None):
            continue
        if key == "properties":
            value = {name: _clean_schema(prop) for name, prop in value.items()}
        elif key == "items" and isinstance(value, dict):
            value = _clean_schema(value)
        cleaned[key] = value
    return cleaned


def tool_from_model(name: str, description: str, args_model: Type[BaseModel]) -> ToolConfig:
    """Builds a function tool declaration from a pydantic args model."""
    schema = _clean_schema(args_model.model_json_schema())
    parameters = {
        "type": "object",
        "properties": schema.get("properties", {}),
        "required": schema.get("required", []),
    }
    return ToolConfig(function=FunctionDeclaration(name=name, description=description, parameters=parameters))


def _now_ms() -> int:
    return int(time.time() * 1000)


# --- SDR ---

async def schedule_meeting(parameters: Dict[str, Any]) -> Dict[str, Any]:
    logger.info(f"[SDR] Function called: schedule_meeting {parameters}")
    ScheduleMeetingArgs(**parameters)
    return {
        "success": True,
        "message": "Meeting scheduled successfully",
        "meeting_id": f"meeting_{_now_ms()}",
        **parameters,
    }


async def qualify_lead(parameters: Dict[str, Any]) -> Dict[str, Any]:
    logger.info(f"[SDR] Function called: qualify_lead {parameters}")
    args = QualifyLeadArgs(**parameters)
    return {
        "success": True,
        "message": "Lead qualification recorded",
        "lead_id": f"lead_{_now_ms()}",
        "qualified": args.score >= 6,
        **parameters,
    }


async def log_call_notes(parameters: Dict[str, Any]) -> Dict[str, Any]:
    logger.info(f"[SDR] Function called: log_call_notes {parameters}")
    LogCallNotesArgs(**parameters)
    return {
        "success": True,
        "message": "Call notes logged",
        "note_id": f"note_{_now_ms()}",
        **parameters,
    }


SDR_TOOLS: List[ToolConfig] = [
    tool_from_model("schedule_meeting", "Schedule a follow-up meeting with the prospect", ScheduleMeetingArgs),
    tool_from_model("qualify_lead", "Record lead qualification using BANT criteria", QualifyLeadArgs),
    tool_from_model("log_call_notes", "Log notes about the sales call", LogCallNotesArgs),
]

SDR_FIRST_MESSAGE = (
    "Hi {{prospectName}}! I'm calling from {{companyName}} to discuss an exciting opportunity. "
    "Do you have a quick moment to chat?"
)

SDR_SYSTEM_PROMPT = """You are an experienced Sales Development Representative calling {{prospectName}} from {{companyName}}. Focus on:
1. Building rapport quickly with {{prospectName}}
2. Qualifying leads using BANT criteria
3. Scheduling meetings with qualified prospects
4. Handling objections gracefully
5. Being concise and professional

The prospect's name is {{prospectName}} and they work at {{companyName}}.
Available functions: schedule_meeting, qualify_lead, log_call_notes"""


def sdr_context(**assistant_overrides: Any) -> ContextConfig:
    assistant = AssistantConfig(
        name="SDR Assistant",
        first_message=SDR_FIRST_MESSAGE,
        system_prompt=SDR_SYSTEM_PROMPT,
        model=DEFAULT_MODELS["gpt-4"],
        voice=DEFAULT_VOICES["openai-nova"],
        transcriber=DEFAULT_TRANSCRIBERS["deepgram-nova"],
        tools=SDR_TOOLS,
    )
    return ContextConfig(
        id="sdr",
        name="Sales Development Representative",
        description="Voice agent optimized for sales outreach and lead qualification",
        assistant=assistant.model_copy(update=assistant_overrides),
        function_handlers={
            "schedule_meeting": schedule_meeting,
            "qualify_lead": qualify_lead,
            "log_call_notes": log_call_notes,
        },
    )


# --- Recruiter ---

async def record_candidate_info(parameters: Dict[str, Any]) -> Dict[str, Any]:
    logger.info(f"[Recruiter] Function called: record_candidate_info {parameters}")
    args = RecordCandidateInfoArgs(**parameters)
    return {
        "success": True,
        "message": "Candidate information recorded",
        "candidate_id": f"candidate_{_now_ms()}",
        "status": "promising" if args.overall_rating >= 7 else "needs_review",
        **parameters,
    }


async def assess_technical_skills(parameters: Dict[str, Any]) -> Dict[str, Any]:
    logger.info(f"[Recruiter] Function called: assess_technical_skills {parameters}")
    args = AssessTechnicalSkillsArgs(**parameters)
    return {
        "success": True,
        "message": "Technical assessment recorded",
        "assessment_id": f"assessment_{_now_ms()}",
        "competency_level": "expert" if args.technical_rating >= 8 else "proficient",
        **parameters,
    }


async def log_interview_notes(parameters: Dict[str, Any]) -> Dict[str, Any]:
    logger.info(f"[Recruiter] Function called: log_interview_notes {parameters}")
    LogInterviewNotesArgs(**parameters)
    return {
        "success": True,
        "message": "Interview notes logged",
        "note_id": f"note_{_now_ms()}",
        **parameters,
    }


RECRUITER_TOOLS: List[ToolConfig] = [
    tool_from_model("record_candidate_info", "Record candidate information and assessment", RecordCandidateInfoArgs),
    tool_from_model("assess_technical_skills", "Record technical skills evaluation", AssessTechnicalSkillsArgs),
    tool_from_model("log_interview_notes", "Log notes about the interview", LogInterviewNotesArgs),
]

RECRUITER_FIRST_MESSAGE = (
    "Hello {{candidateName}}! Thank you for taking the time to speak with me today about the "
    "{{position}} role. I'm excited to learn more about your background."
)

RECRUITER_SYSTEM_PROMPT = """You are an experienced recruiter conducting a phone screen with {{candidateName}} for the {{position}} role at {{companyName}}. Focus on:
1. Creating a welcoming atmosphere for {{candidateName}}
2. Assessing candidate qualifications for the {{position}} role
3. Evaluating technical skills relevant to {{position}}
4. Gauging cultural fit at {{companyName}}
5. Collecting detailed information

The candidate's name is {{candidateName}} and the position is {{position}} at {{companyName}}.
Available functions: record_candidate_info, assess_technical_skills, log_interview_notes"""


def recruiter_context(**assistant_overrides: Any) -> ContextConfig:
    assistant = AssistantConfig(
        name="Recruiter Assistant",
        first_message=RECRUITER_FIRST_MESSAGE,
        system_prompt=RECRUITER_SYSTEM_PROMPT,
        model=DEFAULT_MODELS["gpt-4"],
        voice=DEFAULT_VOICES["openai-shimmer"],
        transcriber=DEFAULT_TRANSCRIBERS["deepgram-nova"],
        tools=RECRUITER_TOOLS,
    )
    return ContextConfig(
        id="recruiter",
        name="Recruiter",
        description="Voice agent optimized for recruiting and candidate screening",
        assistant=assistant.model_copy(update=assistant_overrides),
        function_handlers={
            "record_candidate_info": record_candidate_info,
            "assess_technical_skills": assess_technical_skills,
            "log_interview_notes": log_interview_notes,
        },
    )


# --- Customer Support ---

def customer_support_context(**assistant_overrides: Any) -> ContextConfig:
    assistant = AssistantConfig(
        name="Support Assistant",
        first_message=(
            "Hello! I'm here to help you with any questions or issues you might have. "
            "How can I assist you today?"
        ),
        system_prompt=(
            "You are a helpful customer support representative. "
            "Be patient, empathetic, and solution-focused."
        ),
        model=DEFAULT_MODELS["gpt-3.5-turbo"],
        voice=DEFAULT_VOICES["openai-alloy"],
    )
    return ContextConfig(
        id="customer-support",
        name="Customer Support",
        description="Voice agent optimized for customer support and issue resolution",
        assistant=assistant.model_copy(update=assistant_overrides),
    )


def default_contexts() -> List[ContextConfig]:
    """Contexts registered automatically when a registry is created."""
    return [sdr_context(), recruiter_context()]
