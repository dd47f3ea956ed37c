import pytest
from pydantic import ValidationError

from voice_agent.core.assistant_config import (
    DEFAULT_MODELS,
    DEFAULT_VOICES,
    AssistantConfig,
    ModelConfig,
)
from voice_agent.core.context_config import ContextConfig


@pytest.fixture
def assistant():
    return AssistantConfig(
        name="SDR Assistant",
        first_message="Hi {{prospectName}}! Calling from {{companyName}}.",
        system_prompt="You are calling {{prospectName}} at {{companyName}}.",
        model=DEFAULT_MODELS["gpt-4"],
        voice=DEFAULT_VOICES["openai-nova"],
    )


def test_personalize_renders_both_templates(assistant):
    personalized = assistant.personalize({"prospectName": "John", "companyName": "Acme"})
    assert personalized.first_message == "Hi John! Calling from Acme."
    assert personalized.system_prompt == "You are calling John at Acme."
    # Original template is untouched
    assert assistant.first_message.startswith("Hi {{prospectName}}")
    assert personalized.model == assistant.model


def test_vapi_payload_shape(assistant):
    payload = assistant.to_vapi_payload()
    assert payload == {
        "name": "SDR Assistant",
        "firstMessage": "Hi {{prospectName}}! Calling from {{companyName}}.",
        "model": {
            "provider": "openai",
            "model": "gpt-4",
            "temperature": 0.7,
            "maxTokens": 300,
            "messages": [{"role": "system", "content": "You are calling {{prospectName}} at {{companyName}}."}],
        },
        "voice": {"provider": "openai", "voiceId": "nova"},
    }


def test_vapi_payload_omits_unset_max_tokens(assistant):
    no_cap = assistant.model_copy(update={"model": ModelConfig(provider="openai", model="gpt-4o")})
    assert "maxTokens" not in no_cap.to_vapi_payload()["model"]


def test_from_vapi_payload_reads_wire_shape(assistant):
    parsed = AssistantConfig.from_vapi_payload(assistant.to_vapi_payload())
    assert parsed.name == assistant.name
    assert parsed.first_message == assistant.first_message
    assert parsed.system_prompt == assistant.system_prompt
    assert parsed.model.max_tokens == 300
    assert parsed.voice.voice_id == "nova"


def test_from_vapi_payload_with_tools_and_transcriber():
    parsed = AssistantConfig.from_vapi_payload({
        "name": "Helper",
        "transcriber": {"provider": "deepgram", "model": "nova-2"},
        "tools": [{
            "type": "function",
            "function": {"name": "lookup", "description": "Look something up"},
        }],
    })
    assert parsed.transcriber.model == "nova-2"
    assert parsed.tools[0].function.name == "lookup"
    assert parsed.system_prompt == "You are a helpful AI assistant."


def test_context_config_requires_fields(assistant):
    with pytest.raises(ValidationError):
        ContextConfig(id="x", description="no name", assistant=assistant)
    with pytest.raises(ValidationError):
        ContextConfig(id="x", name="No assistant")
    with pytest.raises(ValidationError):
        ContextConfig(id="", name="Empty id", assistant=assistant)


def test_context_config_rejects_non_callable_handlers(assistant):
    with pytest.raises(ValidationError):
        ContextConfig(id="x", name="X", assistant=assistant, function_handlers={"f": "not callable"})


def test_context_config_is_immutable(assistant):
    context = ContextConfig(id="x", name="X", assistant=assistant)
    with pytest.raises(ValidationError):
        context.name = "Changed"
