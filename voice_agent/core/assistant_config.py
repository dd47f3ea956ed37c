from typing import Any, Dict, List, Literal, Mapping, Optional
from pydantic import BaseModel, Field

from voice_agent.core.template import render


class VoiceConfig(BaseModel):
    provider: str
    voice_id: str

    class Config:
        frozen = True


class ModelConfig(BaseModel):
    provider: str
    model: str
    temperature: float = 0.7
    max_tokens: Optional[int] = None

    class Config:
        frozen = True


class TranscriberConfig(BaseModel):
    provider: str
    model: Optional[str] = None
    language: Optional[str] = None

    class Config:
        frozen = True


class FunctionDeclaration(BaseModel):
    name: str
    description: str
    parameters: Dict[str, Any] = Field(default_factory=lambda: {"type": "object", "properties": {}, "required": []})

    class Config:
        frozen = True


class ToolConfig(BaseModel):
    """A function the remote model may invoke mid-call."""
    type: Literal["function"] = "function"
    function: FunctionDeclaration

    class Config:
        frozen = True


DEFAULT_VOICES: Dict[str, VoiceConfig] = {
    "openai-alloy": VoiceConfig(provider="openai", voice_id="alloy"),
    "openai-echo": VoiceConfig(provider="openai", voice_id="echo"),
    "openai-nova": VoiceConfig(provider="openai", voice_id="nova"),
    "openai-shimmer": VoiceConfig(provider="openai", voice_id="shimmer"),
    "playht-jennifer": VoiceConfig(provider="playht", voice_id="jennifer"),
    "playht-ryan": VoiceConfig(provider="playht", voice_id="ryan"),
    "11labs-rachel": VoiceConfig(provider="11labs", voice_id="21m00Tcm4TlvDq8ikWAM"),
}

DEFAULT_MODELS: Dict[str, ModelConfig] = {
    "gpt-3.5-turbo": ModelConfig(provider="openai", model="gpt-3.5-turbo", temperature=0.7),
    "gpt-4": ModelConfig(provider="openai", model="gpt-4", temperature=0.7, max_tokens=300),
    "gpt-4o": ModelConfig(provider="openai", model="gpt-4o", temperature=0.7),
}

DEFAULT_TRANSCRIBERS: Dict[str, TranscriberConfig] = {
    "deepgram-nova": TranscriberConfig(provider="deepgram", model="nova-2"),
    "deepgram-base": TranscriberConfig(provider="deepgram", model="base"),
    "whisper": TranscriberConfig(provider="whisper"),
}

DEFAULT_ASSISTANT_NAME = "AI Assistant"
DEFAULT_FIRST_MESSAGE = "Hello! How can I help you today?"
DEFAULT_SYSTEM_PROMPT = "You are a helpful AI assistant."


class AssistantConfig(BaseModel):
    """
    Conversational persona template for one context.

    ``first_message`` and ``system_prompt`` may carry ``{{key}}`` placeholders
    that are filled per call by :meth:`personalize`.
    """
    name: str
    first_message: str
    system_prompt: str
    model: ModelConfig
    voice: VoiceConfig
    transcriber: Optional[TranscriberConfig] = None
    tools: Optional[List[ToolConfig]] = None

    class Config:
        frozen = True

    def personalize(self, dynamic_data: Mapping[str, Any]) -> "AssistantConfig":
        """Returns a copy with the templates rendered against ``dynamic_data``."""
        return self.model_copy(update={
            "first_message": render(self.first_message, dynamic_data),
            "system_prompt": render(self.system_prompt, dynamic_data),
        })

    def to_vapi_payload(self) -> Dict[str, Any]:
        """
        Converts to the assistant payload handed to the voice provider on start.
        Transcriber and tools are not sent.
        """
        model: Dict[str, Any] = {
            "provider": self.model.provider,
            "model": self.model.model,
            "temperature": self.model.temperature,
        }
        if self.model.max_tokens:
            model["maxTokens"] = self.model.max_tokens
        model["messages"] = [{"role": "system", "content": self.system_prompt}]

        return {
            "name": self.name,
            "firstMessage": self.first_message,
            "model": model,
            "voice": {
                "provider": self.voice.provider,
                "voiceId": self.voice.voice_id,
            },
        }

    @classmethod
    def from_vapi_payload(cls, payload: Dict[str, Any]) -> "AssistantConfig":
        """
        Create an AssistantConfig from a Vapi-style assistant payload.
        Missing sections fall back to the gpt-3.5-turbo / openai-alloy defaults.
        """
        model_config = payload.get("model") or {}
        voice_config = payload.get("voice") or {}
        transcriber_config = payload.get("transcriber")

        # Extract system prompt
        system_prompt = DEFAULT_SYSTEM_PROMPT
        messages = model_config.get("messages", [])
        if isinstance(messages, list):
            for msg in messages:
                if isinstance(msg, dict) and msg.get("role") == "system":
                    system_prompt = msg.get("content", "")
                    break

        if model_config:
            base = DEFAULT_MODELS["gpt-3.5-turbo"]
            model = ModelConfig(
                provider=model_config.get("provider", base.provider),
                model=model_config.get("model", base.model),
                temperature=model_config.get("temperature", base.temperature),
                max_tokens=model_config.get("maxTokens"),
            )
        else:
            model = DEFAULT_MODELS["gpt-3.5-turbo"]

        if voice_config:
            voice = VoiceConfig(provider=voice_config["provider"], voice_id=voice_config["voiceId"])
        else:
            voice = DEFAULT_VOICES["openai-alloy"]

        transcriber = None
        if transcriber_config:
            transcriber = TranscriberConfig(**transcriber_config)

        tools = None
        if payload.get("tools"):
            tools = [ToolConfig.model_validate(t) for t in payload["tools"]]

        return cls(
            name=payload.get("name") or DEFAULT_ASSISTANT_NAME,
            first_message=payload.get("firstMessage") or DEFAULT_FIRST_MESSAGE,
            system_prompt=system_prompt,
            model=model,
            voice=voice,
            transcriber=transcriber,
            tools=tools,
        )
