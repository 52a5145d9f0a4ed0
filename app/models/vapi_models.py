import json
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict, Any

# --- Incoming Request Models ---

class VapiFunction(BaseModel):
    name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("arguments", mode="before")
    @classmethod
    def _decode_arguments(cls, value):
        # Vapi sends arguments either as an object or as a JSON-encoded string
        if value is None or value == "":
            return {}
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError:
                return {}
        return value if isinstance(value, dict) else {}

class VapiToolCall(BaseModel):
    id: str = ""
    type: str = "function"
    function: VapiFunction

class VapiMessage(BaseModel):
    type: str
    toolCalls: List[VapiToolCall] = Field(default_factory=list)
    toolCallList: List[VapiToolCall] = Field(default_factory=list)
    call: Optional[Dict[str, Any]] = None

    @property
    def tool_calls(self) -> List[VapiToolCall]:
        return self.toolCalls or self.toolCallList

# Wrapper for the incoming JSON body from Vapi
class VapiWebhookPayload(BaseModel):
    message: VapiMessage


# --- Outgoing Response Models ---

class ToolCallResult(BaseModel):
    toolCallId: str
    result: str

class VapiToolCallResponse(BaseModel):
    results: List[ToolCallResult]

class VapiAssistantResponse(BaseModel):
    assistant: Dict[str, Any]
