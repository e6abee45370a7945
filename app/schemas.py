from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from typing import Optional, Dict, Any, List, Union
import json

from app.models import BotDomain


# ------------------------------------------------------------------ #
#  Bot requests                                                       #
# ------------------------------------------------------------------ #

class CreateBotRequest(BaseModel):
    """Payload to create an intake bot locally and on OpenMic."""
    name: str = Field(..., min_length=1, description="Display name of the bot")
    domain: BotDomain = Field(..., description="medical | legal | receptionist")
    uid: Optional[str] = Field(None, description="OpenMic identifier to use if the platform does not assign one")
    prompt: Optional[str] = Field(None, description="Override the domain system prompt")
    voice: Optional[str] = Field(None, description="OpenMic voice (defaults to 'alloy')")

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Dr. Bot",
                "domain": "medical",
            }
        }


class UpdateBotRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    domain: Optional[BotDomain] = None
    uid: Optional[str] = None
    prompt: Optional[str] = None
    voice: Optional[str] = None


# ------------------------------------------------------------------ #
#  Call metadata                                                      #
# ------------------------------------------------------------------ #

class FunctionCallRecord(BaseModel):
    """One callback function invocation made by the bot during a call."""
    name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)
    result: Optional[Dict[str, Any]] = None
    timestamp: Optional[str] = None


class CallMetadata(BaseModel):
    """
    Typed view over the CallLog ``metadata`` JSON column.

    Known keys are validated; anything else the platform sends is kept as-is
    (``extra="allow"``) so nothing in the original payload is lost. A known key
    whose value does not fit its type is kept raw rather than rejected.
    """
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    callId: Optional[str] = None
    sessionId: Optional[str] = None
    processedAt: Optional[str] = None
    webhookProcessed: Optional[bool] = None
    domain: Optional[str] = None
    duration: Optional[float] = None
    cost: Optional[float] = None
    sentiment: Optional[str] = None
    summary: Optional[str] = None
    isSuccessful: Optional[bool] = None
    type: Optional[str] = None
    toPhoneNumber: Optional[str] = None
    fromPhoneNumber: Optional[str] = None
    callType: Optional[str] = None
    disconnectionReason: Optional[str] = None
    direction: Optional[str] = None
    createdAt: Optional[str] = None
    endedAt: Optional[str] = None
    functionCalls: Optional[List[FunctionCallRecord]] = None
    preCallData: Optional[Dict[str, Any]] = None

    @field_validator("*", mode="wrap")
    @classmethod
    def _keep_raw(cls, value, handler):
        try:
            return handler(value)
        except ValidationError:
            return value

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True, warnings=False)


# ------------------------------------------------------------------ #
#  Webhook payloads                                                   #
# ------------------------------------------------------------------ #

class _LenientPayload(BaseModel):
    """
    Base for inbound webhook shapes. Validation never fails: a field whose
    value has the wrong type is dropped back to None.
    """
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    @field_validator("*", mode="wrap")
    @classmethod
    def _drop_invalid(cls, value, handler):
        try:
            return handler(value)
        except ValidationError:
            return None

    @classmethod
    def parse(cls, body: Any):
        return cls.model_validate(body if isinstance(body, dict) else {})


class PreCallCallInfo(_LenientPayload):
    direction: Optional[str] = None
    from_number: Optional[str] = None
    to_number: Optional[str] = None
    attempt: Optional[int] = None
    bot_id: Optional[str] = None


class PreCallEvent(BaseModel):
    botUid: str = "unknown"
    callId: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    event: Optional[str] = None
    call: Optional[Dict[str, Any]] = None


class PreCallPayload(_LenientPayload):
    # OpenMic format
    event: Optional[str] = None
    call: Optional[PreCallCallInfo] = None
    # legacy flat format
    botUid: Optional[str] = None
    bot_uid: Optional[str] = None
    callId: Optional[str] = None
    call_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    def normalize(self) -> PreCallEvent:
        return PreCallEvent(
            botUid=(self.call.bot_id if self.call else None) or self.botUid or self.bot_uid or "unknown",
            callId=self.callId or self.call_id,
            metadata=self.metadata or {},
            event=self.event,
            call=self.call.model_dump(exclude_none=True) if self.call else None,
        )


def flatten_transcript(transcript: Union[str, List[Any], None]) -> str:
    """
    Collapse a transcript into one string.

    Array transcripts are joined with newlines; within a turn, list turns are
    joined with ": " (speaker, text) and object turns are JSON-encoded.
    """
    if isinstance(transcript, list):
        lines = []
        for turn in transcript:
            if isinstance(turn, list):
                lines.append(": ".join(str(part) for part in turn))
            elif isinstance(turn, str):
                lines.append(turn)
            else:
                lines.append(json.dumps(turn))
        return "\n".join(lines)
    return transcript or "No transcript available"


class PostCallEvent(BaseModel):
    botUid: str = "unknown"
    callId: str = "unknown"
    transcript: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


class PostCallPayload(_LenientPayload):
    # OpenMic session format
    type: Optional[str] = None
    sessionId: Optional[str] = None
    toPhoneNumber: Optional[str] = None
    fromPhoneNumber: Optional[str] = None
    callType: Optional[str] = None
    disconnectionReason: Optional[str] = None
    direction: Optional[str] = None
    createdAt: Optional[str] = None
    endedAt: Optional[str] = None
    transcript: Optional[Union[str, List[Any]]] = None
    summary: Optional[str] = None
    isSuccessful: Optional[bool] = None
    # legacy flat format
    botUid: Optional[str] = None
    bot_uid: Optional[str] = None
    callId: Optional[str] = None
    call_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    def normalize(self) -> PostCallEvent:
        metadata = dict(self.metadata or {})
        metadata.update({
            "type": self.type,
            "sessionId": self.sessionId,
            "toPhoneNumber": self.toPhoneNumber,
            "fromPhoneNumber": self.fromPhoneNumber,
            "callType": self.callType,
            "disconnectionReason": self.disconnectionReason,
            "direction": self.direction,
            "createdAt": self.createdAt,
            "endedAt": self.endedAt,
            "summary": self.summary,
            "isSuccessful": self.isSuccessful,
        })
        return PostCallEvent(
            botUid=self.botUid or self.bot_uid or "unknown",
            callId=self.sessionId or self.callId or self.call_id or "unknown",
            transcript=flatten_transcript(self.transcript),
            metadata=metadata,
        )


# ------------------------------------------------------------------ #
#  Callback functions                                                 #
# ------------------------------------------------------------------ #

def extract_lookup_id(body: Any, kind: str, default: str) -> str:
    """
    Pull the record id out of a function-call body.

    Tried in order: ``id``, ``<kind>_id``, ``<kind>Id``, ``arguments.id``,
    ``parameters.id``; falls back to ``default``.
    """
    if not isinstance(body, dict):
        return default
    candidates = [body.get("id"), body.get(f"{kind}_id"), body.get(f"{kind}Id")]
    for nested in ("arguments", "parameters"):
        inner = body.get(nested)
        if isinstance(inner, dict):
            candidates.append(inner.get("id"))
    for value in candidates:
        if value not in (None, ""):
            return str(value)
    return default
