import json
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from lambda_error_handler import NotificationValidationError


class EventType(str, Enum):
    BYTES = "BYTES"
    META = "META"


class FileNotification(BaseModel):
    """
    A WFDM file event delivered through the queue.

    BYTES events need the file content staged for virus scanning, anything
    else is a metadata-only change that goes straight to the indexer.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    file_id: str = Field(alias="fileId", min_length=1)
    event_type: EventType = Field(alias="eventType")
    # Only BYTES events read the version, META passes it through untouched
    version_number: Any = Field(default=None, alias="versionNumber")

    @field_validator("event_type", mode="before")
    @classmethod
    def classify_event_type(cls, v):
        if isinstance(v, EventType):
            return v
        if not isinstance(v, str):
            raise ValueError("eventType must be a string")
        return EventType.BYTES if v.lower() == "bytes" else EventType.META

    @model_validator(mode="after")
    def check_bytes_version(self):
        if self.event_type != EventType.BYTES:
            return self

        v = self.version_number
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            v = str(v)
        if not isinstance(v, str) or not v:
            raise ValueError("versionNumber is required for BYTES events")
        self.version_number = v
        return self

    @property
    def is_bytes_event(self) -> bool:
        return self.event_type == EventType.BYTES

    @property
    def object_key(self) -> str:
        """Key (and title) of the staged object: fileId-versionNumber"""
        return f"{self.file_id}-{self.version_number}"


class FileDescriptor(BaseModel):
    """File information returned by the WFDM documents endpoint"""

    model_config = ConfigDict(
        populate_by_name=True, extra="ignore", coerce_numbers_to_str=True
    )

    file_id: str = Field(alias="fileId")
    mime_type: str = Field(alias="mimeType")
    file_size: int = Field(alias="fileSize", ge=0)
    document: Dict[str, Any] = Field(default_factory=dict, exclude=True)

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "FileDescriptor":
        descriptor = cls.model_validate(document)
        descriptor.document = document
        return descriptor


def parse_notification(body: Optional[str]) -> FileNotification:
    """
    Parse an SQS message body into a FileNotification.

    Raises:
        NotificationValidationError: If the body is not a JSON object or lacks
            the fields the event type requires
    """
    try:
        payload = json.loads(body or "")
    except (TypeError, ValueError) as e:
        raise NotificationValidationError(
            f"Message body is not valid JSON: {e}", field="body", value=body
        )

    if not isinstance(payload, dict):
        raise NotificationValidationError(
            "Message body must be a JSON object", field="body", value=body
        )

    try:
        return FileNotification.model_validate(payload)
    except ValidationError as e:
        errors = e.errors()
        field = ".".join(str(p) for p in errors[0]["loc"]) if errors else "body"
        raise NotificationValidationError(
            f"Invalid notification: {errors[0]['msg'] if errors else e}",
            field=field or "body",
            value=payload,
        )


def build_batch_response(failed_message_ids: List[str]) -> Dict[str, Any]:
    """Partial batch response, only the listed messages are redelivered"""
    return {
        "batchItemFailures": [
            {"itemIdentifier": message_id} for message_id in failed_message_ids
        ]
    }
