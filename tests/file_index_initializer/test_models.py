import json

import pytest

from lambda_error_handler import NotificationValidationError
from models import (
    EventType,
    FileDescriptor,
    build_batch_response,
    parse_notification,
)


@pytest.mark.parametrize("event_type", ["BYTES", "bytes", "Bytes", "bYtEs"])
def test_bytes_event_type_is_case_insensitive(event_type):
    notification = parse_notification(
        json.dumps({"fileId": "123", "eventType": event_type, "versionNumber": "4"})
    )

    assert notification.event_type == EventType.BYTES
    assert notification.is_bytes_event
    assert notification.object_key == "123-4"


@pytest.mark.parametrize("event_type", ["meta", "META", "anything-else", "bytes-ish"])
def test_other_event_types_are_meta(event_type):
    notification = parse_notification(
        json.dumps({"fileId": "123", "eventType": event_type})
    )

    assert notification.event_type == EventType.META
    assert not notification.is_bytes_event
    assert notification.version_number is None


def test_numeric_version_number_is_coerced_to_string():
    notification = parse_notification(
        json.dumps({"fileId": "123", "eventType": "bytes", "versionNumber": 7})
    )

    assert notification.version_number == "7"


@pytest.mark.parametrize("version_number", [{"major": 1}, [1, 2], True, 3.5])
def test_meta_event_keeps_any_version_number(version_number):
    notification = parse_notification(
        json.dumps({"fileId": "123", "eventType": "meta", "versionNumber": version_number})
    )

    assert notification.event_type == EventType.META
    assert notification.version_number == version_number


@pytest.mark.parametrize("version_number", [{"major": 1}, [1, 2], False, ""])
def test_bytes_event_rejects_unusable_version_number(version_number):
    with pytest.raises(NotificationValidationError):
        parse_notification(
            json.dumps(
                {"fileId": "123", "eventType": "bytes", "versionNumber": version_number}
            )
        )


def test_extra_fields_are_ignored():
    notification = parse_notification(
        json.dumps(
            {
                "fileId": "123",
                "eventType": "meta",
                "fileName": "report.pdf",
                "source": "wfdm",
            }
        )
    )

    assert notification.file_id == "123"


def test_bytes_event_requires_version_number():
    with pytest.raises(NotificationValidationError) as exc_info:
        parse_notification(json.dumps({"fileId": "123", "eventType": "bytes"}))

    assert "versionNumber" in exc_info.value.message


def test_missing_file_id_is_rejected():
    with pytest.raises(NotificationValidationError) as exc_info:
        parse_notification(json.dumps({"eventType": "meta"}))

    assert exc_info.value.field == "fileId"


def test_missing_event_type_is_rejected():
    with pytest.raises(NotificationValidationError) as exc_info:
        parse_notification(json.dumps({"fileId": "123"}))

    assert exc_info.value.field == "eventType"


@pytest.mark.parametrize("body", ["not json", "", None, "{\"fileId\": "])
def test_invalid_json_is_rejected(body):
    with pytest.raises(NotificationValidationError) as exc_info:
        parse_notification(body)

    assert exc_info.value.field == "body"


def test_non_object_body_is_rejected():
    with pytest.raises(NotificationValidationError):
        parse_notification(json.dumps(["fileId", "123"]))


def test_file_descriptor_keeps_the_remote_document():
    document = {
        "fileId": "123",
        "mimeType": "image/png",
        "fileSize": "512",
        "fileName": "map.png",
        "metadata": [{"metadataName": "Owner", "metadataValue": "BCWS"}],
    }

    descriptor = FileDescriptor.from_document(document)

    assert descriptor.file_id == "123"
    assert descriptor.mime_type == "image/png"
    assert descriptor.file_size == 512
    assert descriptor.document is document


def test_build_batch_response_lists_only_failures():
    assert build_batch_response([]) == {"batchItemFailures": []}
    assert build_batch_response(["m2", "m5"]) == {
        "batchItemFailures": [{"itemIdentifier": "m2"}, {"itemIdentifier": "m5"}]
    }


def test_file_descriptor_accepts_numeric_file_id():
    descriptor = FileDescriptor.from_document(
        {"fileId": 12345, "mimeType": "application/pdf", "fileSize": 10}
    )

    assert descriptor.file_id == "12345"
    assert descriptor.file_size == 10
