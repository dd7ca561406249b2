import pytest

from infinibox_client.envelope import FieldState, decode_envelope, read_field
from infinibox_client.exceptions import (
    DecodeError,
    MalformedEnvelopeError,
    RemoteAPIError,
    RemoteFaultError,
    UnexpectedResponseError,
)
from infinibox_client.http import HttpResponse

URL = "https://ibox/api/rest/volumes"


def make_response(content: bytes, status_code: int = 200, reason: str = "OK") -> HttpResponse:
    return HttpResponse(
        status_code=status_code,
        reason=reason,
        content=content,
        headers={"Content-Type": "application/json"},
        url=URL,
    )


def test_result_and_metadata_are_decoded():
    envelope = decode_envelope(
        make_response(
            b'{"error": null, "metadata": {"ready": true, "number_of_objects": 2,'
            b' "page": 1, "pages_total": 1}, "result": [{"id": 1}, {"id": 2}]}'
        )
    )

    assert envelope.result == [{"id": 1}, {"id": 2}]
    assert envelope.metadata.ready is True
    assert envelope.require_object_count() == 2
    assert envelope.pages_total() == 1
    assert envelope.url == URL


def test_error_member_wins_over_result_and_status():
    response = make_response(
        b'{"error": {"code": "VOLUME_NOT_FOUND", "message": "Volume not found",'
        b' "severity": "ERROR", "is_remote": false}, "result": {"id": 1}}'
    )

    with pytest.raises(RemoteAPIError) as excinfo:
        decode_envelope(response)

    assert excinfo.value.code == "VOLUME_NOT_FOUND"
    assert excinfo.value.api_message == "Volume not found"
    assert excinfo.value.severity == "ERROR"
    assert excinfo.value.status_code == 200
    assert str(excinfo.value) == f"API error VOLUME_NOT_FOUND for {URL}: Volume not found"
    assert excinfo.value.url == URL


def test_client_error_status_still_reads_envelope():
    response = make_response(
        b'{"error": {"code": "NOT_FOUND", "message": "no such object"}}',
        status_code=404,
        reason="Not Found",
    )

    with pytest.raises(RemoteAPIError) as excinfo:
        decode_envelope(response)

    assert excinfo.value.status_code == 404
    assert excinfo.value.code == "NOT_FOUND"


def test_error_without_code_is_reported_as_unknown():
    with pytest.raises(RemoteAPIError, match="API error UNKNOWN for .*: broken"):
        decode_envelope(make_response(b'{"error": {"message": "broken", "code": 12}}'))


def test_empty_error_member_is_not_an_error():
    envelope = decode_envelope(make_response(b'{"error": {}, "result": true}'))

    assert envelope.result is True


def test_truncated_body_is_malformed():
    with pytest.raises(MalformedEnvelopeError) as excinfo:
        decode_envelope(make_response(b'{"resul'))

    assert isinstance(excinfo.value, DecodeError)
    assert excinfo.value.url == URL


def test_empty_body_is_malformed():
    with pytest.raises(MalformedEnvelopeError):
        decode_envelope(make_response(b""))


def test_non_object_body_is_malformed():
    with pytest.raises(MalformedEnvelopeError, match="not a JSON object"):
        decode_envelope(make_response(b"[1, 2, 3]"))


def test_error_member_of_wrong_type_is_malformed():
    with pytest.raises(MalformedEnvelopeError, match="error member"):
        decode_envelope(make_response(b'{"error": "boom"}'))


def test_metadata_member_of_wrong_type_is_malformed():
    with pytest.raises(MalformedEnvelopeError, match="metadata member"):
        decode_envelope(make_response(b'{"metadata": [1], "result": []}'))


def test_server_fault_is_not_parsed():
    response = make_response(
        b'{"error": {"code": "X", "message": "y"}}',
        status_code=503,
        reason="Service Unavailable",
    )

    with pytest.raises(RemoteFaultError) as excinfo:
        decode_envelope(response)

    assert excinfo.value.status_code == 503
    assert "503 Service Unavailable" in str(excinfo.value)


def test_missing_response_is_a_decode_error():
    with pytest.raises(DecodeError, match="No response"):
        decode_envelope(None)


def test_unexpected_failures_are_wrapped():
    response = HttpResponse(status_code=200, reason="OK", content=None, headers={}, url=URL)

    with pytest.raises(DecodeError, match="Unexpected failure") as excinfo:
        decode_envelope(response)

    assert not isinstance(excinfo.value, MalformedEnvelopeError)
    assert excinfo.value.url == URL


def test_wrongly_typed_object_count_is_rejected():
    envelope = decode_envelope(
        make_response(b'{"metadata": {"number_of_objects": "3"}, "result": []}')
    )

    assert envelope.object_count().state is FieldState.MALFORMED
    with pytest.raises(UnexpectedResponseError, match="number_of_objects"):
        envelope.require_object_count()


def test_missing_metadata_has_no_object_count():
    envelope = decode_envelope(make_response(b'{"result": []}'))

    assert envelope.metadata is None
    assert not envelope.object_count().is_present
    with pytest.raises(UnexpectedResponseError, match="cannot parse metadata for number_of_objects field"):
        envelope.require_object_count()


def test_read_field_distinguishes_absent_and_malformed():
    payload = {"count": 3, "flag": True, "name": None}

    assert read_field(payload, "count", int).get(0) == 3
    assert read_field(payload, "missing", int).state is FieldState.ABSENT
    assert read_field(payload, "name", str).state is FieldState.ABSENT
    assert read_field(payload, "flag", int).state is FieldState.MALFORMED
    assert read_field(payload, "flag", bool).get(False) is True
    assert read_field(payload, "count", str).get("fallback") == "fallback"
