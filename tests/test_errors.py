"""Tests for failure classification."""

import pytest

from notedash.core.errors import (
    ErrorKind,
    ExpiredCredential,
    IntegrationError,
    NotFound,
    classify_failure,
    error_from_response,
    extract_error_message,
)


class TestClassifyFailure:
    def test_401_is_expired(self):
        assert classify_failure(401, {"error": {"message": "Login Required"}}) is ErrorKind.EXPIRED_CREDENTIAL

    def test_401_without_body_is_expired(self):
        assert classify_failure(401) is ErrorKind.EXPIRED_CREDENTIAL

    def test_invalid_token_message_is_expired(self):
        assert classify_failure(400, {"error": {"message": "invalid_token"}}) is ErrorKind.EXPIRED_CREDENTIAL

    def test_expired_in_json_bytes_is_expired(self):
        body = b'{"error": {"code": 403, "message": "Token has been expired or revoked."}}'
        assert classify_failure(403, body) is ErrorKind.EXPIRED_CREDENTIAL

    def test_oauth_error_string_is_expired(self):
        assert classify_failure(400, '{"error": "invalid_grant"}') is ErrorKind.EXPIRED_CREDENTIAL

    def test_reason_detail_is_considered(self):
        body = {"error": {"message": "Denied", "errors": [{"reason": "authError: Invalid Credentials"}]}}
        assert classify_failure(403, body) is ErrorKind.EXPIRED_CREDENTIAL

    def test_server_error_is_generic(self):
        assert classify_failure(500, {"error": {"message": "Backend Error"}}) is ErrorKind.INTEGRATION

    def test_rate_limit_is_generic(self):
        assert classify_failure(429, "Too Many Requests") is ErrorKind.INTEGRATION

    def test_no_status_no_body_is_generic(self):
        assert classify_failure(None) is ErrorKind.INTEGRATION


class TestExtractErrorMessage:
    def test_nested_message(self):
        assert extract_error_message({"error": {"message": "Backend  Error"}}) == "Backend Error"

    def test_string_error_with_description(self):
        body = {"error": "invalid_grant", "error_description": "Bad Request"}
        assert extract_error_message(body) == "invalid_grant: Bad Request"

    def test_plain_text(self):
        assert extract_error_message(b"Service Unavailable\n") == "Service Unavailable"

    def test_empty(self):
        assert extract_error_message("") == "Request failed without an error payload"


class TestErrorFromResponse:
    def test_builds_expired(self):
        error = error_from_response(401, {"error": {"message": "invalid_token"}})
        assert isinstance(error, ExpiredCredential)
        assert error.message == "invalid_token"
        assert error.status_code == 401
        assert error.kind is ErrorKind.EXPIRED_CREDENTIAL

    def test_builds_generic(self):
        error = error_from_response(503, {"error": {"message": "Backend Error"}})
        assert type(error) is IntegrationError
        assert error.message == "Backend Error"

    def test_expired_is_an_integration_error(self):
        with pytest.raises(IntegrationError):
            raise error_from_response(401)


def test_not_found_carries_id():
    error = NotFound("abc")
    assert error.task_id == "abc"
    assert "abc" in str(error)
    assert error.kind is ErrorKind.NOT_FOUND
