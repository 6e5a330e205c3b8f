"""Tests for error types and error reporting hooks."""
from portfolio.core.exceptions import (
    NotFoundError,
    PersistenceFailure,
    SubmissionValidationError,
    ValidationFailure,
)
from portfolio.core.sentry import before_send, before_send_transaction, init_sentry


class TestContactPipelineErrors:
    """Tests for pipeline error rendering."""

    def test_validation_failure_body(self):
        error = ValidationFailure(errors=[{"field": "name", "message": "Name is required"}])

        assert error.status_code == 400
        assert error.to_response() == {
            "success": False,
            "message": "Please check the form for errors",
            "errors": [{"field": "name", "message": "Name is required"}],
        }

    def test_persistence_failure_hides_cause_outside_debug(self):
        try:
            try:
                raise ConnectionError("connection refused")
            except ConnectionError as cause:
                raise PersistenceFailure() from cause
        except PersistenceFailure as e:
            error = e

        assert error.status_code == 500
        assert error.to_response() == {
            "success": False,
            "message": "Unable to process your message. Please try again later.",
        }
        assert error.to_response(debug=True)["error"] == "connection refused"

    def test_rejected_is_a_client_error(self):
        error = PersistenceFailure.rejected([{"field": "name", "message": "too short"}])
        assert error.status_code == 400
        assert error.message == "Please check your information and try again"

    def test_submission_validation_error_names_fields(self):
        error = SubmissionValidationError([{"field": "name", "message": "x"}, {"field": "email", "message": "y"}])
        assert str(error) == "Submission failed validation: name, email"

    def test_not_found(self):
        assert NotFoundError("Contact", "abc").detail == "Contact not found: abc"
        assert NotFoundError("Contact").status_code == 404


class TestSentryHooks:
    """Tests for event scrubbing before errors leave the process."""

    def test_disabled_without_dsn(self, test_settings):
        assert init_sentry(test_settings) is False

    def test_redacts_credentials_and_form_data(self):
        event = {
            "request": {
                "url": "https://api.jo.dev/api/contact",
                "headers": {"Authorization": "Bearer secret", "Accept": "application/json"},
                "data": {"email": "jo@x.io"},
            }
        }

        scrubbed = before_send(event, {})

        assert scrubbed["request"]["headers"]["Authorization"] == "[REDACTED]"
        assert scrubbed["request"]["headers"]["Accept"] == "application/json"
        assert scrubbed["request"]["data"] == "[REDACTED]"

    def test_drops_health_checks(self):
        event = {"request": {"url": "https://api.jo.dev/api/health"}}
        assert before_send(event, {}) is None
        assert before_send_transaction(event, {}) is None
        assert before_send_transaction({"request": {"url": "https://api.jo.dev/api/projects"}}, {}) is not None
