"""Tests for classifying responses into ApiError."""

import pytest

from marketplace_client.errors import (
    BASE_ERROR_MESSAGES,
    ApiError,
    catch_error_codes,
    validation_message,
)
from tests.conftest import make_envelope, make_options


class TestCatchErrorCodes:
    """catch_error_codes raises for table matches and any non-2xx status."""

    @pytest.mark.parametrize("status", [200, 201, 204, 299])
    def test_success_does_not_raise(self, status: int) -> None:
        catch_error_codes(make_options(), make_envelope(status))

    @pytest.mark.parametrize("status, label", sorted(BASE_ERROR_MESSAGES.items()))
    def test_baseline_labels(self, status: int, label: str) -> None:
        with pytest.raises(ApiError) as exc_info:
            catch_error_codes(make_options(), make_envelope(status))
        assert exc_info.value.message == label

    def test_404_without_override(self) -> None:
        with pytest.raises(ApiError, match="^Not Found$"):
            catch_error_codes(make_options(), make_envelope(404))

    def test_404_with_override(self) -> None:
        options = make_options(errors={404: "Property missing"})
        with pytest.raises(ApiError, match="^Property missing$"):
            catch_error_codes(options, make_envelope(404))

    def test_override_can_label_success_status(self) -> None:
        options = make_options(errors={202: "Accepted for review"})
        with pytest.raises(ApiError, match="Accepted for review"):
            catch_error_codes(options, make_envelope(202))

    def test_error_carries_request_and_response(self) -> None:
        options = make_options()
        envelope = make_envelope(403, body={"detail": "Not your listing"}, status_text="Forbidden")
        with pytest.raises(ApiError) as exc_info:
            catch_error_codes(options, envelope)

        error = exc_info.value
        assert error.request is options
        assert error.response is envelope
        assert error.status == 403
        assert error.status_text == "Forbidden"
        assert error.body == {"detail": "Not your listing"}
        assert error.url == envelope.url

    def test_generic_error_for_unmatched_status(self) -> None:
        envelope = make_envelope(418, body={"teapot": True}, status_text="I'm a teapot")
        with pytest.raises(ApiError) as exc_info:
            catch_error_codes(make_options(), envelope)

        message = exc_info.value.message
        assert message.startswith("Generic Error: status: 418; status text: I'm a teapot; body: ")
        assert '"teapot": true' in message

    def test_generic_error_unserializable_body(self) -> None:
        envelope = make_envelope(409, body=b"\x00binary", status_text="Conflict")
        with pytest.raises(ApiError) as exc_info:
            catch_error_codes(make_options(), envelope)
        assert exc_info.value.message.endswith("body: None")

    def test_generic_error_keeps_empty_status_text(self) -> None:
        envelope = make_envelope(418, body=None, status_text="")
        with pytest.raises(ApiError) as exc_info:
            catch_error_codes(make_options(), envelope)
        assert exc_info.value.message == "Generic Error: status: 418; status text: ; body: null"

    def test_422_without_table_entry_is_generic(self) -> None:
        envelope = make_envelope(422, body={"detail": "bad"})
        with pytest.raises(ApiError, match="^Generic Error: status: 422"):
            catch_error_codes(make_options(), envelope)


class TestValidationErrors:
    """422 responses with a matching table entry use the body's details."""

    OPTIONS = make_options("POST", url="/api/auth/signup", errors={422: "Validation Error"})

    def test_loc_msg_items_joined(self) -> None:
        body = {
            "detail": [
                {"loc": ["body", "email"], "msg": "invalid"},
                {"loc": ["body", "password"], "msg": "too short"},
            ]
        }
        with pytest.raises(ApiError) as exc_info:
            catch_error_codes(self.OPTIONS, make_envelope(422, body=body))
        assert exc_info.value.message == (
            "Validation Error: body.email: invalid; body.password: too short"
        )

    def test_single_item_message(self) -> None:
        body = {"detail": [{"loc": ["body", "email"], "msg": "invalid"}]}
        with pytest.raises(ApiError) as exc_info:
            catch_error_codes(self.OPTIONS, make_envelope(422, body=body))
        assert "body.email: invalid" in exc_info.value.message

    def test_string_body_parsed(self) -> None:
        body = '{"detail": [{"loc": ["query", "limit"], "msg": "must be positive"}]}'
        with pytest.raises(ApiError, match="query.limit: must be positive"):
            catch_error_codes(self.OPTIONS, make_envelope(422, body=body))

    def test_string_detail_used_directly(self) -> None:
        with pytest.raises(ApiError, match="^Validation Error: Email already registered$"):
            catch_error_codes(self.OPTIONS, make_envelope(422, body={"detail": "Email already registered"}))

    def test_message_field_used(self) -> None:
        with pytest.raises(ApiError, match="^Validation Error: Price required$"):
            catch_error_codes(self.OPTIONS, make_envelope(422, body={"message": "Price required"}))

    def test_other_body_stringified(self) -> None:
        with pytest.raises(ApiError) as exc_info:
            catch_error_codes(self.OPTIONS, make_envelope(422, body={"errors": ["x"]}))
        assert exc_info.value.message == 'Validation Error: {"errors": ["x"]}'

    def test_item_without_loc_stringified(self) -> None:
        assert validation_message({"detail": [{"type": "missing"}]}) == (
            'Validation Error: {"type": "missing"}'
        )

    def test_unparseable_body_falls_back_to_label(self) -> None:
        with pytest.raises(ApiError, match="^Validation Error$"):
            catch_error_codes(self.OPTIONS, make_envelope(422, body="<html>oops</html>"))

    def test_empty_body_uses_label(self) -> None:
        with pytest.raises(ApiError, match="^Validation Error$"):
            catch_error_codes(self.OPTIONS, make_envelope(422, body=None))
