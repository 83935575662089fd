"""Tests for builds/models.py module."""

import json

import pytest

from brewtroller_buildbot.builds.models import (
    BuildRequestError,
    BuildServerError,
    parse_build_request,
)


def _body(data) -> bytes:
    return json.dumps(data).encode("utf-8")


class TestParseBuildRequest:
    """Tests for parse_build_request function."""

    def test_valid_request(self):
        """Should split out board and version, keeping board as an option."""
        body = _body({"board": "mega2560", "BuildVersion": "v1.0.0", "TEMP_UNIT": "F"})
        request = parse_build_request(body)
        assert request.board == "mega2560"
        assert request.version == "v1.0.0"
        assert request.options == {"board": "mega2560", "TEMP_UNIT": "F"}
        assert request.raw == body

    def test_invalid_json(self):
        """Should reject a body that is not JSON."""
        with pytest.raises(BuildRequestError) as exc_info:
            parse_build_request(b"{not json")
        assert exc_info.value.status_code == 400

    def test_non_object(self):
        """Should reject JSON that is not an object."""
        with pytest.raises(BuildRequestError, match="JSON object"):
            parse_build_request(b'["board", "mega2560"]')

    def test_missing_board(self):
        """Should name the missing board field."""
        with pytest.raises(BuildRequestError, match="Board Option Must be Supplied"):
            parse_build_request(_body({"BuildVersion": "v1.0.0"}))

    def test_missing_version(self):
        """Should name the missing BuildVersion field."""
        with pytest.raises(BuildRequestError, match="Build Version Must be Supplied"):
            parse_build_request(_body({"board": "mega2560"}))

    def test_non_string_board(self):
        """Should reject a board that is not a string."""
        with pytest.raises(BuildRequestError, match="board must be a string"):
            parse_build_request(_body({"board": 2560, "BuildVersion": "v1.0.0"}))

    @pytest.mark.parametrize("board", ["../etc", "a/b", "", "..", "mega 2560"])
    def test_unsafe_board(self, board):
        """Should reject boards that are not a single safe path component."""
        with pytest.raises(BuildRequestError):
            parse_build_request(_body({"board": board, "BuildVersion": "v1.0.0"}))


class TestErrorClasses:
    """Tests for the pipeline error taxonomy."""

    def test_request_error_is_400(self):
        error = BuildRequestError("bad", context=["detail"])
        assert error.code == "400"
        assert error.status_code == 400
        assert error.context == ["detail"]

    def test_server_error_is_500(self):
        error = BuildServerError("broken")
        assert error.code == "500"
        assert error.status_code == 500
        assert error.context == []
