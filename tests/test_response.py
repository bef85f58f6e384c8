"""Tests for driver response parsing."""

import pytest

from dysk_client.errors import DriverError
from dysk_client.response import parse_response
from dysk_client.transport import bufferize


class TestParseResponse:

    def test_error_status(self):
        res = parse_response("ERR\nbad lease\n")
        assert res.is_error is True
        assert res.response == "bad lease\n"

    def test_success_status(self):
        res = parse_response("OK\nfoo\n")
        assert res.is_error is False
        assert res.response == "foo\n"

    def test_any_other_token_is_success(self):
        assert parse_response("ERROR\nx\n").is_error is False
        assert parse_response("err\nx\n").is_error is False

    def test_zero_padding_is_stripped(self):
        res = parse_response(bufferize("ERR\nbad lease\n"))
        assert res.is_error is True
        assert res.response == "bad lease\n"

    def test_no_newline(self):
        res = parse_response(b"ERR")
        assert res.is_error is True
        assert res.response == ""

    def test_empty_buffer(self):
        res = parse_response(bytes(2048))
        assert res.is_error is False
        assert res.response == ""


class TestRaiseForError:

    def test_raises_driver_message_verbatim(self):
        with pytest.raises(DriverError) as exc_info:
            parse_response("ERR\nDisk disk0 already mounted\n").raise_for_error()
        assert str(exc_info.value) == "Disk disk0 already mounted"

    def test_success_does_not_raise(self):
        parse_response("OK\n").raise_for_error()
