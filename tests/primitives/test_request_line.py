from cloudauth.primitives.request_line import parse_query, parse_request_line


class TestParseRequestLine:
    def test_parses_callback_with_query(self) -> None:
        # Act
        request = parse_request_line(
            b"GET /callback?code=ABC&state=S1 HTTP/1.1\r\nHost: localhost\r\n\r\n"
        )

        # Assert
        assert request is not None
        assert request.method == "GET"
        assert request.path == "/callback"
        assert request.version == "HTTP/1.1"
        assert request.query == {"code": "ABC", "state": "S1"}

    def test_path_without_query(self) -> None:
        request = parse_request_line(b"GET /favicon.ico HTTP/1.1\r\n\r\n")

        assert request is not None
        assert request.path == "/favicon.ico"
        assert request.query == {}

    def test_values_are_not_percent_decoded(self) -> None:
        request = parse_request_line(b"GET /callback?error=access%20denied HTTP/1.1")

        assert request is not None
        assert request.query["error"] == "access%20denied"

    def test_headers_are_ignored(self) -> None:
        request = parse_request_line(
            b"GET /callback?code=X HTTP/1.1\r\nX-Code: other\r\n\r\nbody=1"
        )

        assert request is not None
        assert request.query == {"code": "X"}

    def test_empty_or_garbage_input(self) -> None:
        assert parse_request_line(b"") is None
        assert parse_request_line(b"\r\n") is None
        assert parse_request_line(b"GARBAGE") is None

    def test_truncated_request_keeps_what_was_read(self) -> None:
        request = parse_request_line(b"GET /callback?code=AB")

        assert request is not None
        assert request.query == {"code": "AB"}
        assert request.version == ""

    def test_to_callback_params(self) -> None:
        request = parse_request_line(
            b"GET /callback?error=access_denied&error_description=nope HTTP/1.1"
        )

        assert request is not None
        params = request.to_callback_params()
        assert params.is_error()
        assert params.error == "access_denied"
        assert params.error_description == "nope"
        assert params.code is None


class TestParseQuery:
    def test_skips_pairs_without_equals(self) -> None:
        assert parse_query("flag&code=1") == {"code": "1"}

    def test_last_value_wins(self) -> None:
        assert parse_query("code=1&code=2") == {"code": "2"}

    def test_value_may_contain_equals(self) -> None:
        assert parse_query("state=a=b") == {"state": "a=b"}
