from cloudauth.services.deep_link import DeepLinkInbox, parse_deep_link


class TestDeepLinkInbox:
    def test_records_last_deep_link(self) -> None:
        # Arrange
        inbox = DeepLinkInbox()

        # Act
        inbox.record("cloudauth://oauth/callback?code=1&state=a")
        inbox.record("cloudauth://oauth/callback?code=2&state=b")

        # Assert
        assert inbox.last() == "cloudauth://oauth/callback?code=2&state=b"

    def test_clear(self) -> None:
        inbox = DeepLinkInbox()
        inbox.record("cloudauth://oauth/callback?code=1")

        inbox.clear()

        assert inbox.last() is None


class TestParseDeepLink:
    def test_extracts_code_and_state(self) -> None:
        params = parse_deep_link("cloudauth://oauth/callback?code=XYZ&state=abc")

        assert params.is_success()
        assert params.code == "XYZ"
        assert params.state == "abc"

    def test_extracts_error(self) -> None:
        params = parse_deep_link(
            "cloudauth://oauth/callback?error=access_denied&state=abc"
        )

        assert params.is_error()
        assert params.error == "access_denied"

    def test_no_query(self) -> None:
        params = parse_deep_link("cloudauth://oauth/callback")

        assert not params.is_success()
        assert not params.is_error()
