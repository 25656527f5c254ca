"""Tests for directory clients, providers and avatar URLs"""

from unittest.mock import MagicMock, patch

import pytest
from slack_sdk.errors import SlackApiError

from markdown_mentions import (
    Account,
    ApiProvider,
    ApiProviderFactory,
    DirectoryUser,
    OcsDirectoryClient,
    SlackDirectoryClient,
    avatar_url,
)
from tests.fixtures import sample_account, sample_settings


def http_response(status_code=200, payload=None, reason="OK"):
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.reason = reason
    response.json.return_value = payload
    return response


class TestOcsDirectoryClient:
    """Test Nextcloud OCS user lookups"""

    def test_get_user_reads_display_name(self):
        session = MagicMock()
        session.get.return_value = http_response(
            payload={
                "ocs": {
                    "meta": {"status": "ok", "statuscode": 200},
                    "data": {"id": "foo", "displayname": "Foo Bidoo", "email": "foo@example.com"},
                }
            }
        )
        client = OcsDirectoryClient(session, "https://cloud.example.com/ocs/v2.php/cloud/")

        response = client.get_user("foo")

        assert response.successful is True
        assert response.body.display_name == "Foo Bidoo"
        assert response.body.email == "foo@example.com"
        session.get.assert_called_once_with(
            "https://cloud.example.com/ocs/v2.php/cloud/users/foo", timeout=10
        )

    def test_get_user_quotes_username(self):
        session = MagicMock()
        session.get.return_value = http_response(payload={"ocs": {"data": None}})
        client = OcsDirectoryClient(session, "https://cloud.example.com/ocs/v2.php/cloud")

        response = client.get_user("a/b")

        assert response.successful is True
        assert response.body is None
        assert session.get.call_args.args[0].endswith("/users/a%2Fb")

    def test_get_user_not_found(self):
        session = MagicMock()
        session.get.return_value = http_response(status_code=404, reason="Not Found")
        client = OcsDirectoryClient(session, "https://cloud.example.com/ocs/v2.php/cloud/")

        response = client.get_user("qux")

        assert response.successful is False
        assert response.status_code == 404
        assert response.message == "Not Found"
        assert response.body is None

    def test_from_account_configures_session(self):
        client = OcsDirectoryClient.from_account(
            sample_settings(), sample_account(), "/ocs/v2.php/cloud/"
        )

        assert client.base_url == "https://cloud.example.com/ocs/v2.php/cloud/"
        assert client.session.auth == ("alice", "app-password")
        assert client.session.headers["OCS-APIRequest"] == "true"
        assert client.timeout == 5
        client.close()


class TestSlackDirectoryClient:
    """Test Slack users.info lookups"""

    def test_prefers_profile_display_name(self):
        web_client = MagicMock()
        web_client.users_info.return_value = MagicMock(
            status_code=200,
            data={
                "ok": True,
                "user": {
                    "id": "U001",
                    "real_name": "Alice Chen",
                    "profile": {"display_name": "alice", "email": "alice@example.com"},
                },
            },
        )

        response = SlackDirectoryClient(web_client).get_user("U001")

        assert response.successful is True
        assert response.body.display_name == "alice"
        web_client.users_info.assert_called_once_with(user="U001")

    def test_falls_back_to_real_name(self):
        web_client = MagicMock()
        web_client.users_info.return_value = MagicMock(
            status_code=200,
            data={"ok": True, "user": {"id": "U002", "real_name": "Bob Smith", "profile": {"display_name": ""}}},
        )

        response = SlackDirectoryClient(web_client).get_user("U002")

        assert response.body.display_name == "Bob Smith"

    def test_user_not_found_maps_to_404(self):
        slack_response = MagicMock()
        slack_response.status_code = 200
        slack_response.get.return_value = "user_not_found"
        web_client = MagicMock()
        web_client.users_info.side_effect = SlackApiError("user_not_found", slack_response)

        response = SlackDirectoryClient(web_client).get_user("U404")

        assert response.successful is False
        assert response.status_code == 404
        assert response.message == "user_not_found"

    def test_other_errors_keep_status(self):
        slack_response = MagicMock()
        slack_response.status_code = 429
        slack_response.get.return_value = "ratelimited"
        web_client = MagicMock()
        web_client.users_info.side_effect = SlackApiError("ratelimited", slack_response)

        response = SlackDirectoryClient(web_client).get_user("U001")

        assert response.successful is False
        assert response.status_code == 429


class TestApiProviderFactory:
    def test_creates_provider_for_client_class(self):
        factory = ApiProviderFactory()

        provider = factory.create_api_provider(
            sample_settings(), sample_account(), OcsDirectoryClient, "/ocs/v2.php/cloud/"
        )

        assert isinstance(provider, ApiProvider)
        assert isinstance(provider.get_api(), OcsDirectoryClient)
        provider.close()

    def test_close_closes_client(self):
        api = MagicMock()
        ApiProvider(api).close()

        api.close.assert_called_once()

    def test_slack_client_uses_account_token(self):
        account = Account(name="slack", token="xoxb-test")

        with patch("markdown_mentions.directory.WebClient") as web_client_cls:
            provider = ApiProviderFactory().create_api_provider(
                sample_settings(), account, SlackDirectoryClient, ""
            )

        web_client_cls.assert_called_once_with(token="xoxb-test", timeout=5)
        assert isinstance(provider.get_api(), SlackDirectoryClient)


class TestModels:
    def test_directory_user_accepts_ocs_field_name(self):
        user = DirectoryUser.model_validate({"id": "foo", "displayname": "Foo Bidoo"})
        assert user.display_name == "Foo Bidoo"

    def test_directory_user_accepts_field_name(self):
        assert DirectoryUser(id="foo", display_name="Foo").display_name == "Foo"

    def test_account_token_hidden_from_repr(self):
        assert "app-password" not in repr(sample_account())


class TestAvatarUrl:
    def test_avatar_url(self):
        url = avatar_url(sample_account(), "foo bar", 21)
        assert url == "https://cloud.example.com/index.php/avatar/foo%20bar/21"

    @pytest.mark.parametrize("url", ["https://cloud.example.com", "https://cloud.example.com/"])
    def test_trailing_slash(self, url):
        account = Account(name="a", url=url)
        assert avatar_url(account, "foo", 42) == "https://cloud.example.com/index.php/avatar/foo/42"
