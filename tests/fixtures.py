"""Test doubles for the user directory"""

from typing import Dict, Optional
from unittest.mock import MagicMock

from markdown_mentions import (
    Account,
    ApiProviderFactory,
    DirectoryResponse,
    DirectoryUser,
    ResolverSettings,
)

# username -> display name, None means the directory has no display name
MENTIONS: Dict[str, Optional[str]] = {
    "foo": "Foo Bidoo",
    "bar": "Bar Iton",
    "baz": "Baz Lightyear",
    "qux": None,
}


def sample_account() -> Account:
    return Account(
        name="alice@cloud.example.com",
        url="https://cloud.example.com",
        user_name="alice",
        token="app-password",
    )


def sample_settings() -> ResolverSettings:
    return ResolverSettings(api_type="ocs", max_workers=4, timeout=5)


def directory_response(username: str) -> DirectoryResponse:
    """Response the fake directory gives for a username

    Known users with a display name succeed, everything else is a 404.
    """
    display_name = MENTIONS.get(username)
    if display_name is None:
        return DirectoryResponse(successful=False, status_code=404, message="Not Found")
    return DirectoryResponse(
        successful=True,
        status_code=200,
        body=DirectoryUser(id=username, display_name=display_name),
    )


def mock_directory_client() -> MagicMock:
    client = MagicMock()
    client.get_user.side_effect = directory_response
    return client


def mock_api_provider_factory(client: Optional[MagicMock] = None) -> MagicMock:
    """Factory double whose providers all hand out the same client"""
    provider = MagicMock()
    provider.get_api.return_value = client or mock_directory_client()

    factory = MagicMock(spec=ApiProviderFactory)
    factory.create_api_provider.return_value = provider
    return factory
