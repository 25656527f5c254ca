"""User directory clients and the provider/factory that hands them out

A directory client answers ``get_user(username)`` with a ``DirectoryResponse``.
Clients are created per resolution batch through an ``ApiProviderFactory``, so
the resolver never deals with connection setup itself.
"""

import logging
from typing import Any, Dict, Optional, Protocol, Type
from urllib.parse import quote

import requests
from pydantic import BaseModel, ConfigDict, Field
from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError

from .config import ResolverSettings

logger = logging.getLogger(__name__)


class Account(BaseModel):
    """An account/session the directory is queried on behalf of"""

    name: str
    url: str = ""
    user_name: Optional[str] = None
    token: str = Field(default="", repr=False)


class DirectoryUser(BaseModel):
    """User record as returned by the directory"""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    display_name: Optional[str] = Field(default=None, alias="displayname")
    email: Optional[str] = None


class DirectoryResponse(BaseModel):
    """Outcome of a single user lookup"""

    successful: bool
    status_code: int = 200
    message: str = ""
    body: Optional[DirectoryUser] = None


class DirectoryClient(Protocol):
    def get_user(self, username: str) -> DirectoryResponse: ...

    def close(self) -> None: ...


class OcsDirectoryClient:
    """Nextcloud OCS user directory (``GET users/{username}``)"""

    def __init__(self, session: requests.Session, base_url: str, timeout: float = 10):
        self.session = session
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.timeout = timeout

    @classmethod
    def from_account(
        cls, context: ResolverSettings, account: Account, base_path: str
    ) -> "OcsDirectoryClient":
        session = requests.Session()
        session.headers.update(
            {
                "OCS-APIRequest": "true",
                "Accept": "application/json",
            }
        )
        if account.user_name:
            session.auth = (account.user_name, account.token)
        return cls(session, account.url.rstrip("/") + base_path, timeout=context.timeout)

    def get_user(self, username: str) -> DirectoryResponse:
        url = f"{self.base_url}users/{quote(username, safe='')}"
        logger.debug(f"GET {url}")
        response = self.session.get(url, timeout=self.timeout)

        if not response.ok:
            return DirectoryResponse(
                successful=False,
                status_code=response.status_code,
                message=response.reason or "",
            )

        payload: Dict[str, Any] = response.json() or {}
        data = (payload.get("ocs") or {}).get("data")
        return DirectoryResponse(
            successful=True,
            status_code=response.status_code,
            message=response.reason or "",
            body=DirectoryUser.model_validate(data) if data else None,
        )

    def close(self) -> None:
        self.session.close()


class SlackDirectoryClient:
    """Slack workspace directory (``users.info``), usernames are Slack user IDs"""

    def __init__(self, client: WebClient):
        self.client = client

    @classmethod
    def from_account(
        cls, context: ResolverSettings, account: Account, base_path: str
    ) -> "SlackDirectoryClient":
        kwargs: Dict[str, Any] = {"token": account.token, "timeout": int(context.timeout)}
        if account.url:
            kwargs["base_url"] = account.url.rstrip("/") + "/api/"
        return cls(WebClient(**kwargs))

    def get_user(self, username: str) -> DirectoryResponse:
        try:
            result = self.client.users_info(user=username)
        except SlackApiError as e:
            error = e.response.get("error", "unknown_error")
            # Slack reports unknown users with HTTP 200 and ok=false
            status_code = 404 if error == "user_not_found" else e.response.status_code
            return DirectoryResponse(
                successful=False, status_code=status_code, message=str(error)
            )

        user = (
            result.data.get("user")
            if hasattr(result, "data") and isinstance(result.data, dict)
            else None
        )
        if not user:
            return DirectoryResponse(successful=True, status_code=result.status_code)

        profile = user.get("profile") or {}
        return DirectoryResponse(
            successful=True,
            status_code=result.status_code,
            body=DirectoryUser(
                id=user.get("id", username),
                display_name=profile.get("display_name") or user.get("real_name"),
                email=profile.get("email"),
            ),
        )

    def close(self) -> None:
        pass


API_TYPES: Dict[str, Type[Any]] = {
    "ocs": OcsDirectoryClient,
    "slack": SlackDirectoryClient,
}


class ApiProvider:
    """Owns the directory client for one resolution batch"""

    def __init__(self, api: DirectoryClient):
        self._api = api

    def get_api(self) -> DirectoryClient:
        return self._api

    def close(self) -> None:
        self._api.close()


class ApiProviderFactory:
    """Creates ``ApiProvider`` instances for an account"""

    def create_api_provider(
        self,
        context: ResolverSettings,
        account: Account,
        api_type: Type[Any],
        base_path: str,
    ) -> ApiProvider:
        """Build a provider whose client talks to the account's directory

        Args:
            context: Resolver settings (timeouts)
            account: Account to query on behalf of
            api_type: Client class, e.g. ``OcsDirectoryClient``
            base_path: API base path appended to the account URL

        Returns:
            ApiProvider wrapping a freshly created client
        """
        logger.debug(f"Creating {api_type.__name__} for account {account.name}")
        return ApiProvider(api_type.from_account(context, account, base_path))


def avatar_url(account: Account, username: str, size: int) -> str:
    """URL of the avatar image for a user, ``size`` in pixels"""
    return f"{account.url.rstrip('/')}/index.php/avatar/{quote(username, safe='')}/{size}"
