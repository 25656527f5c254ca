"""markdown-mentions - resolve @mentions in rendered markdown to display names"""

from .config import ConfigError, ResolverSettings, load_account, load_config
from .directory import (
    Account,
    ApiProvider,
    ApiProviderFactory,
    DirectoryResponse,
    DirectoryUser,
    OcsDirectoryClient,
    SlackDirectoryClient,
    avatar_url,
)
from .renderer import MentionRenderer
from .resolver import DirectExecutor, MentionResolver, ResolutionError
from .scanner import find_potential_mentions
from .user_cache import DisplayNameCache

__all__ = [
    "find_potential_mentions",
    "MentionResolver",
    "ResolutionError",
    "DirectExecutor",
    "MentionRenderer",
    "DisplayNameCache",
    "Account",
    "ApiProvider",
    "ApiProviderFactory",
    "DirectoryResponse",
    "DirectoryUser",
    "OcsDirectoryClient",
    "SlackDirectoryClient",
    "avatar_url",
    "ResolverSettings",
    "ConfigError",
    "load_config",
    "load_account",
]
