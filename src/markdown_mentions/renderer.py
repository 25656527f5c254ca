"""Substitute resolved display names into rendered text"""

import logging
import re
from typing import Optional

from .config import ResolverSettings
from .directory import Account, avatar_url
from .resolver import MentionResolver
from .scanner import MENTION_PATTERN, find_potential_mentions

logger = logging.getLogger(__name__)


class MentionRenderer:
    """Replace ``@username`` mentions with ``@Display Name``

    Mentions that cannot be resolved are left untouched. The display name
    cache belongs to the current account and is dropped when it changes.

    Example:
        >>> renderer = MentionRenderer(settings, resolver)
        >>> renderer.set_current_account(account)
        >>> await renderer.replace_user_names("Ping @foo and @qux")
        'Ping @Foo Bidoo and @qux'
    """

    def __init__(
        self,
        settings: ResolverSettings,
        resolver: Optional[MentionResolver] = None,
        account: Optional[Account] = None,
    ):
        self.settings = settings
        self.resolver = resolver or MentionResolver.from_settings(settings)
        self.account = account
        self.text_size = settings.text_size

    def set_current_account(self, account: Optional[Account]) -> None:
        self.resolver.cache.clear()
        self.account = account

    def set_text_size(self, text_size: int) -> None:
        self.text_size = text_size

    @property
    def avatar_size(self) -> int:
        """Avatar edge length in pixels, 1.5 times the text size"""
        return int(self.text_size * 1.5)

    def avatar_url(self, username: str) -> Optional[str]:
        if self.account is None:
            return None
        return avatar_url(self.account, username, self.avatar_size)

    async def replace_user_names(self, text: str) -> str:
        """Resolve all mentions in text and substitute their display names

        Args:
            text: Rendered text

        Returns:
            Text with resolved mentions replaced, unchanged without an account
        """
        if self.account is None:
            logger.warning("Tried to replace user names, but no account is set")
            return text

        usernames = find_potential_mentions(text)
        if not usernames:
            return text

        display_names = await self.resolver.fetch_display_names(
            self.settings, self.account, usernames
        )

        def replace_mention(match: re.Match) -> str:
            username = match.group(1)
            if username in display_names:
                return f"@{display_names[username]}"
            return match.group(0)

        return MENTION_PATTERN.sub(replace_mention, text)
