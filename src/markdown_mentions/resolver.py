"""Resolve mention candidates to display names

One lookup per candidate is dispatched onto an injected executor; the batch
waits for all of them and keeps only the successful ones. A candidate that
cannot be resolved is simply missing from the result.
"""

import asyncio
import logging
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, Iterable, List, Optional

from .config import ResolverSettings
from .directory import (
    API_TYPES,
    Account,
    ApiProviderFactory,
    DirectoryClient,
    DirectoryResponse,
)
from .user_cache import DisplayNameCache

logger = logging.getLogger(__name__)

HTTP_NOT_FOUND = 404


class ResolutionError(RuntimeError):
    """A candidate has no usable display name"""


class DirectExecutor(Executor):
    """Executor that runs each submitted call inline in the caller's thread"""

    def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Future:
        future: Future = Future()
        future.set_running_or_notify_cancel()
        try:
            result = fn(*args, **kwargs)
        except Exception as e:
            future.set_exception(e)
        else:
            future.set_result(result)
        return future


class MentionResolver:
    """Fetch display names for mention candidates from a user directory

    Example:
        >>> resolver = MentionResolver()
        >>> names = await resolver.fetch_display_names(settings, account, {"foo", "qux"})
        >>> names
        {'foo': 'Foo Bidoo'}
    """

    def __init__(
        self,
        api_provider_factory: Optional[ApiProviderFactory] = None,
        executor: Optional[Executor] = None,
        cache: Optional[DisplayNameCache] = None,
        max_workers: int = 10,
    ):
        """Initialize resolver

        Args:
            api_provider_factory: Creates the directory client per batch
            executor: Runs the blocking directory calls
                     (default: thread pool of ``max_workers`` threads)
            cache: Display name cache (default: a new, empty cache)
            max_workers: Size of the default thread pool
        """
        self.api_provider_factory = api_provider_factory or ApiProviderFactory()
        self._owns_executor = executor is None
        self.executor: Executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="mentions"
        )
        self.cache = cache if cache is not None else DisplayNameCache()

    @classmethod
    def from_settings(cls, settings: ResolverSettings, **kwargs: Any) -> "MentionResolver":
        """Create a resolver whose default thread pool is sized from settings

        Args:
            settings: Resolver settings, ``max_workers`` sizes the pool
            **kwargs: Passed on to the constructor (factory, executor, cache)

        Returns:
            MentionResolver
        """
        return cls(max_workers=settings.max_workers, **kwargs)

    async def fetch_display_names(
        self,
        context: ResolverSettings,
        account: Account,
        potential_usernames: Iterable[str],
    ) -> Dict[str, str]:
        """Resolve a batch of candidates concurrently

        All lookups are submitted to the executor before any is awaited.

        Args:
            context: Resolver settings (directory type, base path, timeouts)
            account: Account whose directory is queried
            potential_usernames: Candidate usernames

        Returns:
            Mapping of username to display name, successful lookups only

        Raises:
            Exception: If the directory client cannot be created or the
                       executor refuses a lookup
        """
        usernames = list(dict.fromkeys(potential_usernames))
        if not usernames:
            return {}

        api_type = API_TYPES[context.api_type]
        api_provider = self.api_provider_factory.create_api_provider(
            context, account, api_type, context.base_path
        )
        try:
            client = api_provider.get_api()
            pending = self._submit_all(client, usernames)
            results = await asyncio.gather(
                *[
                    self._complete(client, username, lookup)
                    for username, lookup in zip(usernames, pending)
                ],
                return_exceptions=True,
            )
        finally:
            api_provider.close()

        display_names: Dict[str, str] = {}
        for username, result in zip(usernames, results):
            if isinstance(result, ResolutionError):
                logger.debug(f"Username {username} could not be resolved: {result}")
                continue
            if isinstance(result, BaseException):
                logger.warning(f"Could not fetch display name for {username}: {result}")
                continue
            display_names[username] = result

        logger.debug(f"Resolved {len(display_names)} of {len(usernames)} mentions")
        return display_names

    async def fetch_display_name(self, client: DirectoryClient, potential_username: str) -> str:
        """Look up the display name of a single candidate

        Answers from the cache when possible, otherwise runs
        ``client.get_user`` on the executor.

        Raises:
            ResolutionError: If the directory has no usable display name
        """
        lookup = self._submit(client, potential_username)
        return await self._complete(client, potential_username, lookup)

    def _submit_all(
        self, client: DirectoryClient, usernames: List[str]
    ) -> List[Optional["asyncio.Future[DirectoryResponse]"]]:
        """Submit every lookup, cancelling those already submitted if one is refused"""
        pending: List[Optional["asyncio.Future[DirectoryResponse]"]] = []
        try:
            for username in usernames:
                pending.append(self._submit(client, username))
        except Exception:
            for lookup in pending:
                if lookup is not None:
                    lookup.cancel()
            raise
        return pending

    def _submit(
        self, client: DirectoryClient, potential_username: str
    ) -> Optional["asyncio.Future[DirectoryResponse]"]:
        """Hand ``get_user`` to the executor, None when the cache already knows the answer"""
        if self.cache.get(potential_username) is not None or self.cache.is_missing(
            potential_username
        ):
            return None
        return asyncio.wrap_future(self.executor.submit(client.get_user, potential_username))

    async def _complete(
        self,
        client: DirectoryClient,
        potential_username: str,
        lookup: Optional["asyncio.Future[DirectoryResponse]"],
    ) -> str:
        display_name = self.cache.get(potential_username)
        if display_name is not None:
            return display_name

        if self.cache.is_missing(potential_username):
            raise ResolutionError(f"{potential_username} is not a known user")

        # Cache was cleared between submit and completion
        if lookup is None:
            lookup = self._submit(client, potential_username)

        response = await lookup

        if not response.successful:
            if response.status_code == HTTP_NOT_FOUND:
                self.cache.mark_missing(potential_username)
            raise ResolutionError(
                f"HTTP {response.status_code}: {response.message} ({potential_username})"
            )

        if response.body is None:
            raise ResolutionError(f"Response body for {potential_username} was empty")

        display_name = response.body.display_name
        if not display_name:
            raise ResolutionError(f"Username {potential_username} does not have a display name")

        self.cache.put(potential_username, display_name)
        return self.cache.get(potential_username) or display_name

    def close(self) -> None:
        """Shut down the executor if the resolver created it"""
        if self._owns_executor:
            self.executor.shutdown(wait=False)
