"""
Session expiry handling.

On an unauthenticated (401) response the hosting application is sent to
the login flow. The path the user was on is kept in a ReturnPathStore so
the login flow can bring them back once it completes.
"""
import asyncio
import inspect
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, NoReturn, Optional
from urllib.parse import urlencode

logger = logging.getLogger("dashboard_client.session")

RETURN_PATH_KEY = "redirect_after_login"


class ReturnPathStore(ABC):
    """Session-scoped storage for the post-login return path."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        pass

    def consume(self, key: str = RETURN_PATH_KEY) -> Optional[str]:
        """Read the stored value and clear it."""
        value = self.get(key)
        if value is not None:
            self.delete(key)
        return value


class MemoryReturnPathStore(ReturnPathStore):
    """In-memory ReturnPathStore."""

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}
        self.writes = 0

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self.writes += 1

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None


class SessionExpiryHandler:
    """
    Redirects to the login entry point after a 401 and never returns.

    The navigation tears down the calling context, so ``handle`` suspends
    forever instead of handing control back. The pending-request entry of
    the call that triggered it is left in place for the same reason.

    Example:
        handler = SessionExpiryHandler(
            navigate=router.push,
            current_path=lambda: router.pathname,
        )
        client = AsyncApiClient(config, session_handler=handler)
    """

    def __init__(
        self,
        navigate: Callable[[str], Any],
        current_path: Callable[[], str],
        store: Optional[ReturnPathStore] = None,
        login_path: str = "/login",
        callback_path: str = "/callback",
        return_param: str = "callbackUrl",
    ) -> None:
        self._navigate = navigate
        self._current_path = current_path
        self._store = store or MemoryReturnPathStore()
        self._login_path = login_path
        self._callback_path = callback_path
        self._return_param = return_param
        self._redirect_target: Optional[str] = None

    @property
    def store(self) -> ReturnPathStore:
        return self._store

    @property
    def redirecting(self) -> bool:
        """True once a navigation to login has been issued."""
        return self._redirect_target is not None

    def build_login_url(self, return_path: str) -> str:
        return f"{self._login_path}?{urlencode({self._return_param: return_path})}"

    def is_auth_surface(self, path: str) -> bool:
        """Login and callback pages handle their own 401s."""
        return path.startswith(self._login_path) or path.startswith(self._callback_path)

    async def redirect(self) -> bool:
        """
        Persist the return path and navigate to login.

        Returns False when nothing was done: already on an auth surface, or
        a redirect from this handler is still in progress.
        """
        path = self._current_path()

        if self.is_auth_surface(path):
            logger.debug(f"SessionExpiryHandler.redirect: on auth surface {path}, skipping")
            return False

        if self._redirect_target is not None:
            logger.debug(
                f"SessionExpiryHandler.redirect: redirect to {self._redirect_target} "
                f"already in progress"
            )
            return False

        login_url = self.build_login_url(path)
        self._redirect_target = login_url
        self._store.set(RETURN_PATH_KEY, path)
        logger.info(f"SessionExpiryHandler.redirect: session expired, navigating to {login_url}")

        result = self._navigate(login_url)
        if inspect.isawaitable(result):
            await result
        return True

    async def handle(self) -> NoReturn:
        """Redirect if needed, then wait forever."""
        await self.redirect()
        await asyncio.get_running_loop().create_future()
        raise AssertionError("unreachable")

    def reset(self) -> None:
        """Allow a new redirect, e.g. after the login flow completed."""
        self._redirect_target = None

