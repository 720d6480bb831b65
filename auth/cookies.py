"""Session cookies.

Two cookies travel together:
- the auth cookie: HTTP-only, carries the signed access token
- the shadow session cookie: readable by frontend code, carries
  {id, email, role, name} as URL-encoded JSON (never the token)

Remember-me uses a second pair with the same shape and a 30-day max-age.
"""

import json
import logging
from urllib.parse import quote, unquote

from pydantic import ValidationError
from starlette.responses import Response

from auth.config import AuthConfig
from auth.types import SessionUser

logger = logging.getLogger(__name__)

REMEMBER_SUFFIX = "-remember"


class SessionCookieManager:
    """Writes, reads and clears the auth/session cookie pairs."""

    def __init__(self, config: AuthConfig):
        self._config = config
        self.auth_cookie = config.cookie_name
        self.session_cookie = config.session_cookie_name
        self.remember_auth_cookie = f"{config.cookie_name}{REMEMBER_SUFFIX}"
        self.remember_session_cookie = f"{config.session_cookie_name}{REMEMBER_SUFFIX}"

    def _set_pair(
        self,
        response: Response,
        auth_name: str,
        session_name: str,
        token: str,
        user: SessionUser,
        max_age: int,
    ) -> None:
        common = {
            "max_age": max_age,
            "path": "/",
            "domain": self._config.cookie_domain,
            "secure": self._config.cookie_secure,
            "samesite": "strict",
        }
        response.set_cookie(key=auth_name, value=token, httponly=True, **common)
        response.set_cookie(
            key=session_name,
            value=quote(user.model_dump_json()),
            httponly=False,
            **common,
        )

    def _clear_pair(self, response: Response, auth_name: str, session_name: str) -> None:
        for name in (auth_name, session_name):
            response.delete_cookie(key=name, path="/", domain=self._config.cookie_domain)

    def set_auth_cookies(self, response: Response, token: str, user: SessionUser) -> None:
        self._set_pair(
            response,
            self.auth_cookie,
            self.session_cookie,
            token,
            user,
            max_age=self._config.cookie_max_age_hours * 3600,
        )

    def set_remember_me_cookies(self, response: Response, token: str, user: SessionUser) -> None:
        self._set_pair(
            response,
            self.remember_auth_cookie,
            self.remember_session_cookie,
            token,
            user,
            max_age=self._config.remember_me_max_age_days * 86400,
        )

    def clear_auth_cookies(self, response: Response) -> None:
        self._clear_pair(response, self.auth_cookie, self.session_cookie)

    def clear_remember_me_cookies(self, response: Response) -> None:
        self._clear_pair(response, self.remember_auth_cookie, self.remember_session_cookie)

    def clear_all(self, response: Response) -> None:
        self.clear_auth_cookies(response)
        self.clear_remember_me_cookies(response)

    def get_token_from_cookies(self, cookies: dict[str, str]) -> str | None:
        """Auth cookie first, then the remember-me one."""
        return cookies.get(self.auth_cookie) or cookies.get(self.remember_auth_cookie) or None

    def get_session_from_cookies(self, cookies: dict[str, str]) -> SessionUser | None:
        """Decode the shadow session cookie. None if absent or unreadable."""
        raw = cookies.get(self.session_cookie) or cookies.get(self.remember_session_cookie)
        if not raw:
            return None
        try:
            return SessionUser.model_validate(json.loads(unquote(raw)))
        except (json.JSONDecodeError, ValidationError):
            logger.debug("Ignoring unreadable session cookie")
            return None

    def has_auth_cookies(self, cookies: dict[str, str]) -> bool:
        return bool(cookies.get(self.auth_cookie) and cookies.get(self.session_cookie))
