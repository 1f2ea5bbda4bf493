from dataclasses import dataclass
from typing import Dict, Optional

from fastapi import Request
from fastapi.responses import Response

from app.core.config import API_TOKEN, AUTH_SCHEME, AUTH_TOKEN_COOKIE


@dataclass(frozen=True)
class AuthContext:
    """
    Token used when talking to the registrations API.
    An empty context means calls go out unauthenticated.
    """
    token: Optional[str] = None
    scheme: str = AUTH_SCHEME

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def headers(self) -> Dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"{self.scheme} {self.token}"}


def get_token(request: Request) -> Optional[str]:
    """Returns the browser's token cookie, or the configured service token."""
    return request.cookies.get(AUTH_TOKEN_COOKIE) or API_TOKEN or None


def remove_token(response: Response) -> None:
    response.delete_cookie(AUTH_TOKEN_COOKIE)


def get_auth_context(request: Request) -> AuthContext:
    """Dependency provider for the per-request auth context."""
    return AuthContext(token=get_token(request))
