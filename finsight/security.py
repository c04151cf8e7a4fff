from typing import Optional

from fastapi import Depends, HTTPException, Request, status

from . import config

LOOPBACK_HOSTS = frozenset({"127.0.0.1", "::1", "localhost"})

_BEARER = "Bearer "


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if not header.startswith(_BEARER):
        return None
    return header[len(_BEARER):].strip() or None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


async def require_api_auth(request: Request) -> None:
    """Gate the ledger endpoints.

    With ``FINSIGHT_API_TOKEN`` configured the request must present it as a
    bearer token. Without it the service only answers loopback clients.
    """
    if config.API_TOKEN:
        if _bearer_token(request) != config.API_TOKEN:
            raise _unauthorized("Invalid or missing API token.")
        return

    host = request.client.host if request.client else ""
    if host not in LOOPBACK_HOSTS:
        raise _unauthorized("Set FINSIGHT_API_TOKEN to accept non-loopback clients.")


RequireAPIAuth = Depends(require_api_auth)
