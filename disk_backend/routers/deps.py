from fastapi import Header, Request

from disk_backend.container import Services
from disk_backend.errors import UnauthorizedError
from disk_backend.services.guard import Identity


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_current_identity(
    request: Request, authorization: str | None = Header(default=None)
) -> Identity:
    if not authorization:
        raise UnauthorizedError("Missing Authorization header")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise UnauthorizedError("Invalid Authorization header")
    identity = get_services(request).guard.authorize(token.strip())
    request.state.identity = identity
    return identity
