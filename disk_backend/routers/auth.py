from typing import Annotated

from fastapi import APIRouter, Depends, Query

from disk_backend.container import Services
from disk_backend.routers.deps import get_current_identity, get_services
from disk_backend.schemas.users import (
    Envelope,
    LoginRequest,
    LoginResult,
    MessageResult,
    RegisterRequest,
    SendCodeRequest,
)
from disk_backend.services.guard import Identity

router = APIRouter(prefix="/user", tags=["user"])


@router.get("/regcode", response_model=Envelope)
def send_verification_code(
    payload: Annotated[SendCodeRequest, Query()],
    services: Services = Depends(get_services),
) -> Envelope:
    result = services.credentials.send_verification_code(payload.email)
    return Envelope(data=MessageResult(**result))


@router.post("/register", response_model=Envelope)
def register(
    payload: RegisterRequest, services: Services = Depends(get_services)
) -> Envelope:
    result = services.credentials.register(
        payload.username,
        payload.password,
        email=payload.email,
        code=payload.code,
    )
    return Envelope(data=MessageResult(**result))


@router.post("/login", response_model=Envelope)
def login(payload: LoginRequest, services: Services = Depends(get_services)) -> Envelope:
    result = services.credentials.login(payload.username, payload.password)
    return Envelope(data=LoginResult(**result))


@router.post("/logout", response_model=Envelope)
def logout(
    identity: Identity = Depends(get_current_identity),
    services: Services = Depends(get_services),
) -> Envelope:
    result = services.credentials.logout(identity)
    return Envelope(data=MessageResult(**result))
