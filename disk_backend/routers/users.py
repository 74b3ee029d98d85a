from fastapi import APIRouter, Depends

from disk_backend.container import Services
from disk_backend.routers.deps import get_current_identity, get_services
from disk_backend.schemas.users import Envelope, UpdateUserRequest, UserView
from disk_backend.services.guard import Identity

router = APIRouter(prefix="/user", tags=["user"])


@router.get("/info", response_model=Envelope)
def get_user_info(
    identity: Identity = Depends(get_current_identity),
    services: Services = Depends(get_services),
) -> Envelope:
    user = services.credentials.get_user_info(identity.username)
    return Envelope(data=UserView(**user))


@router.put("/info", response_model=Envelope)
def update_user_info(
    payload: UpdateUserRequest,
    identity: Identity = Depends(get_current_identity),
    services: Services = Depends(get_services),
) -> Envelope:
    changes = payload.model_dump(exclude_unset=True)
    user = services.credentials.update_user_info(identity.username, changes)
    return Envelope(data=UserView(**user))
