from fastapi import APIRouter, Body, Depends, HTTPException
import logging

from dashboard.api.collections import http_error
from dashboard.cache.keys import Collection
from dashboard.core.container import Container, get_container
from dashboard.core.errors import DashboardError
from dashboard.schemas.collection import SessionStateOut, SignInRequest, SignOutResult, StoreProfile

router = APIRouter(prefix="/session", tags=["session"])
logger = logging.getLogger(__name__)


@router.get("", response_model=SessionStateOut)
async def get_session(container: Container = Depends(get_container)):
    return container.session.state.as_dict()


@router.post("/sign-in", response_model=SessionStateOut)
async def sign_in(user: SignInRequest = Body(...), container: Container = Depends(get_container)):
    if not container.session.sign_in(user.model_dump()):
        raise HTTPException(status_code=507, detail="Session could not be stored locally")
    return container.session.state.as_dict()


@router.put("/store-profile", response_model=SessionStateOut)
async def save_store_profile(profile: StoreProfile = Body(...), container: Container = Depends(get_container)):
    """Persist the store profile remotely, then share it with every open context."""
    service = container.services.get(Collection.STORE_INFO)
    payload = profile.model_dump(exclude={"id"})
    try:
        if profile.id:
            saved = await service.update(profile.id, payload)
        else:
            saved = await service.create(payload)
    except DashboardError as e:
        raise http_error(e)

    container.session.save_store_profile(saved)
    return container.session.state.as_dict()


@router.post("/sign-out", response_model=SignOutResult)
async def sign_out(container: Container = Depends(get_container)):
    return SignOutResult(cleared_keys=container.session.sign_out())


@router.post("/contexts/{context_id}", response_model=SessionStateOut)
async def open_context(context_id: str, container: Container = Depends(get_container)):
    return container.open_context(context_id).state.as_dict()


@router.get("/contexts/{context_id}", response_model=SessionStateOut)
async def get_context(context_id: str, container: Container = Depends(get_container)):
    return container.open_context(context_id).state.as_dict()


@router.delete("/contexts/{context_id}", status_code=204)
async def close_context(context_id: str, container: Container = Depends(get_container)):
    container.close_context(context_id)
