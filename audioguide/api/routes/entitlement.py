"""
Entitlement API.

GET the current entitlement, subscribe (grant) and logout (revoke).
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from audioguide.api.deps import get_access_service, get_context, get_entitlements
from audioguide.app_shell.context import ClientContext
from audioguide.components.entitlement import EntitlementStore
from audioguide.services.access import AccessService, SubscriptionRejected

router = APIRouter()


# --- Request Models ---


class SubscribeRequest(BaseModel):
    days: int | None = Field(default=None, ge=1)
    email: str | None = None
    form: dict[str, Any] = Field(default_factory=dict)


# --- Routes ---


@router.get("")
def get_entitlement(
    store: EntitlementStore = Depends(get_entitlements),
) -> dict[str, Any]:
    return store.status().to_dict()


@router.post("/subscribe")
def subscribe(
    body: SubscribeRequest,
    service: AccessService = Depends(get_access_service),
) -> dict[str, Any]:
    try:
        outcome = service.subscribe(body.days, email=body.email, form=body.form)
    except SubscriptionRejected as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": "Subscription rejected", "errors": e.errors},
        ) from e
    return outcome.to_dict()


@router.post("/logout")
async def logout(ctx: ClientContext = Depends(get_context)) -> dict[str, Any]:
    return (await ctx.logout()).to_dict()
