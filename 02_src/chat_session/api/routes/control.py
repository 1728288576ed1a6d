"""Control API routes."""

from pydantic import BaseModel
from fastapi import APIRouter, HTTPException

from ...app import IApplication
from ...models import PlanTier, QuotaState


class StatusResponse(BaseModel):
    """Response model for status."""

    status: str


class SubscriptionRequest(BaseModel):
    """Plan and usage to seed for a user."""

    plan_tier: PlanTier = PlanTier.FREE
    messages_used: int = 0
    message_limit: int = 50
    attachments_used: int = 0
    attachment_limit: int = 5


def create_control_router(app: IApplication) -> APIRouter:
    """Create control router."""
    router = APIRouter(prefix="/api/control", tags=["control"])

    @router.post("/reset", response_model=StatusResponse)
    async def reset_system() -> dict:
        """Close all sessions and clear stored data."""
        try:
            await app.reset()
            return {"status": "ok"}
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    @router.put("/subscriptions/{user_id}", response_model=StatusResponse)
    async def seed_subscription(user_id: str, request: SubscriptionRequest) -> dict:
        """Stand-in for the billing system: write a user's plan and usage."""
        await app.storage.save_subscription(
            user_id, QuotaState(**request.model_dump())
        )
        return {"status": "ok"}

    return router
