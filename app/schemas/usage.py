from __future__ import annotations

from pydantic import BaseModel


class UsageSnapshot(BaseModel):
    used: int
    remaining: int
    limit: int
    canUse: bool


class UpgradeOffer(BaseModel):
    message: str
    price: str
    features: list[str]


class UsageResponse(BaseModel):
    success: bool = True
    usage: UsageSnapshot
    upgrade: UpgradeOffer | None = None
