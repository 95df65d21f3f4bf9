"""Pydantic schemas for the public plan catalog."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class PlanDefinitionSchema(BaseModel):
    planId: str
    displayName: str
    trialDays: int = Field(..., ge=0)
    monthlyPriceMinor: int = Field(..., ge=0, description="Monthly price after the trial, in minor units.")
    currency: str
    formattedPrice: str


class PlanCatalogResponse(BaseModel):
    plans: List[PlanDefinitionSchema] = Field(default_factory=list)
