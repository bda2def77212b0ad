"""Promo code routes."""
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from laundry.auth import Actor, require_actor, require_customer
from laundry.database import get_db
from laundry.schemas.promo import ActivePromoResponse, PromoSummary, PromoValidate, PromoValidateResponse
from laundry.services.promo import list_active_promos, validate_promo

router = APIRouter(prefix="/promo", tags=["Promo"])


@router.post("/validate", response_model=PromoValidateResponse)
async def validate_promo_code(
    promo_data: PromoValidate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_customer)
):
    """Check a promo code against a cart amount without using it."""
    result = validate_promo(db, promo_data.code, promo_data.order_amount, actor.id, promo_data.laundry_id)
    return PromoValidateResponse(
        promo=PromoSummary.model_validate(result.promo),
        calculated_discount=result.discount,
        final_amount=max(int(promo_data.order_amount - result.discount), 0),
    )


@router.get("/active", response_model=List[ActivePromoResponse])
async def get_active_promos(
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor)
):
    """Promos currently on offer."""
    return list_active_promos(db, limit=limit)
