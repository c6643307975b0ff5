"""
Referral program: stats, earnings history and code management.
"""
import math
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.user import User
from app.schemas.referrals import (
    ReferralStatsResponse,
    ReferredUser,
    ReferralEarningsResponse,
    ReferralEarning,
    EarningCourse,
    EarningBuyer,
    ReferrerInfo,
    ReferralCodeResponse,
    RegenerateCodeResponse,
    Pagination,
)
from app.services import referrals as referral_service
from app.auth.dependencies import get_current_user

router = APIRouter(prefix="/referrals", tags=["Referrals"])


@router.get("/stats", response_model=ReferralStatsResponse)
def get_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    stats = referral_service.get_stats(db, current_user)
    stats["recent_referrals"] = [ReferredUser.model_validate(u) for u in stats["recent_referrals"]]
    return ReferralStatsResponse(**stats)


@router.get("/earnings", response_model=ReferralEarningsResponse)
def list_earnings(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=50),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    items, total = referral_service.list_earnings(db, current_user.id, page, limit)
    return ReferralEarningsResponse(
        data=[
            ReferralEarning(
                id=p.id,
                course=EarningCourse.model_validate(p.course),
                buyer=EarningBuyer.model_validate(p.buyer),
                earning=p.referral_earning,
                purchased_at=p.purchased_at,
            )
            for p in items
        ],
        pagination=Pagination(page=page, limit=limit, total=total, total_pages=math.ceil(total / limit)),
    )


@router.get("/code/{code}", response_model=ReferralCodeResponse)
def lookup_code(code: str, db: Session = Depends(get_db)):
    referrer = referral_service.find_referrer(db, code)
    if not referrer:
        raise HTTPException(status_code=404, detail="Invalid referral code")
    return ReferralCodeResponse(valid=True, referrer=ReferrerInfo.model_validate(referrer))


@router.post("/regenerate", response_model=RegenerateCodeResponse)
def regenerate_code(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return RegenerateCodeResponse(referral_code=referral_service.regenerate_code(db, current_user))
