from datetime import timedelta
from typing import Any, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from food_coach.core.config import debug_routes_enabled
from food_coach.core.time_utils import now
from food_coach.db.models import Meal
from food_coach.db.session import get_db
from food_coach.services.meals import compute_stats, load_tags, meals_in_range
from food_coach.services.messaging import MessagingProvider, get_messaging_provider
from food_coach.services.preferences import preferences_as_dict
from food_coach.services.scheduler import trigger_daily_report
from food_coach.services.users import get_user_by_id, get_user_by_phone


def require_debug_routes() -> None:
    if not debug_routes_enabled():
        raise HTTPException(status_code=404, detail="Not found")


router = APIRouter(prefix="/debug", tags=["debug"], dependencies=[Depends(require_debug_routes)])


class DailyReportRequest(BaseModel):
    userId: Optional[Union[int, str]] = None


def _meal_out(meal: Meal) -> dict[str, Any]:
    return {
        "id": meal.id,
        "createdAt": meal.created_at.isoformat(),
        "sourceType": meal.source_type,
        "rawText": meal.raw_text,
        "tags": load_tags(meal),
    }


@router.post("/run-daily-report")
def run_daily_report(
    payload: DailyReportRequest,
    db: Session = Depends(get_db),
    provider: MessagingProvider = Depends(get_messaging_provider),
):
    if payload.userId in (None, ""):
        return JSONResponse(status_code=400, content={"error": "userId is required"})
    try:
        user_id = int(payload.userId)
    except ValueError:
        return JSONResponse(status_code=400, content={"error": "userId must be numeric"})
    try:
        sent = trigger_daily_report(db, provider, user_id)
    except LookupError:
        return JSONResponse(status_code=404, content={"error": "User not found", "userId": user_id})
    if not sent:
        return JSONResponse(status_code=500, content={"error": "Failed to send daily report", "userId": user_id})
    return {"status": "success", "message": "Daily report sent successfully", "userId": user_id}


@router.get("/user/{phone}")
def user_info(phone: str, db: Session = Depends(get_db)):
    user = get_user_by_phone(db, phone)
    if not user:
        return JSONResponse(status_code=404, content={"error": "User not found"})
    recent = db.query(Meal).filter(Meal.user_id == user.id).order_by(Meal.created_at.desc()).limit(5).all()
    return {
        "id": user.id,
        "phone": user.phone,
        "language": user.language,
        "storeMedia": user.store_media,
        "createdAt": user.created_at.isoformat(),
        "preferences": preferences_as_dict(user.preferences),
        "meals": [_meal_out(meal) for meal in recent],
    }


@router.get("/stats/{user_id}")
def user_stats(user_id: int, days: int = Query(default=7, ge=1, le=365), db: Session = Depends(get_db)):
    if get_user_by_id(db, user_id) is None:
        return JSONResponse(status_code=404, content={"error": "User not found"})
    end = now()
    start = end - timedelta(days=days)
    meals = meals_in_range(db, user_id, start, end)
    stats = compute_stats(meals)
    return {
        "period": {"startDate": start.isoformat(), "endDate": end.isoformat(), "days": days},
        "stats": {
            "totalMeals": stats.total_meals,
            "lateMeals": stats.late_meals,
            "veggieRatio": stats.veggie_ratio,
            "proteinRatio": stats.protein_ratio,
            "junkRatio": stats.junk_ratio,
        },
        "recentMeals": [_meal_out(meal) for meal in meals[:10]],
    }
