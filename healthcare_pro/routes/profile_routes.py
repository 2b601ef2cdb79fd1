# healthcare_pro/routes/profile_routes.py
from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from healthcare_pro.auth.deps import get_current_user
from healthcare_pro.db.session import get_db
from healthcare_pro.models.user import User, UserProfile
from healthcare_pro.schemas.profile import UserProfileIn, UserProfileOut

router = APIRouter(prefix="/api/profile", tags=["profile"])


def profile_context(db: Session, user_id: str) -> Dict[str, Any]:
    """Stored profile as the dict the prompts expect; empty when none is saved."""
    prof = db.query(UserProfile).filter(UserProfile.user_id == str(user_id)).first()
    if not prof:
        return {}
    return UserProfileOut.model_validate(prof, from_attributes=True).as_context()


@router.get("/", response_model=UserProfileOut)
def get_profile(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    prof = db.query(UserProfile).filter(UserProfile.user_id == str(user.id)).first()
    if not prof:
        # create an empty profile on first read
        prof = UserProfile(user_id=str(user.id))
        db.add(prof)
        db.commit()
        db.refresh(prof)
    return UserProfileOut.model_validate(prof, from_attributes=True)


@router.put("/", response_model=UserProfileOut)
def upsert_profile(
    payload: UserProfileIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    prof = db.query(UserProfile).filter(UserProfile.user_id == str(user.id)).first()
    if not prof:
        prof = UserProfile(user_id=str(user.id))

    prof.age = payload.age
    prof.gender = payload.gender
    prof.weight = payload.weight
    prof.preconditions = payload.preconditions or []
    prof.medications = payload.medications or []
    prof.allergies = payload.allergies or []

    db.add(prof)
    db.commit()
    db.refresh(prof)
    return UserProfileOut.model_validate(prof, from_attributes=True)
