# healthcare_pro/routes/preferences_routes.py
from fastapi import APIRouter, Depends

from healthcare_pro.auth.deps import get_current_user
from healthcare_pro.models.user import User
from healthcare_pro.schemas.preferences import Preferences, PreferencesUpdate
from healthcare_pro.services.preferences import PreferencesStore, get_preferences_store

router = APIRouter(prefix="/api/preferences", tags=["preferences"])


@router.get("/", response_model=Preferences)
def get_preferences(
    current_user: User = Depends(get_current_user),
    store: PreferencesStore = Depends(get_preferences_store),
):
    return store.load(current_user.id)


@router.put("/", response_model=Preferences)
def update_preferences(
    payload: PreferencesUpdate,
    current_user: User = Depends(get_current_user),
    store: PreferencesStore = Depends(get_preferences_store),
):
    """Merge the given fields into the stored preferences.

    Omitted fields keep their value; a field sent as null goes back to its default.
    """
    return store.update(current_user.id, payload.model_dump(exclude_unset=True))
