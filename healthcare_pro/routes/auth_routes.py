# healthcare_pro/routes/auth_routes.py
from fastapi import APIRouter, Body, Depends, HTTPException, status
from sqlalchemy.orm import Session

from healthcare_pro.auth.jwt import (
    create_access_token,
    create_refresh_token,
    hash_password,
    verify_password,
    verify_refresh_token,
)
from healthcare_pro.db.session import get_db
from healthcare_pro.models.user import User
from healthcare_pro.schemas.auth import LoginAny, RefreshIn, RegisterIn, Token

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _claims(user: User) -> dict:
    return {"sub": str(user.id), "email": user.email}


@router.post("/login", response_model=Token)
def login(payload: LoginAny = Body(...), db: Session = Depends(get_db)):
    email = payload.email or payload.username
    if not email:
        raise HTTPException(status_code=422, detail="Provide 'email' or 'username'")
    user = db.query(User).filter(User.email == str(email)).first()
    if not user or not verify_password(payload.password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return Token(access_token=create_access_token(_claims(user)), refresh_token=create_refresh_token(_claims(user)))


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: RegisterIn = Body(...), db: Session = Depends(get_db)):
    """Create a new user account and return a token pair so the client is logged in."""
    existing = db.query(User).filter(User.email == str(payload.email)).first()
    if existing:
        raise HTTPException(status_code=409, detail="User with this email already exists")

    user = User(
        email=str(payload.email),
        hashed_password=hash_password(payload.password),
        name=payload.name,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return {
        "status": "created",
        "user_id": str(user.id),
        "access_token": create_access_token(_claims(user)),
        "refresh_token": create_refresh_token(_claims(user)),
        "token_type": "bearer",
    }


@router.post("/refresh", response_model=Token)
def refresh(payload: RefreshIn, db: Session = Depends(get_db)):
    """Exchange a refresh token for a new access token."""
    data = verify_refresh_token(payload.refresh_token)
    if not data or not data.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid refresh token")
    user = db.query(User).filter(User.id == str(data["sub"])).first()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return Token(access_token=create_access_token(_claims(user)))
