from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from cms.core.database import get_db
from cms.core.deps import get_current_user
from cms.core.security import create_access_token, create_refresh_token, verify_token
from cms.models.user import User
from cms.schemas.user import LoginRequest, RefreshRequest, TokenResponse, UserResponse

# Les comptes sont créés par invitation, hors de cette API
router = APIRouter(prefix="/auth", tags=["auth"])

@router.post("/login", response_model=TokenResponse)
def login(credentials: LoginRequest, db: Session = Depends(get_db)):
    """Se connecter et recevoir les tokens"""

    # Cherche l'utilisateur avec son mail
    user = db.query(User).filter(User.email == credentials.email).first()
    if not user or not user.verify_password(credentials.password):
        raise HTTPException(status_code=401, detail="Email ou password incorrect")

    return {
        "access_token": create_access_token(user.id, user.email, user.role),
        "refresh_token": create_refresh_token(user.id, user.email, user.role),
        "token_type": "bearer"
    }

@router.post("/refresh", response_model=TokenResponse)
def refresh(payload: RefreshRequest, db: Session = Depends(get_db)):
    """Utiliser un refresh_token pour obtenir un nouvel access_token"""

    data = verify_token(payload.refresh_token)
    if not data or data.get("type") != "refresh":
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    user = db.query(User).filter(User.id == data.get("user_id")).first()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    return {
        "access_token": create_access_token(user.id, user.email, user.role),
        "refresh_token": payload.refresh_token,
        "token_type": "bearer"
    }

@router.get("/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return current_user
