from datetime import datetime, timedelta
from typing import Optional
from jose import JWTError, jwt
from cms.core.config import settings

def _encode(user_id: int, email: str, role: str, minutes: int, token_type: str) -> str:
    payload = {
        "user_id": user_id,
        "email": email,
        "role": role,
        "exp": datetime.utcnow() + timedelta(minutes=minutes),
        "type": token_type
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")

def create_access_token(user_id: int, email: str, role: str = "editor") -> str:
    #token d'accès de 15 minutes
    return _encode(user_id, email, role, settings.JWT_EXPIRE_MIN, "access")

def create_refresh_token(user_id: int, email: str, role: str = "editor") -> str:
    #token de rafraîchissement de 30 jours
    return _encode(user_id, email, role, settings.JWT_REFRESH_EXPIRE_MIN, "refresh")

def verify_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=["HS256"])
    except JWTError:
        return None

def decode_token(token: str) -> Optional[int]:
    payload = verify_token(token)
    if payload is None or payload.get("type") != "access":
        return None
    return payload.get("user_id")
