from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session
from cms.core.database import get_db

router = APIRouter()

@router.get("/z")
def healthz():
    # Check si l'API est up
    return {"status": "ok"}

@router.get("/db")
def health_db(db: Session = Depends(get_db)):
    db.execute(text("SELECT 1"))
    return {"status": "ok", "database": "reachable"}
