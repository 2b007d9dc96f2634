"""
Auth Module - Routes
======================
Login and registration. Both merge the caller's guest cart
(session cookie) into the account cart in the same transaction.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from config.database import get_db, transactional
from modules.auth.deps import get_session_id
from modules.auth.service import auth_service
from modules.cart.schemas import serialize_cart

router = APIRouter(prefix="/auth", tags=["auth"])


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1)


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=6)


def _auth_payload(user, token, cart) -> dict:
    return {
        "access_token": token,
        "token_type": "bearer",
        "user": {"id": user.id, "name": user.name, "email": user.email},
        "cart": serialize_cart(cart),
    }


@router.post("/login")
async def login(
    body: LoginRequest,
    session_id: str = Depends(get_session_id),
    db: Session = Depends(get_db),
):
    with transactional(db):
        user, token, cart = auth_service.login(db, body.email, body.password, session_id)
        payload = _auth_payload(user, token, cart)
    return payload


@router.post("/register", status_code=201)
async def register(
    body: RegisterRequest,
    session_id: str = Depends(get_session_id),
    db: Session = Depends(get_db),
):
    with transactional(db):
        user, token, cart = auth_service.register(db, body.name, body.email, body.password, session_id)
        payload = _auth_payload(user, token, cart)
    return payload
