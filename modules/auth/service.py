"""
Auth Module - Service Layer
=============================
Credential check / user creation plus the guest cart merge.
Both run inside the caller's transaction so a failed merge also
undoes the login side effects, and vice versa.
"""

import logging
from typing import Optional, Tuple

from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from common.security import hash_password, verify_password, create_token
from common.exceptions import AuthenticationError, DuplicateError
from modules.cart.models import Cart
from modules.cart.merge_service import cart_merge_service
from modules.user.models import User

logger = logging.getLogger("folio.auth")


class AuthService:
    """Handles login/registration and token creation."""

    def login(self, db: Session, email: str, password: str, session_id: Optional[str] = None) -> Tuple[User, str, Cart]:
        """
        Verify credentials, fold the guest cart into the user's cart, issue a token.

        Returns:
            (user, access_token, merged_cart)
        """
        email = (email or "").strip().lower()
        user = db.query(User).filter(User.email == email).first()
        if not user or not user.is_active or not verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid email or password")

        cart = cart_merge_service.merge_carts(db, session_id, user.id)
        token = create_token({"sub": str(user.id)})
        logger.info(f"User #{user.id} logged in")
        return user, token, cart

    def register(
        self,
        db: Session,
        name: str,
        email: str,
        password: str,
        session_id: Optional[str] = None,
    ) -> Tuple[User, str, Cart]:
        """Create an account; the guest cart becomes the new user's cart."""
        email = (email or "").strip().lower()
        if db.query(User.id).filter(User.email == email).first():
            raise DuplicateError("Email is already registered")

        user = User(name=name, email=email, password_hash=hash_password(password))
        try:
            with db.begin_nested():
                db.add(user)
        except IntegrityError:
            raise DuplicateError("Email is already registered")

        cart = cart_merge_service.merge_carts(db, session_id, user.id)
        token = create_token({"sub": str(user.id)})
        logger.info(f"User #{user.id} registered")
        return user, token, cart


auth_service = AuthService()
