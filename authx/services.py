# authx/services.py
"""
Identity and credentials: password verification, session tokens and
registration.

Tokens are HS256 JWTs signed with settings.JWT_SECRET carrying the user id
plus iat/exp claims. Passwords go through Django's configured hashers.
"""
import logging
from datetime import datetime, timezone as dt_timezone

import jwt
from django.conf import settings
from django.contrib.auth.hashers import check_password, make_password

from core.errors import (
    EmailInUse,
    ExpiredToken,
    Forbidden,
    IncorrectPassword,
    InvalidCredentials,
    InvalidToken,
    UserGone,
)
from projects.policies import is_admin
from projects.stores import get_store
from users.models import User

logger = logging.getLogger("taskhub.auth")


def normalize_email(email) -> str:
    return (email or "").strip().lower()


class IdentityService:

    def __init__(self, store=None):
        self.store = store or get_store()

    # ---- passwords ----------------------------------------------------

    def verify_password(self, user, candidate) -> bool:
        if user is None or not candidate:
            return False
        return check_password(candidate, user.password)

    def authenticate(self, email, password):
        """
        Unknown email and wrong password fail identically, with the same
        error and roughly the same amount of hashing work.
        """
        user = self.store.get_user_by_email(normalize_email(email))

        if user is None:
            # Run the hasher anyway so response time does not reveal the email
            make_password(password)
            logger.info("Failed login for %s", normalize_email(email))
            raise InvalidCredentials()

        if not self.verify_password(user, password) or not user.is_active:
            logger.info("Failed login for %s", user.email)
            raise InvalidCredentials()

        self.store.touch_last_login(user)
        return user

    def change_password(self, user, current, new):
        if not self.verify_password(user, current):
            raise IncorrectPassword()
        self.store.update_user(user, password=make_password(new))
        logger.info("User %s changed their password", user.id)
        return user

    def reset_password(self, actor, user, new):
        if not is_admin(actor):
            raise Forbidden()
        self.store.update_user(user, password=make_password(new))
        logger.info("Password of user %s reset by admin %s", user.id, actor.id)
        return user

    def deactivate(self, actor, user):
        """
        Soft delete: the account stays for ownership and history but can no
        longer log in, and its outstanding tokens resolve as user_gone.
        """
        if actor.id != user.id and not is_admin(actor):
            raise Forbidden()
        if user.is_active:
            self.store.update_user(user, is_active=False)
        logger.info("User %s deactivated by %s", user.id, actor.id)
        return user

    # ---- accounts -----------------------------------------------------

    def register(self, name, email, password, role=None, department=None, job_title=None):
        email = normalize_email(email)
        if self.store.get_user_by_email(email) is not None:
            raise EmailInUse()

        user = self.store.create_user(
            email=email,
            name=name,
            password=make_password(password),
            role=role or User.ROLE_USER,
            department=department or "",
            job_title=job_title or "",
        )
        logger.info("Registered user %s (%s)", user.id, user.role)
        return user

    # ---- sessions -----------------------------------------------------

    def issue_session(self, user) -> str:
        now = datetime.now(tz=dt_timezone.utc)
        payload = {
            "id": user.id,
            "iat": now,
            "exp": now + settings.JWT_EXPIRES_IN,
        }
        return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)

    def resolve_session(self, token):
        try:
            payload = jwt.decode(
                token,
                settings.JWT_SECRET,
                algorithms=[settings.JWT_ALGORITHM],
                options={"require": ["id", "exp"]},
            )
        except jwt.ExpiredSignatureError:
            logger.debug("Rejected expired token")
            raise ExpiredToken()
        except jwt.InvalidTokenError as e:
            logger.debug("Rejected invalid token: %s", e)
            raise InvalidToken()

        user_id = payload.get("id")
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            raise InvalidToken()

        user = self.store.get_user(user_id)
        if user is None or not user.is_active:
            raise UserGone()
        return user
