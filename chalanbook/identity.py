"""Registration, login and token checks."""
import logging
from typing import Optional

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from chalanbook import auth as auth_utils
from chalanbook.errors import (
    DuplicateUsername, InvalidCredentials, InvalidToken, MissingToken, NotFound, RootConflict,
)
from chalanbook.models import User
from chalanbook.schemas import Claims, RegisterIn

logger = logging.getLogger(__name__)


def root_exists(session: Session) -> bool:
    return session.exec(select(User).where(User.is_root == True)).first() is not None  # noqa: E712


def issue_token(user: User) -> str:
    claims = Claims(id=user.id, username=user.username, role=user.role, is_root=user.is_root)
    return auth_utils.create_access_token(claims.model_dump(by_alias=True))


def register(session: Session, data: RegisterIn) -> str:
    # the root role and the root flag always go together
    is_root = data.is_root or data.role == "root"
    role = "root" if is_root else (data.role or "add-only")

    if is_root and root_exists(session):
        raise RootConflict()
    if session.exec(select(User).where(User.username == data.username)).first():
        raise DuplicateUsername()

    user = User(
        username=data.username,
        email=data.email,
        password_hash=auth_utils.get_password_hash(data.password),
        role=role,
        is_root=is_root,
    )
    session.add(user)
    try:
        session.commit()
    except IntegrityError:
        # lost a race with a concurrent registration; the unique indexes decide
        session.rollback()
        if is_root and root_exists(session):
            raise RootConflict()
        raise DuplicateUsername()
    session.refresh(user)
    logger.info("registered user %s with role %s", user.username, user.role)
    return issue_token(user)


def login(session: Session, username: str, password: str) -> str:
    user = session.exec(select(User).where(User.username == username)).first()
    if not user or not auth_utils.verify_password(password, user.password_hash):
        logger.info("failed login for %s", username)
        raise InvalidCredentials()
    return issue_token(user)


def authenticate(token: Optional[str]) -> Claims:
    """Check the token alone. The user row is not consulted, so a token for a
    deleted or demoted user stays usable until it expires."""
    if not token:
        raise MissingToken()
    payload = auth_utils.decode_token(token)
    if payload is None:
        raise InvalidToken()
    try:
        return Claims.model_validate(payload)
    except ValidationError:
        raise InvalidToken()


def get_profile(session: Session, user_id: int) -> User:
    user = session.get(User, user_id)
    if not user:
        raise NotFound("User not found")
    return user


def delete_profile(session: Session, user_id: int) -> bool:
    user = session.get(User, user_id)
    if not user:
        return False
    session.delete(user); session.commit()
    logger.info("deleted user %s", user.username)
    return True
