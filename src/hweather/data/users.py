from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from .models import User


def find_user_by_credentials(session: Session, email: str, password: str) -> User | None:
    stmt = select(User).where(User.email == email, User.password == password)
    return session.scalars(stmt).first()


def find_user_by_email(session: Session, email: str) -> User | None:
    return session.scalars(select(User).where(User.email == email)).first()


def create_user(session: Session, email: str, first_name: str, last_name: str, password: str) -> User:
    user = User(email=email, first_name=first_name, last_name=last_name, password=password)
    session.add(user)
    session.flush()
    return user
