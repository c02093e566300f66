"""Key-value document store keyed by user identity."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select

from commissioner.storage.database import SessionFactory, get_session
from commissioner.storage.models import AppState, UserDocument

logger = logging.getLogger(__name__)

BETS = "bets"
SETTINGS = "settings"
ACCOUNT = "account"
SESSION_USER_KEY = "session_user"


class DocumentStore:
    """get/set/list over per-user JSON documents."""

    def __init__(self, session_factory: SessionFactory | None = None) -> None:
        self._factory = session_factory

    def get(self, user_id: str, kind: str) -> Any | None:
        with get_session(self._factory) as session:
            doc = session.scalars(
                select(UserDocument).where(UserDocument.user_id == user_id, UserDocument.kind == kind)
            ).first()
            return doc.payload if doc else None

    def set(self, user_id: str, kind: str, payload: Any) -> None:
        with get_session(self._factory) as session:
            doc = session.scalars(
                select(UserDocument).where(UserDocument.user_id == user_id, UserDocument.kind == kind)
            ).first()
            if doc is None:
                session.add(UserDocument(user_id=user_id, kind=kind, payload=payload))
            else:
                doc.payload = payload
        logger.debug("Stored %s document for %s", kind, user_id)

    def list_users(self, kind: str = ACCOUNT) -> list[str]:
        with get_session(self._factory) as session:
            stmt = select(UserDocument.user_id).where(UserDocument.kind == kind).order_by(UserDocument.user_id)
            return list(session.scalars(stmt))

    def get_session_user(self) -> str | None:
        with get_session(self._factory) as session:
            state = session.get(AppState, SESSION_USER_KEY)
            return state.value if state else None

    def set_session_user(self, user_id: str | None) -> None:
        with get_session(self._factory) as session:
            state = session.get(AppState, SESSION_USER_KEY)
            if state is None:
                session.add(AppState(key=SESSION_USER_KEY, value=user_id))
            else:
                state.value = user_id
