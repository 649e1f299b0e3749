"""
Face-to-face activity and session lookups.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Query, Session, selectinload

from ..models.facetoface import Facetoface, FacetofaceSession
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class SessionRepository(BaseRepository[FacetofaceSession]):
    """Read access to sessions, always with their scheduled dates loaded."""

    def __init__(self, db: Session):
        super().__init__(db, FacetofaceSession)

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(selectinload(FacetofaceSession.dates))

    def get_session(self, session_id: str) -> Optional[FacetofaceSession]:
        """Return the session with its dates, or None if it does not exist."""
        return self.get_by_id(session_id)

    def get_facetoface(self, facetoface_id: str) -> Optional[Facetoface]:
        """Return the face-to-face activity, or None if it does not exist."""
        rows = self._execute_query(
            self.db.query(Facetoface).filter(Facetoface.id == facetoface_id).limit(1)
        )
        return rows[0] if rows else None
