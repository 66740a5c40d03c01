"""
Catalog lookups: quizzes, questions with options, users
"""
import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session, selectinload

from quizcore.models import Question, Quiz, User

logger = logging.getLogger(__name__)


class CatalogService:
    """Read-only access to the quiz catalog and the user directory"""

    def get_quiz_by_id(self, db: Session, quiz_id: UUID) -> Optional[Quiz]:
        return db.get(Quiz, quiz_id)

    def get_quiz_with_questions(self, db: Session, quiz_id: UUID) -> Optional[Quiz]:
        return (
            db.query(Quiz)
            .options(selectinload(Quiz.questions).selectinload(Question.options))
            .filter(Quiz.id == quiz_id)
            .first()
        )

    def get_questions_with_options(self, db: Session, quiz_id: UUID) -> List[Question]:
        """
        All questions of a quiz ordered by order_index

        The order is stable so score accumulation is reproducible.
        """
        return (
            db.query(Question)
            .options(selectinload(Question.options))
            .filter(Question.quiz_id == quiz_id)
            .order_by(Question.order_index.asc(), Question.id.asc())
            .all()
        )

    def get_user_by_id(self, db: Session, user_id: UUID) -> Optional[User]:
        return db.get(User, user_id)


# Global instance
catalog_service = CatalogService()
