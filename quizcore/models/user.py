"""
User model - minimal projection of the platform's user directory
"""
from sqlalchemy import Column, String, TIMESTAMP, Enum, Uuid, func
from quizcore.database import Base
from quizcore.models.enums import UserRole
from quizcore.utils.time import utcnow
import uuid


class User(Base):
    """
    Users table - students taking quizzes and teachers owning courses
    """
    __tablename__ = "users"
    
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255))
    role = Column(Enum(UserRole, native_enum=False, length=20), nullable=False, default=UserRole.STUDENT)
    created_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())
    
    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
