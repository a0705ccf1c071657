import uuid

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.core.clock import utcnow
from app.db.session import Base


class Student(Base):
    """
    Role-specific record for a student profile. Created only through provisioning.
    current_semester_id moves as the student progresses; it must belong to course_id.
    """

    __tablename__ = "students"
    __table_args__ = (
        UniqueConstraint("roll_number", "course_id", name="uq_student_roll_course"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    profile_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    roll_number = Column(String(50), nullable=False)
    course_id = Column(UUID(as_uuid=True), ForeignKey("courses.id"), nullable=False)
    current_semester_id = Column(UUID(as_uuid=True), ForeignKey("semesters.id"), nullable=True)
    enrollment_year = Column(Integer, nullable=False)
    enrollment_date = Column(Date, nullable=True)
    guardian_name = Column(String(255), nullable=True)
    guardian_phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    profile = relationship("Profile")
    course = relationship("Course")
    current_semester = relationship("Semester")
