import uuid

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.core.clock import utcnow
from app.db.session import Base


class Teacher(Base):
    """Role-specific record for a teacher profile. Created only through provisioning."""

    __tablename__ = "teachers"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    profile_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    employee_id = Column(String(50), nullable=False, unique=True)
    department = Column(String(255), nullable=True)
    designation = Column(String(255), nullable=True)
    qualification = Column(String(255), nullable=True)
    joining_date = Column(Date, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    profile = relationship("Profile")
    semester_assignments = relationship("TeacherSemesterAssignment", back_populates="teacher")


class TeacherSemesterAssignment(Base):
    """Binds a teacher to a semester and a subject. subject_id is null when only a free-text name was given."""

    __tablename__ = "teacher_semester_assignments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    teacher_id = Column(UUID(as_uuid=True), ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False)
    semester_id = Column(UUID(as_uuid=True), ForeignKey("semesters.id", ondelete="CASCADE"), nullable=False)
    subject_id = Column(UUID(as_uuid=True), ForeignKey("subjects.id"), nullable=True)
    subject_name = Column(String(255), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    teacher = relationship("Teacher", back_populates="semester_assignments")
    semester = relationship("Semester")
    subject = relationship("Subject")
