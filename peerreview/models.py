# peerreview/models.py
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Boolean, UniqueConstraint
from sqlalchemy.orm import declarative_base, relationship
from datetime import datetime

Base = declarative_base()

STUDENT = "STUDENT"
TEACHER = "TEACHER"
ROLES = (STUDENT, TEACHER)

PENDING = "PENDING"
COMPLETED = "COMPLETED"
ASSIGNMENT_STATUSES = (PENDING, COMPLETED)


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)  # passlib digest, never plaintext
    name = Column(String, nullable=False)
    role = Column(String, nullable=False, default=STUDENT)
    created_at = Column(DateTime, default=datetime.utcnow)

    projects = relationship("Project", back_populates="teacher")
    submissions = relationship("Submission", back_populates="student")
    reviews = relationship("Review", back_populates="reviewer")
    comments = relationship("Comment", back_populates="author")
    notifications = relationship("Notification", back_populates="user")
    assignments = relationship("Assignment", back_populates="reviewer")


class Project(Base):
    __tablename__ = "projects"
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    tags = Column(String, nullable=False, default="")  # comma separated, e.g. "AI,Web App"
    due_date = Column(DateTime, nullable=False)
    teacher_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    teacher = relationship("User", back_populates="projects")
    submissions = relationship("Submission", back_populates="project", order_by="Submission.created_at")


class Submission(Base):
    __tablename__ = "submissions"
    __table_args__ = (
        UniqueConstraint("student_id", "project_id", name="uq_submission_student_project"),
    )
    id = Column(Integer, primary_key=True, index=True)
    content = Column(Text, nullable=False, default="")
    image_url = Column(String, nullable=False, default="")
    file_url = Column(String, nullable=False, default="")
    points = Column(Integer, nullable=True)  # 0-100, teacher grade
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    student = relationship("User", back_populates="submissions")
    project = relationship("Project", back_populates="submissions")
    reviews = relationship("Review", back_populates="submission", order_by="Review.created_at")
    comments = relationship("Comment", back_populates="submission", order_by="Comment.created_at")


class Review(Base):
    __tablename__ = "reviews"
    id = Column(Integer, primary_key=True, index=True)
    content = Column(Text, nullable=False, default="")
    score = Column(Integer, nullable=False)  # 1-5 stars
    reviewer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    submission_id = Column(Integer, ForeignKey("submissions.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    reviewer = relationship("User", back_populates="reviews")
    submission = relationship("Submission", back_populates="reviews")


class Comment(Base):
    __tablename__ = "comments"
    id = Column(Integer, primary_key=True, index=True)
    content = Column(Text, nullable=False)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    submission_id = Column(Integer, ForeignKey("submissions.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    author = relationship("User", back_populates="comments")
    submission = relationship("Submission", back_populates="comments")


class Assignment(Base):
    __tablename__ = "assignments"
    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False)
    reviewer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    submission_id = Column(Integer, ForeignKey("submissions.id"), nullable=False)
    status = Column(String, nullable=False, default=PENDING)
    due_date = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    project = relationship("Project")
    reviewer = relationship("User", back_populates="assignments")
    submission = relationship("Submission")


class Notification(Base):
    __tablename__ = "notifications"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String, nullable=False, default="INFO")
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="notifications")
