# peerreview/crud.py
"""
Data access helpers for the peer-review API.

Each helper runs the queries one endpoint needs and returns plain dicts in
the camelCase response shape the dashboards consume. Nested data is loaded
with explicit eager-load options (no lazy loads per row); list helpers take
``skip``/``limit`` so callers can page.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload, selectinload

from .errors import DuplicateError, NotFoundError, ValidationError
from .models import (
    User, Project, Submission, Review, Comment, Assignment, Notification,
    PENDING,
)

logger = logging.getLogger(__name__)

MIN_SCORE, MAX_SCORE = 1, 5
MIN_POINTS, MAX_POINTS = 0, 100


# ============================================================
# SERIALIZATION
# ============================================================

def iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def user_dict(user: User) -> Dict[str, Any]:
    return {"id": user.id, "email": user.email, "name": user.name, "role": user.role}


def project_dict(project: Project) -> Dict[str, Any]:
    return {
        "id": project.id,
        "title": project.title,
        "description": project.description,
        "tags": project.tags,
        "dueDate": iso(project.due_date),
        "teacherId": project.teacher_id,
        "createdAt": iso(project.created_at),
    }


def submission_dict(submission: Submission) -> Dict[str, Any]:
    return {
        "id": submission.id,
        "content": submission.content,
        "imageUrl": submission.image_url,
        "fileUrl": submission.file_url,
        "points": submission.points,
        "studentId": submission.student_id,
        "projectId": submission.project_id,
        "createdAt": iso(submission.created_at),
    }


def review_dict(review: Review, with_reviewer: bool = True) -> Dict[str, Any]:
    data = {
        "id": review.id,
        "content": review.content,
        "score": review.score,
        "reviewerId": review.reviewer_id,
        "submissionId": review.submission_id,
        "createdAt": iso(review.created_at),
    }
    if with_reviewer:
        data["reviewer"] = {"name": review.reviewer.name, "role": review.reviewer.role}
    return data


def comment_dict(comment: Comment) -> Dict[str, Any]:
    return {
        "id": comment.id,
        "content": comment.content,
        "authorId": comment.author_id,
        "submissionId": comment.submission_id,
        "createdAt": iso(comment.created_at),
        "author": {"name": comment.author.name, "role": comment.author.role},
    }


def assignment_dict(assignment: Assignment) -> Dict[str, Any]:
    submission = assignment.submission
    return {
        "id": assignment.id,
        "projectId": assignment.project_id,
        "reviewerId": assignment.reviewer_id,
        "submissionId": assignment.submission_id,
        "status": assignment.status,
        "dueDate": iso(assignment.due_date),
        "createdAt": iso(assignment.created_at),
        "reviewer": {"id": assignment.reviewer.id, "name": assignment.reviewer.name},
        "submission": {
            "id": submission.id,
            "content": submission.content,
            "student": {"name": submission.student.name},
            "project": {"title": submission.project.title},
        },
    }


def notification_dict(notification: Notification) -> Dict[str, Any]:
    return {
        "id": notification.id,
        "userId": notification.user_id,
        "message": notification.message,
        "type": notification.type,
        "isRead": notification.is_read,
        "createdAt": iso(notification.created_at),
    }


# ============================================================
# QUERY HELPERS
# ============================================================

def paginate(query, skip: int = 0, limit: Optional[int] = None):
    if skip:
        query = query.offset(skip)
    if limit is not None:
        query = query.limit(limit)
    return query


def newest_first(model):
    return (model.created_at.desc(), model.id.desc())


def get_or_404(db: Session, model, object_id: int, label: str):
    obj = db.query(model).filter(model.id == object_id).first()
    if not obj:
        raise NotFoundError(f"{label} not found")
    return obj


def comment_counts(db: Session, submission_ids: Iterable[int]) -> Dict[int, int]:
    submission_ids = list(submission_ids)
    if not submission_ids:
        return {}
    rows = (
        db.query(Comment.submission_id, func.count(Comment.id))
        .filter(Comment.submission_id.in_(submission_ids))
        .group_by(Comment.submission_id)
        .all()
    )
    return {submission_id: count for submission_id, count in rows}


def submission_counts(db: Session, project_ids: Iterable[int]) -> Dict[int, int]:
    project_ids = list(project_ids)
    if not project_ids:
        return {}
    rows = (
        db.query(Submission.project_id, func.count(Submission.id))
        .filter(Submission.project_id.in_(project_ids))
        .group_by(Submission.project_id)
        .all()
    )
    return {project_id: count for project_id, count in rows}


def submitted_project_ids(db: Session, student_id: int) -> set:
    rows = db.query(Submission.project_id).filter(Submission.student_id == student_id).distinct().all()
    return {row[0] for row in rows}


def _submission_with_reviews(submission: Submission, comments: Dict[int, int]) -> Dict[str, Any]:
    data = submission_dict(submission)
    data["reviews"] = [review_dict(r) for r in submission.reviews]
    data["_count"] = {"comments": comments.get(submission.id, 0)}
    return data


# ============================================================
# USERS
# ============================================================

def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def create_user(db: Session, email: str, password_hash: str, name: str, role: str) -> User:
    if get_user_by_email(db, email):
        raise DuplicateError("Email already registered")

    user = User(email=email, password=password_hash, name=name, role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Registered user {user.id} ({user.role})")
    return user


# ============================================================
# PROJECTS
# ============================================================

def list_projects(db: Session, viewer_id: Optional[int] = None, skip: int = 0,
                  limit: Optional[int] = None) -> List[Dict[str, Any]]:
    """All projects, newest first.

    When ``viewer_id`` is given (student callers) every item carries
    ``isSubmitted``: whether that student has at least one submission for it.
    """
    query = db.query(Project).options(joinedload(Project.teacher)).order_by(*newest_first(Project))
    projects = paginate(query, skip, limit).all()

    counts = submission_counts(db, (p.id for p in projects))
    submitted = submitted_project_ids(db, viewer_id) if viewer_id is not None else None

    result = []
    for project in projects:
        data = project_dict(project)
        data["teacher"] = {"name": project.teacher.name}
        data["_count"] = {"submissions": counts.get(project.id, 0)}
        if submitted is not None:
            data["isSubmitted"] = project.id in submitted
        result.append(data)
    return result


def create_project(db: Session, teacher_id: int, title: str, description: str,
                   due_date: datetime, tags: Optional[str]) -> Dict[str, Any]:
    project = Project(
        title=title,
        description=description,
        tags=tags or "",
        due_date=due_date,
        teacher_id=teacher_id,
    )
    db.add(project)
    db.commit()
    db.refresh(project)
    logger.info(f"Teacher {teacher_id} created project {project.id}")
    return project_dict(project)


def get_project_detail(db: Session, project_id: int) -> Dict[str, Any]:
    project = (
        db.query(Project)
        .options(
            joinedload(Project.teacher),
            selectinload(Project.submissions).joinedload(Submission.student),
            selectinload(Project.submissions).selectinload(Submission.reviews).joinedload(Review.reviewer),
        )
        .filter(Project.id == project_id)
        .first()
    )
    if not project:
        raise NotFoundError("Project not found")

    comments = comment_counts(db, (s.id for s in project.submissions))
    data = project_dict(project)
    data["teacher"] = {"name": project.teacher.name}
    data["submissions"] = []
    for submission in project.submissions:
        item = _submission_with_reviews(submission, comments)
        item["student"] = {"id": submission.student.id, "name": submission.student.name}
        data["submissions"].append(item)
    return data


# ============================================================
# SUBMISSIONS
# ============================================================

def check_can_submit(db: Session, student_id: int, project_id: int) -> Project:
    """Raise unless the project exists and the student has not submitted yet."""
    project = get_or_404(db, Project, project_id, "Project")
    existing = (
        db.query(Submission.id)
        .filter(Submission.student_id == student_id, Submission.project_id == project_id)
        .first()
    )
    if existing:
        raise DuplicateError("You have already submitted work for this project")
    return project


def create_submission(db: Session, student_id: int, project_id: int, content: str,
                      image_url: str = "", file_url: str = "") -> Dict[str, Any]:
    submission = Submission(
        content=content,
        image_url=image_url,
        file_url=file_url,
        student_id=student_id,
        project_id=project_id,
    )
    db.add(submission)
    db.commit()
    db.refresh(submission)
    logger.info(f"Student {student_id} submitted {submission.id} to project {project_id}")

    data = submission_dict(submission)
    data["student"] = {"name": submission.student.name}
    data["project"] = {"title": submission.project.title}
    return data


def grade_submission(db: Session, submission_id: int, points: int) -> Dict[str, Any]:
    if not MIN_POINTS <= points <= MAX_POINTS:
        raise ValidationError(f"Points must be between {MIN_POINTS} and {MAX_POINTS}")

    submission = get_or_404(db, Submission, submission_id, "Submission")
    submission.points = points
    db.commit()
    db.refresh(submission)
    logger.info(f"Submission {submission_id} graded {points}/100")
    return submission_dict(submission)


def list_all_submissions(db: Session, skip: int = 0, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    query = (
        db.query(Submission)
        .options(
            joinedload(Submission.student),
            joinedload(Submission.project),
            selectinload(Submission.reviews).joinedload(Review.reviewer),
        )
        .order_by(*newest_first(Submission))
    )
    submissions = paginate(query, skip, limit).all()
    comments = comment_counts(db, (s.id for s in submissions))

    result = []
    for submission in submissions:
        data = _submission_with_reviews(submission, comments)
        data["student"] = {
            "id": submission.student.id,
            "name": submission.student.name,
            "email": submission.student.email,
        }
        data["project"] = {
            "id": submission.project.id,
            "title": submission.project.title,
            "tags": submission.project.tags,
        }
        result.append(data)
    return result


def list_student_submissions(db: Session, student_id: int, skip: int = 0,
                             limit: Optional[int] = None) -> List[Dict[str, Any]]:
    query = (
        db.query(Submission)
        .options(
            joinedload(Submission.project),
            selectinload(Submission.reviews).joinedload(Review.reviewer),
        )
        .filter(Submission.student_id == student_id)
        .order_by(*newest_first(Submission))
    )
    submissions = paginate(query, skip, limit).all()
    comments = comment_counts(db, (s.id for s in submissions))

    result = []
    for submission in submissions:
        data = _submission_with_reviews(submission, comments)
        data["project"] = project_dict(submission.project)
        result.append(data)
    return result


# ============================================================
# REVIEWS & COMMENTS
# ============================================================

def create_review(db: Session, reviewer_id: int, submission_id: int, content: str, score: int) -> Dict[str, Any]:
    if not MIN_SCORE <= score <= MAX_SCORE:
        raise ValidationError(f"Score must be between {MIN_SCORE} and {MAX_SCORE} stars")

    get_or_404(db, Submission, submission_id, "Submission")
    review = Review(content=content, score=score, reviewer_id=reviewer_id, submission_id=submission_id)
    db.add(review)
    db.commit()
    db.refresh(review)
    logger.info(f"User {reviewer_id} reviewed submission {submission_id} ({score} stars)")
    return review_dict(review)


def list_reviewer_reviews(db: Session, reviewer_id: int, skip: int = 0,
                          limit: Optional[int] = None) -> List[Dict[str, Any]]:
    query = (
        db.query(Review)
        .options(
            joinedload(Review.submission).joinedload(Submission.project),
            joinedload(Review.submission).joinedload(Submission.student),
        )
        .filter(Review.reviewer_id == reviewer_id)
        .order_by(*newest_first(Review))
    )
    result = []
    for review in paginate(query, skip, limit).all():
        data = review_dict(review, with_reviewer=False)
        submission = review.submission
        data["submission"] = submission_dict(submission)
        data["submission"]["project"] = project_dict(submission.project)
        data["submission"]["student"] = {"name": submission.student.name}
        result.append(data)
    return result


def create_comment(db: Session, author_id: int, submission_id: int, content: str) -> Dict[str, Any]:
    get_or_404(db, Submission, submission_id, "Submission")
    comment = Comment(content=content, author_id=author_id, submission_id=submission_id)
    db.add(comment)
    db.commit()
    db.refresh(comment)
    return comment_dict(comment)


def list_comments(db: Session, submission_id: int, skip: int = 0,
                  limit: Optional[int] = None) -> List[Dict[str, Any]]:
    get_or_404(db, Submission, submission_id, "Submission")
    query = (
        db.query(Comment)
        .options(joinedload(Comment.author))
        .filter(Comment.submission_id == submission_id)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
    )
    return [comment_dict(c) for c in paginate(query, skip, limit).all()]


# ============================================================
# ASSIGNMENTS & NOTIFICATIONS
# ============================================================

def _assignment_query(db: Session):
    return db.query(Assignment).options(
        joinedload(Assignment.reviewer),
        joinedload(Assignment.submission).joinedload(Submission.student),
        joinedload(Assignment.submission).joinedload(Submission.project),
    )


def create_assignment(db: Session, project_id: int, reviewer_id: int, submission_id: int,
                      due_date: datetime) -> Dict[str, Any]:
    """Create a review assignment and notify the reviewer, in one transaction."""
    project = get_or_404(db, Project, project_id, "Project")
    reviewer = get_or_404(db, User, reviewer_id, "Reviewer")
    submission = get_or_404(db, Submission, submission_id, "Submission")
    if submission.project_id != project.id:
        raise ValidationError("Submission does not belong to this project")

    assignment = Assignment(
        project_id=project.id,
        reviewer_id=reviewer.id,
        submission_id=submission.id,
        status=PENDING,
        due_date=due_date,
    )
    notification = Notification(
        user_id=reviewer.id,
        message=f'You have been assigned to review "{project.title}" by {submission.student.name}',
        type="INFO",
    )
    db.add_all([assignment, notification])
    db.commit()
    logger.info(f"Assignment {assignment.id}: user {reviewer.id} -> submission {submission.id}")

    return assignment_dict(_assignment_query(db).filter(Assignment.id == assignment.id).one())


def list_assignments(db: Session, skip: int = 0, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    query = _assignment_query(db).order_by(*newest_first(Assignment))
    return [assignment_dict(a) for a in paginate(query, skip, limit).all()]


def list_reviewer_assignments(db: Session, reviewer_id: int, skip: int = 0,
                              limit: Optional[int] = None) -> List[Dict[str, Any]]:
    query = (
        _assignment_query(db)
        .filter(Assignment.reviewer_id == reviewer_id)
        .order_by(Assignment.due_date.asc(), Assignment.id.asc())
    )
    return [assignment_dict(a) for a in paginate(query, skip, limit).all()]


def update_assignment_status(db: Session, assignment_id: int, status: str) -> Dict[str, Any]:
    assignment = get_or_404(db, Assignment, assignment_id, "Assignment")
    assignment.status = status
    db.commit()
    logger.info(f"Assignment {assignment_id} -> {status}")
    return assignment_dict(_assignment_query(db).filter(Assignment.id == assignment_id).one())


def list_notifications(db: Session, user_id: int, skip: int = 0,
                       limit: Optional[int] = None) -> List[Dict[str, Any]]:
    query = db.query(Notification).filter(Notification.user_id == user_id).order_by(*newest_first(Notification))
    return [notification_dict(n) for n in paginate(query, skip, limit).all()]


def mark_notification_read(db: Session, user_id: int, notification_id: int) -> Dict[str, Any]:
    notification = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == user_id)
        .first()
    )
    if not notification:
        raise NotFoundError("Notification not found")
    notification.is_read = True
    db.commit()
    db.refresh(notification)
    return notification_dict(notification)


def mark_all_notifications_read(db: Session, user_id: int) -> int:
    updated = (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .update({Notification.is_read: True}, synchronize_session=False)
    )
    db.commit()
    return updated
