# peerreview/analytics.py
"""
Analytics helpers for the teacher dashboard.

Statistics are recomputed from the stored rows on every call:
- average review score (2 decimals, 0 without reviews)
- average graded points (1 decimal, 0 without graded submissions)
- assignment completion rate (% COMPLETED, 1 decimal)
- rating distribution bucketed by star score 1-5
- recent review activity
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session, joinedload

from .crud import get_or_404, iso, submission_dict, user_dict
from .models import User, Project, Submission, Review, Assignment, STUDENT, COMPLETED

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_LIMIT = 10


def average(values: Sequence[float], digits: int) -> float:
    if not values:
        return 0
    return round(sum(values) / len(values), digits)


def percentage(part: int, whole: int, digits: int = 1) -> float:
    if whole == 0:
        return 0
    return round(part / whole * 100, digits)


def rating_distribution(scores: Sequence[int]) -> Dict[str, int]:
    distribution = {str(star): 0 for star in range(1, 6)}
    for score in scores:
        key = str(score)
        if key in distribution:
            distribution[key] += 1
    return distribution


def activity_item(review: Review) -> Dict[str, Any]:
    submission = review.submission
    return {
        "id": review.id,
        "score": review.score,
        "content": review.content,
        "createdAt": iso(review.created_at),
        "reviewer": {"name": review.reviewer.name},
        "submission": {
            "id": submission.id,
            "student": {"name": submission.student.name},
            "project": {"title": submission.project.title},
        },
    }


def recent_activity(db: Session, project_id: Optional[int] = None,
                    limit: int = RECENT_ACTIVITY_LIMIT) -> List[Dict[str, Any]]:
    query = db.query(Review).options(
        joinedload(Review.reviewer),
        joinedload(Review.submission).joinedload(Submission.student),
        joinedload(Review.submission).joinedload(Submission.project),
    )
    if project_id is not None:
        query = query.join(Submission, Review.submission_id == Submission.id).filter(Submission.project_id == project_id)
    reviews = query.order_by(Review.created_at.desc(), Review.id.desc()).limit(limit).all()
    return [activity_item(r) for r in reviews]


def get_overview(db: Session) -> Dict[str, Any]:
    """Course-wide statistics across every project."""
    scores = [row[0] for row in db.query(Review.score).all()]
    points = [row[0] for row in db.query(Submission.points).filter(Submission.points.isnot(None)).all()]
    statuses = [row[0] for row in db.query(Assignment.status).all()]
    completed = sum(1 for status in statuses if status == COMPLETED)

    overview = {
        "totalProjects": db.query(Project).count(),
        "totalSubmissions": db.query(Submission).count(),
        "totalReviews": len(scores),
        "totalStudents": db.query(User).filter(User.role == STUDENT).count(),
        "totalAssignments": len(statuses),
        "completedAssignments": completed,
        "avgRating": average(scores, 2),
        "avgPoints": average(points, 1),
        "completionRate": percentage(completed, len(statuses)),
    }
    logger.info(f"Analytics overview: {overview['totalSubmissions']} submissions, {len(scores)} reviews")

    return {
        "overview": overview,
        "ratingDistribution": rating_distribution(scores),
        "recentActivity": recent_activity(db),
    }


def get_project_analytics(db: Session, project_id: int) -> Dict[str, Any]:
    project = get_or_404(db, Project, project_id, "Project")

    submissions = (
        db.query(Submission)
        .options(joinedload(Submission.student))
        .filter(Submission.project_id == project_id)
        .order_by(Submission.created_at.asc(), Submission.id.asc())
        .all()
    )
    submission_ids = [s.id for s in submissions]
    reviews = db.query(Review).filter(Review.submission_id.in_(submission_ids)).all() if submission_ids else []
    statuses = [row[0] for row in db.query(Assignment.status).filter(Assignment.project_id == project_id).all()]
    completed = sum(1 for status in statuses if status == COMPLETED)

    scores_by_submission: Dict[int, List[int]] = {}
    for review in reviews:
        scores_by_submission.setdefault(review.submission_id, []).append(review.score)

    graded = [s.points for s in submissions if s.points is not None]
    scores = [r.score for r in reviews]

    per_submission = []
    for submission in submissions:
        submission_scores = scores_by_submission.get(submission.id, [])
        per_submission.append({
            "id": submission.id,
            "student": {"id": submission.student.id, "name": submission.student.name},
            "points": submission.points,
            "reviewCount": len(submission_scores),
            "avgRating": average(submission_scores, 2),
        })

    return {
        "project": {"id": project.id, "title": project.title, "dueDate": iso(project.due_date)},
        "stats": {
            "totalSubmissions": len(submissions),
            "gradedSubmissions": len(graded),
            "totalReviews": len(scores),
            "avgRating": average(scores, 2),
            "avgPoints": average(graded, 1),
            "totalAssignments": len(statuses),
            "completionRate": percentage(completed, len(statuses)),
        },
        "ratingDistribution": rating_distribution(scores),
        "submissions": per_submission,
        "recentActivity": recent_activity(db, project_id=project_id),
    }


def get_student_analytics(db: Session, student_id: int) -> Dict[str, Any]:
    student = get_or_404(db, User, student_id, "Student")

    submissions = (
        db.query(Submission)
        .options(joinedload(Submission.project))
        .filter(Submission.student_id == student_id)
        .order_by(Submission.created_at.desc(), Submission.id.desc())
        .all()
    )
    submission_ids = [s.id for s in submissions]
    received = (
        [row[0] for row in db.query(Review.score).filter(Review.submission_id.in_(submission_ids)).all()]
        if submission_ids else []
    )
    given = db.query(Review).filter(Review.reviewer_id == student_id).count()
    statuses = [row[0] for row in db.query(Assignment.status).filter(Assignment.reviewer_id == student_id).all()]
    completed = sum(1 for status in statuses if status == COMPLETED)
    graded = [s.points for s in submissions if s.points is not None]

    items = []
    for submission in submissions:
        item = submission_dict(submission)
        item["project"] = {"id": submission.project.id, "title": submission.project.title}
        items.append(item)

    return {
        "student": user_dict(student),
        "stats": {
            "totalSubmissions": len(submissions),
            "gradedSubmissions": len(graded),
            "reviewsReceived": len(received),
            "reviewsGiven": given,
            "avgRatingReceived": average(received, 2),
            "avgPoints": average(graded, 1),
            "assignedReviews": len(statuses),
            "completedReviews": completed,
            "completionRate": percentage(completed, len(statuses)),
        },
        "ratingDistribution": rating_distribution(received),
        "submissions": items,
    }
