# peerreview/main.py
"""
Peer-review platform API

Endpoints (all under /api, bearer token unless noted):
- /auth/register, /auth/login (public), /auth/me
- /projects (teacher creates), /projects/{id}
- /submissions (multipart, image/file attachments), /submissions/{id}/grade (teacher)
- /reviews, /comments
- /assignments (teacher creates), /assignments/my, /assignments/{id}/status
- /notifications/my, /notifications/{id}/read, /notifications/mark-all-read
- /analytics/overview, /analytics/project/{id} (teacher), /analytics/student/{id}

Role checks come from the POLICY table in auth.py.
"""

import logging
from contextlib import asynccontextmanager, contextmanager
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Form, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from . import analytics, crud, uploads
from .auth import (
    UserContext, authorize, get_current_user, create_access_token, make_password_context,
)
from .config import Settings, load_settings
from .database import make_engine, make_session_factory, init_db
from .errors import (
    AuthorizationError, DuplicateError, InvalidCredentialsError, NotFoundError, ServiceError,
    register_error_handlers,
)
from .models import User, TEACHER, STUDENT
from .schemas import (
    RegisterRequest, LoginRequest, ProjectRequest, GradeRequest, ReviewRequest,
    CommentRequest, AssignmentRequest, AssignmentStatusRequest,
)

logger = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).parent
templates = Jinja2Templates(directory=str(PACKAGE_DIR / "templates"))

# Sidebar tabs per role; the JS client fetches the matching endpoint on tab change
DASHBOARD_TABS = {
    TEACHER: [
        {"id": "analytics", "icon": "📊", "label": "Analytics", "hint": "Overview of course performance."},
        {"id": "projects", "icon": "📚", "label": "Projects", "hint": "Manage course projects."},
        {"id": "submissions", "icon": "📝", "label": "Submissions", "hint": "Review and grade student work."},
        {"id": "assignments", "icon": "👥", "label": "Assignments", "hint": "Manage peer review assignments."},
    ],
    STUDENT: [
        {"id": "projects", "icon": "📚", "label": "Projects", "hint": "Browse and submit to projects."},
        {"id": "submissions", "icon": "📝", "label": "Submissions", "hint": "Submissions from your class."},
        {"id": "assignments", "icon": "👥", "label": "Assignments", "hint": "Peer reviews assigned to you."},
        {"id": "notifications", "icon": "🔔", "label": "Notifications", "hint": "Updates about your work."},
    ],
}

router = APIRouter(prefix="/api")
pages = APIRouter()


# ============================================================
# DEPENDENCIES
# ============================================================

def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def pagination(
    skip: int = Query(0, ge=0, description="Rows to skip"),
    limit: Optional[int] = Query(None, ge=1, le=500, description="Max rows; omit for all"),
):
    return {"skip": skip, "limit": limit}


async def attachment_parts(request: Request):
    """The "image" and "file" parts of a multipart submission, at most one each."""
    return uploads.collect_attachments(await request.form())


@contextmanager
def storage_errors(db: Session, message: str):
    """Roll back and collapse unexpected storage failures into a static 500."""
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"{message}: {e}", exc_info=True)
        raise ServiceError(message)


# ============================================================
# AUTH
# ============================================================

def token_response(user: User, settings: Settings):
    return {"token": create_access_token(user, settings), "user": crud.user_dict(user)}


@router.post("/auth/register")
def register(body: RegisterRequest, request: Request, db: Session = Depends(get_db)):
    settings = get_settings(request)
    password_hash = request.app.state.pwd_context.hash(body.password)
    with storage_errors(db, "Registration failed"):
        try:
            user = crud.create_user(db, body.email, password_hash, body.name, body.role)
        except IntegrityError:
            # lost a race with a concurrent registration of the same email
            db.rollback()
            raise DuplicateError("Email already registered")
    return token_response(user, settings)


@router.post("/auth/login")
def login(body: LoginRequest, request: Request, db: Session = Depends(get_db)):
    user = crud.get_user_by_email(db, body.email)
    # unknown email and wrong password answer the same way
    if not user or not request.app.state.pwd_context.verify(body.password, user.password):
        logger.info("Failed login attempt")
        raise InvalidCredentialsError()
    return token_response(user, get_settings(request))


@router.get("/auth/me")
def me(user: UserContext = Depends(get_current_user), db: Session = Depends(get_db)):
    return crud.user_dict(crud.get_or_404(db, User, user.user_id, "User"))


# ============================================================
# PROJECTS
# ============================================================

@router.get("/projects")
def list_projects(
    page: dict = Depends(pagination),
    user: UserContext = Depends(authorize("project:list")),
    db: Session = Depends(get_db),
):
    viewer_id = user.user_id if user.is_student() else None
    return crud.list_projects(db, viewer_id=viewer_id, **page)


@router.post("/projects")
def create_project(
    body: ProjectRequest,
    user: UserContext = Depends(authorize("project:create")),
    db: Session = Depends(get_db),
):
    with storage_errors(db, "Failed to create project"):
        return crud.create_project(db, user.user_id, body.title, body.description, body.due_date, body.tags)


@router.get("/projects/{project_id}")
def get_project(
    project_id: int,
    user: UserContext = Depends(authorize("project:read")),
    db: Session = Depends(get_db),
):
    return crud.get_project_detail(db, project_id)


# ============================================================
# SUBMISSIONS
# ============================================================

@router.post("/submissions")
def create_submission(
    request: Request,
    project_id: int = Form(..., alias="projectId"),
    content: str = Form(""),
    attachments: dict = Depends(attachment_parts),
    user: UserContext = Depends(authorize("submission:create")),
    db: Session = Depends(get_db),
):
    settings = get_settings(request)
    crud.check_can_submit(db, user.user_id, project_id)

    urls = uploads.save_attachments(attachments, settings.upload_dir, settings.max_upload_bytes)
    try:
        with storage_errors(db, "Failed to create submission"):
            try:
                return crud.create_submission(
                    db, user.user_id, project_id, content,
                    image_url=urls["image"], file_url=urls["file"],
                )
            except IntegrityError:
                # lost a race with a concurrent submission to the same project
                db.rollback()
                raise DuplicateError("You have already submitted work for this project")
    except (ServiceError, DuplicateError):
        stored = [uploads.path_for_url(url, settings.upload_dir) for url in urls.values()]
        uploads.remove_files([p for p in stored if p is not None])
        raise


@router.get("/submissions/my")
def my_submissions(
    page: dict = Depends(pagination),
    user: UserContext = Depends(authorize("submission:list")),
    db: Session = Depends(get_db),
):
    return crud.list_student_submissions(db, user.user_id, **page)


@router.get("/submissions/all")
def all_submissions(
    page: dict = Depends(pagination),
    user: UserContext = Depends(authorize("submission:list")),
    db: Session = Depends(get_db),
):
    return crud.list_all_submissions(db, **page)


@router.put("/submissions/{submission_id}/grade")
def grade_submission(
    submission_id: int,
    body: GradeRequest,
    user: UserContext = Depends(authorize("submission:grade")),
    db: Session = Depends(get_db),
):
    with storage_errors(db, "Failed to grade submission"):
        return crud.grade_submission(db, submission_id, body.points)


@router.get("/submissions/{submission_id}/comments")
def submission_comments(
    submission_id: int,
    page: dict = Depends(pagination),
    user: UserContext = Depends(authorize("submission:comments")),
    db: Session = Depends(get_db),
):
    return crud.list_comments(db, submission_id, **page)


# ============================================================
# REVIEWS & COMMENTS
# ============================================================

@router.post("/reviews")
def create_review(
    body: ReviewRequest,
    user: UserContext = Depends(authorize("review:create")),
    db: Session = Depends(get_db),
):
    with storage_errors(db, "Failed to create review"):
        return crud.create_review(db, user.user_id, body.submission_id, body.content, body.score)


@router.get("/reviews/my")
def my_reviews(
    page: dict = Depends(pagination),
    user: UserContext = Depends(authorize("review:list-mine")),
    db: Session = Depends(get_db),
):
    return crud.list_reviewer_reviews(db, user.user_id, **page)


@router.post("/comments")
def create_comment(
    body: CommentRequest,
    user: UserContext = Depends(authorize("comment:create")),
    db: Session = Depends(get_db),
):
    with storage_errors(db, "Failed to create comment"):
        return crud.create_comment(db, user.user_id, body.submission_id, body.content)


# ============================================================
# ASSIGNMENTS
# ============================================================

@router.post("/assignments")
def create_assignment(
    body: AssignmentRequest,
    user: UserContext = Depends(authorize("assignment:create")),
    db: Session = Depends(get_db),
):
    with storage_errors(db, "Failed to create assignment"):
        return crud.create_assignment(db, body.project_id, body.reviewer_id, body.submission_id, body.due_date)


@router.get("/assignments")
def list_assignments(
    page: dict = Depends(pagination),
    user: UserContext = Depends(authorize("assignment:list")),
    db: Session = Depends(get_db),
):
    return crud.list_assignments(db, **page)


@router.get("/assignments/my")
def my_assignments(
    page: dict = Depends(pagination),
    user: UserContext = Depends(authorize("assignment:list-mine")),
    db: Session = Depends(get_db),
):
    return crud.list_reviewer_assignments(db, user.user_id, **page)


@router.put("/assignments/{assignment_id}/status")
def update_assignment_status(
    assignment_id: int,
    body: AssignmentStatusRequest,
    user: UserContext = Depends(authorize("assignment:update-status")),
    db: Session = Depends(get_db),
):
    with storage_errors(db, "Failed to update assignment"):
        return crud.update_assignment_status(db, assignment_id, body.status)


# ============================================================
# NOTIFICATIONS
# ============================================================

@router.get("/notifications/my")
def my_notifications(
    page: dict = Depends(pagination),
    user: UserContext = Depends(authorize("notification:read")),
    db: Session = Depends(get_db),
):
    return crud.list_notifications(db, user.user_id, **page)


@router.put("/notifications/mark-all-read")
def mark_all_read(
    user: UserContext = Depends(authorize("notification:update")),
    db: Session = Depends(get_db),
):
    with storage_errors(db, "Failed to update notifications"):
        return {"updated": crud.mark_all_notifications_read(db, user.user_id)}


@router.put("/notifications/{notification_id}/read")
def mark_read(
    notification_id: int,
    user: UserContext = Depends(authorize("notification:update")),
    db: Session = Depends(get_db),
):
    with storage_errors(db, "Failed to update notification"):
        return crud.mark_notification_read(db, user.user_id, notification_id)


# ============================================================
# ANALYTICS
# ============================================================

@router.get("/analytics/overview")
def analytics_overview(
    user: UserContext = Depends(authorize("analytics:overview")),
    db: Session = Depends(get_db),
):
    return analytics.get_overview(db)


@router.get("/analytics/project/{project_id}")
def analytics_project(
    project_id: int,
    user: UserContext = Depends(authorize("analytics:project")),
    db: Session = Depends(get_db),
):
    return analytics.get_project_analytics(db, project_id)


@router.get("/analytics/student/{student_id}")
def analytics_student(
    student_id: int,
    user: UserContext = Depends(authorize("analytics:student")),
    db: Session = Depends(get_db),
):
    if not user.is_teacher() and user.user_id != student_id:
        raise AuthorizationError("Students may only view their own analytics")
    return analytics.get_student_analytics(db, student_id)


# ============================================================
# DASHBOARD PAGES
# ============================================================

@pages.get("/", response_class=HTMLResponse)
async def home(request: Request):
    return templates.TemplateResponse(request, "index.html", {})


@pages.get("/dashboard/{role}", response_class=HTMLResponse)
async def dashboard(request: Request, role: str):
    role = role.upper()
    if role not in DASHBOARD_TABS:
        raise NotFoundError("Dashboard not found")
    return templates.TemplateResponse(
        request,
        f"{role.lower()}.html",
        {"role": role, "tabs": DASHBOARD_TABS[role]},
    )


# ============================================================
# APP FACTORY
# ============================================================

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    engine = make_engine(settings.database_url)
    init_db(engine)
    settings.upload_dir.mkdir(parents=True, exist_ok=True)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        engine.dispose()

    app = FastAPI(
        title="Peer Review API",
        description="Projects, submissions, peer reviews and grading for coursework",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)
    app.state.pwd_context = make_password_context(settings.password_rounds)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    app.include_router(router)
    app.include_router(pages)
    app.mount("/static", StaticFiles(directory=str(PACKAGE_DIR / "static")), name="static")
    app.mount("/uploads", StaticFiles(directory=str(settings.upload_dir)), name="uploads")

    logger.info(f"Peer review API ready (db={engine.url.render_as_string(hide_password=True)})")
    return app


if __name__ == "__main__":
    uvicorn.run("peerreview.main:create_app", factory=True, host="0.0.0.0", port=3001)
