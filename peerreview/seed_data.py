# peerreview/seed_data.py
"""Reset the database and load demo accounts, projects and reviews.

    python -m peerreview.seed_data
"""
import logging
from datetime import datetime

from .auth import make_password_context
from .config import load_settings
from .database import make_engine, make_session_factory
from .models import (
    Base, User, Project, Submission, Review, Comment, Assignment, Notification,
    STUDENT, TEACHER, PENDING, COMPLETED,
)

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "password123"

STUDENTS = [
    ("student1@example.com", "Alex Chen"),
    ("student2@example.com", "Emma Rodriguez"),
    ("student3@example.com", "Michael Kumar"),
    ("student4@example.com", "Sophia Williams"),
    ("student5@example.com", "James Anderson"),
]

PROJECTS = [
    {
        "title": "AI-Powered Study Assistant",
        "description": "Design and develop an AI-powered study assistant that helps students organize their "
                       "learning materials, create study schedules, and provides personalized quiz questions "
                       "based on their course content.",
        "tags": "AI,Machine Learning,Education,Web App",
        "due_date": datetime(2025, 12, 15),
    },
    {
        "title": "Sustainable Campus Initiative",
        "description": "Create a comprehensive proposal and prototype for making the campus more sustainable. "
                       "Include data analysis of current energy usage, waste management strategies, and "
                       "student engagement plans.",
        "tags": "Sustainability,Environment,Data Analysis,IoT",
        "due_date": datetime(2025, 12, 20),
    },
    {
        "title": "Mobile Health Tracker",
        "description": "Develop a mobile application that tracks physical activity, nutrition, sleep patterns, "
                       "and provides personalized health recommendations. Focus on user experience and data "
                       "visualization.",
        "tags": "Mobile Dev,Health,UI/UX,React Native",
        "due_date": datetime(2025, 12, 25),
    },
]

# (student index, project index, content)
SUBMISSIONS = [
    (0, 0, "Our AI Study Assistant uses an LLM API to generate personalized quiz questions and spaced "
           "repetition to optimize learning retention. Built with React and Node.js."),
    (1, 0, "A study assistant with calendar integration, flashcard generation, and AI-powered summarization. "
           "Python for the ML models and React for the frontend."),
    (2, 1, "IoT sensors for real-time energy monitoring, a student engagement app, and a waste reduction "
           "plan. Six months of campus data show 30% potential energy savings."),
    (3, 1, "A sustainability roadmap focused on renewable energy, water conservation and community "
           "engagement, with budget analysis and a 5-year implementation plan."),
    (4, 2, "A cross-platform React Native health tracker: step counting, nutrition logging with barcode "
           "scanning, sleep analysis and personalized insights."),
    (0, 2, "A minimalist health tracker focused on habit formation and gamification, with streaks, "
           "social challenges and mood tracking."),
]

# (reviewer: student index or "teacher", submission index, score, content)
REVIEWS = [
    (1, 0, 5, "Excellent implementation of the AI features! Consider adding difficulty levels for quizzes."),
    (2, 0, 4, "Great project! The UI is clean and intuitive. An offline mode would help."),
    (0, 1, 5, "Very impressive flashcard auto-generation. The progress dashboard could show more detail."),
    ("teacher", 1, 4, "Solid implementation and well-documented models. Add collaborative study groups."),
    (3, 2, 5, "Outstanding research and data analysis! The waste reduction strategies are practical."),
    (2, 3, 5, "Comprehensive proposal with solid budget analysis. Impressive survey sample size."),
    (0, 4, 5, "Excellent cross-platform implementation! The health insights are valuable."),
    ("teacher", 4, 4, "Very well executed. Consider more granular nutrition tracking options."),
]

# (author student index, submission index, content)
COMMENTS = [
    (1, 0, "I love your approach to quiz generation. Did you try few-shot prompting?"),
    (0, 0, "Thanks! Few-shot prompting improved question relevance a lot. Happy to share our prompts."),
    (3, 2, "Impressive analysis! What tools did you use to collect the sensor data?"),
]

# (project index, reviewer student index, submission index, status, due date)
ASSIGNMENTS = [
    (0, 1, 0, COMPLETED, datetime(2025, 12, 10)),
    (0, 2, 0, COMPLETED, datetime(2025, 12, 10)),
    (1, 3, 2, COMPLETED, datetime(2025, 12, 12)),
    (2, 1, 4, PENDING, datetime(2025, 12, 18)),
]

# (student index, message, type)
NOTIFICATIONS = [
    (1, 'You have been assigned to review "AI-Powered Study Assistant" by Alex Chen', "INFO"),
    (0, "Emma Rodriguez reviewed your submission!", "SUCCESS"),
    (4, 'Your submission for "Mobile Health Tracker" received a 5-star review!', "SUCCESS"),
    (1, "Reminder: Peer review assignment due in 3 days", "WARNING"),
]


def seed(db, password_hash):
    teacher = User(email="teacher@example.com", password=password_hash, name="Prof. Sarah Johnson", role=TEACHER)
    students = [User(email=email, password=password_hash, name=name, role=STUDENT) for email, name in STUDENTS]
    db.add_all([teacher] + students)
    db.commit()  # ids

    projects = [Project(teacher_id=teacher.id, **data) for data in PROJECTS]
    db.add_all(projects)
    db.commit()

    submissions = [
        Submission(student_id=students[s].id, project_id=projects[p].id, content=content)
        for s, p, content in SUBMISSIONS
    ]
    db.add_all(submissions)
    db.commit()

    def reviewer_id(who):
        return teacher.id if who == "teacher" else students[who].id

    db.add_all([
        Review(reviewer_id=reviewer_id(who), submission_id=submissions[i].id, score=score, content=content)
        for who, i, score, content in REVIEWS
    ])
    db.add_all([
        Comment(author_id=students[a].id, submission_id=submissions[i].id, content=content)
        for a, i, content in COMMENTS
    ])
    db.add_all([
        Assignment(project_id=projects[p].id, reviewer_id=students[r].id, submission_id=submissions[i].id,
                   status=status, due_date=due)
        for p, r, i, status, due in ASSIGNMENTS
    ])
    db.add_all([
        Notification(user_id=students[s].id, message=message, type=kind)
        for s, message, kind in NOTIFICATIONS
    ])
    db.commit()
    return teacher, students


def main():
    settings = load_settings()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s - %(levelname)s - %(message)s")

    engine = make_engine(settings.database_url)
    # start from an empty schema
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    settings.upload_dir.mkdir(parents=True, exist_ok=True)

    db = make_session_factory(engine)()
    try:
        password_hash = make_password_context(settings.password_rounds).hash(DEMO_PASSWORD)
        seed(db, password_hash)
    finally:
        db.close()

    logger.info("Demo data loaded")
    print(f"Test accounts (password: {DEMO_PASSWORD})")
    print("  teacher@example.com  (Prof. Sarah Johnson)")
    for email, name in STUDENTS:
        print(f"  {email}  ({name})")


if __name__ == "__main__":
    main()
