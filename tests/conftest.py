import os
import tempfile
import uuid
from datetime import timedelta

_TMP_DIR = tempfile.mkdtemp(prefix="careerhub-tests-")
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(_TMP_DIR, "careerhub.db")
os.environ["UPLOAD_DIR"] = os.path.join(_TMP_DIR, "uploads")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from careerhub.core.security import create_access_token, get_password_hash  # noqa: E402
from careerhub.db.base import Base  # noqa: E402
from careerhub.db.sessions import SessionLocal, engine  # noqa: E402
from careerhub.main import app  # noqa: E402
from careerhub.models import (  # noqa: E402
    Career,
    CareerCriteria,
    CareerOrder,
    CareerOrderItem,
    ClassCriteriaConfig,
    Exam,
    ExamQuestionDistribution,
    Question,
    QuestionCategory,
    QuestionOption,
    School,
    SchoolCareerLicense,
    SchoolClass,
    User,
)
from careerhub.models.license import LICENSE_ACTIVE  # noqa: E402
from careerhub.models.question import MULTIPLE_CHOICE  # noqa: E402
from careerhub.models.user import ROLE_STUDENT  # noqa: E402
from careerhub.utils.timeutils import utcnow  # noqa: E402


@pytest.fixture
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    with TestClient(app) as test_client:
        yield test_client


class Factory:
    """Persists model rows with sensible defaults."""

    def __init__(self, db):
        self.db = db

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def school(self, name="Nguyen Du High School", code=None):
        return self._save(School(name=name, code=code or f"SCH-{uuid.uuid4().hex[:6]}"))

    def school_class(self, school, name="10A1"):
        return self._save(SchoolClass(school_id=school.id, name=name, grade="10"))

    def user(self, role=ROLE_STUDENT, school=None, password="secret123", email=None, school_class=None):
        return self._save(User(
            full_name=f"{role.title()} User",
            email=email or f"{uuid.uuid4().hex[:8]}@school.com",
            password_hash=get_password_hash(password),
            role=role,
            school_id=school.id if school else None,
            class_id=school_class.id if school_class else None,
        ))

    def career(self, name="Software Engineer", is_active=True):
        return self._save(Career(code=f"CAR-{uuid.uuid4().hex[:6]}", name=name, is_active=is_active))

    def criteria(self, career, name="Logical thinking", order_index=0):
        return self._save(CareerCriteria(career_id=career.id, name=name, order_index=order_index))

    def class_criteria(self, school_class, career, criteria):
        configs = [
            ClassCriteriaConfig(class_id=school_class.id, career_id=career.id, criteria_id=c.id)
            for c in criteria
        ]
        self.db.add_all(configs)
        self.db.commit()
        return configs

    def category(self, name="Aptitude"):
        return self._save(QuestionCategory(name=name))

    def question(
        self,
        difficulty="EASY",
        question_type=MULTIPLE_CHOICE,
        category=None,
        criteria=None,
        is_active=True,
        usage_count=0,
        points=1,
    ):
        question = Question(
            content=f"Question {uuid.uuid4().hex[:6]}",
            question_type=question_type,
            difficulty_level=difficulty,
            category_id=category.id if category else None,
            career_criteria_id=criteria.id if criteria else None,
            is_active=is_active,
            usage_count=usage_count,
            points=points,
        )
        if question_type in ("MULTIPLE_CHOICE", "TRUE_FALSE"):
            question.options = [
                QuestionOption(option_key="A", option_text="Right", is_correct=True, order_index=0),
                QuestionOption(option_key="B", option_text="Wrong", is_correct=False, order_index=1),
            ]
        return self._save(question)

    def exam(self, distributions, career=None, title="Orientation exam"):
        exam = Exam(title=title, career_id=career.id if career else None)
        exam.distributions = [
            ExamQuestionDistribution(
                quantity=dist["quantity"],
                easy_count=dist.get("easy_count", 0),
                medium_count=dist.get("medium_count", 0),
                hard_count=dist.get("hard_count", 0),
                difficulty_level=dist.get("difficulty_level"),
                question_type=dist.get("question_type"),
                category_id=dist.get("category_id"),
                career_criteria_id=dist.get("career_criteria_id"),
                points_per_question=dist.get("points_per_question", 1),
                order_index=dist.get("order_index", index),
            )
            for index, dist in enumerate(distributions, 1)
        ]
        return self._save(exam)

    def order(self, school, careers):
        order = CareerOrder(school_id=school.id)
        order.items = [CareerOrderItem(career_id=career.id) for career in careers]
        return self._save(order)

    def license(self, school, career, status=LICENSE_ACTIVE, start=None, expiry=None):
        start = start or utcnow() - timedelta(days=1)
        expiry = expiry or start + timedelta(days=180)
        return self._save(SchoolCareerLicense(
            school_id=school.id,
            career_id=career.id,
            status=status,
            start_date=start,
            expiry_date=expiry,
        ))


@pytest.fixture
def factory(db):
    return Factory(db)


@pytest.fixture
def auth_headers():
    def _headers(user):
        token = create_access_token({"sub": str(user.id), "role": user.role})
        return {"Authorization": f"Bearer {token}"}

    return _headers
