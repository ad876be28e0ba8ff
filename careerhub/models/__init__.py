"""Database models."""
from careerhub.models.user import User
from careerhub.models.school import School, SchoolClass
from careerhub.models.career import Career, CareerCriteria, ClassCriteriaConfig
from careerhub.models.order import CareerOrder, CareerOrderItem
from careerhub.models.license import SchoolCareerLicense
from careerhub.models.question import QuestionCategory, Question, QuestionOption
from careerhub.models.exam import (
    Exam,
    ExamQuestionDistribution,
    ExamQuestion,
    ExamAttempt,
    StudentAnswer,
)
from careerhub.models.evaluation import (
    StudentLearningProgress,
    ClassCriteriaWeight,
    CareerEvaluationThreshold,
    StudentCareerEvaluation,
)

__all__ = [
    "User",
    "School",
    "SchoolClass",
    "Career",
    "CareerCriteria",
    "ClassCriteriaConfig",
    "CareerOrder",
    "CareerOrderItem",
    "SchoolCareerLicense",
    "QuestionCategory",
    "Question",
    "QuestionOption",
    "Exam",
    "ExamQuestionDistribution",
    "ExamQuestion",
    "ExamAttempt",
    "StudentAnswer",
    "StudentLearningProgress",
    "ClassCriteriaWeight",
    "CareerEvaluationThreshold",
    "StudentCareerEvaluation",
]
