import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from careerhub.routes import (
    auth,
    career_evaluations,
    careers,
    exams,
    learning,
    licenses,
    orders,
    questions,
    school_portal,
    schools,
    student_exams,
)
from careerhub.core.config import settings
from careerhub.core.errors import (
    ServiceError,
    http_exception_handler,
    request_validation_handler,
    service_error_handler,
)
from careerhub.db.sessions import init_db

logger = logging.getLogger("careerhub")

# Create tables
init_db()

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Career orientation platform: career licensing for schools and exam generation"
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Error envelope
app.add_exception_handler(ServiceError, service_error_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)

# Register routers
app.include_router(auth.router)
app.include_router(careers.router)
app.include_router(schools.router)
app.include_router(orders.router)
app.include_router(licenses.router)
app.include_router(questions.router)
app.include_router(exams.router)
app.include_router(school_portal.router)
app.include_router(student_exams.router)
app.include_router(learning.router)
app.include_router(career_evaluations.router)
app.include_router(career_evaluations.config_router)


@app.on_event("startup")
async def startup_event():
    logger.info("%s v%s starting...", settings.APP_NAME, settings.APP_VERSION)
    logger.info("Database connected")
    logger.info("JWT authentication enabled")


@app.get("/health")
def health():
    return {"status": "ok"}
