import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from lms_portal.core.config import UPLOAD_DIR, UPLOAD_URL_PREFIX
from lms_portal.core.errors import register_exception_handlers
from lms_portal.core.logging_middleware import LoggingMiddleware
from lms_portal.db.init_db import init_db
from lms_portal.routers.admin import router as admin_router
from lms_portal.routers.attempts import router as attempts_router
from lms_portal.routers.auth import router as auth_router
from lms_portal.routers.blog import router as blog_router
from lms_portal.routers.certificates import router as certificates_router
from lms_portal.routers.coupons import router as coupons_router
from lms_portal.routers.courses import router as courses_router
from lms_portal.routers.dashboards import router as dashboards_router
from lms_portal.routers.enrollments import router as enrollments_router
from lms_portal.routers.lessons import router as lessons_router
from lms_portal.routers.public import router as public_router
from lms_portal.routers.tests import router as tests_router

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
    init_db()
    logger.info("LMS portal started (uploads in %s)", UPLOAD_DIR)
    yield


app = FastAPI(title="LMS Portal", lifespan=lifespan)

# Middleware
app.add_middleware(LoggingMiddleware)

# Uniform {"success": false, "error": ...} responses
register_exception_handlers(app)


# Health check
@app.get("/health")
def health():
    return {"status": "ok"}


# Include routers
app.include_router(auth_router, prefix="/auth", tags=["auth"])
app.include_router(admin_router, prefix="/admin", tags=["admin"])
app.include_router(courses_router, prefix="/courses", tags=["courses"])
app.include_router(enrollments_router, prefix="/enrollments", tags=["enrollments"])
app.include_router(tests_router, prefix="/tests", tags=["tests"])
app.include_router(certificates_router, prefix="/certificates", tags=["certificates"])
app.include_router(public_router, prefix="/public", tags=["public"])
app.include_router(blog_router, prefix="/blog", tags=["blog"])
app.include_router(coupons_router, prefix="/coupons", tags=["coupons"])

# Routers below define their full paths
app.include_router(lessons_router, tags=["lessons"])
app.include_router(attempts_router, tags=["attempts"])
app.include_router(dashboards_router)

# Uploaded files
app.mount(
    UPLOAD_URL_PREFIX,
    StaticFiles(directory=str(UPLOAD_DIR), check_dir=False),
    name="uploads",
)
