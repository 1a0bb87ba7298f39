# Import all the models, so that Base has them before being
# imported by init_db and Alembic
from lms_portal.db.base_class import Base  # noqa: F401
from lms_portal.models import (  # noqa: F401
    announcement,
    assessment,
    coupon,
    course,
    enrollment,
    lesson,
    post,
    review,
    submission,
    user,
)
