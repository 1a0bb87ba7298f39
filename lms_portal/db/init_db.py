from lms_portal.db.base import Base
from lms_portal.db.session import engine


def init_db() -> None:
    Base.metadata.create_all(bind=engine)
