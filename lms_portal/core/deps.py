from lms_portal.db.session import SessionLocal


# one session per request; rolled back on error, always closed
def get_db():
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
