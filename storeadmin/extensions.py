from contextlib import contextmanager
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


@contextmanager
def atomic():
    """Run the enclosed statements as one unit of work.

    Commits when the block exits normally; any exception rolls the
    session back and is re-raised to the caller untouched.
    """
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
