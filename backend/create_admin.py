"""Create an admin account, or promote an existing account to admin.

Usage:
    python -m backend.create_admin EMAIL PASSWORD [FIRST_NAME] [LAST_NAME]
"""
import sys

from sqlalchemy.orm import Session

from backend.auth.passwords import hash_password
from backend.database import Base, SessionLocal, engine
from backend.models import session, tutor_application, tutoring_request  # noqa: F401
from backend.models.user import ROLE_ADMIN, User


def create_admin(db: Session, email: str, password: str, first_name: str = "Site", last_name: str = "Admin") -> User:
    email = email.strip().lower()
    user = db.query(User).filter(User.email == email).first()
    if user is None:
        user = User(
            first_name=first_name,
            last_name=last_name,
            email=email,
            hashed_password=hash_password(password),
            interests=[],
            subjects=[],
            availability=[],
        )
        db.add(user)
    user.role = ROLE_ADMIN
    db.commit()
    db.refresh(user)
    return user


def main(argv: list[str] | None = None) -> None:
    args = sys.argv[1:] if argv is None else argv
    if len(args) < 2:
        print(__doc__.strip(), file=sys.stderr)
        sys.exit(2)

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        user = create_admin(db, *args[:4])
    finally:
        db.close()
    print(f"Admin account ready: {user.email} (id {user.id})")


if __name__ == "__main__":
    main()
