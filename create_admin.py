"""
Create the first dashboard admin.

    python create_admin.py admin@newrayan.com 'S3cret-pass' "مدير النظام"
"""
import sys
import uuid

from dotenv import load_dotenv

load_dotenv()

from app.database import SessionLocal, engine, Base  # noqa: E402
from app.models import AdminUser, AdminRole  # noqa: E402
from app.utils.auth import get_password_hash  # noqa: E402


def create_admin(email: str, password: str, name: str) -> bool:
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        email = email.strip().lower()
        if db.query(AdminUser).filter(AdminUser.email == email).first():
            print(f"Admin {email} already exists")
            return False
        db.add(AdminUser(
            id=str(uuid.uuid4()),
            email=email,
            hashed_password=get_password_hash(password),
            name=name,
            role=AdminRole.ADMIN,
        ))
        db.commit()
        print(f"✅ Admin {email} created, change the password after first login")
        return True
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    if len(sys.argv) < 3:
        print(__doc__)
        sys.exit(1)
    create_admin(sys.argv[1], sys.argv[2], sys.argv[3] if len(sys.argv) > 3 else "مدير النظام")
