import sys
import os
from sqlmodel import Session, select

# Add current directory to path
sys.path.append(os.getcwd())

from simplifly.core.config import settings
from simplifly.db.session import create_db_engine, init_db
from simplifly.models.user import User, UserRole


def set_superadmin(email: str) -> int:
    print("--- Grant Superadmin Role ---")

    engine = create_db_engine(settings)
    init_db(engine)

    with Session(engine) as session:
        user = session.exec(select(User).where(User.email == email.lower())).first()

        if not user:
            print(f"No user with email {email}. Register the account first.")
            return 1

        if user.is_superadmin:
            print(f"{email} is already a superadmin.")
            return 0

        user.role = UserRole.SUPERADMIN
        session.add(user)
        session.commit()
        print(f"{email} is now a superadmin.")
        return 0


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python scripts/set_superadmin.py <email>")
        sys.exit(2)
    sys.exit(set_superadmin(sys.argv[1]))
