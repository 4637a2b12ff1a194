import sys
import os
from sqlmodel import Session, select

# Add current directory to path
sys.path.append(os.getcwd())

from engagement.db.session import engine, init_db
from engagement.models.user import User, UserRole
from engagement.core.security import create_access_token

def create_initial_user():
    print("--- Initial User Creation ---")

    email = os.environ.get("ADMIN_EMAIL", "admin@example.com")
    full_name = "Marketplace Admin"

    # Admins can also post projects and bid, so they hold every role
    roles = [
        UserRole.ADMIN,
        UserRole.CLIENT,
        UserRole.CONTRIBUTOR,
    ]

    init_db()
    with Session(engine) as session:
        # Check if user already exists
        statement = select(User).where(User.email == email)
        user = session.exec(statement).first()

        if user:
            print(f"User with email {email} already exists.")
        else:
            print(f"Creating user {email}...")
            user = User(
                email=email,
                full_name=full_name,
                roles=roles,
                primary_role=UserRole.ADMIN,
            )
            session.add(user)
            session.commit()
            print("Initial user created successfully!")
            print(f"Roles: {[r.value for r in roles]}")

    print(f"Email: {email}")
    print(f"Access token: {create_access_token(email)}")

if __name__ == "__main__":
    create_initial_user()
