"""Run the API with an administrator seeded into the in-memory store."""

import os

from app import create_app
from config import Config
from models.user import User
from services.credentials import hash_password
from services.registry import EXTENSION_KEY

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@example.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "AdminPass123")
ADMIN_NAME = os.getenv("ADMIN_NAME", "Administrator")


def seed_admin(app) -> str:
    store = app.extensions[EXTENSION_KEY].user_store
    method = app.config.get("PASSWORD_HASH_METHOD", "scrypt")
    admin = store.get_by_email(ADMIN_EMAIL)
    if admin is None:
        store.add(
            User(
                email=ADMIN_EMAIL,
                password_hash=hash_password(ADMIN_PASSWORD, method=method),
                name=ADMIN_NAME,
                role="admin",
                is_active=True,
            )
        )
        return "created"
    return "present"


def main() -> None:
    app = create_app(Config)
    action = seed_admin(app)
    print(f"Admin user {action}: {ADMIN_EMAIL}")
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", 8888)), threaded=True)


if __name__ == "__main__":
    main()
