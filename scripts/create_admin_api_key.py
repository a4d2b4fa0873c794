"""Bootstrap the first admin user and API key on an empty database."""
import argparse

from sqlalchemy import select

from crowdfund.config import get_settings
from crowdfund.db import Database
from crowdfund.models.api_key import ApiKey
from crowdfund.models.user import User, UserRole
from crowdfund.utils.apikey import gen_key


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--username", default="admin")
    parser.add_argument("--email", default="admin@example.com")
    args = parser.parse_args()

    database = Database(get_settings().database_url)
    db = database.session()

    try:
        admin = db.scalars(select(User).where(User.username == args.username)).first()
        if admin is None:
            admin = User(username=args.username, email=args.email, role=UserRole.ADMIN, is_active=True)
            db.add(admin)
            db.flush()
        elif admin.role != UserRole.ADMIN:
            raise SystemExit(f"User {args.username!r} exists but is not an admin.")

        raw, prefix, key_hash = gen_key()
        api_key = ApiKey(
            name=f"bootstrap-{prefix}",
            prefix=prefix,
            key_hash=key_hash,
            user_id=admin.id,
            is_active=True,
        )
        db.add(api_key)
        db.commit()
        db.refresh(api_key)

        print("Admin API key created. It is shown only once:")
        print(f"    Authorization: Bearer {raw}")
        print(f"(user id: {admin.id}, key id: {api_key.id})")
    finally:
        db.close()
        database.dispose()


if __name__ == "__main__":
    main()
