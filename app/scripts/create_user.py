"""
Create a user (e.g. the first admin) directly in the configured store. Run from project root:
  python -m app.scripts.create_user USERNAME PASSWORD [role]
Example:
  python -m app.scripts.create_user admin your-secure-password admin

Goes through the same registration flow as POST /register, so the username
rules and the admin allow-list apply here too.
"""
import argparse
import sys

from app.core.config import get_settings
from app.core.errors import ServiceError
from app.core.log import configure_logging
from app.core.security import ROLES
from app.services.auth import register
from app.services.kv_store import SqlKeyValueStore, StoreUnavailableError, build_store


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create an admin-interface user.")
    parser.add_argument("username", help="Username (3-20 chars, letters, digits, underscore)")
    parser.add_argument("password", help="Password (at least 6 chars)")
    parser.add_argument("role", nargs="?", default="editor", choices=list(ROLES))
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    store = build_store(settings)
    try:
        if isinstance(store, SqlKeyValueStore) and store.engine.dialect.name == "sqlite":
            store.ensure_schema()
        user = register(store, args.username, args.password, args.role)
    except ServiceError as e:
        print(f"{e.error}: {e.message}", file=sys.stderr)
        return 1
    except StoreUnavailableError as e:
        print(f"ServiceUnavailable: {e}", file=sys.stderr)
        return 1
    print(f"Created user '{user.username}' with role '{user.role}'.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
