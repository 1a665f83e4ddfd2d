"""CLI commands for database and datasheet cache operations."""

import argparse
import sys
from typing import NoReturn

from partswap import create_app
from partswap.app import App
from partswap.database import (
    check_db_connection,
    get_current_revision,
    get_pending_migrations,
    upgrade_database,
)


def create_parser() -> argparse.ArgumentParser:
    """Create command line argument parser."""
    parser = argparse.ArgumentParser(
        description="PartSwap CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    upgrade_parser = subparsers.add_parser(
        "upgrade-db",
        help="Apply database migrations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description="""
Apply pending database migrations using Alembic.

Examples:
  partswap-cli upgrade-db                               Apply pending migrations
  partswap-cli upgrade-db --recreate --yes-i-am-sure    Drop all tables and recreate from migrations
        """,
    )
    upgrade_parser.add_argument(
        "--recreate",
        action="store_true",
        help="Drop all tables first, then run all migrations from scratch",
    )
    upgrade_parser.add_argument(
        "--yes-i-am-sure",
        action="store_true",
        help="Required safety flag when using --recreate",
    )

    subparsers.add_parser(
        "cache-stats",
        help="Show datasheet cache counts by status",
    )

    clear_parser = subparsers.add_parser(
        "clear-expired-cache",
        help="Delete expired datasheet cache entries",
    )
    clear_parser.add_argument(
        "--include-failed",
        action="store_true",
        help="Also delete failed entries so their datasheets are retried",
    )

    return parser


def _require_connection(app: App) -> None:
    if not check_db_connection():
        print(
            "❌ Cannot connect to database. Check your DATABASE_URL configuration.",
            file=sys.stderr,
        )
        sys.exit(1)

    print(f"🗄  Using database: {app.config['SQLALCHEMY_DATABASE_URI']}")


def handle_upgrade_db(app: App, recreate: bool = False, confirmed: bool = False) -> None:
    """Handle upgrade-db command."""
    with app.app_context():
        _require_connection(app)

        if recreate and not confirmed:
            print(
                "❌ --recreate requires --yes-i-am-sure flag for safety",
                file=sys.stderr,
            )
            print(
                "   This will DROP ALL TABLES and recreate from migrations!",
                file=sys.stderr,
            )
            sys.exit(1)

        if recreate:
            print("⚠️  WARNING: About to drop all tables and recreate from migrations!")
            print("   This will permanently delete all components, pinouts and cached datasheets.")

        current_rev = get_current_revision()
        pending = get_pending_migrations()

        if current_rev:
            print(f"📍 Current database revision: {current_rev}")
        else:
            print("📍 Database has no migration version (empty or new database)")

        if not recreate and not pending:
            print("✅ Database is up to date. No migrations to apply.")
            return

        if recreate:
            print("🔄 Recreating database from scratch...")
        else:
            print(f"📦 Found {len(pending)} pending migration(s)")

        try:
            applied = upgrade_database(recreate=recreate)
        except Exception as e:
            print(f"❌ Migration failed: {e}", file=sys.stderr)
            sys.exit(1)

        if applied:
            print(f"✅ Successfully applied {len(applied)} migration(s)")
            for revision, description in applied:
                print(f"   • {revision}: {description}")
        else:
            print("✅ Database migration completed")


def handle_cache_stats(app: App) -> None:
    """Handle cache-stats command."""
    with app.app_context():
        _require_connection(app)

        try:
            stats = app.container.datasheet_cache_service().get_stats()
        finally:
            app.container.db_session().close()
            app.container.db_session.reset()

        print("📊 Datasheet cache:")
        print(f"   • {stats.total} entries")
        print(f"   • {stats.completed} completed")
        print(f"   • {stats.processing} processing")
        print(f"   • {stats.pending} pending")
        print(f"   • {stats.failed} failed")
        print(f"   • {stats.total_tokens} tokens spent (${stats.total_cost:.4f})")


def handle_clear_expired_cache(app: App, include_failed: bool = False) -> None:
    """Handle clear-expired-cache command."""
    with app.app_context():
        _require_connection(app)

        session = app.container.db_session()
        try:
            cache_service = app.container.datasheet_cache_service()
            expired = cache_service.clear_expired()
            failed = cache_service.clear_failed() if include_failed else 0
            session.commit()
        except Exception as e:
            session.rollback()
            print(f"❌ Failed to clear datasheet cache: {e}", file=sys.stderr)
            sys.exit(1)
        finally:
            session.close()
            app.container.db_session.reset()

        print(f"🧹 Removed {expired} expired datasheet cache entries")
        if include_failed:
            print(f"🧹 Removed {failed} failed datasheet cache entries")


def main() -> NoReturn:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    app = create_app()

    if args.command == "upgrade-db":
        handle_upgrade_db(
            app=app,
            recreate=args.recreate,
            confirmed=args.yes_i_am_sure,
        )
    elif args.command == "cache-stats":
        handle_cache_stats(app)
    elif args.command == "clear-expired-cache":
        handle_clear_expired_cache(app, include_failed=args.include_failed)
    else:
        print(f"❌ Unknown command: {args.command}", file=sys.stderr)
        sys.exit(1)

    sys.exit(0)


if __name__ == "__main__":
    main()
