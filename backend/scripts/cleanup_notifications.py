"""
Delete notifications older than the retention window (all users).

Usage:
  cd backend
  python scripts/cleanup_notifications.py            # settings.notification_retention_days
  python scripts/cleanup_notifications.py --days 7

Requires EATS_NOTIFY_DATABASE_URL (in .env or environment) pointing at PostgreSQL.
"""
import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from eats_notify.deps import get_notification_service  # noqa: E402
from eats_notify.infra.db.base import dispose_engine  # noqa: E402
from eats_notify.logging_setup import setup_logging  # noqa: E402


async def cleanup_notifications(days: int | None) -> int:
    service = get_notification_service()
    try:
        return await service.cleanup_old_notifications(days)
    finally:
        await dispose_engine()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Delete old notifications")
    parser.add_argument("--days", type=int, default=None, help="age threshold in days")
    args = parser.parse_args(argv)
    setup_logging()
    deleted = asyncio.run(cleanup_notifications(args.days))
    print(f"Deleted {deleted} notification(s).")
    return 0


if __name__ == "__main__":
    sys.exit(main())
