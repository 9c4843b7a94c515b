"""
Send a system notification to one or more users.

Usage:
  cd backend
  python scripts/send_system_notification.py USER_ID [USER_ID ...] --title "Maintenance" --message "Back at 10:00"
"""
import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from eats_notify.deps import get_notification_service  # noqa: E402
from eats_notify.domain.notifications.models import NotificationType  # noqa: E402
from eats_notify.infra.db.base import dispose_engine  # noqa: E402
from eats_notify.logging_setup import setup_logging  # noqa: E402


async def send_system_notification(user_ids: list[str], title: str, message: str) -> int:
    service = get_notification_service()
    try:
        return await service.send_bulk_notification(user_ids, title, message, NotificationType.SYSTEM)
    finally:
        await dispose_engine()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Send a system notification")
    parser.add_argument("user_ids", nargs="+", metavar="USER_ID")
    parser.add_argument("--title", required=True)
    parser.add_argument("--message", required=True)
    args = parser.parse_args(argv)
    setup_logging()
    sent = asyncio.run(send_system_notification(args.user_ids, args.title, args.message))
    print(f"Sent {sent}/{len(args.user_ids)} notification(s).")
    return 0 if sent == len(args.user_ids) else 1


if __name__ == "__main__":
    sys.exit(main())
