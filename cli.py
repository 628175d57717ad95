#!/usr/bin/env python3
"""
Command-line interface for SubTrackr notifications.

Usage:
    python cli.py [command] [options]

Commands:
    serve       Start the API server
    channels    Show channel status
    test        Send a test notification on one channel
    remind      Send a payment reminder for a subscription
    members     List household members

Examples:
    python cli.py serve --reload
    python cli.py test email
    python cli.py test pushover --user 1
    python cli.py remind 1
"""

import argparse
import logging
import subprocess
import sys
from typing import Optional

from notifications.config import get_settings
from notifications.errors import NotFoundError
from notifications.manager import NotificationManager, create_notification_manager
from notifications.models import ChannelKind


def _resolve_user(manager: NotificationManager, user_id: Optional[int]) -> int:
    if user_id is not None:
        return user_id
    member = manager.household.get_default_user()
    if member is None:
        print("No household members found")
        sys.exit(1)
    return member.id


def show_channels(manager: NotificationManager) -> None:
    """Print every channel's status."""
    for kind, status in manager.get_channel_status().items():
        state = "ready" if status.initialized else "not configured"
        line = f"{kind.value:<12} {state}"
        if status.error:
            line += f" ({status.error})"
        print(line)


def run_test(manager: NotificationManager, channel: str, user_id: Optional[int]) -> None:
    """Send a test notification and report the outcome."""
    user_id = _resolve_user(manager, user_id)
    try:
        success = manager.send_test_notification(user_id, channel)
    except NotFoundError as e:
        print(e)
        sys.exit(1)

    if success:
        print(f"✓ Test notification sent via {channel}")
    else:
        print(f"✗ Failed to send test notification via {channel}")
        sys.exit(1)


def run_remind(manager: NotificationManager, subscription_id: int, user_id: Optional[int]) -> None:
    """Send reminders for one subscription and print per-channel results."""
    user_id = _resolve_user(manager, user_id)
    try:
        results = manager.send_subscription_reminder(user_id, subscription_id)
    except NotFoundError as e:
        print(e)
        sys.exit(1)

    for kind, success in results.items():
        print(f"{'✓' if success else '✗'} {kind.value}")


def list_members(manager: NotificationManager) -> None:
    """Print the household members."""
    for member in manager.household.get_all_users():
        default = " (default)" if member.is_default else ""
        print(f"{member.id:>3}  {member.name}{default}  {member.email or '-'}")


def run_server(host: str, port: int, reload: bool) -> None:
    """Start the API server."""
    cmd = [sys.executable, "-m", "uvicorn", "api.main:app", f"--host={host}", f"--port={port}"]
    if reload:
        cmd.append("--reload")

    print(f"Starting server at http://{host}:{port}")
    print(f"API docs available at http://{host}:{port}/docs")
    subprocess.run(cmd)


def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="SubTrackr notifications CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s serve --reload
  %(prog)s channels
  %(prog)s test pushbullet
  %(prog)s remind 2 --user 1
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    serve_parser.add_argument("--reload", action="store_true", help="Enable auto-reload")

    # Channels command
    subparsers.add_parser("channels", help="Show channel status")

    # Test command
    test_parser = subparsers.add_parser("test", help="Send a test notification")
    test_parser.add_argument(
        "channel",
        choices=[kind.value for kind in ChannelKind],
        help="Which channel to test",
    )
    test_parser.add_argument("--user", type=int, default=None, help="Household member id")

    # Remind command
    remind_parser = subparsers.add_parser("remind", help="Send a payment reminder")
    remind_parser.add_argument("subscription_id", type=int, help="Subscription to remind about")
    remind_parser.add_argument("--user", type=int, default=None, help="Household member id")

    # Members command
    subparsers.add_parser("members", help="List household members")

    args = parser.parse_args()

    if args.command == "serve":
        run_server(args.host, args.port, args.reload)
        return
    if args.command is None:
        parser.print_help()
        return

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s | %(levelname)s | %(message)s",
        datefmt="%H:%M:%S",
    )
    manager = create_notification_manager(settings)

    if args.command == "channels":
        show_channels(manager)
    elif args.command == "test":
        run_test(manager, args.channel, args.user)
    elif args.command == "remind":
        run_remind(manager, args.subscription_id, args.user)
    elif args.command == "members":
        list_members(manager)


if __name__ == "__main__":
    main()
