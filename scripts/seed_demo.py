#!/usr/bin/env python3
"""
Seed a demo event with users and enrollments.

Creates a handful of users, enrolls them in one event and builds the
attendee deck so the swipe and chat flows have real data to work with.
Users that already exist (matched by email) are reused.

Usage:
    python scripts/seed_demo.py [--event-id ID] [--dry-run]

Options:
    --event-id ID    Event to enroll the demo users in (default: demo-1)
    --dry-run        Show what would be created without writing anything
"""
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from datetime import UTC, datetime, timedelta

from sqlmodel import Session

from eventmatch.core.database import create_db_and_tables, engine
from eventmatch.matching.attendees import initialize_event_attendees
from eventmatch.matching.enrollments import enroll_user_in_event
from eventmatch.matching.users import create_user, get_next_user_id, get_user_by_email
from eventmatch.models import User

DEMO_USERS = [
    {"email": "ana@example.com", "name": "Ana Silva", "job": "Architect", "interests": ["Design", "Cycling"]},
    {"email": "ben@example.com", "name": "Ben Okafor", "job": "Data Engineer", "interests": ["Chess", "Jazz"]},
    {"email": "chloe@example.com", "name": "Chloe Martin", "job": "Nurse", "interests": ["Running", "Books"]},
    {"email": "dev@example.com", "name": "Dev Patel", "job": "Founder", "interests": ["Startups", "Coffee"]},
]


def main(event_id: str, dry_run: bool = False):
    """Create demo users, enroll them and build the attendee deck."""
    create_db_and_tables()
    starts_at = datetime.now(UTC) + timedelta(days=3)

    with Session(engine) as session:
        user_ids = []
        next_id = int(get_next_user_id(session))
        for profile in DEMO_USERS:
            existing = get_user_by_email(session, profile["email"])
            if existing:
                print(f"  Reusing {existing.email} (ID: {existing.id})")
                user_ids.append(existing.id)
                continue

            user_id = str(next_id)
            next_id += 1
            print(f"  Creating {profile['email']} (ID: {user_id})")
            if not dry_run:
                create_user(session, User(id=user_id, **profile))
            user_ids.append(user_id)

        if dry_run:
            print(f"\nDry run: would enroll {len(user_ids)} users in event {event_id}")
            return

        for user_id in user_ids:
            enroll_user_in_event(
                session, user_id, event_id, event_title="Demo Mixer", event_date=starts_at
            )

        attendees = initialize_event_attendees(session, event_id, "Demo Mixer")
        print(f"\nComplete: {len(user_ids)} users enrolled, {len(attendees)} attendees in deck")


if __name__ == "__main__":
    args = sys.argv[1:]
    event_id = "demo-1"
    if "--event-id" in args:
        event_id = args[args.index("--event-id") + 1]
    main(event_id, dry_run="--dry-run" in args)
