"""Dev data seeder for Flowspace.

Usage:
    python seed_dev_data.py          # Create test data
    python seed_dev_data.py --clean  # Remove seeded test data

Designed to run from the backend/ directory (CWD) so flowspace imports resolve.
Saves created IDs to .vscode/.dev_seed_ids.json for cleanup.

Creates two divisions with members, general, division and personal boards,
tasks, issues with comments, and a calendar per visibility type.
"""

from __future__ import annotations

import asyncio
import json
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# ---------------------------------------------------------------------------
# Bootstrap: add backend/ to sys.path so `flowspace.*` imports work when
# invoked as `python ../scripts/seed_dev_data.py` from the backend/ directory.
# ---------------------------------------------------------------------------
BACKEND_DIR = Path(__file__).resolve().parent.parent / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from sqlmodel import select  # noqa: E402
from sqlmodel.ext.asyncio.session import AsyncSession  # noqa: E402

from flowspace.core.config import settings  # noqa: E402
from flowspace.core.security import get_password_hash  # noqa: E402
from flowspace.db.session import AsyncSessionLocal  # noqa: E402
from flowspace.models.board import Board, BoardAccess  # noqa: E402
from flowspace.models.calendar import Calendar, CalendarAccess, CalendarEvent  # noqa: E402
from flowspace.models.comment import Comment  # noqa: E402
from flowspace.models.division import Division  # noqa: E402
from flowspace.models.issue import Issue, IssuePriority, IssueStatus  # noqa: E402
from flowspace.models.scope import VisibilityType  # noqa: E402
from flowspace.models.task import Task, TaskPriority, TaskStatus  # noqa: E402
from flowspace.models.user import User, UserRole, UserStatus  # noqa: E402
from flowspace.services import boards as boards_service  # noqa: E402
from flowspace.services import calendars as calendars_service  # noqa: E402
from flowspace.services import divisions as divisions_service  # noqa: E402
from flowspace.services import users as users_service  # noqa: E402

STATE_FILE = Path(__file__).resolve().parent.parent / ".vscode" / ".dev_seed_ids.json"

# Consistent "now" for seeding
NOW = datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# State file helpers
# ---------------------------------------------------------------------------

def _save_state(state: dict) -> None:
    STATE_FILE.parent.mkdir(parents=True, exist_ok=True)
    STATE_FILE.write_text(json.dumps(state, indent=2))
    print(f"  State saved to {STATE_FILE}")


def _load_state() -> dict | None:
    if not STATE_FILE.exists():
        return None
    return json.loads(STATE_FILE.read_text())


async def _find_master(session: AsyncSession) -> User:
    """Find the master account created by init_db."""
    email = settings.FIRST_MASTER_EMAIL
    if not email:
        print("ERROR: FIRST_MASTER_EMAIL is not set in .env or environment.")
        sys.exit(1)
    result = await session.exec(select(User).where(User.email == email.lower()))
    user = result.one_or_none()
    if user is None:
        print(f"ERROR: Master account {email} not found.")
        print("  Make sure init_db has run.")
        sys.exit(1)
    return user


class IDTracker:
    def __init__(self) -> None:
        self.data: dict[str, list] = {
            "users": [],
            "divisions": [],
            "boards": [],
            "calendars": [],
        }

    def add(self, key: str, value) -> None:
        self.data[key].append(value)


# ---------------------------------------------------------------------------
# Seeder helpers
# ---------------------------------------------------------------------------

async def _create_users(
    session: AsyncSession,
    ids: IDTracker,
    user_defs: list[dict],
) -> dict[str, User]:
    """Create users (password "changeme") and return a name->User mapping."""
    hashed = get_password_hash("changeme")
    users: dict[str, User] = {}
    for ud in user_defs:
        user = User(
            email=ud["email"],
            name=ud["name"],
            hashed_password=hashed,
            role=ud.get("role", UserRole.user),
            status=ud.get("status", UserStatus.active),
            division_id=ud.get("division_id"),
        )
        session.add(user)
        await session.flush()
        ids.add("users", user.id)
        users[ud["name"]] = user
    return users


async def _create_board(
    session: AsyncSession,
    ids: IDTracker,
    *,
    name: str,
    creator: User,
    board_type: VisibilityType = VisibilityType.general,
    division: Division | None = None,
    readers: list[User] = (),
) -> Board:
    board = Board(
        name=name,
        type=board_type,
        division_id=division.id if division else None,
        created_by_id=creator.id,
    )
    session.add(board)
    await session.flush()
    ids.add("boards", board.id)

    if board_type == VisibilityType.personal:
        session.add(BoardAccess(board_id=board.id, user_id=creator.id, can_edit=True))
        for reader in readers:
            session.add(BoardAccess(board_id=board.id, user_id=reader.id, can_edit=False))
        await session.flush()
    return board


async def _create_tasks(
    session: AsyncSession,
    board: Board,
    creator: User,
    task_defs: list[tuple[str, TaskStatus, TaskPriority, User | None]],
) -> None:
    for title, status, priority, assignee in task_defs:
        session.add(
            Task(
                title=title,
                status=status,
                priority=priority,
                board_id=board.id,
                created_by_id=creator.id,
                assigned_to_id=assignee.id if assignee else None,
                due_date=NOW + timedelta(days=7),
            )
        )
    await session.flush()


async def _create_issue(
    session: AsyncSession,
    board: Board,
    creator: User,
    *,
    title: str,
    status: IssueStatus,
    priority: IssuePriority,
    comments: list[tuple[User, str]] = (),
) -> Issue:
    issue = Issue(
        title=title,
        status=status,
        priority=priority,
        board_id=board.id,
        created_by_id=creator.id,
    )
    session.add(issue)
    await session.flush()
    for offset, (author, content) in enumerate(comments):
        session.add(
            Comment(
                content=content,
                issue_id=issue.id,
                user_id=author.id,
                created_at=NOW + timedelta(minutes=offset),
            )
        )
    await session.flush()
    return issue


async def _create_calendar(
    session: AsyncSession,
    ids: IDTracker,
    *,
    name: str,
    creator: User,
    calendar_type: VisibilityType = VisibilityType.general,
    division: Division | None = None,
    events: list[tuple[str, int, list[str]]] = (),
) -> Calendar:
    calendar = Calendar(
        name=name,
        type=calendar_type,
        division_id=division.id if division else None,
        created_by_id=creator.id,
    )
    session.add(calendar)
    await session.flush()
    ids.add("calendars", calendar.id)

    if calendar_type == VisibilityType.personal:
        session.add(CalendarAccess(calendar_id=calendar.id, user_id=creator.id, can_edit=True))
    for title, days_ahead, tags in events:
        start = NOW.replace(hour=9, minute=0, second=0, microsecond=0) + timedelta(days=days_ahead)
        session.add(
            CalendarEvent(
                title=title,
                start_date=start,
                end_date=start + timedelta(hours=1),
                tags=tags,
                calendar_id=calendar.id,
                created_by_id=creator.id,
            )
        )
    await session.flush()
    return calendar


# ---------------------------------------------------------------------------
# Seed / clean
# ---------------------------------------------------------------------------

async def seed() -> None:
    if _load_state() is not None:
        print("Seed data already exists (.vscode/.dev_seed_ids.json found).")
        print("  Run with --clean first to remove existing data.")
        return

    print("Seeding dev data (2 divisions, multiple users)...")
    ids = IDTracker()

    async with AsyncSessionLocal() as session:
        async with session.begin():
            master = await _find_master(session)

            print("  Creating divisions...")
            engineering = Division(name="Engineering")
            operations = Division(name="Operations")
            session.add_all([engineering, operations])
            await session.flush()
            ids.add("divisions", engineering.id)
            ids.add("divisions", operations.id)

            print("  Creating users...")
            users = await _create_users(session, ids, [
                {"email": "admin@example.com", "name": "Avery Admin", "role": UserRole.admin},
                {"email": "user1@example.com", "name": "Robin Park", "division_id": engineering.id},
                {"email": "user2@example.com", "name": "Sam Ortega", "division_id": engineering.id},
                {"email": "user3@example.com", "name": "Jules Moreau", "division_id": operations.id},
                {"email": "user4@example.com", "name": "Casey Lin"},
                {"email": "pending@example.com", "name": "Pat Pending", "status": UserStatus.pending},
            ])
            robin, sam, jules = users["Robin Park"], users["Sam Ortega"], users["Jules Moreau"]

            print("  Creating boards...")
            company = await _create_board(session, ids, name="Company roadmap", creator=master)
            platform = await _create_board(
                session,
                ids,
                name="Platform",
                creator=robin,
                board_type=VisibilityType.division,
                division=engineering,
            )
            logistics = await _create_board(
                session,
                ids,
                name="Logistics",
                creator=jules,
                board_type=VisibilityType.division,
                division=operations,
            )
            scratch = await _create_board(
                session,
                ids,
                name="Robin's scratchpad",
                creator=robin,
                board_type=VisibilityType.personal,
                readers=[sam],
            )

            print("  Creating tasks...")
            await _create_tasks(session, company, master, [
                ("Publish quarterly goals", TaskStatus.in_progress, TaskPriority.high, None),
                ("Plan offsite", TaskStatus.todo, TaskPriority.medium, jules),
            ])
            await _create_tasks(session, platform, robin, [
                ("Upgrade database", TaskStatus.todo, TaskPriority.urgent, robin),
                ("Review API pagination", TaskStatus.review, TaskPriority.medium, sam),
                ("Retire legacy cron", TaskStatus.done, TaskPriority.low, None),
            ])
            await _create_tasks(session, logistics, jules, [
                ("Renew shipping contract", TaskStatus.in_progress, TaskPriority.high, jules),
            ])
            await _create_tasks(session, scratch, robin, [
                ("Sketch caching idea", TaskStatus.todo, TaskPriority.low, robin),
            ])

            print("  Creating issues and comments...")
            await _create_issue(
                session,
                platform,
                sam,
                title="Login page times out",
                status=IssueStatus.in_progress,
                priority=IssuePriority.high,
                comments=[(sam, "Seen twice this morning."), (robin, "Looking into the pool size.")],
            )
            await _create_issue(
                session,
                company,
                jules,
                title="Office wifi drops",
                status=IssueStatus.not_started,
                priority=IssuePriority.medium,
            )

            print("  Creating calendars...")
            await _create_calendar(
                session,
                ids,
                name="Company events",
                creator=master,
                events=[("All hands", 3, ["company"]), ("Holiday party", 20, ["social"])],
            )
            await _create_calendar(
                session,
                ids,
                name="Engineering on-call",
                creator=robin,
                calendar_type=VisibilityType.division,
                division=engineering,
                events=[("On-call handover", 1, ["oncall", "platform"])],
            )
            await _create_calendar(
                session,
                ids,
                name="Robin's focus time",
                creator=robin,
                calendar_type=VisibilityType.personal,
                events=[("Deep work", 2, [])],
            )

        # Transaction committed

    _save_state(ids.data)
    print("Done! All seeded users use the password \"changeme\".")


async def clean() -> None:
    state = _load_state()
    if state is None:
        print("No seed state file found. Nothing to clean.")
        return

    print("Cleaning up seeded dev data...")

    async with AsyncSessionLocal() as session:
        async with session.begin():
            # Purging boards and calendars also removes their tasks, issues,
            # comments, events and access rows.
            for calendar_id in state.get("calendars", []):
                await calendars_service.purge_calendar(session, calendar_id)
            print("  Removed calendars")

            for board_id in state.get("boards", []):
                await boards_service.purge_board(session, board_id)
            print("  Removed boards")

            for user_id in state.get("users", []):
                user = await session.get(User, user_id)
                if user:
                    await users_service.delete_user(session, user)
            print("  Removed users")

            for division_id in state.get("divisions", []):
                division = await session.get(Division, division_id)
                if division:
                    await divisions_service.delete_division(session, division)
            print("  Removed divisions")

        # Transaction committed

    STATE_FILE.unlink(missing_ok=True)
    print("Done! All seeded data removed.")


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    if "--clean" in sys.argv:
        asyncio.run(clean())
    else:
        asyncio.run(seed())
