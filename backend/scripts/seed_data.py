"""Seed script to populate the local dev database with bookmarks.

Usage:
    PYTHONPATH=backend/src uv run python backend/scripts/seed_data.py populate
    PYTHONPATH=backend/src uv run python backend/scripts/seed_data.py populate --force
    PYTHONPATH=backend/src uv run python backend/scripts/seed_data.py clear
"""

import argparse
import asyncio
from datetime import UTC, datetime, timedelta

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from core.config import get_settings
from models import Bookmark, User

# Dev user auth0_id (matches core/auth.py dev mode)
DEV_AUTH0_ID = 'dev|local-development-user'

# Oldest first; each is created one minute after the previous
BOOKMARKS = [
    ('Python Official Documentation', 'https://docs.python.org/3/'),
    ('MDN Web Docs - JavaScript', 'https://developer.mozilla.org/en-US/docs/Web/JavaScript'),
    ('Rust Book - Getting Started', 'https://doc.rust-lang.org/book/'),
    ('FastAPI', 'https://fastapi.tiangolo.com/'),
    ('SQLAlchemy 2.0 Tutorial', 'https://docs.sqlalchemy.org/en/20/tutorial/'),
    ('PostgreSQL Documentation', 'https://www.postgresql.org/docs/current/'),
    ('Server-Sent Events (MDN)', 'https://developer.mozilla.org/en-US/docs/Web/API/Server-sent_events'),
    ('Redis Pub/Sub', 'https://redis.io/docs/latest/develop/interact/pubsub/'),
    ('Hacker News', 'https://news.ycombinator.com/'),
    ('pytest documentation', 'https://docs.pytest.org/en/stable/'),
    ('Auth0 Docs', 'https://auth0.com/docs'),
    ('The Twelve-Factor App', 'https://12factor.net/'),
]


async def get_or_create_dev_user(session: AsyncSession) -> User:
    """Get or create the dev mode user."""
    result = await session.execute(
        select(User).where(User.auth0_id == DEV_AUTH0_ID)
    )
    user = result.scalar_one_or_none()
    if user is None:
        user = User(auth0_id=DEV_AUTH0_ID, email='dev@localhost')
        session.add(user)
        await session.flush()
        print(f'  Created dev user: {user.id}')
    else:
        print(f'  Found dev user: {user.id}')
    return user


async def create_bookmarks(session: AsyncSession, user: User) -> None:
    """Create the seed bookmarks with spread-out creation times."""
    start = datetime.now(UTC) - timedelta(minutes=len(BOOKMARKS))
    for offset, (title, url) in enumerate(BOOKMARKS):
        session.add(Bookmark(
            user_id=user.id,
            title=title,
            url=url,
            created_at=start + timedelta(minutes=offset),
        ))
    await session.flush()
    print(f'  Created {len(BOOKMARKS)} bookmarks')


async def clear_data(session: AsyncSession) -> None:
    """Clear all bookmarks of the dev user."""
    result = await session.execute(
        select(User).where(User.auth0_id == DEV_AUTH0_ID)
    )
    user = result.scalar_one_or_none()
    if user is None:
        print('No dev user found, nothing to clear.')
        return

    print(f'Clearing data for dev user {user.id}...')
    bm_count = (await session.execute(
        select(func.count()).select_from(Bookmark).where(Bookmark.user_id == user.id)
    )).scalar()
    await session.execute(delete(Bookmark).where(Bookmark.user_id == user.id))
    await session.flush()
    print(f'  Deleted {bm_count} bookmarks')
    print('Clear complete.')


async def populate(force: bool = False) -> None:
    """Populate the database with seed data."""
    settings = get_settings()
    engine = create_async_engine(settings.database_url, echo=False)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        try:
            user = await get_or_create_dev_user(session)

            bm_count = (await session.execute(
                select(func.count()).select_from(Bookmark).where(Bookmark.user_id == user.id)
            )).scalar()

            if bm_count:
                if not force:
                    print(
                        f'Data already exists ({bm_count} bookmarks). '
                        f'Use --force to clear and re-seed.'
                    )
                    return
                print('Existing data found, clearing first (--force)...')
                await clear_data(session)

            print('Populating seed data...')
            await create_bookmarks(session, user)
            await session.commit()
            print('Seed data created successfully.')
        except Exception:
            await session.rollback()
            raise
        finally:
            await engine.dispose()


async def clear() -> None:
    """Clear all dev user data."""
    settings = get_settings()
    engine = create_async_engine(settings.database_url, echo=False)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        try:
            await clear_data(session)
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await engine.dispose()


def main() -> None:
    """CLI entry point."""
    settings = get_settings()
    if not settings.dev_mode:
        print(
            "ERROR: Seed script requires VITE_DEV_MODE=true.\n"
            "This script modifies data directly and must only run against a local dev database."
        )
        raise SystemExit(1)

    parser = argparse.ArgumentParser(description='Seed the dev database with bookmarks.')
    subparsers = parser.add_subparsers(dest='command', required=True)

    populate_parser = subparsers.add_parser('populate', help='Populate database with bookmarks')
    populate_parser.add_argument(
        '--force', action='store_true',
        help='Clear existing bookmarks before populating',
    )

    subparsers.add_parser('clear', help='Remove all dev user bookmarks')

    args = parser.parse_args()

    if args.command == 'populate':
        asyncio.run(populate(force=args.force))
    elif args.command == 'clear':
        asyncio.run(clear())


if __name__ == '__main__':
    main()
