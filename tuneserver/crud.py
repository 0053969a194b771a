# tuneserver/crud.py
from typing import List, Optional
import logging
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession

from tuneserver import auth
from tuneserver.models import User, StreamCount
from tuneserver.errors import (
    AuthError,
    ConflictError,
    NotFoundError,
    ServerError,
    ValidationError,
)

logger = logging.getLogger(__name__)


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalars().first()


async def register_user(db: AsyncSession, username: str, email: str, password: str) -> User:
    if not username or not email or not password:
        raise ValidationError("All fields are required")

    try:
        if await get_user_by_email(db, email):
            raise ConflictError("User already exists")

        hashed_password = await run_in_threadpool(auth.hash_password, password)
        db_user = User(username=username, email=email, password=hashed_password)
        db.add(db_user)
        await db.commit()
    except IntegrityError as exc:
        # lost a race against a concurrent registration for the same email
        await db.rollback()
        raise ConflictError("User already exists") from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        raise ServerError(str(exc)) from exc

    await db.refresh(db_user)
    logger.info("User registered: id=%s", db_user.id)
    return db_user


async def login_user(db: AsyncSession, email: str, password: str) -> str:
    """Check the credentials and return a fresh session token for the user."""
    if not email:
        raise NotFoundError("User not found")
    try:
        user = await get_user_by_email(db, email)
    except SQLAlchemyError as exc:
        raise ServerError(str(exc)) from exc
    if not user:
        raise NotFoundError("User not found")

    if not password or not await run_in_threadpool(auth.verify_password, password, user.password):
        logger.info("Failed login for user id=%s", user.id)
        raise AuthError("Invalid credentials")

    return auth.create_access_token(user.id)


async def _bump_stream(db: AsyncSession, song_id: str) -> int:
    result = await db.execute(
        update(StreamCount)
        .where(StreamCount.song_id == song_id)
        .values(streams=StreamCount.streams + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


async def increment_stream(db: AsyncSession, song_id: str) -> StreamCount:
    """
    Count one more play of ``song_id``.

    The counter is bumped with a single UPDATE so concurrent requests never
    lose increments. The first play inserts the row; when two first plays
    race, the loser of the unique index falls back to the UPDATE.
    """
    if not song_id:
        raise ValidationError("song_id is required")

    try:
        if await _bump_stream(db, song_id):
            await db.commit()
        else:
            db.add(StreamCount(song_id=song_id, streams=1))
            try:
                await db.commit()
            except IntegrityError:
                await db.rollback()
                await _bump_stream(db, song_id)
                await db.commit()

        result = await db.execute(
            select(StreamCount)
            .where(StreamCount.song_id == song_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().one()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise ServerError(str(exc)) from exc


async def list_streams(db: AsyncSession) -> List[StreamCount]:
    try:
        result = await db.execute(select(StreamCount).order_by(StreamCount.id))
        return list(result.scalars().all())
    except SQLAlchemyError as exc:
        raise ServerError(str(exc)) from exc
