"""
Notification Dispatcher

Notification records are written inside the transaction of the business
operation that raised them, under a savepoint, so they commit or roll back
together with it. A failed insert rolls back only its savepoint and is
logged. Delivery to the channel happens after the commit and is best
effort: a failure is logged and swallowed.

Example:
    >>> dispatcher = NotificationDispatcher(SessionLocal)
    >>> dispatcher.dispatch([NotificationMessage(42, NotificationType.grade_assigned, "Grade", "B")])
    1
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, Iterator, List, Optional, Protocol

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import NOTIFICATION_PAGE_SIZE
from ..database import session_scope
from ..exceptions import NotFound
from ..locks import KeyedLocks
from ..models import Notification, NotificationType
from ..timeutil import Clock, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationMessage:
    """A notification that has not been stored yet."""
    recipient_id: int
    type: NotificationType
    title: str
    message: str


class DeliveryChannel(Protocol):
    """Transport collaborator (push, email, websocket...)."""

    def deliver(self, notification: Notification) -> None:
        ...


class LoggingChannel:
    """Default channel: records the hand-off in the application log."""

    def deliver(self, notification: Notification) -> None:
        logger.info(
            f"Notification {notification.id} -> recipient {notification.recipient_id}: "
            f"{notification.title}"
        )


class NotificationDispatcher:
    """Appends notification records and answers read-state queries.

    Args:
        session_factory: Callable returning a new SQLAlchemy session.
        clock: Source of ``created_at`` timestamps.
        channel: Delivery collaborator, called once per stored record.
        page_size: Batch size used by ``list_notifications``.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Clock = utcnow,
        channel: Optional[DeliveryChannel] = None,
        page_size: int = NOTIFICATION_PAGE_SIZE,
    ):
        self.session_factory = session_factory
        self.clock = clock
        self.channel = channel or LoggingChannel()
        self.page_size = max(1, page_size)
        self._recipient_locks = KeyedLocks()

    def store(self, db: Session, messages: Iterable[NotificationMessage]) -> List[Notification]:
        """Insert ``messages`` into the caller's transaction under a savepoint.

        Returns the flushed records, or an empty list when the insert failed
        and its savepoint was rolled back. The caller's own writes are kept.
        """
        messages = list(messages)
        if not messages:
            return []
        # Pending business writes must not land inside the savepoint
        db.flush()
        try:
            with db.begin_nested():
                now = self.clock()
                stored = [self._record(m, now) for m in messages]
                db.add_all(stored)
                db.flush()
        except SQLAlchemyError:
            logger.exception(f"Failed to store {len(messages)} notification(s)")
            return []
        return stored

    def deliver(self, notifications: Iterable[Notification]) -> None:
        """Hand committed records to the channel; never raises."""
        for notification in notifications:
            try:
                self.channel.deliver(notification)
            except Exception:
                logger.exception(f"Delivery of notification {notification.id} failed")

    def dispatch(self, messages: Iterable[NotificationMessage]) -> int:
        """Store ``messages`` in a transaction of their own, then deliver them.

        For notifications not tied to a workflow write. Returns how many
        records were stored; never raises.
        """
        messages = list(messages)
        if not messages:
            return 0
        try:
            with session_scope(self.session_factory) as db:
                stored = self.store(db, messages)
        except Exception:
            logger.exception(f"Failed to store {len(messages)} notification(s)")
            return 0
        self.deliver(stored)
        return len(stored)

    @staticmethod
    def _record(message: NotificationMessage, now: datetime) -> Notification:
        return Notification(
            recipient_id=message.recipient_id,
            type=message.type,
            title=message.title,
            message=message.message,
            created_at=now,
            read=False,
        )

    def list_notifications(self, recipient_id: int) -> Iterator[Notification]:
        """Yield the recipient's notifications, most recent first, one page per query."""
        cursor = None
        while True:
            page = self._page(recipient_id, cursor)
            yield from page
            if len(page) < self.page_size:
                return
            last = page[-1]
            cursor = (last.created_at, last.id)

    def _page(self, recipient_id: int, cursor) -> List[Notification]:
        stmt = select(Notification).where(Notification.recipient_id == recipient_id)
        if cursor is not None:
            created_at, last_id = cursor
            stmt = stmt.where(
                or_(
                    Notification.created_at < created_at,
                    and_(Notification.created_at == created_at, Notification.id < last_id),
                )
            )
        stmt = stmt.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(self.page_size)
        with session_scope(self.session_factory) as db:
            return list(db.scalars(stmt))

    def mark_read(self, notification_id: int, recipient_id: Optional[int] = None) -> Notification:
        """Flag one notification as read. Marking an already-read record is a no-op."""
        with session_scope(self.session_factory) as db:
            notification = db.get(Notification, notification_id)
            if notification is None or (recipient_id is not None and notification.recipient_id != recipient_id):
                raise NotFound("Notification", notification_id)
            owner = notification.recipient_id
        with self._recipient_locks.hold(owner):
            with session_scope(self.session_factory) as db:
                db.execute(
                    update(Notification)
                    .where(Notification.id == notification_id)
                    .values(read=True)
                )
                notification = db.get(Notification, notification_id)
        return notification

    def mark_all_read(self, recipient_id: int) -> int:
        """Flag every unread notification of ``recipient_id``. Returns the number flipped."""
        with self._recipient_locks.hold(recipient_id):
            with session_scope(self.session_factory) as db:
                result = db.execute(
                    update(Notification)
                    .where(Notification.recipient_id == recipient_id, Notification.read.is_(False))
                    .values(read=True)
                )
                return result.rowcount or 0

    def unread_count(self, recipient_id: int) -> int:
        with session_scope(self.session_factory) as db:
            return db.scalar(
                select(func.count(Notification.id)).where(
                    Notification.recipient_id == recipient_id,
                    Notification.read.is_(False),
                )
            ) or 0
