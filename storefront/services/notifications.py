from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from storefront.db import transaction
from storefront.errors import NotificationNotFoundError
from storefront.models.notification import Notification


class NotificationService:
    """Уведомления пользователям (колокольчик в личном кабинете)."""

    def create(self, db: Session, user_id: int, title: str, message: str,
               type: str = "INFO", link: Optional[str] = None) -> Notification:
        with transaction(db):
            n = Notification(user_id=user_id, title=title, message=message, type=type, link=link)
            db.add(n)
        return n

    def find_all_by_user(self, db: Session, user_id: int) -> List[Notification]:
        q = (
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
        )
        return list(db.scalars(q).all())

    def mark_as_read(self, db: Session, user_id: int, notification_id: int) -> Notification:
        n = db.get(Notification, notification_id)
        # чужое уведомление считаем несуществующим
        if not n or n.user_id != user_id:
            raise NotificationNotFoundError(notification_id)
        with transaction(db):
            n.is_read = True
        return n

    def mark_all_as_read(self, db: Session, user_id: int) -> int:
        with transaction(db):
            result = db.execute(
                update(Notification)
                .where(Notification.user_id == user_id, Notification.is_read.is_(False))
                .values(is_read=True)
                .execution_options(synchronize_session=False)
            )
        return result.rowcount


# глобальный экземпляр
notifications = NotificationService()
