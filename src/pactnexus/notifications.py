"""Persist a notification and push it over Redis pub/sub for per-user WebSocket delivery."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from pactnexus.db.models import Notification
from pactnexus.redis_client import publish_json


async def emit_notification(
    db: AsyncSession,
    redis: object | None,
    user_id: str,
    *,
    type: str,  # noqa: A002
    subtype: str,
    title: str,
    description: str | None = None,
    action_url: str | None = None,
    action_label: str | None = None,
) -> Notification:
    """Store a notification row, commit it and push it to the user's channel."""
    notification = Notification(
        user_id=user_id,
        type=type,
        subtype=subtype,
        title=title,
        description=description,
        action_url=action_url,
        action_label=action_label,
        read=False,
        created_at=datetime.now(timezone.utc),
    )
    db.add(notification)
    await db.commit()

    await push_notification_to_user(redis, notification)
    return notification


def notification_payload(notification: Notification) -> dict[str, object]:
    """WebSocket envelope for a committed notification row."""
    created = notification.created_at
    return {
        "event": "notification",
        "data": {
            "id": str(notification.id),
            "type": notification.type,
            "subtype": notification.subtype,
            "title": notification.title,
            "description": notification.description,
            "timestamp": created.isoformat() if created else None,
            "read": notification.read,
            "actionUrl": notification.action_url,
            "actionLabel": notification.action_label,
        },
    }


async def push_notification_to_user(redis: object | None, notification: Notification) -> bool:
    """Publish to ws:user:{user_id}. Returns False when Redis is absent or the publish failed."""
    return await publish_json(redis, f"ws:user:{notification.user_id}", notification_payload(notification))
