from collections.abc import Iterable, Sequence
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from hooklab.fixtures import DeliveryRecord
from hooklab.models import Webhook

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def insert_delivery_records(db: Session, records: Iterable[DeliveryRecord]) -> list[int]:
    """Persist generated records and return their assigned ids."""
    rows = [Webhook(**record.to_row()) for record in records]
    db.add_all(rows)
    db.commit()
    return [row.id for row in rows]


def record_capture(
    db: Session,
    *,
    method: str,
    pathname: str,
    ip: str,
    content_type: str | None,
    query_params: dict[str, str],
    headers: dict[str, str],
    body: bytes,
    status_code: int = 200,
) -> Webhook:
    webhook = Webhook(
        method=method,
        pathname=pathname,
        ip=ip,
        status_code=status_code,
        content_type=content_type,
        content_length=len(body),
        query_params=query_params,
        headers=headers,
        body=body.decode("utf-8", errors="replace") if body else None,
        created_at=datetime.now(timezone.utc),
    )
    db.add(webhook)
    db.commit()
    db.refresh(webhook)
    return webhook


def list_webhooks(
    db: Session,
    limit: int = DEFAULT_PAGE_SIZE,
    cursor: int | None = None,
) -> tuple[list[Webhook], int | None]:
    """
    Return one page of webhooks, newest first.

    The cursor is the id of the last webhook on the previous page; the
    returned next cursor is None once there are no older rows.
    """
    stmt = select(Webhook).order_by(Webhook.id.desc()).limit(limit + 1)
    if cursor is not None:
        stmt = stmt.where(Webhook.id < cursor)

    rows = list(db.scalars(stmt))
    if len(rows) > limit:
        rows = rows[:limit]
        return rows, rows[-1].id
    return rows, None


def get_webhook(db: Session, webhook_id: int) -> Webhook | None:
    return db.get(Webhook, webhook_id)


def delete_webhook(db: Session, webhook_id: int) -> bool:
    webhook = db.get(Webhook, webhook_id)
    if webhook is None:
        return False
    db.delete(webhook)
    db.commit()
    return True


def fetch_bodies(db: Session, webhook_ids: Sequence[int]) -> list[str]:
    """Bodies of the given webhooks in id order, skipping empty ones."""
    stmt = (
        select(Webhook.body)
        .where(Webhook.id.in_(webhook_ids))
        .order_by(Webhook.id)
    )
    return [body for body in db.scalars(stmt) if body]
