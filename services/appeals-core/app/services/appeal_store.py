"""
Appeal persistence: inserts, filtered listing and conditional status updates

Functions here never commit. They run inside the caller's transaction
(see Database.session) so an appeal's status change and its audit row are
committed or rolled back together.
"""
from sqlalchemy.orm import Session
from sqlalchemy import and_, case
from typing import Iterable, List, Optional, Tuple
from datetime import date, datetime, time, timedelta

from app.core.exceptions import AppealNotFoundError
from app.models.appeal import Appeal, AppealResponse, AppealStatus, utcnow


def _touched_update_date(now: datetime):
    # Never move update_date backwards, even if this host's clock lags another's
    return case((Appeal.update_date > now, Appeal.update_date), else_=now)


def _reload_appeals(db: Session, ids: List[int]):
    """
    Query for appeals changed by a query-level UPDATE
    
    Only those instances are expired; other objects the caller holds in the
    session keep their loaded state.
    """
    wanted = set(ids)
    for key, obj in list(db.identity_map.items()):
        if isinstance(obj, Appeal) and key[1][0] in wanted:
            db.expire(obj)
    return db.query(Appeal).populate_existing().filter(Appeal.id.in_(ids))


def create_appeal(db: Session, topic: str, message: str) -> Appeal:
    """Insert a new appeal in status New"""
    now = utcnow()
    appeal = Appeal(
        topic=topic,
        message=message,
        status=AppealStatus.NEW,
        init_date=now,
        update_date=now
    )
    db.add(appeal)
    db.flush()
    db.refresh(appeal)
    return appeal


def get_appeal(db: Session, appeal_id: int) -> Optional[Appeal]:
    return db.query(Appeal).filter(Appeal.id == appeal_id).first()


def list_appeals(
    db: Session,
    on_date: Optional[date] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    status: Optional[AppealStatus] = None
) -> List[Appeal]:
    """
    List appeals, newest first
    
    Filters combine with AND. Date bounds are calendar days of init_date;
    end_date includes the whole day.
    """
    query = db.query(Appeal)
    
    if on_date:
        day_start = datetime.combine(on_date, time.min)
        query = query.filter(
            and_(
                Appeal.init_date >= day_start,
                Appeal.init_date < day_start + timedelta(days=1)
            )
        )
    
    if start_date:
        query = query.filter(Appeal.init_date >= datetime.combine(start_date, time.min))
    
    if end_date:
        query = query.filter(Appeal.init_date < datetime.combine(end_date, time.min) + timedelta(days=1))
    
    if status:
        query = query.filter(Appeal.status == status)
    
    return query.order_by(Appeal.init_date.desc(), Appeal.id.desc()).all()


def list_appeal_responses(db: Session, appeal_id: int) -> List[AppealResponse]:
    return db.query(AppealResponse).filter(
        AppealResponse.appeal_id == appeal_id
    ).order_by(AppealResponse.date, AppealResponse.id).all()


def add_appeal_response(db: Session, appeal_id: int, response_message: str) -> AppealResponse:
    """Insert one audit row for an appeal"""
    response = AppealResponse(
        appeal_id=appeal_id,
        response_message=response_message,
        date=utcnow()
    )
    db.add(response)
    db.flush()
    return response


def conditional_transition(
    db: Session,
    appeal_id: int,
    expected_statuses: Iterable[AppealStatus],
    new_status: AppealStatus,
    response_message: Optional[str] = None,
    operation: Optional[str] = None
) -> Appeal:
    """
    Move an appeal to new_status only if it is currently in expected_statuses
    
    The status check lives in the UPDATE's WHERE clause, so of two racing
    transitions on the same appeal exactly one matches the row. Raises
    AppealNotFoundError when nothing matched; the caller's transaction then
    rolls back.
    """
    expected = list(expected_statuses)
    now = utcnow()
    
    updated = db.query(Appeal).filter(
        Appeal.id == appeal_id,
        Appeal.status.in_(expected)
    ).update(
        {
            Appeal.status: new_status,
            Appeal.update_date: _touched_update_date(now),
        },
        synchronize_session=False
    )
    
    if updated == 0:
        raise AppealNotFoundError(appeal_id, operation)
    
    if response_message is not None:
        add_appeal_response(db, appeal_id, response_message)
    
    return _reload_appeals(db, [appeal_id]).one()


def bulk_transition(
    db: Session,
    from_status: AppealStatus,
    new_status: AppealStatus,
    response_message_template: str,
    operation: Optional[str] = None,
    **template_fields
) -> Tuple[int, List[Appeal]]:
    """
    Move every appeal in from_status to new_status, one audit row per appeal
    
    The template is formatted per appeal with ``appeal_id``, ``topic`` and
    ``previous_status`` plus any extra template_fields.
    """
    candidates = db.query(Appeal).filter(
        Appeal.status == from_status
    ).order_by(Appeal.id).with_for_update().all()
    
    if not candidates:
        return 0, []
    
    ids = [appeal.id for appeal in candidates]
    messages = {
        appeal.id: response_message_template.format(
            appeal_id=appeal.id,
            topic=appeal.topic,
            previous_status=appeal.status.value,
            **template_fields
        )
        for appeal in candidates
    }
    
    now = utcnow()
    updated = db.query(Appeal).filter(
        Appeal.id.in_(ids),
        Appeal.status == from_status
    ).update(
        {
            Appeal.status: new_status,
            Appeal.update_date: _touched_update_date(now),
        },
        synchronize_session=False
    )
    
    if updated != len(ids):
        # Row set moved under us (no row locks on this backend); roll back the batch
        raise AppealNotFoundError(operation=operation)
    
    for appeal_id in ids:
        add_appeal_response(db, appeal_id, messages[appeal_id])
    
    appeals = _reload_appeals(db, ids).order_by(Appeal.init_date.desc(), Appeal.id.desc()).all()
    return updated, appeals
