import logging

from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


def record_event(store, *, package_id: str, actor_id: str | None, action: str,
                 payload: dict | None = None, ip: str | None = None,
                 user_agent: str | None = None) -> bool:
    """
    Append-only audit helper, run in its own transaction after the state change
    it describes has committed. A failed append is logged and reported as False;
    it never undoes the delivery.
    """
    try:
        with store.atomic():
            store.append_audit_entry(package_id=package_id, actor_id=actor_id, action=action,
                                     payload=payload, ip=ip, user_agent=user_agent)
    except SQLAlchemyError:
        logger.exception('audit append failed: action=%s package=%s', action, package_id)
        return False
    return True
