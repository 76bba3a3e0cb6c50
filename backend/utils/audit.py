import logging

from sqlalchemy.orm import Session
from models.log import Log

logger = logging.getLogger(__name__)


def write_log(db: Session, *, user_id, action, resource, status="SUCCESS", company_id=None, ip=None, meta=None):
    entry = Log(
        user_id=user_id, company_id=company_id, action=action, resource=resource,
        status=status, ip=ip, meta=meta or {},
    )
    db.add(entry)
    db.commit()
    logger.debug("audit %s %s %s user=%s", action, resource, status, user_id)
