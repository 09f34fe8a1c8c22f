import logging
from fastapi import Request
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session
from models.log import Log

logger = logging.getLogger(__name__)

def client_ip(request: Request):
    return request.client.host if request and request.client else None

def write_log(db: Session, *, user_id, action, resource, resource_id=None, status="SUCCESS", ip=None, meta=None):
    # Audit rows are written in their own commit, after the business change has committed
    entry = Log(
        user_id=user_id, action=action, resource=resource,
        resource_id=str(resource_id) if resource_id is not None else None,
        status=status, ip=ip, meta=jsonable_encoder(meta or {}),
    )
    db.add(entry)
    db.commit()
    logger.info("%s %s user=%s %s", action, status, user_id, meta or "")
