from sqlalchemy.orm import Session
from models.log import Log

# Pass commit=False to make the entry part of the caller's transaction
def write_log(db: Session, *, user_id, action, resource, status="SUCCESS", ip=None, meta=None, commit=True):
    entry = Log(user_id=user_id, action=action, resource=resource, status=status, ip=ip, meta=meta or {})
    db.add(entry)
    if commit:
        db.commit()
    return entry
