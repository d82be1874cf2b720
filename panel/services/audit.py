from typing import Optional, Dict, Any
from panel.extensions import db
from panel.models.audit import AuditLog

def audit_log(actor: Optional[str], action: str, entity_type: Optional[str] = None, entity_id=None, meta: Optional[Dict[str, Any]] = None):
    row = AuditLog(
        actor=actor,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        meta=meta or {},
    )
    db.session.add(row)
    return row
