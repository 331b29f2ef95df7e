from sqlalchemy.orm import Session

from app.config import get_settings
from app.services.workflow_store import ensure_default_templates


def ensure_seed_templates(db: Session) -> int:
    if not get_settings().seed_default_templates:
        return 0
    return ensure_default_templates(db)
