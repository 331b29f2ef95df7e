from app.config import get_settings
from app.db import get_db
from app.services.field_advisor import FieldAdvisor, build_field_advisor

__all__ = ["get_db", "get_field_advisor"]


def get_field_advisor() -> FieldAdvisor:
    return build_field_advisor(get_settings())
