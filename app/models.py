from datetime import datetime

from sqlalchemy import Column, DateTime, Index, Integer, String, Text

from app.db import Base


class WorkflowTemplateRecord(Base):
    __tablename__ = "workflow_templates"
    __table_args__ = (Index("ix_workflow_templates_change_key", "type_of_change", "length_of_change"),)

    id = Column(String(64), primary_key=True)
    form_no = Column(Integer, nullable=False, index=True)
    form_name = Column(String(255), nullable=False)
    type_of_change = Column(String(255), default="", nullable=False)
    length_of_change = Column(String(64), default="", nullable=False)
    # Whole FormTemplate tree (parts -> items -> attachments/actions) as JSON.
    payload_json = Column(Text, default="{}", nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class MocRequestRecord(Base):
    __tablename__ = "moc_requests"

    id = Column(Integer, primary_key=True, index=True)
    moc_title = Column(String(255), nullable=False)
    status = Column(String(32), default="Submitted", nullable=False, index=True)
    priority_id = Column(String(32), default="", nullable=False)
    template_id = Column(String(64), default="", nullable=False, index=True)
    risk_before_code = Column(String(8), default="", nullable=False)
    risk_after_code = Column(String(8), default="", nullable=False)
    form_json = Column(Text, default="{}", nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
