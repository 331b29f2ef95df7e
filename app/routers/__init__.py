from app.routers import assistant, moc_requests, risks, workflow_config

__all__ = [
    "assistant",
    "moc_requests",
    "risks",
    "workflow_config",
]
