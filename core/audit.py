import logging
from typing import Any

from django.contrib.auth.models import AbstractBaseUser

from core.models import AuditLog

logger = logging.getLogger(__name__)


def log_event(
    user: AbstractBaseUser | None,
    action: str,
    model: str,
    object_id: str,
    payload: dict[str, Any] | None = None,
) -> AuditLog:
    actor = user if getattr(user, "is_authenticated", False) else None
    entry = AuditLog.objects.create(
        user=actor,
        action=action,
        model=model,
        object_id=str(object_id),
        payload=payload or {},
    )
    logger.info(
        "audit action=%s model=%s object_id=%s user=%s",
        action,
        model,
        entry.object_id,
        getattr(actor, "username", "-"),
    )
    return entry
