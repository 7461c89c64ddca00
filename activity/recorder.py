import logging

from django.db import DatabaseError, transaction

from .models import ActivityLog

logger = logging.getLogger(__name__)


def log_activity(caller, action, description='', metadata=None):
    """Record an activity feed entry. Failures are logged, never raised."""
    try:
        # Savepoint keeps a failed insert from breaking the caller's transaction
        with transaction.atomic():
            ActivityLog.objects.create(
                user_id=caller.user_id,
                school_id=caller.school_id,
                action=action,
                description=description,
                metadata=metadata or {},
            )
    except DatabaseError as e:
        logger.error("Log activity error: %s", e)
