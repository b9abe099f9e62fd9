"""
Expose ORM models for Django's auto-discovery while keeping real definitions
under the infrastructure module.
"""

from order_lifecycle.infra.models import *  # noqa: F401,F403
from order_lifecycle.infra.outbox import OutboxEvent  # noqa: F401
