"""Dramatiq background tasks package."""

import dramatiq
from dramatiq.brokers.redis import RedisBroker

from fleetplan.config import settings
from fleetplan.logging import setup_logging

# Configure logging before anything else
setup_logging()

# Configure Redis broker
redis_broker = RedisBroker(url=settings.redis_url)  # type: ignore[no-untyped-call]
dramatiq.set_broker(redis_broker)

# Import all tasks to register them with Dramatiq (must be after broker setup)
# These imports are required for task discovery, not for re-export
import fleetplan.tasks.recurring.generate_due  # noqa: E402, F401
import fleetplan.tasks.webhooks.deliver  # noqa: E402, F401
