from slowapi import Limiter
from slowapi.util import get_remote_address
from eventhub.core.config import settings

# One limiter shared by the app state and every rate-limited route
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)
