from .router import router
from .webhooks import webhooks_router

__all__ = ["router", "webhooks_router"]
