# webhook_relay/webhooks/router.py
from fastapi import APIRouter

webhook_router = APIRouter()


# Import handlers inside a function to avoid circular imports
def register_handlers():
    from webhook_relay.webhooks import ingest_handler
    webhook_router.include_router(ingest_handler.router)


register_handlers()
