import asyncio
import logging

from .database import ReferenceStore
from .errors import StoreUnavailable

logger = logging.getLogger(__name__)


async def cleanup_expired(store: ReferenceStore, interval: int = 300):
    """
    Background task that periodically purges expired file references
    from the store.

    Runs every ``interval`` seconds (default: 5 minutes). A failing store
    is logged and retried on the next tick.
    """
    while True:
        try:
            await asyncio.sleep(interval)

            purged = await store.purge_expired()
            if purged:
                logger.info("[Cleanup] Purged %d expired file references", purged)

        except asyncio.CancelledError:
            raise
        except StoreUnavailable:
            logger.warning("[Cleanup] Store unavailable, retrying in %ss", interval)
            continue
        except Exception as e:
            logger.exception("[Cleanup] Error in cleanup task: %s", e)
            continue
