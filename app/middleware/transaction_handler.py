from sqlalchemy.orm import Session
from functools import wraps
import asyncio
import logging

logger = logging.getLogger(__name__)

_IN_TRANSACTION = "transactional_active"


def transactional(func):
    """
    Wraps a service method in a single commit/rollback unit.

    The decorated method's instance must expose the session as ``self.db``.
    Calls made while a transactional method of the same session is already
    running join the outer unit: only the outermost call commits.
    """

    @wraps(func)
    async def async_wrapper(self, *args, **kwargs):
        db: Session = self.db
        if db.info.get(_IN_TRANSACTION):
            return await func(self, *args, **kwargs)

        db.info[_IN_TRANSACTION] = True
        try:
            result = await func(self, *args, **kwargs)
            db.commit()
            logger.debug(f"Transaction committed in {func.__name__}")
            return result
        except Exception as e:
            db.rollback()
            logger.error(f"Transaction failed in {func.__name__}: {e}", exc_info=True)
            raise
        finally:
            db.info[_IN_TRANSACTION] = False

    @wraps(func)
    def sync_wrapper(self, *args, **kwargs):
        db: Session = self.db
        if db.info.get(_IN_TRANSACTION):
            return func(self, *args, **kwargs)

        db.info[_IN_TRANSACTION] = True
        try:
            result = func(self, *args, **kwargs)
            db.commit()
            logger.debug(f"Transaction committed in {func.__name__}")
            return result
        except Exception as e:
            db.rollback()
            logger.error(f"Transaction failed in {func.__name__}: {e}", exc_info=True)
            raise
        finally:
            db.info[_IN_TRANSACTION] = False

    if asyncio.iscoroutinefunction(func):
        return async_wrapper
    else:
        return sync_wrapper
