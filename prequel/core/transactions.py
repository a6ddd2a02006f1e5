import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


async def with_transaction(engine, caller_transaction, body: Callable[[Any], Awaitable]):
    """
    Run `body(transaction)` inside a transaction and return its result.

    A caller-supplied transaction is passed straight to `body` and left alone:
    its owner decides whether it commits. Otherwise a transaction is opened
    on `engine` and terminated exactly once: commit when `body` succeeds,
    rollback when it raises. A failed commit surfaces as the error; a failed
    rollback is logged and the original error re-raised.

    Example:
        result = await with_transaction(engine, settings.get("transaction"), update_rows)
    """
    if caller_transaction is not None:
        return await body(caller_transaction)

    transaction = await engine.transaction()

    try:
        result = await body(transaction)
    except BaseException as error:
        # Also covers cancellation, so the transaction never outlives the call
        try:
            await transaction.rollback()
        except Exception as rollback_error:
            logger.warning(f"Rollback failed after {error!r}: {rollback_error}")
        raise

    await transaction.commit()
    logger.debug("Transaction committed")
    return result
