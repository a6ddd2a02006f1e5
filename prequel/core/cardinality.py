import logging
from typing import Sequence

from prequel.core.engine import MutationResult
from prequel.core.errors import CardinalityError, NotFound, Unprocessable
from prequel.core.query.format import format_result

logger = logging.getLogger(__name__)


def one_result_or_error(rows: Sequence, prequel_model):
    """
    Exactly one formatted record out of `rows`.

    Raises:
        NotFound: no rows matched.
        CardinalityError: more than one row matched; the filter was not
            selective enough and the caller has to fix it.
    """
    if not rows:
        raise NotFound(f"{prequel_model.name} not found")

    if len(rows) > 1:
        logger.error(
            f"{prequel_model.name}: expected exactly one match, found {len(rows)}"
        )
        raise CardinalityError(1, len(rows), "matched")

    return format_result(rows[0], prequel_model)


def check_affected(result: MutationResult, expected: int) -> MutationResult:
    """
    Pass `result` through if it affected exactly `expected` rows.

    Fewer is an Unprocessable validation failure, more is a CardinalityError.
    """
    if result.count > expected:
        logger.error(f"Expected {expected} affected row/s, instead affected {result.count}")
        raise CardinalityError(expected, result.count)

    if result.count < expected:
        raise Unprocessable(
            f"Expected {expected} affected row/s, instead affected {result.count}"
        )

    return result
