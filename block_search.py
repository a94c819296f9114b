import logging
from datetime import datetime
from typing import Protocol, Union

from errors import FetchError, SearchError

logger = logging.getLogger(__name__)


class LedgerSource(Protocol):
    """Anything that can tell us the head height and the timestamp of a height."""

    def get_head_height(self) -> int:
        ...

    def get_block_timestamp(self, height: int) -> int:
        ...

    def close(self) -> None:
        ...


def normalise_timestamp(target_time: Union[int, datetime]) -> int:
    """Return `target_time` as integer Unix seconds."""
    if isinstance(target_time, datetime):
        if target_time.tzinfo is None:
            raise ValueError("datetime must be timezone‑aware (UTC).")
        return int(target_time.timestamp())
    return int(target_time)


def find_closest_block(
    source: LedgerSource,
    target_time: Union[int, datetime],
) -> int:
    """
    Return the first block whose timestamp is ≥ target_time.

    The search runs over heights 1..head (the genesis block is never returned).
    An exact timestamp match returns immediately; otherwise the loop ends with
    `low` on the right-hand boundary.  That boundary is returned even when the
    block just below it is nearer to the target, and it is head + 1 when the
    target is later than the head block.

    Parameters
    ----------
    source : LedgerSource
        Data source for the network being searched.
    target_time : int | datetime
        Desired moment.  If datetime, must be timezone‑aware (UTC preferred).

    Returns
    -------
    int
        Block number.

    Raises
    ------
    SearchError
        If the head height or any probed block timestamp cannot be fetched,
        or if the source reports a head height below 1.
    ValueError
        If target_time is a naive datetime.
    """

    # 1) normalise target timestamp
    target_ts = normalise_timestamp(target_time)

    # 2) latest block
    try:
        high = source.get_head_height()
    except FetchError as e:
        raise SearchError(f"error getting latest block height: {e}", cause=e) from e

    if high < 1:
        raise SearchError(f"latest block height is {high}, nothing to search")

    low = 1

    # 3) binary search inside [low, high]
    while low <= high:
        mid = (low + high) // 2
        try:
            blk_ts = source.get_block_timestamp(mid)
        except FetchError as e:
            raise SearchError(f"error getting block {mid}: {e}", height=mid, cause=e) from e

        logger.debug("block %d @ %d (target %d, window %d..%d)", mid, blk_ts, target_ts, low, high)

        if blk_ts == target_ts:
            logger.debug("Exact match: block %d @ %d", mid, blk_ts)
            return mid
        elif blk_ts < target_ts:
            low = mid + 1
        else:
            high = mid - 1

    logger.debug("Closest match: block %d", low)
    return low
