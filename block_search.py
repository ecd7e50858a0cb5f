import time

import config
from models import Candidate, InvalidTimestampError, SlotNotFoundError, UpstreamError
from slot_rpc import SolanaRpc
from slot_scans import (
    choose_better,
    debug,
    find_highest_slot_with_timestamp,
    find_nearby_slot_with_timestamp,
    find_slot_before_timestamp,
    warn,
)


def get_slot_by_timestamp(
    rpc,
    target_ts: int,
    *,
    neighbor_probe_width: int = config.NEIGHBOR_PROBE_WIDTH,
    highest_match_scan_budget: int = config.HIGHEST_MATCH_SCAN_BUDGET,
    search_delay: float = config.SEARCH_DELAY,
    scan_delay: float = config.SCAN_DELAY,
    verbose: bool = False,
) -> int:
    """
    Return the latest slot whose block time is ≤ target_ts.

    When several slots share the target time exactly, the highest of them
    is returned.

    Parameters
    ----------
    rpc : SolanaRpc
        Anything exposing get_current_slot() and get_block_time(slot).
    target_ts : int
        Desired moment, Unix seconds.
    neighbor_probe_width : int, optional
        Slots probed on each side of a midpoint that has no block.
    highest_match_scan_budget : int, optional
        Forward probes spent looking for later slots with the same time.
    search_delay, scan_delay : float, optional
        Pauses (seconds) between iterations to stay under rate limits.
    verbose : bool, optional
        Print search progress.

    Returns
    -------
    int
        Slot number.

    Raises
    ------
    UpstreamError
        If the current slot cannot be read.
    SlotNotFoundError
        If no timed slot at or before target_ts can be located.
    """
    scan_kwargs = dict(max_scan=highest_match_scan_budget, delay=scan_delay, verbose=verbose)

    # 1) search window: genesis to the latest finalized slot
    high = rpc.get_current_slot()
    low = 0
    debug(verbose, f"Current slot: {high}")
    debug(verbose, f"Starting binary search for timestamp: {target_ts}")

    best = None

    # 2) binary search on block time
    while low <= high:
        mid = low + (high - low) // 2

        try:
            block_time = rpc.get_block_time(mid)
        except UpstreamError as e:
            warn(f"Error getting block time for slot {mid}: {e}")
            low = mid + 1
        else:
            if block_time is not None:
                debug(verbose, f"Slot {mid} has timestamp {block_time}")
                if block_time == target_ts:
                    return find_highest_slot_with_timestamp(rpc, mid, target_ts, **scan_kwargs)

                best = choose_better(best, Candidate(mid, block_time, target_ts))
                if block_time < target_ts:
                    low = mid + 1
                else:
                    high = mid - 1
            else:
                debug(verbose, f"No timestamp for slot {mid}, trying nearby slots in parallel")
                nearby = find_nearby_slot_with_timestamp(
                    rpc, mid, target_ts, max_offset=neighbor_probe_width, verbose=verbose
                )
                if nearby is None:
                    low = mid + 1
                elif nearby.time == target_ts:
                    return find_highest_slot_with_timestamp(rpc, nearby.slot, target_ts, **scan_kwargs)
                else:
                    best = choose_better(best, nearby)
                    # mid itself has no block, so the window must move past it
                    if nearby.time < target_ts:
                        low = max(nearby.slot + 1, mid + 1)
                    else:
                        high = min(nearby.slot - 1, mid - 1)

        if search_delay:
            time.sleep(search_delay)

    # 3) settle on the best boundary slot seen
    if best is None:
        raise SlotNotFoundError(f"Could not find a block with a timestamp near {target_ts}")

    if best.time == target_ts:
        return find_highest_slot_with_timestamp(rpc, best.slot, target_ts, **scan_kwargs)

    if best.time > target_ts:
        return find_slot_before_timestamp(rpc, best.slot, target_ts, **scan_kwargs)

    return best.slot


def find_slot_at_or_before(target_ts: int, search_config: config.SearchConfig, rpc=None):
    """
    Resolve target_ts to a slot and fetch that slot's block metadata.

    Returns
    -------
    tuple[int, BlockMetadata]

    Raises
    ------
    InvalidTimestampError
        If target_ts is in the future. No request is sent in that case.
    UpstreamError
        If the current slot or the resolved block cannot be fetched.
    SlotNotFoundError
        If the search cannot locate a slot at or before target_ts.
    """
    target_ts = int(target_ts)
    now = int(time.time())
    if target_ts > now:
        raise InvalidTimestampError(f"Target time {target_ts} is in the future (now is {now}).")

    if rpc is None:
        rpc = SolanaRpc.from_config(search_config)

    slot = get_slot_by_timestamp(
        rpc,
        target_ts,
        neighbor_probe_width=search_config.neighbor_probe_width,
        highest_match_scan_budget=search_config.highest_match_scan_budget,
        search_delay=search_config.search_delay,
        scan_delay=search_config.scan_delay,
        verbose=search_config.verbose,
    )
    return slot, rpc.get_block_info(slot)
