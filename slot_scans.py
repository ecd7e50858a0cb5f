"""
Local searches around a single slot, used by the binary search in
block_search.py once it needs more than one block time to decide.

All three walkers assume block times never decrease as the slot number
grows. The endpoint does not guarantee this and nothing here checks it.
"""
import sys
import time
import concurrent.futures

import config
from models import Candidate, SlotNotFoundError, UpstreamError


def debug(verbose, message):
    if verbose:
        print(f"DEBUG: {message}", file=sys.stderr)


def warn(message):
    print(f"WARNING: {message}", file=sys.stderr)


def choose_better(current: Candidate | None, candidate: Candidate) -> Candidate:
    """
    Tie-break between two timed slots for the same target.

    A slot at or before the target always beats one after it. Among slots on
    the same side, the smaller distance to the target wins. Equal distances
    (slots sharing a block time) go to the slot nearer the target: the higher
    one before it, the lower one after it. The result never depends on the
    order candidates are seen in.
    """
    if current is None:
        return candidate

    current_before = current.diff <= 0
    candidate_before = candidate.diff <= 0
    if candidate_before != current_before:
        return candidate if candidate_before else current
    if abs(candidate.diff) != abs(current.diff):
        return candidate if abs(candidate.diff) < abs(current.diff) else current
    if candidate_before:
        return candidate if candidate.slot > current.slot else current
    return candidate if candidate.slot < current.slot else current


def fetch_block_time(rpc, slot):
    """Block time for ``slot``; per-slot upstream failures are reported and read as absent."""
    try:
        return rpc.get_block_time(slot)
    except UpstreamError as e:
        warn(f"Error getting block time for slot {slot}: {e}")
        return None


def find_nearby_slot_with_timestamp(
    rpc,
    center_slot: int,
    target_ts: int,
    *,
    max_offset: int = config.NEIGHBOR_PROBE_WIDTH,
    verbose: bool = False,
) -> Candidate | None:
    """
    Probe ``center_slot ± 1..max_offset`` in parallel and return the best
    timed neighbour according to ``choose_better``, or None when every probed
    slot is empty or failed.
    """
    slots = []
    for offset in range(1, max_offset + 1):
        if center_slot - offset >= 0:
            slots.append(center_slot - offset)
        slots.append(center_slot + offset)

    if not slots:
        return None

    best = None
    with concurrent.futures.ThreadPoolExecutor(max_workers=len(slots)) as executor:
        future_to_slot = {executor.submit(fetch_block_time, rpc, slot): slot for slot in slots}
        for future in concurrent.futures.as_completed(future_to_slot):
            block_time = future.result()
            if block_time is None:
                continue
            best = choose_better(best, Candidate(future_to_slot[future], block_time, target_ts))

    if best is not None:
        debug(verbose, f"Found timestamp {best.time} at nearby slot {best.slot}")
    return best


def find_highest_slot_with_timestamp(
    rpc,
    start_slot: int,
    target_ts: int,
    *,
    max_scan: int = config.HIGHEST_MATCH_SCAN_BUDGET,
    delay: float = config.SCAN_DELAY,
    verbose: bool = False,
) -> int:
    """
    Several consecutive slots can share one block time. Scan forward from
    ``start_slot`` (known to match ``target_ts`` exactly) and return the
    highest slot still carrying that time, within ``max_scan`` probes.
    """
    debug(verbose, f"Finding highest slot with timestamp {target_ts}, starting from slot {start_slot}")

    highest_slot = start_slot
    slot = start_slot + 1
    for _ in range(max_scan):
        block_time = fetch_block_time(rpc, slot)
        if block_time is not None:
            if block_time == target_ts:
                highest_slot = slot
                debug(verbose, f"Found higher slot {slot} with same timestamp {target_ts}")
            elif block_time > target_ts:
                break
        slot += 1
        if delay:
            time.sleep(delay)

    debug(verbose, f"Highest slot with timestamp {target_ts} is {highest_slot}")
    return highest_slot


def find_slot_before_timestamp(
    rpc,
    start_slot: int,
    target_ts: int,
    *,
    max_scan: int = config.HIGHEST_MATCH_SCAN_BUDGET,
    delay: float = config.SCAN_DELAY,
    verbose: bool = False,
) -> int:
    """
    Walk backward from ``start_slot`` (whose block is after the target) to the
    first timed slot at or before ``target_ts``. An exact hit is handed to
    find_highest_slot_with_timestamp.

    Raises
    ------
    SlotNotFoundError
        If slot 0 is passed without finding such a slot.
    """
    debug(verbose, f"Slot {start_slot} is after the target, walking backward")

    slot = start_slot
    while slot > 0:
        slot -= 1
        block_time = fetch_block_time(rpc, slot)
        if block_time is not None:
            if block_time == target_ts:
                return find_highest_slot_with_timestamp(
                    rpc, slot, target_ts, max_scan=max_scan, delay=delay, verbose=verbose
                )
            if block_time < target_ts:
                return slot
        if delay:
            time.sleep(delay)

    raise SlotNotFoundError(f"No slot with a block time at or before {target_ts} (reached slot 0)")
