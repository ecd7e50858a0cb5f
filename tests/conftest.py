import random

import pytest

from models import BlockMetadata, UpstreamError


class SimulatedChain:
    """
    In-memory stand-in for SolanaRpc.

    ``times`` maps slot -> block time; slots missing from it have no block.
    Slots listed in ``failing`` raise UpstreamError as a broken transport would.
    """

    def __init__(self, times, current_slot=None, failing=()):
        self.times = dict(times)
        self.current_slot = max(self.times) if current_slot is None else current_slot
        self.failing = set(failing)
        self.fail_current_slot = False
        self.calls = []

    def get_current_slot(self, commitment="finalized"):
        self.calls.append(("getSlot", commitment))
        if self.fail_current_slot:
            raise UpstreamError("getSlot request failed: connection refused")
        return self.current_slot

    def get_block_time(self, slot):
        self.calls.append(("getBlockTime", slot))
        if slot in self.failing:
            raise UpstreamError(f"getBlockTime request failed for slot {slot}")
        return self.times.get(slot)

    def get_block_info(self, slot):
        self.calls.append(("getBlock", slot))
        if slot not in self.times:
            raise UpstreamError(f"No block available for slot {slot}")
        return BlockMetadata(
            blockhash=f"hash-{slot}",
            parent_slot=max(slot - 1, 0),
            block_time=self.times[slot],
            block_height=slot,
        )

    def block_time_calls(self):
        return [arg for method, arg in self.calls if method == "getBlockTime"]

    def latest_at_or_before(self, target_ts):
        slots = [slot for slot, block_time in self.times.items() if block_time <= target_ts]
        return max(slots) if slots else None


def linear_times(last_slot=1000, genesis_time=1000):
    return {slot: genesis_time + slot for slot in range(last_slot + 1)}


@pytest.fixture
def linear_chain():
    """Slots 0..1000, block time = 1000 + slot."""
    return SimulatedChain(linear_times())


@pytest.fixture
def duplicate_chain():
    """Slots 700..705 all report 2000; times strictly increase elsewhere."""
    times = {}
    for slot in range(1001):
        if slot < 700:
            times[slot] = 1300 + slot
        elif slot <= 705:
            times[slot] = 2000
        else:
            times[slot] = 1295 + slot
    return SimulatedChain(times)


@pytest.fixture
def gappy_chain():
    """Two slots per second, roughly a quarter of slots skipped."""
    rng = random.Random(7)
    times = {
        slot: 1000 + slot // 2
        for slot in range(2001)
        if slot in (0, 2000) or rng.random() > 0.25
    }
    return SimulatedChain(times)
