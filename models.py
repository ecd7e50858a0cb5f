from dataclasses import dataclass, asdict
from typing import Optional


class SlotSearchError(Exception):
    """Base class for every failure surfaced by the slot search."""


class UpstreamError(SlotSearchError, ConnectionError):
    """The RPC endpoint could not answer (transport, decoding or protocol failure)."""


class RpcError(UpstreamError):
    """The endpoint answered with a JSON-RPC error object."""

    def __init__(self, method, code, message):
        super().__init__(f"{method} failed with RPC error {code}: {message}")
        self.method = method
        self.code = code
        self.message = message


class SlotNotFoundError(SlotSearchError, LookupError):
    """No slot at or before the target timestamp could be located."""


class InvalidTimestampError(SlotSearchError, ValueError):
    """The target timestamp is unusable (e.g. later than the current time)."""


@dataclass(frozen=True)
class Candidate:
    slot: int
    time: int
    target: int

    @property
    def diff(self) -> int:
        # Negative: block is before the target; positive: after it.
        return self.time - self.target


@dataclass
class BlockMetadata:
    blockhash: str
    parent_slot: int
    block_time: Optional[int] = None
    block_height: Optional[int] = None

    @classmethod
    def from_rpc(cls, block_data: dict) -> "BlockMetadata":
        return cls(
            blockhash=block_data.get("blockhash") or "",
            parent_slot=int(block_data.get("parentSlot") or 0),
            block_time=block_data.get("blockTime"),
            block_height=block_data.get("blockHeight"),
        )

    def to_dict(self):
        return asdict(self)
