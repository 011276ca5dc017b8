"""
Release schedules and release-curve math.

A ReleaseSchedule is the explicit state record of one vesting instance: the
immutable terms fixed at creation plus the three mutable fields (released,
revoked, revoke_time). The curve functions in this module are pure; they read
a schedule and a timestamp and never mutate anything.

Two curves are supported:

- CONTINUOUS: linear between start_time and start_time + duration, floor
  division on integer amounts.
- PERIODIC: stepped; floor((t - start) / period_length) * amount_per_period,
  clamped to the total balance, with the remainder released at the final
  period boundary.

Both curves return 0 before the cliff and the whole balance once the schedule
has ended or been revoked.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Optional

from vestvault.core.config import ZERO_ADDRESS
from vestvault.core.exceptions import InvalidArgumentError


class ReleaseMode(Enum):
    CONTINUOUS = "continuous"
    PERIODIC = "periodic"


@dataclass
class VestingScheduleData:
    """Creation parameters supplied by the sponsor."""

    beneficiary: str
    total_amount: int
    start_time: int
    revoker: str
    refund_destination: str
    cliff_offset: int = 0
    release_mode: ReleaseMode = ReleaseMode.CONTINUOUS
    duration: int = 0
    period_length: int = 0
    amount_per_period: int = 0
    revocable: bool = False
    owner: Optional[str] = None


@dataclass
class ReleaseSchedule:
    beneficiary: str
    total_amount: int
    release_mode: ReleaseMode
    start_time: int
    cliff_offset: int
    duration: int
    period_length: int
    amount_per_period: int
    revocable: bool
    revoker: str
    refund_destination: str
    owner: str
    released: int = 0
    revoked: bool = False
    revoke_time: int = 0

    @property
    def cliff_time(self) -> int:
        return self.start_time + self.cliff_offset

    @property
    def period_count(self) -> int:
        if self.release_mode is not ReleaseMode.PERIODIC:
            return 0
        return self.total_amount // self.amount_per_period

    @property
    def total_duration(self) -> int:
        if self.release_mode is ReleaseMode.PERIODIC:
            return self.period_count * self.period_length
        return self.duration

    @property
    def end_time(self) -> int:
        return self.start_time + self.total_duration

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["release_mode"] = self.release_mode.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReleaseSchedule":
        fields = dict(data)
        fields["release_mode"] = ReleaseMode(fields["release_mode"])
        return cls(**fields)


def _require_identity(value: Optional[str], name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgumentError(f"{name} cannot be empty")
    normalized = value.strip().lower()
    if normalized == ZERO_ADDRESS:
        raise InvalidArgumentError(f"{name} cannot be the zero address")
    return normalized


def _require_int(value: Any, name: str, minimum: int = 0) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgumentError(f"{name} must be an integer")
    if value < minimum:
        raise InvalidArgumentError(f"{name} must be >= {minimum}, got {value}")
    return value


def create_release_schedule(
    data: VestingScheduleData, now: int, creator: str
) -> ReleaseSchedule:
    """
    Validate creation parameters and build the initial schedule record.

    Args:
        data: Sponsor-supplied parameters
        now: Creation timestamp
        creator: Caller creating the schedule; default administrative owner

    Raises:
        InvalidArgumentError: If any construction invariant is violated
    """
    beneficiary = _require_identity(data.beneficiary, "Beneficiary")
    revoker = _require_identity(data.revoker, "Revoker")
    refund_destination = _require_identity(data.refund_destination, "Refund destination")
    owner = _require_identity(data.owner or creator, "Owner")
    if revoker == beneficiary:
        raise InvalidArgumentError("Revoker must be distinct from the beneficiary")
    if owner in (beneficiary, revoker):
        raise InvalidArgumentError("Owner must be distinct from the beneficiary and the revoker")

    total_amount = _require_int(data.total_amount, "Total amount", minimum=1)
    start_time = _require_int(data.start_time, "Start time")
    cliff_offset = _require_int(data.cliff_offset, "Cliff offset")

    if not isinstance(data.release_mode, ReleaseMode):
        raise InvalidArgumentError(f"Unknown release mode {data.release_mode!r}")

    duration = period_length = amount_per_period = 0
    if data.release_mode is ReleaseMode.CONTINUOUS:
        duration = _require_int(data.duration, "Duration", minimum=1)
    else:
        period_length = _require_int(data.period_length, "Period length", minimum=1)
        amount_per_period = _require_int(data.amount_per_period, "Amount per period", minimum=1)
        if amount_per_period > total_amount:
            raise InvalidArgumentError(
                f"Amount per period exceeds total amount ({amount_per_period} > {total_amount})"
            )

    schedule = ReleaseSchedule(
        beneficiary=beneficiary,
        total_amount=total_amount,
        release_mode=data.release_mode,
        start_time=start_time,
        cliff_offset=cliff_offset,
        duration=duration,
        period_length=period_length,
        amount_per_period=amount_per_period,
        revocable=bool(data.revocable),
        revoker=revoker,
        refund_destination=refund_destination,
        owner=owner,
    )

    if schedule.cliff_offset > schedule.total_duration:
        raise InvalidArgumentError(
            f"Cliff offset {cliff_offset} is longer than the schedule ({schedule.total_duration})"
        )
    if schedule.cliff_time <= now:
        raise InvalidArgumentError(
            f"Start time plus cliff ({schedule.cliff_time}) must be after creation time ({now})"
        )
    return schedule


def vested_amount(schedule: ReleaseSchedule, total_balance: int, timestamp: int) -> int:
    """
    Cumulative amount vested at ``timestamp``.

    ``total_balance`` is everything the schedule ever held that is still
    attributable to it: the remaining balance (locked or not) plus what was
    already released.
    """
    if timestamp < schedule.cliff_time:
        return 0
    if schedule.revoked or timestamp >= schedule.end_time:
        return total_balance

    # cliff_time >= start_time, so timestamp >= start_time from here on
    if schedule.release_mode is ReleaseMode.PERIODIC:
        periods_elapsed = (timestamp - schedule.start_time) // schedule.period_length
        return min(periods_elapsed * schedule.amount_per_period, total_balance)

    return total_balance * (timestamp - schedule.start_time) // schedule.duration


def releasable_amount(schedule: ReleaseSchedule, total_balance: int, timestamp: int) -> int:
    """Vested amount not yet released; never negative."""
    return max(0, vested_amount(schedule, total_balance, timestamp) - schedule.released)
