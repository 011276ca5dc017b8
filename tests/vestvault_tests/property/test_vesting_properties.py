"""
Property-based tests for release-curve and engine invariants.

Curve properties are checked on the pure functions; engine properties run
random operation sequences (time advances, withdrawals, locks, unlocks and a
revocation) against a fully wired instance and re-check the accounting after
every step:

- released never decreases and never exceeds vested(now)
- locked funds never exceed releasable(now)
- escrow + released + refunded always equals the funded amount

Uses Hypothesis for property-based testing with random inputs.
"""

from hypothesis import given, settings, assume, strategies as st

from vestvault.core.contracts.release_schedule import (
    ReleaseMode,
    VestingScheduleData,
    create_release_schedule,
    releasable_amount,
    vested_amount,
)
from vestvault.core.exceptions import ExternalCallFailureError, InvalidStateError

from vesting_fixtures import (
    BENEFICIARY,
    GENESIS,
    OWNER,
    REFUND,
    REVOKER,
    UNLOCKING_PERIOD,
    build_world,
)


@st.composite
def schedule_params(draw):
    """Valid creation parameters for either release mode."""
    total = draw(st.integers(min_value=1, max_value=10**12))
    start = GENESIS + draw(st.integers(min_value=1, max_value=10_000))
    mode = draw(st.sampled_from(list(ReleaseMode)))
    params = dict(
        beneficiary=BENEFICIARY,
        total_amount=total,
        start_time=start,
        release_mode=mode,
        revocable=True,
        revoker=REVOKER,
        refund_destination=REFUND,
        owner=OWNER,
    )
    if mode is ReleaseMode.CONTINUOUS:
        params["duration"] = draw(st.integers(min_value=1, max_value=10**6))
        span = params["duration"]
    else:
        params["period_length"] = draw(st.integers(min_value=1, max_value=10**5))
        params["amount_per_period"] = draw(st.integers(min_value=1, max_value=total))
        span = (total // params["amount_per_period"]) * params["period_length"]
    params["cliff_offset"] = draw(st.integers(min_value=0, max_value=min(span, 10**6)))
    return params


operations = st.lists(
    st.one_of(
        st.tuples(st.just("advance"), st.integers(min_value=1, max_value=5_000)),
        st.tuples(st.just("withdraw"), st.just(0)),
        st.tuples(st.just("lock"), st.integers(min_value=1, max_value=2_000)),
        st.tuples(st.just("unlock"), st.integers(min_value=1, max_value=2_000)),
        st.tuples(st.just("claim"), st.just(0)),
        st.tuples(st.just("revoke"), st.integers(min_value=0, max_value=5_000)),
    ),
    max_size=25,
)


class TestReleaseCurveProperties:
    """Properties of the pure release curves."""

    @given(params=schedule_params(), offset=st.integers(min_value=0, max_value=10**6))
    @settings(max_examples=200)
    def test_nothing_releasable_before_cliff(self, params, offset):
        schedule = create_release_schedule(VestingScheduleData(**params), GENESIS, OWNER)
        t = GENESIS + offset
        assume(t < schedule.cliff_time)

        assert vested_amount(schedule, schedule.total_amount, t) == 0
        assert releasable_amount(schedule, schedule.total_amount, t) == 0

    @given(params=schedule_params(), extra=st.integers(min_value=0, max_value=10**7))
    @settings(max_examples=200)
    def test_saturates_at_end(self, params, extra):
        schedule = create_release_schedule(VestingScheduleData(**params), GENESIS, OWNER)

        t = schedule.end_time + extra
        assert vested_amount(schedule, schedule.total_amount, t) == schedule.total_amount

    @given(
        params=schedule_params(),
        a=st.integers(min_value=0, max_value=2 * 10**6),
        b=st.integers(min_value=0, max_value=2 * 10**6),
    )
    @settings(max_examples=300)
    def test_vested_is_monotonic_and_bounded(self, params, a, b):
        schedule = create_release_schedule(VestingScheduleData(**params), GENESIS, OWNER)
        t1, t2 = sorted((GENESIS + a, GENESIS + b))

        v1 = vested_amount(schedule, schedule.total_amount, t1)
        v2 = vested_amount(schedule, schedule.total_amount, t2)

        assert 0 <= v1 <= v2 <= schedule.total_amount


class TestEngineProperties:
    """Properties of a funded instance under random operation sequences."""

    @given(ops=operations)
    @settings(max_examples=75, deadline=None)
    def test_accounting_invariants_hold(self, ops):
        world = build_world()
        instance = world.create(total_amount=10_000, duration=10_000)
        funded = 10_000
        last_released = 0

        for op, value in ops:
            try:
                if op == "advance":
                    world.clock.advance(value)
                elif op == "withdraw":
                    instance.withdraw(BENEFICIARY)
                elif op == "lock":
                    instance.lock(BENEFICIARY, value)
                elif op == "unlock":
                    instance.unlock(BENEFICIARY, value)
                elif op == "claim":
                    world.clock.advance(UNLOCKING_PERIOD)
                    instance.withdraw_pending_locked(BENEFICIARY, 0)
                elif op == "revoke":
                    instance.revoke(REVOKER, world.clock.now + value)
            except (InvalidStateError, ExternalCallFailureError):
                pass

            now = world.env.now()
            released = instance.released
            assert released >= last_released
            assert released <= instance.get_vested_amount(now)
            assert instance.get_remaining_locked_balance() <= instance.get_releasable_amount(now)
            assert (
                instance.get_remaining_total_balance()
                + released
                + world.token.balance_of(REFUND)
                == funded
            )
            assert world.token.balance_of(BENEFICIARY) == released
            last_released = released

    @given(
        elapsed=st.integers(min_value=0, max_value=12_000),
        lock_share=st.integers(min_value=1, max_value=100),
    )
    @settings(max_examples=75, deadline=None)
    def test_lock_beyond_releasable_fails(self, elapsed, lock_share):
        world = build_world()
        instance = world.create(total_amount=10_000, duration=10_000)
        world.clock.advance(elapsed)

        available = instance.get_withdrawable_amount()
        try:
            instance.lock(BENEFICIARY, available + lock_share)
        except InvalidStateError:
            pass
        else:
            raise AssertionError("lock beyond the releasable balance succeeded")
        assert instance.get_remaining_locked_balance() == 0

    @given(
        withdraw_at=st.integers(min_value=0, max_value=12_000),
        revoke_at=st.integers(min_value=0, max_value=12_000),
        requested_delta=st.integers(min_value=-5_000, max_value=5_000),
    )
    @settings(max_examples=100, deadline=None)
    def test_refund_is_remaining_minus_releasable(self, withdraw_at, revoke_at, requested_delta):
        world = build_world()
        instance = world.create(total_amount=10_000, duration=10_000, cliff_offset=1_000)
        first, second = sorted((withdraw_at, revoke_at))

        world.clock.advance(first)
        if instance.get_withdrawable_amount() > 0:
            instance.withdraw(BENEFICIARY)
        world.clock.advance(second - first)

        requested = world.clock.now + requested_delta
        effective = max(requested, world.clock.now)
        expected = instance.get_remaining_total_balance() - instance.get_releasable_amount(effective)

        refund = instance.revoke(REVOKER, requested)

        assert refund == expected
        assert instance.revoke_time == effective
        assert world.token.balance_of(REFUND) == refund
