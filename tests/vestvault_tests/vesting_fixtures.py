"""
Test helpers for vestvault: a manual clock, well-known addresses and a builder
that wires the reference collaborators (ledger, locking subsystem, account
registry, factory) into one execution environment.
"""

from dataclasses import dataclass

from vestvault.core.contracts import (
    AccountRegistry,
    AssetToken,
    LockedBalances,
    ReleaseMode,
    VestingFactory,
    VestingScheduleData,
)
from vestvault.core.crypto_utils import (
    deterministic_keypair_from_seed,
    sign_message_hex,
    signer_commitment,
)
from vestvault.core.runtime import ExecutionEnvironment

GENESIS = 1_700_000_000
UNLOCKING_PERIOD = 3 * 86400

SPONSOR = "0x" + "5" * 40
BENEFICIARY = "0x" + "b" * 40
REVOKER = "0x" + "c" * 40
REFUND = "0x" + "d" * 40
OWNER = "0x" + "e" * 40
STRANGER = "0x" + "f" * 40
MINTER = "0x" + "a" * 40


class ManualClock:
    """Settable time provider."""

    def __init__(self, now: int = GENESIS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> int:
        self.now += seconds
        return self.now

    def set(self, timestamp: int) -> None:
        self.now = timestamp


@dataclass
class VestingWorld:
    clock: ManualClock
    env: ExecutionEnvironment
    token: AssetToken
    locking: LockedBalances
    accounts: AccountRegistry
    factory: VestingFactory

    def schedule_data(self, **overrides) -> VestingScheduleData:
        params = dict(
            beneficiary=BENEFICIARY,
            total_amount=1000,
            start_time=self.clock.now + 100,
            cliff_offset=0,
            release_mode=ReleaseMode.CONTINUOUS,
            duration=1000,
            revocable=True,
            revoker=REVOKER,
            refund_destination=REFUND,
            owner=OWNER,
        )
        params.update(overrides)
        return VestingScheduleData(**params)

    def create(self, **overrides):
        return self.factory.create_vesting_instance(SPONSOR, self.schedule_data(**overrides))


def build_world(sponsor_funds: int = 10**24) -> VestingWorld:
    clock = ManualClock()
    env = ExecutionEnvironment(time_provider=clock)
    token = AssetToken(name="Vest Asset", symbol="VST", owner=MINTER)
    env.register(token)
    token.mint(MINTER, SPONSOR, sponsor_funds)
    locking = LockedBalances(token, env, unlocking_period_seconds=UNLOCKING_PERIOD)
    accounts = AccountRegistry(env)
    factory = VestingFactory(token, env, locking=locking, signer_registry=accounts)
    return VestingWorld(clock, env, token, locking, accounts, factory)


def signer_proof(seed: bytes, account: str, role: str) -> tuple[str, str]:
    """Return (public_key_hex, signature_hex) for a deterministic signer key."""
    private_key, public_key = deterministic_keypair_from_seed(seed)
    return public_key, sign_message_hex(private_key, signer_commitment(account, role))
