"""Protocol fee calculator: buy, sell, graduation and referral splits from basis points.

Every fee figure in the service is computed here. Amounts are raw base
units (wei-scale integers); all divisions are integer floor divisions.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

BPS_DENOMINATOR = 10_000


class FeeScheduleError(ValueError):
    pass


class FeeInputError(ValueError):
    pass


class TradeSide(str, Enum):
    BUY = "buy"
    SELL = "sell"


@dataclass(frozen=True)
class FeeSchedule:
    """Fixed basis-point schedule mirrored from the launchpad contracts."""

    buy_total_bps: int = 100  # 1.0%
    buy_user_bps: int = 50  # 0.5% to the user airdrop pool
    buy_treasury_bps: int = 50
    sell_total_bps: int = 110  # 1.1%
    sell_user_bps: int = 50
    sell_treasury_bps: int = 60
    graduation_fee_bps: int = 1000  # 10% of liquidity at graduation
    referral_bps: int = 25  # carved out of the treasury share

    def __post_init__(self) -> None:
        for name, value in self.__dict__.items():
            if isinstance(value, bool) or not isinstance(value, int):
                raise FeeScheduleError(f"{name} must be an integer, got {value!r}")
            if not 0 <= value <= BPS_DENOMINATOR:
                raise FeeScheduleError(f"{name} must be within 0..{BPS_DENOMINATOR}, got {value}")

        if self.buy_user_bps + self.buy_treasury_bps != self.buy_total_bps:
            raise FeeScheduleError(
                f"buy split {self.buy_user_bps}+{self.buy_treasury_bps} "
                f"!= total {self.buy_total_bps}"
            )
        if self.sell_user_bps + self.sell_treasury_bps != self.sell_total_bps:
            raise FeeScheduleError(
                f"sell split {self.sell_user_bps}+{self.sell_treasury_bps} "
                f"!= total {self.sell_total_bps}"
            )

    def as_dict(self) -> dict[str, int]:
        """camelCase mapping used in API payloads (``feeStructure``)."""
        return {
            "buyTotalBps": self.buy_total_bps,
            "buyUserBps": self.buy_user_bps,
            "buyTreasuryBps": self.buy_treasury_bps,
            "sellTotalBps": self.sell_total_bps,
            "sellUserBps": self.sell_user_bps,
            "sellTreasuryBps": self.sell_treasury_bps,
            "graduationFeeBps": self.graduation_fee_bps,
            "referralBps": self.referral_bps,
        }


DEFAULT_FEE_SCHEDULE = FeeSchedule()


@dataclass(frozen=True)
class FeeSplit:
    total_fee: int
    user_fee: int
    treasury_fee: int


def _check_amount(amount: int) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise FeeInputError(f"amount must be an integer, got {amount!r}")
    if amount < 0:
        raise FeeInputError(f"amount must be non-negative, got {amount}")
    return amount


def _bps(amount: int, bps: int) -> int:
    return amount * bps // BPS_DENOMINATOR


def _split(amount: int, total_bps: int, user_bps: int) -> FeeSplit:
    amount = _check_amount(amount)
    total = _bps(amount, total_bps)
    user = _bps(amount, user_bps)
    # Treasury is total - user, not an independent floor of treasury_bps: the
    # rounding remainder stays with the treasury so total == user + treasury
    # (e.g. 150 wei on buy: treasury 1, where an independent floor gives 0).
    # See "Fee rounding" in DESIGN.md.
    return FeeSplit(total_fee=total, user_fee=user, treasury_fee=total - user)


def compute_buy_fee(amount: int, schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE) -> FeeSplit:
    return _split(amount, schedule.buy_total_bps, schedule.buy_user_bps)


def compute_sell_fee(amount: int, schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE) -> FeeSplit:
    return _split(amount, schedule.sell_total_bps, schedule.sell_user_bps)


def compute_fee(
    side: TradeSide, amount: int, schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE
) -> FeeSplit:
    if side is TradeSide.BUY:
        return compute_buy_fee(amount, schedule)
    return compute_sell_fee(amount, schedule)


def compute_graduation_fee(
    liquidity: int, schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE
) -> int:
    return _bps(_check_amount(liquidity), schedule.graduation_fee_bps)


def compute_referral_fee(
    treasury_fee: int, schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE
) -> int:
    """Referral payout carved out of a treasury fee.

    The contracts scale by the *buy* treasury share for both sides.
    """
    treasury_fee = _check_amount(treasury_fee)
    if schedule.buy_treasury_bps == 0:
        return 0
    fee = treasury_fee * (schedule.referral_bps * 2) // schedule.buy_treasury_bps
    return min(fee, treasury_fee)


def split_referral(
    split: FeeSplit,
    has_referrer: bool,
    schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE,
) -> tuple[int, int]:
    """Return (treasury_net, referral_fee) for a trade's fee split."""
    if not has_referrer:
        return split.treasury_fee, 0
    referral = compute_referral_fee(split.treasury_fee, schedule)
    return split.treasury_fee - referral, referral
