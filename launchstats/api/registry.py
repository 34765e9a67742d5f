"""Runtime objects shared between the background tracker and the HTTP API.

Populated once at start-up. Everything runs in one asyncio event loop, so
endpoints read these references directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from launchstats.fees import DEFAULT_FEE_SCHEDULE, FeeSchedule

if TYPE_CHECKING:
    from launchstats.bump_tracker import BumpTracker
    from launchstats.chain.multicall import TokenState
    from launchstats.service import LeaderboardService


@dataclass
class ContractAddresses:
    factory: str = ""
    treasury: str = ""
    bonding_curve: str = ""


@dataclass
class AppRegistry:
    service: LeaderboardService | None = None
    bump_tracker: BumpTracker | None = None
    token_states: dict[str, TokenState] = field(default_factory=dict)
    schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE
    contracts: ContractAddresses = field(default_factory=ContractAddresses)
    version: str = "0.1.0"
    started_at: float = 0.0
