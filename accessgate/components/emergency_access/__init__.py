"""
Emergency access component - single-use tokens that bypass maintenance mode.
"""

from .component import run, run_issue, run_redeem, run_stats
from .models import (
    EmergencyAccessOutput,
    IssueTokenInput,
    RedeemTokenInput,
    TokenStats,
    TokenStatsInput,
)
from .ports import AllowlistPort, TimePort

__all__ = [
    # Entry points
    "run",
    "run_issue",
    "run_redeem",
    "run_stats",
    # Models
    "EmergencyAccessOutput",
    "IssueTokenInput",
    "RedeemTokenInput",
    "TokenStats",
    "TokenStatsInput",
    # Ports
    "AllowlistPort",
    "TimePort",
]
