"""
Faucet Cooldown Tracking
Pure helpers for deciding whether a user may claim from the faucet again
"""

import datetime
from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class CooldownStatus:
    eligible: bool
    remaining_seconds: float


def parse_timestamp(value: Union[str, datetime.datetime, None]) -> Optional[datetime.datetime]:
    """Parse a stored ISO-8601 timestamp into an aware UTC datetime"""
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.datetime.fromisoformat(value.replace('Z', '+00:00'))
    if value.tzinfo is None:
        value = value.replace(tzinfo=datetime.timezone.utc)
    return value


def cooldown_status(
    last_claim: Union[str, datetime.datetime, None],
    cooldown_seconds: float,
    now: Optional[datetime.datetime] = None
) -> CooldownStatus:
    """
    Compute faucet eligibility

    Args:
        last_claim: Time of the last successful claim (None if never claimed)
        cooldown_seconds: Configured cooldown duration
        now: Current time (defaults to the current UTC time)

    Returns:
        CooldownStatus with eligibility and the seconds left to wait
    """
    last = parse_timestamp(last_claim)
    if last is None:
        return CooldownStatus(eligible=True, remaining_seconds=0)

    now = parse_timestamp(now) or datetime.datetime.now(datetime.timezone.utc)
    elapsed = (now - last).total_seconds()
    remaining = max(0.0, cooldown_seconds - elapsed)
    return CooldownStatus(eligible=elapsed >= cooldown_seconds, remaining_seconds=remaining)


def format_duration(seconds: float) -> str:
    """Format seconds as 'Hh Mm'"""
    seconds = int(seconds)
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    return f"{hours}h {minutes}m"
