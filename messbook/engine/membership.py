"""
Membership Interval Resolution

Decides whether a member should be charged for a shared cost incurred at a
given time, and applies leave/rejoin transitions to a member's history.

A member is active at T if any of their periods covers T, both ends
included: someone who leaves at X still pays their share of a purchase
dated exactly X.

All functions here are pure. Transitions return a new Member and never
mutate the one they were given.
"""

from typing import Iterable

from messbook.models.ledger import Member, MembershipPeriod


class MembershipError(Exception):
    """Invalid leave/rejoin transition."""
    pass


def is_active_at(member: Member, at: int) -> bool:
    """True if the member was present at time `at`."""
    return any(period.covers(at) for period in member.periods)


def is_current(member: Member) -> bool:
    """True if the member is present now (their latest period is still open)."""
    return member.current_period is not None


def active_members_at(members: Iterable[Member], at: int) -> list[Member]:
    """Members present at time `at`, in roster order."""
    return [member for member in members if is_active_at(member, at)]


def current_members(members: Iterable[Member]) -> list[Member]:
    return [member for member in members if is_current(member)]


def leave(member: Member, at: int) -> Member:
    """
    Close the member's open period at `at`.

    Raises:
        MembershipError: If the member has already left, or `at` is before
            the current period started.
    """
    period = member.current_period
    if period is None:
        raise MembershipError(f"{member.name} is not currently a member")
    if at < period.join:
        raise MembershipError(
            f"{member.name} cannot leave before joining (joined at {period.join})"
        )

    closed = MembershipPeriod(join=period.join, leave=at)
    return member.with_periods([*member.periods[:-1], closed])


def rejoin(member: Member, at: int) -> Member:
    """
    Open a new period for a member who left earlier.

    Raises:
        MembershipError: If the member is still present, or `at` is not
            strictly after their last leave time.
    """
    if is_current(member):
        raise MembershipError(f"{member.name} is already a member")

    last_leave = member.periods[-1].leave
    if at <= last_leave:
        raise MembershipError(
            f"{member.name} must rejoin after their last leave time ({last_leave})"
        )

    return member.with_periods([*member.periods, MembershipPeriod(join=at)])
