"""
Quota header rendering.

draft-8 follows draft-ietf-httpapi-ratelimit-headers-08: one list member per
tier in `RateLimit-Policy` and `RateLimit`. draft-6 uses the older
`RateLimit-Limit` / `RateLimit-Remaining` / `RateLimit-Reset` fields and can
only describe one tier, so the most restrictive one is reported.
"""

import math
from typing import Dict, Sequence, Tuple

from .algorithms import Decision
from .policy import HeaderStyle, RatePolicy

Evaluation = Tuple[RatePolicy, Decision]


def _seconds(value: float) -> int:
    return max(0, math.ceil(value))


def _window(policy: RatePolicy) -> int:
    return max(1, math.ceil(policy.window_seconds))


def retry_after_header(decision: Decision, now: float) -> str:
    """Whole seconds to wait, never less than one."""
    retry_after = decision.retry_after
    if retry_after is None:
        retry_after = decision.reset_at - now
    return str(max(1, math.ceil(retry_after)))


def build_quota_headers(evaluated: Sequence[Evaluation], now: float) -> Dict[str, str]:
    """Render quota headers for the tiers a request was evaluated against."""
    headers: Dict[str, str] = {}

    draft8 = [(p, d) for p, d in evaluated if p.header_style == HeaderStyle.DRAFT_8]
    if draft8:
        headers["RateLimit-Policy"] = ", ".join(
            f'"{policy.name}";q={policy.max_requests};w={_window(policy)}'
            for policy, _ in draft8
        )
        headers["RateLimit"] = ", ".join(
            f'"{policy.name}";r={decision.remaining};t={_seconds(decision.reset_at - now)}'
            for policy, decision in draft8
        )

    draft6 = [(p, d) for p, d in evaluated if p.header_style == HeaderStyle.DRAFT_6]
    if draft6:
        # Later tiers are narrower; prefer them on ties
        policy, decision = min(reversed(draft6), key=lambda item: item[1].remaining)
        headers["RateLimit-Limit"] = str(policy.max_requests)
        headers["RateLimit-Remaining"] = str(decision.remaining)
        headers["RateLimit-Reset"] = str(_seconds(decision.reset_at - now))

    return headers


def build_rejection_headers(evaluated: Sequence[Evaluation], now: float) -> Dict[str, str]:
    """Quota headers plus Retry-After from the rejecting (last) tier."""
    headers = build_quota_headers(evaluated, now)
    _, rejected = evaluated[-1]
    headers["Retry-After"] = retry_after_header(rejected, now)
    return headers
