"""Order status state machine.

The seller-facing table deliberately omits ``pending -> seller_notified``;
that edge is applied only by the system when sellers are notified.
"""

from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Protocol

from services.orders_service.models.enums import OrderStatus

S = OrderStatus

ALLOWED_TRANSITIONS: Mapping[OrderStatus, frozenset] = MappingProxyType(
    {
        S.PENDING: frozenset({S.CANCELLED}),
        S.SELLER_NOTIFIED: frozenset({S.SELLER_ACCEPTED, S.CANCELLED}),
        S.SELLER_ACCEPTED: frozenset({S.CONFIRMED, S.CANCELLED}),
        S.CONFIRMED: frozenset({S.PROCESSING, S.CANCELLED}),
        S.PROCESSING: frozenset({S.SHIPPED, S.CANCELLED}),
        S.SHIPPED: frozenset({S.DELIVERED, S.CANCELLED}),
        S.DELIVERED: frozenset({S.RETURNED}),
        S.CANCELLED: frozenset(),
        S.REFUNDED: frozenset(),
        S.RETURNED: frozenset(),
    }
)

SYSTEM_TRANSITIONS: Mapping[OrderStatus, frozenset] = MappingProxyType(
    {S.PENDING: frozenset({S.SELLER_NOTIFIED})}
)

TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)


def is_transition_allowed(
    current: OrderStatus, target: OrderStatus, *, system: bool = False
) -> bool:
    if target in ALLOWED_TRANSITIONS.get(current, frozenset()):
        return True
    return system and target in SYSTEM_TRANSITIONS.get(current, frozenset())


def allowed_targets(current: OrderStatus) -> list[OrderStatus]:
    return sorted(ALLOWED_TRANSITIONS.get(current, frozenset()), key=lambda s: s.value)


def is_terminal(status: OrderStatus) -> bool:
    return status in TERMINAL_STATUSES


class HistoryEntry(Protocol):
    previous_status: Optional[OrderStatus]
    status: OrderStatus


def replay_history(history: Iterable[HistoryEntry]) -> list[str]:
    """
    Walk a status history chain and report every broken link.

    Returns an empty list when the chain starts at ``pending`` (the creation
    row has no previous status), each row's previous status equals the prior
    row's status, and every step is an allowed edge.
    """
    problems: list[str] = []
    current: Optional[OrderStatus] = None

    for index, entry in enumerate(history):
        if index == 0:
            if entry.previous_status is None:
                if entry.status != S.PENDING:
                    problems.append(f"#0: chain starts at {entry.status.value}, not pending")
                current = entry.status
                continue
            # Chain captured mid-way; trust its first previous status.
            current = entry.previous_status

        if entry.previous_status != current:
            expected = current.value if current else None
            got = entry.previous_status.value if entry.previous_status else None
            problems.append(f"#{index}: previous status {got} != recorded {expected}")
        elif not is_transition_allowed(current, entry.status, system=True):
            problems.append(
                f"#{index}: {current.value} -> {entry.status.value} is not allowed"
            )
        current = entry.status

    return problems
