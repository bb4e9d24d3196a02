from cardswap.matching.calculator import (
    calculate_matches,
    compute_fresh_matches,
    compute_matches,
    compute_pair_match,
)
from cardswap.matching.index import CardIndex
from cardswap.matching.notifications import (
    NotificationSummary,
    list_matches,
    mark_all_read,
    mark_read,
    refresh_notifications,
    unread_count,
)
from cardswap.matching.reconciler import (
    MatchUpdate,
    ReconciliationPlan,
    apply_plan,
    plan_reconciliation,
    reconcile_matches,
)

__all__ = [
    "CardIndex",
    "MatchUpdate",
    "NotificationSummary",
    "ReconciliationPlan",
    "apply_plan",
    "calculate_matches",
    "compute_fresh_matches",
    "compute_matches",
    "compute_pair_match",
    "list_matches",
    "mark_all_read",
    "mark_read",
    "plan_reconciliation",
    "reconcile_matches",
    "refresh_notifications",
    "unread_count",
]
