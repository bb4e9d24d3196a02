from cardswap.db.database import get_session, init_db
from cardswap.db.operations import (
    card_to_model,
    count_unread,
    create_profile,
    delete_match_records,
    delete_profile,
    get_cards,
    get_counterpart_holdings,
    get_holdings,
    get_match_record,
    get_match_records,
    get_profile,
    get_profiles,
    insert_match_records,
    list_all_profiles_with_holdings,
    list_match_records,
    list_profile_ids,
    mark_all_matches_read,
    mark_match_read,
    replace_holdings,
    require_profile,
    touch_last_match_check,
    update_match_record,
    upsert_cards,
)

__all__ = [
    "card_to_model",
    "count_unread",
    "create_profile",
    "delete_match_records",
    "delete_profile",
    "get_cards",
    "get_counterpart_holdings",
    "get_holdings",
    "get_match_record",
    "get_match_records",
    "get_profile",
    "get_profiles",
    "get_session",
    "init_db",
    "insert_match_records",
    "list_all_profiles_with_holdings",
    "list_match_records",
    "list_profile_ids",
    "mark_all_matches_read",
    "mark_match_read",
    "replace_holdings",
    "require_profile",
    "touch_last_match_check",
    "update_match_record",
    "upsert_cards",
]
