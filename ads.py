"""
Ad gate and ads configuration.

The gate only records that a user watched the ad for a chapter. It never
denies access: missing fields and errors are reported as a bypass, and the
chapter endpoints serve content whether or not a completion was recorded.
Completions live in process memory and are lost on restart.
"""
import copy
from typing import Any, Dict, Optional

import database
import users
from database import Store, serialize
from logging_setup import get_logger

log = get_logger("rovel.ads")

DEFAULT_ADS_CONFIG: Dict[str, Any] = {
    "enabled": True,
    "adUnits": {
        "BANNER": "ca-app-pub-3940256099942544/9257395921",
        "INTERSTITIAL": "ca-app-pub-3940256099942544/1033173712",
        "REWARDED": "ca-app-pub-3940256099942544/5224354917",
        "REWARDED_INTERSTITIAL": "ca-app-pub-3940256099942544/5354046379",
    },
    "adFrequency": {
        "TAB_SWITCH": 0.3,
        "CHAPTER_UNLOCK": 1.0,
    },
}


def completion_key(user_id: str, work_key: str, chapter_id: str) -> str:
    return f"{user_id}-{work_key}-{chapter_id}"


class AdGate:
    def __init__(self, store: Store):
        self.store = store
        self.completions: Dict[str, bool] = {}

    def record_completion(self, user_id: Optional[str], work_key: Optional[str], chapter_id: Optional[str]) -> Dict[str, Any]:
        if not user_id or not work_key or not chapter_id:
            log.info("Missing required fields for ad completion")
            return {"success": True, "message": "Ad marked as completed (bypassed)"}
        try:
            self.completions[completion_key(user_id, work_key, chapter_id)] = True
            users.touch(self.store, user_id)
        except Exception as e:
            log.error("Error in ad completion: %s", e)
            return {"success": True, "message": "Ad verification bypassed due to error"}
        return {"success": True, "message": "Ad marked as completed"}

    def check_completion(self, user_id: str, work_key: str, chapter_id: str) -> bool:
        key = completion_key(user_id, work_key, chapter_id)
        if key in self.completions:
            return True
        log.info("Ad not completed for %s, allowing access", key)
        return False


# -------------------- Config --------------------

def get_config(store: Store) -> Dict[str, Any]:
    doc = store.find_one(database.ADS_CONFIG, {})
    if doc:
        return serialize(doc)
    return copy.deepcopy(DEFAULT_ADS_CONFIG)


def update_config(
    store: Store,
    enabled: Optional[bool] = None,
    ad_units: Optional[Dict[str, str]] = None,
    ad_frequency: Optional[Dict[str, float]] = None,
) -> Dict[str, Any]:
    """Merge the given fields into the stored config (or the defaults on first write) and save it."""
    current = get_config(store)
    updated = dict(current)
    if enabled is not None:
        updated["enabled"] = enabled
    if ad_units:
        updated["adUnits"] = {**current.get("adUnits", {}), **ad_units}
    if ad_frequency:
        updated["adFrequency"] = {**current.get("adFrequency", {}), **ad_frequency}
    store.upsert(database.ADS_CONFIG, {}, updated)
    log.info("Ads config updated (enabled=%s)", updated.get("enabled"))
    return updated
