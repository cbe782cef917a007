"""Tier-based feature limits read from the global ``feature_gates`` settings row."""

import copy
from typing import Any

from shared_services.base_service import BaseService
from shared_services.store import RemoteStore

SETTINGS_TABLE = 'admin_settings'
FEATURE_GATES_KEY = 'feature_gates'

UNLIMITED = -1

LIMIT_CATEGORIES = ('daily_search_limits', 'daily_watch_time_limits', 'favorite_limits')

DEFAULT_LIMITS = {
    'daily_search_limits': {'freebird': 8, 'roadie': 24, 'hero': 100},
    # minutes
    'daily_watch_time_limits': {'freebird': 60, 'roadie': 180, 'hero': 480},
    'favorite_limits': {'freebird': 0, 'roadie': 12, 'hero': UNLIMITED},
}


class FeatureLimits:
    """Per-tier numeric limits for each category. ``-1`` means unlimited."""

    def __init__(self, daily_search_limits: dict, daily_watch_time_limits: dict, favorite_limits: dict):
        self.daily_search_limits = daily_search_limits
        self.daily_watch_time_limits = daily_watch_time_limits
        self.favorite_limits = favorite_limits

    @classmethod
    def defaults(cls) -> 'FeatureLimits':
        return cls(**copy.deepcopy(DEFAULT_LIMITS))

    def limit_for(self, category: str, tier: str | None, default: int = 0) -> int:
        """Look up a tier's limit; missing tiers and zero-like values fall back to ``default``."""
        if category not in LIMIT_CATEGORIES:
            raise KeyError(f'Unknown limit category: {category}')
        if not tier:
            return default
        return getattr(self, category).get(tier) or default

    def to_dict(self) -> dict[str, dict[str, int]]:
        return {category: dict(getattr(self, category)) for category in LIMIT_CATEGORIES}

    def __eq__(self, other: object) -> bool:
        return isinstance(other, FeatureLimits) and self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f'FeatureLimits({self.to_dict()!r})'


class FeatureLimitsService(BaseService):
    """Resolves FeatureLimits from the settings row, falling back to DEFAULT_LIMITS."""

    def __init__(self, store: RemoteStore):
        super().__init__(store)

    def get_feature_limits(self) -> FeatureLimits:
        """
        Resolve limits for every category.

        Each category uses the remote mapping when present and the default
        otherwise. A failed fetch or a missing row falls back to the
        defaults for all categories at once.
        """
        result = self.store.find_one(SETTINGS_TABLE, {'setting_key': FEATURE_GATES_KEY}, columns='setting_value')

        if result.is_error:
            self.logger.error(f'Error fetching daily limits: {result.error}')
            return FeatureLimits.defaults()

        if result.is_not_found:
            self.logger.warning(f'No {FEATURE_GATES_KEY} row in {SETTINGS_TABLE}, using default limits')
            return FeatureLimits.defaults()

        setting_value = (result.data or {}).get('setting_value')
        if not isinstance(setting_value, dict) or not setting_value:
            self.logger.warning(f'{FEATURE_GATES_KEY} has no setting_value, using default limits')
            return FeatureLimits.defaults()

        return FeatureLimits(**{category: self._resolve(setting_value, category) for category in LIMIT_CATEGORIES})

    def _resolve(self, setting_value: dict[str, Any], category: str) -> dict[str, int]:
        remote = setting_value.get(category)
        if isinstance(remote, dict) and remote:
            return dict(remote)
        self.logger.debug(f'{category} missing from {FEATURE_GATES_KEY}, using default')
        return copy.deepcopy(DEFAULT_LIMITS[category])
