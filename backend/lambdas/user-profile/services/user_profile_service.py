"""UserProfileService - Profile lifecycle, plan-derived values and daily search usage."""

from collections.abc import Callable
from datetime import UTC, date, datetime
from typing import Any

from shared_services.base_service import BaseService
from shared_services.feature_limits_service import UNLIMITED, FeatureLimits, FeatureLimitsService
from shared_services.store import RemoteStore, StoreResult

PROFILES_TABLE = 'user_profiles'

INCREMENT_SEARCH_PROCEDURE = 'increment_search_usage'
RESET_SEARCHES_PROCEDURE = 'reset_daily_searches'

DEFAULT_TIER = 'freebird'
DEFAULT_WATCH_TIME_MINUTES = 60


def _utc_today() -> date:
    return datetime.now(UTC).date()


def _as_date(value: Any) -> date | None:
    """Date part of a date, datetime or ISO-8601 string; None when unparseable."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None


class ProfileState:
    """What the service currently holds for its identity."""

    def __init__(self):
        self.user_id: str | None = None
        self.profile: dict[str, Any] | None = None
        self.loading = False
        self.limits: FeatureLimits | None = None


class UserProfileService(BaseService):
    """
    Holds one user's profile and the global feature limits, and derives plan values from them.

    Dependencies are injected via constructor for testability:
      - store: remote store adapter
      - limits_service: resolver for the feature_gates limits
      - identity_provider: returns the signed-in user id, or None
      - clock: returns today's date for the daily reset check

    Mutations never raise for remote failures. They log and return the
    StoreResult so the caller can decide what to do with it.
    """

    def __init__(
        self,
        store: RemoteStore,
        limits_service: FeatureLimitsService,
        identity_provider: Callable[[], str | None],
        clock: Callable[[], date] | None = None,
    ):
        super().__init__(store)
        self.limits_service = limits_service
        self.identity_provider = identity_provider
        self.clock = clock or _utc_today
        self._state = ProfileState()
        self._reset_triggered_for: Any = None

    @property
    def state(self) -> ProfileState:
        return self._state

    @property
    def profile(self) -> dict[str, Any] | None:
        return self._state.profile

    @property
    def loading(self) -> bool:
        return self._state.loading

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_limits(self) -> FeatureLimits:
        self._state.limits = self.limits_service.get_feature_limits()
        return self._state.limits

    def sync_identity(self) -> StoreResult | None:
        """Align the held profile with whatever the identity provider reports now."""
        return self.on_identity_change(self.identity_provider())

    def on_identity_change(self, user_id: str | None) -> StoreResult | None:
        if not user_id:
            self._state.user_id = None
            self._state.profile = None
            return None
        return self.fetch_user_profile(user_id)

    def fetch_user_profile(self, user_id: str) -> StoreResult:
        """
        Fetch the profile row for ``user_id`` and hold it on success.

        On failure the previously held profile is left untouched.
        """
        if not user_id:
            return StoreResult.not_found(PROFILES_TABLE)

        self._state.loading = True
        try:
            result = self.store.find_one(PROFILES_TABLE, {'id': user_id})
        finally:
            self._state.loading = False

        if result.is_error:
            self.logger.error(f'Profile fetch error: {result.error}', extra={'user_id': user_id})
            return result
        if result.is_not_found:
            self.logger.warning('Profile not found', extra={'user_id': user_id})
            return result

        self._state.user_id = user_id
        self._state.profile = result.data
        self.logger.info(
            f'Profile loaded: {result.data.get("email")} '
            f'Plan: {result.data.get("subscription_tier")} Status: {result.data.get("subscription_status")}',
            extra={'user_id': user_id},
        )
        self._check_daily_reset()
        return result

    def refresh_profile(self) -> StoreResult | None:
        profile_id = (self._state.profile or {}).get('id')
        if not profile_id:
            return None
        return self.fetch_user_profile(profile_id)

    def _check_daily_reset(self) -> None:
        raw = (self._state.profile or {}).get('last_search_reset')
        if not raw:
            return

        last_reset = _as_date(raw)
        if last_reset is None:
            self.logger.warning(f'Unparseable last_search_reset: {raw!r}')
            return
        if last_reset == self.clock():
            return
        # The refresh after a reset reloads the profile; never reset twice for the same stale value
        if raw == self._reset_triggered_for:
            return

        self._reset_triggered_for = raw
        self.logger.info(f'Daily search counter is stale (last reset {last_reset}), resetting')
        self.reset_daily_search_count()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def increment_daily_search_count(self) -> StoreResult:
        user_id = self.identity_provider()
        if not user_id:
            return StoreResult.not_found(PROFILES_TABLE)

        result = self.store.rpc(INCREMENT_SEARCH_PROCEDURE, {'user_id_param': user_id})
        if result.is_ok:
            self.refresh_profile()
        else:
            self.logger.error(f'Failed to increment search count: {result.error}', extra={'user_id': user_id})
        return result

    def reset_daily_search_count(self) -> StoreResult:
        user_id = self.identity_provider()
        if not user_id:
            return StoreResult.not_found(PROFILES_TABLE)

        result = self.store.rpc(RESET_SEARCHES_PROCEDURE)
        if result.is_ok:
            self.refresh_profile()
        else:
            self.logger.error(f'Failed to reset search count: {result.error}', extra={'user_id': user_id})
        return result

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def tier(self) -> str | None:
        return (self._state.profile or {}).get('subscription_tier')

    @property
    def status(self) -> str | None:
        return (self._state.profile or {}).get('subscription_status')

    @property
    def is_premium(self) -> bool:
        # TODO: confirm with billing which tier counts as premium; no tier is named "premium" today
        return self.tier == 'premium'

    @property
    def has_plan_access(self) -> bool:
        return bool(self.tier) and self.status == 'active'

    @property
    def plan_type(self) -> str:
        return self.tier or DEFAULT_TIER

    @property
    def plan_status(self) -> str | None:
        return self.status or None

    @property
    def can_search(self) -> bool:
        return self.tier != 'freebird' and self.status == 'active'

    @property
    def user_name(self) -> str:
        profile = self._state.profile or {}
        if profile.get('full_name'):
            return profile['full_name']
        if profile.get('email'):
            return profile['email'].split('@')[0]
        return 'User'

    @property
    def user_email(self) -> str | None:
        return (self._state.profile or {}).get('email')

    @property
    def daily_searches_used(self) -> int:
        return (self._state.profile or {}).get('daily_searches_used') or 0

    @property
    def search_limit(self) -> int:
        return self.get_daily_search_limit()

    def _limit(self, category: str, default: int) -> int:
        if self._state.limits is None or not self.tier:
            return default
        return self._state.limits.limit_for(category, self.tier, default)

    def get_daily_search_limit(self) -> int:
        return self._limit('daily_search_limits', 0)

    def get_daily_watch_time_limit(self) -> int:
        return self._limit('daily_watch_time_limits', DEFAULT_WATCH_TIME_MINUTES)

    def get_favorite_limit(self) -> int:
        return self._limit('favorite_limits', 0)

    def check_daily_search_limit(self) -> bool:
        limit = self.get_daily_search_limit()
        used = self.daily_searches_used
        allowed = limit == UNLIMITED or used < limit
        self.logger.debug(
            f'check_daily_search_limit tier={self.tier} limit={limit} used={used} allowed={allowed}',
            extra={'user_id': self._state.user_id},
        )
        return allowed

    @property
    def remaining_searches(self) -> int | None:
        """Searches left today; None when the tier is unlimited."""
        limit = self.get_daily_search_limit()
        if limit == UNLIMITED:
            return None
        return max(0, limit - self.daily_searches_used)

    def snapshot(self) -> dict[str, Any]:
        """Everything a client needs to render plan state, as a JSON-ready dict."""
        return {
            'profile': self._state.profile,
            'loading': self._state.loading,
            'isPremium': self.is_premium,
            'hasPlanAccess': self.has_plan_access,
            'planType': self.plan_type,
            'planStatus': self.plan_status,
            'canSearch': self.can_search,
            'userName': self.user_name,
            'userEmail': self.user_email,
            'dailySearchesUsed': self.daily_searches_used,
            'searchLimit': self.search_limit,
            'remainingSearches': self.remaining_searches,
            'withinDailySearchLimit': self.check_daily_search_limit(),
            'dailyWatchTimeLimit': self.get_daily_watch_time_limit(),
            'favoriteLimit': self.get_favorite_limit(),
            'dailyLimits': self._state.limits.to_dict() if self._state.limits else None,
        }
