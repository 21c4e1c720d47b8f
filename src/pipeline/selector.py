"""Active-dataset state machine: the global "latest" feed vs the home-scoped "near" feed."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Protocol, Sequence, Tuple

from src.common.errors import NO_HOME_MESSAGE, DataSourceError, NoHomeProfile, StaleResult
from src.common.models import DatasetSource, HomeProfile, HomeStatus, IncidentPoint
from src.pipeline.filters import available_categories, available_years

logger = logging.getLogger(__name__)


class LatestSource(Protocol):
    async def load(self) -> List[IncidentPoint]: ...


class NearSource(Protocol):
    async def load_profile(self) -> Optional[HomeProfile]: ...

    async def load(self, profile: HomeProfile) -> List[IncidentPoint]: ...


@dataclass(frozen=True)
class SelectorState:
    source: DatasetSource = DatasetSource.LATEST
    authenticated: bool = False
    home_status: HomeStatus = HomeStatus.UNKNOWN
    latest: Tuple[IncidentPoint, ...] = ()
    near: Tuple[IncidentPoint, ...] = ()
    latest_loading: bool = False
    near_loading: bool = False
    latest_error: Optional[str] = None
    near_error: Optional[str] = None
    home_radius_m: Optional[float] = None
    home: Optional[HomeProfile] = None

    @property
    def in_near(self) -> bool:
        return self.source is DatasetSource.NEAR and self.authenticated

    @property
    def can_show_near(self) -> bool:
        return self.in_near and self.home_status is HomeStatus.SET

    @property
    def active_points(self) -> Tuple[IncidentPoint, ...]:
        return self.near if self.can_show_near else self.latest

    @property
    def active_loading(self) -> bool:
        return self.near_loading if self.in_near else self.latest_loading

    # Vocabularies come from the global feed only, so switching to "near"
    # never changes the options offered by the filter panel.
    @property
    def available_years(self) -> List[int]:
        return available_years(self.latest)

    @property
    def available_categories(self) -> List[str]:
        return available_categories(self.latest)


def _cleared_near(state: SelectorState) -> SelectorState:
    return replace(
        state,
        home_status=HomeStatus.UNKNOWN,
        near=(),
        near_loading=False,
        near_error=None,
        home_radius_m=None,
        home=None,
    )


def select_latest(state: SelectorState) -> SelectorState:
    return replace(state, source=DatasetSource.LATEST, near_error=None, near_loading=False)


def enter_near(state: SelectorState) -> SelectorState:
    if not state.authenticated:
        return state
    return replace(
        state,
        source=DatasetSource.NEAR,
        home_status=HomeStatus.UNKNOWN,
        near_loading=True,
        near_error=None,
    )


def start_near_refresh(state: SelectorState) -> SelectorState:
    """Reload near data in place; status and points stay until the fetch commits."""

    if not state.in_near:
        return state
    return replace(state, near_loading=True, near_error=None)


def set_authenticated(state: SelectorState, authenticated: bool) -> SelectorState:
    if authenticated:
        return replace(state, authenticated=True)
    if state.source is DatasetSource.NEAR:
        state = replace(_cleared_near(state), source=DatasetSource.LATEST)
    return replace(state, authenticated=False)


def resolve_profile(state: SelectorState, profile: Optional[HomeProfile]) -> SelectorState:
    if profile is None or not profile.is_set:
        return replace(
            state,
            home_status=HomeStatus.UNSET,
            home_radius_m=None,
            home=None,
            near=(),
            near_loading=False,
            near_error=NO_HOME_MESSAGE,
        )
    return replace(
        state,
        home_status=HomeStatus.SET,
        home_radius_m=profile.effective_radius_m,
        home=profile,
    )


def resolve_near(state: SelectorState, points: Sequence[IncidentPoint]) -> SelectorState:
    return replace(state, near=tuple(points), near_loading=False, near_error=None)


def fail_near(state: SelectorState, message: str) -> SelectorState:
    """A failed lookup leaves the home status unknown rather than unset."""

    return replace(
        state,
        home_status=HomeStatus.UNKNOWN,
        home_radius_m=None,
        home=None,
        near=(),
        near_loading=False,
        near_error=message,
    )


def start_latest(state: SelectorState) -> SelectorState:
    return replace(state, latest_loading=True, latest_error=None)


def resolve_latest(state: SelectorState, points: Sequence[IncidentPoint]) -> SelectorState:
    return replace(state, latest=tuple(points), latest_loading=False, latest_error=None)


def fail_latest(state: SelectorState, message: str) -> SelectorState:
    return replace(state, latest_loading=False, latest_error=message)


StateListener = Callable[[SelectorState], None]


class DatasetSelector:
    """Drives SelectorState from async fetches.

    Each near fetch is tagged with the generation current when it started.
    Any source or authentication change bumps the generation, and a fetch
    whose tag no longer matches is dropped instead of committed.
    """

    def __init__(
        self,
        latest_source: LatestSource,
        near_source: NearSource,
        authenticated: bool = False,
    ) -> None:
        self.latest_source = latest_source
        self.near_source = near_source
        self._state = SelectorState(authenticated=authenticated)
        self._generation = 0
        self._latest_generation = 0
        self._listeners: List[StateListener] = []

    @property
    def state(self) -> SelectorState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, state: SelectorState) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)

    def _bump(self) -> int:
        self._generation += 1
        return self._generation

    def _check_current(self, generation: int) -> None:
        if generation != self._generation:
            raise StaleResult(generation, self._generation)

    def set_authenticated(self, authenticated: bool) -> None:
        if authenticated == self._state.authenticated:
            return
        if not authenticated:
            self._bump()
            if self._state.source is DatasetSource.NEAR:
                logger.info("Authentication lost; falling back to the latest dataset")
        self._commit(set_authenticated(self._state, authenticated))

    def select_latest(self) -> None:
        self._bump()
        self._commit(select_latest(self._state))

    async def load_latest(self) -> None:
        self._latest_generation += 1
        generation = self._latest_generation
        self._commit(start_latest(self._state))
        try:
            points = await self.latest_source.load()
        except DataSourceError as exc:
            if generation == self._latest_generation:
                logger.warning("Latest incidents fetch failed: %s", exc)
                self._commit(fail_latest(self._state, str(exc)))
            return
        if generation != self._latest_generation:
            logger.debug("Discarding stale latest result (generation %d)", generation)
            return
        logger.info("Loaded %d latest incidents", len(points))
        self._commit(resolve_latest(self._state, points))

    async def select_near(self) -> None:
        """Switch to the near dataset and fetch it.

        Raises NoHomeProfile, after committing the ``unset`` state, when the
        user has no saved home location.
        """

        if not self._state.authenticated:
            logger.warning("Near dataset requested without authentication; staying on latest")
            return
        generation = self._bump()
        self._commit(enter_near(self._state))
        try:
            await self._fetch_near(generation)
        except StaleResult as exc:
            logger.debug("Discarding stale near result: %s", exc)

    async def refresh_near(self) -> None:
        if not self._state.in_near:
            return
        generation = self._bump()
        self._commit(start_near_refresh(self._state))
        try:
            await self._fetch_near(generation)
        except StaleResult as exc:
            logger.debug("Discarding stale near refresh: %s", exc)

    async def _fetch_near(self, generation: int) -> None:
        try:
            profile = await self.near_source.load_profile()
        except DataSourceError as exc:
            self._check_current(generation)
            logger.warning("Home profile lookup failed: %s", exc)
            self._commit(fail_near(self._state, str(exc)))
            return

        self._check_current(generation)
        self._commit(resolve_profile(self._state, profile))
        if self._state.home_status is HomeStatus.UNSET:
            raise NoHomeProfile()

        try:
            points = await self.near_source.load(profile)
        except DataSourceError as exc:
            self._check_current(generation)
            logger.warning("Near incidents fetch failed: %s", exc)
            self._commit(fail_near(self._state, str(exc)))
            return

        self._check_current(generation)
        logger.info("Loaded %d incidents near home", len(points))
        self._commit(resolve_near(self._state, points))
