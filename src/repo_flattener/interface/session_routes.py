"""Navigation-history and preference routes for the browsing session."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from repo_flattener.interface.dependencies import get_navigation, get_preferences
from repo_flattener.interface.schemas import (
    NavigateRequest,
    NavigationResponse,
    PreferencesUpdate,
)
from repo_flattener.services.navigation_history import NavigationHistory
from repo_flattener.services.preferences import PreferencesStore, UserPreferences

router = APIRouter()


def _navigation_view(
    navigation: NavigationHistory, moved: bool | None = None
) -> NavigationResponse:
    state = navigation.state
    return NavigationResponse(
        current_path=state.current_path,
        history=list(state.history),
        current_index=state.current_index,
        can_go_back=navigation.can_go_back(),
        can_go_forward=navigation.can_go_forward(),
        moved=moved,
    )


@router.get("/navigation", response_model=NavigationResponse)
async def get_navigation_state(
    navigation: NavigationHistory = Depends(get_navigation),
) -> NavigationResponse:
    return _navigation_view(navigation)


@router.post("/navigation", response_model=NavigationResponse)
async def navigate(
    body: NavigateRequest,
    navigation: NavigationHistory = Depends(get_navigation),
) -> NavigationResponse:
    navigation.navigate_to(body.path)
    return _navigation_view(navigation)


@router.post("/navigation/back", response_model=NavigationResponse)
async def go_back(
    navigation: NavigationHistory = Depends(get_navigation),
) -> NavigationResponse:
    return _navigation_view(navigation, moved=navigation.go_back())


@router.post("/navigation/forward", response_model=NavigationResponse)
async def go_forward(
    navigation: NavigationHistory = Depends(get_navigation),
) -> NavigationResponse:
    return _navigation_view(navigation, moved=navigation.go_forward())


@router.get("/preferences", response_model=UserPreferences)
async def read_preferences(
    preferences: PreferencesStore = Depends(get_preferences),
) -> UserPreferences:
    return preferences.preferences


@router.patch("/preferences", response_model=UserPreferences)
async def update_preferences(
    body: PreferencesUpdate,
    preferences: PreferencesStore = Depends(get_preferences),
) -> UserPreferences:
    return preferences.update(**body.model_dump(exclude_none=True))


@router.post("/preferences/reset", response_model=UserPreferences)
async def reset_preferences(
    preferences: PreferencesStore = Depends(get_preferences),
) -> UserPreferences:
    return preferences.reset()


@router.put("/preferences/bookmarks", response_model=UserPreferences)
async def add_bookmark(
    url: str = Query(..., min_length=1),
    preferences: PreferencesStore = Depends(get_preferences),
) -> UserPreferences:
    preferences.add_bookmark(url)
    return preferences.preferences


@router.delete("/preferences/bookmarks", response_model=UserPreferences)
async def remove_bookmark(
    url: str = Query(..., min_length=1),
    preferences: PreferencesStore = Depends(get_preferences),
) -> UserPreferences:
    preferences.remove_bookmark(url)
    return preferences.preferences
