from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from voicekit.core.config import get_settings
from voicekit.core.errors import error_response
from voicekit.core.preferences import ThemePreferences, load_preferences, reset_preferences, save_preferences
from voicekit.core.theme import BRAND_THEMES, compose_theme, merge_themes, sanitize_override, validate_theme

router = APIRouter(prefix="/theme", tags=["theme"])


class _Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ThemeRequest(_Body):
    context_override: Optional[dict[str, Any]] = None
    component_override: Optional[dict[str, Any]] = None
    brand: Optional[str] = None
    dark: Optional[bool] = None
    use_preferences: bool = False


class PreferencesBody(_Body):
    override: dict[str, Any] = {}
    dark_mode: Optional[bool] = None


def _preferences_payload(prefs: ThemePreferences) -> dict[str, Any]:
    return {"override": prefs.override, "darkMode": prefs.dark_mode}


@router.post("/resolve")
async def resolve(payload: ThemeRequest) -> dict[str, Any]:
    """Compose the theme of one component.

    A brand preset sits under the context override; saved preferences, when
    requested, sit under both.
    """
    context: dict[str, Any] = {}
    dark = payload.dark
    if payload.use_preferences:
        prefs = load_preferences()
        context = merge_themes(context, sanitize_override(prefs.override))
        if dark is None:
            dark = prefs.dark_mode
    if payload.brand is not None:
        if payload.brand not in BRAND_THEMES:
            raise HTTPException(status_code=404, detail=error_response("VK_4042", "unknown brand", details=payload.brand))
        context = merge_themes(context, BRAND_THEMES[payload.brand])
    if payload.context_override:
        context = merge_themes(context, sanitize_override(payload.context_override))
    theme = compose_theme(context, payload.component_override, dark=bool(dark))
    return theme.tokens()


@router.get("/brands")
async def brands() -> dict[str, Any]:
    return {"brands": BRAND_THEMES}


@router.get("/preferences")
async def get_preferences() -> dict[str, Any]:
    return _preferences_payload(load_preferences())


@router.put("/preferences")
async def put_preferences(payload: PreferencesBody) -> dict[str, Any]:
    problems = validate_theme(payload.override)
    if problems:
        raise HTTPException(status_code=400, detail=error_response("VK_4003", "invalid theme", details=problems))
    prefs = ThemePreferences(override=payload.override, dark_mode=payload.dark_mode)
    saved = save_preferences(prefs) if get_settings().theme_persist else False
    return {**_preferences_payload(prefs), "saved": saved}


@router.delete("/preferences")
async def delete_preferences() -> dict[str, Any]:
    return _preferences_payload(reset_preferences())
