"""Design token tree and its composition.

The canonical tree is described by the pydantic models below. Overrides are
plain (possibly partial) mappings using the JSON key names of the tree
(``fontFamily``, ``2xl``, ``easeInOut``...). Resolution always goes through
:func:`compose_theme`::

    default -> dark variant (optional) -> context override -> component override

Each step is a :func:`merge_themes` call, so the component override wins over
the context override, which wins over the built-in default.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Any, Literal, Mapping, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from .logger import get_logger

__all__ = [
    "VoiceTheme",
    "DEFAULT_THEME",
    "DARK_MODE_OVERRIDE",
    "BRAND_THEMES",
    "merge_themes",
    "sanitize_override",
    "create_dark_theme",
    "compose_theme",
    "validate_theme",
    "status_color",
]

logger = get_logger("engine")


class _Tokens(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class TextColors(_Tokens):
    primary: str
    secondary: str
    muted: str
    inverse: str


class StatusColors(_Tokens):
    online: str
    offline: str
    processing: str
    listening: str


class ThemeColors(_Tokens):
    primary: str
    secondary: str
    success: str
    warning: str
    error: str
    background: str
    surface: str
    border: str
    text: TextColors
    status: StatusColors


class FontSizes(_Tokens):
    xs: str
    sm: str
    md: str
    lg: str
    xl: str
    xxl: str = Field(alias="2xl")


class FontWeights(_Tokens):
    normal: str
    medium: str
    semibold: str
    bold: str


class LineHeights(_Tokens):
    tight: str
    normal: str
    relaxed: str


class ThemeTypography(_Tokens):
    font_family: str
    font_size: FontSizes
    font_weight: FontWeights
    line_height: LineHeights


class ThemeSpacing(_Tokens):
    xs: str
    sm: str
    md: str
    lg: str
    xl: str
    xxl: str = Field(alias="2xl")
    xxxl: str = Field(alias="3xl")


class ThemeBorderRadius(_Tokens):
    none: str
    sm: str
    md: str
    lg: str
    xl: str
    full: str


class ThemeShadows(_Tokens):
    none: str
    sm: str
    md: str
    lg: str
    xl: str
    xxl: str = Field(alias="2xl")


class AnimationDurations(_Tokens):
    fast: str
    normal: str
    slow: str


class AnimationEasing(_Tokens):
    ease_in: str
    ease_out: str
    ease_in_out: str


class AnimationScale(_Tokens):
    enter: str
    exit: str


class ThemeAnimations(_Tokens):
    duration: AnimationDurations
    easing: AnimationEasing
    scale: AnimationScale


class ThemeIcons(_Tokens):
    """Icon identifiers resolved by the rendering layer."""

    microphone: Optional[str] = None
    stop: Optional[str] = None
    loading: Optional[str] = None
    settings: Optional[str] = None
    history: Optional[str] = None
    close: Optional[str] = None
    chevron_down: Optional[str] = None
    chevron_up: Optional[str] = None
    play: Optional[str] = None
    pause: Optional[str] = None
    search: Optional[str] = None
    filter: Optional[str] = None
    export: Optional[str] = None
    refresh: Optional[str] = None


class ThemeLayout(_Tokens):
    compact: bool = False
    show_labels: bool = True
    show_icons: bool = True
    orientation: Literal["horizontal", "vertical"] = "vertical"
    max_width: str = "400px"
    max_height: str = "600px"


class VoiceTheme(_Tokens):
    colors: ThemeColors
    typography: ThemeTypography
    spacing: ThemeSpacing
    border_radius: ThemeBorderRadius
    shadows: ThemeShadows
    animations: ThemeAnimations
    icons: Optional[ThemeIcons] = None
    layout: Optional[ThemeLayout] = None

    def tokens(self) -> dict[str, Any]:
        """Return the tree as a JSON-shaped mapping (aliased keys, unset icons dropped)."""
        return self.model_dump(by_alias=True, exclude_none=True)

    def merged(self, override: Mapping[str, Any] | None) -> "VoiceTheme":
        return compose_theme(override, base=self)


DEFAULT_THEME = VoiceTheme.model_validate(
    {
        "colors": {
            "primary": "#3B82F6",
            "secondary": "#6B7280",
            "success": "#10B981",
            "warning": "#F59E0B",
            "error": "#EF4444",
            "background": "#FFFFFF",
            "surface": "#F9FAFB",
            "border": "#E5E7EB",
            "text": {
                "primary": "#111827",
                "secondary": "#6B7280",
                "muted": "#9CA3AF",
                "inverse": "#FFFFFF",
            },
            "status": {
                "online": "#10B981",
                "offline": "#6B7280",
                "processing": "#F59E0B",
                "listening": "#3B82F6",
            },
        },
        "typography": {
            "fontFamily": "Inter, -apple-system, BlinkMacSystemFont, sans-serif",
            "fontSize": {
                "xs": "0.75rem",
                "sm": "0.875rem",
                "md": "1rem",
                "lg": "1.125rem",
                "xl": "1.25rem",
                "2xl": "1.5rem",
            },
            "fontWeight": {"normal": "400", "medium": "500", "semibold": "600", "bold": "700"},
            "lineHeight": {"tight": "1.25", "normal": "1.5", "relaxed": "1.75"},
        },
        "spacing": {
            "xs": "0.25rem",
            "sm": "0.5rem",
            "md": "1rem",
            "lg": "1.5rem",
            "xl": "2rem",
            "2xl": "3rem",
            "3xl": "4rem",
        },
        "borderRadius": {
            "none": "0",
            "sm": "0.125rem",
            "md": "0.375rem",
            "lg": "0.5rem",
            "xl": "0.75rem",
            "full": "9999px",
        },
        "shadows": {
            "none": "none",
            "sm": "0 1px 2px 0 rgba(0, 0, 0, 0.05)",
            "md": "0 4px 6px -1px rgba(0, 0, 0, 0.1), 0 2px 4px -1px rgba(0, 0, 0, 0.06)",
            "lg": "0 10px 15px -3px rgba(0, 0, 0, 0.1), 0 4px 6px -2px rgba(0, 0, 0, 0.05)",
            "xl": "0 20px 25px -5px rgba(0, 0, 0, 0.1), 0 10px 10px -5px rgba(0, 0, 0, 0.04)",
            "2xl": "0 25px 50px -12px rgba(0, 0, 0, 0.25)",
        },
        "animations": {
            "duration": {"fast": "150ms", "normal": "300ms", "slow": "500ms"},
            "easing": {
                "easeIn": "cubic-bezier(0.4, 0, 1, 1)",
                "easeOut": "cubic-bezier(0, 0, 0.2, 1)",
                "easeInOut": "cubic-bezier(0.4, 0, 0.2, 1)",
            },
            "scale": {"enter": "1.05", "exit": "0.95"},
        },
        "layout": {
            "compact": False,
            "showLabels": True,
            "showIcons": True,
            "orientation": "vertical",
            "maxWidth": "400px",
            "maxHeight": "600px",
        },
    }
)

# Applied on top of the default tree before any user override.
DARK_MODE_OVERRIDE: dict[str, Any] = {
    "colors": {
        "background": "#1F2937",
        "surface": "#374151",
        "border": "#4B5563",
        "text": {
            "primary": "#F9FAFB",
            "secondary": "#D1D5DB",
            "muted": "#9CA3AF",
            "inverse": "#111827",
        },
    },
}

BRAND_THEMES: dict[str, dict[str, Any]] = {
    "microsoft": {
        "colors": {"primary": "#5B5FC7", "secondary": "#464775", "background": "#F5F5F5", "surface": "#FFFFFF"},
    },
    "slack": {
        "colors": {"primary": "#4A154B", "secondary": "#ECE8EC", "background": "#FFFFFF", "surface": "#F8F8F8"},
    },
    "construction": {
        "colors": {"primary": "#FF6B00", "secondary": "#1F2937", "background": "#F9FAFB", "surface": "#FFFFFF"},
    },
    "healthcare": {
        "colors": {"primary": "#0EA5E9", "secondary": "#64748B", "background": "#F8FAFC", "surface": "#FFFFFF"},
    },
}


def merge_themes(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base`` and return a new mapping.

    Mappings present on both sides are merged key by key; any other value in
    ``override`` (string, number, list...) replaces the base value wholesale.
    A ``None`` value in ``override`` means "not set" and keeps the base value.
    Neither argument is modified.
    """
    merged = dict(base)
    for key, value in override.items():
        if value is None:
            continue
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = merge_themes(current, value)
        else:
            merged[key] = value
    return merged


def _nested_model(annotation: Any) -> type[BaseModel] | None:
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return annotation
    for arg in get_args(annotation):
        if isinstance(arg, type) and issubclass(arg, BaseModel):
            return arg
    return None


@lru_cache(maxsize=None)
def _leaf_adapter(annotation: Any) -> TypeAdapter:
    return TypeAdapter(annotation)


def _fields_by_key(model: type[BaseModel]) -> dict[str, tuple[str, Any]]:
    keys: dict[str, tuple[str, Any]] = {}
    generator = model.model_config.get("alias_generator")
    for name, info in model.model_fields.items():
        alias = info.alias or (generator(name) if callable(generator) else name)
        keys[alias] = (alias, info.annotation)
        keys.setdefault(name, (alias, info.annotation))
    return keys


def sanitize_override(
    override: Mapping[str, Any],
    model: type[BaseModel] = VoiceTheme,
    _path: str = "",
) -> dict[str, Any]:
    """Keep only the override fields that fit the canonical tree.

    Unknown keys, a leaf where a group is expected (or the reverse) and leaves
    of the wrong primitive type are dropped, so the next layer's value is used
    instead. Python field names are accepted and rewritten to the JSON key.
    """
    clean: dict[str, Any] = {}
    fields = _fields_by_key(model)
    for key, value in override.items():
        if value is None:
            continue
        path = f"{_path}.{key}" if _path else str(key)
        if key not in fields:
            logger.debug("Ignoring unknown theme token %s", path)
            continue
        alias, annotation = fields[key]
        nested = _nested_model(annotation)
        if nested is not None:
            if not isinstance(value, Mapping):
                logger.warning("Ignoring theme token %s: expected a group, got %s", path, type(value).__name__)
                continue
            clean[alias] = sanitize_override(value, nested, path)
            continue
        try:
            _leaf_adapter(annotation).validate_python(value, strict=True)
        except ValidationError:
            logger.warning("Ignoring theme token %s: invalid value %r", path, value)
            continue
        clean[alias] = value
    return clean


def create_dark_theme(theme: VoiceTheme = DEFAULT_THEME) -> VoiceTheme:
    """Return the dark variant of ``theme`` (colour and text sub-tree swapped)."""
    return VoiceTheme.model_validate(merge_themes(theme.tokens(), DARK_MODE_OVERRIDE))


def compose_theme(
    context_override: Mapping[str, Any] | None = None,
    component_override: Mapping[str, Any] | None = None,
    *,
    dark: bool = False,
    base: VoiceTheme | None = None,
) -> VoiceTheme:
    """Resolve the theme seen by one component.

    ``merge(merge(default, context_override), component_override)`` with the
    dark transform applied to the default tree first when ``dark`` is set.
    Malformed override fields are ignored, so this never raises.
    """
    tree = (base or DEFAULT_THEME).tokens()
    if dark:
        tree = merge_themes(tree, DARK_MODE_OVERRIDE)
    for override in (context_override, component_override):
        if isinstance(override, Mapping) and override:
            tree = merge_themes(tree, sanitize_override(override))
        elif override:
            logger.warning("Ignoring theme override of type %s", type(override).__name__)
    return VoiceTheme.model_validate(tree)


_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3,4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")
_FUNC_COLOR = re.compile(r"^(?:rgb|rgba|hsl|hsla)\(\s*[-+0-9.%]+(?:\s*[, ]\s*[-+0-9.%]+){2}(?:\s*[,/]\s*[0-9.%]+)?\s*\)$")
_NAMED_COLORS = frozenset(
    {
        "black", "white", "red", "green", "blue", "yellow", "orange", "purple", "pink",
        "gray", "grey", "brown", "cyan", "magenta", "navy", "teal", "olive", "maroon",
        "silver", "lime", "aqua", "fuchsia", "transparent", "currentcolor", "inherit",
    }
)
_REQUIRED_COLORS = ("primary", "secondary", "surface", "background", "border")


def is_valid_color(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    text = value.strip()
    return bool(_HEX_COLOR.match(text) or _FUNC_COLOR.match(text.lower()) or text.lower() in _NAMED_COLORS)


def validate_theme(override: Mapping[str, Any]) -> list[str]:
    """Return a message for every invalid colour among the required colour keys."""
    errors: list[str] = []
    colors = override.get("colors") if isinstance(override, Mapping) else None
    if not isinstance(colors, Mapping):
        return errors
    for name in _REQUIRED_COLORS:
        value = colors.get(name)
        if value and not is_valid_color(value):
            errors.append(f"Invalid color value for {name}")
    return errors


def status_color(status: str, theme: VoiceTheme = DEFAULT_THEME) -> str:
    colors = theme.colors
    if status in ("online", "available", "connected"):
        return colors.status.online
    if status in ("listening", "active"):
        return colors.status.listening
    if status in ("processing", "thinking"):
        return colors.status.processing
    if status in ("error", "failed"):
        return colors.error
    return colors.status.offline
