"""Feature visibility and label resolution.

Every component asks :func:`resolve_visibility` which of its sub-views to
render and which strings to show. Values come from an ordered list of layers,
highest priority first::

    legacy boolean props set at the call site
    component override
    component mode preset
    global override
    global mode preset (``project`` when no mode is configured)

Each flag is taken from the first layer that sets it. Labels follow the same
order field by field, then the ``end-user`` wording when generic labels are
requested, then :data:`DEFAULT_LABELS`.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Iterable, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from .logger import get_logger

__all__ = [
    "InterfaceMode",
    "INTERFACE_MODES",
    "DEFAULT_MODE",
    "FLAG_NAMES",
    "LABEL_FIELDS",
    "CustomLabels",
    "VisibilityConfig",
    "ResolvedVisibility",
    "VoiceAIConfig",
    "MODE_PRESETS",
    "DEFAULT_LABELS",
    "normalize_mode",
    "first_set",
    "resolve_visibility",
    "resolve_for_config",
    "filter_error_message",
]

logger = get_logger("engine")

InterfaceMode = Literal["developer", "project", "end-user"]
INTERFACE_MODES: tuple[str, ...] = ("developer", "project", "end-user")
DEFAULT_MODE = "project"


class _Config(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


def _field_keys(model: type[BaseModel]) -> dict[str, str]:
    """Map both the field name and its camelCase alias to the field name."""
    keys: dict[str, str] = {}
    for name in model.model_fields:
        keys[name] = name
        keys[to_camel(name)] = name
    return keys


class _LabelGroup(_Config):
    @model_validator(mode="before")
    @classmethod
    def _drop_non_strings(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        keys = _field_keys(cls)
        clean: dict[str, Any] = {}
        for key, value in data.items():
            if key not in keys:
                continue
            if value is None or isinstance(value, str):
                clean[key] = value
            else:
                logger.warning("Ignoring label %s.%s: expected text, got %s", cls.__name__, key, type(value).__name__)
        return clean


class VoiceButtonLabels(_LabelGroup):
    start_text: Optional[str] = None
    stop_text: Optional[str] = None
    processing_text: Optional[str] = None
    error_text: Optional[str] = None


class StatusLabels(_LabelGroup):
    online: Optional[str] = None
    offline: Optional[str] = None
    listening: Optional[str] = None
    processing: Optional[str] = None
    error: Optional[str] = None


class ProviderLabels(_LabelGroup):
    generic: Optional[str] = None
    fallback: Optional[str] = None


class ErrorLabels(_LabelGroup):
    generic: Optional[str] = None
    connection: Optional[str] = None
    permission: Optional[str] = None


_LABEL_GROUPS: dict[str, type[_LabelGroup]] = {
    "voice_button": VoiceButtonLabels,
    "status": StatusLabels,
    "providers": ProviderLabels,
    "errors": ErrorLabels,
}
LABEL_FIELDS: dict[str, tuple[str, ...]] = {
    group: tuple(model.model_fields) for group, model in _LABEL_GROUPS.items()
}


class CustomLabels(_Config):
    """Display strings grouped by UI area. Any string may be left unset."""

    voice_button: Optional[VoiceButtonLabels] = None
    status: Optional[StatusLabels] = None
    providers: Optional[ProviderLabels] = None
    errors: Optional[ErrorLabels] = None

    @model_validator(mode="before")
    @classmethod
    def _drop_malformed_groups(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        keys = _field_keys(cls)
        clean: dict[str, Any] = {}
        for key, value in data.items():
            if key not in keys:
                continue
            if value is None or isinstance(value, (Mapping, _LabelGroup)):
                clean[key] = value
            else:
                logger.warning("Ignoring label group %s: expected a mapping", key)
        return clean

    def as_layer(self) -> dict[str, dict[str, str]]:
        layer: dict[str, dict[str, str]] = {}
        for group in LABEL_FIELDS:
            values = getattr(self, group)
            if values is not None:
                layer[group] = values.model_dump(exclude_none=True)
        return layer


class VisibilityConfig(_Config):
    """Feature flags of one layer. ``None`` means unset, distinct from ``False``."""

    show_providers: Optional[bool] = None
    show_provider_status: Optional[bool] = None
    show_confidence_scores: Optional[bool] = None
    show_processing_times: Optional[bool] = None
    show_debug_info: Optional[bool] = None
    show_technical_errors: Optional[bool] = None
    show_advanced_settings: Optional[bool] = None
    show_analytics: Optional[bool] = None
    show_command_history: Optional[bool] = None
    show_mini_center: Optional[bool] = None
    show_suggestions: Optional[bool] = None
    show_categories: Optional[bool] = None
    show_stats: Optional[bool] = None
    show_export: Optional[bool] = None
    show_filters: Optional[bool] = None
    show_search: Optional[bool] = None
    show_entities: Optional[bool] = None
    show_timestamps: Optional[bool] = None
    show_keyboard_shortcuts: Optional[bool] = None
    use_generic_labels: Optional[bool] = None
    custom_labels: Optional[CustomLabels] = None

    @model_validator(mode="before")
    @classmethod
    def _drop_malformed_flags(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        keys = _field_keys(cls)
        clean: dict[str, Any] = {}
        for key, value in data.items():
            name = keys.get(key)
            if name is None:
                continue
            if name == "custom_labels":
                if value is None or isinstance(value, (Mapping, CustomLabels)):
                    clean[key] = value
                else:
                    logger.warning("Ignoring customLabels: expected a mapping")
            elif value is None or isinstance(value, bool):
                clean[key] = value
            else:
                logger.warning("Ignoring visibility flag %s: expected a boolean, got %r", key, value)
        return clean

    def flags(self) -> dict[str, bool]:
        return {name: value for name in FLAG_NAMES if (value := getattr(self, name)) is not None}


FLAG_NAMES: tuple[str, ...] = tuple(name for name in VisibilityConfig.model_fields if name != "custom_labels")

# Older flat props and the flag they stand for.
LEGACY_PROP_FLAGS: dict[str, str] = {
    "show_provider": "show_providers",
    "show_connection": "show_provider_status",
    "show_history": "show_command_history",
}


class ResolvedVisibility(_Config):
    """Fully populated flags and labels for one component."""

    mode: str
    show_providers: bool
    show_provider_status: bool
    show_confidence_scores: bool
    show_processing_times: bool
    show_debug_info: bool
    show_technical_errors: bool
    show_advanced_settings: bool
    show_analytics: bool
    show_command_history: bool
    show_mini_center: bool
    show_suggestions: bool
    show_categories: bool
    show_stats: bool
    show_export: bool
    show_filters: bool
    show_search: bool
    show_entities: bool
    show_timestamps: bool
    show_keyboard_shortcuts: bool
    use_generic_labels: bool
    custom_labels: CustomLabels

    def flags(self) -> dict[str, bool]:
        return {name: getattr(self, name) for name in FLAG_NAMES}

    @property
    def labels(self) -> CustomLabels:
        return self.custom_labels


class UIConfig(_Config):
    theme: Literal["light", "dark", "auto"] = "auto"
    position: Literal["left", "right", "top", "bottom"] = "left"
    show_command_history: bool = True
    show_suggestions: bool = True
    command_center_width: int = 320
    animations: bool = True
    sounds: bool = False


class AdvancedConfig(_Config):
    enable_analytics: bool = False
    enable_caching: bool = True
    max_history_items: int = 50
    enable_offline_mode: bool = False
    debug_mode: bool = False


class VoiceAIConfig(_Config):
    """Global configuration shared by every component of a page."""

    interface_mode: Optional[str] = None
    visibility: Optional[VisibilityConfig] = None
    ui: UIConfig = UIConfig()
    advanced: AdvancedConfig = AdvancedConfig()


def _preset(**flags: bool) -> dict[str, bool]:
    missing = set(FLAG_NAMES) - set(flags)
    if missing:  # pragma: no cover - guarded at import time
        raise ValueError(f"preset is missing flags: {sorted(missing)}")
    return flags


_DEVELOPER = _preset(
    show_providers=True,
    show_provider_status=True,
    show_confidence_scores=True,
    show_processing_times=True,
    show_debug_info=True,
    show_technical_errors=True,
    show_advanced_settings=True,
    show_analytics=True,
    show_command_history=True,
    show_mini_center=True,
    show_suggestions=True,
    show_categories=True,
    show_stats=True,
    show_export=True,
    show_filters=True,
    show_search=True,
    show_entities=True,
    show_timestamps=True,
    show_keyboard_shortcuts=True,
    use_generic_labels=False,
)

_PROJECT = _preset(
    show_providers=True,
    show_provider_status=True,
    show_confidence_scores=True,
    show_processing_times=False,
    show_debug_info=False,
    show_technical_errors=False,
    show_advanced_settings=True,
    show_analytics=True,
    show_command_history=True,
    show_mini_center=True,
    show_suggestions=True,
    show_categories=True,
    show_stats=True,
    show_export=True,
    show_filters=True,
    show_search=True,
    show_entities=False,
    show_timestamps=True,
    show_keyboard_shortcuts=True,
    use_generic_labels=False,
)

_END_USER = _preset(
    show_providers=False,
    show_provider_status=False,
    show_confidence_scores=False,
    show_processing_times=False,
    show_debug_info=False,
    show_technical_errors=False,
    show_advanced_settings=False,
    show_analytics=False,
    show_command_history=True,
    show_mini_center=False,
    show_suggestions=True,
    show_categories=False,
    show_stats=False,
    show_export=False,
    show_filters=False,
    show_search=True,
    show_entities=False,
    show_timestamps=True,
    show_keyboard_shortcuts=False,
    use_generic_labels=True,
)

_END_USER_LABELS = CustomLabels(
    voice_button=VoiceButtonLabels(
        start_text="Ask for Help",
        stop_text="Stop",
        processing_text="Listening...",
        error_text="Please try again",
    ),
    status=StatusLabels(online="Ready", offline="Unavailable", listening="Listening...", processing="Thinking..."),
    providers=ProviderLabels(generic="Voice Assistant"),
    errors=ErrorLabels(
        generic="Voice assistant temporarily unavailable",
        connection="Please check your connection and try again",
        permission="Microphone access is needed",
    ),
)

MODE_PRESETS: Mapping[str, VisibilityConfig] = MappingProxyType(
    {
        "developer": VisibilityConfig(**_DEVELOPER),
        "project": VisibilityConfig(**_PROJECT),
        "end-user": VisibilityConfig(**_END_USER, custom_labels=_END_USER_LABELS),
    }
)

DEFAULT_LABELS: Mapping[str, Mapping[str, str]] = MappingProxyType(
    {
        "voice_button": {
            "start_text": "Start Listening",
            "stop_text": "Stop Listening",
            "processing_text": "Processing voice...",
            "error_text": "Voice error",
        },
        "status": {
            "online": "Online",
            "offline": "Offline",
            "listening": "Listening",
            "processing": "Processing",
            "error": "Error",
        },
        "providers": {"generic": "AI Provider", "fallback": "Keywords"},
        "errors": {
            "generic": "An error occurred",
            "connection": "Connection failed",
            "permission": "Permission denied",
        },
    }
)


def normalize_mode(mode: Any, default: str = DEFAULT_MODE) -> str:
    """Return a known mode name; ``None`` gives ``default``, anything unknown gives ``project``."""
    if mode is None or mode == "":
        mode = default
    if isinstance(mode, str) and mode in MODE_PRESETS:
        return mode
    logger.warning("Unknown interface mode %r, using %s", mode, DEFAULT_MODE)
    return DEFAULT_MODE


def first_set(layers: Iterable[Mapping[str, Any]], key: str, default: Any = None) -> Any:
    """Value of ``key`` in the first layer that sets it (``None`` counts as unset)."""
    for layer in layers:
        value = layer.get(key)
        if value is not None:
            return value
    return default


def _as_config(source: Any, scope: str) -> VisibilityConfig | None:
    if source is None or isinstance(source, VisibilityConfig):
        return source
    if not isinstance(source, Mapping):
        logger.warning("Ignoring %s visibility override of type %s", scope, type(source).__name__)
        return None
    try:
        return VisibilityConfig.model_validate(source)
    except ValidationError as exc:
        logger.warning("Ignoring %s visibility override: %s", scope, exc)
        return None


def _as_labels(source: Any) -> CustomLabels | None:
    if source is None or isinstance(source, CustomLabels):
        return source
    if not isinstance(source, Mapping):
        logger.warning("Ignoring custom labels of type %s", type(source).__name__)
        return None
    try:
        return CustomLabels.model_validate(source)
    except ValidationError as exc:
        logger.warning("Ignoring custom labels: %s", exc)
        return None


def _legacy_layer(legacy: Mapping[str, Any] | None) -> dict[str, bool]:
    layer: dict[str, bool] = {}
    if not isinstance(legacy, Mapping):
        return layer
    keys = _field_keys(VisibilityConfig)
    for key, value in legacy.items():
        if not isinstance(value, bool):
            continue
        name = LEGACY_PROP_FLAGS.get(key) or keys.get(key) or LEGACY_PROP_FLAGS.get(_snake(key))
        if name in FLAG_NAMES:
            layer[name] = value
    return layer


def _snake(key: str) -> str:
    return "".join(f"_{c.lower()}" if c.isupper() else c for c in key)


def _flag_layer(config: VisibilityConfig | None) -> dict[str, bool]:
    return config.flags() if config is not None else {}


def _label_layer(labels: CustomLabels | None) -> dict[str, dict[str, str]]:
    return labels.as_layer() if labels is not None else {}


def resolve_visibility(
    global_mode: Any = None,
    global_override: VisibilityConfig | Mapping[str, Any] | None = None,
    component_mode: Any = None,
    component_override: VisibilityConfig | Mapping[str, Any] | None = None,
    component_custom_labels: CustomLabels | Mapping[str, Any] | None = None,
    *,
    legacy: Mapping[str, Any] | None = None,
    default_mode: str = DEFAULT_MODE,
) -> ResolvedVisibility:
    """Resolve the flags and labels of one component. Never raises."""
    global_key = normalize_mode(global_mode, default_mode)
    component_key = normalize_mode(component_mode) if component_mode not in (None, "") else None

    component_config = _as_config(component_override, "component")
    global_config = _as_config(global_override, "global")
    component_preset = MODE_PRESETS[component_key] if component_key else None
    global_preset = MODE_PRESETS[global_key]

    flag_layers = [
        _legacy_layer(legacy),
        _flag_layer(component_config),
        _flag_layer(component_preset),
        _flag_layer(global_config),
        _flag_layer(global_preset),
    ]
    flags = {name: bool(first_set(flag_layers, name, False)) for name in FLAG_NAMES}

    label_sources = [
        _as_labels(component_custom_labels),
        component_config.custom_labels if component_config else None,
        global_config.custom_labels if global_config else None,
    ]
    # Preset wording only comes from the end-user set, and only for generic labels.
    if flags["use_generic_labels"]:
        label_sources.append(MODE_PRESETS["end-user"].custom_labels)
    label_layers = [_label_layer(source) for source in label_sources]
    label_layers.append({group: dict(values) for group, values in DEFAULT_LABELS.items()})

    labels = {
        group: {field: first_set((layer.get(group, {}) for layer in label_layers), field) for field in fields}
        for group, fields in LABEL_FIELDS.items()
    }

    return ResolvedVisibility(
        mode=component_key or global_key,
        custom_labels=CustomLabels.model_validate(labels),
        **flags,
    )


def resolve_for_config(
    config: VoiceAIConfig | Mapping[str, Any] | None,
    component_mode: Any = None,
    component_override: VisibilityConfig | Mapping[str, Any] | None = None,
    component_custom_labels: CustomLabels | Mapping[str, Any] | None = None,
    *,
    legacy: Mapping[str, Any] | None = None,
    default_mode: str = DEFAULT_MODE,
) -> ResolvedVisibility:
    """Resolve against the global layers held by a :class:`VoiceAIConfig`."""
    global_mode: Any = None
    global_override: Any = None
    if isinstance(config, VoiceAIConfig):
        global_mode, global_override = config.interface_mode, config.visibility
    elif isinstance(config, Mapping):
        global_mode = config.get("interface_mode", config.get("interfaceMode"))
        global_override = config.get("visibility")
    return resolve_visibility(
        global_mode,
        global_override,
        component_mode,
        component_override,
        component_custom_labels,
        legacy=legacy,
        default_mode=default_mode,
    )


def filter_error_message(resolved: ResolvedVisibility, message: str) -> str:
    """Hide technical error text unless the component shows technical errors."""
    if resolved.show_technical_errors:
        return message
    return resolved.custom_labels.errors.generic or DEFAULT_LABELS["errors"]["generic"]
