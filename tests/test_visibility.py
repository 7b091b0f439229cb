from __future__ import annotations

import pytest

from voicekit.core.visibility import (
    DEFAULT_LABELS,
    FLAG_NAMES,
    MODE_PRESETS,
    VoiceAIConfig,
    filter_error_message,
    first_set,
    normalize_mode,
    resolve_for_config,
    resolve_visibility,
)


@pytest.mark.parametrize("mode", ["developer", "project", "end-user"])
def test_mode_without_overrides_equals_preset(mode: str) -> None:
    resolved = resolve_visibility(mode)
    assert resolved.mode == mode
    assert resolved.flags() == MODE_PRESETS[mode].flags()


def test_component_override_beats_component_preset() -> None:
    resolved = resolve_visibility(
        "end-user",
        None,
        "developer",
        {"showDebugInfo": False},
    )
    assert resolved.show_debug_info is False
    assert resolved.show_technical_errors is True
    assert resolved.mode == "developer"


def test_component_preset_beats_global_override() -> None:
    resolved = resolve_visibility("project", {"show_providers": False}, "developer")
    assert resolved.show_providers is True


def test_global_override_beats_global_preset() -> None:
    resolved = resolve_visibility("project", {"show_debug_info": True})
    assert resolved.show_debug_info is True
    assert resolved.show_entities is False


def test_legacy_props_win_over_everything() -> None:
    resolved = resolve_visibility(
        "developer",
        {"show_providers": True},
        "developer",
        {"show_providers": True},
        legacy={"show_provider": False, "showHistory": False, "show_connection": None},
    )
    assert resolved.show_providers is False
    assert resolved.show_command_history is False
    assert resolved.show_provider_status is True


def test_missing_everything_defaults_to_project() -> None:
    assert resolve_visibility().flags() == MODE_PRESETS["project"].flags()


@pytest.mark.parametrize("mode", ["expert", 3, ["developer"]])
def test_unknown_mode_falls_back_to_project(mode) -> None:
    assert normalize_mode(mode) == "project"
    resolved = resolve_visibility(mode)
    assert resolved.mode == "project"


def test_unknown_component_mode_falls_back_to_project() -> None:
    resolved = resolve_visibility("end-user", None, "nonsense")
    assert resolved.mode == "project"
    assert resolved.show_providers is True


def test_malformed_flag_uses_next_layer() -> None:
    resolved = resolve_visibility("developer", None, None, {"showDebugInfo": "yes", "showStats": False})
    assert resolved.show_debug_info is True
    assert resolved.show_stats is False


def test_non_mapping_override_is_ignored() -> None:
    resolved = resolve_visibility("project", "garbage", None, 12)
    assert resolved.flags() == MODE_PRESETS["project"].flags()


def test_labels_fall_back_to_technical_defaults() -> None:
    labels = resolve_visibility("developer").custom_labels
    assert labels.voice_button.start_text == DEFAULT_LABELS["voice_button"]["start_text"]
    assert labels.providers.fallback == "Keywords"


def test_end_user_labels_with_partial_fallback() -> None:
    labels = resolve_visibility("end-user").custom_labels
    assert labels.voice_button.start_text == "Ask for Help"
    assert labels.status.online == "Ready"
    assert labels.status.error == DEFAULT_LABELS["status"]["error"]
    assert labels.providers.fallback == DEFAULT_LABELS["providers"]["fallback"]


def test_generic_labels_override_pulls_end_user_wording() -> None:
    labels = resolve_visibility("developer", {"useGenericLabels": True}).custom_labels
    assert labels.voice_button.start_text == "Ask for Help"


@pytest.mark.parametrize("component_mode", ["developer", "project"])
def test_technical_component_under_end_user_page_keeps_technical_labels(component_mode: str) -> None:
    resolved = resolve_visibility("end-user", None, component_mode)
    assert resolved.use_generic_labels is False
    labels = resolved.custom_labels
    assert labels.voice_button.start_text == DEFAULT_LABELS["voice_button"]["start_text"]
    assert labels.status.online == DEFAULT_LABELS["status"]["online"]
    assert labels.errors.generic == DEFAULT_LABELS["errors"]["generic"]


def test_end_user_without_generic_labels_uses_technical_wording() -> None:
    resolved = resolve_visibility("end-user", {"useGenericLabels": False})
    assert resolved.use_generic_labels is False
    assert resolved.show_providers is False
    assert resolved.custom_labels.status.online == "Online"
    assert resolved.custom_labels.voice_button.start_text == "Start Listening"


def test_component_custom_labels_take_precedence() -> None:
    resolved = resolve_visibility(
        "end-user",
        {"customLabels": {"voiceButton": {"startText": "Global"}}},
        None,
        {"customLabels": {"voiceButton": {"startText": "Override", "stopText": "Halt"}}},
        {"voiceButton": {"startText": "Custom", "errorText": 5}},
    )
    labels = resolved.custom_labels
    assert labels.voice_button.start_text == "Custom"
    assert labels.voice_button.stop_text == "Halt"
    assert labels.voice_button.error_text == "Please try again"


def test_resolved_output_is_complete() -> None:
    resolved = resolve_visibility("end-user", None, None, {"showStats": None})
    assert set(resolved.flags()) == set(FLAG_NAMES)
    for group, fields in resolved.custom_labels.as_layer().items():
        assert all(value for value in fields.values()), group


def test_first_set_skips_none() -> None:
    layers = [{"a": None}, {}, {"a": False}, {"a": True}]
    assert first_set(layers, "a") is False
    assert first_set(layers, "b", "fallback") == "fallback"


def test_resolve_for_config_reads_global_layers() -> None:
    config = VoiceAIConfig(interface_mode="end-user", visibility={"show_stats": True})
    resolved = resolve_for_config(config)
    assert resolved.mode == "end-user"
    assert resolved.show_stats is True
    assert resolved.show_providers is False

    from_mapping = resolve_for_config({"interfaceMode": "developer"}, component_mode="project")
    assert from_mapping.mode == "project"


def test_filter_error_message() -> None:
    assert filter_error_message(resolve_visibility("developer"), "HTTP 502") == "HTTP 502"
    assert filter_error_message(resolve_visibility("end-user"), "HTTP 502") == "Voice assistant temporarily unavailable"
    assert filter_error_message(resolve_visibility("project"), "HTTP 502") == DEFAULT_LABELS["errors"]["generic"]
