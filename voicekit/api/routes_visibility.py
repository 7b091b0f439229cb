from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from voicekit.core.config import get_settings
from voicekit.core.visibility import filter_error_message, resolve_visibility

router = APIRouter(prefix="/visibility", tags=["visibility"])


class ResolveRequest(BaseModel):
    """Layers of one component. Overrides stay raw so malformed fields are dropped, not rejected."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    global_mode: Any = None
    global_override: Optional[dict[str, Any]] = None
    component_mode: Any = None
    component_override: Optional[dict[str, Any]] = None
    component_custom_labels: Optional[dict[str, Any]] = None
    legacy: Optional[dict[str, Any]] = None
    error_message: Optional[str] = None


@router.post("/resolve")
async def resolve(payload: ResolveRequest) -> dict[str, Any]:
    resolved = resolve_visibility(
        payload.global_mode,
        payload.global_override,
        payload.component_mode,
        payload.component_override,
        payload.component_custom_labels,
        legacy=payload.legacy,
        default_mode=get_settings().default_interface_mode,
    )
    body = resolved.model_dump(by_alias=True)
    if payload.error_message is not None:
        body["errorMessage"] = filter_error_message(resolved, payload.error_message)
    return body
