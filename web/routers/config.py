"""Configuration endpoints."""

import json
from typing import Any

from fastapi import APIRouter, Depends

from web.deps import get_settings_dep
from wp_image_renamer.config import Settings, print_settings_json

router = APIRouter()


@router.get("")
def get_config(settings: Settings = Depends(get_settings_dep)) -> dict[str, Any]:
    """Get effective configuration.

    Returns:
        Current configuration as JSON, secrets masked.
    """
    config: dict[str, Any] = json.loads(print_settings_json(settings))
    config["llm_configured"] = bool(settings.anthropic_api_key)
    config["password_required"] = bool(settings.app_password)
    return config
