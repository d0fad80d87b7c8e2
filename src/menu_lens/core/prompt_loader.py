"""
Prompt Loader - loads the vision prompts from package data.
===========================================================

Usage:
    from menu_lens.core.prompt_loader import get_system_prompt, get_analysis_prompt

    system = get_system_prompt()
    user_text = get_analysis_prompt(with_positions=True)
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml


logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent.parent / "data"
PROMPTS_DIR = DATA_DIR / "prompts"
ANALYSIS_PROMPTS = PROMPTS_DIR / "analysis.yaml"

_REQUIRED_KEYS = ("system", "items", "items_with_positions")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load YAML file safely."""
    try:
        with open(path, encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Prompt file not found: %s", path)
        return {}
    except yaml.YAMLError as e:
        logger.error("Failed to parse YAML %s: %s", path, e)
        return {}


@lru_cache(maxsize=4)
def load_analysis_prompts(path: Path = ANALYSIS_PROMPTS) -> dict[str, str]:
    """Load and validate the analysis prompt set.

    Raises:
        RuntimeError: if a required prompt is missing; the gateway cannot
            send a request without one.
    """
    data = load_yaml_file(path)
    missing = [key for key in _REQUIRED_KEYS if not str(data.get(key) or "").strip()]
    if missing:
        raise RuntimeError(f"Prompt file {path} is missing keys: {', '.join(missing)}")
    return {key: str(value) for key, value in data.items()}


def get_system_prompt() -> str:
    return load_analysis_prompts()["system"].strip()


def get_analysis_prompt(*, with_positions: bool = False) -> str:
    """Return the user instruction for the selected variant."""
    prompts = load_analysis_prompts()
    template = prompts["items_with_positions" if with_positions else "items"]
    return template.format(
        reading_rules=prompts.get("reading_rules", "").strip(),
        selection_rules=prompts.get("selection_rules", "").strip(),
    ).strip()
