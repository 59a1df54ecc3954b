"""
Utility functions for the sagaflow library.
"""

from __future__ import annotations

import linecache
import os
import sys
from typing import TypeVar

from sagaflow.types import EffectBase, EffectCreationContext


def _is_site_package(path: str) -> bool:
    normalized = path.replace("\\", "/").lower()
    return "/site-packages/" in normalized


def _is_sagaflow_internal(path: str) -> bool:
    normalized = path.replace("\\", "/").lower()
    return "/sagaflow/" in normalized and "/tests/" not in normalized


def _is_user_frame(path: str) -> bool:
    if path.startswith("<"):
        return True
    return not (_is_site_package(path) or _is_sagaflow_internal(path))


# Environment variable to control debug mode
DEBUG_EFFECTS = os.environ.get("SAGAFLOW_DEBUG", "").lower() in ("1", "true", "yes")


def capture_creation_context(skip_frames: int = 2) -> EffectCreationContext | None:
    """
    Capture the current stack context for debugging effect creation.

    Args:
        skip_frames: Number of frames to skip (default 2 to skip this function and caller)

    Returns:
        EffectCreationContext with frame info, or None when frames are unavailable
    """
    try:
        frame = sys._getframe(skip_frames)
    except ValueError:
        return None

    filename = frame.f_code.co_filename
    line = frame.f_lineno
    code = linecache.getline(filename, line).strip() or None

    # Collect stack frames so we can show where the effect originated.
    stack_data = []
    current_frame = frame.f_back
    max_depth = 12 if DEBUG_EFFECTS else 4
    while current_frame is not None and len(stack_data) < max_depth:
        frame_filename = current_frame.f_code.co_filename
        frame_data = {
            "filename": frame_filename,
            "line": current_frame.f_lineno,
            "function": current_frame.f_code.co_name,
        }
        code_line = linecache.getline(frame_filename, current_frame.f_lineno)
        if code_line:
            frame_data["code"] = code_line.strip()
        stack_data.append(frame_data)

        if not DEBUG_EFFECTS and _is_user_frame(frame_filename):
            break
        current_frame = current_frame.f_back

    return EffectCreationContext(
        filename=filename,
        line=line,
        function=frame.f_code.co_name,
        code=code,
        stack_trace=stack_data,
    )


E = TypeVar("E", bound=EffectBase)


def create_effect_with_trace(effect: E, skip_frames: int = 3) -> E:
    """Attach creation context metadata to an effect instance."""

    if not isinstance(effect, EffectBase):
        raise TypeError(f"Expected EffectBase, got {type(effect)!r}")

    created_at = capture_creation_context(skip_frames=skip_frames)
    return effect.with_created_at(created_at)


__all__ = [
    "DEBUG_EFFECTS",
    "capture_creation_context",
    "create_effect_with_trace",
]
