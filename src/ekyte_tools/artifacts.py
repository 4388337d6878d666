"""Screenshot path handling for the artifacts directory."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

IMAGE_SUFFIXES = (".png", ".jpg", ".jpeg")


def has_image_suffix(path: str) -> bool:
    return path.lower().endswith(IMAGE_SUFFIXES)


def resolve_screenshot_path(path: str, screenshots_dir: Path) -> Path:
    """Return where a screenshot requested as *path* is stored.

    ``.png`` is appended when *path* has no image extension, and relative
    paths are placed inside *screenshots_dir*.
    """

    if not has_image_suffix(path):
        path = f"{path}.png"
    candidate = Path(path).expanduser()
    if not candidate.is_absolute():
        candidate = screenshots_dir / candidate
    return candidate


def derive_screenshot_path(base: str, suffix: str) -> str:
    """Build ``<base>-<suffix>.png`` from a base path that may carry an extension."""

    stem = base
    lowered = base.lower()
    for extension in IMAGE_SUFFIXES:
        if lowered.endswith(extension):
            stem = base[: -len(extension)]
            break
    return f"{stem}-{suffix}.png"


def capture_timestamp(moment: datetime | None = None) -> str:
    """Timestamp used in artifact file names (UTC, millisecond precision)."""

    moment = moment or datetime.now(timezone.utc)
    return moment.strftime("%Y%m%dT%H%M%S") + f"{moment.microsecond // 1000:03d}Z"
