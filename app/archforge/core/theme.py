"""Console color theme.

The bundled data/theme.toml holds the default palette. A user file with
a ``[colors]`` table overrides individual entries. Most commands run under
sudo, so the override is looked up in the invoking user's config
directory rather than root's.
"""

import logging
import os
import pwd
import sys
import tomllib
from functools import cache
from importlib import resources
from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, BeforeValidator, ConfigDict, ValidationError
from rich.theme import Theme

from archforge.core.paths import APP_NAME, get_config_dir

logger = logging.getLogger(__name__)

THEME_FILE = "theme.toml"


def _hex_color(value: object) -> str:
    if not isinstance(value, str):
        raise ValueError("color must be a string")
    color = value.strip()
    if not color.startswith("#"):
        raise ValueError(f"color must start with '#': {color!r}")
    digits = color[1:]
    if len(digits) not in (3, 6):
        raise ValueError(f"color must be #RGB or #RRGGBB: {color!r}")
    try:
        int(digits, 16)
    except ValueError:
        raise ValueError(f"invalid hex color: {color!r}") from None
    return color


HexColor = Annotated[str, BeforeValidator(_hex_color)]


class ThemeColors(BaseModel):
    """Palette used by the console helpers.

    Attributes:
        text: Table values.
        muted: Table labels and secondary text.
        header: Section banners and table headers.
        border: Table borders.
        success: Completion messages.
        warning: Advisory findings.
        error: Fatal errors.
        info: Progress messages.
        command: ``[RUN]`` prefix of executed commands.
        dry_run: ``[DRY-RUN]`` prefix of simulated actions.
        enabled: Modules selected in the install plan.
        disabled: Modules left out of the install plan.
    """

    model_config = ConfigDict(extra="forbid")

    text: HexColor = "#ffffff"
    muted: HexColor = "#b2bec3"
    header: HexColor = "#69B9A1"
    border: HexColor = "#29526d"
    success: HexColor = "#03b971"
    warning: HexColor = "#f5b332"
    error: HexColor = "#f53263"
    info: HexColor = "#0ec1c8"
    command: HexColor = "#0e8ac8"
    dry_run: HexColor = "#faf870"
    enabled: HexColor = "#c1ff62"
    disabled: HexColor = "#226666"


# Rich style name -> (palette entry, style prefix)
_STYLES: dict[str, tuple[str, str]] = {
    "text": ("text", ""),
    "muted": ("muted", ""),
    "dim": ("muted", ""),
    "header": ("header", ""),
    "bold_header": ("header", "bold"),
    "border": ("border", ""),
    "success": ("success", ""),
    "warning": ("warning", ""),
    "error": ("error", "bold"),
    "info": ("info", ""),
    "command": ("command", ""),
    "dry_run": ("dry_run", "bold"),
    "enabled": ("enabled", "bold"),
    "disabled": ("disabled", ""),
}


def user_theme_path() -> Path:
    """Locate the theme override of the person at the keyboard.

    Returns:
        ``~<sudo user>/.config/archforge/theme.toml`` when running under
        sudo, otherwise the theme file in the current user's config dir.
    """
    invoker = os.environ.get("SUDO_USER")
    if invoker and invoker != "root":
        try:
            home = Path(pwd.getpwnam(invoker).pw_dir)
        except KeyError:
            logger.debug("SUDO_USER %s has no passwd entry", invoker)
        else:
            return home / ".config" / APP_NAME / THEME_FILE
    return get_config_dir() / THEME_FILE


def parse_colors(text: str, source: str) -> dict[str, str]:
    """Extract the ``[colors]`` table from theme TOML.

    Args:
        text: TOML document.
        source: Where the text came from, for log messages.

    Returns:
        Color name to value; empty when the document is unusable.
    """
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        logger.warning("Ignoring theme %s: %s", source, e)
        return {}
    colors = data.get("colors", {})
    if not isinstance(colors, dict):
        logger.warning("Ignoring theme %s: [colors] is not a table", source)
        return {}
    return {str(k): v for k, v in colors.items() if isinstance(v, str)}


def load_theme(override: Path | None = None) -> ThemeColors:
    """Merge the bundled palette with a user override.

    Args:
        override: Override file; defaults to user_theme_path().

    Returns:
        Validated palette. Built-in defaults if the merged result is invalid.
    """
    bundled = resources.files("archforge.data").joinpath(THEME_FILE).read_text(encoding="utf-8")
    colors = parse_colors(bundled, "bundled")

    path = override or user_theme_path()
    try:
        user_text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        user_text = None
    except OSError as e:
        logger.warning("Cannot read theme %s: %s", path, e)
        user_text = None
    if user_text is not None:
        logger.debug("Applying theme overrides from %s", path)
        colors |= parse_colors(user_text, str(path))

    try:
        return ThemeColors.model_validate(colors)
    except ValidationError as e:
        logger.warning("Invalid theme, using defaults: %s", e)
        print(f"Warning: invalid theme {path}, using defaults", file=sys.stderr)
        return ThemeColors()


def get_rich_theme(colors: ThemeColors | None = None) -> Theme:
    """Build the Rich theme used by the shared consoles."""
    palette = colors or load_theme()
    styles: dict[str, str] = {}
    for name, (entry, prefix) in _STYLES.items():
        value = getattr(palette, entry)
        styles[name] = f"{prefix} {value}" if prefix else value
    return Theme(styles)


@cache
def get_theme() -> Theme:
    """Rich theme, loaded once per process."""
    return get_rich_theme()
