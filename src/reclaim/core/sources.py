"""Scan roots for each category on the running platform."""

from __future__ import annotations

import sys
import tempfile
from pathlib import Path

from reclaim.models.item import Category
from reclaim.utils import xdg_cache_home, xdg_config_home, xdg_data_home, xdg_download_dir

Sources = dict[Category, tuple[Path, ...]]


def _macos_sources(home: Path) -> Sources:
    library = home / "Library"
    return {
        Category.SYSTEM_CACHE: (Path("/Library/Caches"), Path("/System/Library/Caches")),
        Category.USER_CACHE: (library / "Caches",),
        Category.LOGS: (Path("/var/log"), library / "Logs", Path("/Library/Logs")),
        Category.DOWNLOADS: (home / "Downloads",),
        Category.TRASH: (home / ".Trash",),
        Category.APPLICATION_SUPPORT: (library / "Application Support",),
        Category.BROWSER_DATA: (
            library / "Safari" / "Databases",
            library / "Application Support" / "Google" / "Chrome",
            library / "Application Support" / "Firefox",
            library / "Caches" / "com.apple.Safari",
        ),
        Category.TEMP: (Path("/tmp"), Path("/var/tmp"), Path(tempfile.gettempdir())),
        Category.LARGE_FILES: (home,),
        Category.DUPLICATES: (home,),
        Category.OLD_FILES: (home,),
    }


def _xdg_sources(home: Path) -> Sources:
    config = xdg_config_home()
    return {
        Category.SYSTEM_CACHE: (Path("/var/cache"),),
        Category.USER_CACHE: (xdg_cache_home(),),
        Category.LOGS: (Path("/var/log"),),
        Category.DOWNLOADS: (xdg_download_dir(home),),
        Category.TRASH: (xdg_data_home() / "Trash" / "files",),
        Category.APPLICATION_SUPPORT: (config,),
        Category.BROWSER_DATA: (
            home / ".mozilla" / "firefox",
            config / "google-chrome",
            config / "chromium",
            config / "BraveSoftware" / "Brave-Browser",
            config / "microsoft-edge",
        ),
        Category.TEMP: (Path("/tmp"), Path("/var/tmp"), Path(tempfile.gettempdir())),
        Category.LARGE_FILES: (home,),
        Category.DUPLICATES: (home,),
        Category.OLD_FILES: (home,),
    }


def default_sources(home: Path | None = None, platform: str = sys.platform) -> Sources:
    """Map every category to the roots scanned for it.

    Duplicate roots (``/tmp`` is usually the temp dir too) are collapsed.
    """
    home = home or Path.home()
    raw = _macos_sources(home) if platform == "darwin" else _xdg_sources(home)
    return {category: tuple(dict.fromkeys(roots)) for category, roots in raw.items()}
