"""attachtree configuration."""
import os
from pathlib import Path


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_path(name: str) -> Path | None:
    value = (os.getenv(name) or "").strip()
    if not value:
        return None
    return Path(value).expanduser()


# Outline document served by the API and watched for changes
OUTLINE_PATH = Path(os.getenv("ATTACHTREE_OUTLINE_PATH", "outline.yaml")).expanduser()

# Attachment store base (relative paths are taken from the outline's directory)
ATTACH_ROOT = Path(os.getenv("ATTACHTREE_ATTACH_ROOT", "data")).expanduser()

# Mirror layout
SYMLINKS_DIR = os.getenv("ATTACHTREE_SYMLINKS_DIR", ".tree.symlinks")
DATA_LINK = os.getenv("ATTACHTREE_DATA_LINK", "_data")
MIRROR_ROOT = _env_path("ATTACHTREE_MIRROR_ROOT")

# Outline vocabulary
ATTACH_TAG = os.getenv("ATTACHTREE_ATTACH_TAG", "ATTACH")
INHERIT_PROPERTY = os.getenv("ATTACHTREE_INHERIT_PROPERTY", "ATTACH_DIR_INHERIT")
DIR_PROPERTY = os.getenv("ATTACHTREE_DIR_PROPERTY", "DIR")

# When false only the attachment tag marks a node as a carrier
DETECT_FILES = _env_bool("ATTACHTREE_DETECT_FILES", True)

# Bookkeeping files that never count as attachments
LOCAL_VARIABLES_FILE = ".attachtree.yaml"
LINT_CACHE_FILE = ".lint-cache"
IGNORED_FILES = frozenset({LOCAL_VARIABLES_FILE, LINT_CACHE_FILE})

# File watcher
WATCH_ENABLED = _env_bool("ATTACHTREE_WATCH_ENABLED", True)

# Server settings
HOST = os.getenv("ATTACHTREE_HOST", "127.0.0.1")
PORT = _env_int("ATTACHTREE_PORT", 8000)
