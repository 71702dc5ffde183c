"""Workspace configuration: on-disk names, home lookup, server settings."""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

log = logging.getLogger(__name__)

JUMBLE_DIR = ".jumble"
PROJECT_FILE = "project.toml"
CONVENTIONS_FILE = "conventions.toml"
DOCS_FILE = "docs.toml"
WORKSPACE_FILE = "workspace.toml"
GLOBAL_CONFIG_FILE = "jumble.toml"
FLAT_SKILLS_DIR = "skills"
SKILL_MARKER = "SKILL.md"

# Structured skill subtrees, highest precedence first.
STRUCTURED_SKILL_ROOTS = (".claude/skills", ".codex/skills")

# Companion subdirectories listed alongside a structured skill.
COMPANION_DIRS = ("scripts", "references", "docs", "assets", "examples", "templates")

# Directories pruned from the project walk. A performance bound only:
# a project hidden under one of these is simply not found.
DEFAULT_SKIP_DIRS = frozenset({
    ".git", ".hg", ".svn", "node_modules", "__pycache__",
    ".tox", ".mypy_cache", ".pytest_cache", ".ruff_cache",
    "venv", ".venv", ".eggs",
    "dist", "build", "target",
    ".next", ".nuxt", ".output",
    ".gradle", ".idea", ".vscode",
    JUMBLE_DIR,
})


def resolve_home_dir(environ: dict[str, str] | None = None) -> Path | None:
    """Return the user's home directory, or None when it cannot be found.

    Checks ``HOME``, then ``USERPROFILE``, then ``HOMEDRIVE`` + ``HOMEPATH``.
    """
    env = os.environ if environ is None else environ
    home = env.get("HOME", "")
    if home:
        return Path(home)
    profile = env.get("USERPROFILE", "")
    if profile:
        return Path(profile)
    drive, path = env.get("HOMEDRIVE", ""), env.get("HOMEPATH", "")
    if drive or path:
        return Path(drive + path)
    return None


@dataclass(frozen=True)
class ServerConfig:
    """Everything the context store needs to (re)build the workspace.

    *home* is None when there is no user-wide scope; global skills are
    then empty.
    """

    root: Path
    home: Path | None = None
    skip_dirs: frozenset[str] = field(default=DEFAULT_SKIP_DIRS)

    def global_flat_skills_dir(self) -> Path | None:
        if self.home is None:
            return None
        return self.home / JUMBLE_DIR / FLAT_SKILLS_DIR

    def global_structured_roots(self) -> list[Path]:
        if self.home is None:
            return []
        return [self.home / sub for sub in STRUCTURED_SKILL_ROOTS]


def load_global_config(home: Path | None) -> dict:
    """Read the ``[jumble]`` table of ``~/.jumble/jumble.toml``.

    Returns an empty dict when the file is absent or malformed; the file
    is only ever read, never created.
    """
    if home is None:
        return {}
    config_path = home / JUMBLE_DIR / GLOBAL_CONFIG_FILE
    if not config_path.is_file():
        return {}
    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
        log.warning("Ignoring global config %s: %s", config_path, exc)
        return {}
    table = data.get("jumble", {})
    if not isinstance(table, dict):
        log.warning("Ignoring global config %s: [jumble] is not a table", config_path)
        return {}
    return table


def _name_list(table: dict, key: str, source: Path | str) -> list[str]:
    value = table.get(key, [])
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        log.warning("Ignoring '%s' in %s: expected a list of strings", key, source)
        return []
    return value


def build_server_config(
    root: str | Path,
    extra_skip_dirs: tuple[str, ...] | list[str] = (),
    home: Path | None = None,
) -> ServerConfig:
    """Combine the resolved root, the home directory, and the global config.

    ``skip_dirs`` in the global config replaces the default exclusion set,
    ``extra_skip_dirs`` (config file and CLI) extend whichever set is active.
    """
    home = resolve_home_dir() if home is None else home
    table = load_global_config(home)
    source = (home / JUMBLE_DIR / GLOBAL_CONFIG_FILE) if home else "global config"

    skip = set(DEFAULT_SKIP_DIRS)
    if "skip_dirs" in table:
        skip = set(_name_list(table, "skip_dirs", source)) | {JUMBLE_DIR}
    skip.update(_name_list(table, "extra_skip_dirs", source))
    skip.update(extra_skip_dirs)

    return ServerConfig(
        root=Path(root).resolve(),
        home=home,
        skip_dirs=frozenset(skip),
    )
