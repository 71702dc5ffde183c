"""Skill discovery: flat ``*.md`` skills and structured ``SKILL.md`` directories.

Two scopes are resolved independently and then overlaid:

    global   ~/.jumble/skills/*.md, ~/.claude/skills/**/SKILL.md, ~/.codex/skills/**/SKILL.md
    project  <p>/.jumble/skills/*.md, <p>/.claude/skills/**/SKILL.md, <p>/.codex/skills/**/SKILL.md

Inside a scope, structured skills override flat ones and ``.claude`` wins
over ``.codex``. Across scopes the project entry always replaces the
global entry of the same name, whatever kind either one is.

A structured skill may ship companion files::

    my-skill/
    ├── SKILL.md
    ├── scripts/run.sh
    └── references/api.md

which are listed (not read) when the skill is retrieved.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import yaml

from jumble.workspace.config import (
    COMPANION_DIRS,
    FLAT_SKILLS_DIR,
    JUMBLE_DIR,
    SKILL_MARKER,
    STRUCTURED_SKILL_ROOTS,
    ServerConfig,
)
from jumble.workspace.walk import walk_dirs

log = logging.getLogger(__name__)

# Skill files above this size are skipped.
MAX_SKILL_FILE_SIZE = 10 * 1024 * 1024

PREVIEW_MAX_LINES = 16

PROVENANCE_PROJECT = "project"
PROVENANCE_GLOBAL = "global"

# Never descend into these while looking for SKILL.md markers.
_SKILL_WALK_SKIP = frozenset({".git", "node_modules", "__pycache__", ".venv", "venv"})


class SkillKind(str, Enum):
    FLAT = "flat"
    STRUCTURED = "structured"


class SkillFileError(ValueError):
    """A skill file could be read but its frontmatter is unusable."""


@dataclass(frozen=True)
class SkillEntry:
    """One discovered skill.

    *directory* is the folder holding the skill file; for structured
    skills it is also the base of every companion path.
    """

    name: str
    kind: SkillKind
    body: str
    directory: Path
    provenance: str
    path: Path
    description: str | None = None
    tags: tuple[str, ...] = ()

    @property
    def preview(self) -> str:
        return "\n".join(self.body.splitlines()[:PREVIEW_MAX_LINES])

    def summary(self) -> str:
        """Frontmatter description, else the first non-blank preview line."""
        if self.description:
            return self.description
        for line in self.preview.splitlines():
            if line.strip():
                return line.strip()
        return ""


# ---------------------------------------------------------------------------
# Frontmatter
# ---------------------------------------------------------------------------


def split_frontmatter(content: str) -> tuple[dict | None, str]:
    """Split a ``---`` delimited YAML header from the markdown body.

    Returns ``(None, content)`` when there is no closed header. Raises
    SkillFileError when the header is not a YAML mapping.
    """
    text = content.replace("\r\n", "\n")
    if not text.startswith("---\n"):
        return None, content
    rest = text[4:]
    if rest.startswith("---\n"):
        header, body = "", rest[4:]
    else:
        end = rest.find("\n---\n")
        if end != -1:
            header, body = rest[:end], rest[end + 5:]
        elif rest.endswith("\n---"):
            header, body = rest[:-4], ""
        else:
            return None, content

    try:
        data = yaml.safe_load(header) if header.strip() else {}
    except yaml.YAMLError as exc:
        raise SkillFileError(f"invalid YAML frontmatter: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise SkillFileError("frontmatter is not a mapping")
    return data, body


def _fm_str(frontmatter: dict, key: str) -> str | None:
    value = frontmatter.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _fm_tags(frontmatter: dict) -> tuple[str, ...]:
    tags = frontmatter.get("tags")
    if isinstance(tags, list):
        return tuple(str(t) for t in tags)
    return ()


def read_skill(path: Path, kind: SkillKind, provenance: str) -> SkillEntry | None:
    """Parse one skill file, or log and return None if it is unusable.

    Flat skills are named after the file stem; structured skills take the
    frontmatter ``name`` and fall back to the containing directory name.
    """
    try:
        size = path.stat().st_size
        if size > MAX_SKILL_FILE_SIZE:
            log.warning("Skipping skill %s: file too large (%d bytes)", path, size)
            return None
        content = path.read_text(encoding="utf-8")
        frontmatter, body = split_frontmatter(content)
    except (OSError, UnicodeDecodeError) as exc:
        log.warning("Skipping unreadable skill %s: %s", path, exc)
        return None
    except SkillFileError as exc:
        log.warning("Skipping malformed skill %s: %s", path, exc)
        return None

    frontmatter = frontmatter or {}
    if kind is SkillKind.FLAT:
        name = path.stem
    else:
        name = _fm_str(frontmatter, "name") or path.parent.name

    return SkillEntry(
        name=name,
        kind=kind,
        body=body,
        directory=path.parent,
        provenance=provenance,
        path=path,
        description=_fm_str(frontmatter, "description"),
        tags=_fm_tags(frontmatter),
    )


# ---------------------------------------------------------------------------
# Source loaders
# ---------------------------------------------------------------------------


def load_flat_skills(skills_dir: Path | None, provenance: str) -> dict[str, SkillEntry]:
    """Load every ``*.md`` directly inside *skills_dir*, keyed by stem."""
    if skills_dir is None or not skills_dir.is_dir():
        return {}
    try:
        candidates = sorted(skills_dir.iterdir())
    except OSError as exc:
        log.warning("Cannot list skills in %s: %s", skills_dir, exc)
        return {}

    skills: dict[str, SkillEntry] = {}
    for path in candidates:
        if path.suffix.lower() != ".md" or not path.is_file():
            continue
        entry = read_skill(path, SkillKind.FLAT, provenance)
        if entry is not None:
            skills[entry.name] = entry
    return skills


def _marker_in(filenames: list[str]) -> str | None:
    marker = SKILL_MARKER.lower()
    for fname in filenames:
        if fname.lower() == marker:
            return fname
    return None


def load_structured_skills(root: Path, provenance: str) -> dict[str, SkillEntry]:
    """Find every directory below *root* holding a ``SKILL.md`` marker.

    The first skill of a given name in sorted walk order wins; later
    duplicates are logged and ignored.
    """
    if not root.is_dir():
        return {}
    skills: dict[str, SkillEntry] = {}
    for dirpath, _dirnames, filenames in walk_dirs(root, _SKILL_WALK_SKIP):
        marker = _marker_in(filenames)
        if marker is None:
            continue
        entry = read_skill(dirpath / marker, SkillKind.STRUCTURED, provenance)
        if entry is None:
            continue
        if entry.name in skills:
            log.warning(
                "Duplicate skill '%s' at %s ignored (already loaded from %s)",
                entry.name, entry.path, skills[entry.name].path,
            )
            continue
        skills[entry.name] = entry
    return skills


def resolve_scope(
    flat_dir: Path | None,
    structured_roots: list[Path],
    provenance: str,
) -> dict[str, SkillEntry]:
    """Merge one scope's sources. *structured_roots* is highest-first."""
    skills = load_flat_skills(flat_dir, provenance)
    structured: dict[str, SkillEntry] = {}
    for root in reversed(structured_roots):
        structured.update(load_structured_skills(root, provenance))
    skills.update(structured)
    return skills


def global_skills(config: ServerConfig) -> dict[str, SkillEntry]:
    """The user-wide skill set; empty when there is no home directory."""
    return resolve_scope(
        config.global_flat_skills_dir(),
        config.global_structured_roots(),
        PROVENANCE_GLOBAL,
    )


def project_skills(project_dir: Path) -> dict[str, SkillEntry]:
    return resolve_scope(
        project_dir / JUMBLE_DIR / FLAT_SKILLS_DIR,
        [project_dir / sub for sub in STRUCTURED_SKILL_ROOTS],
        PROVENANCE_PROJECT,
    )


def merge_skills(
    global_set: dict[str, SkillEntry],
    project_set: dict[str, SkillEntry],
) -> dict[str, SkillEntry]:
    """Overlay *project_set* on *global_set*; result is sorted by name."""
    merged = dict(global_set)
    merged.update(project_set)
    return {name: merged[name] for name in sorted(merged)}


# ---------------------------------------------------------------------------
# Companion files
# ---------------------------------------------------------------------------


def list_companion_files(skill: SkillEntry) -> list[str]:
    """List companion files of a structured skill, relative to its directory.

    Only the allow-listed top-level categories are considered; each one
    that exists is listed recursively. Flat skills have none.
    """
    if skill.kind is not SkillKind.STRUCTURED:
        return []
    files: list[str] = []
    for category in COMPANION_DIRS:
        category_dir = skill.directory / category
        if not category_dir.is_dir():
            continue
        for dirpath, _dirnames, filenames in walk_dirs(category_dir):
            for fname in filenames:
                files.append((dirpath / fname).relative_to(skill.directory).as_posix())
    return sorted(files)
