"""Typed records for the .jumble declarative files, and their loaders.

Every loader here is a pure read: no caching, no writes. Per-file problems
are logged and degrade to the file's empty default, except the project
record, whose absence or corruption drops that one project.
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from jumble.workspace.config import (
    CONVENTIONS_FILE,
    DOCS_FILE,
    JUMBLE_DIR,
    PROJECT_FILE,
    WORKSPACE_FILE,
)

log = logging.getLogger(__name__)


class MetadataError(ValueError):
    """A declarative file parsed as TOML but has the wrong shape."""


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Concept:
    files: tuple[str, ...]
    summary: str


@dataclass(frozen=True)
class ApiInfo:
    openapi: str | None = None
    base_url: str | None = None
    endpoints: tuple[str, ...] = ()


@dataclass(frozen=True)
class ProjectMetadata:
    """One project's record from ``.jumble/project.toml``.

    Mapping fields keep the declaration order of the TOML file.
    """

    name: str
    description: str = ""
    language: str | None = None
    version: str | None = None
    repository: str | None = None
    commands: dict[str, str] = field(default_factory=dict)
    entry_points: dict[str, str] = field(default_factory=dict)
    internal_deps: tuple[str, ...] = ()
    external_deps: tuple[str, ...] = ()
    upstream: tuple[str, ...] = ()
    downstream: tuple[str, ...] = ()
    api: ApiInfo | None = None
    concepts: dict[str, Concept] = field(default_factory=dict)


@dataclass(frozen=True)
class Conventions:
    conventions: dict[str, str] = field(default_factory=dict)
    gotchas: dict[str, str] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not self.conventions and not self.gotchas


@dataclass(frozen=True)
class DocEntry:
    path: str
    summary: str


@dataclass(frozen=True)
class Docs:
    docs: dict[str, DocEntry] = field(default_factory=dict)


@dataclass(frozen=True)
class WorkspaceMetadata:
    name: str | None = None
    description: str | None = None
    conventions: dict[str, str] = field(default_factory=dict)
    gotchas: dict[str, str] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Shape helpers
# ---------------------------------------------------------------------------


def _table(data: dict, key: str) -> dict:
    value = data.get(key, {})
    if not isinstance(value, dict):
        raise MetadataError(f"'{key}' must be a table")
    return value


def _opt_str(data: dict, key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise MetadataError(f"'{key}' must be a string")
    return value


def _str_map(data: dict, key: str) -> dict[str, str]:
    table = _table(data, key)
    for name, value in table.items():
        if not isinstance(value, str):
            raise MetadataError(f"'{key}.{name}' must be a string")
    return dict(table)


def _str_list(data: dict, key: str, where: str = "") -> tuple[str, ...]:
    value = data.get(key, [])
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise MetadataError(f"'{where}{key}' must be a list of strings")
    return tuple(value)


# ---------------------------------------------------------------------------
# Parsers (dict -> record)
# ---------------------------------------------------------------------------


def parse_project(data: dict[str, Any], fallback_name: str) -> ProjectMetadata:
    """Build a ProjectMetadata from a decoded project.toml.

    *fallback_name* (the project directory name) is used when
    ``[project].name`` is missing or empty.
    """
    info = _table(data, "project")
    name = _opt_str(info, "name") or fallback_name

    deps = _table(data, "dependencies")
    related = _table(data, "related_projects")

    api = None
    if "api" in data:
        api_table = _table(data, "api")
        api = ApiInfo(
            openapi=_opt_str(api_table, "openapi"),
            base_url=_opt_str(api_table, "base_url"),
            endpoints=_str_list(api_table, "endpoints", "api."),
        )

    concepts: dict[str, Concept] = {}
    for concept_name, concept in _table(data, "concepts").items():
        if not isinstance(concept, dict):
            raise MetadataError(f"'concepts.{concept_name}' must be a table")
        concepts[concept_name] = Concept(
            files=_str_list(concept, "files", f"concepts.{concept_name}."),
            summary=_opt_str(concept, "summary") or "",
        )

    return ProjectMetadata(
        name=name,
        description=_opt_str(info, "description") or "",
        language=_opt_str(info, "language"),
        version=_opt_str(info, "version"),
        repository=_opt_str(info, "repository"),
        commands=_str_map(data, "commands"),
        entry_points=_str_map(data, "entry_points"),
        internal_deps=_str_list(deps, "internal", "dependencies."),
        external_deps=_str_list(deps, "external", "dependencies."),
        upstream=_str_list(related, "upstream", "related_projects."),
        downstream=_str_list(related, "downstream", "related_projects."),
        api=api,
        concepts=concepts,
    )


def parse_conventions(data: dict[str, Any]) -> Conventions:
    return Conventions(
        conventions=_str_map(data, "conventions"),
        gotchas=_str_map(data, "gotchas"),
    )


def parse_docs(data: dict[str, Any]) -> Docs:
    docs: dict[str, DocEntry] = {}
    for topic, entry in _table(data, "docs").items():
        if not isinstance(entry, dict):
            raise MetadataError(f"'docs.{topic}' must be a table")
        path = _opt_str(entry, "path")
        if not path:
            raise MetadataError(f"'docs.{topic}.path' is required")
        docs[topic] = DocEntry(path=path, summary=_opt_str(entry, "summary") or "")
    return Docs(docs=docs)


def parse_workspace(data: dict[str, Any]) -> WorkspaceMetadata:
    info = _table(data, "workspace")
    return WorkspaceMetadata(
        name=_opt_str(info, "name"),
        description=_opt_str(info, "description"),
        conventions=_str_map(data, "conventions"),
        gotchas=_str_map(data, "gotchas"),
    )


# ---------------------------------------------------------------------------
# Loaders (path -> record)
# ---------------------------------------------------------------------------


def _read_toml(path: Path) -> dict[str, Any]:
    with open(path, "rb") as f:
        return tomllib.load(f)


def _load_optional(path: Path, parser, default):
    """Parse *path* with *parser*, returning *default* if absent or broken."""
    if not path.is_file():
        return default
    try:
        return parser(_read_toml(path))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError, MetadataError) as exc:
        log.warning("Ignoring malformed %s: %s", path, exc)
        return default


def load_project(project_dir: Path) -> ProjectMetadata | None:
    """Load ``<project_dir>/.jumble/project.toml``.

    Returns None (and logs) when the record is missing or malformed, which
    excludes this project from discovery without affecting any other.
    """
    path = project_dir / JUMBLE_DIR / PROJECT_FILE
    try:
        data = _read_toml(path)
        return parse_project(data, fallback_name=project_dir.name)
    except FileNotFoundError:
        log.warning("Skipping %s: no %s", project_dir, PROJECT_FILE)
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError, MetadataError) as exc:
        log.warning("Skipping project at %s: malformed %s: %s", project_dir, path, exc)
    return None


def load_conventions(project_dir: Path) -> Conventions:
    return _load_optional(
        project_dir / JUMBLE_DIR / CONVENTIONS_FILE, parse_conventions, Conventions()
    )


def load_docs(project_dir: Path) -> Docs:
    return _load_optional(project_dir / JUMBLE_DIR / DOCS_FILE, parse_docs, Docs())


def load_workspace(root: Path) -> WorkspaceMetadata | None:
    """Load the workspace record at *root*, or None if absent or malformed."""
    return _load_optional(root / JUMBLE_DIR / WORKSPACE_FILE, parse_workspace, None)
