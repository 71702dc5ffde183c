"""Project discovery: walk the workspace root for ``.jumble/project.toml`` markers."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from jumble.errors import DiscoveryError
from jumble.workspace.config import JUMBLE_DIR, PROJECT_FILE, ServerConfig
from jumble.workspace.metadata import (
    Conventions,
    Docs,
    ProjectMetadata,
    WorkspaceMetadata,
    load_conventions,
    load_docs,
    load_project,
    load_workspace,
)
from jumble.workspace.skills import SkillEntry, global_skills, merge_skills, project_skills
from jumble.workspace.walk import walk_dirs

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProjectBundle:
    """Everything cached for one project."""

    root: Path
    metadata: ProjectMetadata
    skills: dict[str, SkillEntry] = field(default_factory=dict)
    conventions: Conventions = field(default_factory=Conventions)
    docs: Docs = field(default_factory=Docs)

    @property
    def name(self) -> str:
        return self.metadata.name

    def resolve(self, rel_path: str) -> Path:
        """Resolve a path from the project's metadata against its root."""
        return Path(os.path.normpath(self.root / rel_path))


@dataclass(frozen=True)
class DiscoveryResult:
    workspace: WorkspaceMetadata | None
    projects: dict[str, ProjectBundle]
    global_skills: dict[str, SkillEntry]


def load_bundle(
    project_dir: Path,
    global_set: dict[str, SkillEntry] | None = None,
) -> ProjectBundle | None:
    """Load one project directory, or None if its record is unusable."""
    metadata = load_project(project_dir)
    if metadata is None:
        return None
    return ProjectBundle(
        root=project_dir,
        metadata=metadata,
        skills=merge_skills(global_set or {}, project_skills(project_dir)),
        conventions=load_conventions(project_dir),
        docs=load_docs(project_dir),
    )


def _check_root(root: Path) -> None:
    try:
        with os.scandir(root):
            pass
    except OSError as exc:
        raise DiscoveryError(f"Cannot read workspace root {root}: {exc.strerror or exc}") from exc


def discover_workspace(config: ServerConfig) -> DiscoveryResult:
    """Find every project below ``config.root`` and load it.

    Raises DiscoveryError only when the root itself cannot be read.
    Any per-project problem is logged and that project is left out.
    Two projects declaring the same name: the one found later in the
    (sorted) walk replaces the earlier one, with a warning.
    """
    root = config.root
    _check_root(root)

    workspace = load_workspace(root)
    global_set = global_skills(config)

    projects: dict[str, ProjectBundle] = {}
    for dirpath, _dirnames, _filenames in walk_dirs(root, config.skip_dirs):
        jumble_dir = dirpath / JUMBLE_DIR
        if not jumble_dir.is_dir():
            continue
        if not (jumble_dir / PROJECT_FILE).is_file():
            if dirpath != root:
                log.warning("Skipping %s: %s has no %s", dirpath, JUMBLE_DIR, PROJECT_FILE)
            continue

        bundle = load_bundle(dirpath, global_set)
        if bundle is None:
            continue
        previous = projects.get(bundle.name)
        if previous is not None:
            log.warning(
                "Project name '%s' declared at both %s and %s; using %s",
                bundle.name, previous.root, bundle.root, bundle.root,
            )
        projects[bundle.name] = bundle

    log.info(
        "Discovered %d project(s), %d global skill(s) under %s",
        len(projects), len(global_set), root,
    )
    return DiscoveryResult(workspace=workspace, projects=projects, global_skills=global_set)
