"""Context store: the cached workspace, replaced wholesale on reload.

Readers grab ``store.snapshot`` once and work on that immutable value for
the whole request; ``reload()`` builds a complete new snapshot off to the
side and swaps the reference under a lock. A failed reload never touches
the current snapshot.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from jumble.errors import DiscoveryError, NotFoundError, ReloadError
from jumble.matching import DEFAULT_MATCHERS, match_name
from jumble.workspace.config import ServerConfig
from jumble.workspace.discovery import DiscoveryResult, ProjectBundle, discover_workspace
from jumble.workspace.metadata import Concept, DocEntry, WorkspaceMetadata
from jumble.workspace.skills import SkillEntry

log = logging.getLogger(__name__)


def _summary_matcher(summaries: dict[str, str]):
    """Extra tier for concepts: unique case-insensitive match on the summary."""

    def matcher(query: str, names: list[str]) -> list[str]:
        q = query.casefold()
        return [n for n in names if q in summaries.get(n, "").casefold()]

    return matcher


@dataclass(frozen=True)
class WorkspaceSnapshot:
    """One complete, immutable view of the workspace."""

    root: Path
    workspace: WorkspaceMetadata | None = None
    projects: dict[str, ProjectBundle] = field(default_factory=dict)
    global_skills: dict[str, SkillEntry] = field(default_factory=dict)

    @classmethod
    def from_discovery(cls, root: Path, result: DiscoveryResult) -> WorkspaceSnapshot:
        return cls(
            root=root,
            workspace=result.workspace,
            projects=dict(result.projects),
            global_skills=dict(result.global_skills),
        )

    def project_names(self) -> list[str]:
        return sorted(self.projects)

    def project(self, query: str) -> ProjectBundle:
        if not self.projects:
            raise NotFoundError(
                f"Project '{query}' not found. No projects are loaded; "
                "add .jumble/project.toml files and call reload_workspace.",
                available=[],
            )
        return self.projects[match_name(query, self.projects, "project")]

    def concept(self, bundle: ProjectBundle, query: str) -> tuple[str, Concept]:
        concepts = bundle.metadata.concepts
        if not concepts:
            raise NotFoundError(
                f"Project '{bundle.name}' defines no concepts.", available=[]
            )
        summaries = {name: c.summary for name, c in concepts.items()}
        name = match_name(
            query, concepts, "concept",
            matchers=DEFAULT_MATCHERS + (_summary_matcher(summaries),),
        )
        return name, concepts[name]

    def skill(self, bundle: ProjectBundle, query: str) -> SkillEntry:
        if not bundle.skills:
            raise NotFoundError(f"No skills found for '{bundle.name}'.", available=[])
        return bundle.skills[match_name(query, bundle.skills, "skill")]

    def doc(self, bundle: ProjectBundle, query: str) -> tuple[str, DocEntry]:
        docs = bundle.docs.docs
        name = match_name(query, docs, "doc")
        return name, docs[name]


Discover = Callable[[ServerConfig], DiscoveryResult]


class ContextStore:
    """Owns the current WorkspaceSnapshot and rebuilds it on demand."""

    def __init__(self, config: ServerConfig, discover: Discover = discover_workspace) -> None:
        self.config = config
        self._discover = discover
        self._lock = threading.Lock()
        self._snapshot = WorkspaceSnapshot(root=config.root)
        self.generation = 0

    @property
    def root(self) -> Path:
        return self.config.root

    @property
    def snapshot(self) -> WorkspaceSnapshot:
        return self._snapshot

    def build(self) -> WorkspaceSnapshot:
        """Run discovery once and install the result.

        Raises DiscoveryError if the root cannot be read; the stored
        snapshot is only replaced after discovery has fully finished.
        """
        with self._lock:
            result = self._discover(self.config)
            snapshot = WorkspaceSnapshot.from_discovery(self.config.root, result)
            self._snapshot = snapshot
            self.generation += 1
        log.info(
            "Loaded %d project(s) from %s (generation %d)",
            len(snapshot.projects), self.config.root, self.generation,
        )
        return snapshot

    def reload(self) -> WorkspaceSnapshot:
        """Rebuild from disk; on failure keep serving the previous snapshot."""
        try:
            return self.build()
        except (DiscoveryError, OSError) as exc:
            log.warning("Reload failed, keeping previous workspace state: %s", exc)
            raise ReloadError(
                f"Failed to reload workspace: {exc}",
                {"root": str(self.config.root)},
            ) from exc
