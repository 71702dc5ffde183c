"""Markdown formatting of resolved project data for AI consumption.

Every function here takes already-resolved values and returns a string;
nothing reads the filesystem or the store.
"""

from __future__ import annotations

from pathlib import Path

from jumble.workspace.discovery import ProjectBundle
from jumble.workspace.metadata import Concept, ProjectMetadata


def bullet(name: str, text: str = "") -> str:
    if text:
        return f"- **{name}**: {text}"
    return f"- **{name}**"


def bullet_list(items: list[str] | tuple[str, ...]) -> list[str]:
    return [f"- {item}" for item in items]


def section(title: str, lines: list[str]) -> str:
    return "\n".join([title, *lines])


def join_blocks(blocks: list[str]) -> str:
    return "\n\n".join(b.rstrip("\n") for b in blocks if b)


def format_commands(commands: dict[str, str]) -> str:
    if not commands:
        return "No commands defined."
    return "\n".join(bullet(name, f"`{cmd}`") for name, cmd in commands.items())


def format_command(name: str, command: str) -> str:
    return f"{name}: {command}"


def format_entry_points(bundle: ProjectBundle) -> str:
    entry_points = bundle.metadata.entry_points
    if not entry_points:
        return "No entry points defined."
    return "\n".join(bullet(label, str(bundle.resolve(rel))) for label, rel in entry_points.items())


def format_dependencies(meta: ProjectMetadata) -> str:
    blocks = []
    if meta.internal_deps:
        blocks.append(section("**Internal dependencies:**", bullet_list(meta.internal_deps)))
    if meta.external_deps:
        blocks.append(section("**External dependencies:**", bullet_list(meta.external_deps)))
    return "\n".join(blocks) if blocks else "No dependencies defined."


def format_related_projects(meta: ProjectMetadata) -> str:
    blocks = []
    if meta.upstream:
        blocks.append(section("**Upstream (this project depends on):**", bullet_list(meta.upstream)))
    if meta.downstream:
        blocks.append(section("**Downstream (depends on this project):**", bullet_list(meta.downstream)))
    return "\n".join(blocks) if blocks else "No related projects defined."


def format_api(bundle: ProjectBundle) -> str:
    api = bundle.metadata.api
    if api is None:
        return "No API information defined."
    lines = []
    if api.openapi:
        lines.append(f"**OpenAPI spec:** {bundle.resolve(api.openapi)}")
    if api.base_url:
        lines.append(f"**Base URL:** {api.base_url}")
    if api.endpoints:
        lines.append("**Endpoints:**")
        lines.extend(bullet_list(api.endpoints))
    return "\n".join(lines) if lines else "API section defined but empty."


def format_files(bundle: ProjectBundle, files: tuple[str, ...]) -> list[str]:
    return bullet_list([str(bundle.resolve(f)) for f in files])


def format_concept(bundle: ProjectBundle, name: str, concept: Concept) -> str:
    files = format_files(bundle, concept.files) or ["(no files listed)"]
    return join_blocks([f"## {name}", concept.summary, section("**Files:**", files)])


def format_named_texts(title: str, entries: dict[str, str]) -> str:
    return join_blocks([title] + [f"## {name}\n{text}" for name, text in entries.items()])


def format_path_listing(base: Path, rel_paths: list[str]) -> str:
    return section(f"Base: {base}", bullet_list(rel_paths))
