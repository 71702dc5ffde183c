"""Operation catalog exposed through ``tools/call``.

Each operation is a plain function ``(store, arguments) -> str`` registered
with ``@_tool``. The catalog returned by ``tools/list`` is built from the
registrations and never depends on what is loaded in the store.

Lookup failures raise NotFoundError / AmbiguousMatchError; argument
problems raise InvalidParamsError. The dispatcher turns both into
structured protocol errors.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from jumble.errors import InvalidParamsError, NotFoundError
from jumble.output.formatter import (
    bullet,
    format_api,
    format_command,
    format_commands,
    format_concept,
    format_dependencies,
    format_entry_points,
    format_files,
    format_named_texts,
    format_path_listing,
    format_related_projects,
    join_blocks,
    section,
)
from jumble.workspace.graph import (
    build_dependency_graph,
    depends_on,
    external_nodes,
    find_cycles,
    used_by,
)
from jumble.workspace.skills import list_companion_files
from jumble.workspace.store import ContextStore

Handler = Callable[[ContextStore, dict], str]


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    properties: dict[str, dict] = field(default_factory=dict)
    required: tuple[str, ...] = ()
    handler: Handler | None = None
    read_only: bool = True

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": {
                "type": "object",
                "properties": self.properties,
                "required": list(self.required),
            },
        }

    def validate(self, arguments: dict) -> None:
        """Check required arguments and value types against the schema.

        Unknown extra arguments are ignored.
        """
        for name in self.required:
            value = arguments.get(name)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise InvalidParamsError(
                    f"Missing '{name}' argument for {self.name}",
                    {"tool": self.name, "argument": name},
                )
        for name, schema in self.properties.items():
            if name not in arguments or arguments[name] is None:
                continue
            value = arguments[name]
            if not isinstance(value, str):
                raise InvalidParamsError(
                    f"Argument '{name}' of {self.name} must be a string",
                    {"tool": self.name, "argument": name},
                )
            allowed = schema.get("enum")
            if allowed and value not in allowed:
                raise InvalidParamsError(
                    f"Unknown {name} '{value}'. Use one of: {', '.join(allowed)}.",
                    {"tool": self.name, "argument": name, "allowed": list(allowed)},
                )


TOOLS: dict[str, ToolSpec] = {}


def _param(description: str, enum: list[str] | None = None) -> dict:
    schema = {"type": "string", "description": description}
    if enum:
        schema["enum"] = enum
    return schema


_PROJECT = _param("The project name (exact, case-insensitive, or unique partial match)")
_CATEGORY = _param("Optional: 'conventions' or 'gotchas' to filter results",
                   enum=["conventions", "gotchas"])
_FIELDS = ["commands", "entry_points", "dependencies", "api", "related_projects"]


def _tool(name: str, description: str, properties: dict | None = None,
          required: tuple[str, ...] = (), read_only: bool = True):
    """Register an operation in the static catalog."""
    def decorator(fn: Handler) -> Handler:
        TOOLS[name] = ToolSpec(
            name=name,
            description=description,
            properties=properties or {},
            required=required,
            handler=fn,
            read_only=read_only,
        )
        return fn
    return decorator


def tools_list() -> dict:
    return {"tools": [spec.to_dict() for spec in TOOLS.values()]}


def _arg(args: dict, name: str) -> str | None:
    value = args.get(name)
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return None


# ---------------------------------------------------------------------------
# Project tools
# ---------------------------------------------------------------------------


@_tool(
    name="list_projects",
    description=("Lists all projects with their descriptions. Use this to discover "
                 "what projects exist in the workspace."),
)
def list_projects(store: ContextStore, args: dict) -> str:
    snap = store.snapshot
    if not snap.projects:
        return "No projects found. Make sure .jumble/project.toml files exist in your workspace."
    lines = []
    for name in snap.project_names():
        bundle = snap.projects[name]
        meta = bundle.metadata
        lines.append(f"- **{name}** ({meta.language or 'unknown'}): {meta.description}")
        lines.append(f"  Path: {bundle.root}")
    return "\n".join(lines)


@_tool(
    name="get_project_info",
    description=("Returns metadata about a specific project including description, "
                 "language, version, entry points, and dependencies."),
    properties={
        "project": _PROJECT,
        "field": _param("Optional specific field to retrieve: 'commands', 'entry_points', "
                        "'dependencies', 'api', 'related_projects'", enum=_FIELDS),
    },
    required=("project",),
)
def get_project_info(store: ContextStore, args: dict) -> str:
    bundle = store.snapshot.project(_arg(args, "project"))
    meta = bundle.metadata
    field_name = _arg(args, "field")

    if field_name == "commands":
        return format_commands(meta.commands)
    if field_name == "entry_points":
        return format_entry_points(bundle)
    if field_name == "dependencies":
        return format_dependencies(meta)
    if field_name == "api":
        return format_api(bundle)
    if field_name == "related_projects":
        return format_related_projects(meta)

    header = [f"**Description:** {meta.description}"]
    if meta.language:
        header.append(f"**Language:** {meta.language}")
    if meta.version:
        header.append(f"**Version:** {meta.version}")
    if meta.repository:
        header.append(f"**Repository:** {meta.repository}")
    header.append(f"**Path:** {bundle.root}")

    blocks = [f"# {meta.name}", "\n".join(header)]
    if meta.entry_points:
        blocks.append(section("## Entry Points", [format_entry_points(bundle)]))
    if meta.commands:
        blocks.append(section("## Commands", [format_commands(meta.commands)]))
    if meta.concepts:
        blocks.append(section(
            "## Concepts",
            [bullet(name, c.summary) for name, c in meta.concepts.items()],
        ))
    return join_blocks(blocks)


@_tool(
    name="get_commands",
    description="Returns executable commands for a project (build, test, lint, run, dev, etc.)",
    properties={
        "project": _PROJECT,
        "command_type": _param("Optional specific command type: 'build', 'test', 'lint', 'run', 'dev'"),
    },
    required=("project",),
)
def get_commands(store: ContextStore, args: dict) -> str:
    bundle = store.snapshot.project(_arg(args, "project"))
    commands = bundle.metadata.commands
    command_type = _arg(args, "command_type")
    if command_type is None:
        return format_commands(commands)
    if command_type not in commands:
        raise NotFoundError(
            f"Command '{command_type}' not found for project '{bundle.name}'.",
            available=list(commands),
        )
    return format_command(command_type, commands[command_type])


@_tool(
    name="get_architecture",
    description=("Returns architectural info for a specific concept/area of a project, "
                 "including relevant files and a summary."),
    properties={
        "project": _PROJECT,
        "concept": _param("The architectural concept to look up "
                          "(e.g., 'authentication', 'routing', 'database')"),
    },
    required=("project", "concept"),
)
def get_architecture(store: ContextStore, args: dict) -> str:
    snap = store.snapshot
    bundle = snap.project(_arg(args, "project"))
    name, concept = snap.concept(bundle, _arg(args, "concept"))
    return format_concept(bundle, name, concept)


@_tool(
    name="get_related_files",
    description="Finds files related to a concept or feature by searching through all defined concepts.",
    properties={
        "project": _PROJECT,
        "query": _param("Search query to match against concept names and summaries"),
    },
    required=("project", "query"),
)
def get_related_files(store: ContextStore, args: dict) -> str:
    bundle = store.snapshot.project(_arg(args, "project"))
    query = args["query"].strip()
    q = query.casefold()
    concepts = bundle.metadata.concepts
    matched = [
        (name, c) for name, c in concepts.items()
        if q in name.casefold() or q in c.summary.casefold()
    ]
    if not matched:
        raise NotFoundError(
            f"No concepts matching '{query}' found in '{bundle.name}'.",
            available=list(concepts),
        )

    blocks = [f"Files related to '{query}':"]
    all_files: list[str] = []
    for name, concept in matched:
        blocks.append(format_concept(bundle, name, concept))
        for f in concept.files:
            if f not in all_files:
                all_files.append(f)
    if len(matched) > 1:
        blocks.append(section("## All files", format_files(bundle, tuple(all_files))))
    return join_blocks(blocks)


# ---------------------------------------------------------------------------
# Skills
# ---------------------------------------------------------------------------


@_tool(
    name="list_skills",
    description=("Lists available skills for a project: project-local skills plus "
                 "user-wide ones. Skills provide focused context for specific tasks "
                 "like adding endpoints, debugging, etc."),
    properties={"project": _PROJECT},
    required=("project",),
)
def list_skills(store: ContextStore, args: dict) -> str:
    bundle = store.snapshot.project(_arg(args, "project"))
    if not bundle.skills:
        return (
            f"No skills found for '{bundle.name}'. Create .jumble/skills/*.md files or "
            ".claude/skills/<name>/SKILL.md directories to add task-specific context."
        )
    lines = []
    for name, skill in bundle.skills.items():
        line = f"- {name} [{skill.provenance}, {skill.kind.value}]"
        summary = skill.summary()
        if summary:
            line += f": {summary}"
        lines.append(line)
    return join_blocks([
        section(f"Available skills for '{bundle.name}':", [""] + lines),
        "Use get_skill(project, topic) to retrieve a specific skill.",
    ])


@_tool(
    name="get_skill",
    description=("Retrieves a skill containing focused context and instructions for a "
                 "particular task, plus the companion files that ship with it."),
    properties={
        "project": _PROJECT,
        "topic": _param("The skill name (e.g., 'add-endpoint', 'debug-auth')"),
    },
    required=("project", "topic"),
)
def get_skill(store: ContextStore, args: dict) -> str:
    snap = store.snapshot
    bundle = snap.project(_arg(args, "project"))
    skill = snap.skill(bundle, _arg(args, "topic"))

    header = [f"**Source:** {skill.provenance} ({skill.kind.value})", f"**Path:** {skill.path}"]
    if skill.description:
        header.insert(0, f"**Description:** {skill.description}")
    if skill.tags:
        header.append(f"**Tags:** {', '.join(skill.tags)}")

    companions = list_companion_files(skill)
    if companions:
        listing = section("## Companion files", [format_path_listing(skill.directory, companions)])
    else:
        listing = "## Companion files\nNone."
    return join_blocks([f"# Skill: {skill.name}", "\n".join(header), skill.body.strip(), listing])


# ---------------------------------------------------------------------------
# Conventions and docs
# ---------------------------------------------------------------------------


def _render_conventions(label: str, conventions: dict[str, str], gotchas: dict[str, str],
                        category: str | None, scope: str) -> str:
    if category == "conventions":
        if not conventions:
            return f"No {scope}conventions defined."
        return format_named_texts(f"# Conventions for {label}", conventions)
    if category == "gotchas":
        if not gotchas:
            return f"No {scope}gotchas defined."
        return format_named_texts(f"# Gotchas for {label}", gotchas)
    blocks = []
    if conventions:
        blocks.append(format_named_texts(f"# Conventions for {label}", conventions))
    if gotchas:
        blocks.append(format_named_texts(f"# Gotchas for {label}", gotchas))
    return join_blocks(blocks)


@_tool(
    name="get_conventions",
    description=("Returns project-specific coding conventions and gotchas. Conventions are "
                 "architectural patterns and standards; gotchas are common mistakes to avoid."),
    properties={"project": _PROJECT, "category": _CATEGORY},
    required=("project",),
)
def get_conventions(store: ContextStore, args: dict) -> str:
    bundle = store.snapshot.project(_arg(args, "project"))
    conv = bundle.conventions
    if conv.is_empty():
        return (
            f"No conventions found for '{bundle.name}'. Create .jumble/conventions.toml "
            "to add project-specific conventions and gotchas."
        )
    return _render_conventions(
        f"'{bundle.name}'", conv.conventions, conv.gotchas, _arg(args, "category"), ""
    )


@_tool(
    name="get_docs",
    description=("Returns a documentation index for a project, listing available docs with "
                 "summaries. Optionally retrieves the path to a specific doc."),
    properties={
        "project": _PROJECT,
        "topic": _param("Optional: specific doc topic to get the path for"),
    },
    required=("project",),
)
def get_docs(store: ContextStore, args: dict) -> str:
    snap = store.snapshot
    bundle = snap.project(_arg(args, "project"))
    docs = bundle.docs.docs
    if not docs:
        return (
            f"No documentation index found for '{bundle.name}'. Create .jumble/docs.toml "
            "to index project documentation."
        )

    topic = _arg(args, "topic")
    if topic is not None:
        name, doc = snap.doc(bundle, topic)
        return "\n".join([
            f"## {name}",
            f"**Summary:** {doc.summary}",
            f"**Path:** {bundle.resolve(doc.path)}",
        ])

    return join_blocks([
        f"# Documentation for '{bundle.name}'",
        "\n".join(bullet(name, doc.summary) for name, doc in docs.items()),
        "Use get_docs(project, topic) to get the path to a specific doc.",
    ])


# ---------------------------------------------------------------------------
# Workspace
# ---------------------------------------------------------------------------


@_tool(
    name="get_workspace_overview",
    description=("Returns a high-level overview of the entire workspace: workspace info, all "
                 "projects with descriptions, and their dependency relationships. Call this "
                 "first to understand the workspace structure."),
)
def get_workspace_overview(store: ContextStore, args: dict) -> str:
    snap = store.snapshot
    ws = snap.workspace

    blocks = [f"# {ws.name if ws and ws.name else 'Workspace Overview'}"]
    if ws and ws.description:
        blocks.append(ws.description)
    blocks.append(f"**Root:** {snap.root}")

    if not snap.projects:
        blocks.append("No projects found.")
        return join_blocks(blocks)

    project_lines = [""]
    for name in snap.project_names():
        meta = snap.projects[name].metadata
        project_lines.append(f"- **{name}** ({meta.language or 'unknown'}): {meta.description}")
    blocks.append(section("## Projects", project_lines))

    G = build_dependency_graph(snap.projects)
    dep_lines: list[str] = []
    for name in snap.project_names():
        upstream, downstream = depends_on(G, name), used_by(G, name)
        if not upstream and not downstream:
            continue
        dep_lines.append(f"**{name}**:")
        if upstream:
            dep_lines.append(f"  ← depends on: {', '.join(upstream)}")
        if downstream:
            dep_lines.append(f"  → used by: {', '.join(downstream)}")
    blocks.append(section("## Dependencies", [""] + (dep_lines or ["No cross-project dependencies defined."])))

    external = external_nodes(G)
    if external:
        blocks.append(f"**Not in workspace:** {', '.join(external)}")
    cycles = find_cycles(G)
    if cycles:
        blocks.append(section("**Dependency cycles:**", [" → ".join(c + c[:1]) for c in cycles]))

    if ws is not None:
        blocks.append("*Use get_workspace_conventions() for workspace-wide coding standards.*")
    return join_blocks(blocks)


@_tool(
    name="get_workspace_conventions",
    description=("Returns workspace-level conventions and gotchas that apply across all "
                 "projects in the workspace."),
    properties={"category": _CATEGORY},
)
def get_workspace_conventions(store: ContextStore, args: dict) -> str:
    ws = store.snapshot.workspace
    if ws is None:
        raise NotFoundError(
            "No workspace.toml found. Create .jumble/workspace.toml at the workspace root "
            "to define workspace-level conventions."
        )
    if not ws.conventions and not ws.gotchas:
        return "Workspace config exists but no conventions or gotchas defined."
    return _render_conventions(
        ws.name or "Workspace", ws.conventions, ws.gotchas, _arg(args, "category"), "workspace "
    )


@_tool(
    name="reload_workspace",
    description=("Reloads workspace and project metadata from disk. Use this after editing "
                 ".jumble files to pick up changes without restarting the server."),
    read_only=False,
)
def reload_workspace(store: ContextStore, args: dict) -> str:
    snap = store.reload()
    return (
        f"Workspace and projects reloaded from disk. "
        f"{len(snap.projects)} project(s) loaded from {snap.root}."
    )
