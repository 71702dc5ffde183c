"""Shared test fixtures and helpers for jumble tests.

Provides:
- Isolation: every test gets a private HOME and no JUMBLE_* env vars
- File helpers: write_files(), project_toml()
- Composable workspace fixtures: workspace -> store -> dispatcher
- Factory fixture: workspace_factory for custom layouts
- Protocol helpers: request(), call_tool(), tool_text()
- CliRunner fixtures: cli_runner, invoke_cli()
"""

from __future__ import annotations

import json
import logging

import pytest
from click.testing import CliRunner

# ===========================================================================
# Environment isolation
# ===========================================================================


@pytest.fixture(autouse=True)
def home(tmp_path_factory, monkeypatch):
    """Point HOME at an empty throwaway directory for every test."""
    home_dir = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home_dir))
    for var in ("USERPROFILE", "HOMEDRIVE", "HOMEPATH", "JUMBLE_ROOT", "JUMBLE_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    return home_dir


@pytest.fixture(autouse=True)
def _restore_logging():
    """Undo the CLI's logging.basicConfig(force=True) after each test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


# ===========================================================================
# File helpers
# ===========================================================================


def write_files(base, files):
    """Write {relative_path: content} under *base*, creating parents."""
    for rel_path, content in files.items():
        fp = base / rel_path
        fp.parent.mkdir(parents=True, exist_ok=True)
        fp.write_text(content, encoding="utf-8")
    return base


def project_toml(name, description="", language=None, extra=""):
    """Minimal .jumble/project.toml text."""
    lines = ["[project]", f'name = "{name}"', f'description = "{description}"']
    if language:
        lines.append(f'language = "{language}"')
    return "\n".join(lines) + "\n" + extra


API_SERVER_TOML = '''\
[project]
name = "api-server"
description = "REST API backend"
language = "python"
version = "1.4.0"
repository = "https://example.com/api-server"

[commands]
build = "make build"
test = "pytest -q"
lint = "ruff check ."

[entry_points]
main = "src/main.py"
cli = "src/cli.py"

[dependencies]
internal = ["shared-lib"]
external = ["fastapi", "sqlalchemy"]

[related_projects]
upstream = ["shared-lib"]
downstream = ["web-client"]

[api]
openapi = "docs/openapi.yaml"
base_url = "/api/v1"
endpoints = ["GET /users", "POST /login"]

[concepts.authentication]
files = ["src/auth/jwt.py", "src/auth/session.py"]
summary = "JWT tokens with refresh rotation"

[concepts.routing]
files = ["src/routes.py"]
summary = "Route table and middleware"

[concepts.database]
files = ["src/db/models.py", "src/auth/session.py"]
summary = "SQLAlchemy models and session handling"
'''

API_SERVER_CONVENTIONS = '''\
[conventions]
error_handling = "Raise HTTPException, never return error dicts"
naming = "snake_case everywhere"

[gotchas]
migrations = "Run alembic before starting the server"
'''

API_SERVER_DOCS = '''\
[docs.architecture]
path = "docs/architecture.md"
summary = "System overview"

[docs.deployment]
path = "docs/deploy.md"
summary = "How to deploy"
'''

WORKSPACE_TOML = '''\
[workspace]
name = "Acme Platform"
description = "All Acme services"

[conventions]
commits = "Conventional commits"

[gotchas]
ports = "api-server owns port 8000"
'''

DEBUG_AUTH_SKILL = '''\
---
name: debug-auth
description: Track down failing logins
tags: [auth, debugging]
---
# Debugging auth

1. Check the token expiry.
'''


def sample_workspace(root):
    """Three projects, a workspace record, and a mix of skills."""
    return write_files(root, {
        ".jumble/workspace.toml": WORKSPACE_TOML,
        "api-server/.jumble/project.toml": API_SERVER_TOML,
        "api-server/.jumble/conventions.toml": API_SERVER_CONVENTIONS,
        "api-server/.jumble/docs.toml": API_SERVER_DOCS,
        "api-server/.jumble/skills/add-endpoint.md": "Add a route in src/routes.py.\nThen add a test.\n",
        "api-server/.claude/skills/debug-auth/SKILL.md": DEBUG_AUTH_SKILL,
        "api-server/.claude/skills/debug-auth/scripts/check.sh": "#!/bin/sh\n",
        "api-server/.claude/skills/debug-auth/references/tokens/jwt.md": "# JWT\n",
        "api-server/.claude/skills/debug-auth/notes.txt": "not a companion\n",
        "shared-lib/.jumble/project.toml": project_toml("shared-lib", "Common utilities", "rust"),
        "apps/web-client/.jumble/project.toml": project_toml(
            "web-client", "Browser frontend", "typescript",
            extra='[related_projects]\nupstream = ["api-server", "design-system"]\n',
        ),
        "node_modules/vendored/.jumble/project.toml": project_toml("vendored", "Should be skipped"),
    })


# ===========================================================================
# Composable workspace fixtures
# ===========================================================================


@pytest.fixture
def workspace(tmp_path):
    """A populated workspace root."""
    return sample_workspace(tmp_path / "ws")


def make_store(root, home=None, extra_skip_dirs=()):
    """Build a ContextStore for *root* and load it once."""
    from jumble.workspace.config import build_server_config
    from jumble.workspace.store import ContextStore

    store = ContextStore(build_server_config(root, extra_skip_dirs=extra_skip_dirs, home=home))
    store.build()
    return store


@pytest.fixture
def store(workspace):
    return make_store(workspace)


@pytest.fixture
def dispatcher(store):
    from jumble.dispatcher import Dispatcher

    return Dispatcher(store)


@pytest.fixture
def workspace_factory(tmp_path_factory):
    """Factory fixture for custom workspace layouts.

    Usage:
        def test_something(workspace_factory):
            root = workspace_factory({
                "p/.jumble/project.toml": project_toml("p"),
            })
    """

    def _create(files):
        return write_files(tmp_path_factory.mktemp("ws"), files)

    return _create


# ===========================================================================
# Protocol helpers
# ===========================================================================


def request(method, params=None, id=1):
    """Build a JSON-RPC request dict; ``id=None`` builds a notification."""
    msg = {"jsonrpc": "2.0", "method": method}
    if params is not None:
        msg["params"] = params
    if id is not None:
        msg["id"] = id
    return msg


def call_tool(dispatcher, name, **arguments):
    """Run tools/call and return the full response dict."""
    return dispatcher.handle(request("tools/call", {"name": name, "arguments": arguments}))


def tool_text(dispatcher, name, **arguments):
    """Run tools/call and return the text payload, asserting success."""
    response = call_tool(dispatcher, name, **arguments)
    assert "error" not in response, response
    content = response["result"]["content"]
    assert content[0]["type"] == "text"
    return content[0]["text"]


def tool_error(dispatcher, name, **arguments):
    """Run tools/call and return the error object, asserting failure."""
    response = call_tool(dispatcher, name, **arguments)
    assert "error" in response, response
    return response["error"]


def parse_lines(output):
    """Decode every non-empty output line as JSON."""
    return [json.loads(line) for line in output.splitlines() if line.strip()]


# ===========================================================================
# CLI helpers
# ===========================================================================


@pytest.fixture
def cli_runner():
    """Provide a Click CliRunner for in-process CLI testing."""
    return CliRunner()


def invoke_cli(runner, args, input=None, env=None):
    """Invoke the jumble CLI via CliRunner."""
    from jumble.cli import cli

    return runner.invoke(cli, args, input=input, env=env, catch_exceptions=False)
