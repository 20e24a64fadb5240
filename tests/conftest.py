"""
Shared fixtures: throwaway git repositories and configurations.

Fixture repositories are real git checkouts created under tmp_path with
the ``git`` executable. Tests that need git use the ``requires_git``
marker and are skipped when git is not installed.
"""

import logging
import shutil
import subprocess
from collections.abc import Callable
from pathlib import Path

import pytest
import structlog

from repo_explorer.config.schema import AppConfig

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def run_git(cwd: Path, *args: str) -> str:
    proc = subprocess.run(
        [
            "git",
            "-c", "user.name=Test User",
            "-c", "user.email=test@example.com",
            "-c", "commit.gpgsign=false",
            *args,
        ],
        cwd=str(cwd),
        check=True,
        capture_output=True,
        text=True,
    )
    return proc.stdout


def write_files(root: Path, files: dict[str, str | bytes]) -> None:
    for rel_path, content in files.items():
        path = root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")


def init_repo(path: Path, files: dict[str, str | bytes]) -> Path:
    """Create a git repository at ``path`` with one commit holding ``files``."""
    path.mkdir(parents=True, exist_ok=True)
    write_files(path, files)
    run_git(path, "init", "-q")
    run_git(path, "add", "-A")
    run_git(path, "commit", "-q", "-m", "initial")
    return path


def commit_files(path: Path, files: dict[str, str | bytes], message: str = "change") -> str:
    """Write ``files`` into the repository, commit, and return the new HEAD."""
    write_files(path, files)
    run_git(path, "add", "-A")
    run_git(path, "commit", "-q", "-m", message)
    return run_git(path, "rev-parse", "HEAD").strip()


USER_TS = """\
import { api } from './api';

export class UserService {
  getUserProfile(id: string) {
    return api.fetch(id);
  }
}

export function loadProfile(service: UserService) {
  return service.getUserProfile('me');
}
"""

UTIL_PY = """\
def fetch_user_data(user_id):
    return {"id": user_id}
"""

README_MD = """\
# App
Use getUserProfile to load a profile.
"""

LIB_JS = """\
const axios = require('axios');

function getUserProfile(client) {
  return client.get('/profile');
}

module.exports = { getUserProfile };
"""

APP_FILES: dict[str, str | bytes] = {
    "src/user.ts": USER_TS,
    "src/util.py": UTIL_PY,
    "README.md": README_MD,
    "assets/logo.png": b"\x89PNG\r\n\x1a\n\x00\x00\x00getUserProfile",
    "package.json": '{"dependencies": {"react": "^18.2.0"}, "devDependencies": {"jest": "^29.0.0"}}',
}

LIB_FILES: dict[str, str | bytes] = {
    "index.js": LIB_JS,
}


# ── Fixtures ──────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _reset_logging():
    """Undo configure_logging() calls made by a test."""
    yield
    logging.root.handlers.clear()
    structlog.reset_defaults()


@pytest.fixture
def make_repo() -> Callable[[Path, dict[str, str | bytes]], Path]:
    """Factory creating a committed git repository."""
    return init_repo


@pytest.fixture
def commit() -> Callable[..., str]:
    """Factory committing changes to a fixture repository."""
    return commit_files


@pytest.fixture
def base_dir(tmp_path: Path) -> Path:
    return tmp_path / "repos"


@pytest.fixture
def app_config(base_dir: Path) -> AppConfig:
    """Two categories, three repositories; rebuilds run synchronously."""
    return AppConfig(
        repo_base_dir=base_dir,
        repositories={
            "web": {
                "app": {"url": "https://example.com/app.git", "description": "Demo app"},
                "lib": {"url": "https://example.com/lib.git", "description": "Demo lib"},
            },
            "tools": {
                "cli": {"url": "https://example.com/cli.git", "description": "Not cloned"},
            },
        },
        search={"rebuild_mode": "sync"},
    )


@pytest.fixture
def repos(base_dir: Path) -> dict[str, Path]:
    """web/app and web/lib as committed git checkouts; tools/cli absent."""
    if shutil.which("git") is None:
        pytest.skip("git not installed")
    return {
        "app": init_repo(base_dir / "web" / "app", APP_FILES),
        "lib": init_repo(base_dir / "web" / "lib", LIB_FILES),
    }
