"""Shared fixtures for service tests.

Compiles run against a fake engine: a /bin/sh script that understands both
the XeLaTeX and Tectonic command lines and writes a "PDF" containing the
source it was given, so no TeX installation is needed.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from latex_service.api.limiter import limiter
from latex_service.config import Settings, get_settings
from latex_service.services.sandbox import Job, create_job

if sys.platform == "win32":
    collect_ignore_glob = ["test_*.py"]

_ARG_PARSER = r"""#!/bin/sh
outdir=""
tex=""
while [ $# -gt 0 ]; do
  case "$1" in
    --outdir) outdir="$2"; shift ;;
    -output-directory=*) outdir="${1#-output-directory=}" ;;
    -*) ;;
    *) tex="$1" ;;
  esac
  shift
done
"""

WRITE_PDF = r"""name=$(basename "$tex" .tex)
{ printf '%%PDF-1.4\n'; cat "$tex"; } > "$outdir/$name.pdf"
"""

FAIL_ON_STDERR = r"""echo "! Undefined control sequence." >&2
exit 1
"""

FAIL_ON_STDOUT = r"""echo "! LaTeX Error: File \`missing.sty' not found."
exit 1
"""

SUCCEED_WITHOUT_OUTPUT = "exit 0\n"

# Writes its pid so tests can check the process is gone after a timeout.
HANG = r"""echo $$ > "$outdir/../compiler.pid"
exec sleep 30
"""

REQUIRE_ASSET = r"""[ -f fontawesome.sty ] || { echo "fontawesome.sty not staged" >&2; exit 3; }
""" + WRITE_PDF

_ENV_DEFAULTS = {
    "LATEX_ENGINE": "xelatex",
    "FLY_API_KEY": "",
    "RATE_LIMIT": "100/15 minutes",
    "COMPILE_TIMEOUT_SECONDS": "5",
    "MAX_BODY_BYTES": str(10 * 1024 * 1024),
    "CORS_ORIGINS": '["http://localhost:3000", "https://jobsprout.ai"]',
    "STAGED_ASSETS": '["fontawesome.sty"]',
}


@pytest.fixture
def make_compiler(tmp_path: Path):
    """Factory writing an executable fake engine with the given script body."""

    def _make(body: str = WRITE_PDF, name: str = "fake-engine") -> Path:
        bin_dir = tmp_path / "bin"
        bin_dir.mkdir(exist_ok=True)
        path = bin_dir / name
        path.write_text(_ARG_PARSER + body)
        path.chmod(0o755)
        return path

    return _make


@pytest.fixture
def jobs_root(tmp_path: Path) -> Path:
    return tmp_path / "jobs"


@pytest.fixture
def assets_dir(tmp_path: Path) -> Path:
    path = tmp_path / "assets"
    path.mkdir()
    return path


@pytest.fixture
def configure(monkeypatch, make_compiler, jobs_root: Path, assets_dir: Path):
    """Point get_settings() at the fake engine and temp dirs, plus any overrides."""

    def _configure(compiler_body: str = WRITE_PDF, **overrides: str) -> Settings:
        env = dict(_ENV_DEFAULTS)
        env.update(
            LATEX_COMPILER_PATH=str(make_compiler(compiler_body)),
            TMP_ROOT=str(jobs_root),
            ASSETS_DIR=str(assets_dir),
        )
        env.update(overrides)
        for key, value in env.items():
            monkeypatch.setenv(key, value)
        get_settings.cache_clear()
        return get_settings()

    yield _configure
    get_settings.cache_clear()


@pytest.fixture
def make_client(configure):
    """Factory returning a TestClient for a freshly configured app."""
    from latex_service.main import create_app

    def _make(compiler_body: str = WRITE_PDF, raise_server_exceptions: bool = True, **overrides: str) -> TestClient:
        configure(compiler_body, **overrides)
        limiter.reset()
        return TestClient(create_app(), raise_server_exceptions=raise_server_exceptions)

    return _make


@pytest.fixture
def job(jobs_root: Path) -> Job:
    return create_job(
        "\\documentclass{article}\\begin{document}Hi\\end{document}",
        "resume",
        tmp_root=jobs_root,
        engine="xelatex",
    )


@pytest.fixture
def job_dirs(jobs_root: Path):
    """Callable listing the job directories currently on disk."""

    def _list() -> list[Path]:
        if not jobs_root.exists():
            return []
        return [p for p in jobs_root.iterdir() if p.is_dir()]

    return _list
