"""Server-side LaTeX → PDF compilation using XeLaTeX or Tectonic.

The engine binary is treated as opaque: it gets the source path, an output
directory and (for XeLaTeX) a non-interactive flag. Success is decided by the
exit status alone; whether a PDF actually appeared is checked separately by
``locate_pdf`` because the engine may name its output after document
metadata rather than the input file.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import signal
import time
from dataclasses import dataclass
from pathlib import Path

from latex_service.config import Settings
from latex_service.exceptions import ArtifactMissingError, CompileError
from latex_service.services.sandbox import Job

logger = logging.getLogger(__name__)

PDF_EXT = ".pdf"

# XeLaTeX reports errors on stdout; keep the end of it when stderr is empty.
_STDOUT_TAIL_CHARS = 2000


@dataclass(frozen=True)
class CompileResult:
    returncode: int
    duration_seconds: float


def build_command(engine: str, executable: str, tex_path: Path, output_dir: Path) -> list[str]:
    """Command line for one non-interactive compile of ``tex_path``."""
    if engine == "xelatex":
        return [
            executable,
            "-interaction=nonstopmode",
            f"-output-directory={output_dir}",
            str(tex_path),
        ]
    if engine == "tectonic":
        # Tectonic never waits on the terminal.
        return [executable, "--outdir", str(output_dir), str(tex_path)]
    raise ValueError(f"Unsupported LaTeX engine: {engine!r}")


def _kill_process_group(proc: asyncio.subprocess.Process) -> None:
    """SIGKILL the compiler and anything it spawned (e.g. xdvipdfmx)."""
    try:
        if hasattr(os, "killpg"):
            os.killpg(proc.pid, signal.SIGKILL)
        else:
            proc.kill()
    except ProcessLookupError:
        pass


def _failure_details(engine: str, returncode: int, stdout: str, stderr: str) -> str:
    if stderr.strip():
        return stderr.strip()
    details = f"{engine} exited with status {returncode}"
    if stdout.strip():
        details += "\n" + stdout.strip()[-_STDOUT_TAIL_CHARS:]
    return details


async def run_compiler(
    job: Job,
    *,
    engine: str,
    executable: str,
    timeout: float,
) -> CompileResult:
    """Run the engine once against ``job`` and wait for it, at most ``timeout`` seconds.

    Raises:
        CompileError: executable missing, non-zero exit, or timeout. On
            timeout the whole process group is killed before raising.
    """
    cmd = build_command(engine, executable, job.tex_path, job.output_dir)
    started = time.monotonic()

    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=str(job.root),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=True,
        )
    except FileNotFoundError:
        logger.error("LaTeX engine executable not found: %s", executable)
        raise CompileError(details=f"{executable} executable not found on this server")
    except OSError as exc:
        logger.error("Could not start %s: %s", executable, exc)
        raise CompileError(details=f"{executable} could not be started: {exc.strerror or exc}")

    try:
        stdout_b, stderr_b = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        _kill_process_group(proc)
        await proc.wait()
        logger.error("%s timed out after %.1fs for job %s", engine, timeout, job.job_id)
        raise CompileError(details=f"{engine} compilation timed out after {timeout:g} seconds")
    except asyncio.CancelledError:
        _kill_process_group(proc)
        # Reap even though this task is being cancelled.
        with contextlib.suppress(asyncio.CancelledError):
            await asyncio.shield(proc.wait())
        raise

    result = CompileResult(
        returncode=proc.returncode,
        duration_seconds=time.monotonic() - started,
    )

    if result.returncode != 0:
        details = _failure_details(
            engine,
            result.returncode,
            stdout_b.decode("utf-8", errors="replace"),
            stderr_b.decode("utf-8", errors="replace"),
        )
        logger.error(
            "%s compilation failed for job %s (exit %s):\n%s",
            engine, job.job_id, result.returncode, details,
        )
        raise CompileError(details=details)

    logger.info("%s compilation succeeded for job %s in %.2fs", engine, job.job_id, result.duration_seconds)
    return result


def find_pdf_files(output_dir: Path) -> list[Path]:
    """PDF files directly under ``output_dir``, in lexical order."""
    try:
        entries = list(Path(output_dir).iterdir())
    except OSError:
        logger.exception("Error listing PDF files in %s", output_dir)
        return []
    return sorted(
        (p for p in entries if p.name.endswith(PDF_EXT) and p.is_file()),
        key=lambda p: p.name,
    )


def locate_pdf(job: Job) -> Path:
    """First PDF in the job's output directory.

    Raises:
        ArtifactMissingError: the compiler exited 0 but wrote no PDF.
    """
    pdf_files = find_pdf_files(job.output_dir)
    if not pdf_files:
        logger.error("Compiler reported success but no PDF found for job %s", job.job_id)
        raise ArtifactMissingError()
    if len(pdf_files) > 1:
        logger.info("Job %s produced %d PDFs; using %s", job.job_id, len(pdf_files), pdf_files[0].name)
    return pdf_files[0]


async def compile_job(job: Job, settings: Settings) -> bytes:
    """Compile a staged job and return the PDF bytes."""
    await run_compiler(
        job,
        engine=settings.engine,
        executable=settings.compiler_executable,
        timeout=settings.compile_timeout_seconds,
    )
    return locate_pdf(job).read_bytes()
