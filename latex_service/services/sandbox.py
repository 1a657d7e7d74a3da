"""Per-request job directories: creation, input staging and cleanup.

Each job lives in ``{tmp_root}/{engine}-{job_id}`` with the LaTeX source at
the top level and compiler output in ``output/``. Nothing outlives a request.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from latex_service.utils import new_job_id

logger = logging.getLogger(__name__)

OUTPUT_SUBDIR = "output"
SOURCE_EXT = ".tex"


@dataclass(frozen=True)
class Job:
    job_id: str
    root: Path
    tex_path: Path
    output_dir: Path
    base_name: str


def create_job(latex: str, base_name: str, *, tmp_root: Path, engine: str) -> Job:
    """Create the job directory tree and write the source file.

    ``base_name`` must already be sanitized.
    """
    job_id = new_job_id()
    root = Path(tmp_root) / f"{engine}-{job_id}"
    job = Job(
        job_id=job_id,
        root=root,
        tex_path=root / f"{base_name}{SOURCE_EXT}",
        output_dir=root / OUTPUT_SUBDIR,
        base_name=base_name,
    )
    # exist_ok=False: a collision means two jobs would share a directory.
    root.mkdir(parents=True, exist_ok=False)
    try:
        job.output_dir.mkdir()
        job.tex_path.write_text(latex, encoding="utf-8")
    except OSError:
        cleanup_job(job)
        raise
    logger.info("Created job %s in %s", job_id, root)
    return job


def stage_assets(job: Job, assets_dir: Path, names: Iterable[str]) -> list[Path]:
    """Copy optional style/font files into the job root.

    A missing or unreadable asset is logged and skipped; the compiler copes
    with its absence (degraded output, not an error).
    """
    staged: list[Path] = []
    for name in names:
        src = Path(assets_dir) / name
        dest = job.root / Path(name).name
        try:
            shutil.copyfile(src, dest)
        except OSError as exc:
            logger.warning("Could not stage asset %s for job %s: %s", src, job.job_id, exc)
            continue
        staged.append(dest)
    return staged


def cleanup_job(job: Job) -> None:
    """Recursively delete the job directory. Safe to call more than once.

    Errors are logged, never raised, so a failed cleanup cannot replace the
    response the caller already got.
    """
    try:
        shutil.rmtree(job.root)
    except FileNotFoundError:
        return
    except OSError:
        logger.exception("Error cleaning up job %s at %s", job.job_id, job.root)
        return
    logger.debug("Removed job %s", job.job_id)
