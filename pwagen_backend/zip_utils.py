from __future__ import annotations

import logging
import zipfile
from pathlib import Path

from .errors import ArchiveError


logger = logging.getLogger(__name__)

ZIP_COMPRESSLEVEL = 9


def create_zip_archive(source_dir: Path, out_path: Path) -> Path:
    """Compress every file under source_dir into out_path.

    Entries are stored relative to source_dir (no leading folder), in sorted
    order. A partially written archive is removed before ArchiveError is
    raised, so callers never see a truncated ZIP.
    """
    if not source_dir.is_dir():
        raise ArchiveError("Source directory does not exist")

    try:
        with zipfile.ZipFile(
            out_path,
            mode="w",
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=ZIP_COMPRESSLEVEL,
        ) as zf:
            for path in sorted(source_dir.rglob("*")):
                if not path.is_file():
                    continue
                zf.write(path, arcname=path.relative_to(source_dir).as_posix())
    except (OSError, zipfile.BadZipFile, zipfile.LargeZipFile) as exc:
        try:
            out_path.unlink(missing_ok=True)
        except OSError:
            logger.warning("Could not remove partial archive %s", out_path.name)
        raise ArchiveError("Could not create archive", cause=str(exc)) from exc

    logger.debug("Archive %s written (%d bytes)", out_path.name, out_path.stat().st_size)
    return out_path

