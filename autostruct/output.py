"""Atomic publication of generated files.

Files are written to a staging directory next to the target and swapped into
place only after every file has been written. A marker file identifies
directories owned by autostruct; a non-empty directory without it is never
replaced.
"""

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Dict, List, Union

from .errors import WriteFailure

logger = logging.getLogger(__name__)

MARKER_FILE = ".autostruct"
MARKER_CONTENT = "This directory is generated by autostruct and is replaced on every run.\n"


def _is_replaceable(target: Path) -> bool:
    if not target.exists():
        return True
    if not target.is_dir():
        return False
    return (target / MARKER_FILE).exists() or not any(target.iterdir())


def write_artifacts(files: Dict[str, str], target_dir: Union[str, Path]) -> List[Path]:
    """Write generated files to `target_dir`, replacing its previous contents.

    Args:
        files: Relative file name -> contents
        target_dir: Output directory

    Returns:
        Paths of the written files (marker excluded), sorted

    Raises:
        WriteFailure: If the target is not ours to replace or any write fails;
            the previous output is left in place
    """
    target = Path(target_dir).resolve()

    if not _is_replaceable(target):
        raise WriteFailure(
            f"Refusing to replace {target}: it is not empty and was not created by autostruct "
            f"(no {MARKER_FILE} marker)",
            path=str(target),
        )

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f".{target.name}.staging-", dir=target.parent))
        # mkdtemp creates the directory private to the user
        staging.chmod(0o755)
    except OSError as e:
        raise WriteFailure(f"Could not create staging directory next to {target}: {e}", path=str(target)) from e

    backup = target.parent / f".{target.name}.previous-{staging.name.rsplit('-', 1)[-1]}"
    moved_aside = False
    try:
        for name in sorted(files):
            path = staging / name
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8", newline="\n") as f:
                f.write(files[name])
        with open(staging / MARKER_FILE, "w", encoding="utf-8", newline="\n") as f:
            f.write(MARKER_CONTENT)

        if target.exists():
            os.replace(target, backup)
            moved_aside = True
        os.replace(staging, target)
    except OSError as e:
        shutil.rmtree(staging, ignore_errors=True)
        if moved_aside and not target.exists():
            os.replace(backup, target)
        raise WriteFailure(f"Failed to write generated files to {target}: {e}", path=str(target)) from e

    if moved_aside:
        shutil.rmtree(backup, ignore_errors=True)

    logger.info("Wrote %d files to %s", len(files), target)
    return sorted(target / name for name in files)
