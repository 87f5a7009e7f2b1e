"""Managed configuration files: render from templates and replace atomically."""
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from ignition.utils import log_action, log_info

CONFIGS_DIR = Path(__file__).parent / "configs"


@dataclass(frozen=True)
class ManagedFile:
    """Desired state of a file owned by the tool."""

    path: Path
    content: str
    mode: int = 0o644
    owner: Optional[str] = None


def render_template(name: str, **values: str) -> str:
    """Read a template from the configs directory and fill its placeholders.

    ``user_name="bob"`` replaces every ``USER_NAME_PLACEHOLDER`` with ``bob``.
    """
    with open(CONFIGS_DIR / name, 'r') as f:
        content = f.read()

    for key, value in values.items():
        content = content.replace(f"{key.upper()}_PLACEHOLDER", value)
    return content


def is_up_to_date(spec: ManagedFile) -> bool:
    """Check if the file on disk already has the desired content and mode.

    A file the caller cannot inspect counts as out of date.
    """
    path = Path(spec.path)
    try:
        if not path.is_file():
            return False
        if (path.stat().st_mode & 0o7777) != spec.mode:
            return False
        return path.read_text() == spec.content
    except PermissionError:
        return False


def chown(path: Union[str, Path], owner: str) -> None:
    """Give a path to ``owner:owner``."""
    shutil.chown(path, user=owner, group=owner)


def apply_file(spec: ManagedFile, dry_run: bool = False) -> bool:
    """Write a managed file, replacing any previous version in one rename.

    Returns True if the content or mode changed.
    """
    path = Path(spec.path)
    changed = not is_up_to_date(spec)

    if dry_run:
        if changed:
            log_action(f"[DRY RUN] Would write {path} (mode {spec.mode:o})")
        else:
            log_info(f"{path} is already up to date.")
        return changed

    if changed:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
        try:
            with os.fdopen(fd, 'w') as f:
                f.write(spec.content)
            os.chmod(tmp_name, spec.mode)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        log_action(f"Wrote {path}")
    else:
        log_info(f"{path} is already up to date.")

    if spec.owner:
        chown(path, spec.owner)
    return changed
