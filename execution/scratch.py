import logging
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from utils.errors import ScratchDirectoryError

logger = logging.getLogger(__name__)

SCRATCH_PREFIX = "corpuscoverage"


def remove_tree(path: Path) -> bool:
    """
    Recursively remove a path, continuing past entries that cannot be removed.
    
    Returns:
        True if nothing is left at the path
    """
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path, ignore_errors=True)
    else:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Unable to remove {path}: {e}")
    
    if path.exists():
        logger.warning(f"Unable to completely remove {path}")
        return False
    return True


@contextmanager
def scratch_directory(prefix: str = SCRATCH_PREFIX) -> Iterator[Path]:
    """
    Provide a fresh temporary directory that is removed on every exit path.
    
    Raises:
        ScratchDirectoryError: If the directory cannot be created
    """
    try:
        path = Path(tempfile.mkdtemp(prefix=prefix))
    except OSError as e:
        raise ScratchDirectoryError(f"Unable to create temporary directory, exception: {e}") from e
    try:
        yield path
    finally:
        remove_tree(path)
