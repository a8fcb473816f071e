import logging
import os
from pathlib import Path
from typing import Optional, Set

logger = logging.getLogger(__name__)

CLASS_FILE_SUFFIX = ".class"


def class_name_for(class_file: Path, root_dir: Path) -> str:
    """
    Derive a fully qualified class name from a class file location.
    
    Args:
        class_file: Path to a compiled class under root_dir
        root_dir: Root of the class directory (the default package)
        
    Returns:
        Dotted class name, e.g. com/example/Foo.class -> com.example.Foo
    """
    relative = class_file.relative_to(root_dir)
    return ".".join(relative.with_suffix("").parts)


def resolve_input_classes(root_dir: Optional[Path]) -> Set[str]:
    """
    Collect the names of the classes under test below a class directory.
    
    Unreadable subdirectories are logged and skipped. A root that cannot be
    walked at all yields an empty set.
    
    Args:
        root_dir: Root of the compiled classes under test
        
    Returns:
        Set of fully qualified class names
    """
    classes: Set[str] = set()
    if root_dir is None or not root_dir.is_dir():
        logger.error(f"Error collecting input classes from {root_dir}")
        return classes
    
    def on_error(error: OSError) -> None:
        logger.warning(f"Skipping unreadable entry while collecting input classes: {error}")
    
    for dirpath, _dirnames, filenames in os.walk(root_dir, onerror=on_error):
        for filename in filenames:
            if filename.endswith(CLASS_FILE_SUFFIX):
                classes.add(class_name_for(Path(dirpath) / filename, root_dir))
    
    logger.debug(f"Found {len(classes)} input classes under {root_dir}")
    return classes
