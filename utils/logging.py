import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

def setup_logging(log_level: str = "INFO", log_dir: Optional[Path] = None) -> logging.Logger:
    """Set up diagnostics logging.
    
    Diagnostics always go to stderr so they stay apart from the progress
    lines printed on stdout. When a log directory is given, a dated log file
    receives the same records.
    
    Args:
        log_level: Name of the logging level (DEBUG, INFO, ...)
        log_dir: Optional directory to store log files
        
    Returns:
        The configured root logger
    """
    handlers = [logging.StreamHandler()]
    
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / f"{datetime.now().strftime('%Y-%m-%d')}.log"
        handlers.append(logging.FileHandler(log_file))
    
    logging.basicConfig(
        level=getattr(logging, log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True
    )
    
    return logging.getLogger()
