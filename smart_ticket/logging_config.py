import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger once; repeated calls only adjust the level"""
    root = logging.getLogger()
    root.setLevel(level.upper())
    
    if any(getattr(handler, "_smart_ticket", False) for handler in root.handlers):
        return
    
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._smart_ticket = True
    root.addHandler(handler)
