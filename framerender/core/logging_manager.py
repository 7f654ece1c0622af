"""
Logging manager with date-based separation and structured JSON logging
"""

import logging
import logging.handlers
import json
from datetime import datetime, date
from pathlib import Path
from typing import Dict, Any, Optional
from contextlib import contextmanager
import time

STRUCTURED_FIELDS = [
    'composition_id', 'frame', 'frame_count', 'frames_rendered',
    'event_type', 'performance_data', 'error_details'
]


class DateRotatingJSONHandler(logging.handlers.BaseRotatingHandler):
    """Handler that opens a new JSON-lines file every day"""

    def __init__(self, log_dir: str, filename_prefix: str = "framerender"):
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.filename_prefix = filename_prefix
        self.current_date = None
        super().__init__(filename="", mode='a', delay=True)

    def get_current_filename(self):
        """Generate filename for current date"""
        return self.log_dir / f"{self.filename_prefix}_{date.today().isoformat()}.jsonl"

    def shouldRollover(self, record):
        return self.current_date != date.today()

    def doRollover(self):
        if self.stream:
            self.stream.close()
            self.stream = None
        self.current_date = date.today()

    def _open(self):
        if self.shouldRollover(None):
            self.doRollover()
        return open(self.get_current_filename(), 'a', encoding='utf-8')

    def emit(self, record):
        """Emit a record as one JSON line"""
        try:
            if self.shouldRollover(record):
                self.doRollover()

            if self.stream is None:
                self.stream = self._open()

            log_data = {
                "timestamp": datetime.fromtimestamp(record.created).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "message": record.getMessage(),
            }

            for name in STRUCTURED_FIELDS:
                if hasattr(record, name):
                    log_data[name] = getattr(record, name)

            self.stream.write(json.dumps(log_data, default=str) + '\n')
            self.stream.flush()

        except Exception:
            self.handleError(record)


class LoggingManager:
    """Centralized logging manager for framerender"""

    def __init__(self, log_dir: str = "./logs", level: str = "INFO"):
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.level = level
        self._setup_logging()

    def _setup_logging(self):
        root_logger = logging.getLogger("framerender")
        root_logger.setLevel(logging.DEBUG)
        root_logger.handlers.clear()

        console_handler = logging.StreamHandler()
        console_handler.setLevel(getattr(logging, str(self.level).upper(), logging.INFO))
        console_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
        root_logger.addHandler(console_handler)

        json_handler = DateRotatingJSONHandler(
            log_dir=str(self.log_dir),
            filename_prefix="framerender"
        )
        json_handler.setLevel(logging.DEBUG)
        root_logger.addHandler(json_handler)

        # Performance records go to their own file only
        perf_logger = logging.getLogger("framerender.performance")
        perf_logger.handlers.clear()
        perf_handler = DateRotatingJSONHandler(
            log_dir=str(self.log_dir),
            filename_prefix="framerender_performance"
        )
        perf_handler.setLevel(logging.DEBUG)
        perf_logger.addHandler(perf_handler)
        perf_logger.propagate = False

    def get_logger(self, name: str) -> logging.Logger:
        """Get a logger for a specific component"""
        return logging.getLogger(f"framerender.{name}")

    def log_render_start(self, composition_id: str, frame_count: int, concurrency: int,
                         logger_name: str = "orchestrator"):
        """Log the start of a render"""
        self.get_logger(logger_name).info(
            f"Rendering {frame_count} frames of {composition_id} with concurrency {concurrency}",
            extra={
                "composition_id": composition_id,
                "frame_count": frame_count,
                "event_type": "render_start",
                "performance_data": {"concurrency": concurrency}
            }
        )

    def log_frame_rendered(self, composition_id: str, frame: int, frames_rendered: int,
                           frame_count: int, logger_name: str = "frame_task"):
        """Log a completed frame"""
        self.get_logger(logger_name).debug(
            f"Frame {frame} rendered ({frames_rendered}/{frame_count})",
            extra={
                "composition_id": composition_id,
                "frame": frame,
                "frames_rendered": frames_rendered,
                "frame_count": frame_count,
                "event_type": "frame_rendered"
            }
        )

    def log_event(self, event_type: str, message: str, composition_id: str = None,
                  logger_name: str = "events", **kwargs):
        """Log a general event"""
        extra_data = {
            "composition_id": composition_id,
            "event_type": event_type
        }
        extra_data.update(kwargs)
        self.get_logger(logger_name).info(message, extra=extra_data)

    def log_error(self, error: Exception, composition_id: str = None, frame: Optional[int] = None,
                  context: Dict[str, Any] = None, logger_name: str = "errors"):
        """Log an error with context"""
        self.get_logger(logger_name).error(
            f"Error occurred: {error}",
            extra={
                "composition_id": composition_id,
                "frame": frame,
                "event_type": "error",
                "error_details": {
                    "error_type": type(error).__name__,
                    "error_message": str(error),
                    "error_code": getattr(error, "error_code", None),
                    "context": context or {}
                }
            }
        )

    @contextmanager
    def log_performance(self, operation_name: str, composition_id: str = None):
        """Context manager for logging how long an operation took"""
        start_time = time.time()
        logger = self.get_logger("performance")

        try:
            yield
        finally:
            logger.info(
                f"Performance: {operation_name}",
                extra={
                    "composition_id": composition_id,
                    "event_type": "performance",
                    "performance_data": {
                        "operation": operation_name,
                        "duration_seconds": time.time() - start_time
                    }
                }
            )


# Global logging manager instance
_logging_manager = None

def get_logging_manager() -> LoggingManager:
    """Get the global logging manager instance"""
    global _logging_manager
    if _logging_manager is None:
        from ..config.config import Config
        _logging_manager = LoggingManager(log_dir=Config.LOG_DIR, level=Config.LOG_LEVEL)
    return _logging_manager

def setup_logging(log_dir: str = None, level: str = "INFO") -> LoggingManager:
    """Setup and return the global logging manager"""
    global _logging_manager
    _logging_manager = LoggingManager(log_dir, level) if log_dir else LoggingManager(level=level)
    return _logging_manager
