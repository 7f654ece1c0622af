"""
Metrics collection and performance monitoring for renders
"""

import time
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, field
from collections import defaultdict, deque
import threading
from contextlib import contextmanager
import statistics


@dataclass
class PerformanceMetrics:
    """Container for performance metrics"""
    operation_name: str
    start_time: float
    end_time: Optional[float] = None
    duration: Optional[float] = None
    success: bool = True
    metadata: Dict[str, Any] = field(default_factory=dict)

    def finish(self, success: bool = True, **metadata):
        """Mark operation as finished"""
        self.end_time = time.time()
        self.duration = self.end_time - self.start_time
        self.success = success
        self.metadata.update(metadata)


class PerformanceTimer:
    """Context manager for timing operations"""

    def __init__(self, operation_name: str, metrics_collector: 'MetricsCollector' = None):
        self.operation_name = operation_name
        self.metrics_collector = metrics_collector
        self.metrics = None

    def __enter__(self):
        self.metrics = PerformanceMetrics(
            operation_name=self.operation_name,
            start_time=time.time()
        )
        return self.metrics

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.metrics.finish(success=exc_type is None)

        if self.metrics_collector:
            self.metrics_collector.record_performance(self.metrics)


class FPSCounter:
    """Rolling frames-per-second counter"""

    def __init__(self, window_size: int = 100):
        self.window_size = window_size
        self.frame_times = deque(maxlen=window_size)
        self._lock = threading.Lock()
        self.last_frame_time = None

    def record_frame(self):
        """Record a new frame"""
        current_time = time.time()

        with self._lock:
            if self.last_frame_time is not None:
                self.frame_times.append(current_time - self.last_frame_time)
            self.last_frame_time = current_time

    def get_fps(self) -> float:
        """Get current FPS"""
        with self._lock:
            if len(self.frame_times) < 2:
                return 0.0

            avg_interval = statistics.mean(self.frame_times)
            return 1.0 / avg_interval if avg_interval > 0 else 0.0


class MetricsCollector:
    """Central metrics collector for renders"""

    def __init__(self):
        self._performance_metrics: List[PerformanceMetrics] = []
        self._custom_metrics: Dict[str, Any] = defaultdict(list)
        self._lock = threading.Lock()
        self._fps_counters: Dict[str, FPSCounter] = {
            "frames_rendered": FPSCounter()
        }

    def get_fps_counter(self, name: str) -> FPSCounter:
        """Get or create an FPS counter"""
        if name not in self._fps_counters:
            self._fps_counters[name] = FPSCounter()
        return self._fps_counters[name]

    def record_performance(self, metrics: PerformanceMetrics):
        with self._lock:
            self._performance_metrics.append(metrics)

    def record_custom_metric(self, name: str, value: Any, metadata: Dict[str, Any] = None):
        with self._lock:
            self._custom_metrics[name].append({
                "value": value,
                "timestamp": time.time(),
                "metadata": metadata or {}
            })

    def get_fps_metrics(self) -> Dict[str, float]:
        """Get current FPS metrics for all counters"""
        return {name: counter.get_fps() for name, counter in self._fps_counters.items()}

    def get_performance_summary(self, operation_name: str = None) -> Dict[str, Any]:
        """Get performance summary for operations"""
        with self._lock:
            metrics = self._performance_metrics
            if operation_name:
                metrics = [m for m in metrics if m.operation_name == operation_name]

            if not metrics:
                return {}

            durations = [m.duration for m in metrics if m.duration is not None]
            success_count = sum(1 for m in metrics if m.success)

            return {
                "operation_name": operation_name or "all",
                "total_operations": len(metrics),
                "successful_operations": success_count,
                "success_rate": success_count / len(metrics),
                "avg_duration": statistics.mean(durations) if durations else 0,
                "min_duration": min(durations) if durations else 0,
                "max_duration": max(durations) if durations else 0
            }

    def get_all_metrics(self) -> Dict[str, Any]:
        """Get all collected metrics"""
        operations = set(m.operation_name for m in self._performance_metrics)
        return {
            "fps_metrics": self.get_fps_metrics(),
            "performance_metrics": {op: self.get_performance_summary(op) for op in operations},
            "custom_metrics": dict(self._custom_metrics),
            "timestamp": time.time()
        }

    @contextmanager
    def time_operation(self, operation_name: str):
        """Context manager for timing operations"""
        with PerformanceTimer(operation_name, self) as timer:
            yield timer


# Global metrics collector instance
_metrics_collector = None

def get_metrics_collector() -> MetricsCollector:
    """Get the global metrics collector instance"""
    global _metrics_collector
    if _metrics_collector is None:
        _metrics_collector = MetricsCollector()
    return _metrics_collector
