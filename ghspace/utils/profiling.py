"""Performance profiling utilities for ghspace.

This module provides decorators for monitoring memory usage and execution
time of the expensive constructions (correspondence search, gluing chains,
fingerprint families).

Key Features:
- Memory usage tracking (process RSS via psutil, Python heap via tracemalloc)
- Execution time measurement
- Automatic threshold-based warnings
- Profiling reports
"""

import functools
import json
import threading
import time
import tracemalloc
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Any, Dict, Optional, List, Tuple

import psutil

from .logging import get_logger


@dataclass
class ProfileResult:
    """Container for one profiled call."""

    function_name: str
    execution_time: float
    rss_delta_mb: float
    traced_peak_mb: float
    args_info: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)

    @property
    def memory_mb(self) -> float:
        """Best estimate of memory used by the call."""
        return max(self.rss_delta_mb, self.traced_peak_mb)

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary for serialization."""
        return {
            "function_name": self.function_name,
            "execution_time": self.execution_time,
            "rss_delta_mb": self.rss_delta_mb,
            "traced_peak_mb": self.traced_peak_mb,
            "args_info": self.args_info,
            "timestamp": self.timestamp,
        }


class ProfileManager:
    """Manages profiling results and provides reporting functionality."""

    def __init__(self):
        self.results: List[ProfileResult] = []
        self.lock = threading.Lock()
        self.logger = get_logger("ghspace.profiling")

    def add_result(self, result: ProfileResult):
        """Add a profiling result."""
        with self.lock:
            self.results.append(result)

    def get_results(self, function_name: Optional[str] = None) -> List[ProfileResult]:
        """Get profiling results, optionally filtered by function name."""
        with self.lock:
            if function_name:
                return [r for r in self.results if r.function_name == function_name]
            return self.results.copy()

    def clear_results(self):
        """Clear all profiling results."""
        with self.lock:
            self.results.clear()

    def save_results(self, filepath: Path):
        """Save profiling results to JSON file."""
        with self.lock:
            data = [result.to_dict() for result in self.results]
            with open(filepath, 'w') as f:
                json.dump(data, f, indent=2)

    def generate_report(self) -> str:
        """Generate a human-readable profiling report."""
        with self.lock:
            if not self.results:
                return "No profiling results available."

            report = ["ghspace Profiling Report", "=" * 30, ""]

            by_function = defaultdict(list)
            for r in self.results:
                by_function[r.function_name].append(r)

            total_time = sum(r.execution_time for r in self.results)
            max_memory = max(r.memory_mb for r in self.results)
            report.extend([
                f"Total functions profiled: {len(by_function)}",
                f"Total execution time: {total_time:.2f}s",
                f"Peak memory usage: {max_memory:.2f}MB",
                ""
            ])

            for func_name in sorted(by_function):
                func_results = by_function[func_name]
                avg_time = sum(r.execution_time for r in func_results) / len(func_results)
                avg_memory = sum(r.memory_mb for r in func_results) / len(func_results)
                report.extend([
                    f"Function: {func_name}",
                    f"  Calls: {len(func_results)}",
                    f"  Avg time: {avg_time:.2f}s",
                    f"  Avg memory: {avg_memory:.2f}MB",
                    ""
                ])

            return "\n".join(report)


# Global profile manager with thread-safe initialization
_profile_manager = None
_profile_manager_lock = threading.Lock()


def get_profile_manager() -> ProfileManager:
    """Get the global profile manager instance."""
    global _profile_manager
    if _profile_manager is None:
        with _profile_manager_lock:
            if _profile_manager is None:
                _profile_manager = ProfileManager()
    return _profile_manager


def get_memory_usage() -> Tuple[float, float]:
    """Return (rss_mb, vms_mb) of the current process."""
    info = psutil.Process().memory_info()
    return info.rss / 1024 / 1024, info.vms / 1024 / 1024


def profile_memory(
    memory_threshold_mb: float = 1000.0,
    log_results: bool = True,
    include_args: bool = False
) -> Callable:
    """Decorator to profile memory usage and time of a function.

    Args:
        memory_threshold_mb: Threshold for memory usage warnings
        log_results: Whether to log profiling results
        include_args: Whether to include argument summaries in results

    Returns:
        Decorated function with memory profiling

    Example:
        @profile_memory(memory_threshold_mb=500.0)
        def compute_all_pairs(spaces):
            ...
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            logger = get_logger(f"ghspace.profiling.{func.__name__}")

            rss_before, _ = get_memory_usage()
            tracemalloc_was_running = tracemalloc.is_tracing()
            if not tracemalloc_was_running:
                tracemalloc.start()

            start_time = time.time()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.error(f"Error in {func.__name__}: {e}")
                raise
            finally:
                _, traced_peak = tracemalloc.get_traced_memory()
                if not tracemalloc_was_running:
                    tracemalloc.stop()

            execution_time = time.time() - start_time
            rss_after, _ = get_memory_usage()

            args_info = {}
            if include_args:
                args_info = {
                    "args_count": len(args),
                    "kwargs_keys": list(kwargs.keys()),
                    "args_types": [type(arg).__name__ for arg in args]
                }

            profile_result = ProfileResult(
                function_name=func.__name__,
                execution_time=execution_time,
                rss_delta_mb=max(0.0, rss_after - rss_before),
                traced_peak_mb=traced_peak / 1024 / 1024,
                args_info=args_info,
            )
            get_profile_manager().add_result(profile_result)

            if log_results:
                logger.info(f"{func.__name__} execution: {execution_time:.2f}s, "
                            f"{profile_result.memory_mb:.2f}MB")

            if profile_result.memory_mb > memory_threshold_mb:
                logger.warning(
                    f"{func.__name__} exceeded memory threshold: "
                    f"{profile_result.memory_mb:.2f}MB > {memory_threshold_mb:.2f}MB"
                )

            return result

        return wrapper
    return decorator


def profile_time(
    time_threshold_seconds: float = 60.0,
    log_results: bool = True
) -> Callable:
    """Decorator to profile execution time of a function.

    Args:
        time_threshold_seconds: Threshold for execution time warnings
        log_results: Whether to log profiling results

    Returns:
        Decorated function with time profiling
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            logger = get_logger(f"ghspace.profiling.{func.__name__}")

            start_time = time.time()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                execution_time = time.time() - start_time
                logger.error(f"Error in {func.__name__} after {execution_time:.2f}s: {e}")
                raise

            execution_time = time.time() - start_time
            if log_results:
                logger.info(f"{func.__name__} execution time: {execution_time:.2f}s")

            if execution_time > time_threshold_seconds:
                logger.warning(
                    f"{func.__name__} exceeded time threshold: "
                    f"{execution_time:.2f}s > {time_threshold_seconds:.2f}s"
                )

            return result

        return wrapper
    return decorator
