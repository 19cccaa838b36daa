"""Rate limiting utilities for Kubernetes API calls."""

from __future__ import annotations

import os
import threading
import time
from functools import wraps
from typing import Any, Callable, TypeVar

_F = TypeVar("_F", bound=Callable[..., Any])

# Rate limit configuration
_K8S_RATE_LIMIT_PER_SECOND = float(os.getenv("K8S_RATE_LIMIT_PER_SECOND", "20.0"))

# Track last call time, shared by all worker threads
_k8s_last_call_time: float = 0.0
_k8s_lock = threading.Lock()


def rate_limit_k8s(func: _F) -> _F:
    """Decorator to rate limit Kubernetes API calls.

    Spaces calls at least 1/K8S_RATE_LIMIT_PER_SECOND apart across all
    reconcile workers so a large convergence pass cannot flood the API server.
    """
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        global _k8s_last_call_time
        min_interval = 1.0 / _K8S_RATE_LIMIT_PER_SECOND
        with _k8s_lock:
            time_since_last_call = time.time() - _k8s_last_call_time
            if time_since_last_call < min_interval:
                time.sleep(min_interval - time_since_last_call)
            _k8s_last_call_time = time.time()
        return func(*args, **kwargs)

    return wrapper  # type: ignore
