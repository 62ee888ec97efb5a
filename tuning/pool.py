# Worker pool handle
# Wraps joblib.Parallel so the parallel backend is an explicit object passed
# to the orchestrator rather than a globally registered backend.

import logging
import os

from joblib import Parallel, delayed
from joblib.parallel import BACKENDS

logger = logging.getLogger(__name__)


def available_backends():
    """Names of the joblib backends registered in this process."""
    return sorted(BACKENDS)


class WorkerPool:
    """
    Fixed-size pool executing independent tasks.

    Args:
        n_jobs: number of workers; None means os.cpu_count()
        backend: joblib backend name ('loky', 'threading', 'multiprocessing');
            None lets joblib choose (loky processes)
    """

    def __init__(self, n_jobs=None, backend=None):
        if n_jobs is None:
            n_jobs = os.cpu_count() or 1
        if n_jobs == 0:
            raise ValueError("n_jobs must be non-zero")
        if backend is not None and backend not in BACKENDS:
            raise ValueError(f"Unknown joblib backend '{backend}'. Allowed: {available_backends()}")
        self.n_jobs = n_jobs
        self.backend = backend

    def __repr__(self):
        return f"WorkerPool(n_jobs={self.n_jobs}, backend={self.backend!r})"

    def map(self, fn, tasks):
        """Run fn(*task) for every task; results come back in task order."""
        tasks = list(tasks)
        if not tasks:
            return []
        if self.n_jobs == 1:
            return [fn(*task) for task in tasks]
        logger.debug("Dispatching %d tasks to %r", len(tasks), self)
        return Parallel(n_jobs=self.n_jobs, backend=self.backend)(
            delayed(fn)(*task) for task in tasks
        )
