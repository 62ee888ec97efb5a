# Seeded random sources
# A single numpy Generator is created per experiment and passed explicitly
# to the splitter, the resampling planner and the grid sampler.

import numpy as np

MAX_SEED = 2**31 - 1


def make_rng(seed):
    """Return a numpy Generator; an existing Generator is passed through."""
    if isinstance(seed, np.random.Generator):
        return seed
    return np.random.default_rng(seed)


def derive_seed(rng):
    """Draw an integer seed for libraries that take `random_state=int`."""
    return int(rng.integers(0, MAX_SEED))
