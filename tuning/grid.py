# Hyperparameter grids
# Full factorial expansion of explicit value lists, or random search over
# declared parameter ranges.

import math
from dataclasses import dataclass

from scipy.stats import loguniform, randint, uniform
from sklearn.model_selection import ParameterGrid, ParameterSampler

from .errors import EmptyGridError
from .seeding import derive_seed, make_rng

SEARCH_TYPES = ['grid', 'random', 'default']
RANGE_KINDS = ['int', 'float', 'log']


@dataclass(frozen=True)
class ParamRange:
    """Inclusive bounds of one hyperparameter for random search."""
    low: float
    high: float
    kind: str = 'float'

    def __post_init__(self):
        if self.kind not in RANGE_KINDS:
            raise ValueError(f"Unknown range kind '{self.kind}'. Allowed: {RANGE_KINDS}")
        if self.high < self.low:
            raise ValueError(f"Range high ({self.high}) is below low ({self.low})")
        if self.kind == 'log' and self.low <= 0:
            raise ValueError(f"Log-scaled range needs low > 0, got {self.low}")
        if self.kind == 'int' and math.ceil(self.low) > math.floor(self.high):
            raise ValueError(f"Integer range [{self.low}, {self.high}] contains no integer")

    def distribution(self):
        """SciPy distribution whose support is [low, high]."""
        if self.kind == 'int':
            return randint(math.ceil(self.low), math.floor(self.high) + 1)
        if self.low == self.high:
            return [self.low]
        if self.kind == 'log':
            return loguniform(self.low, self.high)
        return uniform(loc=self.low, scale=self.high - self.low)

    def contains(self, value):
        return self.low <= value <= self.high


def expand_grid(param_lists):
    """
    Full factorial expansion of `{name: [values, ...]}`.

    The candidate count is the product of the list lengths; order follows
    scikit-learn's ParameterGrid (sorted parameter names, last name varying
    fastest).
    """
    if not param_lists:
        raise EmptyGridError("Grid has no parameters")

    normalized = {}
    for name, values in param_lists.items():
        if isinstance(values, (str, bytes)) or not hasattr(values, '__iter__'):
            values = [values]
        values = list(values)
        if not values:
            raise EmptyGridError(f"Parameter '{name}' has an empty value list")
        normalized[name] = values

    candidates = list(ParameterGrid(normalized))
    if not candidates:
        raise EmptyGridError("Grid expansion yielded zero candidates")
    return candidates


def random_grid(space, n_candidates, rng):
    """
    Draw `n_candidates` candidates uniformly from `space`.

    Args:
        space: dict name -> ParamRange (or a list of discrete choices)
        n_candidates: maximum number of candidates to draw
        rng: numpy Generator (or int seed)

    Duplicates are possible; every value lies within its declared bounds.
    """
    if not space:
        raise EmptyGridError("Random search space has no parameters")
    if n_candidates is None or n_candidates < 1:
        raise EmptyGridError(f"Random search budget must be >= 1, got {n_candidates}")

    distributions = {}
    for name, bounds in space.items():
        if isinstance(bounds, ParamRange):
            distributions[name] = bounds.distribution()
        else:
            choices = list(bounds)
            if not choices:
                raise EmptyGridError(f"Parameter '{name}' has no choices")
            distributions[name] = choices

    rng = make_rng(rng)
    sampler = ParameterSampler(distributions, n_iter=int(n_candidates), random_state=derive_seed(rng))
    candidates = [_coerce(candidate, space) for candidate in sampler]
    if not candidates:
        raise EmptyGridError("Random search yielded zero candidates")
    return candidates


def _coerce(candidate, space):
    """Cast sampled numpy scalars to plain Python numbers."""
    out = {}
    for name, value in candidate.items():
        bounds = space.get(name)
        if isinstance(bounds, ParamRange):
            value = int(value) if bounds.kind == 'int' else float(value)
        elif hasattr(value, 'item'):
            value = value.item()
        out[name] = value
    return out


def parse_space(raw):
    """Parse a YAML search space: `{name: {low, high, kind}}` or `{name: [choices]}`."""
    space = {}
    for name, bounds in (raw or {}).items():
        if isinstance(bounds, dict):
            space[name] = ParamRange(low=bounds['low'], high=bounds['high'], kind=bounds.get('kind', 'float'))
        else:
            space[name] = list(bounds)
    return space


def build_grid(family, model_section, rng):
    """
    Candidates for one model family, from its entry in the `models` config list.

    search: 'grid' (explicit `grid` mapping), 'random' (`n_candidates` draws
    from `space` or the family's declared search space) or 'default' (the
    family's default grid).
    """
    model_section = model_section or {}
    search = model_section.get('search')
    if search is None:
        search = 'grid' if model_section.get('grid') else 'default'

    if search == 'grid':
        return expand_grid(model_section.get('grid') or {})
    if search == 'random':
        space = parse_space(model_section['space']) if model_section.get('space') else family.search_space
        return random_grid(space, model_section.get('n_candidates', 10), rng)
    if search == 'default':
        return expand_grid(family.default_grid)
    raise ValueError(f"Unknown search type '{search}'. Allowed: {SEARCH_TYPES}")
