# Config schema validation
# Validates config structure, types and allowed values

from .grid import SEARCH_TYPES, parse_space
from .metrics import METRICS
from .models import available_families
from .orchestrator import SELECTION_RULES
from .pool import available_backends
from .resampling import ELIMINATION_METHODS, RESAMPLING_METHODS

REQUIRED_KEYS = {
    'experiment': ['name', 'seed'],
    'data': ['target_column'],
    'resampling': ['method', 'n_splits'],
}

ALLOWED_SECTIONS = [
    'experiment', 'data', 'preprocessing', 'resampling', 'tuning', 'models', 'metrics',
]


class ConfigValidationError(Exception):
    """Raised when config validation fails."""
    pass


def _is_int(value):
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(config):
    """
    Validate a tuning experiment configuration.

    Raises:
        ConfigValidationError listing every problem found
    """
    if not isinstance(config, dict):
        raise ConfigValidationError("Config validation failed:\n  - config must be a mapping")

    errors = []

    # Check required top-level keys
    for section, required_keys in REQUIRED_KEYS.items():
        if section not in config or not isinstance(config[section], dict):
            errors.append(f"Missing required section: '{section}'")
            continue
        for key in required_keys:
            if key not in config[section]:
                errors.append(f"Missing required key: '{section}.{key}'")

    if 'models' not in config:
        errors.append("Missing required section: 'models'")

    if errors:
        raise ConfigValidationError("Config validation failed:\n  - " + "\n  - ".join(errors))

    unknown = [k for k in config if k not in ALLOWED_SECTIONS]
    if unknown:
        errors.append(f"Unknown config sections: {unknown}. Allowed: {ALLOWED_SECTIONS}")

    if not _is_int(config['experiment'].get('seed')):
        errors.append("experiment.seed must be an integer")

    train_size = config['data'].get('train_size', 0.8)
    if _is_int(train_size):
        if train_size < 1:
            errors.append("data.train_size must be >= 1 when given as a record count")
    elif _is_number(train_size):
        if not 0.0 < train_size < 1.0:
            errors.append("data.train_size must be in (0, 1) when given as a fraction")
    else:
        errors.append("data.train_size must be an integer count or a fraction")

    errors.extend(_validate_resampling(config['resampling']))
    errors.extend(_validate_tuning(config.get('tuning') or {}))
    errors.extend(_validate_models(config['models']))

    if errors:
        raise ConfigValidationError("Config validation failed:\n  - " + "\n  - ".join(errors))

    return True


def _validate_resampling(section):
    errors = []
    method = section.get('method')
    if method not in RESAMPLING_METHODS:
        errors.append(f"Invalid resampling method '{method}'. Allowed: {RESAMPLING_METHODS}")

    n_splits = section.get('n_splits')
    if not _is_int(n_splits):
        errors.append("resampling.n_splits must be an integer")
    elif n_splits < 2:
        errors.append("resampling.n_splits must be >= 2")

    n_repeats = section.get('n_repeats', 1)
    if not _is_int(n_repeats) or n_repeats < 1:
        errors.append("resampling.n_repeats must be an integer >= 1")
    elif method == 'cv' and n_repeats != 1:
        errors.append("resampling.n_repeats must be 1 for method 'cv' (use 'repeatedcv')")

    if method == 'adaptive_cv':
        min_resamples = section.get('min_resamples', 5)
        if not _is_int(min_resamples) or min_resamples < 1:
            errors.append("resampling.min_resamples must be an integer >= 1")
        elif _is_int(n_splits) and _is_int(n_repeats) and min_resamples > n_splits * n_repeats:
            errors.append(
                f"resampling.min_resamples ({min_resamples}) exceeds n_splits * n_repeats "
                f"({n_splits * n_repeats})"
            )
        alpha = section.get('alpha', 0.05)
        if not _is_number(alpha) or not 0.0 < alpha < 1.0:
            errors.append("resampling.alpha must be in (0, 1)")
        elimination = section.get('elimination', 'gls')
        if elimination not in ELIMINATION_METHODS:
            errors.append(f"Invalid elimination method '{elimination}'. Allowed: {ELIMINATION_METHODS}")
        if not isinstance(section.get('complete', True), bool):
            errors.append("resampling.complete must be true or false")
    return errors


def _validate_tuning(section):
    errors = []
    metric = section.get('metric', 'rmse')
    if metric not in METRICS:
        errors.append(f"Invalid metric '{metric}'. Allowed: {METRICS}")

    select = section.get('select', 'best')
    if select not in SELECTION_RULES:
        errors.append(f"Invalid selection rule '{select}'. Allowed: {SELECTION_RULES}")

    tolerance = section.get('tolerance', 1.5)
    if not _is_number(tolerance) or tolerance < 0:
        errors.append("tuning.tolerance must be a non-negative number")

    n_jobs = section.get('n_jobs')
    if n_jobs is not None and (not _is_int(n_jobs) or n_jobs == 0):
        errors.append("tuning.n_jobs must be a non-zero integer or null")

    backend = section.get('backend')
    if backend is not None and backend not in available_backends():
        errors.append(f"Invalid tuning.backend '{backend}'. Allowed: {available_backends()} or null")
    return errors


def _validate_models(models):
    errors = []
    if not isinstance(models, list) or not models:
        return ["models must be a non-empty list"]

    supported = available_families()
    seen = set()
    for i, entry in enumerate(models):
        if not isinstance(entry, dict) or 'type' not in entry:
            errors.append(f"models[{i}] must be a mapping with a 'type' key")
            continue

        model_type = entry['type']
        if model_type not in supported:
            errors.append(f"Invalid model type '{model_type}'. Allowed: {supported}")

        name = entry.get('name', model_type)
        if name in seen:
            errors.append(f"Duplicate model name '{name}' (set a distinct 'name')")
        seen.add(name)

        search = entry.get('search', 'grid' if entry.get('grid') else 'default')
        if search not in SEARCH_TYPES:
            errors.append(f"models[{i}].search '{search}' invalid. Allowed: {SEARCH_TYPES}")
        elif search == 'grid':
            grid = entry.get('grid')
            if not isinstance(grid, dict) or not grid:
                errors.append(f"models[{i}].grid must be a non-empty mapping of value lists")
            elif any(isinstance(v, list) and not v for v in grid.values()):
                errors.append(f"models[{i}].grid has an empty value list")
        elif search == 'random':
            n_candidates = entry.get('n_candidates', 10)
            if not _is_int(n_candidates) or n_candidates < 1:
                errors.append(f"models[{i}].n_candidates must be an integer >= 1")
            try:
                parse_space(entry.get('space'))
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                errors.append(f"models[{i}].space invalid: {e}")
    return errors
