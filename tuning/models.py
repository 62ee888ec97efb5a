# Model family registry
# Each family knows how to build its estimator from a hyperparameter
# candidate, plus a default grid and a random-search space. New families
# register here rather than being special-cased by the orchestrator.

from dataclasses import dataclass, field
from typing import Callable, Dict

from sklearn.ensemble import GradientBoostingRegressor, RandomForestRegressor
from sklearn.linear_model import Lasso, LinearRegression, Ridge

from .errors import UnknownModelError
from .grid import ParamRange

try:
    from xgboost import XGBRegressor
    HAS_XGBOOST = True
except ImportError:
    XGBRegressor = None
    HAS_XGBOOST = False

try:
    from lightgbm import LGBMRegressor
    HAS_LIGHTGBM = True
except ImportError:
    LGBMRegressor = None
    HAS_LIGHTGBM = False


@dataclass(frozen=True)
class ModelFamily:
    """
    A named regression model family.

    build(params, random_state) returns an unfitted estimator exposing
    fit/predict. `stochastic` families receive a random_state; deterministic
    solvers (OLS, ridge, lasso) do not.
    """
    name: str
    build: Callable
    default_grid: Dict[str, list] = field(default_factory=dict)
    search_space: Dict[str, object] = field(default_factory=dict)
    stochastic: bool = False
    description: str = ''

    def make_estimator(self, params, random_state=None):
        return self.build(dict(params), random_state if self.stochastic else None)

    def fit(self, X, y, params, random_state=None):
        """Fit a new estimator on X/y with `params`; returns the fitted predictor."""
        estimator = self.make_estimator(params, random_state)
        estimator.fit(X, y)
        return estimator


_REGISTRY = {}


def register_family(family, replace=False):
    """Register a ModelFamily under its name."""
    if family.name in _REGISTRY and not replace:
        raise ValueError(f"Model family '{family.name}' is already registered")
    _REGISTRY[family.name] = family
    return family


def unregister_family(name):
    _REGISTRY.pop(name, None)


def get_family(name):
    if isinstance(name, ModelFamily):
        return name
    try:
        return _REGISTRY[name]
    except KeyError:
        raise UnknownModelError(
            f"Unknown model type: '{name}'. Supported: {available_families()}"
        ) from None


def available_families():
    return sorted(_REGISTRY)


def build_model(model_type, params=None, random_state=None):
    """Build an unfitted estimator for `model_type` with `params`."""
    return get_family(model_type).make_estimator(params or {}, random_state)


def _linear_regression(params, random_state):
    return LinearRegression(**params)


def _ridge(params, random_state):
    return Ridge(**params)


def _lasso(params, random_state):
    params.setdefault('max_iter', 10000)
    return Lasso(**params)


def _random_forest(params, random_state):
    params.setdefault('n_jobs', 1)
    return RandomForestRegressor(random_state=random_state, **params)


def _gbm(params, random_state):
    return GradientBoostingRegressor(random_state=random_state, **params)


def _xgboost(params, random_state):
    params.setdefault('n_jobs', 1)
    return XGBRegressor(random_state=random_state, verbosity=0, **params)


def _lightgbm(params, random_state):
    params.setdefault('n_jobs', 1)
    return LGBMRegressor(random_state=random_state, verbose=-1, **params)


register_family(ModelFamily(
    name='linear_regression',
    build=_linear_regression,
    default_grid={'fit_intercept': [True]},
    search_space={'fit_intercept': [True, False]},
    description='Ordinary least squares',
))

register_family(ModelFamily(
    name='ridge',
    build=_ridge,
    default_grid={'alpha': [0.01, 0.1, 1.0, 10.0, 100.0]},
    search_space={'alpha': ParamRange(1e-4, 1e3, 'log')},
    description='L2-penalised least squares',
))

register_family(ModelFamily(
    name='lasso',
    build=_lasso,
    default_grid={'alpha': [0.001, 0.01, 0.1, 0.5, 1.0]},
    search_space={'alpha': ParamRange(1e-4, 10.0, 'log')},
    description='L1-penalised least squares (coordinate descent)',
))

register_family(ModelFamily(
    name='random_forest',
    build=_random_forest,
    default_grid={
        'n_estimators': [200],
        'max_features': [0.33, 0.66, 1.0],
        'min_samples_leaf': [1, 5],
    },
    search_space={
        'n_estimators': ParamRange(50, 500, 'int'),
        'max_features': ParamRange(0.1, 1.0, 'float'),
        'min_samples_leaf': ParamRange(1, 20, 'int'),
    },
    stochastic=True,
    description='Random forest regressor',
))

register_family(ModelFamily(
    name='gbm',
    build=_gbm,
    default_grid={
        'max_depth': [1, 2, 3],
        'n_estimators': [50, 100, 150],
        'learning_rate': [0.1],
        'min_samples_leaf': [10],
    },
    search_space={
        'max_depth': ParamRange(1, 6, 'int'),
        'n_estimators': ParamRange(50, 500, 'int'),
        'learning_rate': ParamRange(1e-3, 0.5, 'log'),
        'subsample': ParamRange(0.5, 1.0, 'float'),
        'min_samples_leaf': ParamRange(1, 30, 'int'),
    },
    stochastic=True,
    description='Stochastic gradient boosting (scikit-learn)',
))

if HAS_XGBOOST:
    register_family(ModelFamily(
        name='xgboost',
        build=_xgboost,
        default_grid={
            'n_estimators': [100, 200],
            'max_depth': [3, 6],
            'learning_rate': [0.05, 0.1],
        },
        search_space={
            'n_estimators': ParamRange(50, 500, 'int'),
            'max_depth': ParamRange(2, 10, 'int'),
            'learning_rate': ParamRange(1e-3, 0.5, 'log'),
            'subsample': ParamRange(0.5, 1.0, 'float'),
            'colsample_bytree': ParamRange(0.3, 1.0, 'float'),
        },
        stochastic=True,
        description='Gradient-boosted trees (XGBoost)',
    ))

if HAS_LIGHTGBM:
    register_family(ModelFamily(
        name='lightgbm',
        build=_lightgbm,
        default_grid={
            'n_estimators': [100, 200],
            'num_leaves': [15, 31],
            'learning_rate': [0.05, 0.1],
        },
        search_space={
            'n_estimators': ParamRange(50, 500, 'int'),
            'num_leaves': ParamRange(4, 128, 'int'),
            'learning_rate': ParamRange(1e-3, 0.5, 'log'),
            'min_child_samples': ParamRange(5, 50, 'int'),
        },
        stochastic=True,
        description='Gradient-boosted trees (LightGBM)',
    ))
