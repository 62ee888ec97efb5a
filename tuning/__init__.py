# Tuning package
# Cross-validated hyperparameter search and comparison of regression models

from .logger import get_logger
from .errors import (
    TuningError,
    InvalidSizeError,
    InvalidFoldCountError,
    EmptyGridError,
    AllCandidatesFailedError,
    UnknownModelError,
)
from .config_schema import validate_config, ConfigValidationError
from .io import load_config, save_results, create_run_dir, save_data_profile
from .data import load_dataset, preprocess_data, validate_data_integrity
from .split import Split, split_dataset
from .resampling import FoldPlan, Resampling, kfold, repeated_kfold, adaptive_kfold, build_resampling, plan_folds
from .grid import ParamRange, expand_grid, random_grid, build_grid
from .models import ModelFamily, register_family, get_family, available_families, build_model
from .metrics import evaluate_predictions
from .pool import WorkerPool
from .orchestrator import Tuner, TuningResult, train
from .compare import compare_models, format_results_table

get_logger(__name__)

__all__ = [
    'TuningError',
    'InvalidSizeError',
    'InvalidFoldCountError',
    'EmptyGridError',
    'AllCandidatesFailedError',
    'UnknownModelError',
    'validate_config',
    'ConfigValidationError',
    'load_config',
    'save_results',
    'create_run_dir',
    'save_data_profile',
    'load_dataset',
    'preprocess_data',
    'validate_data_integrity',
    'Split',
    'split_dataset',
    'FoldPlan',
    'Resampling',
    'kfold',
    'repeated_kfold',
    'adaptive_kfold',
    'build_resampling',
    'plan_folds',
    'ParamRange',
    'expand_grid',
    'random_grid',
    'build_grid',
    'ModelFamily',
    'register_family',
    'get_family',
    'available_families',
    'build_model',
    'evaluate_predictions',
    'WorkerPool',
    'Tuner',
    'TuningResult',
    'train',
    'compare_models',
    'format_results_table',
]
