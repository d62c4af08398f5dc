# Config schema validation
# Validates config structure, types and allowed values

REQUIRED_KEYS = {
    'experiment': ['name', 'seed'],
    'data': ['target_column', 'target_type'],
    'split': ['train_fraction'],
    'cross_validation': ['n_splits'],
    'models': ['families'],
}

PROCESSING_REQUIRED_KEYS = {
    'data': [],
    'preprocessing': [],
}

ALLOWED_TARGET_TYPES = ['regression', 'classification']

ALLOWED_FAMILIES = {
    'regression': ['null', 'linear', 'decision_tree', 'lasso', 'random_forest'],
    'classification': ['null', 'logistic', 'decision_tree', 'lasso', 'random_forest'],
}

ALLOWED_COMPARISON_SPLITS = ['train', 'cv', 'test']


class ConfigValidationError(Exception):
    """Raised when config validation fails."""
    pass


def _check_required(config, required):
    errors = []
    for section, required_keys in required.items():
        if section not in config or not isinstance(config[section], dict):
            errors.append(f"Missing required section: '{section}'")
            continue
        for key in required_keys:
            if key not in config[section]:
                errors.append(f"Missing required key: '{section}.{key}'")
    return errors


def validate_config(config):
    """
    Validate a model analysis configuration.

    Raises:
        ConfigValidationError if validation fails
    """
    errors = _check_required(config, REQUIRED_KEYS)
    if errors:
        raise ConfigValidationError("Config validation failed:\n  - " + "\n  - ".join(errors))

    target_type = config['data'].get('target_type')
    if target_type not in ALLOWED_TARGET_TYPES:
        errors.append(f"Invalid target_type '{target_type}'. Allowed: {ALLOWED_TARGET_TYPES}")
    elif target_type == 'classification' and 'positive_class' not in config['data']:
        errors.append("Missing required key: 'data.positive_class' for classification targets")

    families = config['models'].get('families') or []
    if not isinstance(families, list) or not families:
        errors.append("models.families must be a non-empty list")
    elif target_type in ALLOWED_FAMILIES:
        unknown = [f for f in families if f not in ALLOWED_FAMILIES[target_type]]
        if unknown:
            errors.append(
                f"Invalid model families {unknown} for {target_type}. "
                f"Allowed: {ALLOWED_FAMILIES[target_type]}"
            )

    if not isinstance(config['experiment'].get('seed'), int):
        errors.append("experiment.seed must be an integer")

    fraction = config['split'].get('train_fraction')
    if not isinstance(fraction, (int, float)) or not 0 < fraction < 1:
        errors.append("split.train_fraction must be a number strictly between 0 and 1")

    cv_cfg = config['cross_validation']
    if not isinstance(cv_cfg.get('n_splits'), int):
        errors.append("cross_validation.n_splits must be an integer")
    elif cv_cfg['n_splits'] < 2:
        errors.append("cross_validation.n_splits must be >= 2")

    n_repeats = cv_cfg.get('n_repeats', 1)
    if not isinstance(n_repeats, int) or n_repeats < 1:
        errors.append("cross_validation.n_repeats must be a positive integer")

    comparison = config.get('comparison', {})
    split = comparison.get('split', 'test')
    if split not in ALLOWED_COMPARISON_SPLITS:
        errors.append(f"Invalid comparison split '{split}'. Allowed: {ALLOWED_COMPARISON_SPLITS}")

    n_jobs = config.get('tuning', {}).get('n_jobs')
    if n_jobs is not None and not isinstance(n_jobs, int):
        errors.append("tuning.n_jobs must be an integer")

    if errors:
        raise ConfigValidationError("Config validation failed:\n  - " + "\n  - ".join(errors))

    return True


def validate_processing_config(config):
    """Validate a processing configuration (raw -> processed table)."""
    errors = _check_required(config, PROCESSING_REQUIRED_KEYS)
    if errors:
        raise ConfigValidationError("Config validation failed:\n  - " + "\n  - ".join(errors))

    patterns = config['preprocessing'].get('exclude_patterns')
    if patterns is not None:
        if not isinstance(patterns, list) or not all(isinstance(p, str) and p for p in patterns):
            errors.append("preprocessing.exclude_patterns must be a list of non-empty strings")

    expected = config['preprocessing'].get('expected_columns')
    if expected is not None and not isinstance(expected, list):
        errors.append("preprocessing.expected_columns must be a list")

    if errors:
        raise ConfigValidationError("Config validation failed:\n  - " + "\n  - ".join(errors))

    return True
