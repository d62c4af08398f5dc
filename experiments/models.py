# Model building utilities
# Parametric fits (statsmodels) and tunable estimators (scikit-learn)

import warnings

import numpy as np
import pandas as pd
import statsmodels.api as sm
from statsmodels.tools.sm_exceptions import PerfectSeparationError
from sklearn.base import clone
from sklearn.linear_model import Lasso, LogisticRegression
from sklearn.ensemble import RandomForestClassifier, RandomForestRegressor
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler
from sklearn.tree import DecisionTreeClassifier, DecisionTreeRegressor


SIMPLE_FAMILIES = ['null', 'linear', 'logistic']
TUNED_FAMILIES = ['decision_tree', 'lasso', 'random_forest']

SUPPORTED_MODELS = {
    'regression': ['null', 'linear', 'decision_tree', 'lasso', 'random_forest'],
    'classification': ['null', 'logistic', 'decision_tree', 'lasso', 'random_forest']
}

INTERCEPT = '(Intercept)'


class FitDegeneracyWarning(UserWarning):
    """Collinear, constant or separated predictors in a parametric fit."""
    pass


class DesignEncoder:
    """
    Treatment-coded design matrix.

    Categorical columns become one 0/1 column per level except the first
    (named <column><level>, e.g. RunnyNoseYes). Levels are learned in fit()
    so that Train, folds and Test share the same columns.
    """

    def __init__(self):
        self.numeric_ = None
        self.levels_ = None
        self.columns_ = None

    def fit(self, X):
        self.numeric_ = []
        self.levels_ = {}
        for col in X.columns:
            series = X[col]
            if pd.api.types.is_bool_dtype(series) or pd.api.types.is_numeric_dtype(series):
                self.numeric_.append(col)
            elif isinstance(series.dtype, pd.CategoricalDtype):
                self.levels_[col] = [str(c) for c in series.cat.categories]
            else:
                self.levels_[col] = sorted(series.astype(str).unique())

        self.columns_ = []
        for col in X.columns:
            if col in self.levels_:
                self.columns_.extend(f"{col}{level}" for level in self.levels_[col][1:])
            else:
                self.columns_.append(col)
        return self

    def transform(self, X):
        if self.columns_ is None:
            raise RuntimeError("DesignEncoder must be fitted before transform")

        pieces = []
        for col in self.numeric_ + list(self.levels_):
            if col not in X.columns:
                raise ValueError(f"Predictor column '{col}' missing from input")
        for col in X.columns:
            if col in self.numeric_:
                pieces.append(X[[col]].astype(float))
            elif col in self.levels_:
                values = pd.Categorical(X[col].astype(str), categories=self.levels_[col])
                dummies = pd.get_dummies(values, prefix=col, prefix_sep='', drop_first=True, dtype=float)
                dummies.index = X.index
                pieces.append(dummies)

        if not pieces:
            return pd.DataFrame(index=X.index)

        design = pd.concat(pieces, axis=1)
        return design.reindex(columns=self.columns_, fill_value=0.0)

    def fit_transform(self, X):
        return self.fit(X).transform(X)


def with_intercept(design):
    design = design.copy()
    design.insert(0, INTERCEPT, 1.0)
    return design


def independent_columns(design):
    """
    Split design columns into (kept, aliased), scanning left to right.

    A column is aliased when it adds nothing to the rank of the columns kept
    before it (exact collinearity or a constant next to the intercept).
    """
    values = design.to_numpy(dtype=float)
    kept_pos = []
    rank = 0
    for j in range(values.shape[1]):
        trial = values[:, kept_pos + [j]]
        trial_rank = np.linalg.matrix_rank(trial)
        if trial_rank > rank:
            kept_pos.append(j)
            rank = trial_rank

    kept = [design.columns[j] for j in kept_pos]
    aliased = [c for c in design.columns if c not in kept]
    return kept, aliased


def encode_outcome(y, task, positive_class=None):
    """Float outcome for regression, 0/1 for classification."""
    y = pd.Series(y).reset_index(drop=True)
    if task == 'regression':
        return y.astype(float).to_numpy()

    if positive_class is None:
        raise ValueError("positive_class is required for classification outcomes")
    return (y.astype(str) == str(positive_class)).astype(int).to_numpy()


class ParametricFit:
    """A fitted null / linear / logistic model with its statsmodels results."""

    def __init__(self, family, task, encoder, columns, kept, results, warnings_=()):
        self.family = family
        self.task = task
        self.encoder = encoder
        self.columns = columns
        self.kept = kept
        self.results = results
        self.warnings = tuple(warnings_)

    @property
    def aliased(self):
        return [c for c in self.columns if c not in self.kept]

    def _design(self, X):
        if self.family == 'null':
            return pd.DataFrame({INTERCEPT: np.ones(len(X))}, index=X.index)
        return with_intercept(self.encoder.transform(X))

    def predict(self, X):
        if self.results is None:
            return np.full(len(X), np.nan)
        design = self._design(X)[self.kept]
        return np.asarray(self.results.predict(design), dtype=float)

    def coefficient_table(self):
        """term / estimate / std_error / statistic / p_value, NaN for aliased terms."""
        table = pd.DataFrame(index=pd.Index(self.columns, name='term'),
                             columns=['estimate', 'std_error', 'statistic', 'p_value'],
                             dtype=float)
        if self.results is not None:
            table.loc[self.kept, 'estimate'] = np.asarray(self.results.params, dtype=float)
            table.loc[self.kept, 'std_error'] = np.asarray(self.results.bse, dtype=float)
            table.loc[self.kept, 'statistic'] = np.asarray(self.results.tvalues, dtype=float)
            table.loc[self.kept, 'p_value'] = np.asarray(self.results.pvalues, dtype=float)
        return table.reset_index()

    def fit_stats(self):
        if self.results is None:
            return {'aic': np.nan, 'bic': np.nan, 'loglik': np.nan, 'nobs': np.nan}

        res = self.results
        stats = {
            'aic': float(res.aic),
            'bic': float(res.bic_llf if hasattr(res, 'bic_llf') else res.bic),
            'loglik': float(res.llf),
            'nobs': float(res.nobs),
        }
        if self.task == 'regression':
            stats['r2'] = float(res.rsquared)
            stats['adj_r2'] = float(res.rsquared_adj) if self.family != 'null' else 0.0
        else:
            stats['deviance'] = float(res.deviance)
            stats['null_deviance'] = float(res.null_deviance)
        return stats


def fit_parametric(family, task, X, y):
    """
    Fit outcome ~ predictors with an intercept.

    linear -> OLS, logistic -> binomial GLM, null -> intercept only. Aliased
    design columns are left out of the fit and reported as undefined; captured
    fit warnings (separation, convergence) are attached, never raised.
    """
    encoder = DesignEncoder().fit(X)

    if family == 'null':
        design = pd.DataFrame({INTERCEPT: np.ones(len(X))}, index=X.index)
    else:
        design = with_intercept(encoder.transform(X))

    columns = list(design.columns)
    kept, aliased = independent_columns(design)
    messages = []
    if aliased:
        messages.append(
            f"{family}: coefficients undefined for aliased terms {aliased} "
            f"(collinear or zero-variance predictors)"
        )

    y = np.asarray(y, dtype=float)
    results = None
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter('always')
        try:
            if task == 'regression':
                results = sm.OLS(y, design[kept]).fit()
            else:
                results = sm.GLM(y, design[kept], family=sm.families.Binomial()).fit()
        except (PerfectSeparationError, np.linalg.LinAlgError, ValueError) as e:
            messages.append(f"{family}: fit failed ({e}); all coefficients undefined")
            kept = []

    for w in caught:
        if issubclass(w.category, (DeprecationWarning, FutureWarning)):
            continue
        messages.append(f"{family}: {w.category.__name__}: {w.message}")

    for message in messages:
        warnings.warn(message, FitDegeneracyWarning, stacklevel=2)

    return ParametricFit(family, task, encoder, columns, kept, results, messages)


def build_model(family, task, seed, params=None):
    """
    Build an unfitted scikit-learn estimator for a tunable family.

    Note: LASSO is wrapped with a StandardScaler so the penalty acts on
    standardized predictors. Trees and forests use random_state for
    reproducibility.
    """
    params = dict(params or {})
    regression = task == 'regression'

    if family == 'decision_tree':
        cls = DecisionTreeRegressor if regression else DecisionTreeClassifier
        return cls(random_state=seed, **params)

    elif family == 'lasso':
        if regression:
            params.setdefault('max_iter', 10000)
            model = Lasso(**params)
        else:
            params.setdefault('solver', 'liblinear')
            model = LogisticRegression(penalty='l1', random_state=seed, **params)
        return Pipeline([('scale', StandardScaler()), ('model', model)])

    elif family == 'random_forest':
        cls = RandomForestRegressor if regression else RandomForestClassifier
        params.setdefault('n_jobs', 1)
        return cls(random_state=seed, **params)

    else:
        raise ValueError(
            f"Unknown tunable family: '{family}'. "
            f"Supported: {TUNED_FAMILIES}"
        )


def set_model_params(estimator, params):
    """Clone the estimator with hyperparameters set on its final step."""
    estimator = clone(estimator)
    if not params:
        return estimator
    if isinstance(estimator, Pipeline):
        step = estimator.steps[-1][0]
        params = {f"{step}__{k}": v for k, v in params.items()}
    return estimator.set_params(**params)


def final_step(estimator):
    return estimator.steps[-1][1] if isinstance(estimator, Pipeline) else estimator


def predict_array(estimator, values, task):
    """Predictions from a fitted estimator: values or positive-class probability."""
    if task == 'regression':
        return np.asarray(estimator.predict(values), dtype=float)

    classes = list(final_step(estimator).classes_)
    proba = estimator.predict_proba(values)
    if 1 not in classes:
        return np.zeros(len(values))
    return np.asarray(proba[:, classes.index(1)], dtype=float)


class FittedEstimator:
    """A tuned scikit-learn estimator refit on Train, with its design encoder."""

    def __init__(self, family, task, encoder, estimator, params):
        self.family = family
        self.task = task
        self.encoder = encoder
        self.estimator = estimator
        self.params = dict(params)
        self.warnings = ()

    def predict(self, X):
        design = self.encoder.transform(X)
        return predict_array(self.estimator, design.to_numpy(dtype=float), self.task)

    def coefficient_table(self):
        """LASSO coefficients on the standardized scale; None for trees."""
        if self.family != 'lasso':
            return None
        model = final_step(self.estimator)
        coef = np.ravel(model.coef_)
        intercept = float(np.ravel(model.intercept_)[0])
        return pd.DataFrame({
            'term': [INTERCEPT] + list(self.encoder.columns_),
            'estimate': np.concatenate([[intercept], coef]),
        })

    def importance_table(self):
        model = final_step(self.estimator)
        if not hasattr(model, 'feature_importances_'):
            return None
        table = pd.DataFrame({
            'feature': list(self.encoder.columns_),
            'importance': model.feature_importances_,
        })
        return table.sort_values('importance', ascending=False).reset_index(drop=True)


def fit(family, task, X, y, seed=123, params=None):
    """Fit one candidate on a predictor frame X and encoded outcome y."""
    if family in SIMPLE_FAMILIES:
        return fit_parametric(family, task, X, y)

    encoder = DesignEncoder().fit(X)
    design = encoder.transform(X).to_numpy(dtype=float)
    estimator = set_model_params(build_model(family, task, seed), params)
    estimator.fit(design, y)
    return FittedEstimator(family, task, encoder, estimator, params or {})


def predict(model, X):
    """Predictions of a fitted candidate on a predictor frame."""
    return model.predict(X)
