# Runners Package
# Command-line entry points for each pipeline stage

import os
# Set LOKY_MAX_CPU_COUNT early to silence joblib/loky warnings on Windows
os.environ.setdefault('LOKY_MAX_CPU_COUNT', str(os.cpu_count() or 1))

from . import run_processing
from . import run_exploration
from . import run_models
from . import run_pipeline

__all__ = [
    'run_processing',
    'run_exploration',
    'run_models',
    'run_pipeline'
]
