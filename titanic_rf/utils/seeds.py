# titanic_rf/utils/seeds.py
import os
import random

import numpy as np

SEED_ENV_VAR = "SEED"
FALLBACK_SEED = 42


def resolve_seed(seed=None) -> int:
    """Explicit seed if given, else ``$SEED``, else 42."""
    if seed is None:
        seed = os.getenv(SEED_ENV_VAR, FALLBACK_SEED)
    return int(seed)


def set_global_seed(seed=None) -> int:
    """
    Seed ``random`` and NumPy's legacy global generator.

    Forests and splits take their own ``random_state``; this only pins
    whatever else draws from the global generators. Returns the seed used.
    """
    seed = resolve_seed(seed)
    random.seed(seed)
    np.random.seed(seed)
    print(f"[INFO] Global seed: {seed}")
    return seed
