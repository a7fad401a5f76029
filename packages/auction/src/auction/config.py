"""
Matcher Configuration
=====================
Numerical constants of the auction matcher. Single source of truth;
the progressive, barycenter and kmeans packages read theirs from here too.

Usage:
    from auction.config import CONFIG
    factor = CONFIG['auction']['epsilon_factor']
"""

CONFIG = {

    # =================================================================
    # Auction (epsilon-scaling)
    # =================================================================
    'auction': {
        'epsilon_factor': 5.0,          # eps divided by this each phase
        'initial_divisor': 4.0,         # eps0 = max_cost / initial_divisor
        'rel_tol': 1e-9,                # n * eps_final <= rel_tol * max_cost
        'max_bids_per_bidder': 2000,    # per phase; beyond → exact fallback
        'deadline_check_every': 256,    # bids between deadline checks
    },

    # =================================================================
    # Candidate search
    # =================================================================
    'kdtree': {
        'min_points': 64,               # below this a dense scan is cheaper
        'radius_slack': 1e-9,           # relative slack on the ball radius
    },

    # =================================================================
    # Progressive refinement
    # =================================================================
    'progressive': {
        'start_fraction': 0.5,          # first threshold = fraction * max persistence
        'threshold_factor': 0.5,        # threshold multiplied by this per level
        'max_levels': 12,               # after this many levels go to full resolution
        'tolerance': 0.0,               # relative bound width accepted as resolved
    },

    # =================================================================
    # Barycenter
    # =================================================================
    'barycenter': {
        'max_iterations': 30,
        'rel_tol': 1e-6,                # stop when cost decrease falls below this
        'min_persistence': 1e-9,        # barycenter points below this are deleted
    },

    # =================================================================
    # K-Means
    # =================================================================
    'kmeans': {
        'max_iterations': 100,
    },
}


def get(path: str, default=None):
    """
    Get a config value by dot-separated path.

    Usage:
        get('auction.epsilon_factor')     → 5.0
        get('kmeans.max_iterations')      → 100
    """
    keys = path.split('.')
    val = CONFIG
    for key in keys:
        if isinstance(val, dict) and key in val:
            val = val[key]
        else:
            return default
    return val
