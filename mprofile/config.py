# mprofile
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.

import warnings

_MPROFILE_DEFAULTS = {
    "MPROFILE_EXCL_ZONE_DENOM": 2,
    "MPROFILE_MPX_EXCL_ZONE_DENOM": 4,
    "MPROFILE_DENOM_THRESHOLD": 1e-14,
    "MPROFILE_P_NORM_THRESHOLD": 1e-14,
    "MPROFILE_TEST_PRECISION": 5,
    "MPROFILE_PARALLELISM": None,
    "MPROFILE_FASTMATH_TRUE": True,
    "MPROFILE_FASTMATH_FLAGS": {"nsz", "arcp", "contract", "afn", "reassoc"},
}

# The fastmath flags are consumed when the njit functions are decorated (i.e., at
# import time) so changing them afterwards has no effect on compiled kernels

MPROFILE_EXCL_ZONE_DENOM = _MPROFILE_DEFAULTS["MPROFILE_EXCL_ZONE_DENOM"]
MPROFILE_MPX_EXCL_ZONE_DENOM = _MPROFILE_DEFAULTS["MPROFILE_MPX_EXCL_ZONE_DENOM"]
MPROFILE_DENOM_THRESHOLD = _MPROFILE_DEFAULTS["MPROFILE_DENOM_THRESHOLD"]
MPROFILE_P_NORM_THRESHOLD = _MPROFILE_DEFAULTS["MPROFILE_P_NORM_THRESHOLD"]
MPROFILE_TEST_PRECISION = _MPROFILE_DEFAULTS["MPROFILE_TEST_PRECISION"]
MPROFILE_PARALLELISM = _MPROFILE_DEFAULTS["MPROFILE_PARALLELISM"]
MPROFILE_FASTMATH_TRUE = _MPROFILE_DEFAULTS["MPROFILE_FASTMATH_TRUE"]
MPROFILE_FASTMATH_FLAGS = _MPROFILE_DEFAULTS["MPROFILE_FASTMATH_FLAGS"]


def _reset(var=None):
    """
    Reset the value of a configuration variable(s) to their default value(s)

    Parameters
    ----------
    var : str, default None
        The name of the configuration variable. If None, then all
        configuration variables are reset to their default values.

    Returns
    -------
    None
    """
    config_vars = [
        k for k, _ in globals().items() if k.isupper() and k.startswith("MPROFILE")
    ]

    if var is None:
        for config_var in config_vars:
            globals()[config_var] = _MPROFILE_DEFAULTS[config_var]
    elif var in config_vars:
        globals()[var] = _MPROFILE_DEFAULTS[var]
    else:  # pragma: no cover
        msg = (
            "Configuration reset was skipped for unrecognized "
            f"'_MPROFILE_DEFAULTS[{var}]'"
        )
        warnings.warn(msg)

    return
