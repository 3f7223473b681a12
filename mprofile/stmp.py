# mprofile
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.

import numpy as np

from . import core
from .stats import RollingStats


def _stmp(T_A, T_B, m, T_B_stats, excl_zone=None):
    """
    Compute the matrix profile of `T_B` by visiting every subsequence of `T_A`, in
    order, with MASS

    Parameters
    ----------
    T_A : numpy.ndarray
        The time series or sequence that queries are drawn from

    T_B : numpy.ndarray
        The time series or sequence that is annotated

    m : int
        Window size

    T_B_stats : RollingStats
        The rolling statistics of `T_B`

    excl_zone : int, default None
        The exclusion zone for a self-join or `None` for an AB-join

    Returns
    -------
    P : numpy.ndarray
        Matrix profile

    I : numpy.ndarray
        Matrix profile indices
    """
    l_A = T_A.shape[0] - m + 1
    l_B = T_B.shape[0] - m + 1
    P = np.full(l_B, np.inf, dtype=np.float64)
    I = np.full(l_B, -1, dtype=np.int64)

    for i in range(l_A):
        D = core.distance_profile(i, T_A, T_B, m, T_B_stats, excl_zone)
        core._update_PI(P, I, D, i)

    return P, I


def stmp(T_A, m, T_B=None):
    """
    Compute the z-normalized matrix profile with the brute force STMP algorithm

    Every subsequence of `T_A` is used as a query and its distance profile is
    computed with MASS. This is slow and mostly useful as a reference.

    Parameters
    ----------
    T_A : numpy.ndarray
        The time series or sequence that queries are drawn from

    m : int
        Window size

    T_B : numpy.ndarray, default None
        The time series or sequence that is annotated. For every subsequence in
        `T_B`, its nearest neighbor in `T_A` is recorded. When `None`, a self-join of
        `T_A` is computed.

    Returns
    -------
    P : numpy.ndarray
        Matrix profile of `T_B`

    I : numpy.ndarray
        Matrix profile indices (into `T_A`)

    Raises
    ------
    ZeroVarianceError
        If a subsequence of `T_A` is constant

    Notes
    -----
    `DOI: 10.1109/ICDM.2016.0179 \
    <https://www.cs.ucr.edu/~eamonn/PID4481997_extend_Matrix%20Profile_I.pdf>`__
    """
    T_A, T_B, self_join = core.preprocess_join(T_A, m, T_B, row_wise=True)
    excl_zone = core.get_excl_zone(m) if self_join else None

    return _stmp(T_A, T_B, m, RollingStats(T_B, m), excl_zone)
