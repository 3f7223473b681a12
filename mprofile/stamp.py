# mprofile
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.

import numpy as np

from . import core, scheduler
from .stats import RollingStats


def _stamp(T_A, T_B, m, T_B_stats, excl_zone=None, sample=1.0, parallelism=None):
    """
    Compute the (approximate) matrix profile of `T_B` by visiting a random sample of
    the subsequences in `T_A`

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

    sample : float, default 1.0
        The fraction of query subsequences to visit

    parallelism : int, default None
        The number of workers

    Returns
    -------
    P : numpy.ndarray
        Matrix profile

    I : numpy.ndarray
        Matrix profile indices
    """
    core.check_sample(sample)
    parallelism = core._get_parallelism(parallelism)

    l_A = T_A.shape[0] - m + 1
    l_B = T_B.shape[0] - m + 1
    indices = np.random.permutation(l_A)
    ranges = core._get_ranges(l_A, parallelism)
    n_visit = int(np.floor((ranges[0, 1] - ranges[0, 0]) * sample))

    def _stamp_batch(batch_idx):
        start, stop = ranges[batch_idx]
        stop = min(stop, start + n_visit)
        if start >= stop:
            return None

        P = np.full(l_B, np.inf, dtype=np.float64)
        I = np.full(l_B, -1, dtype=np.int64)
        for idx in indices[start:stop]:
            D = core.distance_profile(idx, T_A, T_B, m, T_B_stats, excl_zone)
            core._update_PI(P, I, D, idx)

        return scheduler.BatchResult(P, I)

    P = np.full(l_B, np.inf, dtype=np.float64)
    I = np.full(l_B, -1, dtype=np.int64)
    err = scheduler.run_batches(
        _stamp_batch, ranges.shape[0], P, I, parallelism=parallelism
    )
    if err is not None:
        raise err

    return P, I


def stamp(T_A, m, T_B=None, sample=1.0, parallelism=None):
    """
    Compute the z-normalized matrix profile with the anytime STAMP algorithm

    The query subsequences of `T_A` are visited in a random order and split across
    `parallelism` workers. Each worker only visits the first `sample` fraction of
    its share and so, when `sample < 1.0`, the result is an upper bound of the exact
    matrix profile.

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

    sample : float, default 1.0
        The fraction, in `(0, 1]`, of query subsequences to visit

    parallelism : int, default None
        The number of workers. When `None`, the number of CPUs is used.

    Returns
    -------
    P : numpy.ndarray
        Matrix profile of `T_B`

    I : numpy.ndarray
        Matrix profile indices (into `T_A`)

    Raises
    ------
    InvalidSampleError
        If `sample` is outside of `(0, 1]`

    ZeroVarianceError
        If a visited subsequence of `T_A` is constant. This is raised only after
        every worker has finished and, when several workers fail, only the error of
        the last one (in batch order) is raised.

    Notes
    -----
    `DOI: 10.1109/ICDM.2016.0179 \
    <https://www.cs.ucr.edu/~eamonn/PID4481997_extend_Matrix%20Profile_I.pdf>`__

    See Table III
    """
    T_A, T_B, self_join = core.preprocess_join(T_A, m, T_B, row_wise=True)
    excl_zone = core.get_excl_zone(m) if self_join else None

    return _stamp(
        T_A,
        T_B,
        m,
        RollingStats(T_B, m),
        excl_zone,
        sample=sample,
        parallelism=parallelism,
    )
