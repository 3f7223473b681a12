# mprofile
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.

import numpy as np
from numba import njit

from . import config, core, scheduler
from .stats import RollingStats


@njit(nogil=True, fastmath=config.MPROFILE_FASTMATH_FLAGS)
def _stomp(
    T_A,
    T_B,
    m,
    QT,
    range_start,
    range_stop,
    μ_Q,
    σ_Q,
    Q_subseq_isconstant,
    M_T,
    Σ_T,
    T_subseq_isconstant,
    excl_zone,
    ignore_trivial,
):
    """
    A Numba JIT-compiled version of STOMP for the query rows in
    `[range_start, range_stop)`

    Parameters
    ----------
    T_A : numpy.ndarray
        The time series or sequence that queries are drawn from

    T_B : numpy.ndarray
        The time series or sequence that is annotated

    m : int
        Window size

    QT : numpy.ndarray
        The sliding dot product of `T_A[range_start : range_start + m]` and `T_B`.
        This private buffer is updated inplace, one row at a time.

    range_start : int
        The first query row

    range_stop : int
        The (exclusive) last query row

    μ_Q : numpy.ndarray
        Sliding mean of `T_A`

    σ_Q : numpy.ndarray
        Sliding standard deviation of `T_A`

    Q_subseq_isconstant : numpy.ndarray
        A boolean array that indicates whether a subsequence in `T_A` is constant

    M_T : numpy.ndarray
        Sliding mean of `T_B`

    Σ_T : numpy.ndarray
        Sliding standard deviation of `T_B`

    T_subseq_isconstant : numpy.ndarray
        A boolean array that indicates whether a subsequence in `T_B` is constant

    excl_zone : int
        The half width of the exclusion zone

    ignore_trivial : bool
        Set to `True` if this is a self-join

    Returns
    -------
    P : numpy.ndarray
        Matrix profile

    I : numpy.ndarray
        Matrix profile indices

    Notes
    -----
    `DOI: 10.1109/ICDM.2016.0085 \
    <https://www.cs.ucr.edu/~eamonn/STOMP_GPU_final_submission_camera_ready.pdf>`__

    See Table II
    """
    l_B = T_B.shape[0] - m + 1
    P = np.full(l_B, np.inf, dtype=np.float64)
    I = np.full(l_B, -1, dtype=np.int64)

    for i in range(range_start, range_stop):
        if i > range_start:
            for j in range(l_B - 1, 0, -1):
                QT[j] = (
                    QT[j - 1]
                    - T_B[j - 1] * T_A[i - 1]
                    + T_B[j + m - 1] * T_A[i + m - 1]
                )
            # The first lag has no predecessor and is always recomputed
            QT[0] = 0.0
            for k in range(m):
                QT[0] += T_A[i + k] * T_B[k]

        D = core._calculate_distance_profile(
            m,
            QT,
            μ_Q[i],
            σ_Q[i],
            Q_subseq_isconstant[i],
            M_T,
            Σ_T,
            T_subseq_isconstant,
        )
        if ignore_trivial:
            core._apply_exclusion_zone(D, i, excl_zone, np.inf)

        for j in range(l_B):
            if D[j] < P[j]:
                P[j] = D[j]
                I[j] = i

    return P, I


def _stomp_driver(T_A, T_B, m, T_A_stats, T_B_stats, excl_zone=None, parallelism=None):
    """
    Split the query rows of `T_A` into `parallelism` contiguous batches, run STOMP on
    each batch in a worker and merge the results

    Parameters
    ----------
    T_A : numpy.ndarray
        The time series or sequence that queries are drawn from

    T_B : numpy.ndarray
        The time series or sequence that is annotated

    m : int
        Window size

    T_A_stats : RollingStats
        The rolling statistics of `T_A`

    T_B_stats : RollingStats
        The rolling statistics of `T_B`

    excl_zone : int, default None
        The exclusion zone for a self-join or `None` for an AB-join

    parallelism : int, default None
        The number of workers

    Returns
    -------
    P : numpy.ndarray
        Matrix profile

    I : numpy.ndarray
        Matrix profile indices
    """
    parallelism = core._get_parallelism(parallelism)
    l_A = T_A.shape[0] - m + 1
    l_B = T_B.shape[0] - m + 1
    ranges = core._get_ranges(l_A, parallelism)
    ignore_trivial = excl_zone is not None
    if excl_zone is None:
        excl_zone = 0

    def _stomp_batch(batch_idx):
        start, stop = ranges[batch_idx]
        if start >= stop:
            return None

        QT = core.sliding_dot_product(T_A[start : start + m], T_B, T_B_stats.T_fft)
        P, I = _stomp(
            T_A,
            T_B,
            m,
            QT.copy(),
            start,
            stop,
            T_A_stats.M_T,
            T_A_stats.Σ_T,
            T_A_stats.T_subseq_isconstant,
            T_B_stats.M_T,
            T_B_stats.Σ_T,
            T_B_stats.T_subseq_isconstant,
            excl_zone,
            ignore_trivial,
        )

        return scheduler.BatchResult(P, I)

    P = np.full(l_B, np.inf, dtype=np.float64)
    I = np.full(l_B, -1, dtype=np.int64)
    err = scheduler.run_batches(
        _stomp_batch, ranges.shape[0], P, I, parallelism=parallelism
    )
    if err is not None:  # pragma: no cover
        raise err

    return P, I


def stomp(T_A, m, T_B=None, parallelism=None):
    """
    Compute the z-normalized matrix profile with the STOMP algorithm

    The sliding dot product of the first query in each batch is computed with an
    FFT and every subsequent query reuses the previous dot products, which reduces
    the cost of a full matrix profile to `O(n^2)`.

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

    parallelism : int, default None
        The number of workers. When `None`, the number of CPUs is used.

    Returns
    -------
    P : numpy.ndarray
        Matrix profile of `T_B`. Constant subsequences have no z-normalized
        neighbor and are left at `np.inf`.

    I : numpy.ndarray
        Matrix profile indices (into `T_A`) or `-1` where no neighbor exists

    Notes
    -----
    `DOI: 10.1109/ICDM.2016.0085 \
    <https://www.cs.ucr.edu/~eamonn/STOMP_GPU_final_submission_camera_ready.pdf>`__

    See Table II
    """
    T_A, T_B, self_join = core.preprocess_join(T_A, m, T_B, row_wise=True)
    T_B_stats = RollingStats(T_B, m)
    if self_join:
        T_A_stats = T_B_stats
        excl_zone = core.get_excl_zone(m)
    else:
        T_A_stats = RollingStats(T_A, m)
        excl_zone = None

    return _stomp_driver(
        T_A, T_B, m, T_A_stats, T_B_stats, excl_zone, parallelism=parallelism
    )
