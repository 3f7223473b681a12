# mprofile
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.

import numpy as np
from numba import njit

from . import config, core, scheduler
from .stats import RollingStats


def _preprocess_multi(T, m):
    """
    Convert the multi-dimensional time series to a two-dimensional
    `numpy.ndarray` copy and check it against the window size

    Parameters
    ----------
    T : numpy.ndarray
        The multi-dimensional time series where each row is a dimension

    m : int
        Window size

    Returns
    -------
    T : numpy.ndarray
        Modified time series
    """
    try:
        T = np.array(T, copy=True)
    except ValueError as err:
        raise core.InvalidInputError(
            "Every dimension of T must have the same length"
        ) from err
    core.check_dtype(T)

    if T.ndim != 2:
        raise core.InvalidInputError(
            f"T is {T.ndim}-dimensional and must be two-dimensional"
        )
    if T.shape[0] == 0 or T.shape[1] == 0:
        raise core.InvalidInputError("T must contain at least one value per dimension")
    if not np.all(np.isfinite(T)):
        raise core.InvalidInputError("T must only contain finite values")

    core.check_window_size(m, max_size=T.shape[1])
    core.check_row_wise_window_size(m, T.shape[1])

    return T


def _get_multi_QT(start, T, m, T_fft):
    """
    Multi-dimensional wrapper to compute the sliding dot product between the query,
    `T[:, start : start + m]`, and the time series, `T`

    Parameters
    ----------
    start : int
        The window index of the query

    T : numpy.ndarray
        The multi-dimensional time series

    m : int
        Window size

    T_fft : list
        The forward FFT coefficients of every dimension of `T`

    Returns
    -------
    QT : numpy.ndarray
        The sliding dot product of every dimension
    """
    d = T.shape[0]
    l = T.shape[1] - m + 1

    QT = np.empty((d, l), dtype=np.float64)
    for k in range(d):
        QT[k] = core.sliding_dot_product(T[k, start : start + m], T[k], T_fft[k])

    return QT


@njit(fastmath=config.MPROFILE_FASTMATH_FLAGS)
def _sort_and_average(D):
    """
    Sort (inplace) every column of the distance profiles, `D`, in ascending order
    and replace row `k` with the average of the `k + 1` smallest distances

    Parameters
    ----------
    D : numpy.ndarray
        The distance profiles where each row is a dimension

    Returns
    -------
    None
    """
    d, l = D.shape
    col = np.empty(d, dtype=np.float64)
    for j in range(l):
        for k in range(d):
            col[k] = D[k, j]
        col.sort()

        total = 0.0
        for k in range(d):
            total += col[k]
            D[k, j] = total / (k + 1)


@njit(nogil=True, fastmath=config.MPROFILE_FASTMATH_FLAGS)
def _mstomp(
    T,
    m,
    QT,
    range_start,
    range_stop,
    M_T,
    Σ_T,
    T_subseq_isconstant,
    excl_zone,
):
    """
    A Numba JIT-compiled version of mSTOMP for the query rows in
    `[range_start, range_stop)`

    Parameters
    ----------
    T : numpy.ndarray
        The multi-dimensional time series

    m : int
        Window size

    QT : numpy.ndarray
        The sliding dot product of `T[:, range_start : range_start + m]` and `T`.
        This private buffer is updated inplace, one row at a time.

    range_start : int
        The first query row

    range_stop : int
        The (exclusive) last query row

    M_T : numpy.ndarray
        Sliding mean of every dimension of `T`

    Σ_T : numpy.ndarray
        Sliding standard deviation of every dimension of `T`

    T_subseq_isconstant : numpy.ndarray
        A boolean array that indicates whether a subsequence in `T` is constant

    excl_zone : int
        The half width of the exclusion zone

    Returns
    -------
    P : numpy.ndarray
        The multi-dimensional matrix profile where row `k` is the `k + 1`
        dimensional matrix profile

    I : numpy.ndarray
        The multi-dimensional matrix profile indices

    Notes
    -----
    `DOI: 10.1109/ICDM.2017.66 \
    <https://www.cs.ucr.edu/~eamonn/Motif_Discovery_ICDM.pdf>`__

    See mSTAMP Algorithm
    """
    d, n = T.shape
    l = n - m + 1
    P = np.full((d, l), np.inf, dtype=np.float64)
    I = np.full((d, l), -1, dtype=np.int64)
    D = np.empty((d, l), dtype=np.float64)

    for i in range(range_start, range_stop):
        for k in range(d):
            if i > range_start:
                for j in range(l - 1, 0, -1):
                    QT[k, j] = (
                        QT[k, j - 1]
                        - T[k, j - 1] * T[k, i - 1]
                        + T[k, j + m - 1] * T[k, i + m - 1]
                    )
                QT[k, 0] = 0.0
                for t in range(m):
                    QT[k, 0] += T[k, i + t] * T[k, t]

            D[k] = core._calculate_distance_profile(
                m,
                QT[k],
                M_T[k, i],
                Σ_T[k, i],
                T_subseq_isconstant[k, i],
                M_T[k],
                Σ_T[k],
                T_subseq_isconstant[k],
            )
            core._apply_exclusion_zone(D[k], i, excl_zone, np.inf)

        _sort_and_average(D)

        for k in range(d):
            for j in range(l):
                if D[k, j] < P[k, j]:
                    P[k, j] = D[k, j]
                    I[k, j] = i

    return P, I


def mstomp(T, m, parallelism=None):
    """
    Compute the multi-dimensional (k-dimensional) z-normalized matrix profile with
    mSTOMP

    For every pair of subsequences, the z-normalized distances of all dimensions
    are sorted and row `k` of the matrix profile holds the smallest average of the
    `k + 1` best matching dimensions. Only self-joins are supported.

    Parameters
    ----------
    T : numpy.ndarray
        The time series or sequence for which to compute the multi-dimensional
        matrix profile. Each row in `T` holds a single dimension and all dimensions
        share the same length.

    m : int
        Window size

    parallelism : int, default None
        The number of workers. When `None`, the number of CPUs is used.

    Returns
    -------
    P : numpy.ndarray
        The multi-dimensional matrix profile. Each row of the array corresponds to
        the matrix profile for a given number of dimensions (i.e., the first row is
        the 1-D matrix profile and the second row is the 2-D matrix profile).

    I : numpy.ndarray
        The multi-dimensional matrix profile indices or `-1` where no neighbor exists

    Notes
    -----
    `DOI: 10.1109/ICDM.2017.66 \
    <https://www.cs.ucr.edu/~eamonn/Motif_Discovery_ICDM.pdf>`__

    See mSTAMP Algorithm

    Examples
    --------
    >>> mprofile.mstomp(
    ...     np.array([[0., 0., 1., 1., 0., 0., 0., 1., 1., 0., 0.],
    ...               [0., 0., -1., -1., 0., 0., 0., -1., -1., 0., 0.],
    ...               [0., 0., 0., 1., 0., 1., 1., 0., 0., 1., 0.]]),
    ...     m=4)[0][:, :3]
    array([[0.        , 0.        , 0.        ],
           [0.        , 0.        , 0.        ],
           [1.18409845, 1.18409845, 1.18409845]])
    """
    T = _preprocess_multi(T, m)
    parallelism = core._get_parallelism(parallelism)

    d, n = T.shape
    l = n - m + 1
    excl_zone = core.get_excl_zone(m)

    T_stats = [RollingStats(T[k], m) for k in range(d)]
    M_T = np.array([stats.M_T for stats in T_stats])
    Σ_T = np.array([stats.Σ_T for stats in T_stats])
    T_subseq_isconstant = np.array([stats.T_subseq_isconstant for stats in T_stats])
    T_fft = [stats.T_fft for stats in T_stats]

    ranges = core._get_ranges(l, parallelism)

    def _mstomp_batch(batch_idx):
        start, stop = ranges[batch_idx]
        if start >= stop:
            return None

        QT = _get_multi_QT(start, T, m, T_fft)
        P, I = _mstomp(
            T,
            m,
            QT,
            start,
            stop,
            M_T,
            Σ_T,
            T_subseq_isconstant,
            excl_zone,
        )

        # The merge is element-wise so the flattened profiles are merged directly
        return scheduler.BatchResult(P.reshape(-1), I.reshape(-1))

    P = np.full((d, l), np.inf, dtype=np.float64)
    I = np.full((d, l), -1, dtype=np.int64)
    err = scheduler.run_batches(
        _mstomp_batch,
        ranges.shape[0],
        P.reshape(-1),
        I.reshape(-1),
        parallelism=parallelism,
    )
    if err is not None:  # pragma: no cover
        raise err

    return P, I
