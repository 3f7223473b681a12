# mprofile
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.

import numpy as np
from numba import njit

from . import config, core, scheduler


@njit(nogil=True, fastmath=config.MPROFILE_FASTMATH_FLAGS)
def _compute_diagonals(
    T_X,
    T_Y,
    m,
    μ_X,
    σ_inv_X,
    df_X,
    dg_X,
    X_subseq_isconstant,
    μ_Y,
    σ_inv_Y,
    df_Y,
    dg_Y,
    Y_subseq_isconstant,
    diags,
    diags_start_idx,
    diags_stop_idx,
    ρ_X,
    I_X,
    ρ_Y,
    I_Y,
    remap_negative_correlation,
):
    """
    Sweep (inplace) the diagonals `diags[diags_start_idx:diags_stop_idx]` where
    diagonal `g` pairs subsequence `i + g` of `T_X` with subsequence `i` of `T_Y`

    For a self-join, `T_X` and `T_Y` are the same time series and `ρ_X`/`I_X` are
    the same arrays as `ρ_Y`/`I_Y`.

    Parameters
    ----------
    T_X : numpy.ndarray
        The time series whose subsequences are offset by the diagonal

    T_Y : numpy.ndarray
        The other time series

    m : int
        Window size

    μ_X : numpy.ndarray
        Sliding mean of `T_X`

    σ_inv_X : numpy.ndarray
        Sliding inverse (centered) norm of `T_X`

    df_X : numpy.ndarray
        The MPX `df` difference array of `T_X`

    dg_X : numpy.ndarray
        The MPX `dg` difference array of `T_X`

    X_subseq_isconstant : numpy.ndarray
        A boolean array that indicates whether a subsequence in `T_X` is constant

    μ_Y : numpy.ndarray
        Sliding mean of `T_Y`

    σ_inv_Y : numpy.ndarray
        Sliding inverse (centered) norm of `T_Y`

    df_Y : numpy.ndarray
        The MPX `df` difference array of `T_Y`

    dg_Y : numpy.ndarray
        The MPX `dg` difference array of `T_Y`

    Y_subseq_isconstant : numpy.ndarray
        A boolean array that indicates whether a subsequence in `T_Y` is constant

    diags : numpy.ndarray
        The diagonal indices

    diags_start_idx : int
        The first position in `diags` to sweep

    diags_stop_idx : int
        The (exclusive) last position in `diags` to sweep

    ρ_X : numpy.ndarray
        The best Pearson correlation for every subsequence of `T_X`

    I_X : numpy.ndarray
        The matrix profile indices (into `T_Y`) for `T_X`

    ρ_Y : numpy.ndarray
        The best Pearson correlation for every subsequence of `T_Y`

    I_Y : numpy.ndarray
        The matrix profile indices (into `T_X`) for `T_Y`

    remap_negative_correlation : bool
        When `True`, the absolute correlation is compared so that anti-correlated
        subsequences count as matches

    Returns
    -------
    None

    Notes
    -----
    `DOI: 10.1145/3357223.3362721 \
    <https://www.cs.ucr.edu/~eamonn/public/GPU_Matrix_profile_VLDB_30DraftOnly.pdf>`__
    """
    l_X = μ_X.shape[0]
    l_Y = μ_Y.shape[0]

    for diag_idx in range(diags_start_idx, diags_stop_idx):
        g = diags[diag_idx]

        cov = 0.0
        for k in range(m):
            cov += (T_X[g + k] - μ_X[g]) * (T_Y[k] - μ_Y[0])

        for i in range(min(l_X - g, l_Y)):
            # `df[0]` and `dg[0]` are zero so the first cell is left untouched
            cov += df_Y[i] * dg_X[i + g] + df_X[i + g] * dg_Y[i]
            if X_subseq_isconstant[i + g] or Y_subseq_isconstant[i]:
                continue

            ρ = cov * σ_inv_Y[i] * σ_inv_X[i + g]
            if remap_negative_correlation and ρ < 0.0:
                ρ = -ρ

            if ρ > ρ_Y[i] or (ρ == ρ_Y[i] and i + g < I_Y[i]):
                ρ_Y[i] = ρ
                I_Y[i] = i + g

            if ρ > ρ_X[i + g] or (ρ == ρ_X[i + g] and i < I_X[i + g]):
                ρ_X[i + g] = ρ
                I_X[i + g] = i


def _preprocess_mpx(T, m):
    """
    Compute the sliding mean, the inverse (centered) norm, the MPX difference arrays,
    and the constant subsequence flags of `T`
    """
    μ, σ_inv = core.mu_inv_n(T, m)
    df, dg = core.mpx_diff(T, m, μ)
    T_subseq_isconstant = core.rolling_isconstant(T, m)

    return μ, σ_inv, df, dg, T_subseq_isconstant


def _sweep(
    T_X,
    T_Y,
    m,
    X_stats,
    Y_stats,
    diags,
    ρ_X,
    I_X,
    ρ_Y=None,
    I_Y=None,
    remap_negative_correlation=False,
    parallelism=None,
):
    """
    Split `diags` into load balanced batches, sweep every batch in a worker and
    merge (inplace) the worker correlations into `ρ_X`/`I_X` and, for an AB-join,
    `ρ_Y`/`I_Y`

    When `ρ_Y` is `None`, a self-join of `T_X` is assumed.

    Returns
    -------
    err : Exception
        The last error raised by a worker or `None`
    """
    self_join = ρ_Y is None
    l_X = X_stats[0].shape[0]
    l_Y = Y_stats[0].shape[0]
    ndist_counts = core._count_diagonal_ndist(diags, l_X, l_Y)
    diags_ranges = core._get_array_ranges(ndist_counts, parallelism, False)

    def _mpx_batch(batch_idx):
        start, stop = diags_ranges[batch_idx]
        if start >= stop:
            return None

        ρ_X_batch = np.full(l_X, -np.inf, dtype=np.float64)
        I_X_batch = np.full(l_X, -1, dtype=np.int64)
        if self_join:
            ρ_Y_batch = ρ_X_batch
            I_Y_batch = I_X_batch
        else:
            ρ_Y_batch = np.full(l_Y, -np.inf, dtype=np.float64)
            I_Y_batch = np.full(l_Y, -1, dtype=np.int64)

        _compute_diagonals(
            T_X,
            T_Y,
            m,
            *X_stats,
            *Y_stats,
            diags,
            start,
            stop,
            ρ_X_batch,
            I_X_batch,
            ρ_Y_batch,
            I_Y_batch,
            remap_negative_correlation,
        )

        if self_join:
            return scheduler.BatchResult(ρ_X_batch, I_X_batch)
        return scheduler.BatchResult(ρ_X_batch, I_X_batch, ρ_Y_batch, I_Y_batch)

    return scheduler.run_batches(
        _mpx_batch,
        diags_ranges.shape[0],
        ρ_X,
        I_X,
        PB=ρ_Y,
        IB=I_Y,
        larger_is_better=True,
        parallelism=parallelism,
    )


def _mpx(
    T_A,
    T_B,
    m,
    self_join,
    parallelism=None,
    euclidean=True,
    remap_negative_correlation=False,
):
    """
    Compute the matrix profile with MPX on preprocessed inputs

    Returns
    -------
    P : numpy.ndarray
        Matrix profile of `T_A`

    I : numpy.ndarray
        Matrix profile indices (into `T_B`)

    PB : numpy.ndarray
        Matrix profile of `T_B` or `None` for a self-join

    IB : numpy.ndarray
        Matrix profile indices (into `T_A`) or `None` for a self-join
    """
    parallelism = core._get_parallelism(parallelism)

    A_stats = _preprocess_mpx(T_A, m)
    l_A = A_stats[0].shape[0]
    ρ_A = np.full(l_A, -np.inf, dtype=np.float64)
    I_A = np.full(l_A, -1, dtype=np.int64)

    if self_join:
        diags = np.arange(core.get_mpx_diag_start(m), l_A, dtype=np.int64)
        err = _sweep(
            T_A,
            T_A,
            m,
            A_stats,
            A_stats,
            diags,
            ρ_A,
            I_A,
            remap_negative_correlation=remap_negative_correlation,
            parallelism=parallelism,
        )
        if err is not None:  # pragma: no cover
            raise err

        return core._correlation_to_distance(ρ_A, I_A, m, euclidean), I_A, None, None

    B_stats = _preprocess_mpx(T_B, m)
    l_B = B_stats[0].shape[0]
    ρ_B = np.full(l_B, -np.inf, dtype=np.float64)
    I_B = np.full(l_B, -1, dtype=np.int64)

    # AB-join followed by BA-join
    for T_X, T_Y, X_stats, Y_stats, ρ_X, I_X, ρ_Y, I_Y in (
        (T_A, T_B, A_stats, B_stats, ρ_A, I_A, ρ_B, I_B),
        (T_B, T_A, B_stats, A_stats, ρ_B, I_B, ρ_A, I_A),
    ):
        diags = np.arange(X_stats[0].shape[0], dtype=np.int64)
        err = _sweep(
            T_X,
            T_Y,
            m,
            X_stats,
            Y_stats,
            diags,
            ρ_X,
            I_X,
            ρ_Y,
            I_Y,
            remap_negative_correlation=remap_negative_correlation,
            parallelism=parallelism,
        )
        if err is not None:  # pragma: no cover
            raise err

    return (
        core._correlation_to_distance(ρ_A, I_A, m, euclidean),
        I_A,
        core._correlation_to_distance(ρ_B, I_B, m, euclidean),
        I_B,
    )


def mpx(
    T_A,
    m,
    T_B=None,
    parallelism=None,
    euclidean=True,
    remap_negative_correlation=False,
):
    """
    Compute the matrix profile with the MPX algorithm

    MPX tracks the Pearson correlation of subsequence pairs along the diagonals of
    the distance matrix, which avoids FFTs entirely. The correlation along a diagonal
    is updated in constant time from numerically stable (two-sum) rolling statistics.

    Parameters
    ----------
    T_A : numpy.ndarray
        The time series or sequence for which to compute the matrix profile

    m : int
        Window size

    T_B : numpy.ndarray, default None
        The time series or sequence that will be used to annotate `T_A`. When
        `None`, a self-join of `T_A` is computed and subsequences closer than
        `max(1, m // 4)` are ignored as trivial matches.

    parallelism : int, default None
        The number of workers. When `None`, the number of CPUs is used.

    euclidean : bool, default True
        When `True`, the matrix profile holds z-normalized Euclidean distances.
        Otherwise, it holds Pearson correlations (and higher is better).

    remap_negative_correlation : bool, default False
        When `True`, anti-correlated subsequences are treated as matches by comparing
        the absolute value of the Pearson correlation

    Returns
    -------
    P : numpy.ndarray
        Matrix profile of `T_A`

    I : numpy.ndarray
        Matrix profile indices. For an AB-join, these point into `T_B`.

    PB : numpy.ndarray
        Matrix profile of `T_B` (AB-join only, otherwise `None`)

    IB : numpy.ndarray
        Matrix profile indices (into `T_A`) for `T_B` (AB-join only, otherwise
        `None`)

    Notes
    -----
    `DOI: 10.1145/3357223.3362721 \
    <https://www.cs.ucr.edu/~eamonn/public/GPU_Matrix_profile_VLDB_30DraftOnly.pdf>`__
    """
    T_A, T_B, self_join = core.preprocess_join(T_A, m, T_B)

    return _mpx(
        T_A,
        T_B,
        m,
        self_join,
        parallelism=parallelism,
        euclidean=euclidean,
        remap_negative_correlation=remap_negative_correlation,
    )
