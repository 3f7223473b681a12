# mprofile
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.

import math
import warnings

import numba
import numpy as np
from numba import njit
from scipy.fft import irfft, rfft

from . import config

# Dekker's splitting constant, 2**27 + 1, for float64 error-free products
_DEKKER_SPLIT = 134217729.0


class MatrixProfileError(Exception):
    """
    Base class for every error raised while computing a matrix profile
    """


class InvalidInputError(MatrixProfileError, ValueError):
    """
    Raised for an empty, non-finite, or otherwise malformed series, a bad window
    size, or a bad computation option
    """


class InvalidSampleError(MatrixProfileError, ValueError):
    """
    Raised when a sampling fraction is outside of `(0, 1]`
    """


class ZeroVarianceError(MatrixProfileError, ValueError):
    """
    Raised when a query subsequence is constant and cannot be z-normalized
    """


class IndexOutOfRangeError(MatrixProfileError, IndexError):
    """
    Raised when a distance profile is requested for a query position that has no
    full subsequence
    """


def rolling_window(a, window):
    """
    Use strides to generate rolling/sliding windows for a numpy array.

    Parameters
    ----------
    a : numpy.ndarray
        numpy array

    window : int
        Size of the rolling window

    Returns
    -------
    output : numpy.ndarray
        This will be a new view of the original input array.
    """
    a = np.asarray(a)
    shape = a.shape[:-1] + (a.shape[-1] - window + 1, window)
    strides = a.strides + (a.strides[-1],)

    return np.lib.stride_tricks.as_strided(a, shape=shape, strides=strides)


def check_dtype(a, dtype=np.float64):
    """
    Check if the array type of `a` is of type specified by `dtype` parameter.

    Parameters
    ----------
    a : numpy.ndarray
        NumPy array

    dtype : dtype, default np.float64
        NumPy `dtype`

    Returns
    -------
    None

    Raises
    ------
    TypeError
        If the array type does not match `dtype`
    """
    if dtype is float:
        dtype = np.float64
    if not np.issubdtype(a.dtype, dtype):
        msg = f"{dtype} dtype expected but found {a.dtype} in input array\n"
        msg += "Please change your input `dtype` with `.astype(dtype)`"
        raise TypeError(msg)

    return True


def _preprocess(T, copy=True):
    """
    Convert the time series to a one-dimensional `numpy.ndarray` (a copy when `copy`
    is True) and check that it is a non-empty array of finite floats

    Parameters
    ----------
    T : numpy.ndarray
        Time series or sequence

    copy : bool, default True
        A boolean value that indicates whether the process should be done on
        input `T` (False) or its copy (True).

    Returns
    -------
    T : numpy.ndarray
        Modified time series
    """
    T = np.array(T, copy=True) if copy else np.asarray(T)
    check_dtype(T)

    if T.ndim != 1:
        raise InvalidInputError(f"T must be one dimensional but found {T.ndim} dims")
    if T.shape[0] == 0:
        raise InvalidInputError("T must contain at least one value")
    if not np.all(np.isfinite(T)):
        raise InvalidInputError("T must only contain finite values")

    return T


def preprocess_join(T_A, m, T_B=None, row_wise=False):
    """
    Preprocess the time series of a self-join (`T_B = None`) or an AB-join and
    check the window size against them

    Parameters
    ----------
    T_A : numpy.ndarray
        The time series or sequence that queries are drawn from

    m : int
        Window size

    T_B : numpy.ndarray, default None
        The reference time series or sequence. When `None`, a self-join of `T_A` is
        assumed.

    row_wise : bool, default False
        Whether the window size must also satisfy the row-wise (STMP/STAMP/STOMP)
        self-join bound

    Returns
    -------
    T_A : numpy.ndarray
        The preprocessed `T_A`

    T_B : numpy.ndarray
        The preprocessed `T_B`, which is `T_A` itself for a self-join

    self_join : bool
        Whether this is a self-join
    """
    T_A = _preprocess(T_A)
    if T_B is None:
        T_B = T_A
        self_join = True
    else:
        T_B = _preprocess(T_B)
        self_join = False

    max_size = min(T_A.shape[0], T_B.shape[0])
    if self_join and row_wise:
        check_window_size(m, max_size=max_size)
        check_row_wise_window_size(m, T_A.shape[0])
    elif self_join:
        check_window_size(m, max_size=max_size, n=T_A.shape[0])
    else:
        check_window_size(m, max_size=max_size)

    return T_A, T_B, self_join


def check_window_size(m, max_size=None, n=None):
    """
    Check that the window size is at least two and, if `max_size` is provided, no
    larger than `max_size`. When `n` is provided, a self-join is assumed and a
    warning is raised if the window size leaves no subsequence with an eligible
    (non-trivial) neighbor.

    Parameters
    ----------
    m : int
        Window size

    max_size : int, default None
        The maximum window size allowed

    n : int, default None
        The length of the time series in the case of a self-join.
        `n` should not be supplied (or set to `None`) in the case of an AB-join.

    Returns
    -------
    None
    """
    if not isinstance(m, (int, np.integer)) or isinstance(m, bool):
        raise InvalidInputError(f"The window size must be an integer, found {m!r}")

    if m < 2:
        raise InvalidInputError(
            "All window sizes must be greater than or equal to two since a single "
            "point subsequence always has a standard deviation of zero"
        )

    if max_size is not None and m > max_size:
        raise InvalidInputError(
            f"The window size must be less than or equal to {max_size}"
        )

    if n is not None:
        l = n - m + 1
        if l - 1 < get_mpx_diag_start(m):
            msg = (
                f"The window size, 'm = {m}', may be too large and could lead to "
                + "meaningless results. Consider reducing 'm' where necessary"
            )
            warnings.warn(msg)


def check_row_wise_window_size(m, n):
    """
    Check that a row-wise (STMP/STAMP/STOMP) self-join has room for non-trivial
    matches, i.e., `2 * m < n`

    Parameters
    ----------
    m : int
        Window size

    n : int
        The length of the time series

    Returns
    -------
    None
    """
    if 2 * m >= n:
        raise InvalidInputError(
            f"A self-join with window size {m} requires a time series longer than "
            f"{2 * m} but only {n} values were found"
        )


def check_sample(sample):
    """
    Check that a sampling fraction is within `(0, 1]`

    Parameters
    ----------
    sample : float
        The fraction of work to visit

    Returns
    -------
    None
    """
    if not (0.0 < sample <= 1.0):
        raise InvalidSampleError(
            f"The sample fraction must be in the interval (0, 1] but found {sample}"
        )


def _get_parallelism(parallelism=None):
    """
    Resolve the number of workers to fan batches out to

    Parameters
    ----------
    parallelism : int, default None
        The requested number of workers. When `None`, this falls back to
        `config.MPROFILE_PARALLELISM` and then to the number of numba threads (i.e.,
        the number of CPUs).

    Returns
    -------
    parallelism : int
        The validated number of workers
    """
    if parallelism is None:
        parallelism = config.MPROFILE_PARALLELISM
    if parallelism is None:
        parallelism = numba.config.NUMBA_NUM_THREADS

    if (
        not isinstance(parallelism, (int, np.integer))
        or isinstance(parallelism, bool)
        or parallelism < 1
    ):
        raise InvalidInputError(
            f"parallelism must be a positive integer but found {parallelism!r}"
        )

    return int(parallelism)


def get_excl_zone(m):
    """
    Get the (inclusive) trivial match exclusion zone radius for the row-wise
    algorithms
    """
    return int(m // config.MPROFILE_EXCL_ZONE_DENOM)


def get_mpx_diag_start(m):
    """
    Get the first diagonal that is swept in an MPX self-join
    """
    return max(1, int(m // config.MPROFILE_MPX_EXCL_ZONE_DENOM))


def compute_mean_std(T, m):
    """
    Compute the sliding mean and standard deviation for the array `T` with
    a window size of `m`

    The global mean is subtracted first so that the cumulative sum and the
    cumulative sum of squares stay small for offset data. Every window is then
    derived from a difference of prefix sums.

    Parameters
    ----------
    T : numpy.ndarray
        Time series or sequence

    m : int
        Window size

    Returns
    -------
    M_T : numpy.ndarray
        Sliding mean

    Σ_T : numpy.ndarray
        Sliding standard deviation

    Notes
    -----
    `DOI: 10.1109/ICDM.2016.0179 \
    <https://www.cs.ucr.edu/~eamonn/PID4481997_extend_Matrix%20Profile_I.pdf>`__

    See Table II
    """
    n = T.shape[0]
    if m <= 1 or m > n:
        raise InvalidInputError(
            f"The window size must be in the interval [2, {n}] but found {m}"
        )

    μ = np.mean(T)
    T_centered = T - μ

    cumsum = np.zeros(n + 1, dtype=np.float64)
    cumsum_sq = np.zeros(n + 1, dtype=np.float64)
    np.cumsum(T_centered, out=cumsum[1:])
    np.cumsum(T_centered * T_centered, out=cumsum_sq[1:])

    M_T_centered = (cumsum[m:] - cumsum[:-m]) / m
    var = (cumsum_sq[m:] - cumsum_sq[:-m]) / m - M_T_centered * M_T_centered
    Σ_T = np.sqrt(np.maximum(var, 0.0))
    M_T = M_T_centered + μ

    return M_T, Σ_T


def rolling_isconstant(a, w):
    """
    Compute the rolling isconstant for 1-D array.

    This is accomplished by comparing the min and max within each window and
    assigning `True` when the min and max are equal and `False` otherwise.

    Parameters
    ----------
    a : numpy.ndarray
        The input array

    w : int
        The rolling window size

    Returns
    -------
    output : numpy.ndarray
        Rolling window isconstant.
    """
    return np.ptp(rolling_window(a, w), axis=-1) == 0


def forward_fft(T):
    """
    Compute the (real) forward FFT coefficients of `T`
    """
    return rfft(T)


def sliding_dot_product(Q, T, T_fft=None):
    """
    Use the FFT to calculate the sliding window dot product.

    Parameters
    ----------
    Q : numpy.ndarray
        Query array or subsequence

    T : numpy.ndarray
        Time series or sequence

    T_fft : numpy.ndarray, default None
        The precomputed output of `forward_fft(T)`. When `None`, it is computed here.

    Returns
    -------
    output : numpy.ndarray
        Sliding dot product between `Q` and `T`.

    Notes
    -----
    `DOI: 10.1109/ICDM.2016.0179 \
    <https://www.cs.ucr.edu/~eamonn/PID4481997_extend_Matrix%20Profile_I.pdf>`__

    See Table I, Figure 4

    The query is reversed and zero padded to the length of `T` so that the circular
    convolution never wraps around within cells `[m-1:n]`, which are the only cells
    that contain valid dot products. `irfft` already divides by `n`.
    """
    n = T.shape[0]
    m = Q.shape[0]
    if T_fft is None:
        T_fft = forward_fft(T)

    Qr = np.zeros(n, dtype=np.float64)
    Qr[:m] = Q[::-1]  # Reverse/flip Q
    QT = irfft(rfft(Qr) * T_fft, n=n)

    return QT[m - 1 : n]


@njit(fastmath=config.MPROFILE_FASTMATH_FLAGS)
def _calculate_distance_profile(
    m, QT, μ_Q, σ_Q, Q_subseq_isconstant, M_T, Σ_T, T_subseq_isconstant
):
    """
    Convert a sliding dot product into a z-normalized Euclidean distance profile

    Parameters
    ----------
    m : int
        Window size

    QT : numpy.ndarray
        Dot product between `Q` and `T`

    μ_Q : float
        Mean of `Q`

    σ_Q : float
        Standard deviation of `Q`

    Q_subseq_isconstant : bool
        A boolean value that indicates whether the subsequence `Q` is constant (True)

    M_T : numpy.ndarray
        Sliding mean of `T`

    Σ_T : numpy.ndarray
        Sliding standard deviation of `T`

    T_subseq_isconstant : numpy.ndarray
        A boolean array that indicates whether a subsequence in `T` is constant (True)

    Returns
    -------
    D : numpy.ndarray
        Distance profile. Any pair involving a constant subsequence has no
        z-normalized distance and is set to `np.inf`.

    Notes
    -----
    `DOI: 10.1109/ICDM.2016.0179 \
    <https://www.cs.ucr.edu/~eamonn/PID4481997_extend_Matrix%20Profile_I.pdf>`__

    See Equation on Page 4
    """
    D = np.empty(QT.shape[0], dtype=np.float64)
    for j in range(QT.shape[0]):
        if Q_subseq_isconstant or T_subseq_isconstant[j]:
            D[j] = np.inf
            continue

        denom = m * σ_Q * Σ_T[j]
        if abs(denom) < config.MPROFILE_DENOM_THRESHOLD:  # pragma nocover
            denom = config.MPROFILE_DENOM_THRESHOLD
        ρ = (QT[j] - m * μ_Q * M_T[j]) / denom
        D_squared = 2.0 * m * abs(1.0 - ρ)
        if D_squared < config.MPROFILE_P_NORM_THRESHOLD:
            D_squared = 0.0
        D[j] = math.sqrt(D_squared)

    return D


def _mass(Q, T, M_T, Σ_T, T_subseq_isconstant, T_fft=None):
    """
    Compute the distance profile of `Q` against `T` without any input validation

    Raises
    ------
    ZeroVarianceError
        If `Q` is constant
    """
    m = Q.shape[0]
    if np.ptp(Q) == 0:
        raise ZeroVarianceError("The query subsequence has a standard deviation of 0")

    μ_Q, σ_Q = compute_mean_std(Q, m)
    QT = sliding_dot_product(Q, T, T_fft)

    return _calculate_distance_profile(
        m, QT, μ_Q[0], σ_Q[0], False, M_T, Σ_T, T_subseq_isconstant
    )


def mass(Q, T, M_T=None, Σ_T=None, T_subseq_isconstant=None, T_fft=None):
    """
    Compute the distance profile using the MASS algorithm

    Parameters
    ----------
    Q : numpy.ndarray
        Query array or subsequence

    T : numpy.ndarray
        Time series or sequence

    M_T : numpy.ndarray, default None
        Sliding mean of `T`

    Σ_T : numpy.ndarray, default None
        Sliding standard deviation of `T`

    T_subseq_isconstant : numpy.ndarray, default None
        A boolean array that indicates whether a subsequence in `T` is constant

    T_fft : numpy.ndarray, default None
        The cached forward FFT coefficients of `T`

    Returns
    -------
    distance_profile : numpy.ndarray
        Distance profile

    Raises
    ------
    ZeroVarianceError
        If `Q` is constant

    Notes
    -----
    `See Mueen's Similarity Search Algorithm
    <https://www.cs.unm.edu/~mueen/FastestSimilaritySearch.html>`__

    Examples
    --------
    >>> import mprofile
    >>> import numpy as np
    >>> mprofile.mass(
    ...     np.array([0., 1., 1., 0.]),
    ...     np.array([0., 1., 1., 0., 0., 1., 1.]))
    array([0.        , 2.82842712, 4.        , 2.82842712])
    """
    Q = _preprocess(Q)
    T = _preprocess(T)
    m = Q.shape[0]
    check_window_size(m, max_size=T.shape[0])

    if M_T is None or Σ_T is None:
        M_T, Σ_T = compute_mean_std(T, m)
    if T_subseq_isconstant is None:
        T_subseq_isconstant = rolling_isconstant(T, m)

    return _mass(Q, T, M_T, Σ_T, T_subseq_isconstant, T_fft)


def distance_profile(idx, T_A, T_B, m, T_B_stats, excl_zone=None):
    """
    Compute the distance profile of the subsequence `T_A[idx : idx + m]` against
    every subsequence of `T_B`

    Parameters
    ----------
    idx : int
        The start position of the query subsequence in `T_A`

    T_A : numpy.ndarray
        The time series or sequence that the query is drawn from

    T_B : numpy.ndarray
        The reference time series or sequence

    m : int
        Window size

    T_B_stats : RollingStats
        The cached rolling statistics of `T_B` for window size `m`

    excl_zone : int, default None
        The half width of the exclusion zone applied around `idx` (for self-joins)

    Returns
    -------
    D : numpy.ndarray
        Distance profile
    """
    l_A = T_A.shape[0] - m + 1
    if idx < 0 or idx >= l_A:
        raise IndexOutOfRangeError(
            f"The query index {idx} is outside of the interval [0, {l_A - 1}]"
        )

    D = _mass(
        T_A[idx : idx + m],
        T_B,
        T_B_stats.M_T,
        T_B_stats.Σ_T,
        T_B_stats.T_subseq_isconstant,
        T_B_stats.T_fft,
    )
    if excl_zone is not None:
        apply_exclusion_zone(D, idx, excl_zone, np.inf)

    return D


@njit(fastmath=config.MPROFILE_FASTMATH_FLAGS)
def _apply_exclusion_zone(a, idx, excl_zone, val):
    """
    Apply an exclusion zone to an array (inplace), i.e. set all values
    to `val` in a window around a given index.

    All values in a in [idx - excl_zone, idx + excl_zone] (endpoints included)
    will be set to `val`.

    Parameters
    ----------
    a : numpy.ndarray
        The array you want to apply the exclusion zone to

    idx : int
        The index around which the window should be centered

    excl_zone : int
        Size of the exclusion zone.

    val : float
        The elements within the exclusion zone will be set to this value

    Returns
    -------
    None
    """
    zone_start = max(0, idx - excl_zone)
    zone_stop = min(a.shape[-1], idx + excl_zone + 1)
    a[zone_start:zone_stop] = val


def apply_exclusion_zone(a, idx, excl_zone, val):
    """
    Apply an exclusion zone to an array (inplace). This is a convenience wrapper
    around the Numba JIT-compiled `_apply_exclusion_zone` function.
    """
    check_dtype(a, dtype=type(val))
    _apply_exclusion_zone(a, idx, excl_zone, val)


@njit
def _sum2s(a, w):
    """
    Compute the sliding mean of `a` with a two-sum compensated running sum

    Parameters
    ----------
    a : numpy.ndarray
        Time series or sequence

    w : int
        Window size

    Returns
    -------
    μ : numpy.ndarray
        Sliding mean
    """
    l = a.shape[0] - w + 1
    μ = np.empty(l, dtype=np.float64)

    p = a[0]
    s = 0.0
    for i in range(1, w):
        x = p + a[i]
        z = x - p
        s += (p - (x - z)) + (a[i] - z)
        p = x
    μ[0] = (p + s) / w

    for i in range(w, a.shape[0]):
        x = p - a[i - w]
        z = x - p
        s += (p - (x - z)) - (a[i - w] + z)
        p = x

        x = p + a[i]
        z = x - p
        s += (p - (x - z)) + (a[i] - z)
        p = x

        μ[i - w + 1] = (p + s) / w

    return μ


@njit
def _mu_inv_n(a, w):
    """
    Compute the sliding mean and the inverse of the sliding norm of the
    mean-centered subsequences, i.e. `1 / sqrt(sum((a[i:i+w] - μ[i]) ** 2))`

    The squares are split into an error-free (value, residual) pair and the sum is
    accumulated with a two-sum so that the inverse norm remains accurate for
    subsequences with a large offset relative to their spread. Constant
    subsequences have an inverse norm of `np.inf`.
    """
    μ = _sum2s(a, w)
    l = μ.shape[0]
    σ_inv = np.empty(l, dtype=np.float64)
    h = np.empty(w, dtype=np.float64)
    r = np.empty(w, dtype=np.float64)

    for i in range(l):
        for k in range(w):
            d = a[i + k] - μ[i]
            h[k] = d * d

            c = _DEKKER_SPLIT * d
            a1 = c - (c - d)
            a2 = d - a1
            a3 = a1 * a2
            r[k] = a2 * a2 - (((h[k] - a1 * a1) - a3) - a3)

        p = h[0]
        s = r[0]
        for k in range(1, w):
            x = p + h[k]
            z = x - p
            s += ((p - (x - z)) + (h[k] - z)) + r[k]
            p = x

        var = p + s
        if var > 0.0:
            σ_inv[i] = 1.0 / math.sqrt(var)
        else:
            σ_inv[i] = np.inf

    return μ, σ_inv


def mu_inv_n(T, m):
    """
    Compute the numerically stable sliding mean and inverse (centered) norm that
    are consumed by MPX

    Parameters
    ----------
    T : numpy.ndarray
        Time series or sequence

    m : int
        Window size

    Returns
    -------
    μ : numpy.ndarray
        Sliding mean

    σ_inv : numpy.ndarray
        Sliding inverse norm of each mean-centered subsequence
    """
    if m <= 1 or m > T.shape[0]:
        raise InvalidInputError(
            f"The window size must be in the interval [2, {T.shape[0]}] but found {m}"
        )

    return _mu_inv_n(T, m)


def mpx_diff(T, m, μ):
    """
    Compute the MPX difference arrays that advance a (centered) covariance by one
    step along a diagonal

    Parameters
    ----------
    T : numpy.ndarray
        Time series or sequence

    m : int
        Window size

    μ : numpy.ndarray
        Sliding mean of `T`

    Returns
    -------
    df : numpy.ndarray
        Half of the difference between the value entering and leaving each window

    dg : numpy.ndarray
        The sum of the centered values entering and leaving each window

    Notes
    -----
    `DOI: 10.1145/3357223.3362721 \
    <https://www.cs.ucr.edu/~eamonn/public/GPU_Matrix_profile_VLDB_30DraftOnly.pdf>`__
    """
    l = T.shape[0] - m + 1
    df = np.zeros(l, dtype=np.float64)
    dg = np.zeros(l, dtype=np.float64)
    df[1:] = 0.5 * (T[m:] - T[: l - 1])
    dg[1:] = (T[m:] - μ[1:]) + (T[: l - 1] - μ[: l - 1])

    return df, dg


@njit(fastmath=config.MPROFILE_FASTMATH_TRUE)
def _count_diagonal_ndist(diags, l_X, l_Y):
    """
    Count the number of cells that are visited along each diagonal referenced in
    `diags`, where diagonal `g` pairs the subsequence `i + g` in `X` with the
    subsequence `i` in `Y`

    Parameters
    ----------
    diags : numpy.ndarray
        The (non-negative) diagonal indices of interest

    l_X : int
        The number of subsequences in `X`

    l_Y : int
        The number of subsequences in `Y`

    Returns
    -------
    diag_ndist_counts : numpy.ndarray
        Counts of distances computed along each diagonal of interest
    """
    diag_ndist_counts = np.zeros(diags.shape[0], dtype=np.int64)
    for diag_idx in range(diags.shape[0]):
        g = diags[diag_idx]
        diag_ndist_counts[diag_idx] = max(0, min(l_X - g, l_Y))

    return diag_ndist_counts


@njit(fastmath=config.MPROFILE_FASTMATH_TRUE)
def _get_array_ranges(a, n_chunks, truncate):
    """
    Given an input array of per-item costs, split it into `n_chunks` contiguous
    chunks of (roughly) equal total cost.

    Parameters
    ----------
    a : numpy.ndarray
        An array of costs to be split

    n_chunks : int
        Number of chunks to split the array into

    truncate : bool
        If `truncate=True`, truncate the rows of `array_ranges` if there are not enough
        elements in `a` to be chunked up into `n_chunks`.  Otherwise, if
        `truncate=False`, all extra chunks will have their start and stop indices set
        to `a.shape[0]`.

    Returns
    -------
    array_ranges : numpy.ndarray
        A two column array where each row consists of a start and (exclusive) stop index
        pair.
    """
    array_ranges = np.zeros((n_chunks, 2), dtype=np.int64)
    if a.shape[0] > 0 and n_chunks > 0:
        cumsum = a.cumsum() / a.sum()
        insert = np.linspace(0, 1, n_chunks + 1)[1:-1]
        idx = 1 + np.searchsorted(cumsum, insert)
        array_ranges[1:, 0] = idx
        array_ranges[:-1, 1] = idx
        array_ranges[-1, 1] = a.shape[0]

        diff_idx = np.diff(idx)
        if np.any(diff_idx == 0):
            row_truncation_idx = np.argmin(diff_idx) + 2
            array_ranges[row_truncation_idx:, 0] = a.shape[0]
            array_ranges[row_truncation_idx - 1 :, 1] = a.shape[0]
            if truncate:
                array_ranges = array_ranges[:row_truncation_idx]

    return array_ranges


def _get_ranges(size, n_chunks):
    """
    Split `range(size)` into `n_chunks` contiguous chunks of
    `ceil(size / n_chunks)` elements. Chunks that start beyond `size` are empty
    (i.e., their start and stop indices are both equal to `size`).

    Returns
    -------
    array_ranges : numpy.ndarray
        A two column array of start and (exclusive) stop indices
    """
    chunk_size = int(math.ceil(size / n_chunks))
    starts = np.minimum(np.arange(n_chunks, dtype=np.int64) * chunk_size, size)
    stops = np.minimum(starts + chunk_size, size)

    return np.column_stack((starts, stops))


def _bfs_indices(n):
    """
    Generate the level order indices from the implicit construction of a balanced
    binary search tree followed by a breadth first (level order) search.

    For example, if `n = 10` then the (zero-based index) balanced binary tree is:

                5
              /   \\
             2     8
            / \\   / \\
           1   4 7   9
          /   /  /
         0   3  6

    and traversing the nodes at each level from left to right yields
    `[5, 2, 8, 1, 4, 7, 9, 0, 3, 6]`. That is, the midpoint comes first, followed by
    the midpoints of each half, and so on.

    Parameters
    ----------
    n : int
        The number indices to generate the ordered indices for

    Returns
    -------
    level_idx : numpy.ndarray
        The breadth first search (level order) indices
    """
    if n == 1:
        return np.array([0], dtype=np.int64)

    nlevel = np.floor(np.log2(n) + 1).astype(np.int64)
    nindices = np.power(2, np.arange(nlevel))
    cumsum_nindices = np.cumsum(nindices)
    nindices[-1] = n - cumsum_nindices[np.searchsorted(cumsum_nindices, n) - 1]

    indices = np.empty((2, nindices.max()), dtype=np.int64)
    indices[0, 0] = 0
    indices[1, 0] = n
    tmp_indices = np.empty((2, 2 * nindices.max()), dtype=np.int64)

    out = np.empty(n, dtype=np.int64)
    out_idx = 0

    for nidx in nindices:
        level_indices = (indices[0, :nidx] + indices[1, :nidx]) // 2

        if out_idx + len(level_indices) < n:
            # Split every [start, stop) range around its midpoint
            tmp_indices[0, 0 : 2 * nidx : 2] = indices[0, :nidx]
            tmp_indices[0, 1 : 2 * nidx : 2] = level_indices + 1
            tmp_indices[1, 0 : 2 * nidx : 2] = level_indices
            tmp_indices[1, 1 : 2 * nidx : 2] = indices[1, :nidx]

            mask = tmp_indices[0, : 2 * nidx] < tmp_indices[1, : 2 * nidx]
            mask_sum = np.count_nonzero(mask)
            indices[0, :mask_sum] = tmp_indices[0, : 2 * nidx][mask]
            indices[1, :mask_sum] = tmp_indices[1, : 2 * nidx][mask]

        out[out_idx : out_idx + len(level_indices)] = level_indices
        out_idx += len(level_indices)

    return out


@njit(fastmath=config.MPROFILE_FASTMATH_FLAGS)
def _update_PI(P, I, D, idx):
    """
    Merge (inplace) the distance profile, `D`, of the query subsequence at `idx`
    into the matrix profile, `P`, and matrix profile indices, `I`

    A smaller distance always wins and an equal distance keeps whichever of the two
    indices is smaller.

    Parameters
    ----------
    P : numpy.ndarray
        Matrix profile

    I : numpy.ndarray
        Matrix profile indices

    D : numpy.ndarray
        The distance profile of the query subsequence

    idx : int
        The start position of the query subsequence

    Returns
    -------
    None
    """
    for j in range(D.shape[0]):
        if D[j] < P[j] or (D[j] == P[j] and idx < I[j]):
            P[j] = D[j]
            I[j] = idx


@njit(fastmath=config.MPROFILE_FASTMATH_FLAGS)
def _merge_PI(PA, IA, PB, IB, larger_is_better):
    """
    Merge (inplace) the candidate profile, `PB`, and its indices, `IB`, into `PA`
    and `IA`

    Entries are compared lexicographically by `(value, index)` so the merge is
    commutative and associative and the order in which partial results are merged
    never changes the outcome.

    Parameters
    ----------
    PA : numpy.ndarray
        The profile to merge into

    IA : numpy.ndarray
        The indices to merge into

    PB : numpy.ndarray
        The candidate profile

    IB : numpy.ndarray
        The candidate indices

    larger_is_better : bool
        `True` when the profiles hold correlations and `False` when they hold
        distances

    Returns
    -------
    None
    """
    for j in range(PA.shape[0]):
        if larger_is_better:
            better = PB[j] > PA[j]
        else:
            better = PB[j] < PA[j]

        if better or (PB[j] == PA[j] and IB[j] < IA[j]):
            PA[j] = PB[j]
            IA[j] = IB[j]


def _correlation_to_distance(ρ, I, m, euclidean=True):
    """
    Clamp (inplace) the Pearson correlations, `ρ`, to `[-1, 1]` and, when
    `euclidean=True`, convert them to z-normalized Euclidean distances

    Entries without a match (i.e., `I == -1`) become `np.inf` distances or `-np.inf`
    correlations.

    Parameters
    ----------
    ρ : numpy.ndarray
        Pearson correlations

    I : numpy.ndarray
        The matching indices

    m : int
        Window size

    euclidean : bool, default True
        Whether to return distances (True) or correlations (False)

    Returns
    -------
    P : numpy.ndarray
        Distances or clamped correlations
    """
    unmatched = I < 0
    P = np.clip(ρ, -1.0, 1.0)
    if euclidean:
        P_squared = 2.0 * m * (1.0 - P)
        P_squared[P_squared < config.MPROFILE_P_NORM_THRESHOLD] = 0.0
        P = np.sqrt(P_squared)
        P[unmatched] = np.inf
    else:
        P[unmatched] = -np.inf

    return P
