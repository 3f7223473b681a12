# mprofile
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.

import enum
import logging

import numpy as np

from . import core
from .mpx import _mpx
from .stamp import _stamp
from .stats import RollingStats
from .stmp import _stmp
from .stomp import _stomp_driver

logger = logging.getLogger(__name__)


class Algo(enum.Enum):
    """
    The matrix profile algorithms that `MatrixProfile.compute` can dispatch to
    """

    STMP = "stmp"
    STAMP = "stamp"
    STOMP = "stomp"
    MPX = "mpx"


def _get_algo(algorithm):
    """
    Convert an `Algo` or its (case insensitive) name into an `Algo`
    """
    if isinstance(algorithm, Algo):
        return algorithm

    try:
        return Algo(str(algorithm).lower())
    except ValueError:
        valid = ", ".join(algo.name for algo in Algo)
        raise core.InvalidInputError(
            f"Unrecognized algorithm {algorithm!r}. Choose one of {valid}"
        ) from None


def _compute_profile(
    algorithm,
    T_A,
    T_B,
    m,
    self_join,
    sample=1.0,
    parallelism=None,
    euclidean=True,
    remap_negative_correlation=False,
):
    """
    Dispatch a matrix profile computation to `algorithm`

    Returns
    -------
    P : numpy.ndarray
        Matrix profile

    I : numpy.ndarray
        Matrix profile indices

    PB : numpy.ndarray
        The reverse matrix profile of an MPX AB-join or `None`

    IB : numpy.ndarray
        The reverse matrix profile indices of an MPX AB-join or `None`

    excl_zone : int
        The (inclusive) exclusion zone that was applied for a self-join
    """
    if algorithm is Algo.MPX:
        P, I, PB, IB = _mpx(
            T_A,
            T_B,
            m,
            self_join,
            parallelism=parallelism,
            euclidean=euclidean,
            remap_negative_correlation=remap_negative_correlation,
        )
        return P, I, PB, IB, core.get_mpx_diag_start(m) - 1

    if self_join:
        core.check_row_wise_window_size(m, T_A.shape[0])
    excl_zone = core.get_excl_zone(m)
    T_B_stats = RollingStats(T_B, m)
    zone = excl_zone if self_join else None

    if algorithm is Algo.STMP:
        P, I = _stmp(T_A, T_B, m, T_B_stats, zone)
    elif algorithm is Algo.STAMP:
        P, I = _stamp(
            T_A, T_B, m, T_B_stats, zone, sample=sample, parallelism=parallelism
        )
    elif algorithm is Algo.STOMP:
        T_A_stats = T_B_stats if self_join else RollingStats(T_A, m)
        P, I = _stomp_driver(
            T_A, T_B, m, T_A_stats, T_B_stats, zone, parallelism=parallelism
        )
    else:  # pragma: no cover
        raise core.InvalidInputError(f"Unrecognized algorithm {algorithm!r}")

    return P, I, None, None, excl_zone


class MatrixProfile:
    """
    A z-normalized matrix profile of a time series (self-join) or of a pair of time
    series (AB-join) that can be computed with any of the supported algorithms and
    then kept up to date as new data arrives

    Parameters
    ----------
    T_A : numpy.ndarray
        The time series or sequence that queries are drawn from

    m : int
        Window size

    T_B : numpy.ndarray, default None
        The second time series or sequence of an AB-join. When `None`, a self-join of
        `T_A` is assumed.

    Attributes
    ----------
    P_ : numpy.ndarray
        The matrix profile. For the row-wise algorithms (STMP, STAMP, and STOMP), this
        annotates every subsequence of `T_B` with its nearest neighbor in `T_A`. For
        MPX, this annotates every subsequence of `T_A` with its nearest neighbor in
        `T_B`.

    I_ : numpy.ndarray
        The matrix profile indices

    PB_ : numpy.ndarray
        The reverse matrix profile (for `T_B`) of an MPX AB-join or `None`

    IB_ : numpy.ndarray
        The reverse matrix profile indices of an MPX AB-join or `None`

    T_A_ : numpy.ndarray
        The (possibly extended) time series `T_A`

    T_B_ : numpy.ndarray
        The (possibly extended) time series `T_B`

    m : int
        Window size

    self_join : bool
        Whether this is a self-join

    algorithm_ : Algo
        The algorithm that computed the current matrix profile

    Methods
    -------
    compute(algorithm=Algo.MPX, sample=1.0, parallelism=None, euclidean=True,
            remap_negative_correlation=False)
        (Re)compute the matrix profile from scratch

    update(values)
        Append new data points and update the matrix profile incrementally

    Examples
    --------
    >>> import mprofile
    >>> import numpy as np
    >>> mp = mprofile.MatrixProfile(
    ...     np.array([0., 0.99, 1., 0., 0., 0.98, 1., 0., 0., 0.96, 1., 0.]),
    ...     m=4)
    >>> mp.compute(algorithm="stomp")
    >>> mp.I_
    array([4, 5, 6, 7, 0, 1, 2, 3, 4])
    """

    def __init__(self, T_A, m, T_B=None):
        """
        Initialize the `MatrixProfile` object

        Parameters
        ----------
        T_A : numpy.ndarray
            The time series or sequence that queries are drawn from

        m : int
            Window size

        T_B : numpy.ndarray, default None
            The second time series or sequence of an AB-join. When `None`, a
            self-join of `T_A` is assumed.
        """
        self._T_A, self._T_B, self._self_join = core.preprocess_join(T_A, m, T_B)
        self._m = int(m)

        self._P = None
        self._I = None
        self._PB = None
        self._IB = None
        self._algorithm = None
        self._euclidean = True
        self._excl_zone = None
        self._stats = None

    def compute(
        self,
        algorithm=Algo.MPX,
        sample=1.0,
        parallelism=None,
        euclidean=True,
        remap_negative_correlation=False,
    ):
        """
        Compute the matrix profile, replacing any previous result

        Parameters
        ----------
        algorithm : Algo or str, default Algo.MPX
            The algorithm to use

        sample : float, default 1.0
            The fraction of query subsequences to visit. This is only used by STAMP.

        parallelism : int, default None
            The number of workers. When `None`, the number of CPUs is used.

        euclidean : bool, default True
            Whether MPX reports z-normalized Euclidean distances (`True`) or Pearson
            correlations (`False`). The other algorithms always report distances.

        remap_negative_correlation : bool, default False
            Whether MPX treats anti-correlated subsequences as matches

        Returns
        -------
        None
        """
        algorithm = _get_algo(algorithm)
        logger.debug(
            "Computing the %s matrix profile with m=%d (self_join=%s)",
            algorithm.name,
            self._m,
            self._self_join,
        )

        P, I, PB, IB, excl_zone = _compute_profile(
            algorithm,
            self._T_A,
            self._T_B,
            self._m,
            self._self_join,
            sample=sample,
            parallelism=parallelism,
            euclidean=euclidean,
            remap_negative_correlation=remap_negative_correlation,
        )

        self._P, self._I, self._PB, self._IB = P, I, PB, IB
        self._algorithm = algorithm
        self._euclidean = euclidean or algorithm is not Algo.MPX
        self._excl_zone = excl_zone
        self._stats = None

    def update(self, values):
        """
        Append new data points to the time series and update the matrix profile
        without recomputing it from scratch

        For a self-join, the values are appended to `T_A` (which is also `T_B`).
        For an AB-join, the values are appended to `T_B`. Each appended value adds
        one subsequence whose distance profile is computed with MASS and merged
        into the existing matrix profile. If no matrix profile has been computed
        yet, then it is computed with the default algorithm first.

        Parameters
        ----------
        values : float or numpy.ndarray
            The new data point(s)

        Returns
        -------
        None

        Raises
        ------
        InvalidInputError
            If `values` is not one dimensional, a value is not finite, or the
            current matrix profile holds correlations. The values before a
            non-finite value have already been appended when this is raised.
        """
        values = np.atleast_1d(np.asarray(values))
        core.check_dtype(values)
        if values.ndim != 1:
            raise core.InvalidInputError(
                f"values must be one dimensional but found {values.ndim} dims"
            )
        if values.shape[0] == 0:
            return

        if self._P is None:
            self.compute()
        if not self._euclidean:
            raise core.InvalidInputError(
                "Only a z-normalized Euclidean distance matrix profile can be updated"
            )

        for t in values:
            self._update(t)

    def _update(self, t):
        """
        Append a single new data point, `t`, and update the matrix profile
        """
        if not np.isfinite(t):
            raise core.InvalidInputError(f"Cannot append a non-finite value {t}")

        m = self._m
        if self._self_join:
            if self._stats is None:
                self._stats = RollingStats(self._T_A, m)
            self._T_A = np.append(self._T_A, t)
            self._T_B = self._T_A
            self._stats = self._stats.append(self._T_A)

            idx = self._T_A.shape[0] - m
            D = self._distance_profile(idx, self._T_A, self._T_A, self._excl_zone)

            self._P = np.append(self._P, np.inf)
            self._I = np.append(self._I, -1)
            core._update_PI(self._P, self._I, D, idx)
            self._P[idx], self._I[idx] = self._best_match(D)
            return

        if self._stats is None:
            self._stats = RollingStats(self._T_A, m)
        self._T_B = np.append(self._T_B, t)

        idx = self._T_B.shape[0] - m
        D = self._distance_profile(idx, self._T_B, self._T_A)
        P_new, I_new = self._best_match(D)

        if self._algorithm is Algo.MPX:
            self._PB = np.append(self._PB, P_new)
            self._IB = np.append(self._IB, I_new)
            core._update_PI(self._P, self._I, D, idx)
        else:
            self._P = np.append(self._P, P_new)
            self._I = np.append(self._I, I_new)

    def _distance_profile(self, idx, T_Q, T, excl_zone=None):
        """
        Compute the distance profile of `T_Q[idx : idx + m]` against `T`. A constant
        subsequence has no z-normalized neighbor and yields an all `np.inf` profile.
        """
        try:
            return core.distance_profile(idx, T_Q, T, self._m, self._stats, excl_zone)
        except core.ZeroVarianceError:
            logger.debug("The new subsequence at %d is constant", idx)
            return np.full(T.shape[0] - self._m + 1, np.inf, dtype=np.float64)

    @staticmethod
    def _best_match(D):
        """
        Return the smallest distance in `D` and its (first) index or `np.inf` and `-1`
        """
        j = np.argmin(D)
        if np.isinf(D[j]):
            return np.inf, -1
        return D[j], j

    @property
    def P_(self):
        """
        Get the matrix profile
        """
        return None if self._P is None else self._P.astype(np.float64)

    @property
    def I_(self):
        """
        Get the matrix profile indices
        """
        return None if self._I is None else self._I.astype(np.int64)

    @property
    def PB_(self):
        """
        Get the reverse matrix profile of an MPX AB-join
        """
        return None if self._PB is None else self._PB.astype(np.float64)

    @property
    def IB_(self):
        """
        Get the reverse matrix profile indices of an MPX AB-join
        """
        return None if self._IB is None else self._IB.astype(np.int64)

    @property
    def T_A_(self):
        """
        Get the time series `T_A`
        """
        return self._T_A.astype(np.float64)

    @property
    def T_B_(self):
        """
        Get the time series `T_B`
        """
        return self._T_B.astype(np.float64)

    @property
    def m(self):
        """
        Get the window size
        """
        return self._m

    @property
    def self_join(self):
        """
        Get whether this is a self-join
        """
        return self._self_join

    @property
    def algorithm_(self):
        """
        Get the algorithm that computed the current matrix profile
        """
        return self._algorithm
