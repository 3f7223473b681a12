# mprofile
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.

import logging

import numpy as np

from . import core
from .mpx import _mpx

logger = logging.getLogger(__name__)


class PanMatrixProfile:
    """
    Compute the Pan Matrix Profile, i.e., the matrix profiles of a time series over a
    range of window sizes

    The window sizes are visited in breadth first search (level) order so that a
    partial sweep already covers the whole range coarsely. Every matrix profile is
    computed with MPX.

    Parameters
    ----------
    T_A : numpy.ndarray
        The time series or sequence for which to compute the pan matrix profile

    min_m : int
        The minimum subsequence window size

    max_m : int
        The maximum subsequence window size

    T_B : numpy.ndarray, default None
        The time series or sequence that will be used to annotate `T_A`. When
        `None`, a self-join of `T_A` is computed for every window size.

    sample : float, default 1.0
        The fraction, in `(0, 1]`, of window sizes to visit

    parallelism : int, default None
        The number of workers used by MPX. When `None`, the number of CPUs is used.

    euclidean : bool, default True
        Whether the rows hold z-normalized Euclidean distances (`True`) or Pearson
        correlations (`False`)

    remap_negative_correlation : bool, default False
        Whether anti-correlated subsequences are treated as matches

    Attributes
    ----------
    P_ : list
        The matrix profile of every visited window size, in ascending window order

    I_ : list
        The matrix profile indices of every visited window size, in ascending window
        order

    windows_ : numpy.ndarray
        The visited window sizes in ascending order

    M_ : numpy.ndarray
        The (breadth first search (level) ordered) window sizes that will be visited

    n_processed_ : int
        The number of window sizes that have been visited

    Methods
    -------
    update():
        Compute the matrix profile for the next available (breadth first search
        (level) ordered) window size

    compute():
        Compute the matrix profiles for every remaining window size

    Notes
    -----
    `DOI: 10.1109/ICBK.2019.00031 \
    <https://www.cs.ucr.edu/~eamonn/PAN_SKIMP%20%28Matrix%20Profile%20XX%29.pdf>`__
    """

    def __init__(
        self,
        T_A,
        min_m,
        max_m,
        T_B=None,
        sample=1.0,
        parallelism=None,
        euclidean=True,
        remap_negative_correlation=False,
    ):
        min_m, max_m = sorted([min_m, max_m])
        self._T_A, self._T_B, self._self_join = core.preprocess_join(T_A, min_m, T_B)
        core.check_window_size(
            max_m, max_size=min(self._T_A.shape[0], self._T_B.shape[0])
        )
        core.check_sample(sample)

        M = np.arange(min_m, max_m + 1, dtype=np.int64)
        self._M = M[core._bfs_indices(M.shape[0])]
        self._n_windows = int(self._M.shape[0] * sample)
        if self._n_windows < 1:
            raise core.InvalidInputError(
                f"A sample of {sample} leaves no window sizes to visit between "
                f"{min_m} and {max_m}"
            )

        self._parallelism = parallelism
        self._euclidean = euclidean
        self._remap_negative_correlation = remap_negative_correlation
        self._n_processed = 0
        self._P = {}
        self._I = {}

    def update(self):
        """
        Update the pan matrix profile by computing a single matrix profile using the
        next available window size

        Returns
        -------
        bool
            `True` if a window size was visited and `False` when every window size
            has already been visited
        """
        if self._n_processed >= self._n_windows:
            return False

        m = int(self._M[self._n_processed])
        logger.debug(
            "Computing window %d (%d of %d)", m, self._n_processed + 1, self._n_windows
        )
        P, I, _, _ = _mpx(
            self._T_A,
            self._T_B,
            m,
            self._self_join,
            parallelism=self._parallelism,
            euclidean=self._euclidean,
            remap_negative_correlation=self._remap_negative_correlation,
        )
        self._P[m] = P
        self._I[m] = I
        self._n_processed += 1

        return True

    def compute(self):
        """
        Compute the matrix profiles of all remaining window sizes
        """
        while self.update():
            pass

    @property
    def P_(self):
        """
        Get the matrix profiles in ascending window order
        """
        return [self._P[m].astype(np.float64) for m in sorted(self._P)]

    @property
    def I_(self):
        """
        Get the matrix profile indices in ascending window order
        """
        return [self._I[m].astype(np.int64) for m in sorted(self._I)]

    @property
    def windows_(self):
        """
        Get the visited window sizes in ascending order
        """
        return np.array(sorted(self._P), dtype=np.int64)

    @property
    def M_(self):
        """
        Get all of the (breadth first searched (level) ordered) window sizes
        """
        return self._M.astype(np.int64)

    @property
    def n_processed_(self):
        """
        Get the total number of window sizes that have been visited
        """
        return self._n_processed
