# mprofile
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.

import numpy as np

from . import core


class RollingStats:
    """
    The rolling statistics of a time series for a single window size

    A `RollingStats` is a value: it is never mutated after construction. A new
    value is built whenever the window size changes and `append` returns a new
    value whenever the time series grows.

    Parameters
    ----------
    T : numpy.ndarray
        The time series or sequence

    m : int
        Window size

    M_T : numpy.ndarray, default None
        Precomputed sliding mean of `T`

    Σ_T : numpy.ndarray, default None
        Precomputed sliding standard deviation of `T`

    T_subseq_isconstant : numpy.ndarray, default None
        Precomputed boolean array that indicates whether a subsequence in `T` is
        constant

    Attributes
    ----------
    M_T : numpy.ndarray
        Sliding mean of `T`

    Σ_T : numpy.ndarray
        Sliding standard deviation of `T`

    T_subseq_isconstant : numpy.ndarray
        A boolean array that indicates whether a subsequence in `T` is constant

    T_fft : numpy.ndarray
        The forward FFT coefficients of `T`
    """

    def __init__(self, T, m, M_T=None, Σ_T=None, T_subseq_isconstant=None):
        self._n = T.shape[0]
        self._m = m
        if M_T is None or Σ_T is None:
            M_T, Σ_T = core.compute_mean_std(T, m)
        if T_subseq_isconstant is None:
            T_subseq_isconstant = core.rolling_isconstant(T, m)

        self.M_T = M_T
        self.Σ_T = Σ_T
        self.T_subseq_isconstant = T_subseq_isconstant
        self.T_fft = core.forward_fft(T)

    @property
    def m(self):
        """
        Get the window size
        """
        return self._m

    @property
    def n(self):
        """
        Get the length of the time series that the statistics describe
        """
        return self._n

    def append(self, T):
        """
        Return the statistics of `T`, a time series that extends (i.e., starts with)
        the time series that `self` describes

        Only the windows that end in the appended values are computed and so the
        cost of the rolling statistics is proportional to the number of appended
        values. The forward FFT is recomputed in full.

        Parameters
        ----------
        T : numpy.ndarray
            The extended time series

        Returns
        -------
        stats : RollingStats
            The statistics of `T`
        """
        if T.shape[0] < self._n:
            raise core.InvalidInputError(
                "The extended time series is shorter than the original time series"
            )
        if T.shape[0] == self._n:
            return self

        start = self._n - self._m + 1
        M_T_new, Σ_T_new = core.compute_mean_std(T[start:], self._m)
        T_subseq_isconstant_new = core.rolling_isconstant(T[start:], self._m)

        return RollingStats(
            T,
            self._m,
            M_T=np.append(self.M_T, M_T_new),
            Σ_T=np.append(self.Σ_T, Σ_T_new),
            T_subseq_isconstant=np.append(
                self.T_subseq_isconstant, T_subseq_isconstant_new
            ),
        )
