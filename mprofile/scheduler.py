# mprofile
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.

import logging
from concurrent.futures import ThreadPoolExecutor

from . import core

logger = logging.getLogger(__name__)


class BatchResult:
    """
    The private output of a single worker

    Parameters
    ----------
    P : numpy.ndarray, default None
        The partial (forward) profile

    I : numpy.ndarray, default None
        The partial (forward) profile indices

    PB : numpy.ndarray, default None
        The partial reverse profile (i.e., for `T_B`) of an AB-join

    IB : numpy.ndarray, default None
        The partial reverse profile indices of an AB-join

    err : Exception, default None
        The error that stopped this worker, if any
    """

    def __init__(self, P=None, I=None, PB=None, IB=None, err=None):
        self.P = P
        self.I = I
        self.PB = PB
        self.IB = IB
        self.err = err

    def is_empty(self):
        """
        Return `True` when the worker had nothing to contribute
        """
        return self.P is None or self.I is None


def _run_batch(batch_func, batch_idx):
    """
    Execute a single batch and capture any matrix profile error in its result
    """
    try:
        result = batch_func(batch_idx)
    except core.MatrixProfileError as err:
        return BatchResult(err=err)

    if result is None:
        return BatchResult()

    return result


def merge_results(results, P, I, PB=None, IB=None, larger_is_better=False):
    """
    Fold (inplace) a sequence of batch results into the global profile(s)

    Results that carry an error or that are empty are skipped. Since the reducer,
    `core._merge_PI`, is commutative and associative, the order of `results` never
    changes the merged profile.

    Parameters
    ----------
    results : iterable
        The `BatchResult` from every worker

    P : numpy.ndarray
        The global profile

    I : numpy.ndarray
        The global profile indices

    PB : numpy.ndarray, default None
        The global reverse profile of an AB-join

    IB : numpy.ndarray, default None
        The global reverse profile indices of an AB-join

    larger_is_better : bool, default False
        `True` for correlation profiles and `False` for distance profiles

    Returns
    -------
    err : Exception
        The last error that was seen across all of the results or `None`. Note that
        an earlier error is masked by a later one.
    """
    err = None
    for batch_idx, result in enumerate(results):
        if result.err is not None:
            logger.warning("Batch %d failed: %s", batch_idx, result.err)
            err = result.err
            continue
        if result.is_empty():
            continue

        core._merge_PI(P, I, result.P, result.I, larger_is_better)
        if PB is not None and result.PB is not None:
            core._merge_PI(PB, IB, result.PB, result.IB, larger_is_better)

    return err


def run_batches(
    batch_func,
    n_batches,
    P,
    I,
    PB=None,
    IB=None,
    larger_is_better=False,
    parallelism=None,
):
    """
    Fan `n_batches` calls of `batch_func` out to a pool of worker threads and merge
    (inplace) their results into the global profile(s)

    The calling thread is the sole reducer. It waits for every worker and drains
    every result exactly once before returning. A worker error does not stop the
    other workers.

    Parameters
    ----------
    batch_func : function
        A function that accepts a batch index and returns a `BatchResult` (or `None`
        for an empty batch)

    n_batches : int
        The number of batches

    P : numpy.ndarray
        The global profile

    I : numpy.ndarray
        The global profile indices

    PB : numpy.ndarray, default None
        The global reverse profile of an AB-join

    IB : numpy.ndarray, default None
        The global reverse profile indices of an AB-join

    larger_is_better : bool, default False
        `True` for correlation profiles and `False` for distance profiles

    parallelism : int, default None
        The number of worker threads

    Returns
    -------
    err : Exception
        The last error that was raised by any worker or `None`
    """
    parallelism = core._get_parallelism(parallelism)
    logger.debug("Running %d batches on %d workers", n_batches, parallelism)

    with ThreadPoolExecutor(max_workers=parallelism) as executor:
        futures = [
            executor.submit(_run_batch, batch_func, batch_idx)
            for batch_idx in range(n_batches)
        ]
        results = (future.result() for future in futures)
        err = merge_results(
            results, P, I, PB=PB, IB=IB, larger_is_better=larger_is_better
        )

    return err
