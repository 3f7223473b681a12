import naive
import numpy as np
import numpy.testing as npt
import pytest

from mprofile import core, scheduler


def _candidates(n_batches, l):
    candidates = []
    for _ in range(n_batches):
        P = np.round(np.random.uniform(0, 3, l), 1)
        I = np.random.randint(0, 100, l).astype(np.int64)
        candidates.append((P, I))

    return candidates


def test_batch_result_is_empty():
    assert scheduler.BatchResult().is_empty()
    assert not scheduler.BatchResult(np.zeros(2), np.zeros(2, np.int64)).is_empty()


def test_merge_results_order_independent():
    l = 16
    candidates = _candidates(6, l)
    ref_P = np.full(l, np.inf)
    ref_I = np.full(l, -1, np.int64)
    for P, I in candidates:
        ref_P, ref_I = naive.merge_PI(ref_P, ref_I, P, I)

    for order in [range(6), range(5, -1, -1), [3, 0, 5, 1, 4, 2]]:
        results = [scheduler.BatchResult(*candidates[k]) for k in order]
        comp_P = np.full(l, np.inf)
        comp_I = np.full(l, -1, np.int64)
        err = scheduler.merge_results(results, comp_P, comp_I)

        assert err is None
        npt.assert_almost_equal(ref_P, comp_P)
        npt.assert_almost_equal(ref_I, comp_I)


def test_merge_results_skips_empty():
    P = np.array([1.0, 2.0])
    I = np.array([0, 1], dtype=np.int64)
    results = [scheduler.BatchResult(), scheduler.BatchResult()]
    err = scheduler.merge_results(results, P, I)

    assert err is None
    npt.assert_almost_equal(P, [1.0, 2.0])
    npt.assert_almost_equal(I, [0, 1])


def test_merge_results_last_error_wins():
    P = np.full(2, np.inf)
    I = np.full(2, -1, np.int64)
    first = core.ZeroVarianceError("first")
    last = core.InvalidInputError("last")
    results = [
        scheduler.BatchResult(err=first),
        scheduler.BatchResult(np.array([1.0, 2.0]), np.array([3, 4], np.int64)),
        scheduler.BatchResult(err=last),
    ]
    err = scheduler.merge_results(results, P, I)

    assert err is last
    # The results without errors are still merged
    npt.assert_almost_equal(P, [1.0, 2.0])
    npt.assert_almost_equal(I, [3, 4])


def test_merge_results_reverse_profile():
    P = np.full(2, -np.inf)
    I = np.full(2, -1, np.int64)
    PB = np.full(3, -np.inf)
    IB = np.full(3, -1, np.int64)
    results = [
        scheduler.BatchResult(
            np.array([0.5, 0.1]),
            np.array([1, 2], np.int64),
            np.array([0.2, 0.9, 0.3]),
            np.array([0, 1, 1], np.int64),
        ),
        scheduler.BatchResult(
            np.array([0.4, 0.7]),
            np.array([0, 0], np.int64),
            np.array([0.6, 0.9, -0.3]),
            np.array([1, 0, 0], np.int64),
        ),
    ]
    scheduler.merge_results(results, P, I, PB, IB, larger_is_better=True)

    npt.assert_almost_equal(P, [0.5, 0.7])
    npt.assert_almost_equal(I, [1, 0])
    npt.assert_almost_equal(PB, [0.6, 0.9, 0.3])
    npt.assert_almost_equal(IB, [1, 0, 1])


@pytest.mark.parametrize("parallelism", [1, 2, 4, 100])
def test_run_batches(parallelism):
    l = 16
    n_batches = 8
    candidates = _candidates(n_batches, l)

    def batch_func(batch_idx):
        if batch_idx % 3 == 2:
            return None
        return scheduler.BatchResult(*candidates[batch_idx])

    ref_P = np.full(l, np.inf)
    ref_I = np.full(l, -1, np.int64)
    for k in range(n_batches):
        if k % 3 != 2:
            ref_P, ref_I = naive.merge_PI(ref_P, ref_I, *candidates[k])

    comp_P = np.full(l, np.inf)
    comp_I = np.full(l, -1, np.int64)
    err = scheduler.run_batches(
        batch_func, n_batches, comp_P, comp_I, parallelism=parallelism
    )

    assert err is None
    npt.assert_almost_equal(ref_P, comp_P)
    npt.assert_almost_equal(ref_I, comp_I)


def test_run_batches_error():
    l = 4
    candidates = _candidates(4, l)

    def batch_func(batch_idx):
        if batch_idx in (1, 3):
            raise core.ZeroVarianceError(f"batch {batch_idx}")
        return scheduler.BatchResult(*candidates[batch_idx])

    ref_P = np.full(l, np.inf)
    ref_I = np.full(l, -1, np.int64)
    for k in (0, 2):
        ref_P, ref_I = naive.merge_PI(ref_P, ref_I, *candidates[k])

    comp_P = np.full(l, np.inf)
    comp_I = np.full(l, -1, np.int64)
    err = scheduler.run_batches(batch_func, 4, comp_P, comp_I, parallelism=2)

    assert isinstance(err, core.ZeroVarianceError)
    assert str(err) == "batch 3"
    npt.assert_almost_equal(ref_P, comp_P)
    npt.assert_almost_equal(ref_I, comp_I)


def test_run_batches_unexpected_error():
    def batch_func(batch_idx):
        raise RuntimeError("boom")

    P = np.full(2, np.inf)
    I = np.full(2, -1, np.int64)
    with pytest.raises(RuntimeError):
        scheduler.run_batches(batch_func, 2, P, I, parallelism=2)
