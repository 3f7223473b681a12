import naive
import numpy as np
import numpy.testing as npt
import pytest

from mprofile import config, core, mpx, stomp

test_data = [
    (
        np.array([9, 8100, -60, 7], dtype=np.float64),
        np.array([584, -11, 23, 79, 1001, 0, -19], dtype=np.float64),
    ),
    (
        np.random.uniform(-1000, 1000, [8]).astype(np.float64),
        np.random.uniform(-1000, 1000, [64]).astype(np.float64),
    ),
]

T_periodic = np.array([0, 0.99, 1, 0, 0, 0.98, 1, 0, 0, 0.96, 1, 0], dtype=np.float64)
P_periodic = np.array(
    [
        0.014355034678331376,
        0.014355034678269504,
        0.0291386974835963,
        0.029138697483626783,
        0.01435503467830044,
        0.014355034678393249,
        0.029138697483504856,
        0.029138697483474377,
        0.0291386974835963,
    ]
)
I_periodic = np.array([4, 5, 6, 7, 0, 1, 2, 3, 4], dtype=np.int64)


def _assert_neighbors(T_A, T_B, m, P, I):
    # Every reported neighbor must be at the reported distance
    for i in np.flatnonzero(I >= 0):
        j = I[i]
        D = naive.distance(naive.z_norm(T_A[i : i + m]), naive.z_norm(T_B[j : j + m]))
        npt.assert_almost_equal(D, P[i], decimal=config.MPROFILE_TEST_PRECISION)


def test_mpx_int_input():
    with pytest.raises(TypeError):
        mpx(np.arange(10), 5)


@pytest.mark.parametrize("parallelism", [1, 2, 4, 100])
def test_mpx_periodic_self_join(parallelism):
    P, I, PB, IB = mpx(T_periodic, 4, parallelism=parallelism)
    npt.assert_almost_equal(P_periodic, P, decimal=config.MPROFILE_TEST_PRECISION)
    npt.assert_almost_equal(I_periodic, I)
    assert PB is None
    assert IB is None


@pytest.mark.parametrize("parallelism", [1, 2])
def test_mpx_known_self_join(parallelism):
    T = np.array([0, 1, 1, 1, 0, 0, 2, 1, 0, 0, 2, 1], dtype=np.float64)
    m = 4
    ref_P = np.array([1.9550, 1.8388, 0.8739, 0, 0, 1.9550, 0.8739, 0, 0])
    P, I, _, _ = mpx(T, m, parallelism=parallelism)

    npt.assert_almost_equal(ref_P, P, decimal=4)
    _assert_neighbors(T, T, m, P, I)
    # Subsequences 0 and 5 each have two equidistant neighbors
    npt.assert_almost_equal(I[[1, 2, 3, 4, 6, 7, 8]], [2, 6, 7, 8, 2, 3, 4])


@pytest.mark.parametrize("parallelism", [1, 2, 4])
def test_mpx_known_A_B_join(parallelism):
    T_A = np.array([1, 2, 1, 3, 1], dtype=np.float64)
    T_B = np.array([2, 1, 1, 2, 1, 3, 1, -1, -2], dtype=np.float64)
    m = 2
    P, I, PB, IB = mpx(T_A, m, T_B, parallelism=parallelism)

    npt.assert_almost_equal(np.zeros(4), P, decimal=config.MPROFILE_TEST_PRECISION)
    # Increasing pairs match increasing pairs and decreasing pairs match decreasing
    # pairs
    assert I[0] in (2, 4)
    assert I[1] in (0, 3, 5, 6, 7)
    assert I[2] in (2, 4)
    assert I[3] in (0, 3, 5, 6, 7)
    _assert_neighbors(T_A, T_B, m, P, I)

    assert PB.shape[0] == T_B.shape[0] - m + 1
    assert np.isinf(PB[1])
    assert IB[1] == -1
    _assert_neighbors(T_B, T_A, m, PB, IB)


def test_mpx_identical_A_B_join():
    P, I, PB, IB = mpx(T_periodic, 4, T_periodic.copy())
    npt.assert_almost_equal(np.zeros(9), P, decimal=config.MPROFILE_TEST_PRECISION)
    npt.assert_almost_equal(np.arange(9), I)
    npt.assert_almost_equal(np.zeros(9), PB, decimal=config.MPROFILE_TEST_PRECISION)
    npt.assert_almost_equal(np.arange(9), IB)


@pytest.mark.parametrize("T_A, T_B", test_data)
@pytest.mark.parametrize("parallelism", [1, 2, 4, 100])
def test_mpx_self_join(T_A, T_B, parallelism):
    m = 3
    ref_P, ref_I, _, _ = naive.mpx(T_B, m)
    comp_P, comp_I, _, _ = mpx(T_B, m, parallelism=parallelism)

    npt.assert_almost_equal(ref_P, comp_P, decimal=config.MPROFILE_TEST_PRECISION)
    npt.assert_almost_equal(ref_I, comp_I)


@pytest.mark.parametrize("T_A, T_B", test_data)
def test_mpx_self_join_larger_window(T_A, T_B):
    m = 5
    ref_P, ref_I, _, _ = naive.mpx(T_B, m)
    comp_P, comp_I, _, _ = mpx(T_B, m)

    npt.assert_almost_equal(ref_P, comp_P, decimal=config.MPROFILE_TEST_PRECISION)
    npt.assert_almost_equal(ref_I, comp_I)

    diag_start = core.get_mpx_diag_start(m)
    idx = np.arange(comp_I.shape[0])
    assert np.all(np.abs(comp_I - idx) >= diag_start)


@pytest.mark.parametrize("T_A, T_B", test_data)
@pytest.mark.parametrize("parallelism", [1, 3])
def test_mpx_A_B_join(T_A, T_B, parallelism):
    m = 3
    ref_P, ref_I, ref_PB, ref_IB = naive.mpx(T_A, m, T_B)
    comp_P, comp_I, comp_PB, comp_IB = mpx(T_A, m, T_B, parallelism=parallelism)

    npt.assert_almost_equal(ref_P, comp_P, decimal=config.MPROFILE_TEST_PRECISION)
    npt.assert_almost_equal(ref_I, comp_I)
    npt.assert_almost_equal(ref_PB, comp_PB, decimal=config.MPROFILE_TEST_PRECISION)
    npt.assert_almost_equal(ref_IB, comp_IB)


@pytest.mark.parametrize("T_A, T_B", test_data)
def test_mpx_reverse_profile_matches_stomp(T_A, T_B):
    m = 3
    ref_P, ref_I = stomp(T_A, m, T_B)
    _, _, comp_PB, comp_IB = mpx(T_A, m, T_B)

    npt.assert_almost_equal(ref_P, comp_PB, decimal=config.MPROFILE_TEST_PRECISION)
    npt.assert_almost_equal(ref_I, comp_IB)


def test_mpx_constant_subsequences():
    T = np.random.uniform(-1000, 1000, [32])
    T[4:8] = 3.0
    m = 3
    ref_P, ref_I, _, _ = naive.mpx(T, m)
    comp_P, comp_I, _, _ = mpx(T, m)

    npt.assert_almost_equal(ref_P, comp_P, decimal=config.MPROFILE_TEST_PRECISION)
    npt.assert_almost_equal(ref_I, comp_I)
    assert np.all(np.isinf(comp_P[4:6]))
    assert np.all(comp_I[4:6] == -1)


def test_mpx_constant_A_B_join():
    T_A = np.array([1, 1, 1, 1, 1], dtype=np.float64)
    T_B = np.array([1, 1, 1, 1, 1, 2, 2, 3, 4, 5], dtype=np.float64)
    P, I, PB, IB = mpx(T_A, 2, T_B)

    npt.assert_almost_equal(np.full(4, np.inf), P)
    npt.assert_almost_equal(np.full(4, -1), I)
    npt.assert_almost_equal(np.full(9, np.inf), PB)
    npt.assert_almost_equal(np.full(9, -1), IB)


@pytest.mark.parametrize("T_A, T_B", test_data)
def test_mpx_correlation(T_A, T_B):
    m = 3
    ref_P, ref_I, _, _ = mpx(T_B, m)
    comp_ρ, comp_I, _, _ = mpx(T_B, m, euclidean=False)

    npt.assert_almost_equal(ref_I, comp_I)
    assert np.all(comp_ρ <= 1.0)
    assert np.all(comp_ρ >= -1.0)
    npt.assert_almost_equal(
        ref_P, np.sqrt(2 * m * (1.0 - comp_ρ)), decimal=config.MPROFILE_TEST_PRECISION
    )


def test_mpx_remap_negative_correlation():
    T = np.array([0, 1, 2, 3, 2, 1, 0, 5, 2, 8], dtype=np.float64)
    m = 4
    P, I, _, _ = mpx(T, m, euclidean=False)
    P_abs, I_abs, _, _ = mpx(T, m, euclidean=False, remap_negative_correlation=True)

    assert np.all(P_abs >= P - 1e-12)
    assert np.all(P_abs >= 0.0)
    # The window at 0 is perfectly anti-correlated with the window at 3
    npt.assert_almost_equal(P_abs[0], 1.0)


def test_mpx_invalid_window():
    with pytest.raises(core.InvalidInputError):
        mpx(np.random.rand(10), 1)
    with pytest.raises(core.InvalidInputError):
        mpx(np.random.rand(4), 5, np.random.rand(10))
