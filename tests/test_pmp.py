import numpy as np
import numpy.testing as npt
import pytest

from mprofile import PanMatrixProfile, config, core, mpx

T_periodic = np.array([0, 0.99, 1, 0, 0, 0.98, 1, 0, 0, 0.96, 1, 0], dtype=np.float64)

P_periodic = [
    np.array(
        [
            0.015225,
            0.015225,
            0.000000,
            0.000000,
            0.015225,
            0.015225,
            0.000000,
            0.000000,
            0.030899,
            0.030899,
        ]
    ),
    np.array(
        [
            0.014355,
            0.014355,
            0.029138,
            0.029138,
            0.014355,
            0.014355,
            0.029138,
            0.029138,
            0.029138,
        ]
    ),
    np.array(
        [0.014651, 0.029742, 0.033992, 0.029742, 0.014651, 0.029742, 0.033992, 0.029742]
    ),
]
I_periodic = [
    np.array([4, 5, 6, 7, 0, 1, 2, 3, 4, 5]),
    np.array([4, 5, 6, 7, 0, 1, 2, 3, 4]),
    np.array([4, 5, 6, 7, 0, 1, 2, 3]),
]


@pytest.mark.parametrize("parallelism", [1, 2, 4, 100])
def test_pmp_periodic(parallelism):
    pmp = PanMatrixProfile(T_periodic, 3, 5, parallelism=parallelism)
    pmp.compute()

    npt.assert_almost_equal([3, 4, 5], pmp.windows_)
    assert pmp.n_processed_ == 3
    assert len(pmp.P_) == 3
    for ref_P, ref_I, comp_P, comp_I in zip(P_periodic, I_periodic, pmp.P_, pmp.I_):
        npt.assert_almost_equal(ref_P, comp_P, decimal=config.MPROFILE_TEST_PRECISION)
        npt.assert_almost_equal(ref_I, comp_I)


def test_pmp_rows_match_mpx():
    T = np.random.rand(64)
    pmp = PanMatrixProfile(T, 4, 12)
    pmp.compute()

    for m, comp_P, comp_I in zip(pmp.windows_, pmp.P_, pmp.I_):
        ref_P, ref_I, _, _ = mpx(T, m)
        npt.assert_almost_equal(ref_P, comp_P)
        npt.assert_almost_equal(ref_I, comp_I)


def test_pmp_A_B_join():
    T_A = np.random.rand(32)
    T_B = np.random.rand(48)
    pmp = PanMatrixProfile(T_A, 3, 6, T_B)
    pmp.compute()

    for m, comp_P, comp_I in zip(pmp.windows_, pmp.P_, pmp.I_):
        ref_P, ref_I, _, _ = mpx(T_A, m, T_B)
        npt.assert_almost_equal(ref_P, comp_P)
        npt.assert_almost_equal(ref_I, comp_I)


def test_pmp_window_order():
    pmp = PanMatrixProfile(np.random.rand(64), 3, 12)
    npt.assert_almost_equal(
        np.arange(3, 13)[core._bfs_indices(10)], pmp.M_
    )
    npt.assert_almost_equal([8, 5, 11, 4, 7, 10, 12, 3, 6, 9], pmp.M_)


def test_pmp_update():
    pmp = PanMatrixProfile(T_periodic, 3, 5)
    npt.assert_almost_equal([4, 3, 5], pmp.M_)
    assert pmp.n_processed_ == 0
    assert len(pmp.P_) == 0

    assert pmp.update()
    assert pmp.n_processed_ == 1
    npt.assert_almost_equal([4], pmp.windows_)
    npt.assert_almost_equal(
        P_periodic[1], pmp.P_[0], decimal=config.MPROFILE_TEST_PRECISION
    )

    assert pmp.update()
    assert pmp.update()
    assert not pmp.update()
    assert pmp.n_processed_ == 3
    npt.assert_almost_equal([3, 4, 5], pmp.windows_)


def test_pmp_swapped_windows():
    pmp = PanMatrixProfile(T_periodic, 5, 3)
    npt.assert_almost_equal([4, 3, 5], pmp.M_)


def test_pmp_sample():
    pmp = PanMatrixProfile(np.random.rand(64), 3, 10, sample=0.5)
    pmp.compute()

    assert pmp.n_processed_ == 4
    npt.assert_almost_equal(np.sort(pmp.M_[:4]), pmp.windows_)


def test_pmp_sample_no_windows():
    with pytest.raises(core.InvalidInputError):
        PanMatrixProfile(T_periodic, 3, 5, sample=0.1)


@pytest.mark.parametrize("sample", [0.0, 1.5])
def test_pmp_invalid_sample(sample):
    with pytest.raises(core.InvalidSampleError):
        PanMatrixProfile(T_periodic, 3, 5, sample=sample)


@pytest.mark.parametrize("min_m, max_m", [(1, 5), (3, 13)])
def test_pmp_invalid_window(min_m, max_m):
    with pytest.raises(core.InvalidInputError):
        PanMatrixProfile(T_periodic, min_m, max_m)


def test_pmp_correlation():
    T = np.random.rand(32)
    pmp = PanMatrixProfile(T, 4, 6, euclidean=False)
    pmp.compute()

    for m, comp_P in zip(pmp.windows_, pmp.P_):
        ref_P, _, _, _ = mpx(T, m, euclidean=False)
        npt.assert_almost_equal(ref_P, comp_P)
        assert np.all(comp_P <= 1.0)
