import numpy as np

from mprofile import config


def is_ptp_zero_1d(a, w):
    n = len(a) - w + 1
    out = np.empty(n)
    for i in range(n):
        out[i] = np.max(a[i : i + w]) - np.min(a[i : i + w])
    return out == 0


def z_norm(a, axis=0):
    std = np.std(a, axis, keepdims=True)
    std = np.where(std > 0, std, 1.0)

    return (a - np.mean(a, axis, keepdims=True)) / std


def distance(a, b, axis=0):
    return np.linalg.norm(a - b, axis=axis)


def compute_mean_std(T, m):
    n = T.shape[0]

    M_T = np.zeros(n - m + 1, dtype=float)
    Σ_T = np.zeros(n - m + 1, dtype=float)

    for i in range(n - m + 1):
        M_T[i] = np.mean(T[i : i + m])
        Σ_T[i] = np.std(T[i : i + m])

    return M_T, Σ_T


def mu_inv_n(T, m):
    n = T.shape[0]

    μ = np.zeros(n - m + 1, dtype=float)
    σ_inv = np.zeros(n - m + 1, dtype=float)

    for i in range(n - m + 1):
        μ[i] = np.mean(T[i : i + m])
        σ_inv[i] = 1.0 / np.linalg.norm(T[i : i + m] - μ[i])

    return μ, σ_inv


def apply_exclusion_zone(a, trivial_idx, excl_zone, val):
    start = max(0, trivial_idx - excl_zone)
    stop = min(a.shape[-1], trivial_idx + excl_zone + 1)
    for i in range(start, stop):
        a[..., i] = val


def sliding_dot_product(Q, T):
    m = Q.shape[0]
    l = T.shape[0] - m + 1
    out = np.empty(l)
    for i in range(l):
        out[i] = np.dot(Q, T[i : i + m])
    return out


def distance_profile(Q, T, m):
    T_isconstant = is_ptp_zero_1d(T, m)
    D = distance(
        z_norm(Q), z_norm(np.lib.stride_tricks.sliding_window_view(T, m), axis=1), 1
    )
    D[T_isconstant] = np.inf

    return D


def distance_matrix(T_A, T_B, m):
    """
    `D[i, j]` is the z-normalized distance between `T_A[i : i + m]` and
    `T_B[j : j + m]` where a pair with a constant subsequence is `np.inf`
    """
    l_A = T_A.shape[0] - m + 1
    l_B = T_B.shape[0] - m + 1
    A_isconstant = is_ptp_zero_1d(T_A, m)

    D = np.full((l_A, l_B), np.inf)
    for i in range(l_A):
        if A_isconstant[i]:
            continue
        D[i] = distance_profile(T_A[i : i + m], T_B, m)

    return D


def _argmin_PI(D):
    # Row-wise minimum where the first minimum wins and all `np.inf` rows have no
    # match at all
    P = np.full(D.shape[0], np.inf)
    I = np.full(D.shape[0], -1, np.int64)
    for i in range(D.shape[0]):
        j = np.argmin(D[i])
        if np.isfinite(D[i, j]):
            P[i] = D[i, j]
            I[i] = j

    return P, I


def stmp(T_A, m, T_B=None):
    """
    The matrix profile of `T_B` (indices into `T_A`) where self-joins exclude
    `[j - m // 2, j + m // 2]`
    """
    self_join = T_B is None
    if self_join:
        T_B = T_A

    D = distance_matrix(T_A, T_B, m).T
    if self_join:
        excl_zone = int(m // config.MPROFILE_EXCL_ZONE_DENOM)
        for j in range(D.shape[0]):
            apply_exclusion_zone(D[j], j, excl_zone, np.inf)

    return _argmin_PI(D)


def mpx(T_A, m, T_B=None):
    """
    The matrix profile of `T_A` (indices into `T_B`) and of `T_B` (indices into
    `T_A`) where self-joins exclude the pairs that are closer than
    `max(1, m // 4)`
    """
    self_join = T_B is None
    if self_join:
        T_B = T_A

    D = distance_matrix(T_A, T_B, m)
    if self_join:
        diag_start = max(1, int(m // config.MPROFILE_MPX_EXCL_ZONE_DENOM))
        for i in range(D.shape[0]):
            apply_exclusion_zone(D[i], i, diag_start - 1, np.inf)

    P, I = _argmin_PI(D)
    if self_join:
        return P, I, None, None

    PB, IB = _argmin_PI(D.T)

    return P, I, PB, IB


def bfs_indices(n):
    # Visit the midpoint of every [start, stop) range, one level at a time
    out = []
    level = [(0, n)]
    while level:
        next_level = []
        for start, stop in level:
            mid = (start + stop) // 2
            out.append(mid)
            if start < mid:
                next_level.append((start, mid))
            if mid + 1 < stop:
                next_level.append((mid + 1, stop))
        level = next_level

    return np.array(out, dtype=np.int64)


def merge_PI(PA, IA, PB, IB):
    P = PA.copy()
    I = IA.copy()
    for j in range(P.shape[0]):
        if PB[j] < P[j] or (PB[j] == P[j] and IB[j] < I[j]):
            P[j] = PB[j]
            I[j] = IB[j]

    return P, I


def mstomp(T, m):
    """
    The multi-dimensional matrix profile of `T` where row `k` holds, for every
    subsequence, the smallest average of its `k + 1` best matching dimensions
    """
    d = T.shape[0]
    excl_zone = int(m // config.MPROFILE_EXCL_ZONE_DENOM)

    D = np.array([distance_matrix(T[k], T[k], m) for k in range(d)])
    for k in range(d):
        for i in range(D.shape[1]):
            apply_exclusion_zone(D[k, i], i, excl_zone, np.inf)

    D = np.sort(D, axis=0)
    D = np.cumsum(D, axis=0) / np.arange(1, d + 1)[:, np.newaxis, np.newaxis]

    l = D.shape[1]
    P = np.full((d, l), np.inf)
    I = np.full((d, l), -1, np.int64)
    for k in range(d):
        P[k], I[k] = _argmin_PI(D[k].T)

    return P, I
