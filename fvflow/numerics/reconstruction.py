"""
Slope-limited MUSCL reconstruction on the extended face stencil.

For an internal face between cells L and R, the stencil LL-L-R-RR along
the face direction gives the limited left and right states

    q_L+ = q_L + ½ ψ(q_L - q_LL, q_R - q_L)
    q_R- = q_R - ½ ψ(q_RR - q_R, q_R - q_L)

where ψ(a, b) is a symmetric slope limiter returning zero at extrema.
"""

from numba import njit

LIMITERS = {
    "minmod": 0,
    "vanleer": 1,
    "vanalbada": 2,
}


def limiter_id(name: str) -> int:
    """Map a limiter name to the integer used inside the kernels."""
    try:
        return LIMITERS[name.lower()]
    except KeyError:
        raise ValueError(f"Unknown limiter '{name}', expected one of {sorted(LIMITERS)}") from None


@njit(cache=True)
def limited_slope(a: float, b: float, limiter: int) -> float:
    """Limited slope from two one-sided differences."""
    if a * b <= 0.0:
        return 0.0
    if limiter == 0:
        if abs(a) < abs(b):
            return a
        return b
    if limiter == 1:
        return 2.0 * a * b / (a + b)
    return a * b * (a + b) / (a * a + b * b)


@njit(cache=True)
def muscl_pair(q_ll: float, q_l: float, q_r: float, q_rr: float, limiter: int):
    """Limited (left, right) face states."""
    left = q_l + 0.5 * limited_slope(q_l - q_ll, q_r - q_l, limiter)
    right = q_r - 0.5 * limited_slope(q_rr - q_r, q_r - q_l, limiter)
    return left, right
