"""
Numerical update schemes for the pseudo-time advance.

Implements the positivity-preserving Patankar update used for the
turbulence working variables (nuTilda, k, omega).
"""

import numpy as np
import numpy.typing as npt

NDArrayFloat = npt.NDArray[np.floating]


def apply_patankar_update(q: NDArrayFloat, dq: NDArrayFloat, floor: float = 0.0) -> NDArrayFloat:
    """Apply Patankar update to preserve positivity of a variable.

    The Patankar scheme keeps the updated variable positive even when the
    update step dq is negative and large, by using an implicit formulation:
        q_new = q_old / (1 - dq/q_old)  if dq < 0
        q_new = q_old + dq              if dq >= 0

    Parameters
    ----------
    q : ndarray
        Values at the start of the step.
    dq : ndarray
        Update increment.
    floor : float
        Physical floor applied after the update.

    Returns
    -------
    ndarray
        Updated values.
    """
    q_explicit = q + dq

    # Denominator (q - dq)/q > 1 whenever q > 0 and dq < 0
    safe_q = np.where(q > 0.0, q, 1.0)
    q_patankar = np.where(q > 0.0, q / (1.0 - dq / safe_q), q_explicit)

    q_new = np.where(dq < 0.0, q_patankar, q_explicit)

    return np.maximum(q_new, floor)
