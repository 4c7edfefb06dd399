"""
Tail probabilities of quadratic forms in normal variables.

Both pathway-level tests reduce their null distribution to

    Q = sum_i lambda_i * chi2(h_i)

with independent chi-square terms, and need P(Q > x). Imhof's (1961)
inversion formula gives this exactly up to quadrature error:

    P(Q > x) = 1/2 + 1/pi * int_0^inf sin(theta(u)) / (u * rho(u)) du

    theta(u) = 1/2 * sum_i h_i * arctan(lambda_i * u) - x * u / 2
    rho(u)   = prod_i (1 + lambda_i^2 * u^2) ^ (h_i / 4)

References:
    Imhof, J. P. (1961). "Computing the distribution of quadratic forms
    in normal variables". Biometrika 48 (3/4): 419-426.
"""

from __future__ import annotations

from typing import Optional

import numpy as np
from numpy.typing import ArrayLike
from scipy import integrate

__all__ = ['imhof_upper_tail']


def imhof_upper_tail(
    weights: ArrayLike,
    dofs: Optional[ArrayLike] = None,
    x: float = 0.0,
    *,
    epsabs: float = 1e-12,
    epsrel: float = 1e-10,
    limit: int = 500,
) -> float:
    """
    P(sum_i weights_i * chi2(dofs_i) > x).

    Args:
        weights: Coefficients lambda_i (any sign)
        dofs: Degrees of freedom h_i per term (default 1 each)
        x: Threshold
        epsabs: Absolute quadrature tolerance
        epsrel: Relative quadrature tolerance
        limit: Maximum quadrature subintervals

    Returns:
        Upper tail probability clipped to [0, 1]. Its absolute accuracy is
        bounded by the quadrature tolerance, so values far below ``epsabs``
        are not meaningful.
    """
    lam = np.asarray(weights, dtype=np.float64).ravel()
    h = np.ones_like(lam) if dofs is None else np.asarray(dofs, dtype=np.float64).ravel()
    if h.shape != lam.shape:
        raise ValueError("weights and dofs must have the same length")

    scale = float(np.max(np.abs(lam))) if lam.size else 0.0
    if scale == 0.0:
        return 1.0 if x < 0 else 0.0

    # P(Q > x) is invariant to rescaling lambda and x together
    lam = lam / scale
    x = x / scale
    keep = np.abs(lam) > 1e-13
    lam, h = lam[keep], h[keep]

    slope = 0.5 * (float(np.sum(h * lam)) - x)

    def integrand(u: float) -> float:
        if u < 1e-300:
            return slope
        lu = lam * u
        theta = 0.5 * np.sum(h * np.arctan(lu)) - 0.5 * x * u
        log_rho = np.sum(0.25 * h * np.log1p(lu * lu))
        return float(np.sin(theta) / (u * np.exp(log_rho)))

    value, _ = integrate.quad(integrand, 0.0, np.inf, epsabs=epsabs, epsrel=epsrel, limit=limit)
    return float(np.clip(0.5 + value / np.pi, 0.0, 1.0))
