"""Root finding shared by IRR and break-even solving.

Newton-Raphson from an initial guess.  If Newton stalls (derivative near
zero, non-finite value, step leaving the bracket, or iterations exhausted)
and a sign-changing bracket is available, bisection takes over.  A result
is only returned when |f(x)| < tol; otherwise ``NumericDivergence``.
"""

from __future__ import annotations

import math
from typing import Callable

from solar_mining_sim.errors import NumericDivergence


def _safe_eval(f: Callable[[float], float], x: float) -> float:
    try:
        value = f(x)
    except (OverflowError, ZeroDivisionError):
        return math.nan
    return value


def _finite_difference(f: Callable[[float], float], x: float) -> float:
    h = 1e-6 * max(1.0, abs(x))
    return (_safe_eval(f, x + h) - _safe_eval(f, x - h)) / (2 * h)


def newton_raphson(
    f: Callable[[float], float],
    x0: float,
    fprime: Callable[[float], float] | None = None,
    tol: float = 1e-4,
    max_iter: int = 100,
    derivative_epsilon: float = 1e-10,
    domain: tuple[float, float] | None = None,
) -> float | None:
    """Plain Newton iteration.  Returns None instead of a non-converged guess."""
    x = x0
    for _ in range(max_iter):
        fx = _safe_eval(f, x)
        if not math.isfinite(fx):
            return None
        if abs(fx) < tol:
            return x
        d = fprime(x) if fprime is not None else _finite_difference(f, x)
        if not math.isfinite(d) or abs(d) < derivative_epsilon:
            return None
        x = x - fx / d
        if not math.isfinite(x):
            return None
        if domain is not None and not (domain[0] < x < domain[1]):
            return None
    fx = _safe_eval(f, x)
    return x if math.isfinite(fx) and abs(fx) < tol else None


def bisection(
    f: Callable[[float], float],
    lo: float,
    hi: float,
    tol: float = 1e-4,
    max_iter: int = 100,
) -> float | None:
    """Bisection on a sign-changing bracket.  None if no sign change or no convergence."""
    f_lo = _safe_eval(f, lo)
    f_hi = _safe_eval(f, hi)
    if not (math.isfinite(f_lo) and math.isfinite(f_hi)):
        return None
    if abs(f_lo) < tol:
        return lo
    if abs(f_hi) < tol:
        return hi
    if f_lo * f_hi > 0:
        return None

    for _ in range(max_iter):
        mid = (lo + hi) / 2
        f_mid = _safe_eval(f, mid)
        if not math.isfinite(f_mid):
            return None
        if abs(f_mid) < tol:
            return mid
        if f_lo * f_mid < 0:
            hi = mid
        else:
            lo, f_lo = mid, f_mid
    return None


def solve_root(
    f: Callable[[float], float],
    x0: float,
    fprime: Callable[[float], float] | None = None,
    bracket: tuple[float, float] | None = None,
    tol: float = 1e-4,
    max_iter: int = 100,
    derivative_epsilon: float = 1e-10,
) -> float:
    """Find x with |f(x)| < tol.

    Raises
    ------
    NumericDivergence
        Neither Newton nor the bisection fallback converged.
    """
    root = newton_raphson(f, x0, fprime, tol, max_iter, derivative_epsilon, domain=bracket)
    if root is not None:
        return root

    if bracket is not None:
        root = bisection(f, bracket[0], bracket[1], tol, max_iter)
        if root is not None:
            return root

    raise NumericDivergence(
        "root finding did not converge",
        {"x0": x0, "bracket": bracket, "max_iter": max_iter, "tol": tol},
    )
