"""Real polynomial evaluation and root finding for spline geometry."""

from __future__ import annotations

import math
import sys
from typing import Callable, List, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from basicspline.common import (
    LEADING_COEFFICIENT_EPSILON,
    NEWTON_MAX_ITERATIONS,
    NEWTON_TOLERANCE,
    ROOT_TOLERANCE,
    Poly,
)

PolyLike = Union[Sequence[float], NDArray[np.float64]]

_COS_120: float = -0.5
_SIN_120: float = 0.8660254037844386
_THIRD: float = 1.0 / 3.0


###############################################################################
# PolySolver
###############################################################################
class PolySolver:
    """Collection of static methods for real-coefficient polynomials.

    Polynomials are stored as coefficient arrays with the highest degree first,
    i.e. ``[c0, c1, ..., cn]`` represents ``c0*t^n + c1*t^(n-1) + ... + cn``.
    """

    @staticmethod
    def as_poly(coeff: PolyLike) -> Poly:
        """Return the coefficients as a float64 array (no copy if already one)."""
        if isinstance(coeff, np.ndarray) and coeff.dtype == np.float64:
            return coeff
        return np.asarray(coeff, dtype=np.float64)

    @staticmethod
    def format_poly(coeff: PolyLike) -> str:
        """Render the coefficients as ``{c0,c1,...}`` for diagnostics."""
        return "{" + ",".join(f"{float(c):g}" for c in coeff) + "}"

    @staticmethod
    def evaluate(coeff: PolyLike, t: float) -> float:
        """Evaluate the polynomial at t using Horner's scheme."""
        value = 0.0
        for c in coeff:
            value = value * t + c
        return float(value)

    @classmethod
    def derivative(cls, coeff: PolyLike) -> Poly:
        """Differentiate the polynomial term-wise, the result has one coefficient less."""
        coeff = cls.as_poly(coeff)
        order = len(coeff) - 1
        return coeff[:-1] * np.arange(order, 0, -1, dtype=np.float64)

    @classmethod
    def remove_leading_zeros(cls, coeff: PolyLike) -> Poly:
        """Strip exactly-zero leading coefficients.

        An all-zero polynomial collapses to ``[0.0]``.
        """
        coeff = cls.as_poly(coeff)
        nonzero = np.flatnonzero(coeff)
        if len(nonzero) == 0:
            return coeff[-1:] if len(coeff) else np.zeros(1, dtype=np.float64)
        first = int(nonzero[0])
        return coeff[first:] if first else coeff

    @classmethod
    def remove_negligible_leading(cls, coeff: PolyLike, eps: float = LEADING_COEFFICIENT_EPSILON) -> Poly:
        """Strip leading coefficients that are tiny compared to the largest one.

        Straight or degree elevated cubic curves produce such coefficients from
        rounding, e.g. ``3.9e-31`` next to ``67.7``.
        """
        coeff = cls.remove_leading_zeros(coeff)
        scale = float(np.max(np.abs(coeff)))
        first = 0
        while first < len(coeff) - 1 and abs(coeff[first]) <= eps * scale:
            first += 1
        return coeff[first:] if first else coeff

    @classmethod
    def remainder(cls, a: PolyLike, b: PolyLike) -> Poly:
        """Return the remainder of the polynomial division a / b.

        Uses synthetic division. The leading coefficient of b has to be nonzero.
        """
        mod = np.array(a, dtype=np.float64)
        b = cls.as_poly(b)
        steps = len(mod) - len(b) + 1

        binv = -1.0 / b[0]
        for offset in range(steps):
            factor = mod[offset] * binv
            mod[offset] = 0.0
            mod[offset + 1 : offset + len(b)] += factor * b[1:]

        return cls.remove_leading_zeros(mod)

    @classmethod
    def sturm_sequence(cls, coeff: PolyLike) -> List[Poly]:
        """Build the sequence ``[p, p', -rem(p, p'), -rem(p', ...), ...]``.

        The sequence ends with the first remainder of degree 0, which also covers
        a remainder that vanishes identically.
        """
        coeff = cls.as_poly(coeff)
        sequence = [coeff, cls.derivative(coeff)]
        while True:
            new_poly = -cls.remainder(sequence[-2], sequence[-1])
            sequence.append(new_poly)
            if len(new_poly) <= 1:
                break
        return sequence

    @classmethod
    def sign_changes(cls, sequence: Sequence[PolyLike], x: float) -> int:
        """Count the sign changes of the sequence evaluated at x.

        A term evaluating to exactly zero always counts as a change for the
        following term. This is a simplification of Sturm's theorem which is
        kept on purpose: it only matters at exact roots of sequence members and
        the isolation below tolerates the occasional over-count.
        """
        count = 0
        last = cls.evaluate(sequence[0], x)
        for poly in sequence[1:]:
            value = cls.evaluate(poly, x)
            if last == 0 or value * last < 0:
                count += 1
            last = value
        return count

    @staticmethod
    def hybrid_newton(
        # pylint: disable=too-many-arguments,too-many-positional-arguments
        left: float,
        right: float,
        function: Callable[[float], float],
        dfunction: Callable[[float], float],
        tol: float = NEWTON_TOLERANCE,
        max_iterations: int = NEWTON_MAX_ITERATIONS,
    ) -> float:
        """Find a root of function inside [left, right] with safeguarded Newton steps.

        The bracket ``[xl, xh]`` is oriented so that ``function(xl) < function(xh)``.
        A Newton step is taken when it lands inside the bracket and the step
        converges fast enough, otherwise the bracket is bisected.

        Args:
            left: One end of the bracket.
            right: Other end of the bracket.
            function: Function to find the root of.
            dfunction: Derivative of function.
            tol: Stop once the bracket is narrower than this.
            max_iterations: Upper bound on the number of iterations.

        Returns:
            The last estimate of the root. Never raises on non-convergence.
        """
        if function(left) < function(right):
            xl, xh = left, right
        else:
            xl, xh = right, left

        last = -sys.float_info.max
        m = (xl + xh) * 0.5
        f = function(m)
        if abs(f) < sys.float_info.epsilon:
            return m
        df = dfunction(m)

        for _ in range(max_iterations):
            dx = abs(xl - xh)
            if dx < tol:
                break

            if df == 0 or 2.0 * abs(f) > abs(dx * df):
                m = (xl + xh) * 0.5
            else:
                m = m - f / df
                if (xl - m) * (xh - m) > 0:
                    m = (xl + xh) * 0.5

            if m == last:
                break
            last = m

            f = function(m)
            if abs(f) < sys.float_info.epsilon:
                break
            df = dfunction(m)

            if f < 0:
                xl = m
            else:
                xh = m

        return m

    @staticmethod
    def bisection(a: float, b: float, function: Callable[[float], float], prec: float = NEWTON_TOLERANCE) -> float:
        """Find a sign change of function inside [a, b] by plain bisection."""
        fa = function(a)
        while True:
            m = (a + b) * 0.5
            if abs(b - a) <= prec:
                return m
            fm = function(m)
            if fm == 0:
                return m
            if fa * fm < 0:
                b = m
            else:
                a, fa = m, fm

    ###########################################################################
    # Root finding
    ###########################################################################

    @staticmethod
    def _in_range(root: float, a: float, b: float) -> bool:
        return (root - a) * (root - b) <= 0

    @classmethod
    def _solve_linear(cls, coeff: Poly, a: float, b: float, roots: List[float]) -> None:
        root = -coeff[1] / coeff[0]
        if cls._in_range(root, a, b):
            roots.append(float(root))

    @classmethod
    def _solve_quadratic(cls, coeff: Poly, a: float, b: float, roots: List[float]) -> None:
        disc = coeff[1] * coeff[1] - 4.0 * coeff[0] * coeff[2]
        if disc < 0:
            return

        if disc == 0:
            root = -0.5 * coeff[1] / coeff[0]
            if cls._in_range(root, a, b):
                roots.append(float(root))
            return

        # q and c/q avoid the cancellation of -b + sqrt(disc) when 4ac is small
        q = -0.5 * (coeff[1] + math.copysign(math.sqrt(disc), coeff[1]))
        for root in (q / coeff[0], coeff[2] / q):
            if cls._in_range(root, a, b):
                roots.append(float(root))

    @classmethod
    def _solve_cubic(cls, coeff: Poly, a: float, b: float, roots: List[float]) -> None:
        # Depressed cubic x^3 + p*x + q with t = x - c1/(3*c0)
        inva = 1.0 / coeff[0]
        bb = coeff[1] * coeff[1]
        ac3 = 3.0 * coeff[0] * coeff[2]

        p = (ac3 - bb) * inva * inva * _THIRD
        half_q = (2.0 * coeff[1] * bb - 3.0 * ac3 * coeff[1] + 27.0 * coeff[0] * coeff[0] * coeff[3]) * (
            inva * inva * inva / 54.0
        )
        p_third = p * _THIRD
        disc = half_q * half_q + p_third * p_third * p_third
        shift = coeff[1] * inva * _THIRD

        candidates: List[float]
        if disc > 0:
            # one real root (Cardano)
            dsqrt = math.sqrt(disc)
            candidates = [float(np.cbrt(-half_q + dsqrt) + np.cbrt(-half_q - dsqrt))]
        elif disc < 0:
            # three real roots (trigonometric form)
            rad = math.sqrt(-p_third)
            angle = math.acos(max(-1.0, min(1.0, -half_q / (rad * rad * rad)))) * _THIRD
            nx = math.cos(angle) * rad
            ny = math.sin(angle) * rad
            candidates = [
                2.0 * nx,
                2.0 * (nx * _COS_120 - ny * _SIN_120),
                2.0 * (nx * _COS_120 + ny * _SIN_120),
            ]
        else:
            # repeated root, a triple root when p == 0
            u = float(np.cbrt(-half_q))
            candidates = [2.0 * u] if u == 0 else [2.0 * u, -u]

        for x in candidates:
            root = x - shift
            if cls._in_range(root, a, b):
                roots.append(float(root))

    @classmethod
    def find_roots(cls, coeff: PolyLike, a: float, b: float, tol: float = ROOT_TOLERANCE) -> List[float]:
        """Find the real roots of the polynomial inside [a, b] (inclusive).

        Degrees 1 to 3 are solved in closed form. Higher degrees are isolated with
        a Sturm sequence and refined with ``hybrid_newton``.

        Args:
            coeff: Polynomial coefficients, highest degree first.
            a: Lower end of the search interval.
            b: Upper end of the search interval.
            tol: Width below which an interval is reported by its midpoint.

        Returns:
            List of roots in the order they were found.
        """
        roots: List[float] = []
        coeff = cls.remove_negligible_leading(coeff)
        degree = len(coeff) - 1
        if degree == 1:
            cls._solve_linear(coeff, a, b, roots)
        elif degree == 2:
            cls._solve_quadratic(coeff, a, b, roots)
        elif degree == 3:
            cls._solve_cubic(coeff, a, b, roots)
        elif degree > 3:
            sequence = cls.sturm_sequence(coeff)
            cls._isolate_roots(
                sequence, a, b, cls.sign_changes(sequence, a), cls.sign_changes(sequence, b), roots, tol
            )
        return roots

    @classmethod
    def _isolate_roots(
        # pylint: disable=too-many-arguments,too-many-positional-arguments
        cls,
        sequence: List[Poly],
        a: float,
        b: float,
        sc_a: int,
        sc_b: int,
        roots: List[float],
        tol: float,
    ) -> None:
        """Isolate roots by bisecting on sign-change counts.

        Uses an explicit stack of ``(a, b, sc_a, sc_b)`` intervals. The left half
        is pushed last so intervals are processed from left to right.
        """
        poly, dpoly = sequence[0], sequence[1]

        def function(t: float) -> float:
            return cls.evaluate(poly, t)

        def dfunction(t: float) -> float:
            return cls.evaluate(dpoly, t)

        stack: List[Tuple[float, float, int, int]] = [(a, b, sc_a, sc_b)]
        while stack:
            a, b, sc_a, sc_b = stack.pop()
            count = sc_a - sc_b
            if count == 0:
                continue

            m = (a + b) * 0.5
            if count == 1:
                if function(a) * function(b) < 0:
                    roots.append(cls.hybrid_newton(a, b, function, dfunction, tol))
                    continue
                if abs(b - a) < tol or function(m) == 0:
                    roots.append(m)
                    continue
                sc_m = cls.sign_changes(sequence, m)
                if sc_m == sc_a:
                    stack.append((m, b, sc_m, sc_b))
                else:
                    stack.append((a, m, sc_a, sc_m))
            else:
                if abs(b - a) < tol:
                    roots.append(m)
                    continue
                sc_m = cls.sign_changes(sequence, m)
                stack.append((m, b, sc_m, sc_b))
                stack.append((a, m, sc_a, sc_m))


def main() -> None:
    """Main"""
    poly = [1.0, -10.0, 35.0, -50.0, 24.0]
    print("polynomial:", PolySolver.format_poly(poly))
    for poly_ in PolySolver.sturm_sequence(poly):
        print("  sturm:", PolySolver.format_poly(poly_))
    print("roots in [0, 5]:", sorted(PolySolver.find_roots(poly, 0.0, 5.0)))


if __name__ == "__main__":
    main()
