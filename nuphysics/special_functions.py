"""
Gamma function for complex arguments (Lanczos approximation, g = 7, n = 9).

The Fermi function needs |Gamma(s + i eta)|^2 for complex arguments, which
neither math nor numpy provides.
"""

import cmath
import math

_LANCZOS_G = 7
_LANCZOS_COEFFS = (
    0.99999999999980993,
    676.5203681218851,
    -1259.1392167224028,
    771.32342877765313,
    -176.61502916214059,
    12.507343278686905,
    -0.13857109526572012,
    9.9843695780195716e-6,
    1.5056327351493116e-7,
)

_HALF_LOG_TWO_PI = 0.5 * math.log(2.0 * math.pi)


def log_gamma(z: complex) -> complex:
    """log Gamma(z) away from the poles at z = 0, -1, -2, ...

    The imaginary part may differ from the principal branch by a multiple
    of 2 pi, so exponentiate it or use only its real part.
    """
    z = complex(z)
    if z.real < 0.5:
        # Reflection formula: Gamma(z) Gamma(1 - z) = pi / sin(pi z)
        return cmath.log(math.pi / cmath.sin(math.pi * z)) - log_gamma(1.0 - z)

    z -= 1.0
    x = _LANCZOS_COEFFS[0]
    for i in range(1, _LANCZOS_G + 2):
        x += _LANCZOS_COEFFS[i] / (z + i)
    t = z + _LANCZOS_G + 0.5
    return _HALF_LOG_TWO_PI + (z + 0.5) * cmath.log(t) - t + cmath.log(x)


def gamma(z: complex) -> complex:
    return cmath.exp(log_gamma(z))


def abs_gamma_squared(x: float, y: float) -> float:
    """|Gamma(x + iy)|^2 computed through the log to avoid overflow."""
    return math.exp(2.0 * log_gamma(complex(x, y)).real)
