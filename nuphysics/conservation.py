# conservation.py
# Energy, momentum and charge bookkeeping for scattering events.
#
# Nuclear targets carry tens of GeV of rest energy (in MeV), so event checks
# use a tolerance relative to the total initial energy.
import numpy as np

from .kinematics import FourVector


def _sum(vectors) -> FourVector:
    total = FourVector(0.0, 0.0, 0.0, 0.0)
    for v in vectors:
        total = total + v
    return total


def _imbalance(initial_vectors, final_vectors) -> np.ndarray:
    """(dE, dpx, dpy, dpz) = sum(initial) - sum(final)."""
    diff = _sum(initial_vectors) - _sum(final_vectors)
    return np.array([diff.E, diff.px, diff.py, diff.pz], dtype=float)


def check_energy_conservation(initial_vectors, final_vectors, tol=1e-6):
    """
    True if the summed energies of the two lists differ by less than tol (MeV).

    >>> from nuphysics.kinematics import FourVector
    >>> nu, ar = FourVector(10, 0, 0, 10), FourVector(5, 0, 0, 0)
    >>> check_energy_conservation([nu, ar], [FourVector(10, 3, 0, 4), FourVector(5, -3, 0, 6)])
    True
    """
    return bool(abs(_imbalance(initial_vectors, final_vectors)[0]) < tol)


def check_momentum_conservation(initial_vectors, final_vectors, tol=1e-6):
    """True if every 3-momentum component balances within tol (MeV)."""
    return bool(np.all(np.abs(_imbalance(initial_vectors, final_vectors)[1:]) < tol))


def check_conservation(initial_vectors, final_vectors, tol=1e-6):
    return bool(np.all(np.abs(_imbalance(initial_vectors, final_vectors)) < tol))


def check_energy_momentum(initial_vectors, final_vectors, tol=1e-6):
    """Four-momentum imbalance components and a 'conserved' flag."""
    E_initial = _sum(initial_vectors).E
    dE, dPx, dPy, dPz = _imbalance(initial_vectors, final_vectors)
    return {
        'conserved': bool(max(abs(dE), abs(dPx), abs(dPy), abs(dPz)) < tol),
        'deltaE': float(dE),
        'deltaPx': float(dPx),
        'deltaPy': float(dPy),
        'deltaPz': float(dPz),
        'E_initial': E_initial,
        'E_final': E_initial - float(dE),
    }


def check_event_conservation(event, rel_tol=1e-10):
    """Diagnostic dict for an Event: four-momentum and charge.

    The four-momentum tolerance is ``rel_tol`` times the total initial
    energy. The 'conserved' key is True only if both the four-momentum and
    the total charge balance.
    """
    initial = [p.fourvec for p in event.initial_particles]
    final = [p.fourvec for p in event.final_particles]
    tol = rel_tol * max(_sum(initial).E, 1.0)
    result = check_energy_momentum(initial, final, tol)

    q_initial = event.total_charge(initial=True)
    q_final = event.total_charge(initial=False)
    result['charge_initial'] = q_initial
    result['charge_final'] = q_final
    result['charge_conserved'] = q_initial == q_final
    result['four_momentum_conserved'] = result['conserved']
    result['conserved'] = result['conserved'] and q_initial == q_final
    return result
