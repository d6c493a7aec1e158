"""
Kinematics checks: four-vectors, boosts and CM frame two-two scattering.
"""
import sys
from pathlib import Path
sys.path.append(str(Path(__file__).resolve().parents[1]))

import math

import numpy as np
import pytest

from nuphysics.kinematics import FourVector, lorentz_boost_array, real_sqrt, two_two_scatter


def test_real_sqrt_clamps_roundoff():
    assert real_sqrt(-1e-14) == 0.0
    assert real_sqrt(0.0) == 0.0
    assert real_sqrt(4.0) == 2.0


def test_boost_preserves_invariant_mass():
    p = FourVector(10.0, 1.0, -2.0, 3.0)
    boosted = p.boost(np.array([0.1, 0.2, 0.6]))
    assert abs(boosted.mass() - p.mass()) < 1e-9
    assert abs(boosted.dot(boosted) - p.dot(p)) < 1e-8


def test_boost_from_rest_frame():
    m = 5.0
    beta = 0.6
    moving = FourVector(m, 0.0, 0.0, 0.0).boost(np.array([0.0, 0.0, beta]))
    gamma = 1.0 / math.sqrt(1.0 - beta * beta)
    assert abs(moving.E - gamma * m) < 1e-12
    assert abs(moving.pz - gamma * beta * m) < 1e-12
    assert np.allclose(moving.beta(), [0.0, 0.0, beta])


def test_boost_round_trip():
    p4 = np.array([12.0, 1.0, 2.0, -4.0])
    beta = np.array([0.3, -0.1, 0.5])
    back = lorentz_boost_array(lorentz_boost_array(p4, beta), -beta)
    assert np.allclose(back, p4)


def test_superluminal_boost_rejected():
    with pytest.raises(ValueError):
        lorentz_boost_array(np.array([1.0, 0.0, 0.0, 0.0]), np.array([0.0, 0.0, 1.0]))


def test_four_vector_arithmetic():
    a = FourVector(5.0, 1.0, 2.0, 3.0)
    b = FourVector(3.0, -1.0, 0.5, 1.0)
    assert (a + b).to_tuple() == (8.0, 0.0, 2.5, 4.0)
    assert (a - b).to_tuple() == (2.0, 2.0, 1.5, 2.0)
    assert FourVector(0.0, 0.0, 0.0, 0.0).beta().tolist() == [0.0, 0.0, 0.0]


@pytest.mark.parametrize(
    "Ea,ma,mb,mc,md",
    [
        (10.0, 0.0, 0.511, 0.0, 0.511),      # neutrino-electron scattering
        (30.0, 0.0, 37224.7, 0.511, 37227.0),  # CC on a heavy nucleus
        (200.0, 0.0, 938.272, 105.658, 939.565),
    ],
)
def test_two_two_scatter_energy_balance(Ea, ma, mb, mc, md):
    s, Ec_cm, pc_cm, Ed_cm = two_two_scatter(Ea, ma, mb, mc, md)
    assert abs(s - (ma * ma + mb * mb + 2.0 * mb * Ea)) < 1e-9 * s
    assert abs(Ec_cm + Ed_cm - math.sqrt(s)) < 1e-9 * math.sqrt(s)
    # Ejectile and residue share one momentum in the CM frame
    pd_cm = math.sqrt(max(Ed_cm * Ed_cm - md * md, 0.0))
    assert abs(pc_cm - pd_cm) < 1e-6 * max(pc_cm, 1.0)
    assert Ed_cm >= md


def test_residue_energy_clamped_to_mass():
    # Far below threshold the residue energy never drops below its rest mass
    s, Ec_cm, pc_cm, Ed_cm = two_two_scatter(0.01, 0.0, 100.0, 5.0, 100.0)
    assert pc_cm == 0.0
    assert Ed_cm == 100.0
