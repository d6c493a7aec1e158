"""
Nuclear two-two reactions: thresholds, cross sections, Coulomb corrections
and event creation.

Tests:
    1. Thresholds and kinematic limits for 40Ar(nu_e, e-)40K*
    2. Cross sections vanish below threshold and for the wrong projectile
    3. Differential cross sections are non-negative and integrate to the total
    4. Coulomb correction modes, including the (M)EMA -> Fermi fallback
    5. Generated events conserve energy, momentum and charge
"""
import sys
from pathlib import Path
sys.path.append(str(Path(__file__).resolve().parents[1]))

import math
import warnings

import numpy as np
import pytest
from scipy import integrate

from nuphysics import constants as const
from nuphysics.conservation import check_event_conservation
from nuphysics.data import AR40, K40, ar40_cc_table, default_structure_db
from nuphysics.errors import ConfigurationMismatch, KinematicInfeasibility, PhysicsViolation
from nuphysics.mass_table import MassTable
from nuphysics.matrix_elements import (
    MatrixElementTable,
    clear_registry,
    get_matrix_elements,
    make_matrix_element,
)
from nuphysics.reactions import (
    CoulombMode,
    NuclearReaction,
    ProcessType,
    get_ejectile_pdg,
    get_projectiles,
    make_nuclear_reactions,
    process_type_to_string,
)
from nuphysics.transitions import Parity

VE, VEBAR = const.ELECTRON_NEUTRINO, const.ELECTRON_ANTINEUTRINO


@pytest.fixture
def mass_table():
    return MassTable()


@pytest.fixture
def cc_reaction(mass_table):
    return NuclearReaction(ProcessType.NEUTRINO_CC, VE, AR40, ar40_cc_table(), mass_table)


def _nc_reaction(mass_table, rows, **kwargs):
    return NuclearReaction(ProcessType.NC, VE, AR40, MatrixElementTable.from_rows(rows), mass_table, **kwargs)


# -------------------------- Process bookkeeping ---------------------------
def test_process_helpers():
    assert get_ejectile_pdg(12, ProcessType.NEUTRINO_CC) == 11
    assert get_ejectile_pdg(-14, ProcessType.ANTINEUTRINO_CC) == -13
    assert get_ejectile_pdg(16, ProcessType.NC) == 16
    assert get_ejectile_pdg(17, ProcessType.DM) == 11
    assert VEBAR not in get_projectiles(ProcessType.NEUTRINO_CC)
    assert process_type_to_string(ProcessType.NU_ELECTRON_ELASTIC) == "ES"
    with pytest.raises(ConfigurationMismatch):
        get_ejectile_pdg(VEBAR, ProcessType.NEUTRINO_CC)


def test_non_nuclear_process_rejected(mass_table):
    with pytest.raises(PhysicsViolation):
        NuclearReaction(ProcessType.NU_ELECTRON_ELASTIC, VE, AR40, ar40_cc_table(), mass_table)


def test_reaction_setup(cc_reaction):
    assert cc_reaction.pdg_c == const.ELECTRON
    assert cc_reaction.pdg_d == K40
    assert cc_reaction.q_d == 1
    assert (cc_reaction.Zi, cc_reaction.Zf, cc_reaction.Af) == (18, 19, 40)
    assert cc_reaction.description == "νe + 40Ar → e⁻ + 40K*"
    assert cc_reaction.atomic_target().pdg == AR40
    assert cc_reaction.weak_nuclear_charge() == pytest.approx(22 - (1 - 4 * const.SIN2_THETA_W) * 18)


# ------------------------------ Thresholds --------------------------------
def test_threshold(cc_reaction, mass_table):
    q = mass_table.get_atomic_mass(K40) - mass_table.get_atomic_mass(AR40)
    th = cc_reaction.threshold_kinetic_energy()
    assert q < th < q + 1e-3, "Threshold exceeds the Q value only by the recoil correction"
    assert abs(cc_reaction.max_level_energy(th)) < 1e-6


@pytest.mark.parametrize("KEa", [0.0, -1.0, 1.0, 1.5])
def test_zero_below_threshold(cc_reaction, KEa):
    assert cc_reaction.total_xs(VE, KEa) == 0.0
    assert cc_reaction.diff_xs(VE, KEa, 0.5) == 0.0


def test_zero_when_no_level_accessible(cc_reaction):
    # Above the ground-state threshold but below the first tabulated level
    KEa = cc_reaction.threshold_kinetic_energy() + 0.5
    assert cc_reaction.level_weights(KEa) == []
    assert cc_reaction.total_xs(VE, KEa) == 0.0
    with pytest.raises(KinematicInfeasibility):
        cc_reaction.create_event(VE, KEa, np.random.default_rng(1), default_structure_db())


def test_wrong_projectile(cc_reaction):
    assert cc_reaction.total_xs(VEBAR, 20.0) == 0.0
    assert cc_reaction.diff_xs(const.MUON_NEUTRINO, 20.0, 0.0) == 0.0
    with pytest.raises(ConfigurationMismatch):
        cc_reaction.create_event(VEBAR, 20.0, np.random.default_rng(1), default_structure_db())


# ----------------------------- Cross sections -----------------------------
def test_total_xs_grows_with_energy(cc_reaction):
    xs = [cc_reaction.total_xs(VE, KE) for KE in (8.0, 15.0, 30.0, 50.0)]
    assert all(x > 0.0 for x in xs)
    assert xs == sorted(xs)
    # Order of magnitude for 40Ar CC near 30 MeV: 10^-40 cm^2
    xs_cm2 = xs[2] * const.HBAR_C2_CM2
    assert 1e-41 < xs_cm2 < 1e-39


@pytest.mark.parametrize("KEa", [6.0, 20.0, 45.0])
def test_diff_xs_non_negative_and_integrates_to_total(cc_reaction, KEa):
    cosines = np.linspace(-1.0, 1.0, 41)
    assert all(cc_reaction.diff_xs(VE, KEa, c) >= 0.0 for c in cosines)
    integral, _ = integrate.quad(lambda c: cc_reaction.diff_xs(VE, KEa, c), -1.0, 1.0)
    assert integral == pytest.approx(cc_reaction.total_xs(VE, KEa), rel=1e-8)


def test_diff_xs_outside_physical_range(cc_reaction):
    assert cc_reaction.diff_xs(VE, 20.0, 1.5) == 0.0


def test_partial_xs_sum(cc_reaction):
    KEa = 25.0
    total = sum(cc_reaction.partial_xs(me, KEa) for me in cc_reaction.matrix_elements)
    assert total == pytest.approx(cc_reaction.total_xs(VE, KEa))
    me = cc_reaction.matrix_elements[0]
    assert cc_reaction.level_diff_xs(me, KEa, 2.0) == 0.0


def test_unordered_levels_rejected(mass_table):
    rows = [make_matrix_element(2.0, 1.0, "GT"), make_matrix_element(1.0, 1.0, "GT")]
    with pytest.raises(ValueError):
        NuclearReaction(ProcessType.NC, VE, AR40, rows, mass_table)

    reaction = NuclearReaction(ProcessType.NC, VE, AR40, rows[::-1], mass_table)
    assert isinstance(reaction.matrix_elements, MatrixElementTable)
    assert len(reaction.level_weights(20.0)) == 2


def test_zero_strength_levels_keep_alignment(mass_table):
    reaction = _nc_reaction(mass_table, [(0.0, "F", 0.0), (1.0, "GT", 1.0)])
    weights = reaction.level_weights(20.0)
    assert len(weights) == 2
    assert weights[0] == 0.0 and weights[1] > 0.0
    rng = np.random.default_rng(3)
    for _ in range(20):
        event = reaction.create_event(VE, 20.0, rng, default_structure_db())
        assert event.E_level == 1.0


def test_nan_partial_xs_floored(cc_reaction, monkeypatch, caplog):
    cc_reaction.coulomb_mode = CoulombMode.FERMI_FUNCTION
    monkeypatch.setattr(cc_reaction, "fermi_function", lambda beta: math.nan)
    weights = cc_reaction.level_weights(20.0)
    assert weights and all(w == 0.0 for w in weights)
    assert cc_reaction.total_xs(VE, 20.0) == 0.0
    assert any("NaN" in rec.message for rec in caplog.records)


# --------------------------- Coulomb corrections --------------------------
def test_fermi_function(cc_reaction, mass_table):
    assert math.isnan(cc_reaction.fermi_function(0.0))
    assert math.isnan(cc_reaction.fermi_function(1.0))
    # Attractive for electrons, repulsive for positrons
    assert cc_reaction.fermi_function(0.9) > 1.0
    anti = NuclearReaction(ProcessType.ANTINEUTRINO_CC, VEBAR, AR40,
                           MatrixElementTable.from_rows([(0.0, "GT", 1.0)]), mass_table)
    assert anti.pdg_d == 1000170400
    assert 0.0 < anti.fermi_function(0.9) < 1.0


def test_coulomb_mode_strings():
    for mode in CoulombMode:
        assert CoulombMode.from_string(str(mode)) is mode
    with pytest.raises(ConfigurationMismatch):
        CoulombMode.from_string("fermi")


def test_no_coulomb_correction(mass_table):
    plain = NuclearReaction(ProcessType.NEUTRINO_CC, VE, AR40, ar40_cc_table(), mass_table,
                            CoulombMode.NO_CORRECTION)
    corrected = NuclearReaction(ProcessType.NEUTRINO_CC, VE, AR40, ar40_cc_table(), mass_table,
                                CoulombMode.FERMI_FUNCTION)
    assert plain.coulomb_correction_factor(0.5) == 1.0
    # Coulomb attraction raises the cross section for electrons
    assert corrected.total_xs(VE, 20.0) > plain.total_xs(VE, 20.0)


def test_combined_mode_picks_smaller_correction(cc_reaction):
    beta = 0.99
    fermi = cc_reaction.fermi_function(beta)
    mema, ok = cc_reaction.ema_factor(beta, modified=True)
    assert ok
    factor = cc_reaction.coulomb_correction_factor(beta)
    expected = fermi if abs(fermi - 1.0) < abs(mema - 1.0) else mema
    assert factor == expected


def test_ema_invalid_falls_back_to_fermi(mass_table):
    table = MatrixElementTable.from_rows([(0.0, "GT", 1.0)])
    anti = NuclearReaction(ProcessType.ANTINEUTRINO_CC, VEBAR, AR40, table, mass_table,
                           CoulombMode.FERMI_AND_EMA)
    beta = 0.3
    factor, ok = anti.ema_factor(beta)
    assert not ok, "A slow positron cannot climb the Coulomb barrier"
    assert anti.coulomb_correction_factor(beta) == anti.fermi_function(beta)


@pytest.mark.parametrize("mode", [CoulombMode.EMA, CoulombMode.MEMA])
def test_forced_ema_raises_when_invalid(mass_table, mode):
    table = MatrixElementTable.from_rows([(0.0, "GT", 1.0)])
    anti = NuclearReaction(ProcessType.ANTINEUTRINO_CC, VEBAR, AR40, table, mass_table, mode)
    with pytest.raises(PhysicsViolation):
        anti.coulomb_correction_factor(0.3)


def test_ema_invalid_speed(cc_reaction):
    factor, ok = cc_reaction.ema_factor(1.2)
    assert math.isnan(factor) and not ok


# ------------------------------ Event creation ----------------------------
@pytest.mark.parametrize("KEa", [6.0, 15.0, 40.0])
def test_events_conserve(cc_reaction, KEa):
    rng = np.random.default_rng(42)
    db = default_structure_db()
    energies = {me.level_energy for me in cc_reaction.matrix_elements}
    for _ in range(50):
        event = cc_reaction.create_event(VE, KEa, rng, db)
        result = check_event_conservation(event)
        assert result["conserved"], f"Conservation violated: {result}"
        assert event.E_level in energies
        assert event.E_level <= cc_reaction.max_level_energy(KEa)
        assert event.residue.pdg == K40
        assert event.residue.charge == 1
        assert event.target.charge == 0
        assert event.residue.mass == pytest.approx(cc_reaction.md_gs + event.E_level)
        assert event.reaction is cc_reaction


def test_event_spin_parity(cc_reaction):
    rng = np.random.default_rng(7)
    db = default_structure_db()
    seen = set()
    for _ in range(200):
        event = cc_reaction.create_event(VE, 40.0, rng, db)
        seen.add((event.E_level, event.twoJ, event.parity))
    # Discrete 1+ levels and the 0+ isobaric analog state
    assert (2.2896, 2, Parity.POSITIVE) in seen
    assert (4.3835, 0, Parity.POSITIVE) in seen
    # Continuum Gamow-Teller entries from a 0+ ground state end up 1+
    for E_level, twoJ, parity in seen:
        if E_level > 4.4:
            assert (twoJ, parity) == (2, Parity.POSITIVE)


def test_ground_state_event_needs_structure_data(mass_table):
    reaction = _nc_reaction(mass_table, [(0.0, "F", 1.0)])
    assert reaction.threshold_kinetic_energy() == pytest.approx(0.0, abs=1e-9)
    rng = np.random.default_rng(5)
    with pytest.raises(ConfigurationMismatch):
        reaction.create_event(VE, 10.0, rng)

    event = reaction.create_event(VE, 10.0, rng, default_structure_db())
    assert event.E_level == 0.0
    assert (event.twoJ, event.parity) == (0, Parity.POSITIVE)
    assert event.residue.pdg == AR40
    assert event.ejectile.pdg == VE
    assert check_event_conservation(event)["conserved"]
    # Residue left in the ground state, on shell
    assert event.residue.mass == pytest.approx(reaction.md_gs)
    assert event.residue.fourvec.mass() == pytest.approx(reaction.md_gs, rel=1e-9)
    s = reaction.two_two_scatter(10.0, reaction.md_gs)[0]
    assert event.invariant_mass() == pytest.approx(math.sqrt(s), rel=1e-10)
    assert event.invariant_mass() >= reaction.mc + reaction.md_gs


def test_same_seed_same_event(cc_reaction):
    db = default_structure_db()
    a = cc_reaction.create_event(VE, 25.0, np.random.default_rng(99), db)
    b = cc_reaction.create_event(VE, 25.0, np.random.default_rng(99), db)
    assert a.to_dict() == b.to_dict()


def test_make_nuclear_reactions_shares_table(mass_table):
    clear_registry()
    table = ar40_cc_table()
    reactions = make_nuclear_reactions(ProcessType.NEUTRINO_CC, AR40, table, mass_table)
    assert [r.pdg_a for r in reactions] == list(get_projectiles(ProcessType.NEUTRINO_CC))
    assert all(r.matrix_elements is table for r in reactions)
    assert get_matrix_elements(AR40, ProcessType.NEUTRINO_CC) is table
    # Muon production needs far more energy than electron production
    assert reactions[1].threshold_kinetic_energy() > 100.0
    clear_registry()


def test_dark_matter_reaction_is_flagged(mass_table):
    with pytest.warns(UserWarning):
        dm = NuclearReaction(ProcessType.DM, const.DARK_MATTER, AR40, ar40_cc_table(), mass_table)
    expected = dm.md_gs + dm.mc - dm.mb
    assert dm.threshold_kinetic_energy() == pytest.approx(expected)
    assert dm.total_xs(const.DARK_MATTER, 0.5 * expected) == 0.0
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        assert dm.total_xs(const.DARK_MATTER, 20.0) >= 0.0
