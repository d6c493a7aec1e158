"""
Generator: reproducibility, state strings, energy PDF and event sampling.

Tests:
    1. Same seed -> same events; state strings restore the stream
    2. Reacting-energy PDF is normalized and vanishes below threshold
    3. Reactions are chosen in proportion to their cross sections
    4. Fixed-energy events for external flux drivers
    5. Batch generation statistics
"""
import sys
from pathlib import Path
sys.path.append(str(Path(__file__).resolve().parents[1]))

import json

import numpy as np
import pytest
from scipy import integrate

from nuphysics import constants as const
from nuphysics.conservation import check_event_conservation
from nuphysics.constants import UNKNOWN_MAX
from nuphysics.data import AR40, ar40_cc_table, default_structure_db
from nuphysics.errors import ConfigurationMismatch, KinematicInfeasibility
from nuphysics.generator import Generator, simulate_batch
from nuphysics.mass_table import MassTable
from nuphysics.reactions import ElectronReaction, NuclearReaction, ProcessType
from nuphysics.source import GridSource, HistogramSource, MonoSource
from nuphysics.target import Target

VE = const.ELECTRON_NEUTRINO


@pytest.fixture(scope="module")
def mass_table():
    return MassTable()


@pytest.fixture(scope="module")
def cc(mass_table):
    return NuclearReaction(ProcessType.NEUTRINO_CC, VE, AR40, ar40_cc_table(), mass_table)


@pytest.fixture(scope="module")
def es(mass_table):
    return ElectronReaction(VE, AR40, mass_table)


def _generator(reactions, source=None, seed=12345, **kwargs):
    return Generator(
        seed=seed,
        source=source if source is not None else MonoSource(VE, 20.0),
        target=Target.single(AR40),
        reactions=reactions,
        structure_db=default_structure_db(),
        **kwargs,
    )


def _spectrum():
    return GridSource(VE, [0.0, 10.0, 30.0, 50.0], [0.0, 1.0, 0.5, 0.0])


# ---------------------------- Reproducibility -----------------------------
def test_same_seed_same_events(cc, es):
    a = _generator([cc, es], _spectrum(), seed=2024)
    b = _generator([cc, es], _spectrum(), seed=2024)
    for _ in range(20):
        assert a.create_event().to_dict() == b.create_event().to_dict()


def test_different_seeds_differ(cc):
    a = _generator([cc], seed=1)
    b = _generator([cc], seed=2)
    assert [a.create_event().to_dict() for _ in range(5)] != [b.create_event().to_dict() for _ in range(5)]


def test_reseed_restarts_stream(cc):
    gen = _generator([cc], seed=77)
    first = [gen.create_event().to_dict() for _ in range(3)]
    gen.reseed(77)
    assert [gen.create_event().to_dict() for _ in range(3)] == first
    assert gen.seed == 77


def _stepped_spectrum():
    # Falls by a factor of a hundred at 20 MeV, where the cross section is still rising
    return HistogramSource(VE, [10.0, 20.0], [100.0, 1.0], 50.0)


def test_reseed_restarts_energy_sampling(cc):
    gen = _generator([cc], _stepped_spectrum(), seed=7)
    first = [gen.create_event().to_dict() for _ in range(200)]
    assert gen.E_pdf_max < UNKNOWN_MAX

    gen.reseed(7)
    assert gen.E_pdf_max == UNKNOWN_MAX
    assert [gen.create_event().to_dict() for _ in range(200)] == first

    fresh = _generator([cc], _stepped_spectrum(), seed=7)
    assert [fresh.create_event().to_dict() for _ in range(200)] == first


def test_state_string_carries_energy_envelope(cc):
    gen = _generator([cc], _stepped_spectrum(), seed=21)
    for _ in range(50):
        gen.create_event()
    state = gen.get_state_string()
    assert json.loads(state)["E_pdf_max"] == gen.E_pdf_max
    expected = [gen.create_event().to_dict() for _ in range(50)]

    other = _generator([cc], _stepped_spectrum(), seed=3)
    other.seed_using_state_string(state)
    assert [other.create_event().to_dict() for _ in range(50)] == expected


def test_energy_envelope_found_at_bin_edge(cc, caplog):
    gen = _generator([cc], _stepped_spectrum(), seed=17)
    with caplog.at_level("WARNING", logger="nuphysics.sampling"):
        energies = np.array([gen.sample_reaction()[1] for _ in range(4000)])
    assert "envelope" not in caplog.text
    # The maximum of E_pdf is the left limit at the 20 MeV bin edge
    assert gen.E_pdf_max == pytest.approx(gen.E_pdf(np.nextafter(20.0, 0.0)), rel=1e-9)

    expected, _ = integrate.quad(gen.E_pdf, 15.0, 20.0, limit=200)
    observed = np.mean((energies >= 15.0) & (energies < 20.0))
    assert abs(observed - expected) < 4.0 * np.sqrt(expected * (1.0 - expected) / len(energies))


def test_time_seed():
    gen = Generator()
    assert isinstance(gen.seed, int) and gen.seed >= 0


def test_state_string_round_trip(cc):
    gen = _generator([cc], seed=5)
    for _ in range(3):
        gen.create_event()
    state = gen.get_state_string()
    expected = [gen.create_event().to_dict() for _ in range(5)]

    other = _generator([cc], seed=999)
    other.seed_using_state_string(state)
    assert other.seed == 5
    assert [other.create_event().to_dict() for _ in range(5)] == expected


@pytest.mark.parametrize(
    "state",
    [
        "not json",
        json.dumps({"seed": 1}),
        json.dumps({"seed": 1, "bit_generator": {"bit_generator": "MT19937", "state": {}}}),
        json.dumps({"seed": 1, "bit_generator": {"bit_generator": "PCG64", "state": "bogus"}}),
    ],
)
def test_bad_state_strings(state):
    gen = Generator(seed=1)
    with pytest.raises(ConfigurationMismatch):
        gen.seed_using_state_string(state)


# ------------------------------- Energy PDF -------------------------------
def test_E_pdf_normalized(cc, es):
    gen = _generator([cc, es], _spectrum())
    norm, _ = integrate.quad(gen.E_pdf, 0.0, 50.0, points=[10.0, 30.0], limit=200)
    assert norm == pytest.approx(1.0, rel=1e-6)
    assert gen.E_pdf_max == UNKNOWN_MAX


def test_E_pdf_zero_below_threshold(cc):
    gen = _generator([cc], _spectrum())
    assert gen.E_pdf(1.0) == 0.0
    assert gen.E_pdf(20.0) > 0.0


def test_E_pdf_without_flux_weighting(cc):
    src = _spectrum()
    gen = _generator([cc], src, weight_flux=False)
    ratios = [gen.E_pdf(E) / src.pdf(E) for E in np.linspace(8.0, 45.0, 10)]
    assert ratios == pytest.approx([ratios[0]] * len(ratios))
    assert gen.flux_averaged_total_xs() == 0.0


def test_sampled_energies_follow_E_pdf(cc):
    gen = _generator([cc], _spectrum(), seed=31)
    energies = np.array([gen.sample_reaction()[1] for _ in range(3000)])
    assert energies.min() > cc.threshold_kinetic_energy()
    assert gen.E_pdf_max < UNKNOWN_MAX
    # Compare the mean with the PDF's first moment
    mean, _ = integrate.quad(lambda E: E * gen.E_pdf(E), 0.0, 50.0, points=[10.0, 30.0], limit=200)
    assert abs(energies.mean() - mean) < 0.5


def test_closed_source_range_raises(cc):
    low = HistogramSource(VE, [0.5], [1.0], 1.2)
    gen = _generator([cc], low)
    with pytest.raises(KinematicInfeasibility):
        gen.normalize_E_pdf()
    mono = _generator([cc], MonoSource(VE, 1.0))
    with pytest.raises(KinematicInfeasibility):
        mono.create_event()


def test_setters_reset_normalization(cc):
    gen = _generator([cc], _spectrum())
    gen.sample_reaction()
    assert gen.E_pdf_max < UNKNOWN_MAX
    gen.source = GridSource(VE, [5.0, 40.0], [1.0, 1.0])
    assert gen.E_pdf_max == UNKNOWN_MAX
    gen.sample_reaction()
    gen.target = Target.single(AR40)
    assert gen.E_pdf_max == UNKNOWN_MAX


# -------------------------- Cross-section queries -------------------------
def test_total_xs_weighted_by_fractions(cc, mass_table):
    carbon_es = ElectronReaction(VE, 1000060120, mass_table)
    gen = Generator(seed=1, source=MonoSource(VE, 20.0),
                    target=Target([AR40, 1000060120], [1.0, 3.0]),
                    reactions=[cc, carbon_es])
    expected = 0.25 * cc.total_xs(VE, 20.0) + 0.75 * carbon_es.total_xs(VE, 20.0)
    assert gen.total_xs(VE, 20.0) == pytest.approx(expected)
    assert gen.total_xs(VE, 20.0, pdg_atom=AR40) == pytest.approx(cc.total_xs(VE, 20.0))
    assert gen.total_xs(VE, 20.0, pdg_atom=1000060120) == pytest.approx(carbon_es.total_xs(VE, 20.0))


def test_flux_averaged_xs(cc, es):
    mono = _generator([cc, es], MonoSource(VE, 25.0))
    assert mono.flux_averaged_total_xs() == pytest.approx(cc.total_xs(VE, 25.0) + es.total_xs(VE, 25.0))

    src = _spectrum()
    gen = _generator([cc], src)
    expected, _ = integrate.quad(lambda E: src.pdf(E) * cc.total_xs(VE, E), 0.0, 50.0,
                                 points=[10.0, 30.0], limit=200)
    assert gen.flux_averaged_total_xs() == pytest.approx(expected, rel=1e-6)


def test_reaction_choice_follows_cross_sections(cc, es):
    gen = _generator([cc, es], MonoSource(VE, 20.0), seed=8)
    n = 4000
    n_es = sum(isinstance(gen.sample_reaction()[0], ElectronReaction) for _ in range(n))
    p_es = es.total_xs(VE, 20.0) / (es.total_xs(VE, 20.0) + cc.total_xs(VE, 20.0))
    assert abs(n_es / n - p_es) < 4.0 * np.sqrt(p_es * (1 - p_es) / n) + 1e-3


def test_events_conserve(cc, es):
    gen = _generator([cc, es], _spectrum(), seed=3)
    for _ in range(100):
        event = gen.create_event()
        assert check_event_conservation(event)["conserved"]


# ----------------------------- External flux ------------------------------
def test_create_event_for(cc, es):
    gen = Generator(seed=4, reactions=[cc, es], structure_db=default_structure_db())
    event = gen.create_event_for(VE, 30.0, AR40)
    assert event.projectile.kinetic_energy == pytest.approx(30.0)
    with pytest.raises(KinematicInfeasibility):
        gen.create_event_for(VE, 30.0, 1000080160)
    with pytest.raises(KinematicInfeasibility):
        gen.create_event_for(-12, 30.0, AR40)


def test_missing_components(cc):
    gen = Generator(seed=1, reactions=[cc])
    with pytest.raises(ConfigurationMismatch):
        gen.create_event()
    empty = Generator(seed=1, source=MonoSource(VE, 20.0), target=Target.single(AR40))
    with pytest.raises(ConfigurationMismatch):
        empty.sample_reaction()


def test_add_and_clear_reactions(cc, es):
    gen = _generator([cc])
    gen.add_reaction(es)
    assert gen.reactions == (cc, es)
    gen.clear_reactions()
    assert gen.reactions == ()


# --------------------------------- Batch ----------------------------------
def test_simulate_batch(cc):
    gen = _generator([cc], MonoSource(VE, 15.0), seed=10)
    results = simulate_batch(gen, 25)
    assert results["success"] == 25
    assert results["failed"] == 0
    assert results["violations"] == 0
    assert len(results["events"]) == 25


def test_simulate_batch_counts_failures(cc):
    gen = _generator([cc], MonoSource(VE, 1.0))
    results = simulate_batch(gen, 5)
    assert results == {"events": [], "success": 0, "failed": 5, "violations": 0, "total": 5}
