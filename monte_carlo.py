#!/usr/bin/env python3
"""
Monte Carlo driver script for NuScatterX

Generates neutrino scattering events on a 40Ar target using the built-in
demonstration matrix elements.

Examples:
    python monte_carlo.py --events 1000
    python monte_carlo.py --neutrino ve --energy 30 --events 100 --seed 42 --stats
    python monte_carlo.py --reaction es --dump-xs 1 50 50
"""

import argparse
import logging
import sys
from collections import Counter

import numpy as np

from nuphysics import constants as const
from nuphysics.config import GeneratorConfig
from nuphysics.conservation import check_event_conservation
from nuphysics.data import AR40, ar40_cc_table, default_structure_db
from nuphysics.errors import ScatterError
from nuphysics.generator import simulate_batch
from nuphysics.mass_table import MassTable
from nuphysics.reactions import (
    ProcessType,
    get_projectiles,
    make_electron_reactions,
    make_nuclear_reactions,
)
from nuphysics.source import MonoSource, neutrino_pdg
from nuphysics.target import Target

# MeV^-2 -> 10^-42 cm^2
XS_UNIT = const.HBAR_C2_CM2 * 1e42


def build_reactions(pdg_a, which, coulomb_mode, mass_table):
    reactions = []
    if which in ("cc", "both"):
        if pdg_a not in get_projectiles(ProcessType.NEUTRINO_CC):
            raise SystemExit(f"❌ Charged-current scattering on 40Ar needs a neutrino, not {pdg_a}")
        reactions += make_nuclear_reactions(ProcessType.NEUTRINO_CC, AR40, ar40_cc_table(),
                                            mass_table, coulomb_mode, projectiles=[pdg_a])
    if which in ("es", "both"):
        reactions += make_electron_reactions(AR40, mass_table, projectiles=[pdg_a])
    return reactions


def dump_cross_sections(gen, pdg_a, KE_min, KE_max, n_points):
    print("\n📈 Total cross sections per 40Ar atom")
    print("=" * 60)
    print(f"{'KE (MeV)':>12s}  {'total (1e-42 cm^2)':>20s}  " + "  ".join(
        f"{r.description:>24s}" for r in gen.reactions))
    for KE in np.linspace(KE_min, KE_max, n_points):
        parts = [r.total_xs(pdg_a, KE) * XS_UNIT for r in gen.reactions]
        total = gen.total_xs(pdg_a, KE, AR40) * XS_UNIT
        print(f"{KE:12.4f}  {total:20.6g}  " + "  ".join(f"{x:24.6g}" for x in parts))
    print("=" * 60 + "\n")


def print_event_stats(events):
    n = len(events)
    levels = Counter(round(ev.E_level, 4) for ev in events)
    processes = Counter(ev.process_tag() for ev in events)
    ke = np.array([ev.ejectile.kinetic_energy for ev in events])
    violations = sum(1 for ev in events if not check_event_conservation(ev)["conserved"])

    print("\n📊 Event Statistics")
    print("=" * 60)
    print(f"Total events                 : {n}")
    print(f"Mean ejectile KE             : {ke.mean():.4f} MeV (std {ke.std():.4f} MeV)")

    print("\nEvents by process:")
    for tag, count in processes.most_common():
        print(f"  • {tag:30s}: {count:6d} events")

    print("\nResidue excitation energies:")
    for E_level, count in sorted(levels.items()):
        print(f"  • {E_level:10.4f} MeV           : {count:6d} events ({count / n:.2%})")

    print("\nConservation (E, p, charge):")
    print(f"  Violations: {violations}/{n}")
    print("=" * 60 + "\n")


def build_parser():
    return argparse.ArgumentParser(
        description="NuScatterX Monte Carlo Event Generator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Examples:
  python monte_carlo.py --events 1000
  python monte_carlo.py --neutrino ve --energy 30 --events 500 --seed 42
  python monte_carlo.py --reaction both --coulomb-mode Fermi --events 100 --stats
  python monte_carlo.py --dump-xs 1 60 60"""
    )


def main(argv=None):
    parser = build_parser()
    parser.add_argument("--events", type=int, default=10, help="Number of events (default 10)")
    parser.add_argument("--seed", type=int, default=None, help="Random seed (optional)")
    parser.add_argument("--neutrino", default="ve", help="Projectile: ve, vebar, vu, vubar, vt, vtbar (default ve)")
    parser.add_argument("--energy", type=float, default=20.0, help="Projectile energy in MeV (default 20)")
    parser.add_argument("--coulomb-mode", default=None,
                        help='Coulomb correction: none, Fermi, EMA, MEMA, Fermi-EMA, Fermi-MEMA')
    parser.add_argument("--reaction", choices=("cc", "es", "both"), default="cc",
                        help="Reactions on 40Ar to include (default cc)")
    parser.add_argument("--dump-xs", nargs=3, type=float, metavar=("KMIN", "KMAX", "N"),
                        help="Print total cross sections at N kinetic energies and exit")
    parser.add_argument("--stats", action="store_true", help="Print event statistics after generation")
    parser.add_argument("--verbose", action="store_true", help="Show progress output")
    parser.add_argument("--log-level", default=None, help="Logging level (overrides --verbose)")
    args = parser.parse_args(argv)

    overrides = {}
    if args.seed is not None:
        overrides["seed"] = args.seed
    if args.coulomb_mode is not None:
        overrides["coulomb_mode"] = args.coulomb_mode
    if args.log_level is not None:
        overrides["log_level"] = args.log_level
    elif args.verbose:
        overrides["log_level"] = "INFO"

    try:
        pdg_a = neutrino_pdg(args.neutrino)
        config = GeneratorConfig.from_env(
            source=MonoSource(pdg_a, args.energy),
            target=Target.single(AR40),
            **overrides,
        )
    except ScatterError as e:
        parser.error(str(e))

    logging.basicConfig(level=config.log_level, format="%(levelname)s %(name)s: %(message)s")

    mass_table = MassTable()
    reactions = build_reactions(pdg_a, args.reaction, config.coulomb_mode, mass_table)
    gen = config.create_generator(reactions, structure_db=default_structure_db())

    if args.dump_xs:
        KE_min, KE_max, n_points = args.dump_xs
        dump_cross_sections(gen, pdg_a, KE_min, KE_max, int(n_points))
        return 0

    print("\n" + "=" * 60)
    print("🔥 NuScatterX Monte Carlo Event Generator")
    print("=" * 60)
    print(f"Projectile       : {args.neutrino} ({pdg_a})")
    print(f"Energy           : {args.energy} MeV")
    print(f"Target           : {gen.target}")
    print(f"Reactions        : {', '.join(r.description for r in gen.reactions)}")
    print(f"Coulomb Mode     : {config.coulomb_mode}")
    print(f"Number of Events : {args.events}")
    print(f"Random Seed      : {gen.seed}")
    print("=" * 60 + "\n")

    results = simulate_batch(gen, args.events)

    print("\n" + "=" * 60)
    print("✅ Generation Complete")
    print("=" * 60)
    print(f"Successful events : {results['success']}/{results['total']}")
    print(f"Failed events     : {results['failed']}")
    if results["total"]:
        print(f"Success rate      : {results['success'] / results['total']:.2%}")
    print(f"Flux-averaged σ   : {gen.flux_averaged_total_xs() * XS_UNIT:.6g} × 10^-42 cm^2")
    if results["events"] and len(results["events"]) <= 20:
        for ev in results["events"]:
            print(f"  {ev}")
    elif not results["events"]:
        print("No events generated.")
    print("=" * 60 + "\n")

    if args.stats and results["success"] > 0:
        print_event_stats(results["events"])
    return 0


if __name__ == "__main__":
    sys.exit(main())
