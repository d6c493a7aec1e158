import json
import logging
import math
import time
from typing import Dict, List, Optional, Tuple

import numpy as np
from scipy import integrate

from .constants import UNKNOWN_MAX
from .conservation import check_event_conservation
from .errors import ConfigurationMismatch, KinematicInfeasibility
from .events import Event
from .reactions.base import Reaction, TargetAtom
from .sampling import (
    DEFAULT_MAX_SEARCH_TOLERANCE,
    DEFAULT_SAFETY_FACTOR,
    rejection_sample,
    sample_discrete,
)
from .source import NeutrinoSource, is_monoenergetic
from .structure import StructureDatabase
from .target import Target

logger = logging.getLogger(__name__)

# Subintervals allowed when integrating E_pdf
_QUAD_LIMIT = 200


class Generator:
    """
    Monte Carlo event generator for two-two scattering.

    Owns the random stream (numpy PCG64), the reactions, the projectile
    source, the target and the structure database. Every random draw made
    while generating an event comes from ``self.rng`` in a fixed order:

    1. reacting energy (rejection sampling of E_pdf; skipped for a
       monoenergetic source)
    2. reaction index (one discrete draw)
    3. whatever the chosen reaction's create_event() draws

    so two generators with the same seed produce identical event sequences.
    A generator must be driven from a single thread.
    """

    def __init__(self, seed: Optional[int] = None, source: Optional[NeutrinoSource] = None,
                 target: Optional[Target] = None, reactions=(),
                 structure_db: Optional[StructureDatabase] = None, weight_flux: bool = True,
                 rejection_safety_factor: float = DEFAULT_SAFETY_FACTOR,
                 max_search_tolerance: float = DEFAULT_MAX_SEARCH_TOLERANCE):
        self.reseed(seed)
        self._reactions: List[Reaction] = list(reactions)
        self.structure_db = structure_db if structure_db is not None else StructureDatabase()
        self._source = source
        self._target = target
        self.weight_flux = weight_flux
        self.rejection_safety_factor = rejection_safety_factor
        self.max_search_tolerance = max_search_tolerance

        self._E_pdf_norm: Optional[float] = None
        self._E_pdf_max = UNKNOWN_MAX

        logger.info(
            f"Created generator with seed {self._seed}, {len(self._reactions)} reactions, "
            f"source {source!r}, target {target!r}"
        )

    # -------------------- Random stream --------------------

    @property
    def seed(self) -> int:
        return self._seed

    def reseed(self, seed: Optional[int] = None):
        """
        Restart the random stream. None seeds from the current time.

        Also drops the cached E_pdf maximum, which sets the rejection
        envelope for energy draws.
        """
        if seed is None:
            seed = time.time_ns() & 0xFFFFFFFFFFFFFFFF
        self._seed = int(seed)
        self.rng = np.random.default_rng(self._seed)
        self._E_pdf_max = UNKNOWN_MAX
        logger.info(f"Seeded random number generator with {self._seed}")

    def get_state_string(self) -> str:
        """Serialized stream state (and E_pdf envelope) for seed_using_state_string()."""
        return json.dumps({
            "seed": self._seed,
            "bit_generator": self.rng.bit_generator.state,
            "E_pdf_max": self._E_pdf_max,
        })

    def seed_using_state_string(self, state_string: str):
        """Restore a stream state saved by get_state_string()."""
        try:
            payload = json.loads(state_string)
            seed = int(payload["seed"])
            state = payload["bit_generator"]
            name = state["bit_generator"]
            E_pdf_max = float(payload.get("E_pdf_max", UNKNOWN_MAX))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError) as exc:
            raise ConfigurationMismatch(f"Invalid generator state string: {exc}") from exc

        expected = type(self.rng.bit_generator).__name__
        if name != expected:
            raise ConfigurationMismatch(
                f"State string is for a {name} bit generator, but this generator uses {expected}"
            )
        try:
            self.rng.bit_generator.state = state
        except (KeyError, TypeError, ValueError) as exc:
            raise ConfigurationMismatch(f"Invalid generator state string: {exc}") from exc
        self._seed = seed
        self._E_pdf_max = E_pdf_max

    # -------------------- Components --------------------

    @property
    def reactions(self) -> Tuple[Reaction, ...]:
        return tuple(self._reactions)

    def add_reaction(self, reaction: Reaction):
        self._reactions.append(reaction)
        self._reset_E_pdf()

    def clear_reactions(self):
        self._reactions.clear()
        self._reset_E_pdf()

    @property
    def source(self) -> NeutrinoSource:
        if self._source is None:
            raise ConfigurationMismatch("This generator has no projectile source")
        return self._source

    @source.setter
    def source(self, source: NeutrinoSource):
        self._source = source
        self._reset_E_pdf()

    @property
    def target(self) -> Target:
        if self._target is None:
            raise ConfigurationMismatch("This generator has no target")
        return self._target

    @target.setter
    def target(self, target: Target):
        self._target = target
        self._reset_E_pdf()

    def _reset_E_pdf(self):
        self._E_pdf_norm = None
        self._E_pdf_max = UNKNOWN_MAX

    # -------------------- Cross sections --------------------

    def _reaction_weight(self, reaction: Reaction, pdg_a: int, E: float) -> float:
        """Abundance-weighted total cross section of one reaction at projectile energy E."""
        fraction = self.target.atom_fraction(reaction.atomic_target())
        if fraction == 0.0:
            return 0.0
        return fraction * reaction.total_xs(pdg_a, E - reaction.ma)

    def total_xs(self, pdg_a: int, KEa: float, pdg_atom: Optional[int] = None) -> float:
        """
        Total cross section (MeV^-2 per atom) summed over reactions.

        Without pdg_atom the result is weighted by the target's atom
        fractions. With pdg_atom only reactions on that atom count and
        the fractions are ignored.
        """
        if pdg_atom is None:
            return math.fsum(
                self.target.atom_fraction(r.atomic_target()) * r.total_xs(pdg_a, KEa)
                for r in self._reactions
            )
        atom = TargetAtom(pdg_atom)
        return math.fsum(r.total_xs(pdg_a, KEa) for r in self._reactions if r.atomic_target() == atom)

    def _unnormalized_E_pdf(self, E: float) -> float:
        pdg = self.source.pdg
        xs = math.fsum(self._reaction_weight(r, pdg, E) for r in self._reactions)
        if not self.weight_flux:
            # The source already describes the reacting spectrum
            return self.source.pdf(E) if xs > 0.0 else 0.0
        return self.source.pdf(E) * xs

    def _integrate_over_source(self, f) -> float:
        src = self.source
        points = [p for p in src.breakpoints() if src.E_min < p < src.E_max] or None
        value, abserr = integrate.quad(f, src.E_min, src.E_max, points=points, limit=_QUAD_LIMIT)
        logger.debug(f"Integrated over [{src.E_min}, {src.E_max}] MeV: {value:.6g} ± {abserr:.2g}")
        return value

    def normalize_E_pdf(self):
        """Compute the normalization of E_pdf over the source's energy range."""
        if is_monoenergetic(self.source):
            norm = 1.0
        else:
            integral = self._integrate_over_source(self._unnormalized_E_pdf)
            if not integral > 0.0:
                raise KinematicInfeasibility(
                    f"The total cross section vanishes over the source energy range "
                    f"[{self.source.E_min}, {self.source.E_max}] MeV for every configured reaction"
                )
            norm = 1.0 / integral
        self._E_pdf_norm = norm
        logger.info(f"Normalized reacting-energy PDF (norm = {norm:.6g})")

    def E_pdf(self, E: float) -> float:
        """Probability density (MeV^-1) of reacting projectile energies."""
        if self._E_pdf_norm is None:
            self.normalize_E_pdf()
        return self._unnormalized_E_pdf(E) * self._E_pdf_norm

    @property
    def E_pdf_max(self) -> float:
        """Current estimate of the maximum of E_pdf (UNKNOWN_MAX before the first search)."""
        return self._E_pdf_max

    def flux_averaged_total_xs(self) -> float:
        """Flux-averaged total cross section (MeV^-2); zero when flux weighting is off."""
        if not self.weight_flux:
            return 0.0
        pdg = self.source.pdg
        if is_monoenergetic(self.source):
            E = self.source.E_min
            return math.fsum(self._reaction_weight(r, pdg, E) for r in self._reactions)
        return self._integrate_over_source(
            lambda E: self.source.pdf(E) * math.fsum(self._reaction_weight(r, pdg, E) for r in self._reactions)
        )

    # -------------------- Sampling --------------------

    def sample_reaction(self) -> Tuple[Reaction, float]:
        """Sample a reacting energy E (MeV) and then a reaction weighted by cross section at E."""
        if not self._reactions:
            raise ConfigurationMismatch("This generator has no reactions")
        src = self.source

        if is_monoenergetic(src):
            E = src.E_min
        else:
            if self._E_pdf_norm is None:
                self.normalize_E_pdf()
            E, self._E_pdf_max = rejection_sample(
                self.rng, self.E_pdf, src.E_min, src.E_max, self._E_pdf_max,
                self.rejection_safety_factor, self.max_search_tolerance, src.breakpoints())

        weights = [self._reaction_weight(r, src.pdg, E) for r in self._reactions]
        if not math.fsum(weights) > 0.0:
            raise KinematicInfeasibility(
                f"No configured reaction is open for projectile {src.pdg} at E = {E} MeV"
            )
        reaction = self._reactions[sample_discrete(self.rng, weights)]
        return reaction, E

    def create_event(self) -> Event:
        reaction, E = self.sample_reaction()
        pdg_a = self.source.pdg
        return reaction.create_event(pdg_a, E - reaction.ma, self.rng, self.structure_db)

    def create_event_for(self, pdg_a: int, KEa: float, pdg_atom: int) -> Event:
        """
        Event for a fixed projectile, kinetic energy and target atom.

        Meant for external flux drivers: the source and target atom
        fractions are not used.
        """
        atom = TargetAtom(pdg_atom)
        candidates = [r for r in self._reactions if r.atomic_target() == atom]
        weights = [r.total_xs(pdg_a, KEa) for r in candidates]
        if not math.fsum(weights) > 0.0:
            raise KinematicInfeasibility(
                f"No energetically accessible reaction for projectile {pdg_a} with "
                f"KE = {KEa} MeV on {atom}"
            )
        reaction = candidates[sample_discrete(self.rng, weights)]
        return reaction.create_event(pdg_a, KEa, self.rng, self.structure_db)


def simulate_batch(generator: Generator, n: int = 10, check_conservation: bool = True) -> Dict:
    """
    Generate n events.

    Events whose reaction turns out to be kinematically closed are counted
    as failed; every other error propagates.
    """
    events: List[Event] = []
    failed = 0
    violations = 0

    for i in range(n):
        try:
            event = generator.create_event()
        except KinematicInfeasibility as e:
            logger.warning(f"Event {i + 1}/{n} failed: {e}")
            failed += 1
            continue

        if check_conservation and not check_event_conservation(event)["conserved"]:
            logger.warning(f"Event {i + 1}/{n} violates conservation: {event}")
            violations += 1
        events.append(event)

    logger.info(f"Batch complete: {len(events)}/{n} succeeded, {failed} failed")
    return {
        "events": events,
        "success": len(events),
        "failed": failed,
        "violations": violations,
        "total": n,
    }
