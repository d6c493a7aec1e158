"""
Generator settings.

Settings come from keyword arguments, from NUSCATTERX_* environment
variables (GeneratorConfig.from_env) or from an already-parsed job mapping
(GeneratorConfig.from_dict):

    {
        "seed": 123456,
        "coulomb_mode": "Fermi-MEMA",
        "weight_flux": True,
        "target": {"nuclides": [1000180400], "atom_fractions": [1.0]},
        "source": {"type": "mono", "neutrino": "ve", "energy": 15.0},
    }

Histogram sources use "E_bin_lefts", "weights" and "Emax"; grid sources
use "energies" and "probabilities".
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .errors import ConfigurationMismatch
from .generator import Generator
from .reactions.nuclear import DEFAULT_COULOMB_MODE, CoulombMode
from .sampling import DEFAULT_MAX_SEARCH_TOLERANCE, DEFAULT_SAFETY_FACTOR
from .source import GridSource, HistogramSource, MonoSource, NeutrinoSource
from .structure import StructureDatabase
from .target import Target

ENV_PREFIX = "NUSCATTERX_"

_TRUE_STRINGS = ("1", "true", "yes", "on")
_FALSE_STRINGS = ("0", "false", "no", "off")


def _parse_bool(value, name: str) -> bool:
    if isinstance(value, bool):
        return value
    key = str(value).strip().lower()
    if key in _TRUE_STRINGS:
        return True
    if key in _FALSE_STRINGS:
        return False
    raise ConfigurationMismatch(f"Invalid boolean value {value!r} for {name}")


def _parse_seed(value) -> Optional[int]:
    if value is None:
        return None
    try:
        seed = int(value)
    except (TypeError, ValueError):
        raise ConfigurationMismatch(f"Invalid random seed {value!r}") from None
    if seed < 0:
        raise ConfigurationMismatch(f"Random seed must be non-negative, got {seed}")
    return seed


def _parse_coulomb_mode(value) -> CoulombMode:
    if isinstance(value, CoulombMode):
        return value
    return CoulombMode.from_string(str(value))


def _require(mapping: Mapping[str, Any], key: str, where: str):
    try:
        return mapping[key]
    except KeyError:
        raise ConfigurationMismatch(f"Missing key '{key}' in {where} configuration") from None


def source_from_dict(settings: Mapping[str, Any]) -> NeutrinoSource:
    """Build a projectile source from a {"type": ..., "neutrino": ..., ...} mapping."""
    kind = str(_require(settings, "type", "source")).strip().lower()
    neutrino = _require(settings, "neutrino", "source")

    try:
        if kind in ("mono", "monoenergetic"):
            return MonoSource(neutrino, float(_require(settings, "energy", "source")))
        if kind == "histogram":
            return HistogramSource(
                neutrino,
                [float(e) for e in _require(settings, "E_bin_lefts", "source")],
                [float(w) for w in _require(settings, "weights", "source")],
                float(_require(settings, "Emax", "source")),
            )
        if kind == "grid":
            return GridSource(
                neutrino,
                [float(e) for e in _require(settings, "energies", "source")],
                [float(p) for p in _require(settings, "probabilities", "source")],
            )
    except ConfigurationMismatch:
        raise
    except (TypeError, ValueError) as exc:
        raise ConfigurationMismatch(f"Invalid {kind} source: {exc}") from exc

    raise ConfigurationMismatch(f"Unrecognized source type '{kind}'")


def target_from_dict(settings: Mapping[str, Any]) -> Target:
    nuclides = _require(settings, "nuclides", "target")
    fractions = _require(settings, "atom_fractions", "target")
    try:
        return Target([int(n) for n in nuclides], [float(f) for f in fractions])
    except ConfigurationMismatch:
        raise
    except (TypeError, ValueError) as exc:
        raise ConfigurationMismatch(f"Invalid target: {exc}") from exc


@dataclass
class GeneratorConfig:
    seed: Optional[int] = None
    coulomb_mode: CoulombMode = DEFAULT_COULOMB_MODE
    weight_flux: bool = True
    rejection_safety_factor: float = DEFAULT_SAFETY_FACTOR
    max_search_tolerance: float = DEFAULT_MAX_SEARCH_TOLERANCE
    log_level: str = "WARNING"
    source: Optional[NeutrinoSource] = None
    target: Optional[Target] = None

    def __post_init__(self):
        self.seed = _parse_seed(self.seed)
        self.coulomb_mode = _parse_coulomb_mode(self.coulomb_mode)
        self.weight_flux = _parse_bool(self.weight_flux, "weight_flux")
        if not self.rejection_safety_factor >= 1.0:
            raise ConfigurationMismatch(
                f"Rejection safety factor must be at least 1, got {self.rejection_safety_factor}"
            )
        if not self.max_search_tolerance > 0.0:
            raise ConfigurationMismatch(
                f"Maximum search tolerance must be positive, got {self.max_search_tolerance}"
            )
        self.log_level = str(self.log_level).upper()
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ConfigurationMismatch(f"Unknown log level '{self.log_level}'")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "GeneratorConfig":
        """Defaults overridden by NUSCATTERX_* environment variables, then by keyword arguments."""
        env = os.environ if environ is None else environ
        values = {}
        for field_name in ("seed", "coulomb_mode", "weight_flux", "log_level"):
            raw = env.get(ENV_PREFIX + field_name.upper())
            if raw is not None and raw.strip() != "":
                values[field_name] = raw.strip()
        values.update(overrides)
        return cls(**values)

    @classmethod
    def from_dict(cls, mapping: Mapping[str, Any]) -> "GeneratorConfig":
        values = {}
        for key in ("seed", "coulomb_mode", "weight_flux", "rejection_safety_factor",
                    "max_search_tolerance", "log_level"):
            if key in mapping:
                values[key] = mapping[key]
        if "source" in mapping:
            values["source"] = source_from_dict(mapping["source"])
        if "target" in mapping:
            values["target"] = target_from_dict(mapping["target"])
        return cls(**values)

    def create_generator(self, reactions=(), structure_db: Optional[StructureDatabase] = None) -> Generator:
        if self.source is None:
            raise ConfigurationMismatch("No projectile source configured")
        if self.target is None:
            raise ConfigurationMismatch("No target configured")
        return Generator(
            seed=self.seed,
            source=self.source,
            target=self.target,
            reactions=reactions,
            structure_db=structure_db,
            weight_flux=self.weight_flux,
            rejection_safety_factor=self.rejection_safety_factor,
            max_search_tolerance=self.max_search_tolerance,
        )
