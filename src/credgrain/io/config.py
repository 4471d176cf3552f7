"""
Configuration for credgrain runs.

Defines CredgrainSettings, a frozen dataclass carrying the CredRank parameters, solver
limits and grain display options. Defaults are sourced from credgrain.core.constants (the
single source of truth).

Source of truth
- credgrain.core.constants.DEFAULT_ALPHA, DEFAULT_BETA, DEFAULT_GAMMA_FORWARD,
  DEFAULT_GAMMA_BACKWARD, DEFAULT_CONVERGENCE_THRESHOLD, DEFAULT_MAX_ITERATIONS
- credgrain.core.constants.GRAIN_DECIMAL_PRECISION bounds GrainSettings.decimal_precision

Import DAG discipline
- Depends on stdlib, credgrain.core and credgrain.credrank (for MarkovProcessParameters).
- Does not import credgrain.ledger.

Notes
- Precedence: environment > TOML > defaults. A value that fails to parse leaves the
  previous layer's value in place.
- Range checks happen when the settings are turned into MarkovProcessParameters.
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from credgrain.core.constants import (
    DEFAULT_ALPHA,
    DEFAULT_BETA,
    DEFAULT_CONVERGENCE_THRESHOLD,
    DEFAULT_GAMMA_BACKWARD,
    DEFAULT_GAMMA_FORWARD,
    DEFAULT_MAX_ITERATIONS,
    GRAIN_DECIMAL_PRECISION,
)
from credgrain.credrank.markov_process_graph import MarkovProcessParameters

from .errors import IoConfigError

__all__ = ["GrainSettings", "CredgrainSettings"]

logger = logging.getLogger(__name__)

_FLOAT_KEYS = ("alpha", "beta", "gamma_forward", "gamma_backward", "convergence_threshold")


@dataclass(frozen=True)
class GrainSettings:
    """Grain display settings.

    Notes:
        - decimal_precision is the number of digits shown after the decimal point (0..18).
        - suffix is appended verbatim to formatted amounts (e.g. "g").
    """

    decimal_precision: int = 2
    suffix: str = ""


@dataclass(frozen=True)
class CredgrainSettings:
    """
    Runtime settings for cred computation and grain display.

    Attributes:
        alpha (float): Teleportation mass to seed nodes.
        beta (float): Retention mass along epoch chains.
        gamma_forward (float): Scale for forwards edge weights.
        gamma_backward (float): Scale for backwards edge weights.
        convergence_threshold (float): Solver epsilon (L∞ delta).
        max_iterations (int): Solver iteration cap.
        grain (GrainSettings): Display options for grain amounts.

    Examples:
        >>> from credgrain.io.config import CredgrainSettings
        >>> CredgrainSettings(alpha=0.2).parameters().alpha
        0.2
    """

    alpha: float = DEFAULT_ALPHA
    beta: float = DEFAULT_BETA
    gamma_forward: float = DEFAULT_GAMMA_FORWARD
    gamma_backward: float = DEFAULT_GAMMA_BACKWARD
    convergence_threshold: float = DEFAULT_CONVERGENCE_THRESHOLD
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    grain: GrainSettings = field(default_factory=GrainSettings)

    def parameters(self) -> MarkovProcessParameters:
        """
        Build Markov process parameters from these settings.

        Raises:
            IoConfigError: If a parameter is outside its allowed range.
        """
        try:
            return MarkovProcessParameters(
                alpha=self.alpha,
                beta=self.beta,
                gamma_forward=self.gamma_forward,
                gamma_backward=self.gamma_backward,
            )
        except ValidationError as exc:
            raise IoConfigError(f"invalid credrank parameters: {exc}") from exc

    # Configuration loaders (env/TOML) with precedence: env > TOML > defaults.

    @classmethod
    def _apply_mapping(
        cls, base: CredgrainSettings, cfg: dict[str, Any] | None
    ) -> CredgrainSettings:
        """Apply a loose config mapping onto CredgrainSettings, returning a new instance."""
        if not isinstance(cfg, dict):
            return base

        flat = dict(cfg)
        # [credrank] table keys sit beside top-level keys
        if isinstance(flat.get("credrank"), dict):
            flat.update(flat.pop("credrank"))

        s = base
        for key in _FLOAT_KEYS:
            if key in flat:
                try:
                    s = replace(s, **{key: float(flat[key])})
                except (TypeError, ValueError):
                    logger.warning("ignoring unparseable setting %s=%r", key, flat[key])

        if "max_iterations" in flat:
            try:
                s = replace(s, max_iterations=int(flat["max_iterations"]))
            except (TypeError, ValueError):
                logger.warning("ignoring unparseable setting max_iterations=%r", flat["max_iterations"])

        if isinstance(flat.get("grain"), dict):
            g = flat["grain"]
            curr = s.grain
            precision = curr.decimal_precision
            if "decimal_precision" in g:
                try:
                    candidate = int(g["decimal_precision"])
                except (TypeError, ValueError):
                    candidate = precision
                if 0 <= candidate <= GRAIN_DECIMAL_PRECISION:
                    precision = candidate
            suffix = str(g.get("suffix", curr.suffix))
            s = replace(s, grain=replace(curr, decimal_precision=precision, suffix=suffix))

        return s

    @classmethod
    def from_env(
        cls, base: CredgrainSettings | None = None, prefix: str = "CREDGRAIN_"
    ) -> CredgrainSettings:
        """
        Build CredgrainSettings from environment variables. Precedence is env > base (if provided) > defaults.

        Recognized variables:
            - CREDGRAIN_ALPHA
            - CREDGRAIN_BETA
            - CREDGRAIN_GAMMA_FORWARD
            - CREDGRAIN_GAMMA_BACKWARD
            - CREDGRAIN_CONVERGENCE_THRESHOLD
            - CREDGRAIN_MAX_ITERATIONS
            - CREDGRAIN_GRAIN_DECIMAL_PRECISION
            - CREDGRAIN_GRAIN_SUFFIX
        """
        s = base or cls()

        def get(name: str) -> str | None:
            return os.getenv(prefix + name)

        mapping: dict[str, Any] = {}
        for key in (*_FLOAT_KEYS, "max_iterations"):
            v = get(key.upper())
            if v:
                mapping[key] = v

        v = get("GRAIN_DECIMAL_PRECISION")
        if v:
            mapping.setdefault("grain", {})["decimal_precision"] = v
        v = get("GRAIN_SUFFIX")
        if v is not None:
            mapping.setdefault("grain", {})["suffix"] = v

        return cls._apply_mapping(s, mapping)

    @classmethod
    def from_toml(cls, path: str | os.PathLike[str] | None = None) -> CredgrainSettings:
        """
        Build CredgrainSettings from a TOML file.

        Search order when `path` is None:
            1) ./credgrain.toml (with [credrank]/[grain] tables or direct keys)
            2) ./pyproject.toml under [tool.credgrain]

        Returns defaults if no file is present or none carries credgrain settings.

        Raises:
            IoConfigError: If an explicitly given file is not valid TOML.
        """
        s = cls()

        cand: list[Path] = []
        if path is not None:
            cand.append(Path(path))
        else:
            cand.append(Path.cwd() / "credgrain.toml")
            cand.append(Path.cwd() / "pyproject.toml")

        cfg: dict[str, Any] | None = None
        for p in cand:
            if not p.exists():
                continue
            try:
                with p.open("rb") as fh:
                    data = tomllib.load(fh)
            except tomllib.TOMLDecodeError as exc:
                if path is not None:
                    raise IoConfigError(f"invalid TOML in {p}: {exc}") from exc
                logger.warning("skipping unreadable config file %s: %s", p, exc)
                continue
            if p.name == "pyproject.toml":
                tool = data.get("tool", {})
                cfg = tool.get("credgrain") if isinstance(tool, dict) else None
            else:
                cfg = data
            if cfg:
                logger.debug("loaded credgrain settings from %s", p)
                break

        return cls._apply_mapping(s, cfg)

    @classmethod
    def load(cls, path: str | os.PathLike[str] | None = None) -> CredgrainSettings:
        """
        Load CredgrainSettings applying precedence: environment > TOML > defaults.

        Args:
            path: Optional explicit TOML path. If None, search defaults (credgrain.toml, pyproject.toml).

        Returns:
            CredgrainSettings
        """
        s = cls.from_toml(path)
        s = cls.from_env(base=s)
        return s
