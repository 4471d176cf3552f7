"""
credgrain.io — Settings, logging and Polars frames around the cred and grain engines.

## Responsibilities
- Load CredgrainSettings with precedence env > TOML > defaults.
- Configure the credgrain logger hierarchy.
- Materialize cred results and grain receipts as Polars frames validated against
  credgrain.core.tables descriptors, and read allocation snapshots back from cred frames.

## Public API
- CredgrainSettings, GrainSettings: configuration.
- configure_logging: logging setup.
- cred_frame, receipts_frame, format_receipts, identities_from_frame: frames.

## Import DAG discipline
- Depends on stdlib, polars, pydantic and the lower credgrain layers.
- No file writes; callers decide where frames go.

## Examples
```python
from credgrain.io import CredgrainSettings, configure_logging, cred_frame

configure_logging("DEBUG")
settings = CredgrainSettings.load()
params = settings.parameters()
df = cred_frame(cred_graph)  # doctest: +SKIP
```
"""

from __future__ import annotations

from .config import CredgrainSettings, GrainSettings
from .frames import cred_frame, format_receipts, identities_from_frame, receipts_frame
from .logging_utils import configure_logging

__all__ = [
    "CredgrainSettings",
    "GrainSettings",
    "configure_logging",
    "cred_frame",
    "receipts_frame",
    "format_receipts",
    "identities_from_frame",
]
