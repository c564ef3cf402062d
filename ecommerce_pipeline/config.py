"""Runtime configuration for the pipeline."""

import os
from typing import Optional

from pydantic import BaseModel, Field, model_validator


ENV_PREFIX = "ECOMMERCE_"


class PipelineConfig(BaseModel):
    """
    Settings shared by the generator, loader and report runner.

    Defaults can be overridden through ``ECOMMERCE_*`` environment variables
    (see ``from_env``) and, on the command line, through click options.
    """
    data_dir: str = Field("data", description="Directory holding the CSV hand-off files")
    db_path: str = Field("ecommerce.db", description="SQLite database file")
    record_min: int = Field(50, ge=0, description="Lower bound for random record counts")
    record_max: int = Field(100, ge=0, description="Upper bound for random record counts")
    max_items_per_order: int = Field(10, ge=1, description="Cap on line items per order")
    seed: Optional[int] = Field(None, description="Random seed; None seeds from the OS")

    @model_validator(mode="after")
    def check_record_range(self):
        if self.record_min > self.record_max:
            raise ValueError(
                f"record_min ({self.record_min}) must not exceed record_max ({self.record_max})"
            )
        return self

    @classmethod
    def from_env(cls, **overrides) -> "PipelineConfig":
        """Build a config from ``ECOMMERCE_*`` variables, then apply overrides."""
        values = {}
        for name in cls.model_fields:
            raw = os.environ.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is not None and raw != "":
                values[name] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
