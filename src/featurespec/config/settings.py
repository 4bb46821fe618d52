"""
Typed engine configuration using Pydantic.

The engine itself needs no configuration; these models describe how an
application or the CLI wires it up: which collection driver to use and how
to log.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from featurespec.ops import CollectionOps, JoblibOps, ListOps, ShardedOps


class OpsKind(str, Enum):
    """Available collection drivers."""

    LIST = "list"  # sequential, in-memory
    SHARDED = "sharded"  # sequential shards
    JOBLIB = "joblib"  # parallel shards


class MergeOrder(str, Enum):
    """Order in which shard aggregates are merged."""

    FORWARD = "forward"
    REVERSE = "reverse"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(frozen=True)

    level: str = Field(default="INFO", description="Log level")
    json_output: bool = Field(default=False, description="Emit JSON log lines")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Ensure the level is a standard logging level."""
        levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in levels:
            msg = f"Log level must be one of {sorted(levels)}, got: {v!r}"
            raise ValueError(msg)
        return v.upper()


class OpsConfig(BaseModel):
    """Collection driver configuration."""

    model_config = ConfigDict(frozen=True)

    kind: OpsKind = Field(default=OpsKind.LIST, description="Collection driver")
    n_shards: int = Field(default=8, ge=1, description="Shards for sharded drivers")
    n_jobs: int = Field(default=-1, description="joblib worker count (-1 = all cores)")
    merge_order: MergeOrder = Field(
        default=MergeOrder.FORWARD, description="Shard aggregate merge order"
    )
    prefer: str = Field(default="threads", description="joblib backend preference")

    @field_validator("n_jobs")
    @classmethod
    def validate_n_jobs(cls, v: int) -> int:
        """joblib does not accept zero workers."""
        if v == 0:
            msg = "n_jobs must be non-zero"
            raise ValueError(msg)
        return v

    @field_validator("prefer")
    @classmethod
    def validate_prefer(cls, v: str) -> str:
        """Only the two joblib backend preferences are meaningful."""
        if v not in ("threads", "processes"):
            msg = f"prefer must be 'threads' or 'processes', got: {v!r}"
            raise ValueError(msg)
        return v


class EngineConfig(BaseModel):
    """Root configuration for running feature extraction."""

    model_config = ConfigDict(frozen=True)

    ops: OpsConfig = Field(default_factory=OpsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def build_ops(self) -> CollectionOps:
        """Instantiate the configured collection driver."""
        ops = self.ops
        if ops.kind == OpsKind.SHARDED:
            return ShardedOps(n_shards=ops.n_shards, merge_order=ops.merge_order.value)
        if ops.kind == OpsKind.JOBLIB:
            return JoblibOps(
                n_jobs=ops.n_jobs,
                n_shards=ops.n_shards,
                merge_order=ops.merge_order.value,
                prefer=ops.prefer,  # type: ignore[arg-type]
            )
        return ListOps()
