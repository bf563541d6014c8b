"""
Sharding rule configuration snapshot.

Only the parts the CDC control plane reads are modelled: logic tables,
their actual data nodes and the sharding strategies that name the
columns a row is routed by.
"""

from enum import Enum
from typing import List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field


class ShardingStrategyType(str, Enum):
    STANDARD = "standard"
    COMPLEX = "complex"
    HINT = "hint"
    NONE = "none"


class ShardingStrategyConfiguration(BaseModel):
    """Database or table sharding strategy."""

    model_config = ConfigDict(frozen=True)

    type: ShardingStrategyType = ShardingStrategyType.STANDARD
    sharding_column: Optional[str] = None
    sharding_columns: Optional[str] = Field(
        default=None, description="Comma-separated columns of a complex strategy"
    )
    sharding_algorithm_name: Optional[str] = None

    def columns(self) -> Set[str]:
        if self.type == ShardingStrategyType.STANDARD and self.sharding_column:
            return {self.sharding_column}
        if self.type == ShardingStrategyType.COMPLEX and self.sharding_columns:
            return {each.strip() for each in self.sharding_columns.split(",") if each.strip()}
        return set()


class ShardingTableRuleConfiguration(BaseModel):
    model_config = ConfigDict(frozen=True)

    logic_table: str
    actual_data_nodes: Optional[str] = None
    database_strategy: Optional[ShardingStrategyConfiguration] = None
    table_strategy: Optional[ShardingStrategyConfiguration] = None


class ShardingAutoTableRuleConfiguration(BaseModel):
    model_config = ConfigDict(frozen=True)

    logic_table: str
    actual_data_sources: Optional[str] = None
    sharding_strategy: Optional[ShardingStrategyConfiguration] = None


class ShardingRuleConfiguration(BaseModel):
    """Sharding rule of one logical database."""

    model_config = ConfigDict(frozen=True)

    tables: List[ShardingTableRuleConfiguration] = Field(default_factory=list)
    auto_tables: List[ShardingAutoTableRuleConfiguration] = Field(default_factory=list)
    default_database_strategy: Optional[ShardingStrategyConfiguration] = None
    default_table_strategy: Optional[ShardingStrategyConfiguration] = None
