"""
Physical data nodes and the per-shard data node lines built from them.

Text forms (persisted inside the job configuration):

    DataNode          ds_0.t_order_0  or  ds_0.public.t_order_0
    JobDataNodeEntry  t_order:ds_0.t_order_0,ds_1.t_order_1
    JobDataNodeLine   t_order:ds_0.t_order_0|t_order_item:ds_0.t_order_item_0
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

DATA_NODE_SEPARATOR = "."
NODE_LIST_SEPARATOR = ","
ENTRY_SEPARATOR = "|"
LOGIC_TABLE_SEPARATOR = ":"


@dataclass(frozen=True)
class DataNode:
    """A (data source, physical table) pair, optionally schema-qualified."""

    data_source_name: str
    table_name: str
    schema_name: Optional[str] = None

    @classmethod
    def unmarshal(cls, text: str) -> "DataNode":
        parts = text.strip().split(DATA_NODE_SEPARATOR)
        if len(parts) == 2:
            return cls(data_source_name=parts[0], table_name=parts[1])
        if len(parts) == 3:
            return cls(data_source_name=parts[0], schema_name=parts[1], table_name=parts[2])
        raise ValueError(f"Invalid data node format `{text}`")

    def marshal(self) -> str:
        if self.schema_name:
            return DATA_NODE_SEPARATOR.join((self.data_source_name, self.schema_name, self.table_name))
        return DATA_NODE_SEPARATOR.join((self.data_source_name, self.table_name))


@dataclass(frozen=True)
class JobDataNodeEntry:
    """Physical locations of one logic table inside a data node line."""

    logic_table_name: str
    data_nodes: Tuple[DataNode, ...]

    def __post_init__(self) -> None:
        if not self.data_nodes:
            raise ValueError(f"Logic table `{self.logic_table_name}` has no data nodes")

    @classmethod
    def unmarshal(cls, text: str) -> "JobDataNodeEntry":
        logic_table_name, _, nodes_text = text.partition(LOGIC_TABLE_SEPARATOR)
        data_nodes = tuple(
            DataNode.unmarshal(each) for each in nodes_text.split(NODE_LIST_SEPARATOR) if each.strip()
        )
        return cls(logic_table_name=logic_table_name, data_nodes=data_nodes)

    def marshal(self) -> str:
        return self.logic_table_name + LOGIC_TABLE_SEPARATOR + NODE_LIST_SEPARATOR.join(
            each.marshal() for each in self.data_nodes
        )


@dataclass(frozen=True)
class JobDataNodeLine:
    """Ordered logic table entries assigned to one shard."""

    entries: Tuple[JobDataNodeEntry, ...]

    @classmethod
    def unmarshal(cls, text: str) -> "JobDataNodeLine":
        return cls(
            entries=tuple(
                JobDataNodeEntry.unmarshal(each) for each in text.split(ENTRY_SEPARATOR) if each
            )
        )

    def marshal(self) -> str:
        return ENTRY_SEPARATOR.join(each.marshal() for each in self.entries)

    @property
    def data_source_names(self) -> List[str]:
        """Distinct data source names in order of first appearance."""
        result: List[str] = []
        for entry in self.entries:
            for node in entry.data_nodes:
                if node.data_source_name not in result:
                    result.append(node.data_source_name)
        return result

    def __len__(self) -> int:
        return len(self.entries)
