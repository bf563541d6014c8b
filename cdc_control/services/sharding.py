"""
Logical table to physical data node assignment.

Shard ``i`` takes the ``i``-th physical location of every logic table
that has one; tables with fewer locations simply stop contributing.
"""

from typing import Dict, List, Mapping, Sequence

from cdc_control.domain.datanode import DataNode, JobDataNodeEntry, JobDataNodeLine
from cdc_control.domain.task_config import TableNameSchemaNameMapping


def _distinct(data_nodes: Sequence[DataNode]) -> List[DataNode]:
    return list(dict.fromkeys(data_nodes))


def convert_data_nodes_to_lines(data_nodes_map: Mapping[str, Sequence[DataNode]]) -> List[JobDataNodeLine]:
    """One data node line per shard, in shard order."""
    nodes_by_table = {table: _distinct(nodes) for table, nodes in data_nodes_map.items()}
    shard_count = max((len(nodes) for nodes in nodes_by_table.values()), default=0)
    result = []
    for sharding_item in range(shard_count):
        entries = tuple(
            JobDataNodeEntry(table, (nodes[sharding_item],))
            for table, nodes in nodes_by_table.items()
            if sharding_item < len(nodes)
        )
        result.append(JobDataNodeLine(entries))
    return result


def build_tables_first_data_nodes(data_nodes_map: Mapping[str, Sequence[DataNode]]) -> JobDataNodeLine:
    """Line holding only the first physical location of each logic table."""
    return JobDataNodeLine(
        tuple(JobDataNodeEntry(table, (nodes[0],)) for table, nodes in data_nodes_map.items() if nodes)
    )


def build_table_name_schema_name_mapping(schema_table_names: Sequence[str]) -> TableNameSchemaNameMapping:
    """Logic table to schema from ``schema.table`` names; bare names have no schema."""
    table_schema_map: Dict[str, str] = {}
    for each in schema_table_names:
        schema_name, separator, table_name = each.partition(".")
        if separator and schema_name and table_name:
            table_schema_map[table_name] = schema_name
    return TableNameSchemaNameMapping(table_schema_map)


def build_table_name_map(data_node_line: JobDataNodeLine) -> Dict[str, str]:
    """Actual (physical) table name to logic table name."""
    result: Dict[str, str] = {}
    for entry in data_node_line.entries:
        for data_node in entry.data_nodes:
            result[data_node.table_name] = entry.logic_table_name
    return result
